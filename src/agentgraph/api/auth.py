"""Bearer API key check for the management routes."""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agentgraph.api.problems import UnauthorizedError
from agentgraph.config import ServerConfig

_bearer = HTTPBearer(auto_error=False)


def require_api_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> None:
    """Accept the request when auth is disabled or the bearer token is a configured key."""

    server_config: ServerConfig = request.app.state.server_config
    if not server_config.auth_enabled:
        return
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Missing bearer token")
    token = credentials.credentials.encode()
    if not any(hmac.compare_digest(token, key.encode()) for key in server_config.api_keys):
        raise UnauthorizedError("Invalid API key")
