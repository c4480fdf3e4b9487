"""FastAPI application factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Depends, FastAPI, Request, Response, status

from agentgraph import __version__
from agentgraph.api.auth import require_api_key
from agentgraph.api.problems import REQUEST_ID_HEADER, install_problem_handlers
from agentgraph.api.routes import PROJECT_PREFIX, ROUTERS
from agentgraph.config import ServerConfig
from agentgraph.domain.model import new_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from agentgraph.api.dependencies import ApiServices

log = logging.getLogger(__name__)


def create_app(services: ApiServices, server_config: ServerConfig | None = None) -> FastAPI:
    """Build the HTTP application around already-started services."""

    config = server_config or ServerConfig()
    if not config.auth_enabled:
        log.warning("No API keys configured; the management API accepts unauthenticated requests")

    app = FastAPI(
        title="Agent Graph Management API",
        description="Multi-tenant management of agent graphs with full-graph reconciliation",
        version=__version__,
    )
    app.state.services = services
    app.state.server_config = config

    @app.middleware("http")
    async def _request_id(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or new_id()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

    install_problem_handlers(app)

    @app.get("/health", status_code=status.HTTP_204_NO_CONTENT, include_in_schema=False)
    def health() -> Response:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    for router in ROUTERS:
        app.include_router(router, prefix=PROJECT_PREFIX, dependencies=[Depends(require_api_key)])
    return app
