"""HTTP server settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .env import env_int, env_list

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    api_keys: frozenset[str] = field(default_factory=frozenset)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_keys)


def get_server_config() -> ServerConfig:
    return ServerConfig(
        host=os.getenv("AGENTGRAPH_HOST") or DEFAULT_HOST,
        port=env_int("AGENTGRAPH_PORT", default=DEFAULT_PORT, minimum=1),
        api_keys=frozenset(env_list("AGENTGRAPH_API_KEYS")),
    )
