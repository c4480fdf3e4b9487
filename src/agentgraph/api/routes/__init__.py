"""Routers mounted under ``/tenants/{tenant_id}/projects/{project_id}``."""

from __future__ import annotations

from .agents import router as agents_router
from .external_agents import router as external_agents_router
from .graphs import router as graphs_router
from .relations import router as relations_router

PROJECT_PREFIX = "/tenants/{tenant_id}/projects/{project_id}"

ROUTERS = (graphs_router, agents_router, external_agents_router, relations_router)

__all__ = [
    "PROJECT_PREFIX",
    "ROUTERS",
    "agents_router",
    "external_agents_router",
    "graphs_router",
    "relations_router",
]
