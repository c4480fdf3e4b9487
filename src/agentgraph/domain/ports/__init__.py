"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    AgentGraphRepository,
    AgentRelationRepository,
    AgentRepository,
    ContextConfigRepository,
    ProjectCatalog,
    Repository,
)
from .unit_of_work import (
    GraphRepositories,
    GraphUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AgentGraphRepository",
    "AgentRelationRepository",
    "AgentRepository",
    "ContextConfigRepository",
    "GraphRepositories",
    "GraphUnitOfWork",
    "ProjectCatalog",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
