"""SQLAlchemy adapter package for the agent graph store."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAgentGraphRepository,
    SqlAlchemyAgentRelationRepository,
    SqlAlchemyAgentRepository,
    SqlAlchemyContextConfigRepository,
    SqlAlchemyProjectCatalog,
)
from .unit_of_work import (
    SqlAlchemyGraphUnitOfWork,
    StartupError,
    create_database_engine,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAgentGraphRepository",
    "SqlAlchemyAgentRelationRepository",
    "SqlAlchemyAgentRepository",
    "SqlAlchemyContextConfigRepository",
    "SqlAlchemyGraphUnitOfWork",
    "SqlAlchemyProjectCatalog",
    "StartupError",
    "create_all_tables",
    "create_database_engine",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
