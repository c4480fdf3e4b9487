"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from agentgraph.domain.ports.persistence import (
        AgentGraphRepository,
        AgentRelationRepository,
        AgentRepository,
        ContextConfigRepository,
        ProjectCatalog,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    ``flush`` pushes pending writes without committing so later steps can rely
    on earlier rows (and so storage errors surface at the step that caused them).
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def flush(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class GraphRepositories(RepositoryCollection):
    """Repositories spanning one graph aggregate plus the project catalog."""

    graphs: AgentGraphRepository
    agents: AgentRepository
    relations: AgentRelationRepository
    context_configs: ContextConfigRepository
    catalog: ProjectCatalog


type GraphUnitOfWork = UnitOfWork[GraphRepositories]
