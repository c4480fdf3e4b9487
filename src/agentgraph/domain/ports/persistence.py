"""Ports for persisting the agent graph aggregate and reading the project catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from agentgraph.domain.model import (
    Agent,
    AgentGraph,
    AgentRelation,
    ContextConfig,
    ProjectResource,
)

if TYPE_CHECKING:
    from collections.abc import Collection

    from agentgraph.domain.model import (
        AgentType,
        GraphScope,
        ProjectScope,
        RelationType,
        ResourceKind,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def remove(self, entity: TEntity) -> None: ...


@runtime_checkable
class AgentGraphRepository(Repository[AgentGraph], Protocol):
    def get(self, scope: GraphScope) -> AgentGraph | None: ...

    def find(
        self,
        scope: ProjectScope,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[AgentGraph]: ...

    def count(self, scope: ProjectScope) -> int: ...


@runtime_checkable
class AgentRepository(Repository[Agent], Protocol):
    """Both agent variants share one id space per graph."""

    def get(self, scope: GraphScope, agent_id: str) -> Agent | None: ...

    def find(
        self,
        scope: GraphScope,
        *,
        agent_type: AgentType | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Agent]: ...

    def count(self, scope: GraphScope, *, agent_type: AgentType | None = None) -> int: ...


@runtime_checkable
class AgentRelationRepository(Repository[AgentRelation], Protocol):
    def get(self, scope: GraphScope, relation_id: str) -> AgentRelation | None: ...

    def find(
        self,
        scope: GraphScope,
        *,
        source_agent_id: str | None = None,
        target_agent_id: str | None = None,
        relation_type: RelationType | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[AgentRelation]: ...

    def count(
        self,
        scope: GraphScope,
        *,
        source_agent_id: str | None = None,
        target_agent_id: str | None = None,
        relation_type: RelationType | None = None,
    ) -> int: ...

    def referencing(self, scope: GraphScope, agent_ids: Collection[str]) -> list[AgentRelation]:
        """Relations whose source or target is one of ``agent_ids``."""
        ...


@runtime_checkable
class ContextConfigRepository(Repository[ContextConfig], Protocol):
    def get(self, scope: GraphScope) -> ContextConfig | None: ...


@runtime_checkable
class ProjectCatalog(Protocol):
    """Read access to project-scoped resources referenced by agents."""

    def existing_ids(
        self,
        scope: ProjectScope,
        kind: ResourceKind,
        ids: Collection[str],
    ) -> set[str]: ...

    def add(self, resource: ProjectResource) -> None: ...

    def find(
        self,
        scope: ProjectScope,
        *,
        kind: ResourceKind | None = None,
    ) -> list[ProjectResource]: ...
