"""In-memory fakes and builders for agent graph tests."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Literal

from agentgraph.domain.model import (
    AgentType,
    ExternalAgent,
    InternalAgent,
    ProjectResource,
    ProjectScope,
    ResourceKind,
)
from agentgraph.domain.ports import GraphRepositories
from agentgraph.domain.reconciliation import (
    ExternalAgentDefinition,
    FullGraphDefinition,
    InternalAgentDefinition,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection

    from agentgraph.domain.model import (
        Agent,
        AgentGraph,
        AgentRelation,
        ContextConfig,
        GraphScope,
        RelationType,
    )
    from agentgraph.domain.ports import GraphUnitOfWork
    from agentgraph.domain.reconciliation.definition import AgentDefinition

PROJECT = ProjectScope(tenant_id="tenant-1", project_id="project-1")
OTHER_PROJECT = ProjectScope(tenant_id="tenant-1", project_id="project-2")
GRAPH = PROJECT.graph("g1")
API_BASE = f"/tenants/{PROJECT.tenant_id}/projects/{PROJECT.project_id}"


def internal(agent_id: str, *, name: str | None = None, **fields: object) -> InternalAgentDefinition:
    return InternalAgentDefinition(id=agent_id, name=name or f"Agent {agent_id}", **fields)  # type: ignore[arg-type]


def external(agent_id: str, *, name: str | None = None, **fields: object) -> ExternalAgentDefinition:
    fields.setdefault("base_url", f"https://agents.example.com/{agent_id}")
    return ExternalAgentDefinition(id=agent_id, name=name or f"External {agent_id}", **fields)  # type: ignore[arg-type]


def definition(
    *agents: AgentDefinition,
    graph_id: str = "g1",
    name: str = "Graph one",
    **fields: object,
) -> FullGraphDefinition:
    return FullGraphDefinition(
        id=graph_id,
        agents={agent.id: agent for agent in agents},
        name=name,
        **fields,  # type: ignore[arg-type]
    )


class FakeCatalog:
    """Project catalog keyed by scope and kind; records every batched lookup."""

    def __init__(self) -> None:
        self.resources: dict[tuple[ProjectScope, ResourceKind], dict[str, ProjectResource]] = defaultdict(dict)
        self.lookups: list[tuple[ResourceKind, frozenset[str]]] = []

    def seed(self, kind: ResourceKind, *ids: str, scope: ProjectScope = PROJECT) -> FakeCatalog:
        for resource_id in ids:
            self.add(
                ProjectResource(
                    tenant_id=scope.tenant_id,
                    project_id=scope.project_id,
                    kind=kind,
                    id=resource_id,
                    name=resource_id,
                )
            )
        return self

    def add(self, resource: ProjectResource) -> None:
        self.resources[resource.scope, resource.kind][resource.id] = resource

    def existing_ids(self, scope: ProjectScope, kind: ResourceKind, ids: Collection[str]) -> set[str]:
        self.lookups.append((kind, frozenset(ids)))
        return set(ids) & set(self.resources[scope, kind])

    def find(self, scope: ProjectScope, *, kind: ResourceKind | None = None) -> list[ProjectResource]:
        return [
            resource
            for (resource_scope, resource_kind), entries in self.resources.items()
            if resource_scope == scope and kind in (None, resource_kind)
            for resource in entries.values()
        ]


class _WriteLog:
    def __init__(self) -> None:
        self.writes: list[tuple[str, str, str]] = []

    def record(self, action: str, table: str, entity_id: str) -> None:
        self.writes.append((action, table, entity_id))


class FakeGraphRepository:
    def __init__(self, log: _WriteLog) -> None:
        self.items: dict[tuple[str, str, str], AgentGraph] = {}
        self._log = log

    def add(self, entity: AgentGraph) -> None:
        self._log.record("add", "graph", entity.id)
        self.items[entity.tenant_id, entity.project_id, entity.id] = entity

    def remove(self, entity: AgentGraph) -> None:
        self._log.record("remove", "graph", entity.id)
        del self.items[entity.tenant_id, entity.project_id, entity.id]

    def get(self, scope: GraphScope) -> AgentGraph | None:
        return self.items.get((scope.tenant_id, scope.project_id, scope.graph_id))

    def find(self, scope: ProjectScope, *, offset: int = 0, limit: int | None = None) -> list[AgentGraph]:
        graphs = sorted(
            (
                graph
                for graph in self.items.values()
                if (graph.tenant_id, graph.project_id) == (scope.tenant_id, scope.project_id)
            ),
            key=lambda graph: (graph.created_at, graph.id),
        )
        end = None if limit is None else offset + limit
        return graphs[offset:end]

    def count(self, scope: ProjectScope) -> int:
        return len(self.find(scope))


class FakeAgentRepository:
    def __init__(self, log: _WriteLog) -> None:
        self.items: dict[tuple[str, str, str, str], Agent] = {}
        self._log = log

    def add(self, entity: Agent) -> None:
        self._log.record("add", "agent", entity.id)
        self.items[entity.tenant_id, entity.project_id, entity.graph_id, entity.id] = entity

    def remove(self, entity: Agent) -> None:
        self._log.record("remove", "agent", entity.id)
        del self.items[entity.tenant_id, entity.project_id, entity.graph_id, entity.id]

    def get(self, scope: GraphScope, agent_id: str) -> Agent | None:
        return self.items.get(scope.key(agent_id))

    def find(
        self,
        scope: GraphScope,
        *,
        agent_type: AgentType | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Agent]:
        agents = sorted(
            (
                agent
                for key, agent in self.items.items()
                if key[:3] == scope.key("")[:3] and agent_type in (None, agent.agent_type)
            ),
            key=lambda agent: agent.id,
        )
        end = None if limit is None else offset + limit
        return agents[offset:end]

    def count(self, scope: GraphScope, *, agent_type: AgentType | None = None) -> int:
        return len(self.find(scope, agent_type=agent_type))


class FakeRelationRepository:
    def __init__(self, log: _WriteLog) -> None:
        self.items: dict[tuple[str, str, str, str], AgentRelation] = {}
        self._log = log

    def add(self, entity: AgentRelation) -> None:
        self._log.record("add", "relation", entity.id)
        self.items[entity.tenant_id, entity.project_id, entity.graph_id, entity.id] = entity

    def remove(self, entity: AgentRelation) -> None:
        self._log.record("remove", "relation", entity.id)
        del self.items[entity.tenant_id, entity.project_id, entity.graph_id, entity.id]

    def get(self, scope: GraphScope, relation_id: str) -> AgentRelation | None:
        return self.items.get(scope.key(relation_id))

    def find(
        self,
        scope: GraphScope,
        *,
        source_agent_id: str | None = None,
        target_agent_id: str | None = None,
        relation_type: RelationType | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[AgentRelation]:
        relations = [
            relation
            for key, relation in self.items.items()
            if key[:3] == scope.key("")[:3]
            and source_agent_id in (None, relation.source_agent_id)
            and target_agent_id in (None, relation.target_agent_id)
            and relation_type in (None, relation.relation_type)
        ]
        end = None if limit is None else offset + limit
        return relations[offset:end]

    def count(
        self,
        scope: GraphScope,
        *,
        source_agent_id: str | None = None,
        target_agent_id: str | None = None,
        relation_type: RelationType | None = None,
    ) -> int:
        return len(
            self.find(
                scope,
                source_agent_id=source_agent_id,
                target_agent_id=target_agent_id,
                relation_type=relation_type,
            )
        )

    def referencing(self, scope: GraphScope, agent_ids: Collection[str]) -> list[AgentRelation]:
        wanted = set(agent_ids)
        return [
            relation
            for relation in self.find(scope)
            if relation.source_agent_id in wanted or relation.target_agent_id in wanted
        ]


class FakeContextConfigRepository:
    def __init__(self, log: _WriteLog) -> None:
        self.items: dict[tuple[str, str, str, str], ContextConfig] = {}
        self._log = log

    def add(self, entity: ContextConfig) -> None:
        self._log.record("add", "context_config", entity.id)
        self.items[entity.tenant_id, entity.project_id, entity.graph_id, entity.id] = entity

    def remove(self, entity: ContextConfig) -> None:
        self._log.record("remove", "context_config", entity.id)
        del self.items[entity.tenant_id, entity.project_id, entity.graph_id, entity.id]

    def get(self, scope: GraphScope) -> ContextConfig | None:
        for key, config in self.items.items():
            if key[:3] == scope.key("")[:3]:
                return config
        return None


class FakeStore:
    """Shared state behind every ``FakeGraphUnitOfWork`` built from one store."""

    def __init__(self, catalog: FakeCatalog | None = None) -> None:
        self.log = _WriteLog()
        self.repositories = GraphRepositories(
            graphs=FakeGraphRepository(self.log),
            agents=FakeAgentRepository(self.log),
            relations=FakeRelationRepository(self.log),
            context_configs=FakeContextConfigRepository(self.log),
            catalog=catalog or FakeCatalog(),
        )
        self.commits = 0
        self.flushes = 0

    @property
    def writes(self) -> list[tuple[str, str, str]]:
        return self.log.writes

    def unit_of_work_factory(self) -> Callable[[], FakeGraphUnitOfWork]:
        return lambda: FakeGraphUnitOfWork(self)

    def add_internal(self, scope: GraphScope, agent_id: str, **fields: object) -> InternalAgent:
        agent = InternalAgent(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            graph_id=scope.graph_id,
            id=agent_id,
            name=str(fields.pop("name", f"Agent {agent_id}")),
            **fields,  # type: ignore[arg-type]
        )
        self.repositories.agents.add(agent)
        return agent

    def add_external(self, scope: GraphScope, agent_id: str, **fields: object) -> ExternalAgent:
        agent = ExternalAgent(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            graph_id=scope.graph_id,
            id=agent_id,
            name=str(fields.pop("name", f"External {agent_id}")),
            base_url=str(fields.pop("base_url", f"https://agents.example.com/{agent_id}")),
            **fields,  # type: ignore[arg-type]
        )
        self.repositories.agents.add(agent)
        return agent


class FakeGraphUnitOfWork:
    """Unit of work over a ``FakeStore``; writes are visible immediately, rollback is recorded."""

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.committed = False
        self.rollback_called = False

    @property
    def repositories(self) -> GraphRepositories:
        return self.store.repositories

    def __enter__(self) -> FakeGraphUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def flush(self) -> None:
        self.store.flushes += 1

    def commit(self) -> None:
        self.committed = True
        self.store.commits += 1

    def rollback(self) -> None:
        self.rollback_called = True


if TYPE_CHECKING:
    from agentgraph.domain.ports import ProjectCatalog

    _catalog_check: ProjectCatalog = FakeCatalog()
    _uow_check: GraphUnitOfWork = FakeGraphUnitOfWork(FakeStore())
