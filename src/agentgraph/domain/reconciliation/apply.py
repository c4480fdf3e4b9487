"""Execute a ``GraphDiff`` inside an open unit of work.

Responsibilities of this stage:
- write the graph row first; any non-empty diff bumps ``updated_at`` so the
  storage version check serializes concurrent submissions for the same graph
- upsert agents before relations so edge endpoints exist
- delete stale relation rows, insert new ones, then delete removed agents
- upsert or delete the context configuration last

Each step flushes so storage errors surface at the step that caused them.
Commit and rollback stay with the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentgraph.domain.errors import ReconciliationInvariantError
from agentgraph.domain.model import (
    AgentGraph,
    AgentRelation,
    ContextConfig,
    ExternalAgent,
    InternalAgent,
    new_id,
    utcnow,
)

from .diff import ContextConfigAction, ExternalAgentState, InternalAgentState

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from agentgraph.domain.model import Agent, GraphScope, ProjectScope
    from agentgraph.domain.ports import GraphRepositories, GraphUnitOfWork

    from .diff import AgentState, ContextConfigChange, GraphDiff


@dataclass(slots=True, kw_only=True)
class ApplyResult:
    """Summary of the writes performed for one diff."""

    graph_id: str
    created: bool = False
    agents_inserted: int = 0
    agents_updated: int = 0
    agents_deleted: int = 0
    relations_inserted: int = 0
    relations_deleted: int = 0
    context_config: ContextConfigAction = ContextConfigAction.KEEP

    @property
    def wrote(self) -> bool:
        return bool(
            self.created
            or self.agents_inserted
            or self.agents_updated
            or self.agents_deleted
            or self.relations_inserted
            or self.relations_deleted
            or self.context_config is not ContextConfigAction.KEEP
        )


def apply_graph_diff(
    uow: GraphUnitOfWork,
    scope: ProjectScope,
    diff: GraphDiff,
    *,
    now: datetime | None = None,
    id_factory: Callable[[], str] = new_id,
) -> ApplyResult:
    """Apply ``diff`` through ``uow`` and return what was written.

    An empty diff performs no writes at all, so resubmitting an unchanged
    definition leaves timestamps and versions untouched.
    """

    result = ApplyResult(graph_id=diff.graph_id, created=diff.creates_graph)
    if diff.is_empty:
        return result

    timestamp = now or utcnow()
    graph_scope = scope.graph(diff.graph_id)
    repositories = uow.repositories

    _write_graph_row(repositories, graph_scope, diff, timestamp)
    uow.flush()

    for state in diff.agents_to_insert:
        repositories.agents.add(_build_agent(graph_scope, state, timestamp))
    for update in diff.agents_to_update:
        current = _require_agent(repositories, graph_scope, update.agent_id)
        if update.replaces_kind:
            repositories.agents.remove(current)
            repositories.agents.add(
                _build_agent(graph_scope, update.target, timestamp, created_at=current.created_at)
            )
        else:
            _assign_agent(current, update.target)
            current.updated_at = timestamp
    result.agents_inserted = len(diff.agents_to_insert)
    result.agents_updated = len(diff.agents_to_update)
    uow.flush()

    for relation_id in diff.relations_to_delete:
        relation = repositories.relations.get(graph_scope, relation_id)
        if relation is None:
            raise ReconciliationInvariantError(
                f"Relation '{relation_id}' vanished from graph '{diff.graph_id}' mid-transaction"
            )
        repositories.relations.remove(relation)
    result.relations_deleted = len(diff.relations_to_delete)
    uow.flush()

    for edge in diff.relations_to_insert:
        repositories.relations.add(
            AgentRelation(
                tenant_id=graph_scope.tenant_id,
                project_id=graph_scope.project_id,
                graph_id=graph_scope.graph_id,
                id=id_factory(),
                source_agent_id=edge.source_agent_id,
                target_agent_id=edge.target_agent_id,
                relation_type=edge.relation_type,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )
    result.relations_inserted = len(diff.relations_to_insert)
    uow.flush()

    if diff.agents_to_delete:
        dangling = repositories.relations.referencing(graph_scope, diff.agents_to_delete)
        if dangling:
            relation_ids = ", ".join(sorted(relation.id for relation in dangling))
            raise ReconciliationInvariantError(
                f"Agents scheduled for deletion in graph '{diff.graph_id}' "
                f"are still referenced by relations: {relation_ids}"
            )
        for agent_id in diff.agents_to_delete:
            repositories.agents.remove(_require_agent(repositories, graph_scope, agent_id))
        result.agents_deleted = len(diff.agents_to_delete)
        uow.flush()

    result.context_config = _apply_context_config(
        repositories, graph_scope, diff.context_config, timestamp
    )
    uow.flush()
    return result


def _write_graph_row(
    repositories: GraphRepositories,
    scope: GraphScope,
    diff: GraphDiff,
    timestamp: datetime,
) -> None:
    state = diff.graph
    if diff.creates_graph:
        repositories.graphs.add(
            AgentGraph(
                tenant_id=scope.tenant_id,
                project_id=scope.project_id,
                id=scope.graph_id,
                name=state.name,
                description=state.description,
                default_agent_id=state.default_agent_id,
                context_config_id=state.context_config_id,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )
        return

    graph = repositories.graphs.get(scope)
    if graph is None:
        raise ReconciliationInvariantError(f"Graph '{scope.graph_id}' vanished mid-transaction")
    graph.name = state.name
    graph.description = state.description
    graph.default_agent_id = state.default_agent_id
    graph.context_config_id = state.context_config_id
    graph.updated_at = timestamp


def _require_agent(repositories: GraphRepositories, scope: GraphScope, agent_id: str) -> Agent:
    agent = repositories.agents.get(scope, agent_id)
    if agent is None:
        raise ReconciliationInvariantError(
            f"Agent '{agent_id}' vanished from graph '{scope.graph_id}' mid-transaction"
        )
    return agent


def _build_agent(
    scope: GraphScope,
    state: AgentState,
    timestamp: datetime,
    *,
    created_at: datetime | None = None,
) -> Agent:
    if isinstance(state, ExternalAgentState):
        return ExternalAgent(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            graph_id=scope.graph_id,
            id=state.id,
            name=state.name,
            description=state.description,
            base_url=state.base_url,
            created_at=created_at or timestamp,
            updated_at=timestamp,
        )
    agent = InternalAgent(
        tenant_id=scope.tenant_id,
        project_id=scope.project_id,
        graph_id=scope.graph_id,
        id=state.id,
        name=state.name,
        created_at=created_at or timestamp,
        updated_at=timestamp,
    )
    _assign_agent(agent, state)
    return agent


def _assign_agent(agent: Agent, state: AgentState) -> None:
    agent.name = state.name
    agent.description = state.description
    if isinstance(agent, InternalAgent) and isinstance(state, InternalAgentState):
        agent.prompt = state.prompt
        agent.tools = list(state.tools)
        agent.can_use = list(state.can_use)
        agent.data_components = list(state.data_components)
        agent.artifact_components = list(state.artifact_components)
    elif isinstance(agent, ExternalAgent) and isinstance(state, ExternalAgentState):
        agent.base_url = state.base_url
    else:
        raise ReconciliationInvariantError(
            f"Agent '{agent.id}' changed variant without replacing its row"
        )


def _apply_context_config(
    repositories: GraphRepositories,
    scope: GraphScope,
    change: ContextConfigChange,
    timestamp: datetime,
) -> ContextConfigAction:
    current = repositories.context_configs.get(scope)
    if change.action is ContextConfigAction.DELETE:
        if current is not None:
            repositories.context_configs.remove(current)
        return change.action
    if change.action is ContextConfigAction.KEEP or change.state is None:
        return ContextConfigAction.KEEP

    state = change.state
    if current is not None and current.id == state.id:
        current.name = state.name
        current.description = state.description
        current.context_sources = list(state.context_sources)
        current.updated_at = timestamp
        return change.action

    created_at = timestamp
    if current is not None:
        created_at = current.created_at
        repositories.context_configs.remove(current)
    repositories.context_configs.add(
        ContextConfig(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            graph_id=scope.graph_id,
            id=state.id,
            name=state.name,
            description=state.description,
            context_sources=list(state.context_sources),
            created_at=created_at,
            updated_at=timestamp,
        )
    )
    return change.action
