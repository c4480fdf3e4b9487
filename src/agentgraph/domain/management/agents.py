"""Scoped create/read/update/delete for internal agents.

These write the same ``agent`` rows the reconciliation engine writes, so the
same invariants hold: ids are unique across both agent variants in a graph,
catalog references must exist, and removing an agent removes every relation
that touches it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentgraph.domain.errors import ConflictError, FieldError, NotFoundError, SchemaValidationError
from agentgraph.domain.model import AgentType, InternalAgent, new_id, utcnow
from agentgraph.domain.reconciliation.definition import UNSET
from agentgraph.domain.reconciliation.validate import listed

from .common import check_agent_references, remove_agent, require_graph, touch_graph
from .pagination import Page, PageRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentgraph.domain.model import GraphScope, ToolSelection
    from agentgraph.domain.ports import GraphRepositories, GraphUnitOfWork
    from agentgraph.domain.reconciliation.definition import Maybe

log = logging.getLogger(__name__)

AGENT_NOT_FOUND = "Agent not found"


@dataclass(frozen=True, slots=True, kw_only=True)
class InternalAgentChanges:
    name: Maybe[str] = UNSET
    description: Maybe[str | None] = UNSET
    prompt: Maybe[str | None] = UNSET
    tools: Maybe[tuple[str, ...] | None] = UNSET
    can_use: Maybe[tuple[ToolSelection, ...] | None] = UNSET
    data_components: Maybe[tuple[str, ...] | None] = UNSET
    artifact_components: Maybe[tuple[str, ...] | None] = UNSET


def _require_internal(repositories: GraphRepositories, scope: GraphScope, agent_id: str) -> InternalAgent:
    agent = repositories.agents.get(scope, agent_id)
    if not isinstance(agent, InternalAgent):
        raise NotFoundError(AGENT_NOT_FOUND)
    return agent


def _apply_changes(agent: InternalAgent, changes: InternalAgentChanges) -> None:
    if changes.name is not UNSET:
        agent.name = changes.name
    if changes.description is not UNSET:
        agent.description = changes.description
    if changes.prompt is not UNSET:
        agent.prompt = changes.prompt
    if changes.tools is not UNSET:
        agent.tools = list(listed(changes.tools))
    if changes.can_use is not UNSET:
        agent.can_use = list(listed(changes.can_use))
    if changes.data_components is not UNSET:
        agent.data_components = list(listed(changes.data_components))
    if changes.artifact_components is not UNSET:
        agent.artifact_components = list(listed(changes.artifact_components))


def _check_references(
    repositories: GraphRepositories,
    scope: GraphScope,
    agent_id: str,
    changes: InternalAgentChanges,
) -> None:
    check_agent_references(
        repositories,
        scope,
        agent_id,
        tools=listed(changes.tools),
        can_use=listed(changes.can_use),
        data_components=listed(changes.data_components),
        artifact_components=listed(changes.artifact_components),
    )


def create_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    changes: InternalAgentChanges,
    agent_id: str | None = None,
) -> InternalAgent:
    if changes.name is UNSET:
        raise SchemaValidationError([FieldError("/name", "Field required")])
    resolved_id = agent_id or new_id()

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        if repositories.agents.get(scope, resolved_id) is not None:
            raise ConflictError(
                f"Agent '{resolved_id}' already exists in graph '{scope.graph_id}'",
                retryable=False,
            )
        _check_references(repositories, scope, resolved_id, changes)

        now = utcnow()
        agent = InternalAgent(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            graph_id=scope.graph_id,
            id=resolved_id,
            name=changes.name,
            created_at=now,
            updated_at=now,
        )
        _apply_changes(agent, changes)
        repositories.agents.add(agent)
        touch_graph(graph, now)
        uow.commit()

    log.info("Created agent %s in graph %s", resolved_id, scope.graph_id)
    return agent


def get_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    agent_id: str,
) -> InternalAgent:
    with unit_of_work_factory() as uow:
        return _require_internal(uow.repositories, scope, agent_id)


def list_agents(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    page: PageRequest,
) -> Page[InternalAgent]:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        require_graph(repositories, scope)
        agents = repositories.agents.find(
            scope,
            agent_type=AgentType.INTERNAL,
            offset=page.offset,
            limit=page.limit,
        )
        total = repositories.agents.count(scope, agent_type=AgentType.INTERNAL)
    items = tuple(agent for agent in agents if isinstance(agent, InternalAgent))
    return Page(items=items, page=page.page, limit=page.limit, total=total)


def update_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    agent_id: str,
    changes: InternalAgentChanges,
) -> InternalAgent:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        agent = _require_internal(repositories, scope, agent_id)
        _check_references(repositories, scope, agent_id, changes)
        _apply_changes(agent, changes)
        now = utcnow()
        agent.updated_at = now
        touch_graph(graph, now)
        uow.commit()
    return agent


def delete_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    agent_id: str,
) -> None:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        agent = _require_internal(repositories, scope, agent_id)
        remove_agent(repositories, graph, agent, now=utcnow())
        uow.commit()
