"""Scoped create/read/update/delete for external agents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentgraph.domain.errors import ConflictError, FieldError, NotFoundError, SchemaValidationError
from agentgraph.domain.model import AgentType, ExternalAgent, new_id, utcnow
from agentgraph.domain.reconciliation.definition import UNSET

from .common import remove_agent, require_graph, touch_graph
from .pagination import Page, PageRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentgraph.domain.model import GraphScope
    from agentgraph.domain.ports import GraphRepositories, GraphUnitOfWork
    from agentgraph.domain.reconciliation.definition import Maybe

log = logging.getLogger(__name__)

EXTERNAL_AGENT_NOT_FOUND = "External agent not found"


@dataclass(frozen=True, slots=True, kw_only=True)
class ExternalAgentChanges:
    name: Maybe[str] = UNSET
    description: Maybe[str | None] = UNSET
    base_url: Maybe[str] = UNSET


def _require_external(
    repositories: GraphRepositories,
    scope: GraphScope,
    agent_id: str,
) -> ExternalAgent:
    agent = repositories.agents.get(scope, agent_id)
    if not isinstance(agent, ExternalAgent):
        raise NotFoundError(EXTERNAL_AGENT_NOT_FOUND)
    return agent


def create_external_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    changes: ExternalAgentChanges,
    agent_id: str | None = None,
) -> ExternalAgent:
    missing = [
        FieldError(pointer, "Field required")
        for pointer, value in (("/name", changes.name), ("/baseUrl", changes.base_url))
        if value is UNSET
    ]
    if missing:
        raise SchemaValidationError(missing)
    resolved_id = agent_id or new_id()

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        if repositories.agents.get(scope, resolved_id) is not None:
            raise ConflictError(
                f"Agent '{resolved_id}' already exists in graph '{scope.graph_id}'",
                retryable=False,
            )
        now = utcnow()
        agent = ExternalAgent(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            graph_id=scope.graph_id,
            id=resolved_id,
            name=changes.name,
            base_url=changes.base_url,
            description=None if changes.description is UNSET else changes.description,
            created_at=now,
            updated_at=now,
        )
        repositories.agents.add(agent)
        touch_graph(graph, now)
        uow.commit()

    log.info("Created external agent %s in graph %s", resolved_id, scope.graph_id)
    return agent


def get_external_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    agent_id: str,
) -> ExternalAgent:
    with unit_of_work_factory() as uow:
        return _require_external(uow.repositories, scope, agent_id)


def list_external_agents(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    page: PageRequest,
) -> Page[ExternalAgent]:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        require_graph(repositories, scope)
        agents = repositories.agents.find(
            scope,
            agent_type=AgentType.EXTERNAL,
            offset=page.offset,
            limit=page.limit,
        )
        total = repositories.agents.count(scope, agent_type=AgentType.EXTERNAL)
    items = tuple(agent for agent in agents if isinstance(agent, ExternalAgent))
    return Page(items=items, page=page.page, limit=page.limit, total=total)


def update_external_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    agent_id: str,
    changes: ExternalAgentChanges,
) -> ExternalAgent:
    with unit_of_work_factory() as uow:
        graph = require_graph(uow.repositories, scope)
        agent = _require_external(uow.repositories, scope, agent_id)
        if changes.name is not UNSET:
            agent.name = changes.name
        if changes.description is not UNSET:
            agent.description = changes.description
        if changes.base_url is not UNSET:
            agent.base_url = changes.base_url
        now = utcnow()
        agent.updated_at = now
        touch_graph(graph, now)
        uow.commit()
    return agent


def delete_external_agent(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    agent_id: str,
) -> None:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        agent = _require_external(repositories, scope, agent_id)
        remove_agent(repositories, graph, agent, now=utcnow())
        uow.commit()
