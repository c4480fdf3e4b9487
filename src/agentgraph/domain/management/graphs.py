"""Scoped create/read/update/delete for graph rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentgraph.domain.errors import (
    ConflictError,
    ReferenceValidationError,
    ReferenceViolation,
)
from agentgraph.domain.model import AgentGraph, ReferenceKind, new_id, utcnow
from agentgraph.domain.reconciliation.definition import UNSET

from .common import purge_graph, require_graph
from .pagination import Page, PageRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentgraph.domain.model import AgentType, GraphScope, ProjectScope, RelationType
    from agentgraph.domain.ports import GraphUnitOfWork
    from agentgraph.domain.reconciliation.definition import Maybe

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class GraphChanges:
    name: Maybe[str] = UNSET
    description: Maybe[str | None] = UNSET
    default_agent_id: Maybe[str | None] = UNSET


@dataclass(frozen=True, slots=True, kw_only=True)
class RelatedAgent:
    relation_id: str
    id: str
    name: str
    description: str | None
    agent_type: AgentType
    relation_type: RelationType


def _missing_default_agent(agent_id: str, reason: str) -> ReferenceValidationError:
    return ReferenceValidationError(
        [
            ReferenceViolation(
                kind=ReferenceKind.DEFAULT_AGENT,
                reference_id=agent_id,
                reason=reason,
                pointer="/defaultAgentId",
            )
        ]
    )


def create_graph(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: ProjectScope,
    name: str,
    graph_id: str | None = None,
    description: str | None = None,
    default_agent_id: str | None = None,
) -> AgentGraph:
    """Create an empty graph; agents are added afterwards, so no default agent yet."""

    resolved_id = graph_id or new_id()
    if default_agent_id is not None:
        raise _missing_default_agent(
            default_agent_id,
            f"defaultAgentId '{default_agent_id}' cannot be set on a graph without agents",
        )

    with unit_of_work_factory() as uow:
        if uow.repositories.graphs.get(scope.graph(resolved_id)) is not None:
            raise ConflictError(f"Agent graph '{resolved_id}' already exists", retryable=False)
        now = utcnow()
        graph = AgentGraph(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            id=resolved_id,
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        uow.repositories.graphs.add(graph)
        uow.commit()

    log.info("Created graph %s in %s/%s", resolved_id, scope.tenant_id, scope.project_id)
    return graph


def get_graph(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
) -> AgentGraph:
    with unit_of_work_factory() as uow:
        return require_graph(uow.repositories, scope)


def list_graphs(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: ProjectScope,
    page: PageRequest,
) -> Page[AgentGraph]:
    with unit_of_work_factory() as uow:
        graphs = uow.repositories.graphs.find(scope, offset=page.offset, limit=page.limit)
        total = uow.repositories.graphs.count(scope)
    return Page(items=tuple(graphs), page=page.page, limit=page.limit, total=total)


def update_graph(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    changes: GraphChanges,
) -> AgentGraph:
    """Apply ``changes``; omitted fields are preserved, ``None`` clears."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        default_agent_id = changes.default_agent_id
        if (
            default_agent_id is not UNSET
            and default_agent_id is not None
            and repositories.agents.get(scope, default_agent_id) is None
        ):
            raise _missing_default_agent(
                default_agent_id,
                f"defaultAgentId '{default_agent_id}' does not exist in graph '{scope.graph_id}'",
            )

        if changes.name is not UNSET:
            graph.name = changes.name
        if changes.description is not UNSET:
            graph.description = changes.description
        if default_agent_id is not UNSET:
            graph.default_agent_id = default_agent_id
        graph.updated_at = utcnow()
        uow.commit()
    return graph


def delete_graph(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
) -> None:
    """Delete the graph with its agents, relations and context configuration."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        purge_graph(repositories, scope)
        uow.flush()
        repositories.graphs.remove(graph)
        uow.commit()
    log.info("Deleted graph %s in %s/%s", scope.graph_id, scope.tenant_id, scope.project_id)


def list_related_agents(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    agent_id: str,
) -> tuple[RelatedAgent, ...]:
    """Agents reachable from ``agent_id`` by one outgoing relation."""

    related: list[RelatedAgent] = []
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        require_graph(repositories, scope)
        relations = repositories.relations.find(scope, source_agent_id=agent_id)
        for relation in sorted(relations, key=lambda row: (row.target_agent_id, row.id)):
            target = repositories.agents.get(scope, relation.target_agent_id)
            if target is None:
                continue
            related.append(
                RelatedAgent(
                    relation_id=relation.id,
                    id=target.id,
                    name=target.name,
                    description=target.description,
                    agent_type=target.agent_type,
                    relation_type=relation.relation_type,
                )
            )
    return tuple(related)
