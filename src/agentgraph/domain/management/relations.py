"""Scoped create/read/update/delete for relation rows.

Relation rows are the single record of edges; the derived
``canTransferTo``/``canDelegateTo`` arrays read from the same table, so every
write here is immediately visible in the full-graph view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentgraph.domain.errors import (
    ConflictError,
    FieldError,
    NotFoundError,
    ReferenceValidationError,
    ReferenceViolation,
    SchemaValidationError,
)
from agentgraph.domain.model import (
    AgentRelation,
    ExternalAgent,
    ReferenceKind,
    RelationEdge,
    new_id,
    utcnow,
)
from agentgraph.domain.reconciliation.definition import UNSET, pick
from agentgraph.domain.reconciliation.policy import RelationPolicy

from .common import require_graph, touch_graph
from .pagination import Page, PageRequest

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentgraph.domain.model import GraphScope, RelationType
    from agentgraph.domain.ports import GraphRepositories, GraphUnitOfWork
    from agentgraph.domain.reconciliation.definition import Maybe

log = logging.getLogger(__name__)

RELATION_NOT_FOUND = "Agent relation not found"


@dataclass(frozen=True, slots=True, kw_only=True)
class RelationChanges:
    source_agent_id: Maybe[str] = UNSET
    target_agent_id: Maybe[str] = UNSET
    relation_type: Maybe[RelationType] = UNSET


@dataclass(frozen=True, slots=True, kw_only=True)
class RelationFilter:
    source_agent_id: str | None = None
    target_agent_id: str | None = None
    relation_type: RelationType | None = None


def _require_relation(
    repositories: GraphRepositories,
    scope: GraphScope,
    relation_id: str,
) -> AgentRelation:
    relation = repositories.relations.get(scope, relation_id)
    if relation is None:
        raise NotFoundError(RELATION_NOT_FOUND)
    return relation


def _endpoint_violations(
    repositories: GraphRepositories,
    scope: GraphScope,
    edge: RelationEdge,
    policy: RelationPolicy,
) -> list[ReferenceViolation]:
    """Both endpoints must be agents of this graph; the source must be internal."""

    violations: list[ReferenceViolation] = []
    source = repositories.agents.get(scope, edge.source_agent_id)
    if source is None:
        violations.append(
            ReferenceViolation(
                kind=ReferenceKind.RELATIONSHIP,
                reference_id=edge.source_agent_id,
                reason=f"Source agent '{edge.source_agent_id}' does not exist in graph '{scope.graph_id}'",
                pointer="/sourceAgentId",
            )
        )
    elif isinstance(source, ExternalAgent):
        violations.append(
            ReferenceViolation(
                kind=ReferenceKind.RELATIONSHIP,
                reference_id=edge.source_agent_id,
                reason=f"External agent '{edge.source_agent_id}' cannot be a relation source",
                pointer="/sourceAgentId",
            )
        )

    if repositories.agents.get(scope, edge.target_agent_id) is None:
        violations.append(
            ReferenceViolation(
                kind=ReferenceKind.RELATIONSHIP,
                reference_id=edge.target_agent_id,
                reason=f"Target agent '{edge.target_agent_id}' does not exist in graph '{scope.graph_id}'",
                pointer="/targetAgentId",
            )
        )

    if edge.source_agent_id == edge.target_agent_id and not policy.allow_self_relations:
        violations.append(
            ReferenceViolation(
                kind=ReferenceKind.RELATIONSHIP,
                reference_id=edge.target_agent_id,
                reason=f"Agent '{edge.source_agent_id}' cannot relate to itself",
                pointer="/targetAgentId",
            )
        )
    return violations


def _check_edge(
    repositories: GraphRepositories,
    scope: GraphScope,
    edge: RelationEdge,
    policy: RelationPolicy,
    *,
    ignore_relation_id: str | None = None,
) -> None:
    violations = _endpoint_violations(repositories, scope, edge, policy)
    if violations:
        raise ReferenceValidationError(violations)
    if policy.allow_duplicate_relations:
        return
    duplicates = [
        relation
        for relation in repositories.relations.find(
            scope,
            source_agent_id=edge.source_agent_id,
            target_agent_id=edge.target_agent_id,
            relation_type=edge.relation_type,
        )
        if relation.id != ignore_relation_id
    ]
    if duplicates:
        raise ConflictError(
            f"A {edge.relation_type} relation from '{edge.source_agent_id}' "
            f"to '{edge.target_agent_id}' already exists",
            retryable=False,
        )


def create_relation(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    source_agent_id: str,
    target_agent_id: str,
    relation_type: RelationType,
    relation_id: str | None = None,
    policy: RelationPolicy | None = None,
) -> AgentRelation:
    effective_policy = policy or RelationPolicy()
    resolved_id = relation_id or new_id()
    edge = RelationEdge(source_agent_id, target_agent_id, relation_type)

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        if repositories.relations.get(scope, resolved_id) is not None:
            raise ConflictError(f"Agent relation '{resolved_id}' already exists", retryable=False)
        _check_edge(repositories, scope, edge, effective_policy)

        now = utcnow()
        relation = AgentRelation(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            graph_id=scope.graph_id,
            id=resolved_id,
            source_agent_id=source_agent_id,
            target_agent_id=target_agent_id,
            relation_type=relation_type,
            created_at=now,
            updated_at=now,
        )
        repositories.relations.add(relation)
        touch_graph(graph, now)
        uow.commit()

    log.info(
        "Created %s relation %s -> %s in graph %s",
        relation_type,
        source_agent_id,
        target_agent_id,
        scope.graph_id,
    )
    return relation


def get_relation(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    relation_id: str,
) -> AgentRelation:
    with unit_of_work_factory() as uow:
        return _require_relation(uow.repositories, scope, relation_id)


def list_relations(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    page: PageRequest,
    filters: RelationFilter | None = None,
) -> Page[AgentRelation]:
    criteria = filters or RelationFilter()
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        require_graph(repositories, scope)
        relations = repositories.relations.find(
            scope,
            source_agent_id=criteria.source_agent_id,
            target_agent_id=criteria.target_agent_id,
            relation_type=criteria.relation_type,
            offset=page.offset,
            limit=page.limit,
        )
        total = repositories.relations.count(
            scope,
            source_agent_id=criteria.source_agent_id,
            target_agent_id=criteria.target_agent_id,
            relation_type=criteria.relation_type,
        )
    return Page(items=tuple(relations), page=page.page, limit=page.limit, total=total)


def update_relation(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    relation_id: str,
    changes: RelationChanges,
    policy: RelationPolicy | None = None,
) -> AgentRelation:
    """Re-point or re-type a relation; the merged edge is validated like a new one."""

    if all(value is UNSET for value in (changes.source_agent_id, changes.target_agent_id, changes.relation_type)):
        raise SchemaValidationError([FieldError("/", "No fields to update")])
    effective_policy = policy or RelationPolicy()

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        relation = _require_relation(repositories, scope, relation_id)
        edge = RelationEdge(
            pick(changes.source_agent_id, relation.source_agent_id),
            pick(changes.target_agent_id, relation.target_agent_id),
            pick(changes.relation_type, relation.relation_type),
        )
        if edge != relation.edge:
            _check_edge(repositories, scope, edge, effective_policy, ignore_relation_id=relation.id)
            relation.source_agent_id = edge.source_agent_id
            relation.target_agent_id = edge.target_agent_id
            relation.relation_type = edge.relation_type
            now = utcnow()
            relation.updated_at = now
            touch_graph(graph, now)
        uow.commit()
    return relation


def delete_relation(
    *,
    unit_of_work_factory: Callable[[], GraphUnitOfWork],
    scope: GraphScope,
    relation_id: str,
) -> None:
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        graph = require_graph(repositories, scope)
        relation = _require_relation(repositories, scope, relation_id)
        repositories.relations.remove(relation)
        touch_graph(graph, utcnow())
        uow.commit()
