"""Relation routes scoped to one graph."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from agentgraph.api.dependencies import GraphScopeDep, PageDep, Services
from agentgraph.api.schemas import (
    PaginationOut,
    RelationCreateIn,
    RelationEnvelope,
    RelationListEnvelope,
    RelationOut,
    RelationUpdateIn,
)
from agentgraph.domain import management
from agentgraph.domain.model import RelationType

router = APIRouter(prefix="/graphs/{graph_id}/agent-relations", tags=["agent-relations"])


@router.get("")
def list_relations(
    services: Services,
    scope: GraphScopeDep,
    page: PageDep,
    source_agent_id: Annotated[str | None, Query(alias="sourceAgentId")] = None,
    target_agent_id: Annotated[str | None, Query(alias="targetAgentId")] = None,
    relation_type: Annotated[RelationType | None, Query(alias="relationType")] = None,
) -> RelationListEnvelope:
    result = management.list_relations(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        page=page,
        filters=management.RelationFilter(
            source_agent_id=source_agent_id,
            target_agent_id=target_agent_id,
            relation_type=relation_type,
        ),
    )
    return RelationListEnvelope(
        data=[RelationOut.from_domain(relation) for relation in result.items],
        pagination=PaginationOut.from_page(result),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_relation(services: Services, scope: GraphScopeDep, body: RelationCreateIn) -> RelationEnvelope:
    relation = management.create_relation(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        source_agent_id=body.source_agent_id,
        target_agent_id=body.target_agent_id,
        relation_type=body.relation_type,
        relation_id=body.id,
        policy=services.policy,
    )
    return RelationEnvelope(data=RelationOut.from_domain(relation))


@router.get("/{relation_id}")
def get_relation(services: Services, scope: GraphScopeDep, relation_id: str) -> RelationEnvelope:
    relation = management.get_relation(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        relation_id=relation_id,
    )
    return RelationEnvelope(data=RelationOut.from_domain(relation))


@router.put("/{relation_id}")
def update_relation(
    services: Services,
    scope: GraphScopeDep,
    relation_id: str,
    body: RelationUpdateIn,
) -> RelationEnvelope:
    relation = management.update_relation(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        relation_id=relation_id,
        changes=body.to_changes(),
        policy=services.policy,
    )
    return RelationEnvelope(data=RelationOut.from_domain(relation))


@router.delete("/{relation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_relation(services: Services, scope: GraphScopeDep, relation_id: str) -> Response:
    management.delete_relation(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        relation_id=relation_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
