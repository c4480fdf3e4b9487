"""External agent routes scoped to one graph."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from agentgraph.api.dependencies import GraphScopeDep, PageDep, Services
from agentgraph.api.schemas import (
    ExternalAgentEnvelope,
    ExternalAgentListEnvelope,
    ExternalAgentOut,
    ExternalAgentWriteIn,
    PaginationOut,
)
from agentgraph.domain import management

router = APIRouter(prefix="/graphs/{graph_id}/external-agents", tags=["external-agents"])


@router.get("")
def list_external_agents(services: Services, scope: GraphScopeDep, page: PageDep) -> ExternalAgentListEnvelope:
    result = management.list_external_agents(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        page=page,
    )
    return ExternalAgentListEnvelope(
        data=[ExternalAgentOut.from_domain(agent) for agent in result.items],
        pagination=PaginationOut.from_page(result),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_external_agent(
    services: Services,
    scope: GraphScopeDep,
    body: ExternalAgentWriteIn,
) -> ExternalAgentEnvelope:
    agent = management.create_external_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        changes=body.to_changes(),
        agent_id=body.id,
    )
    return ExternalAgentEnvelope(data=ExternalAgentOut.from_domain(agent))


@router.get("/{agent_id}")
def get_external_agent(services: Services, scope: GraphScopeDep, agent_id: str) -> ExternalAgentEnvelope:
    agent = management.get_external_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        agent_id=agent_id,
    )
    return ExternalAgentEnvelope(data=ExternalAgentOut.from_domain(agent))


@router.put("/{agent_id}")
def update_external_agent(
    services: Services,
    scope: GraphScopeDep,
    agent_id: str,
    body: ExternalAgentWriteIn,
) -> ExternalAgentEnvelope:
    agent = management.update_external_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        agent_id=agent_id,
        changes=body.to_changes(),
    )
    return ExternalAgentEnvelope(data=ExternalAgentOut.from_domain(agent))


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_external_agent(services: Services, scope: GraphScopeDep, agent_id: str) -> Response:
    management.delete_external_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        agent_id=agent_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
