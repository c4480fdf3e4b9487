"""Internal agent routes scoped to one graph."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from agentgraph.api.dependencies import GraphScopeDep, PageDep, Services
from agentgraph.api.schemas import (
    AgentEnvelope,
    AgentListEnvelope,
    AgentWriteIn,
    InternalAgentOut,
    PaginationOut,
)
from agentgraph.domain import management

router = APIRouter(prefix="/graphs/{graph_id}/agents", tags=["agents"])


@router.get("")
def list_agents(services: Services, scope: GraphScopeDep, page: PageDep) -> AgentListEnvelope:
    result = management.list_agents(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        page=page,
    )
    return AgentListEnvelope(
        data=[InternalAgentOut.from_domain(agent) for agent in result.items],
        pagination=PaginationOut.from_page(result),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_agent(services: Services, scope: GraphScopeDep, body: AgentWriteIn) -> AgentEnvelope:
    agent = management.create_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        changes=body.to_changes(),
        agent_id=body.id,
    )
    return AgentEnvelope(data=InternalAgentOut.from_domain(agent))


@router.get("/{agent_id}")
def get_agent(services: Services, scope: GraphScopeDep, agent_id: str) -> AgentEnvelope:
    agent = management.get_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        agent_id=agent_id,
    )
    return AgentEnvelope(data=InternalAgentOut.from_domain(agent))


@router.put("/{agent_id}")
def update_agent(
    services: Services,
    scope: GraphScopeDep,
    agent_id: str,
    body: AgentWriteIn,
) -> AgentEnvelope:
    agent = management.update_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        agent_id=agent_id,
        changes=body.to_changes(),
    )
    return AgentEnvelope(data=InternalAgentOut.from_domain(agent))


@router.delete("/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_agent(services: Services, scope: GraphScopeDep, agent_id: str) -> Response:
    management.delete_agent(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        agent_id=agent_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
