"""Graph routes: scoped graph rows and the full-graph upsert surface."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from agentgraph.api.dependencies import GraphScopeDep, PageDep, ProjectScopeDep, Services
from agentgraph.api.schemas import (
    FullGraphEnvelope,
    FullGraphIn,
    FullGraphOut,
    GraphCreateIn,
    GraphEnvelope,
    GraphListEnvelope,
    GraphOut,
    GraphUpdateIn,
    PaginationOut,
    RelatedAgentListEnvelope,
    RelatedAgentOut,
)
from agentgraph.domain import management
from agentgraph.domain.errors import FieldError, SchemaValidationError

router = APIRouter(prefix="/agent-graphs", tags=["agent-graphs"])


@router.get("")
def list_graphs(services: Services, scope: ProjectScopeDep, page: PageDep) -> GraphListEnvelope:
    result = management.list_graphs(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        page=page,
    )
    return GraphListEnvelope(
        data=[GraphOut.from_domain(graph) for graph in result.items],
        pagination=PaginationOut.from_page(result),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_graph(services: Services, scope: ProjectScopeDep, body: GraphCreateIn) -> GraphEnvelope:
    graph = management.create_graph(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        name=body.name,
        graph_id=body.id,
        description=body.description,
        default_agent_id=body.default_agent_id,
    )
    return GraphEnvelope(data=GraphOut.from_domain(graph))


@router.post("/full", status_code=status.HTTP_201_CREATED)
def create_full_graph(services: Services, scope: ProjectScopeDep, body: FullGraphIn) -> FullGraphEnvelope:
    """Upsert a complete graph; the body must carry its id."""

    if not body.id:
        raise SchemaValidationError([FieldError("/id", "Field required")])
    outcome = services.reconciler.reconcile(scope, body.to_definition(body.id))
    return FullGraphEnvelope(data=FullGraphOut.from_view(outcome.view))


@router.get("/{graph_id}")
def get_graph(services: Services, scope: GraphScopeDep) -> GraphEnvelope:
    graph = management.get_graph(unit_of_work_factory=services.unit_of_work_factory, scope=scope)
    return GraphEnvelope(data=GraphOut.from_domain(graph))


@router.put("/{graph_id}")
def update_graph(services: Services, scope: GraphScopeDep, body: GraphUpdateIn) -> GraphEnvelope:
    graph = management.update_graph(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        changes=body.to_changes(),
    )
    return GraphEnvelope(data=GraphOut.from_domain(graph))


@router.delete("/{graph_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_graph(services: Services, scope: GraphScopeDep) -> Response:
    management.delete_graph(unit_of_work_factory=services.unit_of_work_factory, scope=scope)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{graph_id}/full")
def get_full_graph(services: Services, scope: GraphScopeDep) -> FullGraphEnvelope:
    view = services.reconciler.read(scope)
    return FullGraphEnvelope(data=FullGraphOut.from_view(view))


@router.put("/{graph_id}/full")
def put_full_graph(
    services: Services,
    scope: GraphScopeDep,
    body: FullGraphIn,
    response: Response,
) -> FullGraphEnvelope:
    """Upsert at a known id: 200 when the graph existed, 201 when it was created."""

    if body.id is not None and body.id != scope.graph_id:
        raise SchemaValidationError(
            [FieldError("/id", f"Body id '{body.id}' does not match path id '{scope.graph_id}'")],
            detail="Graph ID mismatch",
        )
    outcome = services.reconciler.reconcile(scope.project, body.to_definition(scope.graph_id))
    response.status_code = status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK
    return FullGraphEnvelope(data=FullGraphOut.from_view(outcome.view))


@router.delete("/{graph_id}/full", status_code=status.HTTP_204_NO_CONTENT)
def delete_full_graph(services: Services, scope: GraphScopeDep) -> Response:
    management.delete_graph(unit_of_work_factory=services.unit_of_work_factory, scope=scope)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{graph_id}/agents/{agent_id}/related")
def list_related_agents(services: Services, scope: GraphScopeDep, agent_id: str) -> RelatedAgentListEnvelope:
    related = management.list_related_agents(
        unit_of_work_factory=services.unit_of_work_factory,
        scope=scope,
        agent_id=agent_id,
    )
    page = management.Page.single(related)
    return RelatedAgentListEnvelope(
        data=[RelatedAgentOut.from_domain(agent) for agent in page.items],
        pagination=PaginationOut.from_page(page),
    )
