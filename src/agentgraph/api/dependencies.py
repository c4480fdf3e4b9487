"""Services shared by the routers, resolved from application state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Query, Request

from agentgraph.domain.management import PageRequest
from agentgraph.domain.model import GraphScope, ProjectScope
from agentgraph.domain.reconciliation import GraphReconciler, RelationPolicy

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentgraph.domain.ports import GraphUnitOfWork


@dataclass(slots=True)
class ApiServices:
    unit_of_work_factory: Callable[[], GraphUnitOfWork]
    reconciler: GraphReconciler
    policy: RelationPolicy = field(default_factory=RelationPolicy)


def get_services(request: Request) -> ApiServices:
    return request.app.state.services


def project_scope(tenant_id: str, project_id: str) -> ProjectScope:
    return ProjectScope(tenant_id=tenant_id, project_id=project_id)


def graph_scope(tenant_id: str, project_id: str, graph_id: str) -> GraphScope:
    return GraphScope(tenant_id=tenant_id, project_id=project_id, graph_id=graph_id)


def page_request(page: int = Query(1), limit: int = Query(10)) -> PageRequest:
    return PageRequest(page=page, limit=limit)


Services = Annotated[ApiServices, Depends(get_services)]
ProjectScopeDep = Annotated[ProjectScope, Depends(project_scope)]
GraphScopeDep = Annotated[GraphScope, Depends(graph_scope)]
PageDep = Annotated[PageRequest, Depends(page_request)]
