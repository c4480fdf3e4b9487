"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from agentgraph.adapters.sqlalchemy.migrations import current_revision
from agentgraph.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyGraphUnitOfWork,
    configured_engine,
    is_started,
    startup,
)
from agentgraph.api import ApiServices, create_app
from agentgraph.api.problems import schema_error_from_errors
from agentgraph.api.schemas import FullGraphIn, FullGraphOut
from agentgraph.config import (
    ReconciliationConfig,
    ServerConfig,
    get_reconciliation_config,
    get_server_config,
)
from agentgraph.domain.errors import ConflictError, FieldError, SchemaValidationError
from agentgraph.domain.model import ProjectResource, ProjectScope, ResourceKind, utcnow
from agentgraph.domain.ports.unit_of_work import GraphUnitOfWork
from agentgraph.domain.reconciliation import GraphReconciler, ReconcileOutcome, RelationPolicy

if TYPE_CHECKING:
    from fastapi import FastAPI

    from agentgraph.domain.model import GraphScope

UnitOfWorkFactory = Callable[[], GraphUnitOfWork]

log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_services(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    reconciliation: ReconciliationConfig | None = None,
) -> ApiServices:
    """Wire the reconciler and relation policy around a unit-of-work factory."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyGraphUnitOfWork
    config = reconciliation or get_reconciliation_config()
    policy = RelationPolicy(
        allow_self_relations=config.allow_self_relations,
        allow_duplicate_relations=config.allow_duplicate_relations,
    )
    reconciler = GraphReconciler(
        unit_of_work_factory=effective_uow,
        policy=policy,
        conflict_retries=config.conflict_retries,
    )
    return ApiServices(unit_of_work_factory=effective_uow, reconciler=reconciler, policy=policy)


def build_app(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    reconciliation: ReconciliationConfig | None = None,
    server_config: ServerConfig | None = None,
) -> FastAPI:
    services = build_services(unit_of_work_factory=unit_of_work_factory, reconciliation=reconciliation)
    return create_app(services, server_config or get_server_config())


def serve(*, host: str | None = None, port: int | None = None) -> None:
    """Run the HTTP API under uvicorn until interrupted."""

    import uvicorn  # noqa: PLC0415

    server_config = get_server_config()
    app = build_app(server_config=server_config)
    effective_host = host or server_config.host
    effective_port = port or server_config.port
    log.info("Serving agent graph API on %s:%s", effective_host, effective_port)
    uvicorn.run(app, host=effective_host, port=effective_port, log_config=None)


def migrate() -> str | None:
    """Upgrade the configured database to the latest schema and return its revision."""

    _ensure_started()
    engine = configured_engine()
    if engine is None:
        return None
    revision = current_revision(engine)
    log.info("Database schema at revision %s", revision)
    return revision


def register_resource(
    *,
    scope: ProjectScope,
    kind: ResourceKind,
    resource_id: str,
    name: str,
    description: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ProjectResource:
    """Add a tool, data component or artifact component to a project's catalog."""

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyGraphUnitOfWork
    resource = ProjectResource(
        tenant_id=scope.tenant_id,
        project_id=scope.project_id,
        kind=kind,
        id=resource_id,
        name=name,
        description=description,
        created_at=utcnow(),
    )
    with effective_uow() as uow:
        catalog = uow.repositories.catalog
        if catalog.existing_ids(scope, kind, [resource_id]):
            raise ConflictError(
                f"{kind} '{resource_id}' already exists in project '{scope.project_id}'",
                retryable=False,
            )
        catalog.add(resource)
        uow.commit()
    log.info("Registered %s %s in %s/%s", kind, resource_id, scope.tenant_id, scope.project_id)
    return resource


def import_full_graph(
    *,
    scope: ProjectScope,
    payload: dict[str, Any],
    graph_id: str | None = None,
    services: ApiServices | None = None,
) -> ReconcileOutcome:
    """Validate a full-graph JSON document and reconcile it into ``scope``."""

    try:
        body = FullGraphIn.model_validate(payload)
    except ValidationError as exc:
        raise schema_error_from_errors(exc.errors()) from exc
    resolved_id = graph_id or body.id
    if not resolved_id:
        raise SchemaValidationError([FieldError("/id", "Field required")])
    effective = services or build_services()
    return effective.reconciler.reconcile(scope, body.to_definition(resolved_id))


def export_full_graph(*, scope: GraphScope, services: ApiServices | None = None) -> dict[str, Any]:
    """Return the stored graph in the same JSON shape the API serves."""

    effective = services or build_services()
    view = effective.reconciler.read(scope)
    return FullGraphOut.from_view(view).model_dump(mode="json", by_alias=True)
