from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from agentgraph.adapters.sqlalchemy.unit_of_work import SqlAlchemyGraphUnitOfWork, shutdown, startup
from agentgraph.api import create_app
from agentgraph.app import build_services
from agentgraph.config import ReconciliationConfig, ServerConfig
from agentgraph.domain.model import ProjectResource, ResourceKind
from tests.helpers.graphs import PROJECT

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from agentgraph.api import ApiServices
    from agentgraph.domain.model import ProjectScope


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # One shared connection so the in-memory database survives across sessions and threads.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(sqlite_engine: Engine) -> Iterator[Callable[[], SqlAlchemyGraphUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyGraphUnitOfWork
    finally:
        shutdown()


@pytest.fixture
def seed_resources(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> Callable[..., None]:
    def seed(kind: ResourceKind, *ids: str, scope: ProjectScope = PROJECT) -> None:
        with sqlite_unit_of_work() as uow:
            for resource_id in ids:
                uow.repositories.catalog.add(
                    ProjectResource(
                        tenant_id=scope.tenant_id,
                        project_id=scope.project_id,
                        kind=kind,
                        id=resource_id,
                        name=resource_id.replace("-", " ").title(),
                    )
                )
            uow.commit()

    return seed


@pytest.fixture
def api_services(sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork]) -> ApiServices:
    return build_services(unit_of_work_factory=sqlite_unit_of_work, reconciliation=ReconciliationConfig())


@pytest.fixture
def client(api_services: ApiServices) -> Iterator[TestClient]:
    app = create_app(api_services, ServerConfig())
    with TestClient(app) as test_client:
        yield test_client
