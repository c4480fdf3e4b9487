from __future__ import annotations

import pytest

from agentgraph.domain import management
from agentgraph.domain.errors import (
    ConflictError,
    NotFoundError,
    ReferenceValidationError,
    SchemaValidationError,
)
from agentgraph.domain.management import (
    ExternalAgentChanges,
    GraphChanges,
    InternalAgentChanges,
    PageRequest,
)
from agentgraph.domain.model import AgentRelation, ReferenceKind, RelationType, ResourceKind, ToolSelection
from tests.helpers.graphs import GRAPH, PROJECT, FakeCatalog, FakeStore


@pytest.fixture
def store() -> FakeStore:
    store = FakeStore(FakeCatalog().seed(ResourceKind.TOOL, "search", "calc"))
    management.create_graph(
        unit_of_work_factory=store.unit_of_work_factory(),
        scope=PROJECT,
        graph_id="g1",
        name="Graph one",
    )
    return store


def test_create_agent_requires_existing_graph() -> None:
    store = FakeStore()

    with pytest.raises(NotFoundError, match="Agent graph not found"):
        management.create_agent(
            unit_of_work_factory=store.unit_of_work_factory(),
            scope=GRAPH,
            agent_id="a",
            changes=InternalAgentChanges(name="A"),
        )


def test_create_agent_requires_name(store: FakeStore) -> None:
    with pytest.raises(SchemaValidationError) as excinfo:
        management.create_agent(
            unit_of_work_factory=store.unit_of_work_factory(),
            scope=GRAPH,
            changes=InternalAgentChanges(prompt="Hello"),
        )

    assert [field.pointer for field in excinfo.value.fields] == ["/name"]


def test_create_agent_checks_catalog_references(store: FakeStore) -> None:
    with pytest.raises(ReferenceValidationError) as excinfo:
        management.create_agent(
            unit_of_work_factory=store.unit_of_work_factory(),
            scope=GRAPH,
            agent_id="a",
            changes=InternalAgentChanges(
                name="A",
                tools=("search",),
                can_use=(ToolSelection("missing"),),
                data_components=("table",),
            ),
        )

    assert {(violation.kind, violation.reference_id) for violation in excinfo.value.violations} == {
        (ReferenceKind.TOOL, "missing"),
        (ReferenceKind.DATA_COMPONENT, "table"),
    }
    assert store.repositories.agents.get(GRAPH, "a") is None


def test_agent_ids_are_unique_across_variants(store: FakeStore) -> None:
    store.add_external(GRAPH, "a")

    with pytest.raises(ConflictError):
        management.create_agent(
            unit_of_work_factory=store.unit_of_work_factory(),
            scope=GRAPH,
            agent_id="a",
            changes=InternalAgentChanges(name="A"),
        )


def test_get_agent_does_not_return_external_agents(store: FakeStore) -> None:
    store.add_external(GRAPH, "x")

    with pytest.raises(NotFoundError, match="^Agent not found$"):
        management.get_agent(unit_of_work_factory=store.unit_of_work_factory(), scope=GRAPH, agent_id="x")
    with pytest.raises(NotFoundError, match="External agent not found"):
        management.get_external_agent(unit_of_work_factory=store.unit_of_work_factory(), scope=GRAPH, agent_id="nope")


def test_update_agent_applies_only_provided_fields(store: FakeStore) -> None:
    store.add_internal(GRAPH, "a", prompt="Be brief", tools=["search"])

    agent = management.update_agent(
        unit_of_work_factory=store.unit_of_work_factory(),
        scope=GRAPH,
        agent_id="a",
        changes=InternalAgentChanges(name="Renamed", tools=None, can_use=(ToolSelection("calc", ("add",)),)),
    )

    assert agent.name == "Renamed"
    assert agent.prompt == "Be brief"
    assert agent.tools == []
    assert agent.can_use == [ToolSelection("calc", ("add",))]


def test_delete_agent_removes_relations_and_clears_default(store: FakeStore) -> None:
    factory = store.unit_of_work_factory()
    store.add_internal(GRAPH, "a")
    store.add_internal(GRAPH, "b")
    management.update_graph(unit_of_work_factory=factory, scope=GRAPH, changes=GraphChanges(default_agent_id="a"))
    for relation_id, source, target in (("r1", "a", "b"), ("r2", "b", "a"), ("r3", "b", "b")):
        store.repositories.relations.add(
            AgentRelation(
                tenant_id=GRAPH.tenant_id,
                project_id=GRAPH.project_id,
                graph_id=GRAPH.graph_id,
                id=relation_id,
                source_agent_id=source,
                target_agent_id=target,
                relation_type=RelationType.TRANSFER,
            )
        )

    management.delete_agent(unit_of_work_factory=factory, scope=GRAPH, agent_id="a")

    assert [relation.id for relation in store.repositories.relations.find(GRAPH)] == ["r3"]
    graph = store.repositories.graphs.get(GRAPH)
    assert graph is not None
    assert graph.default_agent_id is None


def test_list_agents_filters_by_variant(store: FakeStore) -> None:
    store.add_internal(GRAPH, "b")
    store.add_internal(GRAPH, "a")
    store.add_external(GRAPH, "x")
    factory = store.unit_of_work_factory()

    internal_page = management.list_agents(unit_of_work_factory=factory, scope=GRAPH, page=PageRequest())
    external_page = management.list_external_agents(unit_of_work_factory=factory, scope=GRAPH, page=PageRequest())

    assert [agent.id for agent in internal_page.items] == ["a", "b"]
    assert internal_page.total == 2
    assert [agent.id for agent in external_page.items] == ["x"]


def test_create_external_agent_requires_name_and_base_url(store: FakeStore) -> None:
    with pytest.raises(SchemaValidationError) as excinfo:
        management.create_external_agent(
            unit_of_work_factory=store.unit_of_work_factory(),
            scope=GRAPH,
            changes=ExternalAgentChanges(description="Remote"),
        )

    assert [field.pointer for field in excinfo.value.fields] == ["/name", "/baseUrl"]


def test_update_and_delete_external_agent(store: FakeStore) -> None:
    factory = store.unit_of_work_factory()
    management.create_external_agent(
        unit_of_work_factory=factory,
        scope=GRAPH,
        agent_id="x",
        changes=ExternalAgentChanges(name="Remote", base_url="https://remote.example.com"),
    )

    updated = management.update_external_agent(
        unit_of_work_factory=factory,
        scope=GRAPH,
        agent_id="x",
        changes=ExternalAgentChanges(base_url="https://moved.example.com"),
    )
    management.delete_external_agent(unit_of_work_factory=factory, scope=GRAPH, agent_id="x")

    assert (updated.name, updated.base_url) == ("Remote", "https://moved.example.com")
    assert store.repositories.agents.get(GRAPH, "x") is None
