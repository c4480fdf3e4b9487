from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from agentgraph.adapters.sqlalchemy.unit_of_work import SqlAlchemyGraphUnitOfWork
from agentgraph.domain import management
from agentgraph.domain.errors import (
    ConflictError,
    NotFoundError,
    ReferenceValidationError,
    StorageError,
)
from agentgraph.domain.model import ProjectScope, ReferenceKind, RelationType, ResourceKind
from agentgraph.domain.reconciliation import (
    ContextConfigDefinition,
    GraphReconciler,
    InternalAgentView,
    RelationPolicy,
)
from tests.helpers.graphs import (
    GRAPH,
    PROJECT,
    FakeCatalog,
    FakeGraphUnitOfWork,
    FakeStore,
    definition,
    external,
    internal,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentgraph.domain.model import GraphScope


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def _relation_triples(
    unit_of_work_factory: Callable[[], SqlAlchemyGraphUnitOfWork],
    scope: GraphScope = GRAPH,
) -> list[tuple[str, str, RelationType]]:
    with unit_of_work_factory() as uow:
        relations = uow.repositories.relations.find(scope)
    return sorted((row.source_agent_id, row.target_agent_id, row.relation_type) for row in relations)


def test_resubmission_is_idempotent(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
    seed_resources: Callable[..., None],
) -> None:
    seed_resources(ResourceKind.TOOL, "search")
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work, clock=_Clock())
    target = definition(
        internal("a", tools=("search",), can_transfer_to=("b",), can_delegate_to=("b", "b")),
        external("b"),
        default_agent_id="a",
    )

    first = reconciler.reconcile(PROJECT, target)
    second = reconciler.reconcile(PROJECT, target)

    assert first.created
    assert not second.created
    assert not second.result.wrote
    assert second.view == first.view
    assert second.view.updated_at == first.view.updated_at
    assert _relation_triples(sqlite_unit_of_work) == [
        ("a", "b", RelationType.DELEGATE),
        ("a", "b", RelationType.TRANSFER),
    ]


def test_derived_arrays_match_relation_rows(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    reconciler.reconcile(
        PROJECT,
        definition(
            internal("a", can_transfer_to=("c", "b"), can_delegate_to=("x",)),
            internal("b", can_transfer_to=("a",)),
            internal("c"),
            external("x"),
        ),
    )
    management.create_relation(
        unit_of_work_factory=sqlite_unit_of_work,
        scope=GRAPH,
        source_agent_id="c",
        target_agent_id="x",
        relation_type=RelationType.DELEGATE,
    )

    view = reconciler.read(GRAPH)

    from_arrays = sorted(
        (agent.id, target, relation_type)
        for agent in view.agents.values()
        if isinstance(agent, InternalAgentView)
        for relation_type, targets in (
            (RelationType.TRANSFER, agent.can_transfer_to),
            (RelationType.DELEGATE, agent.can_delegate_to),
        )
        for target in targets
    )
    assert from_arrays == _relation_triples(sqlite_unit_of_work)
    agent_a = view.agents["a"]
    assert isinstance(agent_a, InternalAgentView)
    assert agent_a.can_transfer_to == ("b", "c")
    assert not hasattr(view.agents["x"], "can_transfer_to")


def test_unknown_default_agent_rejected_before_any_write(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)

    with pytest.raises(ReferenceValidationError) as excinfo:
        reconciler.reconcile(PROJECT, definition(internal("a"), default_agent_id="missing"))

    assert excinfo.value.kinds == {ReferenceKind.DEFAULT_AGENT}
    with pytest.raises(NotFoundError, match="Agent graph not found"):
        reconciler.read(GRAPH)


def test_missing_resources_reported_together(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
    seed_resources: Callable[..., None],
) -> None:
    seed_resources(ResourceKind.TOOL, "search")
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)

    with pytest.raises(ReferenceValidationError) as excinfo:
        reconciler.reconcile(
            PROJECT,
            definition(
                internal("a", tools=("search", "nope"), artifact_components=("chart",)),
            ),
        )

    assert {(violation.kind, violation.reference_id) for violation in excinfo.value.violations} == {
        (ReferenceKind.TOOL, "nope"),
        (ReferenceKind.ARTIFACT_COMPONENT, "chart"),
    }


def test_omitted_tools_preserved_and_null_clears(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
    seed_resources: Callable[..., None],
) -> None:
    seed_resources(ResourceKind.TOOL, "search", "calc")
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    reconciler.reconcile(PROJECT, definition(internal("a", tools=("search", "calc"), prompt="Hi")))

    kept = reconciler.reconcile(PROJECT, definition(internal("a", name="Renamed")))
    cleared = reconciler.reconcile(PROJECT, definition(internal("a", name="Renamed", tools=None)))

    kept_agent = kept.view.agents["a"]
    cleared_agent = cleared.view.agents["a"]
    assert isinstance(kept_agent, InternalAgentView)
    assert isinstance(cleared_agent, InternalAgentView)
    assert kept_agent.tools == ("search", "calc")
    assert kept_agent.prompt == "Hi"
    assert cleared_agent.tools == ()


def test_removing_agent_removes_its_relations(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    reconciler.reconcile(
        PROJECT,
        definition(internal("a", can_transfer_to=("b",)), internal("b", can_delegate_to=("a",))),
    )

    outcome = reconciler.reconcile(PROJECT, definition(internal("a")))

    assert set(outcome.view.agents) == {"a"}
    assert outcome.result.agents_deleted == 1
    assert _relation_triples(sqlite_unit_of_work) == []


def test_variant_change_keeps_inbound_relation(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    reconciler.reconcile(PROJECT, definition(internal("a", can_transfer_to=("b",)), internal("b")))

    outcome = reconciler.reconcile(PROJECT, definition(internal("a"), external("b")))

    assert outcome.view.agents["b"].AGENT_TYPE == "external"
    assert _relation_triples(sqlite_unit_of_work) == [("a", "b", RelationType.TRANSFER)]


def test_context_config_round_trip_and_delete(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    created = reconciler.reconcile(
        PROJECT,
        definition(internal("a"), context_config=ContextConfigDefinition(name="Ctx")),
    )
    kept = reconciler.reconcile(PROJECT, definition(internal("a")))
    deleted = reconciler.reconcile(PROJECT, definition(internal("a"), context_config=None))

    assert created.view.context_config is not None
    assert created.view.context_config.id == "g1-context"
    assert kept.view.context_config == created.view.context_config
    assert deleted.view.context_config is None


def test_graphs_are_isolated_per_project(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    reconciler.reconcile(PROJECT, definition(internal("a")))

    with pytest.raises(NotFoundError):
        reconciler.read(GRAPH.project.graph("other"))
    other_project = ProjectScope(tenant_id="tenant-2", project_id=PROJECT.project_id)
    with pytest.raises(NotFoundError):
        reconciler.read(other_project.graph("g1"))


def test_storage_fault_rolls_back_every_step(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    reconciler = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    before = reconciler.reconcile(
        PROJECT,
        definition(internal("a", can_transfer_to=("b",)), internal("b")),
    ).view

    class _FaultyUnitOfWork(SqlAlchemyGraphUnitOfWork):
        flushes = 0

        def flush(self) -> None:
            _FaultyUnitOfWork.flushes += 1
            # Graph row and agents are flushed; fail while touching relations.
            if _FaultyUnitOfWork.flushes == 3:
                raise StorageError("simulated disk failure")
            super().flush()

    faulty = GraphReconciler(unit_of_work_factory=_FaultyUnitOfWork)
    with pytest.raises(StorageError):
        faulty.reconcile(
            PROJECT,
            definition(internal("a", name="Changed", can_transfer_to=("c",)), internal("c")),
        )

    assert reconciler.read(GRAPH) == before
    assert _relation_triples(sqlite_unit_of_work) == [("a", "b", RelationType.TRANSFER)]


def test_conflicts_are_retried_with_a_fresh_unit_of_work() -> None:
    store = FakeStore(FakeCatalog())
    attempts: list[int] = []

    def factory() -> FakeGraphUnitOfWork:
        uow = store.unit_of_work_factory()()
        original_commit = uow.commit

        def commit() -> None:
            attempts.append(1)
            if len(attempts) == 1:
                raise ConflictError("Concurrent modification detected during commit")
            original_commit()

        uow.commit = commit  # type: ignore[method-assign]
        return uow

    reconciler = GraphReconciler(unit_of_work_factory=factory, conflict_retries=2)

    outcome = reconciler.reconcile(PROJECT, definition(internal("a")))

    assert len(attempts) == 2
    assert outcome.view.id == "g1"


def test_conflicts_surface_after_retries_are_exhausted() -> None:
    store = FakeStore()
    calls: list[int] = []

    def factory() -> FakeGraphUnitOfWork:
        uow = store.unit_of_work_factory()()

        def commit() -> None:
            calls.append(1)
            raise ConflictError("Database busy during commit")

        uow.commit = commit  # type: ignore[method-assign]
        return uow

    reconciler = GraphReconciler(unit_of_work_factory=factory, conflict_retries=1)

    with pytest.raises(ConflictError):
        reconciler.reconcile(PROJECT, definition(internal("a")))
    assert len(calls) == 2


def test_non_retryable_conflicts_are_not_retried() -> None:
    store = FakeStore()
    calls: list[int] = []

    def factory() -> FakeGraphUnitOfWork:
        uow = store.unit_of_work_factory()()

        def commit() -> None:
            calls.append(1)
            raise ConflictError("Agent graph 'g1' already exists", retryable=False)

        uow.commit = commit  # type: ignore[method-assign]
        return uow

    reconciler = GraphReconciler(unit_of_work_factory=factory, conflict_retries=2)

    with pytest.raises(ConflictError) as excinfo:
        reconciler.reconcile(PROJECT, definition(internal("a")))
    assert not excinfo.value.retryable
    assert len(calls) == 1


def test_self_relation_policy_applies_to_full_graph(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    strict = GraphReconciler(
        unit_of_work_factory=sqlite_unit_of_work,
        policy=RelationPolicy(allow_self_relations=False),
    )

    with pytest.raises(ReferenceValidationError) as excinfo:
        strict.reconcile(PROJECT, definition(internal("a", can_transfer_to=("a",))))

    assert excinfo.value.kinds == {ReferenceKind.RELATIONSHIP}


def test_strict_policy_rejects_a_stored_self_relation_kept_by_omission(
    sqlite_unit_of_work: Callable[[], SqlAlchemyGraphUnitOfWork],
) -> None:
    lenient = GraphReconciler(unit_of_work_factory=sqlite_unit_of_work)
    strict = GraphReconciler(
        unit_of_work_factory=sqlite_unit_of_work,
        policy=RelationPolicy(allow_self_relations=False),
    )
    lenient.reconcile(PROJECT, definition(internal("a", can_transfer_to=("a",))))

    with pytest.raises(ReferenceValidationError) as excinfo:
        strict.reconcile(PROJECT, definition(internal("a", description="x")))

    (violation,) = excinfo.value.violations
    assert violation.kind is ReferenceKind.RELATIONSHIP
    assert violation.pointer == "/agents/a/canTransferTo"
    assert _relation_triples(sqlite_unit_of_work) == [("a", "a", RelationType.TRANSFER)]

    outcome = strict.reconcile(PROJECT, definition(internal("a", description="x", can_transfer_to=())))

    view = outcome.view.agents["a"]
    assert isinstance(view, InternalAgentView)
    assert view.can_transfer_to == ()
    assert _relation_triples(sqlite_unit_of_work) == []
