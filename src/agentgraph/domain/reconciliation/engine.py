"""Orchestrator for full-graph reconciliation.

One submission runs validate -> diff -> apply -> commit -> read inside a single
unit of work. A ``ConflictError`` (the graph row changed underneath us, or a
concurrent first insert won the primary key) restarts the whole pipeline with
a fresh unit of work, so the retry re-validates against the winner's state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agentgraph.domain.errors import ConflictError, NotFoundError, ReconciliationInvariantError
from agentgraph.domain.model import utcnow

from .apply import ApplyResult, apply_graph_diff
from .diff import compute_graph_diff
from .policy import RelationPolicy
from .read import read_full_graph
from .snapshot import load_graph_snapshot
from .validate import validate_full_graph

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from agentgraph.domain.model import GraphScope, ProjectScope
    from agentgraph.domain.ports import GraphUnitOfWork

    from .definition import FullGraphDefinition
    from .read import FullGraphView

log = logging.getLogger(__name__)

DEFAULT_CONFLICT_RETRIES = 2
GRAPH_NOT_FOUND = "Agent graph not found"


@dataclass(slots=True, kw_only=True)
class ReconcileOutcome:
    view: FullGraphView
    created: bool
    result: ApplyResult


@dataclass(slots=True)
class GraphReconciler:
    """Run full-graph upserts and reads against a unit-of-work factory."""

    unit_of_work_factory: Callable[[], GraphUnitOfWork]
    policy: RelationPolicy = field(default_factory=RelationPolicy)
    conflict_retries: int = DEFAULT_CONFLICT_RETRIES
    clock: Callable[[], datetime] = utcnow

    def reconcile(self, scope: ProjectScope, definition: FullGraphDefinition) -> ReconcileOutcome:
        """Upsert ``definition`` into ``scope`` atomically and return the stored view."""

        attempt = 0
        while True:
            try:
                return self._reconcile_once(scope, definition)
            except ConflictError as exc:
                if not exc.retryable or attempt >= self.conflict_retries:
                    raise
                attempt += 1
                log.warning(
                    "Conflict reconciling graph %s (%s); retry %s/%s",
                    definition.id,
                    exc.detail,
                    attempt,
                    self.conflict_retries,
                )

    def read(self, scope: GraphScope) -> FullGraphView:
        with self.unit_of_work_factory() as uow:
            view = read_full_graph(uow.repositories, scope)
        if view is None:
            raise NotFoundError(GRAPH_NOT_FOUND)
        return view

    def _reconcile_once(
        self,
        scope: ProjectScope,
        definition: FullGraphDefinition,
    ) -> ReconcileOutcome:
        graph_scope = scope.graph(definition.id)
        with self.unit_of_work_factory() as uow:
            snapshot = load_graph_snapshot(uow.repositories, graph_scope)
            report = validate_full_graph(
                definition,
                scope=scope,
                catalog=uow.repositories.catalog,
                persisted=snapshot,
                policy=self.policy,
            )
            report.raise_for_violations()

            diff = compute_graph_diff(snapshot, definition)
            result = apply_graph_diff(uow, scope, diff, now=self.clock())
            uow.commit()
            view = read_full_graph(uow.repositories, graph_scope)

        if view is None:
            raise ReconciliationInvariantError(
                f"Graph '{definition.id}' missing immediately after commit"
            )
        log.info(
            "Reconciled graph %s/%s/%s: created=%s agents +%s ~%s -%s relations +%s -%s context=%s",
            scope.tenant_id,
            scope.project_id,
            definition.id,
            diff.creates_graph,
            result.agents_inserted,
            result.agents_updated,
            result.agents_deleted,
            result.relations_inserted,
            result.relations_deleted,
            result.context_config,
        )
        return ReconcileOutcome(view=view, created=diff.creates_graph, result=result)
