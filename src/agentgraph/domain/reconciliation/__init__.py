"""Full-graph reconciliation: validate, diff, apply, read.

Layered flow for one submission:
1) validate the definition against the project catalog and itself
2) diff it against the persisted snapshot (pure)
3) apply the diff inside the caller's unit of work
4) read back the materialized view
"""

from __future__ import annotations

from .apply import ApplyResult, apply_graph_diff
from .definition import (
    UNSET,
    AgentDefinition,
    ContextConfigDefinition,
    ExternalAgentDefinition,
    FullGraphDefinition,
    InternalAgentDefinition,
    Maybe,
)
from .diff import ContextConfigAction, GraphDiff, compute_graph_diff
from .engine import GRAPH_NOT_FOUND, GraphReconciler, ReconcileOutcome
from .policy import RelationPolicy
from .read import (
    AgentView,
    ContextConfigView,
    ExternalAgentView,
    FullGraphView,
    InternalAgentView,
    read_full_graph,
)
from .snapshot import GraphSnapshot, load_graph_snapshot
from .validate import ValidationReport, validate_full_graph

__all__ = [
    "GRAPH_NOT_FOUND",
    "UNSET",
    "AgentDefinition",
    "AgentView",
    "ApplyResult",
    "ContextConfigAction",
    "ContextConfigDefinition",
    "ContextConfigView",
    "ExternalAgentDefinition",
    "ExternalAgentView",
    "FullGraphDefinition",
    "FullGraphView",
    "GraphDiff",
    "GraphReconciler",
    "GraphSnapshot",
    "InternalAgentDefinition",
    "InternalAgentView",
    "Maybe",
    "ReconcileOutcome",
    "RelationPolicy",
    "ValidationReport",
    "apply_graph_diff",
    "compute_graph_diff",
    "load_graph_snapshot",
    "read_full_graph",
    "validate_full_graph",
]
