"""Public domain model surface."""

from __future__ import annotations

from agentgraph.domain.model.context import (
    ContextConfig,
    ContextSource,
    FetchContextSource,
    JsonValue,
    StaticContextSource,
    context_source_from_json,
    context_source_to_json,
)
from agentgraph.domain.model.entity import new_id, utcnow
from agentgraph.domain.model.enums import (
    AgentType,
    ContextSourceType,
    ReferenceKind,
    RelationType,
    ResourceKind,
)
from agentgraph.domain.model.graph import (
    Agent,
    AgentGraph,
    AgentRelation,
    ExternalAgent,
    InternalAgent,
    ProjectResource,
    RelationEdge,
    ToolSelection,
)
from agentgraph.domain.model.scope import GraphScope, ProjectScope

__all__ = [
    "Agent",
    "AgentGraph",
    "AgentRelation",
    "AgentType",
    "ContextConfig",
    "ContextSource",
    "ContextSourceType",
    "ExternalAgent",
    "FetchContextSource",
    "GraphScope",
    "InternalAgent",
    "JsonValue",
    "ProjectResource",
    "ProjectScope",
    "ReferenceKind",
    "RelationEdge",
    "RelationType",
    "ResourceKind",
    "StaticContextSource",
    "ToolSelection",
    "context_source_from_json",
    "context_source_to_json",
    "new_id",
    "utcnow",
]
