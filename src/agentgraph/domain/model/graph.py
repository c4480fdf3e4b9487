"""Agent graph aggregate: the graph row, its agents and relation edges.

Relation rows are the single record of edges between agents. The
``canTransferTo``/``canDelegateTo`` arrays clients see are a read model built
from them (see ``domain.reconciliation.read``) and are never stored on agents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from agentgraph.domain.model.entity import utcnow
from agentgraph.domain.model.enums import AgentType, RelationType, ResourceKind
from agentgraph.domain.model.scope import GraphScope, ProjectScope

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class AgentGraph:
    tenant_id: str
    project_id: str
    id: str
    name: str
    description: str | None = None
    default_agent_id: str | None = None
    context_config_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def scope(self) -> GraphScope:
        return GraphScope(tenant_id=self.tenant_id, project_id=self.project_id, graph_id=self.id)


@dataclass(frozen=True, slots=True)
class ToolSelection:
    """Per-agent override restricting which functions of a tool may be used."""

    tool_id: str
    tool_selection: tuple[str, ...] | None = None


@dataclass(eq=False, kw_only=True)
class InternalAgent:
    tenant_id: str
    project_id: str
    graph_id: str
    id: str
    name: str
    description: str | None = None
    prompt: str | None = None
    tools: list[str] = field(default_factory=list)
    can_use: list[ToolSelection] = field(default_factory=list)
    data_components: list[str] = field(default_factory=list)
    artifact_components: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    AGENT_TYPE: ClassVar[AgentType] = AgentType.INTERNAL

    @property
    def agent_type(self) -> AgentType:
        return self.AGENT_TYPE


@dataclass(eq=False, kw_only=True)
class ExternalAgent:
    """Agent hosted elsewhere and reached over HTTP; it can only be a relation target."""

    tenant_id: str
    project_id: str
    graph_id: str
    id: str
    name: str
    base_url: str
    description: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    AGENT_TYPE: ClassVar[AgentType] = AgentType.EXTERNAL

    @property
    def agent_type(self) -> AgentType:
        return self.AGENT_TYPE


type Agent = InternalAgent | ExternalAgent


@dataclass(frozen=True, slots=True, order=True)
class RelationEdge:
    """The identity of an edge: two relation rows with the same triple are duplicates."""

    source_agent_id: str
    target_agent_id: str
    relation_type: RelationType


@dataclass(eq=False, kw_only=True)
class AgentRelation:
    tenant_id: str
    project_id: str
    graph_id: str
    id: str
    source_agent_id: str
    target_agent_id: str
    relation_type: RelationType
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def edge(self) -> RelationEdge:
        return RelationEdge(self.source_agent_id, self.target_agent_id, self.relation_type)

    def touches(self, agent_id: str) -> bool:
        return agent_id in (self.source_agent_id, self.target_agent_id)


@dataclass(eq=False, kw_only=True)
class ProjectResource:
    """Catalog entry (tool, data component, artifact component) owned by a project."""

    tenant_id: str
    project_id: str
    kind: ResourceKind
    id: str
    name: str
    description: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def scope(self) -> ProjectScope:
        return ProjectScope(tenant_id=self.tenant_id, project_id=self.project_id)
