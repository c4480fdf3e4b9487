"""Pydantic payloads for the HTTP surface.

Request models track which fields the client actually sent
(``model_fields_set``): an omitted field becomes ``UNSET`` in the domain
definition, while an explicit ``null`` stays ``None``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
)
from pydantic.alias_generators import to_camel

from agentgraph.domain.management import (
    ExternalAgentChanges,
    GraphChanges,
    InternalAgentChanges,
    Page,
    RelatedAgent,
    RelationChanges,
)
from agentgraph.domain.model import (
    AgentGraph,
    AgentRelation,
    AgentType,
    ContextSource,
    ExternalAgent,
    FetchContextSource,
    InternalAgent,
    RelationType,
    StaticContextSource,
    ToolSelection,
    context_source_to_json,
)
from agentgraph.domain.reconciliation import (
    UNSET,
    AgentDefinition,
    ContextConfigDefinition,
    ExternalAgentDefinition,
    FullGraphDefinition,
    InternalAgentDefinition,
    Maybe,
)
from agentgraph.domain.reconciliation.read import (
    ContextConfigView,
    ExternalAgentView,
    FullGraphView,
    InternalAgentView,
)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def provided[T](self, name: str, value: T) -> Maybe[T]:
        """``value`` if the client sent ``name``, else ``UNSET``."""
        return value if name in self.model_fields_set else UNSET


def _not_null[T](value: T | None) -> T:
    if value is None:
        raise ValueError("Field may be omitted but not null")
    return value


def _ids(value: list[str] | None) -> tuple[str, ...] | None:
    return None if value is None else tuple(value)


# Requests --------------------------------------------------------------------


class ToolSelectionIn(ApiModel):
    tool_id: str
    tool_selection: list[str] | None = None

    def to_domain(self) -> ToolSelection:
        functions = None if self.tool_selection is None else tuple(self.tool_selection)
        return ToolSelection(tool_id=self.tool_id, tool_selection=functions)


def _selections(value: list[ToolSelectionIn] | None) -> tuple[ToolSelection, ...] | None:
    return None if value is None else tuple(selection.to_domain() for selection in value)


class StaticContextSourceIn(ApiModel):
    type: Literal["static"]
    content: Any = None

    def to_domain(self) -> ContextSource:
        return StaticContextSource(content=self.content)


class FetchContextSourceIn(ApiModel):
    type: Literal["fetch"]
    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)

    def to_domain(self) -> ContextSource:
        return FetchContextSource(
            url=self.url,
            method=self.method.upper(),
            headers=tuple(sorted(self.headers.items())),
        )


ContextSourceIn = Annotated[
    StaticContextSourceIn | FetchContextSourceIn,
    Field(discriminator="type"),
]


class ContextConfigIn(ApiModel):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    context_sources: list[ContextSourceIn] = Field(default_factory=list)

    def to_definition(self) -> ContextConfigDefinition:
        return ContextConfigDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            context_sources=tuple(source.to_domain() for source in self.context_sources),
        )


class InternalAgentIn(ApiModel):
    type: Literal["internal"] = "internal"
    id: str | None = None
    name: str
    description: str | None = None
    prompt: str | None = None
    tools: list[str] | None = None
    can_use: list[ToolSelectionIn] | None = None
    data_components: list[str] | None = None
    artifact_components: list[str] | None = None
    can_transfer_to: list[str] | None = None
    can_delegate_to: list[str] | None = None

    def to_definition(self, key: str) -> InternalAgentDefinition:
        return InternalAgentDefinition(
            id=self.id or key,
            name=self.name,
            description=self.provided("description", self.description),
            prompt=self.provided("prompt", self.prompt),
            tools=self.provided("tools", _ids(self.tools)),
            can_use=self.provided("can_use", _selections(self.can_use)),
            data_components=self.provided("data_components", _ids(self.data_components)),
            artifact_components=self.provided("artifact_components", _ids(self.artifact_components)),
            can_transfer_to=self.provided("can_transfer_to", _ids(self.can_transfer_to)),
            can_delegate_to=self.provided("can_delegate_to", _ids(self.can_delegate_to)),
        )


class ExternalAgentIn(ApiModel):
    type: Literal["external"] = "external"
    id: str | None = None
    name: str
    description: str | None = None
    base_url: str

    def to_definition(self, key: str) -> ExternalAgentDefinition:
        return ExternalAgentDefinition(
            id=self.id or key,
            name=self.name,
            base_url=self.base_url,
            description=self.provided("description", self.description),
        )


def _agent_tag(value: Any) -> str | None:
    if isinstance(value, dict):
        agent_type = value.get("type")
        if agent_type is not None:
            return str(agent_type)
        if "baseUrl" in value or "base_url" in value:
            return AgentType.EXTERNAL.value
        return AgentType.INTERNAL.value
    return getattr(value, "type", None)


AgentIn = Annotated[
    Annotated[InternalAgentIn, Tag("internal")] | Annotated[ExternalAgentIn, Tag("external")],
    Discriminator(_agent_tag),
]


class FullGraphIn(ApiModel):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    default_agent_id: str | None = None
    agents: dict[str, AgentIn]
    context_config: ContextConfigIn | None = None

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, value: str | None) -> str:
        return _not_null(value)

    def to_definition(self, graph_id: str) -> FullGraphDefinition:
        agents: dict[str, AgentDefinition] = {
            key: agent.to_definition(key) for key, agent in self.agents.items()
        }
        context_config: Maybe[ContextConfigDefinition | None] = UNSET
        if "context_config" in self.model_fields_set:
            context_config = None if self.context_config is None else self.context_config.to_definition()
        return FullGraphDefinition(
            id=graph_id,
            agents=agents,
            name=self.provided("name", self.name or ""),
            description=self.provided("description", self.description),
            default_agent_id=self.provided("default_agent_id", self.default_agent_id),
            context_config=context_config,
        )


class GraphCreateIn(ApiModel):
    id: str | None = None
    name: str
    description: str | None = None
    default_agent_id: str | None = None


class GraphUpdateIn(ApiModel):
    name: str | None = None
    description: str | None = None
    default_agent_id: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, value: str | None) -> str:
        return _not_null(value)

    def to_changes(self) -> GraphChanges:
        return GraphChanges(
            name=self.provided("name", self.name or ""),
            description=self.provided("description", self.description),
            default_agent_id=self.provided("default_agent_id", self.default_agent_id),
        )


class AgentWriteIn(ApiModel):
    """Create and update payload for an internal agent."""

    id: str | None = None
    name: str | None = None
    description: str | None = None
    prompt: str | None = None
    tools: list[str] | None = None
    can_use: list[ToolSelectionIn] | None = None
    data_components: list[str] | None = None
    artifact_components: list[str] | None = None

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, value: str | None) -> str:
        return _not_null(value)

    def to_changes(self) -> InternalAgentChanges:
        return InternalAgentChanges(
            name=self.provided("name", self.name or ""),
            description=self.provided("description", self.description),
            prompt=self.provided("prompt", self.prompt),
            tools=self.provided("tools", _ids(self.tools)),
            can_use=self.provided("can_use", _selections(self.can_use)),
            data_components=self.provided("data_components", _ids(self.data_components)),
            artifact_components=self.provided("artifact_components", _ids(self.artifact_components)),
        )


class ExternalAgentWriteIn(ApiModel):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    base_url: str | None = None

    @field_validator("name", "base_url")
    @classmethod
    def _required_not_null(cls, value: str | None) -> str:
        return _not_null(value)

    def to_changes(self) -> ExternalAgentChanges:
        return ExternalAgentChanges(
            name=self.provided("name", self.name or ""),
            description=self.provided("description", self.description),
            base_url=self.provided("base_url", self.base_url or ""),
        )


class RelationCreateIn(ApiModel):
    id: str | None = None
    source_agent_id: str
    target_agent_id: str
    relation_type: RelationType


class RelationUpdateIn(ApiModel):
    source_agent_id: str | None = None
    target_agent_id: str | None = None
    relation_type: RelationType | None = None

    @field_validator("source_agent_id", "target_agent_id", "relation_type")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        return _not_null(value)

    def to_changes(self) -> RelationChanges:
        return RelationChanges(
            source_agent_id=self.provided("source_agent_id", self.source_agent_id or ""),
            target_agent_id=self.provided("target_agent_id", self.target_agent_id or ""),
            relation_type=self.provided("relation_type", self.relation_type or RelationType.TRANSFER),
        )


# Responses -------------------------------------------------------------------


class ToolSelectionOut(ApiModel):
    tool_id: str
    tool_selection: list[str] | None = None

    @classmethod
    def from_domain(cls, selection: ToolSelection) -> ToolSelectionOut:
        functions = None if selection.tool_selection is None else list(selection.tool_selection)
        return cls(tool_id=selection.tool_id, tool_selection=functions)


class ContextConfigOut(ApiModel):
    id: str
    name: str | None = None
    description: str | None = None
    context_sources: list[dict[str, Any]]

    @classmethod
    def from_view(cls, view: ContextConfigView) -> ContextConfigOut:
        return cls(
            id=view.id,
            name=view.name,
            description=view.description,
            context_sources=[context_source_to_json(source) for source in view.context_sources],
        )


class InternalAgentOut(ApiModel):
    id: str
    type: Literal["internal"] = "internal"
    name: str
    description: str | None = None
    prompt: str | None = None
    tools: list[str]
    can_use: list[ToolSelectionOut]
    data_components: list[str]
    artifact_components: list[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, agent: InternalAgent) -> InternalAgentOut:
        return cls(
            id=agent.id,
            name=agent.name,
            description=agent.description,
            prompt=agent.prompt,
            tools=list(agent.tools),
            can_use=[ToolSelectionOut.from_domain(selection) for selection in agent.can_use],
            data_components=list(agent.data_components),
            artifact_components=list(agent.artifact_components),
            created_at=agent.created_at,
            updated_at=agent.updated_at,
        )


class FullInternalAgentOut(InternalAgentOut):
    can_transfer_to: list[str]
    can_delegate_to: list[str]

    @classmethod
    def from_view(cls, view: InternalAgentView) -> FullInternalAgentOut:
        return cls(
            id=view.id,
            name=view.name,
            description=view.description,
            prompt=view.prompt,
            tools=list(view.tools),
            can_use=[ToolSelectionOut.from_domain(selection) for selection in view.can_use],
            data_components=list(view.data_components),
            artifact_components=list(view.artifact_components),
            can_transfer_to=list(view.can_transfer_to),
            can_delegate_to=list(view.can_delegate_to),
            created_at=view.created_at,
            updated_at=view.updated_at,
        )


class ExternalAgentOut(ApiModel):
    id: str
    type: Literal["external"] = "external"
    name: str
    description: str | None = None
    base_url: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, agent: ExternalAgent | ExternalAgentView) -> ExternalAgentOut:
        return cls(
            id=agent.id,
            name=agent.name,
            description=agent.description,
            base_url=agent.base_url,
            created_at=agent.created_at,
            updated_at=agent.updated_at,
        )


class FullGraphOut(ApiModel):
    id: str
    name: str
    description: str | None = None
    default_agent_id: str | None = None
    agents: dict[str, FullInternalAgentOut | ExternalAgentOut]
    context_config: ContextConfigOut | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_view(cls, view: FullGraphView) -> FullGraphOut:
        agents: dict[str, FullInternalAgentOut | ExternalAgentOut] = {}
        for agent_id, agent in view.agents.items():
            if isinstance(agent, InternalAgentView):
                agents[agent_id] = FullInternalAgentOut.from_view(agent)
            else:
                agents[agent_id] = ExternalAgentOut.from_domain(agent)
        return cls(
            id=view.id,
            name=view.name,
            description=view.description,
            default_agent_id=view.default_agent_id,
            agents=agents,
            context_config=(
                None if view.context_config is None else ContextConfigOut.from_view(view.context_config)
            ),
            created_at=view.created_at,
            updated_at=view.updated_at,
        )


class GraphOut(ApiModel):
    id: str
    name: str
    description: str | None = None
    default_agent_id: str | None = None
    context_config_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, graph: AgentGraph) -> GraphOut:
        return cls(
            id=graph.id,
            name=graph.name,
            description=graph.description,
            default_agent_id=graph.default_agent_id,
            context_config_id=graph.context_config_id,
            created_at=graph.created_at,
            updated_at=graph.updated_at,
        )


class RelationOut(ApiModel):
    id: str
    graph_id: str
    source_agent_id: str
    target_agent_id: str
    relation_type: RelationType
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, relation: AgentRelation) -> RelationOut:
        return cls(
            id=relation.id,
            graph_id=relation.graph_id,
            source_agent_id=relation.source_agent_id,
            target_agent_id=relation.target_agent_id,
            relation_type=relation.relation_type,
            created_at=relation.created_at,
            updated_at=relation.updated_at,
        )


class RelatedAgentOut(ApiModel):
    relation_id: str
    id: str
    name: str
    description: str | None = None
    type: AgentType
    relation_type: RelationType

    @classmethod
    def from_domain(cls, related: RelatedAgent) -> RelatedAgentOut:
        return cls(
            relation_id=related.relation_id,
            id=related.id,
            name=related.name,
            description=related.description,
            type=related.agent_type,
            relation_type=related.relation_type,
        )


class PaginationOut(ApiModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def from_page(cls, page: Page[Any]) -> PaginationOut:
        return cls(page=page.page, limit=page.limit, total=page.total, pages=page.pages)


# Envelopes -------------------------------------------------------------------


class GraphEnvelope(ApiModel):
    data: GraphOut


class GraphListEnvelope(ApiModel):
    data: list[GraphOut]
    pagination: PaginationOut


class FullGraphEnvelope(ApiModel):
    data: FullGraphOut


class AgentEnvelope(ApiModel):
    data: InternalAgentOut


class AgentListEnvelope(ApiModel):
    data: list[InternalAgentOut]
    pagination: PaginationOut


class ExternalAgentEnvelope(ApiModel):
    data: ExternalAgentOut


class ExternalAgentListEnvelope(ApiModel):
    data: list[ExternalAgentOut]
    pagination: PaginationOut


class RelationEnvelope(ApiModel):
    data: RelationOut


class RelationListEnvelope(ApiModel):
    data: list[RelationOut]
    pagination: PaginationOut


class RelatedAgentListEnvelope(ApiModel):
    data: list[RelatedAgentOut]
    pagination: PaginationOut
