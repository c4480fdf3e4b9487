"""Pure diff between a persisted graph snapshot and a submitted definition.

Responsibilities of this stage:
- key agents by id and classify them as insert/update/delete, treating a
  variant change (internal <-> external) as an update so relation rows survive
- resolve omitted fields against persisted values (omission preserves, null
  clears)
- derive the desired ``(source, target, type)`` edge set and match it against
  persisted relation rows, keeping the first row per triple
- decide what happens to the context configuration

Nothing here touches storage or mutates snapshot objects; the result is a
value that ``apply`` executes and tests can assert on directly.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import StrEnum
from typing import TYPE_CHECKING

from agentgraph.domain.model import (
    InternalAgent,
    RelationEdge,
    RelationType,
)

from .definition import UNSET, ExternalAgentDefinition, InternalAgentDefinition, pick

if TYPE_CHECKING:
    from agentgraph.domain.model import Agent, ContextConfig, ContextSource, ToolSelection

    from .definition import (
        AgentDefinition,
        ContextConfigDefinition,
        FullGraphDefinition,
        Maybe,
    )
    from .snapshot import GraphSnapshot


@dataclass(frozen=True, slots=True, kw_only=True)
class InternalAgentState:
    id: str
    name: str
    description: str | None = None
    prompt: str | None = None
    tools: tuple[str, ...] = ()
    can_use: tuple[ToolSelection, ...] = ()
    data_components: tuple[str, ...] = ()
    artifact_components: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class ExternalAgentState:
    id: str
    name: str
    base_url: str
    description: str | None = None


type AgentState = InternalAgentState | ExternalAgentState


@dataclass(frozen=True, slots=True, kw_only=True)
class GraphState:
    name: str
    description: str | None
    default_agent_id: str | None
    context_config_id: str | None


@dataclass(frozen=True, slots=True, kw_only=True)
class ContextConfigState:
    id: str
    name: str | None
    description: str | None
    context_sources: tuple[ContextSource, ...]


class ContextConfigAction(StrEnum):
    KEEP = "keep"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True, slots=True, kw_only=True)
class ContextConfigChange:
    action: ContextConfigAction
    state: ContextConfigState | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class AgentUpdate:
    target: AgentState
    changed_fields: tuple[str, ...]
    replaces_kind: bool = False

    @property
    def agent_id(self) -> str:
        return self.target.id


@dataclass(frozen=True, slots=True, kw_only=True)
class GraphDiff:
    graph_id: str
    creates_graph: bool
    graph: GraphState
    graph_changed: bool
    agents_to_insert: tuple[AgentState, ...] = ()
    agents_to_update: tuple[AgentUpdate, ...] = ()
    agents_to_delete: tuple[str, ...] = ()
    relations_to_insert: tuple[RelationEdge, ...] = ()
    relations_to_delete: tuple[str, ...] = ()
    context_config: ContextConfigChange = ContextConfigChange(action=ContextConfigAction.KEEP)

    @property
    def is_empty(self) -> bool:
        return not (
            self.creates_graph
            or self.graph_changed
            or self.agents_to_insert
            or self.agents_to_update
            or self.agents_to_delete
            or self.relations_to_insert
            or self.relations_to_delete
            or self.context_config.action is not ContextConfigAction.KEEP
        )


def agent_state(agent: Agent) -> AgentState:
    if isinstance(agent, InternalAgent):
        return InternalAgentState(
            id=agent.id,
            name=agent.name,
            description=agent.description,
            prompt=agent.prompt,
            tools=tuple(agent.tools),
            can_use=tuple(agent.can_use),
            data_components=tuple(agent.data_components),
            artifact_components=tuple(agent.artifact_components),
        )
    return ExternalAgentState(
        id=agent.id,
        name=agent.name,
        base_url=agent.base_url,
        description=agent.description,
    )


def context_config_state(config: ContextConfig) -> ContextConfigState:
    return ContextConfigState(
        id=config.id,
        name=config.name,
        description=config.description,
        context_sources=tuple(config.context_sources),
    )


def default_context_config_id(graph_id: str) -> str:
    return f"{graph_id}-context"


def compute_graph_diff(snapshot: GraphSnapshot | None, definition: FullGraphDefinition) -> GraphDiff:
    """Compute the writes that move ``snapshot`` to ``definition``.

    ``definition`` is expected to have passed validation; unknown relation
    targets are not re-checked here.
    """

    persisted_agents: dict[str, Agent] = dict(snapshot.agents) if snapshot else {}

    inserts: list[AgentState] = []
    updates: list[AgentUpdate] = []
    for agent_id, agent_definition in definition.agents.items():
        current = persisted_agents.get(agent_id)
        target = _merge_agent(agent_definition, current)
        if current is None:
            inserts.append(target)
            continue
        current_state = agent_state(current)
        if target == current_state:
            continue
        updates.append(
            AgentUpdate(
                target=target,
                changed_fields=_changed_fields(current_state, target),
                replaces_kind=type(target) is not type(current_state),
            )
        )
    deletes = tuple(agent_id for agent_id in persisted_agents if agent_id not in definition.agents)

    relations_to_insert, relations_to_delete = _diff_relations(snapshot, definition)
    context_change, context_config_id = _diff_context_config(snapshot, definition)
    graph_state = _merge_graph(snapshot, definition, context_config_id)
    current_graph_state = _graph_state(snapshot) if snapshot else None

    return GraphDiff(
        graph_id=definition.id,
        creates_graph=snapshot is None,
        graph=graph_state,
        graph_changed=current_graph_state != graph_state,
        agents_to_insert=tuple(inserts),
        agents_to_update=tuple(updates),
        agents_to_delete=deletes,
        relations_to_insert=relations_to_insert,
        relations_to_delete=relations_to_delete,
        context_config=context_change,
    )


def _changed_fields(current: AgentState, target: AgentState) -> tuple[str, ...]:
    if type(current) is not type(target):
        return tuple(item.name for item in fields(target))
    return tuple(
        item.name
        for item in fields(target)
        if getattr(current, item.name) != getattr(target, item.name)
    )


def _items[T](value: Maybe[tuple[T, ...] | None], fallback: tuple[T, ...]) -> tuple[T, ...]:
    if value is UNSET:
        return fallback
    return value or ()


def _merge_agent(definition: AgentDefinition, current: Agent | None) -> AgentState:
    if isinstance(definition, ExternalAgentDefinition):
        return ExternalAgentState(
            id=definition.id,
            name=definition.name,
            base_url=definition.base_url,
            description=pick(definition.description, current.description if current else None),
        )

    base = agent_state(current) if isinstance(current, InternalAgent) else None
    return InternalAgentState(
        id=definition.id,
        name=definition.name,
        description=pick(definition.description, current.description if current else None),
        prompt=pick(definition.prompt, base.prompt if base else None),
        tools=_items(definition.tools, base.tools if base else ()),
        can_use=_items(definition.can_use, base.can_use if base else ()),
        data_components=_items(definition.data_components, base.data_components if base else ()),
        artifact_components=_items(
            definition.artifact_components,
            base.artifact_components if base else (),
        ),
    )


def _desired_edges(snapshot: GraphSnapshot | None, definition: FullGraphDefinition) -> list[RelationEdge]:
    outgoing = snapshot.outgoing() if snapshot else {}
    desired: dict[RelationEdge, None] = {}
    for agent in definition.agents.values():
        if not isinstance(agent, InternalAgentDefinition):
            continue
        for relation_type, targets in (
            (RelationType.TRANSFER, agent.can_transfer_to),
            (RelationType.DELEGATE, agent.can_delegate_to),
        ):
            if targets is UNSET:
                # Omitted arrays keep stored edges whose target survives.
                if snapshot is None or not snapshot.is_internal(agent.id):
                    continue
                target_ids = [
                    relation.target_agent_id
                    for relation in outgoing.get((agent.id, relation_type), ())
                    if relation.target_agent_id in definition.agents
                ]
            else:
                target_ids = list(targets or ())
            for target_id in target_ids:
                desired.setdefault(RelationEdge(agent.id, target_id, relation_type), None)
    return list(desired)


def _diff_relations(
    snapshot: GraphSnapshot | None,
    definition: FullGraphDefinition,
) -> tuple[tuple[RelationEdge, ...], tuple[str, ...]]:
    desired = _desired_edges(snapshot, definition)
    wanted = set(desired)
    kept: set[RelationEdge] = set()
    to_delete: list[str] = []
    for relation in snapshot.relations if snapshot else ():
        edge = relation.edge
        if edge in wanted and edge not in kept:
            kept.add(edge)
        else:
            to_delete.append(relation.id)
    to_insert = tuple(edge for edge in desired if edge not in kept)
    return to_insert, tuple(to_delete)


def _diff_context_config(
    snapshot: GraphSnapshot | None,
    definition: FullGraphDefinition,
) -> tuple[ContextConfigChange, str | None]:
    current = snapshot.context_config if snapshot else None
    requested = definition.context_config

    if requested is UNSET:
        kept_id = snapshot.graph.context_config_id if snapshot else None
        return ContextConfigChange(action=ContextConfigAction.KEEP), kept_id
    if requested is None:
        action = ContextConfigAction.DELETE if current is not None else ContextConfigAction.KEEP
        return ContextConfigChange(action=action), None

    state = _context_config_target(requested, current, definition.id)
    if current is not None and context_config_state(current) == state:
        return ContextConfigChange(action=ContextConfigAction.KEEP), state.id
    return ContextConfigChange(action=ContextConfigAction.UPSERT, state=state), state.id


def _context_config_target(
    requested: ContextConfigDefinition,
    current: ContextConfig | None,
    graph_id: str,
) -> ContextConfigState:
    if requested.id is not None:
        config_id = requested.id
    elif current is not None:
        config_id = current.id
    else:
        config_id = default_context_config_id(graph_id)
    return ContextConfigState(
        id=config_id,
        name=requested.name,
        description=requested.description,
        context_sources=tuple(requested.context_sources),
    )


def _graph_state(snapshot: GraphSnapshot) -> GraphState:
    graph = snapshot.graph
    return GraphState(
        name=graph.name,
        description=graph.description,
        default_agent_id=graph.default_agent_id,
        context_config_id=graph.context_config_id,
    )


def _merge_graph(
    snapshot: GraphSnapshot | None,
    definition: FullGraphDefinition,
    context_config_id: str | None,
) -> GraphState:
    current = snapshot.graph if snapshot else None
    name = pick(definition.name, current.name if current else None)
    if name is None:
        raise ValueError(f"Graph '{definition.id}' has no name; validate the definition first")
    return GraphState(
        name=name,
        description=pick(definition.description, current.description if current else None),
        default_agent_id=pick(
            definition.default_agent_id,
            current.default_agent_id if current else None,
        ),
        context_config_id=context_config_id,
    )
