"""Materialized full-graph view.

Internal agents expose ``can_transfer_to``/``can_delegate_to`` computed from the
relation rows of the graph, one entry per row, ordered by target id. External
agents never carry these arrays.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from agentgraph.domain.model import AgentType, InternalAgent, RelationType

from .snapshot import load_graph_snapshot

if TYPE_CHECKING:
    from datetime import datetime

    from agentgraph.domain.model import (
        AgentRelation,
        ContextConfig,
        ContextSource,
        ExternalAgent,
        GraphScope,
        ToolSelection,
    )
    from agentgraph.domain.ports import GraphRepositories

    from .snapshot import GraphSnapshot


@dataclass(frozen=True, slots=True, kw_only=True)
class InternalAgentView:
    id: str
    name: str
    description: str | None
    prompt: str | None
    tools: tuple[str, ...]
    can_use: tuple[ToolSelection, ...]
    data_components: tuple[str, ...]
    artifact_components: tuple[str, ...]
    can_transfer_to: tuple[str, ...]
    can_delegate_to: tuple[str, ...]
    created_at: datetime
    updated_at: datetime

    AGENT_TYPE: ClassVar[AgentType] = AgentType.INTERNAL


@dataclass(frozen=True, slots=True, kw_only=True)
class ExternalAgentView:
    id: str
    name: str
    description: str | None
    base_url: str
    created_at: datetime
    updated_at: datetime

    AGENT_TYPE: ClassVar[AgentType] = AgentType.EXTERNAL


type AgentView = InternalAgentView | ExternalAgentView


@dataclass(frozen=True, slots=True, kw_only=True)
class ContextConfigView:
    id: str
    name: str | None
    description: str | None
    context_sources: tuple[ContextSource, ...]


@dataclass(frozen=True, slots=True, kw_only=True)
class FullGraphView:
    id: str
    name: str
    description: str | None
    default_agent_id: str | None
    agents: dict[str, AgentView]
    context_config: ContextConfigView | None
    created_at: datetime
    updated_at: datetime


def read_full_graph(repositories: GraphRepositories, scope: GraphScope) -> FullGraphView | None:
    """Return the materialized graph, or ``None`` when it does not exist in ``scope``."""

    snapshot = load_graph_snapshot(repositories, scope)
    if snapshot is None:
        return None
    return build_full_graph_view(snapshot)


def build_full_graph_view(snapshot: GraphSnapshot) -> FullGraphView:
    targets = _targets_by_source(snapshot.relations)
    agents: dict[str, AgentView] = {}
    for agent_id in sorted(snapshot.agents):
        agent = snapshot.agents[agent_id]
        if isinstance(agent, InternalAgent):
            agents[agent_id] = _internal_view(agent, targets)
        else:
            agents[agent_id] = _external_view(agent)

    graph = snapshot.graph
    return FullGraphView(
        id=graph.id,
        name=graph.name,
        description=graph.description,
        default_agent_id=graph.default_agent_id,
        agents=agents,
        context_config=_context_view(snapshot.context_config),
        created_at=graph.created_at,
        updated_at=graph.updated_at,
    )


def _targets_by_source(
    relations: list[AgentRelation],
) -> dict[tuple[str, RelationType], tuple[str, ...]]:
    grouped: dict[tuple[str, RelationType], list[AgentRelation]] = defaultdict(list)
    for relation in relations:
        grouped[relation.source_agent_id, relation.relation_type].append(relation)
    return {
        key: tuple(
            relation.target_agent_id
            for relation in sorted(rows, key=lambda row: (row.target_agent_id, row.id))
        )
        for key, rows in grouped.items()
    }


def _internal_view(
    agent: InternalAgent,
    targets: dict[tuple[str, RelationType], tuple[str, ...]],
) -> InternalAgentView:
    return InternalAgentView(
        id=agent.id,
        name=agent.name,
        description=agent.description,
        prompt=agent.prompt,
        tools=tuple(agent.tools),
        can_use=tuple(agent.can_use),
        data_components=tuple(agent.data_components),
        artifact_components=tuple(agent.artifact_components),
        can_transfer_to=targets.get((agent.id, RelationType.TRANSFER), ()),
        can_delegate_to=targets.get((agent.id, RelationType.DELEGATE), ()),
        created_at=agent.created_at,
        updated_at=agent.updated_at,
    )


def _external_view(agent: ExternalAgent) -> ExternalAgentView:
    return ExternalAgentView(
        id=agent.id,
        name=agent.name,
        description=agent.description,
        base_url=agent.base_url,
        created_at=agent.created_at,
        updated_at=agent.updated_at,
    )


def _context_view(config: ContextConfig | None) -> ContextConfigView | None:
    if config is None:
        return None
    return ContextConfigView(
        id=config.id,
        name=config.name,
        description=config.description,
        context_sources=tuple(config.context_sources),
    )
