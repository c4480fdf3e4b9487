"""Persisted state of one graph, loaded through the repositories in one pass."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agentgraph.domain.model import InternalAgent

if TYPE_CHECKING:
    from agentgraph.domain.model import (
        Agent,
        AgentGraph,
        AgentRelation,
        ContextConfig,
        GraphScope,
        RelationType,
    )
    from agentgraph.domain.ports import GraphRepositories


@dataclass(slots=True, kw_only=True)
class GraphSnapshot:
    graph: AgentGraph
    agents: dict[str, Agent] = field(default_factory=dict)
    relations: list[AgentRelation] = field(default_factory=list)
    context_config: ContextConfig | None = None

    def is_internal(self, agent_id: str) -> bool:
        return isinstance(self.agents.get(agent_id), InternalAgent)

    def outgoing(self) -> dict[tuple[str, RelationType], list[AgentRelation]]:
        """Relation rows grouped by ``(source, type)``, in storage order."""

        grouped: dict[tuple[str, RelationType], list[AgentRelation]] = defaultdict(list)
        for relation in self.relations:
            grouped[relation.source_agent_id, relation.relation_type].append(relation)
        return grouped


def load_graph_snapshot(repositories: GraphRepositories, scope: GraphScope) -> GraphSnapshot | None:
    graph = repositories.graphs.get(scope)
    if graph is None:
        return None
    agents = {agent.id: agent for agent in repositories.agents.find(scope)}
    return GraphSnapshot(
        graph=graph,
        agents=agents,
        relations=repositories.relations.find(scope),
        context_config=repositories.context_configs.get(scope),
    )
