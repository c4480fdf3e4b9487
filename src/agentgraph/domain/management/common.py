"""Helpers shared by the scoped single-entity services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agentgraph.domain.errors import NotFoundError, ReferenceValidationError
from agentgraph.domain.reconciliation.engine import GRAPH_NOT_FOUND
from agentgraph.domain.reconciliation.validate import (
    agent_resource_references,
    resource_reference_violations,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from agentgraph.domain.model import Agent, AgentGraph, GraphScope, ToolSelection
    from agentgraph.domain.ports import GraphRepositories

log = logging.getLogger(__name__)


def require_graph(repositories: GraphRepositories, scope: GraphScope) -> AgentGraph:
    graph = repositories.graphs.get(scope)
    if graph is None:
        raise NotFoundError(GRAPH_NOT_FOUND)
    return graph


def touch_graph(graph: AgentGraph, now: datetime) -> None:
    """Mark the graph changed so its version moves with every write to what it owns.

    A full-graph submission holding an older snapshot then fails its version
    check and retries instead of overwriting or tripping over this write.
    """

    graph.updated_at = now


def check_agent_references(
    repositories: GraphRepositories,
    scope: GraphScope,
    agent_id: str,
    *,
    tools: Sequence[str] = (),
    can_use: Sequence[ToolSelection] = (),
    data_components: Sequence[str] = (),
    artifact_components: Sequence[str] = (),
) -> None:
    """Raise ``ReferenceValidationError`` for catalog ids the project does not have."""

    references = agent_resource_references(
        agent_id,
        pointer=(),
        tools=tools,
        can_use=can_use,
        data_components=data_components,
        artifact_components=artifact_components,
    )
    violations = resource_reference_violations(repositories.catalog, scope.project, references)
    if violations:
        raise ReferenceValidationError(violations)


def remove_agent(
    repositories: GraphRepositories,
    graph: AgentGraph,
    agent: Agent,
    *,
    now: datetime,
) -> int:
    """Delete ``agent`` with every relation touching it; return the relation count.

    A graph whose default agent is removed loses its default rather than
    pointing at nothing.
    """

    scope = graph.scope
    relations = repositories.relations.referencing(scope, (agent.id,))
    for relation in relations:
        repositories.relations.remove(relation)
    if graph.default_agent_id == agent.id:
        graph.default_agent_id = None
    touch_graph(graph, now)
    repositories.agents.remove(agent)
    log.debug(
        "Removed agent %s from graph %s with %s relations",
        agent.id,
        scope.graph_id,
        len(relations),
    )
    return len(relations)


def purge_graph(repositories: GraphRepositories, scope: GraphScope) -> None:
    """Delete everything a graph owns, leaving the graph row itself."""

    for relation in repositories.relations.find(scope):
        repositories.relations.remove(relation)
    for agent in repositories.agents.find(scope):
        repositories.agents.remove(agent)
    config = repositories.context_configs.get(scope)
    if config is not None:
        repositories.context_configs.remove(config)
