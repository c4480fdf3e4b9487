"""Scoped single-entity services over the agent graph aggregate."""

from __future__ import annotations

from .agents import (
    AGENT_NOT_FOUND,
    InternalAgentChanges,
    create_agent,
    delete_agent,
    get_agent,
    list_agents,
    update_agent,
)
from .external_agents import (
    EXTERNAL_AGENT_NOT_FOUND,
    ExternalAgentChanges,
    create_external_agent,
    delete_external_agent,
    get_external_agent,
    list_external_agents,
    update_external_agent,
)
from .graphs import (
    GraphChanges,
    RelatedAgent,
    create_graph,
    delete_graph,
    get_graph,
    list_graphs,
    list_related_agents,
    update_graph,
)
from .pagination import MAX_PAGE_LIMIT, Page, PageRequest
from .relations import (
    RELATION_NOT_FOUND,
    RelationChanges,
    RelationFilter,
    create_relation,
    delete_relation,
    get_relation,
    list_relations,
    update_relation,
)

__all__ = [
    "AGENT_NOT_FOUND",
    "EXTERNAL_AGENT_NOT_FOUND",
    "MAX_PAGE_LIMIT",
    "RELATION_NOT_FOUND",
    "ExternalAgentChanges",
    "GraphChanges",
    "InternalAgentChanges",
    "Page",
    "PageRequest",
    "RelatedAgent",
    "RelationChanges",
    "RelationFilter",
    "create_agent",
    "create_external_agent",
    "create_graph",
    "create_relation",
    "delete_agent",
    "delete_external_agent",
    "delete_graph",
    "delete_relation",
    "get_agent",
    "get_external_agent",
    "get_graph",
    "get_relation",
    "list_agents",
    "list_external_agents",
    "list_graphs",
    "list_related_agents",
    "list_relations",
    "update_agent",
    "update_external_agent",
    "update_graph",
    "update_relation",
]
