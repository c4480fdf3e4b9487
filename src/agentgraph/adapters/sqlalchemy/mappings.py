"""SQLAlchemy mapping metadata for the agent graph domain model."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import configure_mappers

from agentgraph.domain.model import (
    AgentGraph,
    AgentRelation,
    ContextConfig,
    ContextSource,
    ExternalAgent,
    InternalAgent,
    ProjectResource,
    RelationType,
    ResourceKind,
    ToolSelection,
    context_source_from_json,
    context_source_to_json,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

ID_LENGTH = 256


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """Ordered list of ids stored as a JSON array."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps(list(value or []))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        return [str(item) for item in cast(list[Any], loaded)]


class ToolSelectionListType(TypeDecorator[list[ToolSelection]]):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: list[ToolSelection] | None, dialect: Dialect) -> str:
        _ = dialect
        payload = [
            {
                "toolId": selection.tool_id,
                "toolSelection": (
                    None if selection.tool_selection is None else list(selection.tool_selection)
                ),
            }
            for selection in value or []
        ]
        return json.dumps(payload)

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[ToolSelection]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        selections: list[ToolSelection] = []
        for item in cast(list[dict[str, Any]], loaded):
            functions = item.get("toolSelection")
            selections.append(
                ToolSelection(
                    tool_id=str(item["toolId"]),
                    tool_selection=None if functions is None else tuple(str(name) for name in functions),
                )
            )
        return selections


class ContextSourceListType(TypeDecorator[list[ContextSource]]):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: list[ContextSource] | None, dialect: Dialect) -> str:
        _ = dialect
        return json.dumps([context_source_to_json(source) for source in value or []])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[ContextSource]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        return [context_source_from_json(item) for item in cast(list[dict[str, Any]], loaded)]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _scope_columns(*, graph: bool = True) -> list[Column[Any]]:
    columns: list[Column[Any]] = [
        Column("tenant_id", String(ID_LENGTH), primary_key=True),
        Column("project_id", String(ID_LENGTH), primary_key=True),
    ]
    if graph:
        columns.append(Column("graph_id", String(ID_LENGTH), primary_key=True))
    return columns


def _graph_foreign_key() -> ForeignKeyConstraint:
    return ForeignKeyConstraint(
        ["tenant_id", "project_id", "graph_id"],
        ["agent_graph.tenant_id", "agent_graph.project_id", "agent_graph.id"],
    )


def _timestamps() -> list[Column[Any]]:
    return [
        Column("created_at", UTCDateTime(), nullable=False),
        Column("updated_at", UTCDateTime(), nullable=False),
    ]


# Graph aggregate -------------------------------------------------------------

agent_graph_table = Table(
    "agent_graph",
    mapper_registry.metadata,
    *_scope_columns(graph=False),
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("default_agent_id", String(ID_LENGTH), nullable=True),
    Column("context_config_id", String(ID_LENGTH), nullable=True),
    Column("version", Integer, nullable=False),
    *_timestamps(),
)

agent_table = Table(
    "agent",
    mapper_registry.metadata,
    *_scope_columns(),
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("prompt", Text, nullable=True),
    Column("tools", StringListType(), nullable=False),
    Column("can_use", ToolSelectionListType(), nullable=False),
    Column("data_components", StringListType(), nullable=False),
    Column("artifact_components", StringListType(), nullable=False),
    *_timestamps(),
    _graph_foreign_key(),
)

external_agent_table = Table(
    "external_agent",
    mapper_registry.metadata,
    *_scope_columns(),
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("base_url", String, nullable=False),
    *_timestamps(),
    _graph_foreign_key(),
)

agent_relation_table = Table(
    "agent_relation",
    mapper_registry.metadata,
    *_scope_columns(),
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("source_agent_id", String(ID_LENGTH), nullable=False),
    Column("target_agent_id", String(ID_LENGTH), nullable=False),
    Column("relation_type", Enum(RelationType, native_enum=False), nullable=False),
    *_timestamps(),
    _graph_foreign_key(),
    Index("ix_agent_relation_source", "tenant_id", "project_id", "graph_id", "source_agent_id"),
    Index("ix_agent_relation_target", "tenant_id", "project_id", "graph_id", "target_agent_id"),
)

context_config_table = Table(
    "context_config",
    mapper_registry.metadata,
    *_scope_columns(),
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String, nullable=True),
    Column("description", Text, nullable=True),
    Column("context_sources", ContextSourceListType(), nullable=False),
    *_timestamps(),
    _graph_foreign_key(),
)

# Project catalog -------------------------------------------------------------

project_resource_table = Table(
    "project_resource",
    mapper_registry.metadata,
    *_scope_columns(graph=False),
    Column("kind", Enum(ResourceKind, native_enum=False), primary_key=True),
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        AgentGraph,
        agent_graph_table,
        version_id_col=agent_graph_table.c.version,
    )
    mapper_registry.map_imperatively(InternalAgent, agent_table)
    mapper_registry.map_imperatively(ExternalAgent, external_agent_table)
    mapper_registry.map_imperatively(AgentRelation, agent_relation_table)
    mapper_registry.map_imperatively(ContextConfig, context_config_table)
    mapper_registry.map_imperatively(ProjectResource, project_resource_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
