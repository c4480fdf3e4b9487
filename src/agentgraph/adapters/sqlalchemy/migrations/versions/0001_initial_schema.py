"""Initial agent graph schema

Revision ID: 0001
Revises:
Create Date: 2026-09-28 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ID = sa.String(length=256)
RELATION_TYPE = sa.Enum("TRANSFER", "DELEGATE", name="relationtype", native_enum=False)
RESOURCE_KIND = sa.Enum(
    "TOOL",
    "DATA_COMPONENT",
    "ARTIFACT_COMPONENT",
    name="resourcekind",
    native_enum=False,
)


def _timestamps() -> list[sa.Column[object]]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _graph_fk(table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["tenant_id", "project_id", "graph_id"],
        ["agent_graph.tenant_id", "agent_graph.project_id", "agent_graph.id"],
        name=f"fk_{table}_tenant_id_agent_graph",
    )


def upgrade() -> None:
    op.create_table(
        "agent_graph",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("project_id", ID, nullable=False),
        sa.Column("id", ID, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("default_agent_id", ID, nullable=True),
        sa.Column("context_config_id", ID, nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("tenant_id", "project_id", "id", name="pk_agent_graph"),
    )
    op.create_table(
        "agent",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("project_id", ID, nullable=False),
        sa.Column("graph_id", ID, nullable=False),
        sa.Column("id", ID, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column("tools", sa.String(), nullable=False),
        sa.Column("can_use", sa.String(), nullable=False),
        sa.Column("data_components", sa.String(), nullable=False),
        sa.Column("artifact_components", sa.String(), nullable=False),
        *_timestamps(),
        _graph_fk("agent"),
        sa.PrimaryKeyConstraint("tenant_id", "project_id", "graph_id", "id", name="pk_agent"),
    )
    op.create_table(
        "external_agent",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("project_id", ID, nullable=False),
        sa.Column("graph_id", ID, nullable=False),
        sa.Column("id", ID, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_url", sa.String(), nullable=False),
        *_timestamps(),
        _graph_fk("external_agent"),
        sa.PrimaryKeyConstraint(
            "tenant_id", "project_id", "graph_id", "id", name="pk_external_agent"
        ),
    )
    op.create_table(
        "agent_relation",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("project_id", ID, nullable=False),
        sa.Column("graph_id", ID, nullable=False),
        sa.Column("id", ID, nullable=False),
        sa.Column("source_agent_id", ID, nullable=False),
        sa.Column("target_agent_id", ID, nullable=False),
        sa.Column("relation_type", RELATION_TYPE, nullable=False),
        *_timestamps(),
        _graph_fk("agent_relation"),
        sa.PrimaryKeyConstraint(
            "tenant_id", "project_id", "graph_id", "id", name="pk_agent_relation"
        ),
    )
    op.create_index(
        "ix_agent_relation_source",
        "agent_relation",
        ["tenant_id", "project_id", "graph_id", "source_agent_id"],
    )
    op.create_index(
        "ix_agent_relation_target",
        "agent_relation",
        ["tenant_id", "project_id", "graph_id", "target_agent_id"],
    )
    op.create_table(
        "context_config",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("project_id", ID, nullable=False),
        sa.Column("graph_id", ID, nullable=False),
        sa.Column("id", ID, nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("context_sources", sa.String(), nullable=False),
        *_timestamps(),
        _graph_fk("context_config"),
        sa.PrimaryKeyConstraint(
            "tenant_id", "project_id", "graph_id", "id", name="pk_context_config"
        ),
    )
    op.create_table(
        "project_resource",
        sa.Column("tenant_id", ID, nullable=False),
        sa.Column("project_id", ID, nullable=False),
        sa.Column("kind", RESOURCE_KIND, nullable=False),
        sa.Column("id", ID, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("tenant_id", "project_id", "kind", "id", name="pk_project_resource"),
    )


def downgrade() -> None:
    op.drop_table("project_resource")
    op.drop_table("context_config")
    op.drop_index("ix_agent_relation_target", table_name="agent_relation")
    op.drop_index("ix_agent_relation_source", table_name="agent_relation")
    op.drop_table("agent_relation")
    op.drop_table("external_agent")
    op.drop_table("agent")
    op.drop_table("agent_graph")
