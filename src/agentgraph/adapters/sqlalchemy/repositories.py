"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select

from agentgraph.adapters.sqlalchemy.mappings import (
    agent_graph_table,
    agent_relation_table,
    agent_table,
    context_config_table,
    external_agent_table,
    project_resource_table,
)
from agentgraph.domain.model import (
    AgentGraph,
    AgentRelation,
    AgentType,
    ContextConfig,
    ExternalAgent,
    InternalAgent,
    ProjectResource,
)

if TYPE_CHECKING:
    from collections.abc import Collection

    from sqlalchemy import ColumnElement, Select, Table
    from sqlalchemy.orm import Session

    from agentgraph.domain.model import (
        Agent,
        GraphScope,
        ProjectScope,
        RelationType,
        ResourceKind,
    )


def _in_project(table: Table, scope: ProjectScope | GraphScope) -> list[ColumnElement[bool]]:
    return [
        table.c.tenant_id == scope.tenant_id,
        table.c.project_id == scope.project_id,
    ]


def _in_graph(table: Table, scope: GraphScope) -> list[ColumnElement[bool]]:
    return [*_in_project(table, scope), table.c.graph_id == scope.graph_id]


def _paginate[T: Any](stmt: Select[T], *, offset: int, limit: int | None) -> Select[T]:
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


class SqlAlchemyAgentGraphRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: AgentGraph) -> None:
        self.session.add(entity)

    def remove(self, entity: AgentGraph) -> None:
        self.session.delete(entity)

    def get(self, scope: GraphScope) -> AgentGraph | None:
        return self.session.get(AgentGraph, (scope.tenant_id, scope.project_id, scope.graph_id))

    def find(
        self,
        scope: ProjectScope,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[AgentGraph]:
        stmt = (
            select(AgentGraph)
            .where(*_in_project(agent_graph_table, scope))
            .order_by(agent_graph_table.c.created_at, agent_graph_table.c.id)
        )
        return list(self.session.scalars(_paginate(stmt, offset=offset, limit=limit)))

    def count(self, scope: ProjectScope) -> int:
        stmt = select(func.count()).select_from(agent_graph_table).where(*_in_project(agent_graph_table, scope))
        return self.session.execute(stmt).scalar_one()


class SqlAlchemyAgentRepository:
    """Spans the internal and external agent tables, which share one id space."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Agent) -> None:
        self.session.add(entity)

    def remove(self, entity: Agent) -> None:
        self.session.delete(entity)

    def get(self, scope: GraphScope, agent_id: str) -> Agent | None:
        key = (scope.tenant_id, scope.project_id, scope.graph_id, agent_id)
        internal = self.session.get(InternalAgent, key)
        if internal is not None:
            return internal
        return self.session.get(ExternalAgent, key)

    def find(
        self,
        scope: GraphScope,
        *,
        agent_type: AgentType | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Agent]:
        if agent_type is AgentType.INTERNAL:
            return list(self._find_internal(scope, offset=offset, limit=limit))
        if agent_type is AgentType.EXTERNAL:
            return list(self._find_external(scope, offset=offset, limit=limit))

        merged: list[Agent] = [*self._find_internal(scope), *self._find_external(scope)]
        merged.sort(key=lambda agent: agent.id)
        end = None if limit is None else offset + limit
        return merged[offset:end]

    def count(self, scope: GraphScope, *, agent_type: AgentType | None = None) -> int:
        total = 0
        if agent_type in (None, AgentType.INTERNAL):
            total += self._count(agent_table, scope)
        if agent_type in (None, AgentType.EXTERNAL):
            total += self._count(external_agent_table, scope)
        return total

    def _find_internal(
        self,
        scope: GraphScope,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[InternalAgent]:
        stmt = select(InternalAgent).where(*_in_graph(agent_table, scope)).order_by(agent_table.c.id)
        return list(self.session.scalars(_paginate(stmt, offset=offset, limit=limit)))

    def _find_external(
        self,
        scope: GraphScope,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[ExternalAgent]:
        stmt = (
            select(ExternalAgent)
            .where(*_in_graph(external_agent_table, scope))
            .order_by(external_agent_table.c.id)
        )
        return list(self.session.scalars(_paginate(stmt, offset=offset, limit=limit)))

    def _count(self, table: Table, scope: GraphScope) -> int:
        stmt = select(func.count()).select_from(table).where(*_in_graph(table, scope))
        return self.session.execute(stmt).scalar_one()


class SqlAlchemyAgentRelationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: AgentRelation) -> None:
        self.session.add(entity)

    def remove(self, entity: AgentRelation) -> None:
        self.session.delete(entity)

    def get(self, scope: GraphScope, relation_id: str) -> AgentRelation | None:
        key = (scope.tenant_id, scope.project_id, scope.graph_id, relation_id)
        return self.session.get(AgentRelation, key)

    def find(
        self,
        scope: GraphScope,
        *,
        source_agent_id: str | None = None,
        target_agent_id: str | None = None,
        relation_type: RelationType | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[AgentRelation]:
        criteria = self._criteria(scope, source_agent_id, target_agent_id, relation_type)
        stmt = (
            select(AgentRelation)
            .where(*criteria)
            .order_by(agent_relation_table.c.created_at, agent_relation_table.c.id)
        )
        return list(self.session.scalars(_paginate(stmt, offset=offset, limit=limit)))

    def count(
        self,
        scope: GraphScope,
        *,
        source_agent_id: str | None = None,
        target_agent_id: str | None = None,
        relation_type: RelationType | None = None,
    ) -> int:
        criteria = self._criteria(scope, source_agent_id, target_agent_id, relation_type)
        stmt = select(func.count()).select_from(agent_relation_table).where(*criteria)
        return self.session.execute(stmt).scalar_one()

    def referencing(self, scope: GraphScope, agent_ids: Collection[str]) -> list[AgentRelation]:
        if not agent_ids:
            return []
        ids = list(agent_ids)
        stmt = (
            select(AgentRelation)
            .where(*_in_graph(agent_relation_table, scope))
            .where(
                or_(
                    agent_relation_table.c.source_agent_id.in_(ids),
                    agent_relation_table.c.target_agent_id.in_(ids),
                )
            )
            .order_by(agent_relation_table.c.id)
        )
        return list(self.session.scalars(stmt))

    @staticmethod
    def _criteria(
        scope: GraphScope,
        source_agent_id: str | None,
        target_agent_id: str | None,
        relation_type: RelationType | None,
    ) -> list[ColumnElement[bool]]:
        criteria = _in_graph(agent_relation_table, scope)
        if source_agent_id is not None:
            criteria.append(agent_relation_table.c.source_agent_id == source_agent_id)
        if target_agent_id is not None:
            criteria.append(agent_relation_table.c.target_agent_id == target_agent_id)
        if relation_type is not None:
            criteria.append(agent_relation_table.c.relation_type == relation_type)
        return criteria


class SqlAlchemyContextConfigRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: ContextConfig) -> None:
        self.session.add(entity)

    def remove(self, entity: ContextConfig) -> None:
        self.session.delete(entity)

    def get(self, scope: GraphScope) -> ContextConfig | None:
        stmt = (
            select(ContextConfig)
            .where(*_in_graph(context_config_table, scope))
            .order_by(context_config_table.c.created_at)
            .limit(1)
        )
        return self.session.scalars(stmt).first()


class SqlAlchemyProjectCatalog:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, resource: ProjectResource) -> None:
        self.session.add(resource)

    def existing_ids(
        self,
        scope: ProjectScope,
        kind: ResourceKind,
        ids: Collection[str],
    ) -> set[str]:
        if not ids:
            return set()
        stmt = (
            select(project_resource_table.c.id)
            .where(*_in_project(project_resource_table, scope))
            .where(project_resource_table.c.kind == kind)
            .where(project_resource_table.c.id.in_(list(ids)))
        )
        return set(self.session.scalars(stmt))

    def find(
        self,
        scope: ProjectScope,
        *,
        kind: ResourceKind | None = None,
    ) -> list[ProjectResource]:
        stmt = select(ProjectResource).where(*_in_project(project_resource_table, scope))
        if kind is not None:
            stmt = stmt.where(project_resource_table.c.kind == kind)
        stmt = stmt.order_by(project_resource_table.c.kind, project_resource_table.c.id)
        return list(self.session.scalars(stmt))
