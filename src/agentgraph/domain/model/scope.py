"""Tenant/project/graph scope value objects.

Every persisted row is addressed through one of these scopes. The HTTP layer
builds them from path parameters after authentication, and the domain trusts
them as given.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProjectScope:
    tenant_id: str
    project_id: str

    def graph(self, graph_id: str) -> GraphScope:
        return GraphScope(tenant_id=self.tenant_id, project_id=self.project_id, graph_id=graph_id)


@dataclass(frozen=True, slots=True)
class GraphScope:
    tenant_id: str
    project_id: str
    graph_id: str

    @property
    def project(self) -> ProjectScope:
        return ProjectScope(tenant_id=self.tenant_id, project_id=self.project_id)

    def key(self, entity_id: str) -> tuple[str, str, str, str]:
        """Primary key tuple of a graph-owned row."""
        return (self.tenant_id, self.project_id, self.graph_id, entity_id)
