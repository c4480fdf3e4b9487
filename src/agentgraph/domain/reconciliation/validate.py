"""Referential validation of a full-graph submission.

Responsibilities of this stage:
- reject payloads whose shape makes further checks meaningless (no agents,
  agent key/id mismatch, missing name for a new graph)
- check every tool, data component and artifact component reference against
  the project catalog, one batched lookup per resource kind
- check the default agent and every derived relation target against the
  submitted agent set

Reference violations from all categories are collected into one report; the
stage never writes.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agentgraph.domain.errors import (
    FieldError,
    ReferenceValidationError,
    ReferenceViolation,
    SchemaValidationError,
    json_pointer,
)
from agentgraph.domain.model import ReferenceKind, RelationType

from .definition import UNSET, InternalAgentDefinition

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from agentgraph.domain.model import ProjectScope, ToolSelection
    from agentgraph.domain.ports import ProjectCatalog

    from .definition import FullGraphDefinition, Maybe
    from .policy import RelationPolicy
    from .snapshot import GraphSnapshot

_RESOURCE_LABELS: dict[ReferenceKind, str] = {
    ReferenceKind.TOOL: "Tool",
    ReferenceKind.DATA_COMPONENT: "Data component",
    ReferenceKind.ARTIFACT_COMPONENT: "Artifact component",
}


@dataclass(frozen=True, slots=True, kw_only=True)
class ResourceReference:
    kind: ReferenceKind
    resource_id: str
    pointer: str
    agent_id: str


@dataclass(slots=True)
class ValidationReport:
    violations: list[ReferenceViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def extend(self, violations: Iterable[ReferenceViolation]) -> None:
        self.violations.extend(violations)

    def raise_for_violations(self) -> None:
        if self.violations:
            raise ReferenceValidationError(self.violations)


def listed[T](value: Maybe[Sequence[T] | None]) -> Sequence[T]:
    """Items of an optional list field; omitted and null both contribute nothing."""

    if value is UNSET or value is None:
        return ()
    return value


def agent_resource_references(
    agent_id: str,
    *,
    pointer: Sequence[str],
    tools: Sequence[str] = (),
    can_use: Sequence[ToolSelection] = (),
    data_components: Sequence[str] = (),
    artifact_components: Sequence[str] = (),
) -> Iterator[ResourceReference]:
    """Yield each catalog reference held by one agent, addressed under ``pointer``."""

    for index, tool_id in enumerate(tools):
        yield ResourceReference(
            kind=ReferenceKind.TOOL,
            resource_id=tool_id,
            pointer=json_pointer(*pointer, "tools", index),
            agent_id=agent_id,
        )
    for index, selection in enumerate(can_use):
        yield ResourceReference(
            kind=ReferenceKind.TOOL,
            resource_id=selection.tool_id,
            pointer=json_pointer(*pointer, "canUse", index, "toolId"),
            agent_id=agent_id,
        )
    for index, component_id in enumerate(data_components):
        yield ResourceReference(
            kind=ReferenceKind.DATA_COMPONENT,
            resource_id=component_id,
            pointer=json_pointer(*pointer, "dataComponents", index),
            agent_id=agent_id,
        )
    for index, component_id in enumerate(artifact_components):
        yield ResourceReference(
            kind=ReferenceKind.ARTIFACT_COMPONENT,
            resource_id=component_id,
            pointer=json_pointer(*pointer, "artifactComponents", index),
            agent_id=agent_id,
        )


def resource_reference_violations(
    catalog: ProjectCatalog,
    scope: ProjectScope,
    references: Iterable[ResourceReference],
) -> list[ReferenceViolation]:
    by_kind: dict[ReferenceKind, list[ResourceReference]] = defaultdict(list)
    for reference in references:
        by_kind[reference.kind].append(reference)

    violations: list[ReferenceViolation] = []
    for kind in ReferenceKind:
        kind_references = by_kind.get(kind)
        resource_kind = kind.resource_kind
        if not kind_references or resource_kind is None:
            continue
        requested = {reference.resource_id for reference in kind_references}
        existing = catalog.existing_ids(scope, resource_kind, requested)
        violations.extend(
            ReferenceViolation(
                kind=kind,
                reference_id=reference.resource_id,
                reason=(
                    f"{_RESOURCE_LABELS[kind]} '{reference.resource_id}' "
                    f"not found in project '{scope.project_id}'"
                ),
                pointer=reference.pointer,
                agent_id=reference.agent_id,
            )
            for reference in kind_references
            if reference.resource_id not in existing
        )
    return violations


def check_definition_shape(definition: FullGraphDefinition, *, exists: bool) -> None:
    if not definition.agents:
        raise SchemaValidationError([FieldError("/agents", "At least one agent is required")])

    errors: list[FieldError] = [
        FieldError(
            json_pointer("agents", key, "id"),
            f"Agent id '{agent.id}' does not match its key '{key}'",
        )
        for key, agent in definition.agents.items()
        if key != agent.id
    ]
    if not exists and definition.name is UNSET:
        errors.append(FieldError("/name", "Field required when creating a graph"))
    if errors:
        raise SchemaValidationError(errors)


def validate_full_graph(
    definition: FullGraphDefinition,
    *,
    scope: ProjectScope,
    catalog: ProjectCatalog,
    persisted: GraphSnapshot | None,
    policy: RelationPolicy,
) -> ValidationReport:
    """Check ``definition`` against the catalog and itself; raise only for shape errors."""

    check_definition_shape(definition, exists=persisted is not None)

    report = ValidationReport()
    report.extend(resource_reference_violations(catalog, scope, _definition_references(definition)))
    report.extend(_default_agent_violations(definition, persisted))
    report.extend(_relationship_violations(definition, policy))
    if persisted is not None and not policy.allow_self_relations:
        report.extend(_kept_self_relation_violations(definition, persisted))
    return report


def _definition_references(definition: FullGraphDefinition) -> Iterator[ResourceReference]:
    for agent in definition.agents.values():
        if not isinstance(agent, InternalAgentDefinition):
            continue
        yield from agent_resource_references(
            agent.id,
            pointer=("agents", agent.id),
            tools=listed(agent.tools),
            can_use=listed(agent.can_use),
            data_components=listed(agent.data_components),
            artifact_components=listed(agent.artifact_components),
        )


def _default_agent_violations(
    definition: FullGraphDefinition,
    persisted: GraphSnapshot | None,
) -> list[ReferenceViolation]:
    default_agent_id = definition.default_agent_id
    if default_agent_id is UNSET:
        kept = persisted.graph.default_agent_id if persisted is not None else None
        if kept is None or kept in definition.agents:
            return []
        reason = (
            f"defaultAgentId '{kept}' is kept from the stored graph "
            "but is not among the submitted agents"
        )
        default_agent_id = kept
    elif default_agent_id is None or default_agent_id in definition.agents:
        return []
    else:
        reason = f"defaultAgentId '{default_agent_id}' does not match any submitted agent"

    return [
        ReferenceViolation(
            kind=ReferenceKind.DEFAULT_AGENT,
            reference_id=default_agent_id,
            reason=reason,
            pointer="/defaultAgentId",
        )
    ]


def _relationship_violations(
    definition: FullGraphDefinition,
    policy: RelationPolicy,
) -> list[ReferenceViolation]:
    violations: list[ReferenceViolation] = []
    for agent in definition.agents.values():
        if not isinstance(agent, InternalAgentDefinition):
            continue
        for field_name, targets in (
            ("canTransferTo", agent.can_transfer_to),
            ("canDelegateTo", agent.can_delegate_to),
        ):
            for index, target_id in enumerate(listed(targets)):
                if target_id not in definition.agents:
                    reason = f"{field_name} of agent '{agent.id}' references unknown agent '{target_id}'"
                elif target_id == agent.id and not policy.allow_self_relations:
                    reason = f"Agent '{agent.id}' cannot list itself in {field_name}"
                else:
                    continue
                violations.append(
                    ReferenceViolation(
                        kind=ReferenceKind.RELATIONSHIP,
                        reference_id=target_id,
                        reason=reason,
                        pointer=json_pointer("agents", agent.id, field_name, index),
                        agent_id=agent.id,
                    )
                )
    return violations


def _kept_self_relation_violations(
    definition: FullGraphDefinition,
    persisted: GraphSnapshot,
) -> list[ReferenceViolation]:
    """Stored self-relations an omitted array would carry over."""

    outgoing = persisted.outgoing()
    violations: list[ReferenceViolation] = []
    for agent in definition.agents.values():
        if not isinstance(agent, InternalAgentDefinition) or not persisted.is_internal(agent.id):
            continue
        for field_name, relation_type, targets in (
            ("canTransferTo", RelationType.TRANSFER, agent.can_transfer_to),
            ("canDelegateTo", RelationType.DELEGATE, agent.can_delegate_to),
        ):
            if targets is not UNSET:
                continue
            if any(row.target_agent_id == agent.id for row in outgoing.get((agent.id, relation_type), ())):
                violations.append(
                    ReferenceViolation(
                        kind=ReferenceKind.RELATIONSHIP,
                        reference_id=agent.id,
                        reason=(
                            f"Agent '{agent.id}' has a stored {relation_type} relation to itself; "
                            f"submit {field_name} explicitly to drop it"
                        ),
                        pointer=json_pointer("agents", agent.id, field_name),
                        agent_id=agent.id,
                    )
                )
    return violations
