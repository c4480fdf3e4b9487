"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AgentType(StrEnum):
    """Discriminator of the agent tagged union."""

    INTERNAL = "internal"
    EXTERNAL = "external"


class RelationType(StrEnum):
    TRANSFER = "transfer"
    DELEGATE = "delegate"


class ResourceKind(StrEnum):
    """Project-scoped catalog entries agents may reference by id."""

    TOOL = "tool"
    DATA_COMPONENT = "data_component"
    ARTIFACT_COMPONENT = "artifact_component"


class ReferenceKind(StrEnum):
    """Kinds of reference reported by graph validation."""

    TOOL = "tool"
    DATA_COMPONENT = "dataComponent"
    ARTIFACT_COMPONENT = "artifactComponent"
    RELATIONSHIP = "relationship"
    DEFAULT_AGENT = "defaultAgent"

    @property
    def resource_kind(self) -> ResourceKind | None:
        return _RESOURCE_KIND_BY_REFERENCE.get(self)


_RESOURCE_KIND_BY_REFERENCE: dict[ReferenceKind, ResourceKind] = {
    ReferenceKind.TOOL: ResourceKind.TOOL,
    ReferenceKind.DATA_COMPONENT: ResourceKind.DATA_COMPONENT,
    ReferenceKind.ARTIFACT_COMPONENT: ResourceKind.ARTIFACT_COMPONENT,
}


class ContextSourceType(StrEnum):
    STATIC = "static"
    FETCH = "fetch"
