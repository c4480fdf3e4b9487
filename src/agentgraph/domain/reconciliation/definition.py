"""Client-supplied target state of a graph.

Optional fields default to ``UNSET`` so the differ can tell an omitted field
(preserve what is persisted) from an explicit ``None`` (clear it). The HTTP
schema layer builds these from ``model_fields_set``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Final, Literal

from agentgraph.domain.model import AgentType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from agentgraph.domain.model import ContextSource, ToolSelection


class _Unset(Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset.UNSET

type Maybe[T] = T | Literal[_Unset.UNSET]


def is_set[T](value: Maybe[T]) -> bool:
    return value is not UNSET


def pick[T](value: Maybe[T], fallback: T) -> T:
    """Return ``value`` unless it was omitted, in which case keep ``fallback``."""
    return fallback if value is UNSET else value


@dataclass(frozen=True, slots=True, kw_only=True)
class InternalAgentDefinition:
    id: str
    name: str
    description: Maybe[str | None] = UNSET
    prompt: Maybe[str | None] = UNSET
    tools: Maybe[tuple[str, ...] | None] = UNSET
    can_use: Maybe[tuple[ToolSelection, ...] | None] = UNSET
    data_components: Maybe[tuple[str, ...] | None] = UNSET
    artifact_components: Maybe[tuple[str, ...] | None] = UNSET
    can_transfer_to: Maybe[tuple[str, ...] | None] = UNSET
    can_delegate_to: Maybe[tuple[str, ...] | None] = UNSET

    AGENT_TYPE: ClassVar[AgentType] = AgentType.INTERNAL


@dataclass(frozen=True, slots=True, kw_only=True)
class ExternalAgentDefinition:
    id: str
    name: str
    base_url: str
    description: Maybe[str | None] = UNSET

    AGENT_TYPE: ClassVar[AgentType] = AgentType.EXTERNAL


type AgentDefinition = InternalAgentDefinition | ExternalAgentDefinition


@dataclass(frozen=True, slots=True, kw_only=True)
class ContextConfigDefinition:
    """Replacement context configuration; an absent ``id`` keeps the persisted one."""

    id: str | None = None
    name: str | None = None
    description: str | None = None
    context_sources: tuple[ContextSource, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class FullGraphDefinition:
    id: str
    agents: Mapping[str, AgentDefinition] = field(default_factory=dict)
    name: Maybe[str] = UNSET
    description: Maybe[str | None] = UNSET
    default_agent_id: Maybe[str | None] = UNSET
    context_config: Maybe[ContextConfigDefinition | None] = UNSET
