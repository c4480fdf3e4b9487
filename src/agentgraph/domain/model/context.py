"""Context configuration owned by a graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from agentgraph.domain.model.entity import utcnow
from agentgraph.domain.model.enums import ContextSourceType

if TYPE_CHECKING:
    from datetime import datetime

type JsonValue = str | int | float | bool | None | list[JsonValue] | dict[str, JsonValue]


@dataclass(frozen=True, slots=True, kw_only=True)
class StaticContextSource:
    content: JsonValue

    SOURCE_TYPE: ClassVar[ContextSourceType] = ContextSourceType.STATIC


@dataclass(frozen=True, slots=True, kw_only=True)
class FetchContextSource:
    url: str
    method: str = "GET"
    headers: tuple[tuple[str, str], ...] = ()

    SOURCE_TYPE: ClassVar[ContextSourceType] = ContextSourceType.FETCH


type ContextSource = StaticContextSource | FetchContextSource


@dataclass(eq=False, kw_only=True)
class ContextConfig:
    """Ordered context sources attached to exactly one graph."""

    tenant_id: str
    project_id: str
    graph_id: str
    id: str
    name: str | None = None
    description: str | None = None
    context_sources: list[ContextSource] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


def context_source_to_json(source: ContextSource) -> dict[str, JsonValue]:
    if isinstance(source, StaticContextSource):
        return {"type": source.SOURCE_TYPE.value, "content": source.content}
    return {
        "type": source.SOURCE_TYPE.value,
        "url": source.url,
        "method": source.method,
        "headers": dict(source.headers),
    }


def context_source_from_json(payload: dict[str, JsonValue]) -> ContextSource:
    source_type = ContextSourceType(str(payload.get("type") or ContextSourceType.STATIC))
    if source_type is ContextSourceType.STATIC:
        return StaticContextSource(content=payload.get("content"))
    headers = payload.get("headers") or {}
    if not isinstance(headers, dict):
        raise TypeError("Fetch context source headers must be an object")
    return FetchContextSource(
        url=str(payload["url"]),
        method=str(payload.get("method") or "GET"),
        headers=tuple(sorted((str(key), str(value)) for key, value in headers.items())),
    )
