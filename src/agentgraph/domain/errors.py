"""Error taxonomy shared by the reconciliation engine and the scoped services.

The HTTP layer maps each class to a problem-details status; see
``agentgraph.api.problems``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentgraph.domain.model.enums import ReferenceKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class AgentGraphError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def json_pointer(*tokens: str | int) -> str:
    """Build an RFC 6901 pointer such as ``/agents/a1/tools/0``."""

    escaped = (str(token).replace("~", "~0").replace("/", "~1") for token in tokens)
    return "".join(f"/{token}" for token in escaped)


@dataclass(frozen=True, slots=True)
class FieldError:
    """A single malformed field, addressed by JSON pointer."""

    pointer: str
    reason: str

    @property
    def name(self) -> str:
        return self.pointer.lstrip("/").replace("/", ".")


class SchemaValidationError(AgentGraphError):
    def __init__(
        self,
        fields: Sequence[FieldError],
        detail: str = "Request validation failed",
    ) -> None:
        super().__init__(detail)
        self.fields = tuple(fields)


@dataclass(frozen=True, slots=True, kw_only=True)
class ReferenceViolation:
    kind: ReferenceKind
    reference_id: str
    reason: str
    pointer: str
    agent_id: str | None = None


_KIND_SUMMARIES: dict[ReferenceKind, str] = {
    ReferenceKind.TOOL: "Tool reference validation failed",
    ReferenceKind.DATA_COMPONENT: "DataComponent reference validation failed",
    ReferenceKind.ARTIFACT_COMPONENT: "ArtifactComponent reference validation failed",
    ReferenceKind.RELATIONSHIP: "Agent relationship validation failed",
}


def summarize_violations(violations: Iterable[ReferenceViolation]) -> str:
    """One sentence per violated reference kind, in first-seen order."""

    parts: list[str] = []
    for violation in violations:
        if violation.kind is ReferenceKind.DEFAULT_AGENT:
            part = f"Default agent {violation.reference_id} does not exist in agents"
        else:
            part = _KIND_SUMMARIES[violation.kind]
        if part not in parts:
            parts.append(part)
    return "; ".join(parts)


class ReferenceValidationError(AgentGraphError):
    """Raised with every dangling reference detected in one pass."""

    def __init__(self, violations: Sequence[ReferenceViolation], detail: str | None = None) -> None:
        if not violations:
            raise ValueError("ReferenceValidationError requires at least one violation")
        super().__init__(detail or summarize_violations(violations))
        self.violations = tuple(violations)

    @property
    def kinds(self) -> frozenset[ReferenceKind]:
        return frozenset(violation.kind for violation in self.violations)


class NotFoundError(AgentGraphError):
    pass


class ConflictError(AgentGraphError):
    """Concurrent or duplicate write.

    ``retryable`` is true when the same request may succeed later (a version or
    lock conflict) and false when it collides with data that is already there.
    """

    def __init__(self, detail: str, *, retryable: bool = True) -> None:
        super().__init__(detail)
        self.retryable = retryable


class InternalError(AgentGraphError):
    """Failure callers cannot act on; details are logged, never returned."""


class ReconciliationInvariantError(InternalError):
    pass


class StorageError(InternalError):
    pass
