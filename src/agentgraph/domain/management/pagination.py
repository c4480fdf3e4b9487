"""Page requests and pages for list operations."""

from __future__ import annotations

import math
from dataclasses import dataclass

from agentgraph.domain.errors import FieldError, SchemaValidationError

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


@dataclass(frozen=True, slots=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    def __post_init__(self) -> None:
        errors: list[FieldError] = []
        if self.page < 1:
            errors.append(FieldError("/page", "page must be >= 1"))
        if not 1 <= self.limit <= MAX_PAGE_LIMIT:
            errors.append(FieldError("/limit", f"limit must be between 1 and {MAX_PAGE_LIMIT}"))
        if errors:
            raise SchemaValidationError(errors)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class Page[T]:
    items: tuple[T, ...]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        # An unbounded page (limit 0) holds everything on a single page.
        if self.limit == 0:
            return 1
        return math.ceil(self.total / self.limit)

    @classmethod
    def single(cls, items: tuple[T, ...]) -> Page[T]:
        """Wrap an unpaginated result so it can share the list response shape."""
        return cls(items=items, page=1, limit=len(items), total=len(items))
