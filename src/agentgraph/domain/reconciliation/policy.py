"""Relation policy applied by full-graph validation and scoped relation writes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RelationPolicy:
    """Whether self-relations and duplicate ``(source, target, type)`` rows are accepted.

    Full-graph submissions always collapse duplicate triples, so
    ``allow_duplicate_relations`` only affects scoped relation creation/update.
    """

    allow_self_relations: bool = True
    allow_duplicate_relations: bool = False
