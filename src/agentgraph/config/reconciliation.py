"""Relation policy and retry defaults for graph reconciliation."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, env_int

DEFAULT_CONFLICT_RETRIES = 2


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    allow_self_relations: bool = True
    allow_duplicate_relations: bool = False
    conflict_retries: int = DEFAULT_CONFLICT_RETRIES


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        allow_self_relations=env_flag("AGENTGRAPH_ALLOW_SELF_RELATIONS", default=True),
        allow_duplicate_relations=env_flag("AGENTGRAPH_ALLOW_DUPLICATE_RELATIONS", default=False),
        conflict_retries=env_int(
            "AGENTGRAPH_CONFLICT_RETRIES",
            default=DEFAULT_CONFLICT_RETRIES,
            minimum=0,
        ),
    )
