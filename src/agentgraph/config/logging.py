"""Shared logging helpers for the agent graph service."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "AGENTGRAPH_LOG_LEVEL"


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the level
    defaults to ``AGENTGRAPH_LOG_LEVEL`` (falling back to INFO) and a terse format
    suitable for CLI and server output. Pass ``force=True`` to reconfigure during
    tests or specialised entry points.
    """

    logging.basicConfig(
        level=level if level is not None else level_from_env(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


def level_from_env(default: int = logging.INFO) -> int:
    raw = os.getenv(LOG_LEVEL_ENV)
    if not raw:
        return default
    resolved = logging.getLevelName(raw.strip().upper())
    return resolved if isinstance(resolved, int) else default
