"""HTTP surface for the agent graph management service."""

from __future__ import annotations

from .app import create_app
from .dependencies import ApiServices

__all__ = ["ApiServices", "create_app"]
