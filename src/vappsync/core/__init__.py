"""Reconciliation engine, configuration and state persistence."""

from vappsync.core.config import ConfigManager
from vappsync.core.engine import StateEngine
from vappsync.core.store import StateStore

__all__ = [
    "ConfigManager",
    "StateEngine",
    "StateStore",
]
