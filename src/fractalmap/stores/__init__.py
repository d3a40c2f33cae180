from __future__ import annotations

from .task import ScoredTask, TaskStore, UnknownTaskError

__all__ = [
    "ScoredTask",
    "TaskStore",
    "UnknownTaskError",
]
