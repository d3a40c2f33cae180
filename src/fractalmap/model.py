"""Flat task record shared by the store, the HTTP layer and the tree engine."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Mapping


def now_ms() -> int:
    """Epoch milliseconds, the unit of every stored timestamp."""
    return int(time.time() * 1000)


def _as_optional_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)  # type: ignore[arg-type]


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


@dataclass(frozen=True)
class TaskNode:
    id: int
    title: str
    parent_id: int | None = None
    priority: int = 1
    is_completed: bool = False
    created_at: int = 0
    deadline: int | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> TaskNode:
        return cls(
            id=int(payload["id"]),
            title=str(payload.get("title") or ""),
            parent_id=_as_optional_int(payload.get("parent_id")),
            priority=int(payload.get("priority") or 0),
            is_completed=_as_bool(payload.get("is_completed", False)),
            created_at=int(payload.get("created_at") or 0),
            deadline=_as_optional_int(payload.get("deadline")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
