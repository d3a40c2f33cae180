from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from fractalmap.model import TaskNode
from fractalmap.stores import TaskStore


def task(
    node_id: int,
    parent_id: int | None = None,
    *,
    done: bool = False,
    priority: int = 1,
    title: str | None = None,
) -> TaskNode:
    return TaskNode(
        id=node_id,
        title=title or f"task {node_id}",
        parent_id=parent_id,
        priority=priority,
        is_completed=done,
    )


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("FRACTAL_STATE_DIR", "FRACTAL_SERVER_URL", "FRACTAL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield
    # The CLI installs a handler bound to the captured stderr of its test.
    logger = logging.getLogger("fractalmap")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / ".fractal")


@pytest.fixture
def sample_records() -> list[TaskNode]:
    """1 -> (2, 3); 2 -> (4, 5); 3 -> (6)."""
    return [
        task(1),
        task(2, 1),
        task(3, 1),
        task(4, 2, done=True),
        task(5, 2),
        task(6, 3, done=True),
    ]
