from __future__ import annotations

import random
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from ..config import resolve_state_dir
from ..model import TaskNode, now_ms


DEFAULT_PRIORITY = 1
MS_PER_DAY = 1000 * 60 * 60 * 24

# score = priority * 10 + age_days * 2 + U(0, 5)
PRIORITY_WEIGHT = 10.0
AGE_WEIGHT_PER_DAY = 2.0
JITTER_RANGE = 5.0


_SCHEMA = """
PRAGMA journal_mode=WAL;
CREATE TABLE IF NOT EXISTS nodes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    parent_id INTEGER,
    priority INTEGER NOT NULL DEFAULT 1,
    is_completed INTEGER NOT NULL DEFAULT 0,
    deadline INTEGER,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    FOREIGN KEY(parent_id) REFERENCES nodes(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_nodes_parent ON nodes(parent_id);
CREATE INDEX IF NOT EXISTS idx_nodes_completed_priority
    ON nodes(is_completed, priority DESC);
"""

_COLUMNS = "id, title, parent_id, priority, is_completed, deadline, created_at"

_LEAF_CLAUSE = """
    NOT EXISTS (SELECT 1 FROM nodes c WHERE c.parent_id = n.id)
    AND n.is_completed = 0
"""


class UnknownTaskError(ValueError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"unknown task: {task_id}")
        self.task_id = task_id


@dataclass(frozen=True)
class ScoredTask:
    task: TaskNode
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {**self.task.to_dict(), "score": self.score}


def _normalize_title(title: str) -> str:
    value = str(title).strip()
    if not value:
        raise ValueError("title cannot be empty")
    return value


def _normalize_priority(priority: int) -> int:
    value = int(priority)
    if value < 0:
        raise ValueError("priority must be a non-negative integer")
    return value


def _row_to_task(row: sqlite3.Row) -> TaskNode:
    return TaskNode(
        id=int(row["id"]),
        title=str(row["title"]),
        parent_id=(int(row["parent_id"]) if row["parent_id"] is not None else None),
        priority=int(row["priority"]),
        is_completed=bool(row["is_completed"]),
        created_at=int(row["created_at"]),
        deadline=(int(row["deadline"]) if row["deadline"] is not None else None),
    )


def score_task(task: TaskNode, *, now: int, jitter: float) -> float:
    age_days = max(0, now - task.created_at) / MS_PER_DAY
    return (
        task.priority * PRIORITY_WEIGHT
        + age_days * AGE_WEIGHT_PER_DAY
        + jitter * JITTER_RANGE
    )


@dataclass
class TaskStore:
    """Flat task rows in ``<state_dir>/tasks.sqlite3``.

    Every row but the roots points at its parent; deleting a row removes its
    whole subtree so no parent reference is ever left dangling.
    """

    root: Path
    create_on_connect: bool = True

    @classmethod
    def from_workdir(
        cls,
        cwd: Path | None = None,
        *,
        create: bool = True,
    ) -> "TaskStore":
        return cls(
            resolve_state_dir(cwd, create=create),
            create_on_connect=create,
        )

    @property
    def db_path(self) -> Path:
        return self.root / "tasks.sqlite3"

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """One transaction on a fresh connection, closed on exit."""
        if self.create_on_connect:
            self.root.mkdir(parents=True, exist_ok=True)
        elif not self.db_path.exists():
            raise FileNotFoundError(str(self.db_path))
        conn = sqlite3.connect(self.db_path)
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys=ON")
            conn.executescript(_SCHEMA)
            with conn:
                yield conn
        finally:
            conn.close()

    def _require(self, conn: sqlite3.Connection, task_id: int) -> None:
        row = conn.execute(
            "SELECT 1 FROM nodes WHERE id = ?", (int(task_id),)
        ).fetchone()
        if row is None:
            raise UnknownTaskError(int(task_id))

    def create(
        self,
        title: str,
        *,
        parent_id: int | None = None,
        priority: int = DEFAULT_PRIORITY,
        deadline: int | None = None,
    ) -> TaskNode:
        task_title = _normalize_title(title)
        task_priority = _normalize_priority(priority)
        now = now_ms()

        with self._connect() as conn:
            if parent_id is not None:
                self._require(conn, parent_id)
            cur = conn.execute(
                """
                INSERT INTO nodes(
                    title, parent_id, priority, is_completed, deadline, created_at, updated_at
                )
                VALUES(?, ?, ?, 0, ?, ?, ?)
                """,
                (
                    task_title,
                    (int(parent_id) if parent_id is not None else None),
                    task_priority,
                    (int(deadline) if deadline is not None else None),
                    now,
                    now,
                ),
            )
            task_id = int(cur.lastrowid)

        task = self.get(task_id)
        if task is None:
            raise RuntimeError("created task could not be loaded")
        return task

    def ensure_root(self, title: str = "Goals") -> TaskNode:
        """Return the first root, creating one when the store is empty."""
        for task in self.list_tasks():
            if task.parent_id is None:
                return task
        return self.create(title)

    def get(self, task_id: int) -> TaskNode | None:
        if not self.db_path.exists():
            return None
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM nodes WHERE id = ?",
                (int(task_id),),
            ).fetchone()
        if row is None:
            return None
        return _row_to_task(row)

    def list_tasks(self) -> list[TaskNode]:
        if not self.db_path.exists():
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM nodes ORDER BY id ASC"
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def list_actionable_leaves(self) -> list[TaskNode]:
        if not self.db_path.exists():
            return []
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM nodes n
                WHERE {_LEAF_CLAUSE}
                ORDER BY n.priority DESC, n.id ASC
                """
            ).fetchall()
        return [_row_to_task(row) for row in rows]

    def update(
        self,
        task_id: int,
        *,
        title: str | None = None,
        priority: int | None = None,
        is_completed: bool | None = None,
    ) -> TaskNode:
        sets: list[str] = []
        params: list[Any] = []
        if title is not None:
            sets.append("title = ?")
            params.append(_normalize_title(title))
        if priority is not None:
            sets.append("priority = ?")
            params.append(_normalize_priority(priority))
        if is_completed is not None:
            sets.append("is_completed = ?")
            params.append(1 if is_completed else 0)

        with self._connect() as conn:
            self._require(conn, task_id)
            if sets:
                sets.append("updated_at = ?")
                params.append(now_ms())
                params.append(int(task_id))
                conn.execute(
                    f"UPDATE nodes SET {', '.join(sets)} WHERE id = ?",
                    tuple(params),
                )

        task = self.get(task_id)
        if task is None:
            raise UnknownTaskError(int(task_id))
        return task

    def set_priority(self, task_id: int, priority: int) -> TaskNode:
        return self.update(task_id, priority=priority)

    def set_completed(self, task_id: int, is_completed: bool) -> TaskNode:
        return self.update(task_id, is_completed=is_completed)

    def delete(self, task_id: int) -> list[int]:
        """Delete a task and every descendant. Returns the deleted ids."""
        with self._connect() as conn:
            self._require(conn, task_id)
            rows = conn.execute(
                """
                WITH RECURSIVE subtree(id) AS (
                    SELECT id FROM nodes WHERE id = ?
                    UNION
                    SELECT n.id FROM nodes n JOIN subtree s ON n.parent_id = s.id
                )
                SELECT id FROM subtree ORDER BY id ASC
                """,
                (int(task_id),),
            ).fetchall()
            deleted = [int(row["id"]) for row in rows]
            conn.executemany(
                "DELETE FROM nodes WHERE id = ?",
                [(node_id,) for node_id in reversed(deleted)],
            )
        return deleted

    def choose_actionable(
        self,
        *,
        now: int | None = None,
        rng: random.Random | None = None,
    ) -> ScoredTask | None:
        """Pick one actionable leaf by weighted score; None when nothing is left."""
        leaves = self.list_actionable_leaves()
        if not leaves:
            return None
        clock = now_ms() if now is None else int(now)
        source = rng or random.Random()
        scored = [
            ScoredTask(task, score_task(task, now=clock, jitter=source.random()))
            for task in leaves
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[0]

    def counts(self) -> dict[str, int]:
        tasks = self.list_tasks()
        parents = {task.parent_id for task in tasks if task.parent_id is not None}
        leaves = [task for task in tasks if task.id not in parents]
        return {
            "total": len(tasks),
            "roots": sum(1 for task in tasks if task.parent_id is None),
            "leaves": len(leaves),
            "completed_leaves": sum(1 for task in leaves if task.is_completed),
            "actionable": sum(1 for task in leaves if not task.is_completed),
        }
