"""Mutation -> re-fetch -> recompute cycle between a client and a TreeState."""

from __future__ import annotations

import logging
from typing import Awaitable, TypeVar

from .client import TaskClient, TransportError
from .model import TaskNode
from .stores.task import UnknownTaskError
from .tree import TreeState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TreeSession:
    """Drives a ``TreeState`` from a ``TaskClient``.

    Mutations are never applied locally: each one is awaited and followed by
    a full re-fetch. A transport failure keeps the last good view and sets
    ``error`` until the next successful call.
    """

    def __init__(self, client: TaskClient, state: TreeState | None = None) -> None:
        self.client = client
        self.state = state or TreeState()
        self.error: str | None = None

    def _fail(self, action: str, exc: TransportError) -> None:
        self.error = f"could not {action}: {exc}"
        logger.warning("%s", self.error)

    def _require(self, task_id: int) -> TaskNode:
        record = self.state.record(task_id)
        if record is None:
            raise UnknownTaskError(task_id)
        return record

    async def refresh(self) -> bool:
        """Fetch every task and load it; False on failure or a stale response."""
        token = self.state.begin_load()
        try:
            records = await self.client.list_tasks()
        except TransportError as exc:
            self._fail("load tasks", exc)
            return False
        self.error = None
        return self.state.load_records(records, token=token)

    async def _mutate(self, action: str, call: Awaitable[T]) -> T | None:
        try:
            result = await call
        except TransportError as exc:
            self._fail(action, exc)
            return None
        self.error = None
        await self.refresh()
        return result

    async def add_task(
        self,
        title: str,
        *,
        parent_id: int | None = None,
        priority: int = 1,
    ) -> TaskNode | None:
        if parent_id is not None:
            self._require(parent_id)
        return await self._mutate(
            "create task",
            self.client.create_task(title, parent_id=parent_id, priority=priority),
        )

    async def rename(self, task_id: int, title: str) -> TaskNode | None:
        self._require(task_id)
        return await self._mutate(
            "rename task", self.client.update_task(task_id, title=title)
        )

    async def set_priority(self, task_id: int, priority: int) -> TaskNode | None:
        self._require(task_id)
        return await self._mutate(
            "change priority", self.client.update_task(task_id, priority=priority)
        )

    async def toggle(self, task_id: int) -> TaskNode | None:
        """Flip completion; the visible node shows as pending until the refresh."""
        record = self._require(task_id)
        target = not record.is_completed
        self.state.mark_pending(task_id, target)
        result = await self._mutate(
            "toggle task", self.client.update_task(task_id, is_completed=target)
        )
        # Clears the flag when the update or its refresh failed.
        self.state.discard_pending()
        return result

    async def delete(self, task_id: int) -> list[int] | None:
        record = self._require(task_id)
        if record.is_root:
            raise ValueError(f"refusing to delete root task {task_id}")
        return await self._mutate("delete task", self.client.delete_task(task_id))

    async def leaves(self) -> list[TaskNode] | None:
        try:
            rows = await self.client.list_actionable_leaves()
        except TransportError as exc:
            self._fail("load actionable tasks", exc)
            return None
        self.error = None
        return rows

    async def choose(self) -> TaskNode | None:
        try:
            task = await self.client.choose_actionable_task()
        except TransportError as exc:
            self._fail("choose a task", exc)
            return None
        self.error = None
        return task
