"""Async HTTP client for the task repository."""

from __future__ import annotations

from typing import Any

import httpx

from .config import FractalConfig
from .model import TaskNode


class TransportError(RuntimeError):
    """A fetch or mutation against the repository did not complete."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TaskClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: FractalConfig) -> TaskClient:
        return cls(config.server_url, timeout=config.timeout)

    async def __aenter__(self) -> TaskClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            detail = ""
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                detail = str(payload.get("detail") or payload.get("error") or "")
            message = f"{method} {path} returned {response.status_code}"
            if detail:
                message += f": {detail}"
            raise TransportError(message, status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{method} {path} returned invalid JSON") from exc

    async def list_tasks(self) -> list[TaskNode]:
        rows = await self._request("GET", "/nodes")
        return [TaskNode.from_dict(row) for row in rows]

    async def list_actionable_leaves(self) -> list[TaskNode]:
        rows = await self._request("GET", "/leaves")
        return [TaskNode.from_dict(row) for row in rows]

    async def create_task(
        self,
        title: str,
        *,
        parent_id: int | None = None,
        priority: int = 1,
        deadline: int | None = None,
    ) -> TaskNode:
        body: dict[str, Any] = {
            "title": title,
            "parent_id": parent_id,
            "priority": priority,
        }
        if deadline is not None:
            body["deadline"] = deadline
        row = await self._request("POST", "/nodes", json=body)
        return TaskNode.from_dict(row)

    async def update_task(
        self,
        task_id: int,
        *,
        title: str | None = None,
        priority: int | None = None,
        is_completed: bool | None = None,
    ) -> TaskNode:
        body: dict[str, Any] = {}
        if title is not None:
            body["title"] = title
        if priority is not None:
            body["priority"] = priority
        if is_completed is not None:
            body["is_completed"] = is_completed
        row = await self._request("PATCH", f"/nodes/{int(task_id)}", json=body)
        return TaskNode.from_dict(row)

    async def delete_task(self, task_id: int) -> list[int]:
        payload = await self._request("DELETE", f"/nodes/{int(task_id)}")
        return [int(node_id) for node_id in payload.get("deleted", [])]

    async def choose_actionable_task(self) -> TaskNode | None:
        row = await self._request("POST", "/choose")
        if row is None:
            return None
        return TaskNode.from_dict(row)
