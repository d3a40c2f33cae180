"""Task repository routes."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from .. import __version__
from ..stores import TaskStore

router = APIRouter(prefix="/api")


def _store(req: Request) -> TaskStore:
    return req.app.state.store


# ---------------------------------------------------------------------------
# Read API
# ---------------------------------------------------------------------------


@router.get("/status")
async def api_status(request: Request):
    return {"version": __version__, **_store(request).counts()}


@router.get("/nodes")
async def api_nodes(request: Request):
    return [task.to_dict() for task in _store(request).list_tasks()]


@router.get("/leaves")
async def api_leaves(request: Request):
    return [task.to_dict() for task in _store(request).list_actionable_leaves()]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    title: str
    parent_id: int | None = None
    priority: int = Field(default=1, ge=0)
    deadline: int | None = None


class TaskUpdate(BaseModel):
    title: str | None = None
    priority: int | None = Field(default=None, ge=0)
    is_completed: bool | None = None


@router.post("/nodes")
async def api_create_node(request: Request, body: TaskCreate):
    task = _store(request).create(
        body.title,
        parent_id=body.parent_id,
        priority=body.priority,
        deadline=body.deadline,
    )
    return task.to_dict()


@router.patch("/nodes/{task_id}")
async def api_update_node(request: Request, task_id: int, body: TaskUpdate):
    task = _store(request).update(
        task_id,
        title=body.title,
        priority=body.priority,
        is_completed=body.is_completed,
    )
    return task.to_dict()


@router.delete("/nodes/{task_id}")
async def api_delete_node(request: Request, task_id: int):
    deleted = _store(request).delete(task_id)
    return {"message": "Deleted", "deleted": deleted}


@router.post("/choose")
async def api_choose(request: Request):
    chosen = _store(request).choose_actionable()
    return chosen.to_dict() if chosen is not None else None
