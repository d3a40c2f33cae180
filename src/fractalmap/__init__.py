from __future__ import annotations

from typing import TYPE_CHECKING

__all__ = [
    "__version__",
    "Direction",
    "TaskNode",
    "TaskStore",
    "TreeState",
    "TreeView",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from .model import TaskNode
    from .stores import TaskStore
    from .tree import Direction, TreeState, TreeView


def __getattr__(name: str):
    if name == "TaskNode":
        from .model import TaskNode

        return TaskNode
    if name == "TaskStore":
        from .stores import TaskStore

        return TaskStore
    if name in {"Direction", "TreeState", "TreeView"}:
        from .tree import Direction, TreeState, TreeView

        return {
            "Direction": Direction,
            "TreeState": TreeState,
            "TreeView": TreeView,
        }[name]
    raise AttributeError(f"module 'fractalmap' has no attribute {name!r}")
