from __future__ import annotations

from .builder import Forest, ForestNode, IntegrityWarning, build_forest
from .focus import Direction, FocusNavigator
from .highlight import Emphasis, StyledEdge, StyledNode, apply_highlight
from .layout import Position, layered_positions
from .progress import compute_progress
from .state import TreeState, TreeView
from .visibility import Visibility, VisibleEdge, VisibleNode, resolve_visible

__all__ = [
    "Direction",
    "Emphasis",
    "FocusNavigator",
    "Forest",
    "ForestNode",
    "IntegrityWarning",
    "Position",
    "StyledEdge",
    "StyledNode",
    "TreeState",
    "TreeView",
    "Visibility",
    "VisibleEdge",
    "VisibleNode",
    "apply_highlight",
    "build_forest",
    "compute_progress",
    "layered_positions",
    "resolve_visible",
]
