from __future__ import annotations

from enum import Enum

from .builder import Forest


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def parse(cls, value: str | Direction) -> Direction:
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"invalid direction: {value}") from None


def first_root(forest: Forest) -> int | None:
    return min(forest.roots) if forest.roots else None


def focus_target(forest: Forest, current: int, direction: Direction) -> int | None:
    """Where focus goes from ``current``; None when the move has no target.

    Works on the whole forest, folded subtrees included. Children and
    siblings are taken in ascending id order.
    """
    node = forest.get(current)
    if node is None:
        return None
    if direction is Direction.UP:
        return node.parent_id
    if direction is Direction.DOWN:
        children = sorted(node.children)
        return children[0] if children else None

    siblings = forest.siblings(current)
    index = siblings.index(current)
    if direction is Direction.LEFT:
        return siblings[index - 1] if index > 0 else None
    return siblings[index + 1] if index + 1 < len(siblings) else None


class FocusNavigator:
    """Tracks one focused node id and moves it over the forest."""

    def __init__(self, focused_id: int | None = None) -> None:
        self._focused_id = focused_id

    @property
    def focused_id(self) -> int | None:
        return self._focused_id

    def set(self, node_id: int | None) -> bool:
        if node_id == self._focused_id:
            return False
        self._focused_id = node_id
        return True

    def reconcile(self, forest: Forest) -> bool:
        """Point focus at the first root if it is unset or gone."""
        if self._focused_id is not None and self._focused_id in forest:
            return False
        return self.set(first_root(forest))

    def move(self, forest: Forest, direction: Direction | str) -> bool:
        """Move focus; returns False for a move with no valid target."""
        step = Direction.parse(direction)
        if self._focused_id is None or self._focused_id not in forest:
            return self.set(first_root(forest))
        target = focus_target(forest, self._focused_id, step)
        if target is None:
            return False
        return self.set(target)
