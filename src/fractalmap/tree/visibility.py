from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import AbstractSet, Mapping

from .builder import Forest


@dataclass(frozen=True)
class VisibleNode:
    id: int
    title: str
    priority: int
    is_completed: bool
    parent_id: int | None
    is_folded: bool
    has_children: bool
    progress: float
    depth: int = 0
    pending: bool = False


@dataclass(frozen=True)
class VisibleEdge:
    source: int
    target: int

    @property
    def id(self) -> str:
        return f"e{self.source}-{self.target}"


@dataclass(frozen=True)
class Visibility:
    nodes: tuple[VisibleNode, ...] = ()
    edges: tuple[VisibleEdge, ...] = ()
    root_ids: tuple[int, ...] = ()
    hoisted_id: int | None = None

    @property
    def node_ids(self) -> list[int]:
        return [node.id for node in self.nodes]


def traversal_roots(forest: Forest, hoisted_id: int | None) -> tuple[tuple[int, ...], int | None]:
    """Roots to walk from and the effective hoist (None if unresolvable)."""
    if hoisted_id is not None and hoisted_id in forest:
        return (hoisted_id,), hoisted_id
    return forest.roots, None


def resolve_visible(
    forest: Forest,
    progress: Mapping[int, float],
    folded: AbstractSet[int] = frozenset(),
    hoisted_id: int | None = None,
) -> Visibility:
    """Breadth-first walk from the roots, stopping below folded nodes.

    Every dequeued node is emitted; an edge from its parent is emitted for
    every node except the traversal roots (true roots, orphans, and the hoist
    root). A folded node stays visible while its whole subtree is skipped.
    """
    roots, effective_hoist = traversal_roots(forest, hoisted_id)
    root_set = set(roots)

    nodes: list[VisibleNode] = []
    edges: list[VisibleEdge] = []
    queue: deque[tuple[int, int]] = deque((root_id, 0) for root_id in roots)
    while queue:
        node_id, depth = queue.popleft()
        node = forest.nodes[node_id]
        record = node.record
        is_folded = node_id in folded
        nodes.append(
            VisibleNode(
                id=node_id,
                title=record.title,
                priority=record.priority,
                is_completed=record.is_completed,
                parent_id=record.parent_id,
                is_folded=is_folded,
                has_children=bool(node.children),
                progress=progress.get(node_id, 0.0),
                depth=depth,
            )
        )
        if node_id not in root_set and node.parent_id is not None:
            edges.append(VisibleEdge(source=node.parent_id, target=node_id))
        if not is_folded:
            queue.extend((child, depth + 1) for child in node.children)

    return Visibility(
        nodes=tuple(nodes),
        edges=tuple(edges),
        root_ids=tuple(roots),
        hoisted_id=effective_hoist,
    )
