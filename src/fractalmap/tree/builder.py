"""Flat task records -> rooted forest."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

from ..model import TaskNode

logger = logging.getLogger(__name__)

ORPHAN = "orphan"
CYCLE = "cycle"
DUPLICATE = "duplicate"


@dataclass(frozen=True)
class IntegrityWarning:
    kind: str  # "orphan", "cycle", "duplicate"
    node_id: int
    parent_id: int | None = None

    @property
    def message(self) -> str:
        if self.kind == ORPHAN:
            return (
                f"task {self.node_id} references missing parent {self.parent_id}; "
                "treating it as a root"
            )
        if self.kind == CYCLE:
            return (
                f"task {self.node_id} is part of (or below) a parent cycle; "
                "excluding it from the tree"
            )
        return f"task {self.node_id} appears more than once; keeping the first record"


@dataclass(frozen=True)
class ForestNode:
    record: TaskNode
    parent_id: int | None
    children: tuple[int, ...] = ()

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass(frozen=True)
class Forest:
    """Id -> node mapping plus the ordered root ids.

    ``ForestNode.parent_id`` is the effective parent: ``None`` for true roots
    and for orphans whose recorded parent is missing.
    """

    nodes: Mapping[int, ForestNode] = field(default_factory=dict)
    roots: tuple[int, ...] = ()
    warnings: tuple[IntegrityWarning, ...] = ()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[int]:
        return iter(self.nodes)

    def get(self, node_id: int | None) -> ForestNode | None:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def children(self, node_id: int) -> tuple[int, ...]:
        node = self.nodes.get(node_id)
        return node.children if node is not None else ()

    def parent_of(self, node_id: int) -> int | None:
        node = self.nodes.get(node_id)
        return node.parent_id if node is not None else None

    def siblings(self, node_id: int) -> tuple[int, ...]:
        """Ids sharing ``node_id``'s parent (itself included), ascending by id."""
        node = self.nodes.get(node_id)
        if node is None:
            return ()
        if node.parent_id is None:
            return tuple(sorted(self.roots))
        return tuple(sorted(self.children(node.parent_id)))

    def ancestors(self, node_id: int) -> list[int]:
        """``node_id`` followed by each parent up to its root."""
        chain: list[int] = []
        seen: set[int] = set()
        current: int | None = node_id
        while current is not None and current in self.nodes and current not in seen:
            seen.add(current)
            chain.append(current)
            current = self.nodes[current].parent_id
        return chain

    def descendants(self, node_id: int) -> list[int]:
        """Breadth-first descendants of ``node_id``, excluding itself."""
        out: list[int] = []
        queue: deque[int] = deque(self.children(node_id))
        while queue:
            current = queue.popleft()
            out.append(current)
            queue.extend(self.children(current))
        return out


def log_warnings(warnings: Iterable[IntegrityWarning]) -> None:
    for warning in warnings:
        logger.warning("data integrity: %s", warning.message)


def build_forest(records: Iterable[TaskNode]) -> Forest:
    """Build the forest; child order follows input order.

    Records whose parent is missing become roots. Records whose parent chain
    never reaches a root (a cycle, or anything hanging below one) are left
    out. Both cases are returned as ``Forest.warnings``; see
    ``log_warnings``.
    """
    warnings: list[IntegrityWarning] = []

    by_id: dict[int, TaskNode] = {}
    for record in records:
        if record.id in by_id:
            warnings.append(IntegrityWarning(DUPLICATE, record.id, record.parent_id))
            continue
        by_id[record.id] = record

    parent_of: dict[int, int | None] = {}
    children_of: dict[int, list[int]] = {node_id: [] for node_id in by_id}
    roots: list[int] = []
    for node_id, record in by_id.items():
        parent_id = record.parent_id
        if parent_id is not None and parent_id not in by_id:
            warnings.append(IntegrityWarning(ORPHAN, node_id, parent_id))
            parent_id = None
        parent_of[node_id] = parent_id
        if parent_id is None:
            roots.append(node_id)
        else:
            children_of[parent_id].append(node_id)

    reachable: set[int] = set()
    queue: deque[int] = deque(roots)
    while queue:
        current = queue.popleft()
        if current in reachable:
            continue
        reachable.add(current)
        queue.extend(children_of[current])

    for node_id in by_id:
        if node_id not in reachable:
            warnings.append(IntegrityWarning(CYCLE, node_id, parent_of[node_id]))

    nodes = {
        node_id: ForestNode(
            record=record,
            parent_id=parent_of[node_id],
            children=tuple(children_of[node_id]),
        )
        for node_id, record in by_id.items()
        if node_id in reachable
    }

    return Forest(nodes=nodes, roots=tuple(roots), warnings=tuple(warnings))
