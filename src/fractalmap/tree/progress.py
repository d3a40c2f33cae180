"""Fractal progress: unweighted recursive mean of child completion."""

from __future__ import annotations

from .builder import Forest


def leaf_progress(is_completed: bool) -> float:
    return 100.0 if is_completed else 0.0


def compute_progress(forest: Forest) -> dict[int, float]:
    """Completion percentage in [0, 100] for every node of ``forest``.

    A leaf is 100 or 0 from its own flag. A parent is the plain mean of its
    direct children, each child counting once whatever its subtree size; the
    parent's own flag is ignored. Values are kept unrounded.
    """
    progress: dict[int, float] = {}

    # Iterative post-order.
    for root_id in forest.roots:
        stack: list[tuple[int, bool]] = [(root_id, False)]
        while stack:
            node_id, expanded = stack.pop()
            if node_id in progress:
                continue
            node = forest.nodes[node_id]
            if node.is_leaf:
                progress[node_id] = leaf_progress(node.record.is_completed)
                continue
            if not expanded:
                stack.append((node_id, True))
                stack.extend((child, False) for child in node.children)
                continue
            values = [progress[child] for child in node.children]
            progress[node_id] = sum(values) / len(values)

    return progress
