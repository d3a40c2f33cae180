from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .visibility import VisibleNode

NODE_WIDTH = 280
NODE_HEIGHT = 140
NODE_SEP = 40
RANK_SEP = 60


@dataclass(frozen=True)
class Position:
    x: float
    y: float


def layered_positions(
    nodes: Sequence[VisibleNode],
    *,
    node_width: int = NODE_WIDTH,
    node_height: int = NODE_HEIGHT,
    node_sep: int = NODE_SEP,
    rank_sep: int = RANK_SEP,
) -> dict[int, Position]:
    """Top-to-bottom layered placement of the visible sequence.

    Rank is the node's depth below its traversal root; nodes within a rank
    keep their breadth-first order and are centred on x = 0. Positions are
    top-left corners.
    """
    ranks: dict[int, list[int]] = {}
    for node in nodes:
        ranks.setdefault(node.depth, []).append(node.id)

    positions: dict[int, Position] = {}
    for depth, ids in ranks.items():
        span = len(ids) * node_width + (len(ids) - 1) * node_sep
        left = -span / 2
        y = depth * (node_height + rank_sep)
        for index, node_id in enumerate(ids):
            positions[node_id] = Position(x=left + index * (node_width + node_sep), y=float(y))
    return positions
