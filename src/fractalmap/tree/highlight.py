"""Ancestor-path emphasis for the hovered node."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .builder import Forest
from .visibility import Visibility, VisibleEdge, VisibleNode

DIM_OPACITY = 0.1
BASE_STROKE_WIDTH = 1
PATH_STROKE_WIDTH = 3
BASE_Z_INDEX = 0
PATH_Z_INDEX = 1000


class Emphasis(str, Enum):
    NEUTRAL = "neutral"
    HIGHLIGHTED = "highlighted"
    DIMMED = "dimmed"


@dataclass(frozen=True)
class StyledNode:
    node: VisibleNode
    emphasis: Emphasis = Emphasis.NEUTRAL
    opacity: float = 1.0
    interactive: bool = True

    @property
    def id(self) -> int:
        return self.node.id


@dataclass(frozen=True)
class StyledEdge:
    edge: VisibleEdge
    emphasis: Emphasis = Emphasis.NEUTRAL
    opacity: float = 1.0
    stroke_width: int = BASE_STROKE_WIDTH
    z_index: int = BASE_Z_INDEX

    @property
    def id(self) -> str:
        return self.edge.id


@dataclass(frozen=True)
class Highlight:
    nodes: tuple[StyledNode, ...] = ()
    edges: tuple[StyledEdge, ...] = ()
    path: frozenset[int] = frozenset()


def ancestor_path(forest: Forest, hovered_id: int | None) -> frozenset[int]:
    """The hovered node plus every ancestor, by direct upward pointer chase."""
    if hovered_id is None or hovered_id not in forest:
        return frozenset()
    return frozenset(forest.ancestors(hovered_id))


def apply_highlight(
    visibility: Visibility,
    forest: Forest,
    hovered_id: int | None,
    *,
    dim_opacity: float = DIM_OPACITY,
) -> Highlight:
    """Style the visible set; never adds or removes nodes or edges.

    With nothing hovered (or a hover id that is not in the forest) everything
    is neutral. Otherwise nodes on the path are highlighted and the rest are
    dimmed and non-interactive; an edge is on the path iff both ends are.
    """
    path = ancestor_path(forest, hovered_id)
    if not path:
        return Highlight(
            nodes=tuple(StyledNode(node) for node in visibility.nodes),
            edges=tuple(StyledEdge(edge) for edge in visibility.edges),
        )

    nodes = tuple(
        StyledNode(node, Emphasis.HIGHLIGHTED)
        if node.id in path
        else StyledNode(node, Emphasis.DIMMED, opacity=dim_opacity, interactive=False)
        for node in visibility.nodes
    )
    edges = tuple(
        StyledEdge(
            edge,
            Emphasis.HIGHLIGHTED,
            stroke_width=PATH_STROKE_WIDTH,
            z_index=PATH_Z_INDEX,
        )
        if edge.source in path and edge.target in path
        else StyledEdge(edge, Emphasis.DIMMED, opacity=dim_opacity)
        for edge in visibility.edges
    )
    return Highlight(nodes=nodes, edges=edges, path=path)
