"""Tree state controller: owns the view inputs and republishes derived views."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Mapping

from ..model import TaskNode
from .builder import Forest, IntegrityWarning, build_forest, log_warnings
from .focus import Direction, FocusNavigator
from .highlight import DIM_OPACITY, StyledEdge, StyledNode, apply_highlight
from .layout import Position, layered_positions
from .progress import compute_progress
from .visibility import resolve_visible

logger = logging.getLogger(__name__)

Listener = Callable[["TreeView"], None]


@dataclass(frozen=True)
class TreeView:
    """One consistent generation of derived output.

    Nodes, edges, progress and positions are always computed together from
    the same inputs and published as a single object.
    """

    generation: int = 0
    forest: Forest = field(default_factory=Forest)
    progress: Mapping[int, float] = field(default_factory=dict)
    nodes: tuple[StyledNode, ...] = ()
    edges: tuple[StyledEdge, ...] = ()
    positions: Mapping[int, Position] = field(default_factory=dict)
    highlighted: frozenset[int] = frozenset()
    hoisted_id: int | None = None
    hovered_id: int | None = None
    focused_id: int | None = None

    @property
    def warnings(self) -> tuple[IntegrityWarning, ...]:
        return self.forest.warnings

    @property
    def node_ids(self) -> list[int]:
        return [styled.id for styled in self.nodes]

    def node(self, node_id: int) -> StyledNode | None:
        for styled in self.nodes:
            if styled.id == node_id:
                return styled
        return None


class TreeState:
    """Single owner of records, fold set and hoist/hover/focus ids.

    Every input change rebuilds the forest and runs progress, visibility,
    highlight and layout again before swapping in a new ``TreeView``.
    """

    def __init__(self, *, dim_opacity: float = DIM_OPACITY) -> None:
        self.dim_opacity = dim_opacity
        self._records: tuple[TaskNode, ...] = ()
        self._folded: set[int] = set()
        self._seeded = False
        self._hoisted_id: int | None = None
        self._hovered_id: int | None = None
        self._focus = FocusNavigator()
        self._issued_token = 0
        self._applied_token = 0
        self._listeners: list[Listener] = []
        self._view = TreeView()

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    @property
    def view(self) -> TreeView:
        return self._view

    @property
    def generation(self) -> int:
        return self._view.generation

    @property
    def visible_nodes(self) -> tuple[StyledNode, ...]:
        return self._view.nodes

    @property
    def visible_edges(self) -> tuple[StyledEdge, ...]:
        return self._view.edges

    def progress_for(self, node_id: int) -> float | None:
        return self._view.progress.get(node_id)

    def is_folded(self, node_id: int) -> bool:
        return node_id in self._folded

    def is_focused(self, node_id: int) -> bool:
        return self._focus.focused_id == node_id

    def is_highlighted(self, node_id: int) -> bool:
        return node_id in self._view.highlighted

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    @property
    def records(self) -> tuple[TaskNode, ...]:
        return self._records

    def record(self, node_id: int) -> TaskNode | None:
        node = self._view.forest.get(node_id)
        return node.record if node is not None else None

    @property
    def folded(self) -> frozenset[int]:
        return frozenset(self._folded)

    @property
    def hoisted_id(self) -> int | None:
        return self._hoisted_id

    @property
    def hovered_id(self) -> int | None:
        return self._hovered_id

    @property
    def focused_id(self) -> int | None:
        return self._focus.focused_id

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    def begin_load(self) -> int:
        """Hand out the token for a fetch that is about to start."""
        self._issued_token += 1
        return self._issued_token

    def load_records(
        self,
        records: Iterable[TaskNode],
        *,
        token: int | None = None,
    ) -> bool:
        """Replace the record set and republish.

        Returns False, leaving state untouched, when ``token`` is not newer
        than the last applied load. The first load that carries records folds
        every node; later loads keep the fold set, minus ids that are gone.
        """
        if token is None:
            token = self.begin_load()
        if token <= self._applied_token:
            logger.debug(
                "discarding stale load (token %s, applied %s)",
                token,
                self._applied_token,
            )
            return False
        self._applied_token = token

        self._records = tuple(records)
        forest = build_forest(self._records)
        log_warnings(forest.warnings)

        if not self._seeded:
            self._folded = set(forest.nodes)
            self._seeded = bool(forest.nodes)
        else:
            self._folded &= set(forest.nodes)
        if self._hoisted_id is not None and self._hoisted_id not in forest:
            self._hoisted_id = None
        if self._hovered_id is not None and self._hovered_id not in forest:
            self._hovered_id = None
        self._focus.reconcile(forest)

        self._publish(forest)
        return True

    def toggle_fold(self, node_id: int) -> bool:
        """Flip fold membership; returns the new folded flag."""
        if node_id in self._folded:
            self._folded.discard(node_id)
        else:
            self._folded.add(node_id)
        self._publish()
        return node_id in self._folded

    def set_fold(self, node_id: int, folded: bool) -> bool:
        """Fold or unfold one node; False when it already had that state."""
        if (node_id in self._folded) == folded:
            return False
        if folded:
            self._folded.add(node_id)
        else:
            self._folded.discard(node_id)
        self._publish()
        return True

    def expand_all(self) -> None:
        self._folded.clear()
        self._publish()

    def collapse_all(self) -> None:
        self._folded = set(self._view.forest.nodes)
        self._publish()

    def set_hoist(self, node_id: int | None) -> bool:
        if node_id == self._hoisted_id:
            return False
        self._hoisted_id = node_id
        self._publish()
        return True

    def set_hover(self, node_id: int | None) -> bool:
        if node_id == self._hovered_id:
            return False
        self._hovered_id = node_id
        self._publish()
        return True

    def set_focus(self, node_id: int | None) -> bool:
        if node_id is not None and node_id not in self._view.forest:
            return False
        if not self._focus.set(node_id):
            return False
        self._publish()
        return True

    def move_focus(self, direction: Direction | str) -> bool:
        """Move focus over the whole forest; False when there is no target."""
        if not self._focus.move(self._view.forest, direction):
            return False
        self._publish()
        return True

    def mark_pending(self, node_id: int, is_completed: bool) -> bool:
        """Show a not-yet-confirmed completion flip on the visible node.

        Only the published view changes; the next load replaces it.
        """
        current = self._view
        for index, styled in enumerate(current.nodes):
            if styled.id != node_id:
                continue
            pending = replace(
                styled,
                node=replace(styled.node, is_completed=is_completed, pending=True),
            )
            nodes = current.nodes[:index] + (pending,) + current.nodes[index + 1 :]
            self._swap(replace(current, generation=current.generation + 1, nodes=nodes))
            return True
        return False

    def discard_pending(self) -> bool:
        """Republish from the current records if any visible node is pending."""
        if not any(styled.node.pending for styled in self._view.nodes):
            return False
        self._publish()
        return True

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _publish(self, forest: Forest | None = None) -> None:
        if forest is None:
            forest = build_forest(self._records)
        progress = compute_progress(forest)
        visibility = resolve_visible(forest, progress, self._folded, self._hoisted_id)
        highlight = apply_highlight(
            visibility,
            forest,
            self._hovered_id,
            dim_opacity=self.dim_opacity,
        )
        self._swap(
            TreeView(
                generation=self._view.generation + 1,
                forest=forest,
                progress=progress,
                nodes=highlight.nodes,
                edges=highlight.edges,
                positions=layered_positions(visibility.nodes),
                highlighted=highlight.path,
                hoisted_id=visibility.hoisted_id,
                hovered_id=self._hovered_id,
                focused_id=self._focus.focused_id,
            )
        )

    def _swap(self, view: TreeView) -> None:
        self._view = view
        for listener in list(self._listeners):
            listener(view)
