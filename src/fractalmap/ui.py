from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from .model import TaskNode
from .tree import Emphasis, StyledNode, TreeView

OUTPUT_CHOICES = ("auto", "plain", "rich")
OutputMode = Literal["plain", "rich"]

BAR_WIDTH = 10


def add_output_mode_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        choices=OUTPUT_CHOICES,
        help="Output mode: auto (default), plain, or rich.",
    )


def _stream_is_tty(stream: object) -> bool:
    probe = getattr(stream, "isatty", None)
    if not callable(probe):
        return False
    try:
        return bool(probe())
    except Exception:
        return False


def resolve_output_mode(
    requested: str | None = None,
    *,
    is_tty: bool | None = None,
) -> OutputMode:
    selected = (requested or "auto").strip().lower()
    if selected not in OUTPUT_CHOICES:
        expected = ", ".join(OUTPUT_CHOICES)
        raise ValueError(f"invalid --output value {requested!r}; expected one of: {expected}")

    if selected == "auto":
        tty = _stream_is_tty(sys.stdout) if is_tty is None else bool(is_tty)
        return "rich" if tty else "plain"
    return "rich" if selected == "rich" else "plain"


def make_console(mode: OutputMode, *, stderr: bool = False) -> Console:
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        force_terminal=mode == "rich",
        no_color=mode != "rich",
        highlight=False,
    )


def configure_logging(level: str, *, console: Console | None = None) -> None:
    """Route ``fractalmap`` loggers through a RichHandler on stderr."""
    handler = RichHandler(
        console=console or make_console("plain", stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    root = logging.getLogger("fractalmap")
    root.handlers[:] = [handler]
    root.setLevel(level.upper())


def render_table(
    console: Console,
    *,
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    title: str | None = None,
    no_wrap_columns: Sequence[int] = (),
) -> None:
    table = Table(title=title)
    no_wrap = set(no_wrap_columns)
    for idx, header in enumerate(headers):
        table.add_column(str(header), no_wrap=idx in no_wrap)
    for row in rows:
        table.add_row(*(str(value if value is not None else "") for value in row))
    console.print(table)


def render_tasks(console: Console, tasks: Sequence[TaskNode], *, title: str | None = None) -> None:
    render_table(
        console,
        title=title,
        headers=("ID", "Priority", "Done", "Title"),
        rows=[
            (task.id, task.priority, "x" if task.is_completed else "", task.title)
            for task in tasks
        ],
        no_wrap_columns=(0,),
    )


def progress_bar(value: float, *, width: int = BAR_WIDTH) -> str:
    filled = int(round(max(0.0, min(100.0, value)) / 100 * width))
    return "#" * filled + "." * (width - filled)


def node_label(styled: StyledNode, *, focused: bool = False) -> Text:
    node = styled.node
    if node.has_children:
        marker = "+" if node.is_folded else "-"
    else:
        marker = "x" if node.is_completed else " "

    text = Text()
    text.append(">" if focused else " ", style="bold cyan")
    text.append(f"[{marker}] ")
    text.append(f"{node.id} ", style="dim")
    text.append(node.title, style="strike" if node.is_completed and not node.has_children else "")
    text.append(f"  {progress_bar(node.progress)} {round(node.progress)}%", style="green")
    text.append(f"  p{node.priority}", style="yellow")
    if node.pending:
        text.append("  (pending)", style="italic")

    if styled.emphasis is Emphasis.DIMMED:
        text.stylize("dim")
    elif styled.emphasis is Emphasis.HIGHLIGHTED:
        text.stylize("bold")
    return text


def build_tree(view: TreeView) -> Tree:
    """Nest the visible sequence under its visible parents."""
    top = Tree("tasks", hide_root=True)
    branches: dict[int, Tree] = {}
    parent_of = {styled.edge.target: styled.edge.source for styled in view.edges}
    for styled in view.nodes:
        parent = branches.get(parent_of.get(styled.id), top)
        branches[styled.id] = parent.add(
            node_label(styled, focused=styled.id == view.focused_id)
        )
    return top


def render_tree(console: Console, view: TreeView) -> None:
    if not view.nodes:
        console.print(Text("No tasks.", style="dim"))
        return
    console.print(build_tree(view))
    for warning in view.warnings:
        console.print(Text(f"warning: {warning.message}", style="yellow"))
