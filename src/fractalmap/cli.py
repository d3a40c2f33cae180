"""CLI entry point for fractalmap."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from . import __version__
from .client import TaskClient, TransportError
from .config import LOG_LEVELS, FractalConfig, load_config
from .session import TreeSession
from .stores import TaskStore
from .tree import Direction, TreeState, TreeView
from .ui import (
    add_output_mode_argument,
    configure_logging,
    make_console,
    render_tasks,
    render_tree,
    resolve_output_mode,
)

_READ_ONLY_COMMANDS = {"tree", "leaves", "choose"}


def _emit_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def view_to_dict(view: TreeView) -> dict[str, Any]:
    nodes = []
    for styled in view.nodes:
        position = view.positions.get(styled.id)
        nodes.append(
            {
                **asdict(styled.node),
                "emphasis": styled.emphasis.value,
                "opacity": styled.opacity,
                "interactive": styled.interactive,
                "position": asdict(position) if position is not None else None,
            }
        )
    edges = [
        {
            "id": styled.id,
            "source": styled.edge.source,
            "target": styled.edge.target,
            "emphasis": styled.emphasis.value,
            "opacity": styled.opacity,
            "stroke_width": styled.stroke_width,
            "z_index": styled.z_index,
        }
        for styled in view.edges
    ]
    return {
        "generation": view.generation,
        "hoisted_id": view.hoisted_id,
        "hovered_id": view.hovered_id,
        "focused_id": view.focused_id,
        "nodes": nodes,
        "edges": edges,
        "warnings": [warning.message for warning in view.warnings],
    }


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="fractalmap",
        description="Task mind map with fractal progress.",
    )
    p.add_argument("--version", action="version", version=f"fractalmap {__version__}")
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level (default: from config, else WARNING)",
    )
    sub = p.add_subparsers(dest="command", metavar="command")

    init = sub.add_parser("init", help="Create the task store and a root task")
    init.add_argument("--title", default="Goals", help="Root task title (default: Goals)")

    serve = sub.add_parser("serve", help="Serve the task repository over HTTP")
    serve.add_argument("--host", help="Bind host (default: from config)")
    serve.add_argument("--port", type=int, help="Bind port (default: from config)")

    tree = sub.add_parser("tree", help="Render the task tree")
    tree.add_argument(
        "-a", "--expand-all", action="store_true", help="Start with every node unfolded"
    )
    tree.add_argument(
        "--toggle",
        type=int,
        action="append",
        default=[],
        metavar="ID",
        help="Flip the fold state of a node (repeatable)",
    )
    tree.add_argument(
        "--fold",
        type=int,
        action="append",
        default=[],
        metavar="ID",
        help="Fold a node (repeatable)",
    )
    tree.add_argument(
        "--unfold",
        type=int,
        action="append",
        default=[],
        metavar="ID",
        help="Unfold a node (repeatable)",
    )
    tree.add_argument("--hoist", type=int, metavar="ID", help="Show only this subtree")
    tree.add_argument("--hover", type=int, metavar="ID", help="Highlight this node's ancestor path")
    tree.add_argument("--focus", type=int, metavar="ID", help="Start focus at this node")
    tree.add_argument(
        "--move",
        action="append",
        default=[],
        choices=[d.value for d in Direction],
        help="Move focus (repeatable, applied in order)",
    )
    tree.add_argument("--server", metavar="URL", help="Read tasks from a fractalmap server")
    tree.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(tree)

    add = sub.add_parser("add", help="Create a task")
    add.add_argument("title", help="Task title")
    add.add_argument("--parent", type=int, metavar="ID", help="Parent task id")
    add.add_argument("-p", "--priority", type=int, default=1, help="Priority (default: 1)")
    add.add_argument("--json", action="store_true", help="Output JSON")

    rename = sub.add_parser("rename", help="Rename a task")
    rename.add_argument("id", type=int, help="Task id")
    rename.add_argument("title", help="New title")
    rename.add_argument("--json", action="store_true", help="Output JSON")

    priority = sub.add_parser("priority", help="Set task priority")
    priority.add_argument("id", type=int, help="Task id")
    priority.add_argument("value", type=int, help="New priority")
    priority.add_argument("--json", action="store_true", help="Output JSON")

    toggle = sub.add_parser("toggle", help="Flip a task's completion")
    toggle.add_argument("id", type=int, help="Task id")
    toggle.add_argument("--json", action="store_true", help="Output JSON")

    rm = sub.add_parser("rm", help="Delete a task and all of its sub-tasks")
    rm.add_argument("id", type=int, help="Task id")
    rm.add_argument("--yes", action="store_true", help="Confirm delete operation")
    rm.add_argument("--json", action="store_true", help="Output JSON")

    leaves = sub.add_parser("leaves", help="List actionable leaf tasks")
    leaves.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(leaves)

    choose = sub.add_parser("choose", help="Pick one actionable task")
    choose.add_argument("--json", action="store_true", help="Output JSON")

    return p


async def _load_remote(url: str, config: FractalConfig, state: TreeState) -> None:
    async with TaskClient(url, timeout=config.timeout) as client:
        session = TreeSession(client, state)
        await session.refresh()
        if session.error:
            raise TransportError(session.error)


def _tree_state(args: argparse.Namespace, config: FractalConfig, store: TaskStore) -> TreeState:
    state = TreeState(dim_opacity=config.dim_opacity)
    if args.server:
        asyncio.run(_load_remote(args.server, config, state))
    else:
        state.load_records(store.list_tasks())

    if args.expand_all:
        state.expand_all()
    for node_id in args.toggle:
        state.toggle_fold(node_id)
    for node_id in args.fold:
        state.set_fold(node_id, True)
    for node_id in args.unfold:
        state.set_fold(node_id, False)
    if args.hoist is not None:
        state.set_hoist(args.hoist)
    if args.hover is not None:
        state.set_hover(args.hover)
    if args.focus is not None and not state.set_focus(args.focus):
        if state.focused_id != args.focus:
            raise ValueError(f"unknown task: {args.focus}")
    for step in args.move:
        state.move_focus(step)
    return state


def _print_task(console: Console, verb: str, task_id: int, title: str) -> None:
    console.print(Text.assemble((f"{verb} ", "green"), (f"{task_id} ", "bold"), title))


def _run(args: argparse.Namespace, config: FractalConfig, console: Console) -> int:
    create = args.command not in _READ_ONLY_COMMANDS
    store = TaskStore.from_workdir(Path.cwd(), create=create)

    if args.command == "init":
        root = store.ensure_root(args.title)
        console.print(
            Panel(
                f"Task store at [bold]{store.db_path}[/bold]\nroot: {root.id} {root.title}",
                style="green",
                expand=False,
            )
        )
        return 0

    if args.command == "serve":
        import uvicorn

        from .web import create_app

        uvicorn.run(
            create_app(store),
            host=args.host or config.host,
            port=args.port or config.port,
        )
        return 0

    if args.command == "tree":
        state = _tree_state(args, config, store)
        if args.json:
            _emit_json(view_to_dict(state.view))
        else:
            render_tree(console, state.view)
        return 0

    if args.command == "add":
        task = store.create(args.title, parent_id=args.parent, priority=args.priority)
        if args.json:
            _emit_json(task.to_dict())
        else:
            _print_task(console, "created", task.id, task.title)
        return 0

    if args.command == "rename":
        task = store.update(args.id, title=args.title)
        if args.json:
            _emit_json(task.to_dict())
        else:
            _print_task(console, "renamed", task.id, task.title)
        return 0

    if args.command == "priority":
        task = store.set_priority(args.id, args.value)
        if args.json:
            _emit_json(task.to_dict())
        else:
            _print_task(console, f"priority {task.priority}", task.id, task.title)
        return 0

    if args.command == "toggle":
        current = store.get(args.id)
        if current is None:
            raise ValueError(f"unknown task: {args.id}")
        task = store.set_completed(args.id, not current.is_completed)
        if args.json:
            _emit_json(task.to_dict())
        else:
            verb = "completed" if task.is_completed else "reopened"
            _print_task(console, verb, task.id, task.title)
        return 0

    if args.command == "rm":
        if not args.yes:
            print("error: refusing to delete without --yes", file=sys.stderr)
            return 1
        deleted = store.delete(args.id)
        if args.json:
            _emit_json({"id": args.id, "deleted": deleted})
        else:
            console.print(f"deleted {len(deleted)} task(s): {', '.join(map(str, deleted))}")
        return 0

    if args.command == "leaves":
        rows = store.list_actionable_leaves()
        if args.json:
            _emit_json([task.to_dict() for task in rows])
        elif not rows:
            console.print("(no actionable tasks)")
        else:
            render_tasks(console, rows, title="Actionable")
        return 0

    if args.command == "choose":
        chosen = store.choose_actionable()
        if args.json:
            _emit_json(chosen.to_dict() if chosen is not None else None)
        elif chosen is None:
            console.print("(no actionable tasks)")
        else:
            console.print(
                Panel(
                    f"[bold]{chosen.task.title}[/bold]\n"
                    f"id {chosen.task.id} · priority {chosen.task.priority} · "
                    f"score {round(chosen.score)}",
                    title="Next task",
                    style="cyan",
                    expand=False,
                )
            )
        return 0

    raise ValueError(f"unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()
    if not raw_argv:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(raw_argv)
    if args.command is None:
        parser.print_help()
        raise SystemExit(0)

    try:
        config = load_config(Path.cwd())
        output_mode = resolve_output_mode(getattr(args, "output", None))
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    configure_logging(args.log_level or config.log_level)
    console = make_console(output_mode)

    try:
        code = _run(args, config, console)
    except (ValueError, TransportError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1)
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
