"""CLI entry point for actiongraph."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from . import __version__
from .config import load_config
from .errors import StoreError, StoreTimeoutError
from .model import EDGE_KINDS, Action, BlockingDependency
from .policy import POLICIES
from .service import STRATEGIES, WorkableService
from .stores.action import ActionStore
from .ui import (
    add_output_mode_argument,
    configure_logging,
    make_console,
    render_panel,
    render_table,
    resolve_output_mode,
)

EXIT_TEMPFAIL = 75
_ACTION_HEADERS = ("ID", "DONE", "V", "UPDATED", "TITLE")
_BLOCKER_HEADERS = ("BLOCKER", "BLOCKS", "TITLE", "BLOCKED")
_EDGE_KIND_CHOICES = tuple(EDGE_KINDS) + ("composition", "child", "dependency", "blocks")
_READ_COMMANDS = {"workable", "next", "blockers"}


def _iso_from_epoch_ms(value: int) -> str:
    try:
        dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "-"
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def _truncate(value: object, limit: int) -> str:
    text = str(value or "").strip()
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[: limit - 3] + "..."


def _emit_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _action_columns(action: Action) -> tuple[str, str, str, str, str]:
    return (
        action.id,
        "yes" if action.done else "no",
        str(action.version),
        _iso_from_epoch_ms(action.updated_at),
        _truncate(action.title, 60),
    )


def _print_action(action: Action) -> None:
    row = _action_columns(action)
    print(f"{row[0]}  {row[1]:<3}  v{row[2]}  {row[3]}  {row[4]}")


def _print_plain_table(headers: tuple[str, ...], rows: list[tuple[str, ...]]) -> None:
    widths = [len(item) for item in headers]
    for row in rows:
        for idx, col in enumerate(row):
            widths[idx] = max(widths[idx], len(col))
    print("  ".join(headers[idx].ljust(widths[idx]) for idx in range(len(headers))))
    print("  ".join("-" * widths[idx] for idx in range(len(headers))))
    for row in rows:
        print("  ".join(row[idx].ljust(widths[idx]) for idx in range(len(headers))))


def _print_actions(rows: list[Action], *, output_mode: str, title: str, empty: str) -> None:
    if not rows:
        if output_mode == "rich":
            render_panel(make_console("rich"), empty, title=title)
        else:
            print(empty)
        return
    if output_mode == "rich":
        render_table(
            make_console("rich"),
            title=title,
            headers=_ACTION_HEADERS,
            no_wrap_columns=(0, 1, 2, 3),
            rows=[_action_columns(row) for row in rows],
        )
        return
    _print_plain_table(_ACTION_HEADERS, [_action_columns(row) for row in rows])


def _blocker_columns(row: BlockingDependency) -> tuple[str, str, str, str]:
    return (
        row.blocker.id,
        str(row.block_count),
        _truncate(row.blocker.title, 40),
        _truncate(", ".join(action.id for action in row.blocked), 60),
    )


def _print_blockers(rows: list[BlockingDependency], *, output_mode: str) -> None:
    if not rows:
        if output_mode == "rich":
            render_panel(make_console("rich"), "(nothing is blocked)", title="Blockers")
        else:
            print("(nothing is blocked)")
        return
    if output_mode == "rich":
        render_table(
            make_console("rich"),
            title="Blockers",
            headers=_BLOCKER_HEADERS,
            no_wrap_columns=(0, 1),
            rows=[_blocker_columns(row) for row in rows],
        )
        return
    _print_plain_table(_BLOCKER_HEADERS, [_blocker_columns(row) for row in rows])


def _add_service_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--policy", choices=tuple(POLICIES), help="Workability policy")
    parser.add_argument("--strategy", choices=STRATEGIES, help="Resolution strategy")
    parser.add_argument("--timeout", type=float, help="Load timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(parser)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="actiongraph",
        description="Inspect which actions are workable right now.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-v", "--verbose", action="store_true", help="Log load timings")
    sub = p.add_subparsers(dest="command", required=True, metavar="command")

    new = sub.add_parser("new", help="Create a new action")
    new.add_argument("title", help="Action title")
    new.add_argument("--json", action="store_true", help="Output JSON")

    done = sub.add_parser("done", help="Mark action(s) done")
    done.add_argument("id", nargs="+", help="Action id(s)")
    done.add_argument("--json", action="store_true", help="Output JSON")

    undo = sub.add_parser("undo", help="Mark action(s) not done")
    undo.add_argument("id", nargs="+", help="Action id(s)")
    undo.add_argument("--json", action="store_true", help="Output JSON")

    dep = sub.add_parser("dep", help="Edge operations")
    dep_sub = dep.add_subparsers(dest="dep_cmd", required=True, metavar="dep_cmd")
    for name, help_text in (("add", "Add an edge"), ("rm", "Remove an edge")):
        cmd = dep_sub.add_parser(name, help=help_text)
        cmd.add_argument("src_id", help="Source action id")
        cmd.add_argument(
            "kind",
            choices=_EDGE_KIND_CHOICES,
            help="depends_on: dst depends on src; family: src is parent of dst",
        )
        cmd.add_argument("dst_id", help="Destination action id")

    workable = sub.add_parser("workable", help="List workable actions")
    workable.add_argument("--limit", type=int, help="Max rows")
    _add_service_arguments(workable)

    nxt = sub.add_parser("next", help="Show the next action to work on")
    _add_service_arguments(nxt)

    blockers = sub.add_parser("blockers", help="List actions blocking others")
    _add_service_arguments(blockers)

    sub.add_parser(
        "consolidate",
        help="Add child-to-parent depends_on edges for every family edge",
    )
    return p


def _make_service(args: argparse.Namespace, store: ActionStore) -> WorkableService:
    cfg = load_config(store.root)
    if cfg.error:
        print(f"error: {cfg.error}", file=sys.stderr)
        raise SystemExit(2)
    return WorkableService.from_settings(
        store,
        cfg.workable,
        policy=args.policy,
        strategy=args.strategy,
        timeout_s=args.timeout,
    )


def main(argv: list[str] | None = None) -> None:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    args = _build_parser().parse_args(raw_argv)
    configure_logging(args.verbose)

    output_mode = "plain"
    if hasattr(args, "output"):
        try:
            output_mode = resolve_output_mode(args.output)
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            raise SystemExit(2)

    store = ActionStore.from_workdir(
        Path.cwd(),
        create=args.command not in _READ_COMMANDS,
    )

    try:
        if args.command == "new":
            action = store.create(args.title)
            if args.json:
                _emit_json(action.to_dict())
            else:
                print(action.id)
            return

        if args.command in {"done", "undo"}:
            rows = [store.set_done(action_id, args.command == "done") for action_id in args.id]
            if args.json:
                _emit_json([row.to_dict() for row in rows])
            else:
                for row in rows:
                    _print_action(row)
            return

        if args.command == "dep" and args.dep_cmd == "add":
            edge = store.add_edge(args.src_id, args.kind, args.dst_id)
            print(f"{edge.src} {edge.kind} {edge.dst}")
            return

        if args.command == "dep" and args.dep_cmd == "rm":
            if not store.remove_edge(args.src_id, args.kind, args.dst_id):
                print("error: no such edge", file=sys.stderr)
                raise SystemExit(1)
            print(f"removed: {args.src_id} {args.kind} {args.dst_id}")
            return

        if args.command == "consolidate":
            inserted = store.consolidate_family_edges()
            print(f"inserted {inserted} depends_on edge(s)")
            return

        service = _make_service(args, store)

        if args.command == "workable":
            rows = service.get_workable(args.limit)
            if args.json:
                _emit_json([row.to_dict() for row in rows])
            else:
                _print_actions(
                    rows,
                    output_mode=output_mode,
                    title="Workable Actions",
                    empty="(nothing workable)",
                )
            return

        if args.command == "next":
            action = service.get_next()
            if args.json:
                _emit_json(action.to_dict() if action is not None else None)
            elif action is None:
                print("(all done)")
            elif output_mode == "rich":
                render_panel(
                    make_console("rich"),
                    f"{action.title}\n\nupdated: {_iso_from_epoch_ms(action.updated_at)}",
                    title=f"Next: {action.id}",
                )
            else:
                _print_action(action)
            return

        if args.command == "blockers":
            report = service.blocking_dependencies()
            if args.json:
                _emit_json([row.to_dict() for row in report])
            else:
                _print_blockers(report, output_mode=output_mode)
            return
    except StoreTimeoutError as exc:
        print(f"error: {exc} (retryable)", file=sys.stderr)
        raise SystemExit(EXIT_TEMPFAIL)
    except (StoreError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
