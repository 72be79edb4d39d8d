from __future__ import annotations

import argparse

from rich.table import Table

from multiresource.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("signals", help="Show recorded state-change signals")
    parser.add_argument("--token", type=int, dest="token_id")
    parser.add_argument("--name")
    parser.add_argument("--limit", type=int, default=50)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    registry = ctx.open_registry()
    signals = registry.signals.history(token_id=args.token_id, name=args.name, limit=args.limit)

    table = Table(title=f"Signals ({len(signals)})")
    table.add_column("Emitted")
    table.add_column("Name", no_wrap=True)
    table.add_column("Token", justify="right")
    table.add_column("Resource", justify="right")
    table.add_column("Tag", justify="right")
    table.add_column("Detail", overflow="fold")

    for s in signals:
        table.add_row(
            s.emitted_at,
            s.name,
            "" if s.token_id is None else str(s.token_id),
            "" if s.resource_id is None else str(s.resource_id),
            "" if s.tag_id is None else str(s.tag_id),
            s.detail or "",
        )

    ctx.console.print(table)
    return 0
