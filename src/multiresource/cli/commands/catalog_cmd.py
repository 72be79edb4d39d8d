from __future__ import annotations

import argparse

from rich.table import Table

from multiresource.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("catalog", help="List registered resources")
    parser.add_argument("--limit", type=int, default=50)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    registry = ctx.open_registry()
    resources = registry.catalog.list(limit=args.limit)

    table = Table(title=f"Resources ({len(resources)})")
    table.add_column("ID", justify="right")
    table.add_column("URI", overflow="fold")
    table.add_column("Tags")
    table.add_column("Token-enumerated")

    for r in resources:
        table.add_row(
            str(r.id),
            r.uri,
            ", ".join(str(t) for t in r.tags),
            "yes" if r.token_enumerated else "no",
        )

    ctx.console.print(table)
    ctx.console.print(f"Issuer: {registry.issuer.get_issuer() or '-'}")
    ctx.console.print(f"Fallback URI: {registry.resolver.get_fallback_uri() or '-'}")
    return 0
