from __future__ import annotations

import argparse

from multiresource.application.services.project_service import ProjectService
from multiresource.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("init", help="Initialize the registry data directory and database")
    parser.add_argument("--issuer", help="Identity allowed to modify the resource catalog")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = ProjectService(ctx.paths)
    result = service.init_project(issuer=args.issuer)

    if result.paths_created:
        for path in result.paths_created:
            ctx.console.print(f"[green]Created[/green] {path}")
    else:
        ctx.console.print("[yellow]Project paths already existed[/yellow]")

    ctx.console.print(f"[green]Database ready[/green] {result.db_path}")
    if result.issuer is None:
        ctx.console.print("[yellow]No issuer configured[/yellow]")
    elif result.issuer_created:
        ctx.console.print(f"[green]Issuer set[/green] {result.issuer}")
    else:
        ctx.console.print(f"Issuer {result.issuer}")
    return 0
