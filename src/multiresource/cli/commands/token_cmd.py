from __future__ import annotations

import argparse

from rich.table import Table

from multiresource.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("token", help="Show a token's pending and active resources")
    parser.add_argument("token_id", type=int)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    registry = ctx.open_registry()
    token_id = args.token_id

    owner = registry.ownership.owner_of(token_id)
    delegate = registry.access.get_approved_for_resources(token_id)
    state = registry.ledger.snapshot(token_id)

    ctx.console.print(f"Token {token_id}  owner={owner}  resource delegate={delegate or '-'}")

    active = Table(title=f"Active ({len(state.active)})")
    active.add_column("Index", justify="right")
    active.add_column("Resource", justify="right")
    active.add_column("Priority", justify="right")
    active.add_column("URI", overflow="fold")
    for i, (resource_id, priority) in enumerate(zip(state.active, state.priorities)):
        active.add_row(str(i), str(resource_id), str(priority), registry.resolver.resolve_at(token_id, i))
    ctx.console.print(active)

    pending = Table(title=f"Pending ({len(state.pending)})")
    pending.add_column("Index", justify="right")
    pending.add_column("Resource", justify="right")
    pending.add_column("Overwrites", justify="right")
    for i, resource_id in enumerate(state.pending):
        target = state.overwrites.get(resource_id, 0)
        pending.add_row(str(i), str(resource_id), str(target) if target else "-")
    ctx.console.print(pending)
    return 0
