from __future__ import annotations

import argparse

from multiresource.cli.context import CLIContext
from multiresource.core.errors import ConfigurationError


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("resolve", help="Resolve the display URI of a token")
    parser.add_argument("token_id", type=int)
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--index", type=int, help="Resolve the active resource at this index")
    group.add_argument("--tag", type=int, help="Resolve by custom data tag (requires --value)")
    parser.add_argument("--value", help="Expected custom data value as hex, e.g. 0xaaaa")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    registry = ctx.open_registry()

    if args.tag is not None:
        if args.value is None:
            raise ConfigurationError("--tag requires --value")
        uri = registry.resolver.resolve_by_attribute(args.token_id, args.tag, parse_hex(args.value))
    elif args.index is not None:
        uri = registry.resolver.resolve_at(args.token_id, args.index)
    else:
        uri = registry.resolver.resolve(args.token_id)

    ctx.console.print(uri, markup=False, highlight=False)
    return 0


def parse_hex(raw: str) -> bytes:
    text = raw.strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    if len(text) % 2:
        text = "0" + text
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid hex value: {raw}") from exc
