from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console

from multiresource.cli.commands import (
    catalog_cmd,
    doctor_cmd,
    init_cmd,
    resolve_cmd,
    signals_cmd,
    token_cmd,
)
from multiresource.cli.context import CLIContext
from multiresource.core.config import load_paths
from multiresource.core.errors import MultiResourceError
from multiresource.core.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mres",
        description="Multi-resource token registry inspector",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root to use for .mres data (default: current working directory)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)
    init_cmd.register(subparsers)
    catalog_cmd.register(subparsers)
    token_cmd.register(subparsers)
    resolve_cmd.register(subparsers)
    signals_cmd.register(subparsers)
    doctor_cmd.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    paths = load_paths(args.project_root)
    ctx = CLIContext(paths=paths, console=console)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, ctx)
    except MultiResourceError as exc:
        logger.error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
