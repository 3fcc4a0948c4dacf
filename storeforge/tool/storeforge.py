"""Command line tool for provisioning stores and serving the store API."""

import argparse
import asyncio
import logging
import sys
import traceback

from storeforge.exceptions import StoreForgeException
from . import serve, stores

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for provisioning e-commerce stores.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    serve.ServeAction.register(subparsers)
    stores.ListAction.register(subparsers)
    stores.CreateAction.register(subparsers)
    stores.DeleteAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """Storeforge command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    log_level = args.log_level
    if log_level is None and args.command == "serve":
        log_level = "INFO"
    if log_level:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except StoreForgeException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("storeforge error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
