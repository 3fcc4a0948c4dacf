"""Storeforge actions that manage stores from the command line."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from storeforge.config import StoreForgeConfig, DEFAULT_ENGINE, SUPPORTED_ENGINES
from storeforge.exceptions import StoreForgeException
from storeforge.orchestrator import Orchestrator

from .format import JsonFormatter, PrintFormatter


_LOGGER = logging.getLogger(__name__)

LIST_COLUMNS = ["name", "status", "helmStatus", "url", "updated", "error"]


def _orchestrator() -> Orchestrator:
    config = StoreForgeConfig.from_env()
    config.check()
    return Orchestrator.from_config(config)


class ListAction:
    """List stores."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "list",
                aliases=["ls"],
                help="List stores in the cluster",
                description="Print the stores known to helm in all namespaces.",
            ),
        )
        args.add_argument(
            "--output",
            "-o",
            choices=["table", "json"],
            default="table",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = _orchestrator()
        try:
            stores = [store.to_dict() for store in await orchestrator.list()]
        finally:
            await orchestrator.close()
        if output == "json":
            JsonFormatter().print(stores)
            return
        if not stores:
            print("No stores found")
            return
        PrintFormatter(LIST_COLUMNS).print(stores)


class CreateAction:
    """Create a store and wait for it to be provisioned."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "create",
                help="Provision a store",
                description="Install and bootstrap a store, waiting until it is ready.",
            ),
        )
        args.add_argument("name", help="Store name")
        args.add_argument(
            "--engine",
            choices=SUPPORTED_ENGINES,
            default=DEFAULT_ENGINE,
            help="Store engine",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        engine: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = _orchestrator()
        record = await orchestrator.create(name, engine)
        try:
            await orchestrator.wait_idle()
        finally:
            await orchestrator.close()
        if (error := orchestrator.table.failure(record.name)) is not None:
            raise StoreForgeException(f'Store "{record.name}" failed: {error}')
        print(f'Store "{record.name}" is ready at {record.url}')


class DeleteAction:
    """Delete a store."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "delete",
                aliases=["rm"],
                help="Delete a store",
                description="Uninstall the release of a store and delete its namespace.",
            ),
        )
        args.add_argument("name", help="Store name")
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = _orchestrator()
        try:
            result = await orchestrator.delete(name)
        finally:
            await orchestrator.close()
        if not result.success:
            raise StoreForgeException(result.error or f'Unable to delete "{name}"')
        print(f'Store "{name}" and all resources removed')
