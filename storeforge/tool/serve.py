"""Storeforge serve action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

import uvicorn

from storeforge.api import create_app
from storeforge.config import StoreForgeConfig


_LOGGER = logging.getLogger(__name__)


class ServeAction:
    """Run the HTTP API."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "serve",
                help="Run the HTTP API used by the dashboard",
                description="Serve the store API until interrupted.",
            ),
        )
        args.add_argument("--host", default="0.0.0.0", help="Host to bind to")
        args.add_argument(
            "--port",
            type=int,
            default=None,
            help="Port to bind to (default: $PORT or 3001)",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        host: str,
        port: int | None,
        log_level: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = StoreForgeConfig.from_env()
        if port is not None:
            config.port = port
        app = create_app(config=config)
        _LOGGER.info("StoreForge backend listening on port %d", config.port)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=host,
                port=config.port,
                log_level=(log_level or "INFO").lower(),
            )
        )
        await server.serve()
