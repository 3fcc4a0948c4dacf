"""FastAPI application factory."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storeforge.config import StoreForgeConfig
from storeforge.exceptions import DuplicateStoreError, ValidationError
from storeforge.orchestrator import Orchestrator

_LOGGER = logging.getLogger(__name__)


def create_app(
    orchestrator: Orchestrator | None = None,
    config: StoreForgeConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an orchestrator one is built from the configuration, which is
    read from the environment when not given.
    """
    if orchestrator is None:
        config = config or StoreForgeConfig.from_env()
        config.check()
        orchestrator = Orchestrator.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
        """Application lifespan handler."""
        _LOGGER.info("StoreForge API starting")
        yield
        _LOGGER.info("StoreForge API stopping, cancelling in-flight workflows")
        await orchestrator.close()

    app = FastAPI(
        title="StoreForge",
        description="Provisioning of isolated WooCommerce stores on Kubernetes",
        version="0.2.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    # The dashboard is served from a different origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DuplicateStoreError)
    async def duplicate_handler(request: Request, exc: DuplicateStoreError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400, content={"error": "Name and engine are required"}
        )

    from storeforge.api.routes import health, stores

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(stores.router, prefix="/api/stores", tags=["Stores"])

    return app
