"""Store management endpoints.

Creating a store answers 202 right away, progress is observed by polling the
list endpoint until the store reports `Ready` or `Failed`.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storeforge.orchestrator import Orchestrator

router = APIRouter()


class StoreCreate(BaseModel):
    """Request to create a store.

    Both fields are optional here so that a missing field is reported with the
    same error envelope as any other invalid request.
    """
    name: str | None = Field(None, description="Store name, also its namespace")
    engine: str | None = Field(None, description="Store engine, e.g. woocommerce")


def _orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


@router.get("")
async def list_stores(request: Request) -> list[dict[str, Any]]:
    """List all stores, including the ones still being provisioned."""
    stores = await _orchestrator(request).list()
    return [store.to_dict() for store in stores]


@router.post("", status_code=202)
async def create_store(request: Request, body: StoreCreate) -> dict[str, str]:
    """Start provisioning a store."""
    record = await _orchestrator(request).create(body.name, body.engine)
    return {
        "status": str(record.status),
        "message": (
            f'Store "{record.name}" is being provisioned. '
            "This may take several minutes."
        ),
        "name": record.name,
    }


@router.delete("/{name}")
async def delete_store(request: Request, name: str):
    """Delete a store and every resource in its namespace."""
    result = await _orchestrator(request).delete(name)
    if not result.success:
        return JSONResponse(status_code=500, content={"error": result.error})
    return {
        "status": "deleted",
        "message": f'Store "{name}" and all resources removed',
    }
