"""Health check endpoint."""

import datetime

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check."""
    now = datetime.datetime.now(datetime.timezone.utc)
    return {"status": "ok", "timestamp": now.isoformat()}
