"""Health check endpoint for the pairchat API."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pairchat import __version__
from pairchat.api.deps import get_store
from pairchat.store import JsonStore

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    timestamp: datetime
    store: str


@router.get("/health", response_model=HealthResponse)
def health_check(store: JsonStore = Depends(get_store)) -> HealthResponse:
    """Check system health.

    Overall status is 'ok' if the store document is readable,
    'degraded' otherwise.
    """
    store_status = "ok" if store.check() else "error"

    return HealthResponse(
        status="ok" if store_status == "ok" else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        store=store_status,
    )
