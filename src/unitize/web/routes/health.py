"""Health check endpoint."""

from fastapi import APIRouter

from unitize.web.responses import envelope
from unitize.web.schemas import Envelope

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=Envelope)
async def health_check() -> Envelope:
    """Check API health status."""
    return envelope({"status": "ok", "version": "0.1.0"})
