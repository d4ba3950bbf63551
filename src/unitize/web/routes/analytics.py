"""Analytics endpoint."""

from fastapi import APIRouter, Query

from unitize.core import analytics
from unitize.web.responses import respond
from unitize.web.schemas import Envelope

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("", response_model=Envelope)
async def get_analytics(user_id: str = Query(..., alias="userId", min_length=1)) -> Envelope:
    """Full analytics report for a user."""
    return respond(analytics.get_comprehensive_analytics(user_id))
