"""Topic recommendation endpoint."""

from fastapi import APIRouter, Query

from unitize.core import progress
from unitize.web.responses import respond
from unitize.web.schemas import Envelope

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("", response_model=Envelope)
async def get_recommendations(
    user_id: str = Query(..., alias="userId", min_length=1),
    course_id: str = Query(..., alias="courseId", min_length=1),
    limit: int = Query(default=5, ge=1, le=50),
) -> Envelope:
    """Topics to revisit: weakest accuracy first."""
    return respond(progress.get_recommended_topics(user_id, course_id, limit))
