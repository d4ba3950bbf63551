"""Question search and practice set endpoints."""

from fastapi import APIRouter, Query

from unitize.core import catalog
from unitize.web.responses import respond
from unitize.web.schemas import Envelope

router = APIRouter(prefix="/api", tags=["practice"])


@router.get("/search", response_model=Envelope)
async def search_questions(q: str = Query(..., min_length=1)) -> Envelope:
    """Search question text, explanations and options."""
    return respond(catalog.search_questions(q))


@router.get("/practice", response_model=Envelope)
async def get_practice_questions(
    course_id: str = Query(..., alias="courseId", min_length=1),
    count: int = Query(default=5, ge=1, le=100),
    unit_ids: list[str] | None = Query(default=None, alias="unitId"),
    topic_ids: list[str] | None = Query(default=None, alias="topicId"),
) -> Envelope:
    """Random practice questions, optionally limited to units or topics."""
    return respond(
        catalog.get_practice_questions(
            course_id,
            count=count,
            unit_ids=unit_ids,
            topic_ids=topic_ids,
        )
    )
