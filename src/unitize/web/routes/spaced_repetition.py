"""Spaced repetition endpoints."""

from fastapi import APIRouter, Query

from unitize.config.app_config import load_app_config
from unitize.core import spaced_repetition
from unitize.web.responses import respond
from unitize.web.schemas import Envelope, ReviewQuestion, ReviewSubmit

router = APIRouter(prefix="/api/spaced-repetition", tags=["spaced-repetition"])


@router.get("", response_model=Envelope)
async def get_due_reviews(
    user_id: str = Query(..., alias="userId", min_length=1),
    limit: int | None = Query(default=None, ge=1, le=500),
) -> Envelope:
    """Questions due for review, earliest first."""
    return respond(
        spaced_repetition.get_due_cards(
            user_id, limit or load_app_config().review.due_cards_limit
        )
    )


@router.post("", response_model=Envelope)
async def submit_review(body: ReviewSubmit) -> Envelope:
    return respond(
        spaced_repetition.process_review(
            body.user_id,
            body.course_id,
            body.unit_id,
            body.topic_id,
            body.question_id,
            body.difficulty,
        )
    )


@router.put("", response_model=Envelope)
async def add_question(body: ReviewQuestion) -> Envelope:
    """Start reviewing a question."""
    return respond(
        spaced_repetition.add_question(
            body.user_id,
            body.course_id,
            body.unit_id,
            body.topic_id,
            body.question_id,
        )
    )


@router.patch("", response_model=Envelope)
async def get_review_stats(user_id: str = Query(..., alias="userId", min_length=1)) -> Envelope:
    return respond(spaced_repetition.get_review_stats(user_id))
