"""User progress endpoints."""

from fastapi import APIRouter, Query

from unitize.core import progress
from unitize.web.responses import respond
from unitize.web.schemas import (
    CourseResetRequest,
    Envelope,
    HistoryEntryCreate,
    ProgressUpdateRequest,
    UserCreate,
)

router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("", response_model=Envelope)
async def get_progress(
    user_id: str = Query(..., alias="userId", min_length=1),
    course_id: str | None = Query(default=None, alias="courseId"),
) -> Envelope:
    """Get a user, or only their progress on one course."""
    return respond(progress.get_user_progress(user_id, course_id))


@router.post("", response_model=Envelope)
async def create_user(user_data: UserCreate) -> Envelope:
    return respond(progress.create_user(user_data.name, user_data.email))


@router.post("/update", response_model=Envelope)
async def update_progress(body: ProgressUpdateRequest) -> Envelope:
    """Record a question attempt."""
    update = progress.ProgressUpdate(
        user_id=body.user_id,
        course_id=body.course_id,
        unit_id=body.unit_id,
        topic_id=body.topic_id,
        question_id=body.question_id,
        is_correct=body.is_correct,
        time_spent_seconds=body.time_spent_seconds,
    )
    return respond(progress.update_progress(update))


@router.get("/stats", response_model=Envelope)
async def get_stats(
    user_id: str = Query(..., alias="userId", min_length=1),
    course_id: str | None = Query(default=None, alias="courseId"),
) -> Envelope:
    """Overall stats, or a per-unit breakdown when courseId is given."""
    if course_id:
        return respond(progress.get_course_stats(user_id, course_id))
    return respond(progress.get_user_stats(user_id))


@router.get("/recommend", response_model=Envelope)
async def get_recommended_practice(
    user_id: str = Query(..., alias="userId", min_length=1),
    course_id: str = Query(..., alias="courseId", min_length=1),
    count: int = Query(default=3, ge=1, le=50),
) -> Envelope:
    return respond(progress.get_recommended_practice(user_id, course_id, count))


@router.get("/history", response_model=Envelope)
async def get_test_history(
    user_id: str = Query(..., alias="userId", min_length=1),
    course_id: str | None = Query(default=None, alias="courseId"),
) -> Envelope:
    return respond(progress.get_test_history(user_id, course_id))


@router.post("/history/add", response_model=Envelope)
async def add_test_history_entry(body: HistoryEntryCreate) -> Envelope:
    return respond(
        progress.add_test_history_entry(
            body.user_id,
            body.course_id,
            total_questions=body.total_questions,
            correct_questions=body.correct_questions,
            time_spent_seconds=body.time_spent_seconds,
            score=body.score,
            unit_id=body.unit_id,
            topic_id=body.topic_id,
        )
    )


@router.post("/reset", response_model=Envelope)
async def reset_course_progress(body: CourseResetRequest) -> Envelope:
    """Clear a user's progress on one course."""
    return respond(progress.reset_course_progress(body.user_id, body.course_id))
