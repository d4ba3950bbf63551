"""Study session endpoints."""

from fastapi import APIRouter, Query

from unitize.core import study_sessions
from unitize.web.responses import respond
from unitize.web.schemas import Envelope, StudySessionCreate

router = APIRouter(prefix="/api/study-sessions", tags=["study-sessions"])


@router.get("", response_model=Envelope)
async def list_sessions(
    user_id: str = Query(..., alias="userId", min_length=1),
    limit: int | None = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> Envelope:
    """A user's sessions, newest first."""
    return respond(study_sessions.get_user_sessions(user_id, limit, offset))


@router.post("", response_model=Envelope)
async def create_session(body: StudySessionCreate) -> Envelope:
    return respond(
        study_sessions.create_session(
            body.user_id,
            body.duration,
            course_id=body.course_id,
            topic_id=body.topic_id,
            notes=body.notes,
        )
    )


@router.delete("", response_model=Envelope)
async def delete_session(session_id: str = Query(..., alias="sessionId", min_length=1)) -> Envelope:
    return respond(study_sessions.delete_session(session_id))


@router.get("/stats", response_model=Envelope)
async def get_session_stats(user_id: str = Query(..., alias="userId", min_length=1)) -> Envelope:
    return respond(study_sessions.get_user_stats(user_id))


@router.get("/{session_id}", response_model=Envelope)
async def get_session(session_id: str) -> Envelope:
    return respond(study_sessions.get_session(session_id))
