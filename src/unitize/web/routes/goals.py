"""Study goal endpoints."""

from fastapi import APIRouter, Query

from unitize.core import study_goals
from unitize.web.responses import respond
from unitize.web.schemas import (
    Envelope,
    GoalCreate,
    GoalProgressUpdate,
    GoalReference,
    UserReference,
)

router = APIRouter(prefix="/api/goals", tags=["goals"])


@router.get("", response_model=Envelope)
async def list_goals(user_id: str = Query(..., alias="userId", min_length=1)) -> Envelope:
    """A user's goals and study streak."""
    return respond(study_goals.get_user_goals(user_id))


@router.post("", response_model=Envelope)
async def create_goal(body: GoalCreate) -> Envelope:
    return respond(
        study_goals.create_goal(
            body.user_id,
            body.type,
            body.target,
            course_id=body.course_id,
            deadline=body.deadline,
        )
    )


@router.put("", response_model=Envelope)
async def update_goal_progress(body: GoalProgressUpdate) -> Envelope:
    return respond(study_goals.update_goal_progress(body.user_id, body.goal_id, body.progress))


@router.delete("", response_model=Envelope)
async def delete_goal(
    user_id: str = Query(..., alias="userId", min_length=1),
    goal_id: str = Query(..., alias="goalId", min_length=1),
) -> Envelope:
    return respond(study_goals.delete_goal(user_id, goal_id))


@router.patch("", response_model=Envelope)
async def reset_goal(body: GoalReference) -> Envelope:
    """Reset a goal's progress to zero."""
    return respond(study_goals.reset_goal(body.user_id, body.goal_id))


@router.post("/refresh", response_model=Envelope)
async def refresh_goals(body: UserReference) -> Envelope:
    """Recompute goal progress from recorded activity."""
    return respond(study_goals.auto_update_goals(body.user_id))
