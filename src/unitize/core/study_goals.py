"""Study goals module.

Responsibilities:
- Persist per-user study goals (study-goals.json)
- Track progress towards each goal and mark it achieved
- Recompute goal progress from progress history, sessions and completion

A goal is achieved the first time its progress reaches its target; each
achievement bumps streakCount. Resetting a goal clears progress and the
achieved flag but keeps streakCount.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from unitize.core.progress import User, find_user, load_users
from unitize.core.results import ServiceResult, storage_failure
from unitize.core.study_sessions import StudySession, calculate_streaks, load_sessions
from unitize.db.file_store import STUDY_GOALS, FileStore, FileStoreError, get_file_store
from unitize.utils.dates import generate_id, now_iso, parse_timestamp, start_of_day, start_of_week, utc_now

logger = structlog.get_logger(__name__)


class GoalType(str, Enum):
    DAILY_QUESTIONS = "daily_questions"
    DAILY_MINUTES = "daily_minutes"
    WEEKLY_TOPICS = "weekly_topics"
    WEEKLY_UNITS = "weekly_units"
    COURSE_COMPLETION = "course_completion"


@dataclass
class StudyGoal:
    """A numeric target a user is working towards."""

    id: str
    user_id: str
    type: str
    target: float
    progress: float = 0
    course_id: str | None = None
    deadline: str | None = None
    created: str = ""
    achieved: bool = False
    completed_at: str | None = None
    streak_count: int = 0

    def __post_init__(self):
        if not self.created:
            self.created = now_iso()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudyGoal:
        return cls(
            id=data["id"],
            user_id=data.get("userId", ""),
            type=data["type"],
            target=data.get("target", 0),
            progress=data.get("progress", 0),
            course_id=data.get("courseId"),
            deadline=data.get("deadline"),
            created=data.get("created", ""),
            achieved=bool(data.get("achieved", False)),
            completed_at=data.get("completedAt"),
            streak_count=data.get("streakCount", 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "target": self.target,
            "progress": self.progress,
            "courseId": self.course_id,
            "deadline": self.deadline,
            "created": self.created,
            "achieved": self.achieved,
            "completedAt": self.completed_at,
            "streakCount": self.streak_count,
        }

    def set_progress(self, progress: float) -> None:
        """Set progress, marking the goal achieved when it first reaches target."""
        self.progress = progress
        if progress >= self.target and not self.achieved:
            self.achieved = True
            self.completed_at = now_iso()
            self.streak_count += 1

    def reset(self) -> None:
        self.progress = 0
        self.achieved = False
        self.completed_at = None


def load_goals(store: FileStore) -> list[StudyGoal]:
    data = store.read_or_default(STUDY_GOALS)
    return [StudyGoal.from_dict(g) for g in data.get("goals", [])]


def save_goals(store: FileStore, goals: list[StudyGoal]) -> Path:
    return store.write(STUDY_GOALS, {"goals": [g.to_dict() for g in goals]})


def _find_user_goal(goals: list[StudyGoal], user_id: str, goal_id: str) -> StudyGoal | None:
    for goal in goals:
        if goal.id == goal_id and goal.user_id == user_id:
            return goal
    return None


def _goal_not_found(user_id: str, goal_id: str) -> ServiceResult:
    return ServiceResult.not_found(f"Goal with ID {goal_id} not found for user {user_id}")


def compute_goal_progress(
    goal: StudyGoal,
    user: User | None,
    sessions: list[StudySession],
) -> float:
    """Current progress of a goal from the user's recorded activity.

    Days and weeks are UTC; weeks start on Sunday.
    """
    now = utc_now()
    today = start_of_day(now)
    week_start = start_of_week(now)
    history = user.question_history if user else []

    if goal.type == GoalType.DAILY_QUESTIONS:
        return sum(1 for q in history if parse_timestamp(q.timestamp) >= today)

    if goal.type == GoalType.DAILY_MINUTES:
        return sum(s.duration for s in sessions if s.started_at >= today)

    if goal.type == GoalType.WEEKLY_TOPICS:
        topics = {
            (q.course_id, q.topic_id)
            for q in history
            if parse_timestamp(q.timestamp) >= week_start
        }
        topics.update(
            (s.course_id, s.topic_id)
            for s in sessions
            if s.topic_id and s.started_at >= week_start
        )
        return len(topics)

    if goal.type == GoalType.WEEKLY_UNITS:
        return len(
            {
                (q.course_id, q.unit_id)
                for q in history
                if parse_timestamp(q.timestamp) >= week_start
            }
        )

    if goal.type == GoalType.COURSE_COMPLETION:
        if user is None or not goal.course_id:
            return 0
        course = user.get_course_progress(goal.course_id)
        return math.floor(course.completion_percentage) if course else 0

    return goal.progress


# =============================================================================
# SERVICE OPERATIONS
# =============================================================================


def create_goal(
    user_id: str,
    goal_type: str,
    target: float,
    course_id: str | None = None,
    deadline: str | None = None,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Create a goal with zero progress."""
    if goal_type not in {t.value for t in GoalType}:
        return ServiceResult.invalid(f"Invalid goal type: {goal_type}")
    if target <= 0:
        return ServiceResult.invalid("Target must be greater than 0")
    if goal_type == GoalType.COURSE_COMPLETION and not course_id:
        return ServiceResult.invalid("courseId is required for course completion goals")
    if deadline:
        try:
            parse_timestamp(deadline)
        except ValueError:
            return ServiceResult.invalid(f"Invalid deadline: {deadline}")

    goal = StudyGoal(
        id=generate_id("goal"),
        user_id=user_id,
        type=goal_type,
        target=target,
        course_id=course_id,
        deadline=deadline,
    )

    store = get_file_store(data_dir)
    try:
        goals = load_goals(store)
        goals.append(goal)
        save_goals(store, goals)
    except FileStoreError as e:
        return storage_failure("save goal data", e)

    logger.info("goal_created", goal_id=goal.id, user_id=user_id, type=goal_type, target=target)
    return ServiceResult.ok(goal)


def get_user_goals(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    """A user's goals together with their study streak."""
    store = get_file_store(data_dir)
    try:
        goals = load_goals(store)
        sessions = load_sessions(store)
    except FileStoreError as e:
        return storage_failure("retrieve goals", e)

    user_sessions = [s for s in sessions if s.user_id == user_id]
    return ServiceResult.ok(
        {
            "goals": [g.to_dict() for g in goals if g.user_id == user_id],
            "streakInfo": calculate_streaks(user_sessions).to_dict(),
        }
    )


def update_goal_progress(
    user_id: str,
    goal_id: str,
    progress: float,
    data_dir: Path | None = None,
) -> ServiceResult:
    if progress < 0:
        return ServiceResult.invalid("Progress must not be negative")

    store = get_file_store(data_dir)
    try:
        goals = load_goals(store)
    except FileStoreError as e:
        return storage_failure("update goal progress", e)

    goal = _find_user_goal(goals, user_id, goal_id)
    if goal is None:
        return _goal_not_found(user_id, goal_id)

    goal.set_progress(progress)

    try:
        save_goals(store, goals)
    except FileStoreError as e:
        return storage_failure("save goal data", e)

    logger.info("goal_progress_updated", goal_id=goal_id, progress=progress, achieved=goal.achieved)
    return ServiceResult.ok(goal)


def delete_goal(user_id: str, goal_id: str, data_dir: Path | None = None) -> ServiceResult:
    store = get_file_store(data_dir)
    try:
        goals = load_goals(store)
    except FileStoreError as e:
        return storage_failure("delete goal", e)

    goal = _find_user_goal(goals, user_id, goal_id)
    if goal is None:
        return _goal_not_found(user_id, goal_id)

    goals.remove(goal)
    try:
        save_goals(store, goals)
    except FileStoreError as e:
        return storage_failure("save goal data", e)

    logger.info("goal_deleted", goal_id=goal_id, user_id=user_id)
    return ServiceResult.ok(True)


def reset_goal(user_id: str, goal_id: str, data_dir: Path | None = None) -> ServiceResult:
    store = get_file_store(data_dir)
    try:
        goals = load_goals(store)
    except FileStoreError as e:
        return storage_failure("reset goal", e)

    goal = _find_user_goal(goals, user_id, goal_id)
    if goal is None:
        return _goal_not_found(user_id, goal_id)

    goal.reset()
    try:
        save_goals(store, goals)
    except FileStoreError as e:
        return storage_failure("save goal data", e)

    logger.info("goal_reset", goal_id=goal_id, user_id=user_id)
    return ServiceResult.ok(goal)


def auto_update_goals(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Recompute progress of every goal of a user.

    Returns:
        ServiceResult with the number of goals whose progress changed
    """
    store = get_file_store(data_dir)
    try:
        goals = load_goals(store)
        user = find_user(load_users(store), user_id)
        sessions = [s for s in load_sessions(store) if s.user_id == user_id]
    except FileStoreError as e:
        return storage_failure("update goals", e)

    updated = 0
    for goal in goals:
        if goal.user_id != user_id:
            continue
        new_progress = compute_goal_progress(goal, user, sessions)
        if new_progress != goal.progress:
            goal.set_progress(new_progress)
            updated += 1

    if updated:
        try:
            save_goals(store, goals)
        except FileStoreError as e:
            return storage_failure("save goal data", e)

    logger.info("goals_auto_updated", user_id=user_id, updated=updated)
    return ServiceResult.ok(updated)
