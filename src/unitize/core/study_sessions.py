"""Study sessions: timed study blocks logged by users (study-sessions.json)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import structlog

from unitize.core.results import ServiceResult, storage_failure
from unitize.db.file_store import STUDY_SESSIONS, FileStore, FileStoreError, get_file_store
from unitize.utils.dates import generate_id, parse_timestamp, start_of_day, start_of_week, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class StudySession:
    """A completed study block. duration is in minutes."""

    id: str
    user_id: str
    start_time: str
    end_time: str
    duration: float
    course_id: str | None = None
    topic_id: str | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudySession:
        return cls(
            id=data["id"],
            user_id=data.get("userId", ""),
            start_time=data["startTime"],
            end_time=data.get("endTime", data["startTime"]),
            duration=data.get("duration", 0),
            course_id=data.get("courseId"),
            topic_id=data.get("topicId"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "duration": self.duration,
            "courseId": self.course_id,
            "topicId": self.topic_id,
            "notes": self.notes,
        }

    @property
    def started_at(self) -> datetime:
        return parse_timestamp(self.start_time)


@dataclass
class StreakInfo:
    """Consecutive study days, derived from session start dates."""

    daily_streak: int = 0
    longest_streak: int = 0
    last_activity: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "dailyStreak": self.daily_streak,
            "longestStreak": self.longest_streak,
            "lastActivity": self.last_activity,
        }


def load_sessions(store: FileStore) -> list[StudySession]:
    data = store.read_or_default(STUDY_SESSIONS)
    return [StudySession.from_dict(s) for s in data.get("sessions", [])]


def save_sessions(store: FileStore, sessions: list[StudySession]) -> Path:
    return store.write(STUDY_SESSIONS, {"sessions": [s.to_dict() for s in sessions]})


def calculate_streaks(sessions: list[StudySession], today: date | None = None) -> StreakInfo:
    """Current and longest runs of consecutive study days.

    The current streak counts back from today, or from yesterday when
    nothing was logged today yet; otherwise it is 0.
    """
    if not sessions:
        return StreakInfo()

    today = today or utc_now().date()
    days = sorted({s.started_at.date() for s in sessions})

    longest = run = 1
    for previous, current in zip(days, days[1:]):
        run = run + 1 if (current - previous).days == 1 else 1
        longest = max(longest, run)

    day_set = set(days)
    cursor = today if today in day_set else today - timedelta(days=1)
    current_streak = 0
    while cursor in day_set:
        current_streak += 1
        cursor -= timedelta(days=1)

    last = max(sessions, key=lambda s: s.started_at)
    return StreakInfo(
        daily_streak=current_streak,
        longest_streak=longest,
        last_activity=last.start_time,
    )


# =============================================================================
# SERVICE OPERATIONS
# =============================================================================


def create_session(
    user_id: str,
    duration: float,
    course_id: str | None = None,
    topic_id: str | None = None,
    notes: str | None = None,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Log a study session that starts now and lasts duration minutes."""
    if not user_id:
        return ServiceResult.invalid("User ID is required")
    if duration <= 0:
        return ServiceResult.invalid("Duration must be greater than 0")

    now = utc_now()
    session = StudySession(
        id=generate_id("session"),
        user_id=user_id,
        start_time=now.isoformat(),
        end_time=(now + timedelta(minutes=duration)).isoformat(),
        duration=duration,
        course_id=course_id,
        topic_id=topic_id,
        notes=notes,
    )

    store = get_file_store(data_dir)
    try:
        sessions = load_sessions(store)
        sessions.append(session)
        save_sessions(store, sessions)
    except FileStoreError as e:
        return storage_failure("save the session", e)

    logger.info("study_session_created", session_id=session.id, user_id=user_id, duration=duration)
    return ServiceResult.ok(session)


def get_user_sessions(
    user_id: str,
    limit: int | None = None,
    offset: int = 0,
    data_dir: Path | None = None,
) -> ServiceResult:
    """A user's sessions, newest first."""
    if (limit is not None and limit < 1) or offset < 0:
        return ServiceResult.invalid("limit must be positive and offset not negative")

    try:
        sessions = load_sessions(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("get user sessions", e)

    user_sessions = sorted(
        (s for s in sessions if s.user_id == user_id),
        key=lambda s: s.started_at,
        reverse=True,
    )
    end = None if limit is None else offset + limit
    return ServiceResult.ok(user_sessions[offset:end])


def get_session(session_id: str, data_dir: Path | None = None) -> ServiceResult:
    try:
        sessions = load_sessions(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("get study session", e)

    for session in sessions:
        if session.id == session_id:
            return ServiceResult.ok(session)
    return ServiceResult.not_found(f"Session with ID {session_id} not found")


def delete_session(session_id: str, data_dir: Path | None = None) -> ServiceResult:
    store = get_file_store(data_dir)
    try:
        sessions = load_sessions(store)
    except FileStoreError as e:
        return storage_failure("delete study session", e)

    remaining = [s for s in sessions if s.id != session_id]
    if len(remaining) == len(sessions):
        return ServiceResult.not_found(f"Session with ID {session_id} not found")

    try:
        save_sessions(store, remaining)
    except FileStoreError as e:
        return storage_failure("save session data", e)

    logger.info("study_session_deleted", session_id=session_id)
    return ServiceResult.ok(True)


def get_user_stats(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Minutes studied today and this week, session length figures and streak."""
    try:
        sessions = load_sessions(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve user statistics", e)

    user_sessions = [s for s in sessions if s.user_id == user_id]
    if not user_sessions:
        return ServiceResult.ok(
            {
                "todayMinutes": 0,
                "weekMinutes": 0,
                "totalSessions": 0,
                "averageSessionLength": 0,
                "longestSession": 0,
                "currentStreak": 0,
                "longestStreak": 0,
            }
        )

    now = utc_now()
    today = start_of_day(now)
    week_start = start_of_week(now)
    total_minutes = sum(s.duration for s in user_sessions)
    streaks = calculate_streaks(user_sessions, now.date())

    return ServiceResult.ok(
        {
            "todayMinutes": sum(s.duration for s in user_sessions if s.started_at >= today),
            "weekMinutes": sum(s.duration for s in user_sessions if s.started_at >= week_start),
            "totalSessions": len(user_sessions),
            "averageSessionLength": round(total_minutes / len(user_sessions)),
            "longestSession": max(s.duration for s in user_sessions),
            "currentStreak": streaks.daily_streak,
            "longestStreak": streaks.longest_streak,
        }
    )
