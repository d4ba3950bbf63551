"""Learning analytics.

Everything is computed per request from the raw documents: progress
(question history, course progress, review cards), study sessions, study
goals and flashcards. Nothing is cached or pre-aggregated.

Flashcards only keep their latest review time, so per-day flashcard counts
reflect the day each card was last reviewed.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import structlog

from unitize.core.catalog import Course, load_courses
from unitize.core.flashcards import Flashcard, load_flashcards
from unitize.core.progress import User, find_user, load_users
from unitize.core.results import ServiceResult, storage_failure
from unitize.core.spaced_repetition import get_user_cards
from unitize.core.study_goals import StudyGoal, load_goals
from unitize.core.study_sessions import StudySession, calculate_streaks, load_sessions
from unitize.db.file_store import FileStoreError, get_file_store
from unitize.utils.dates import parse_timestamp, utc_now

logger = structlog.get_logger(__name__)

ACTIVITY_DAYS = 30
MIN_TOPIC_ATTEMPTS = 5
STRENGTH_THRESHOLD = 70.0
MAX_LISTED_TOPICS = 3
MAX_TOP_TAGS = 5

# Hour ranges (UTC, end exclusive) for the best-time-of-day insight
TIME_OF_DAY_BUCKETS = (
    ("morning", 5, 12),
    ("afternoon", 12, 17),
    ("evening", 17, 22),
)


@dataclass
class UserActivity:
    """Raw records of one user, gathered from every document."""

    user: User
    sessions: list[StudySession] = field(default_factory=list)
    goals: list[StudyGoal] = field(default_factory=list)
    flashcards: list[Flashcard] = field(default_factory=list)
    courses: list[Course] = field(default_factory=list)

    def topic_name(self, course_id: str, unit_id: str, topic_id: str) -> str:
        for course in self.courses:
            if course.id != course_id:
                continue
            unit = course.get_unit(unit_id)
            if unit is None:
                break
            for topic in unit.topics:
                if topic.id == topic_id:
                    return topic.name
        return topic_id

    def course_name(self, course_id: str) -> str:
        for course in self.courses:
            if course.id == course_id:
                return course.name
        return course_id


def load_user_activity(user_id: str, data_dir: Path | None = None) -> UserActivity | None:
    """Gather a user's records, or None if the user does not exist.

    Raises:
        FileStoreError: If a document cannot be read
    """
    store = get_file_store(data_dir)
    user = find_user(load_users(store), user_id)
    if user is None:
        return None

    collection = load_flashcards(store)
    card_ids = {cid for deck in collection.user_decks(user_id) for cid in deck.card_ids}

    return UserActivity(
        user=user,
        sessions=[s for s in load_sessions(store) if s.user_id == user_id],
        goals=[g for g in load_goals(store) if g.user_id == user_id],
        flashcards=[c for c in collection.cards if c.id in card_ids],
        courses=load_courses(store),
    )


# =============================================================================
# AGGREGATES
# =============================================================================


def _accuracy(correct: int, total: int) -> float:
    return correct / total * 100 if total else 0


def calculate_daily_activity(activity: UserActivity, days: int = ACTIVITY_DAYS) -> list[dict[str, Any]]:
    """Per-day counts for the last `days` days, oldest first, ending today."""
    today = utc_now().date()
    first_day = today - timedelta(days=days - 1)
    by_day: dict[date, dict[str, Any]] = {}
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        by_day[day] = {
            "date": day.isoformat(),
            "questionCount": 0,
            "correctCount": 0,
            "minutesStudied": 0,
            "flashcardsReviewed": 0,
        }

    for record in activity.user.question_history:
        entry = by_day.get(parse_timestamp(record.timestamp).date())
        if entry is not None:
            entry["questionCount"] += 1
            if record.correct:
                entry["correctCount"] += 1

    for session in activity.sessions:
        entry = by_day.get(session.started_at.date())
        if entry is not None:
            entry["minutesStudied"] += session.duration

    for card in activity.flashcards:
        if not card.last_reviewed:
            continue
        entry = by_day.get(parse_timestamp(card.last_reviewed).date())
        if entry is not None:
            entry["flashcardsReviewed"] += 1

    return list(by_day.values())


def calculate_topic_performance(activity: UserActivity) -> list[dict[str, Any]]:
    performance = []
    for course in activity.user.courses_progress:
        for unit in course.units_progress:
            for topic in unit.topics_progress:
                attempted = len(topic.questions_attempted)
                correct = len(topic.questions_correct)
                performance.append(
                    {
                        "courseId": course.course_id,
                        "unitId": unit.unit_id,
                        "topicId": topic.topic_id,
                        "topicName": activity.topic_name(
                            course.course_id, unit.unit_id, topic.topic_id
                        ),
                        "questionCount": attempted,
                        "correctCount": correct,
                        "accuracy": _accuracy(correct, attempted),
                    }
                )
    return performance


def calculate_strengths_weaknesses(topic_performance: list[dict[str, Any]]) -> dict[str, Any]:
    """Best and worst topics among those with enough attempts."""
    eligible = sorted(
        (t for t in topic_performance if t["questionCount"] >= MIN_TOPIC_ATTEMPTS),
        key=lambda t: t["accuracy"],
        reverse=True,
    )

    def summary(topic: dict[str, Any]) -> dict[str, Any]:
        return {
            "topicId": topic["topicId"],
            "topicName": topic["topicName"],
            "accuracy": topic["accuracy"],
        }

    strengths = [
        summary(t) for t in eligible[:MAX_LISTED_TOPICS] if t["accuracy"] >= STRENGTH_THRESHOLD
    ]
    weaknesses = [
        summary(t)
        for t in reversed(eligible[-MAX_LISTED_TOPICS:])
        if t["accuracy"] < STRENGTH_THRESHOLD
    ]
    return {"strengths": strengths, "weaknesses": weaknesses}


def best_time_of_day(activity: UserActivity) -> str | None:
    """Part of the day (UTC) with the most answered questions."""
    counts: Counter[str] = Counter()
    for record in activity.user.question_history:
        hour = parse_timestamp(record.timestamp).hour
        for name, start, end in TIME_OF_DAY_BUCKETS:
            if start <= hour < end:
                counts[name] += 1
                break
        else:
            counts["night"] += 1

    if not counts:
        return None
    return counts.most_common(1)[0][0]


def calculate_study_habits(
    activity: UserActivity,
    daily_activity: list[dict[str, Any]],
) -> dict[str, Any]:
    history = activity.user.question_history
    streaks = calculate_streaks(activity.sessions)
    active_days = sum(
        1
        for day in daily_activity
        if day["questionCount"] or day["minutesStudied"] or day["flashcardsReviewed"]
    )
    tags = Counter(tag for card in activity.flashcards for tag in card.tags)
    total_minutes = sum(s.duration for s in activity.sessions)

    return {
        "bestTimeOfDay": best_time_of_day(activity),
        "averageSessionLength": (
            round(total_minutes / len(activity.sessions)) if activity.sessions else 0
        ),
        "longestStreak": streaks.longest_streak,
        "currentStreak": streaks.daily_streak,
        "averageAccuracy": _accuracy(sum(1 for q in history if q.correct), len(history)),
        "studyConsistency": active_days / len(daily_activity) * 100 if daily_activity else 0,
        "topTags": [
            {"tag": tag, "count": count} for tag, count in tags.most_common(MAX_TOP_TAGS)
        ],
    }


def calculate_performance_trend(activity: UserActivity, period: str) -> dict[str, Any]:
    """Daily figures for the last week, or weekly figures for the last four weeks."""
    if period == "week":
        days = calculate_daily_activity(activity, 7)
        return {
            "period": "week",
            "dates": [d["date"] for d in days],
            "accuracy": [_accuracy(d["correctCount"], d["questionCount"]) for d in days],
            "questionCounts": [d["questionCount"] for d in days],
            "studyMinutes": [d["minutesStudied"] for d in days],
        }

    days = calculate_daily_activity(activity, 28)
    weeks = [days[i:i + 7] for i in range(0, 28, 7)]
    accuracy = []
    for week in weeks:
        active = [d for d in week if d["questionCount"] > 0]
        accuracy.append(
            sum(_accuracy(d["correctCount"], d["questionCount"]) for d in active) / len(active)
            if active
            else 0
        )
    return {
        "period": "month",
        "dates": [f"Week {i + 1}" for i in range(len(weeks))],
        "accuracy": accuracy,
        "questionCounts": [sum(d["questionCount"] for d in week) for week in weeks],
        "studyMinutes": [sum(d["minutesStudied"] for d in week) for week in weeks],
    }


def calculate_goal_progress(activity: UserActivity) -> list[dict[str, Any]]:
    """Active goals, closest to completion first."""
    progress = [
        {
            "goalId": goal.id,
            "type": goal.type,
            "target": goal.target,
            "current": goal.progress,
            "percentage": min(100.0, goal.progress / goal.target * 100) if goal.target else 0,
        }
        for goal in activity.goals
        if not goal.achieved
    ]
    return sorted(progress, key=lambda g: g["percentage"], reverse=True)


def calculate_reviews_due(activity: UserActivity) -> dict[str, int]:
    """Review cards due now, within a day and within a week."""
    now = utc_now()
    tomorrow = now + timedelta(days=1)
    next_week = now + timedelta(days=7)
    result = {"today": 0, "tomorrow": 0, "nextWeek": 0}

    for card in get_user_cards(activity.user):
        due = card.due_at
        if due <= now:
            result["today"] += 1
        elif due <= tomorrow:
            result["tomorrow"] += 1
        elif due <= next_week:
            result["nextWeek"] += 1
    return result


def calculate_total_stats(activity: UserActivity) -> dict[str, Any]:
    user = activity.user
    return {
        "questionsAnswered": user.total_questions_attempted,
        "correctAnswers": user.total_questions_correct,
        "minutesStudied": sum(s.duration for s in activity.sessions),
        "flashcardsReviewed": sum(c.review_count for c in activity.flashcards),
        "averageAccuracy": _accuracy(
            user.total_questions_correct, user.total_questions_attempted
        ),
        "courseProgress": [
            {
                "courseId": course.course_id,
                "courseName": activity.course_name(course.course_id),
                "progress": course.completion_percentage,
            }
            for course in user.courses_progress
        ],
    }


# =============================================================================
# SERVICE OPERATIONS
# =============================================================================


def get_comprehensive_analytics(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Full analytics report for a user."""
    try:
        activity = load_user_activity(user_id, data_dir)
    except FileStoreError as e:
        return storage_failure("compute analytics", e)

    if activity is None:
        return ServiceResult.not_found(f"User with ID {user_id} not found")

    daily_activity = calculate_daily_activity(activity)
    topic_performance = calculate_topic_performance(activity)

    logger.debug("analytics_computed", user_id=user_id)
    return ServiceResult.ok(
        {
            "dailyActivity": daily_activity,
            "topicPerformance": topic_performance,
            "strengthsWeaknesses": calculate_strengths_weaknesses(topic_performance),
            "studyHabitInsights": calculate_study_habits(activity, daily_activity),
            "performanceTrends": {
                "weekly": calculate_performance_trend(activity, "week"),
                "monthly": calculate_performance_trend(activity, "month"),
            },
            "goalProgress": calculate_goal_progress(activity),
            "reviewDue": calculate_reviews_due(activity),
            "totalStats": calculate_total_stats(activity),
        }
    )
