"""Spaced repetition for catalog questions.

Each user keeps review cards in ``metadata.spacedRepetition.cards`` of their
progress record. Scheduling uses a small fixed table rather than an
ease-factor algorithm:

    first repetition   again 1d, hard 2d, good 3d, easy 4d
    later repetitions  previous interval x hard 1.2, good 2.5, easy 4.0
    again              interval back to 1d, repetitions back to 0
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from unitize.config.app_config import load_app_config
from unitize.core.progress import User, find_user, load_users, save_users
from unitize.core.results import ServiceResult, storage_failure
from unitize.db.file_store import FileStoreError, get_file_store
from unitize.utils.dates import parse_timestamp, start_of_day, utc_now

logger = structlog.get_logger(__name__)

METADATA_KEY = "spacedRepetition"


class ReviewRating(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


# Numeric ratings sent by older clients (1 = easiest)
LEGACY_RATINGS: dict[int, ReviewRating] = {
    1: ReviewRating.EASY,
    2: ReviewRating.GOOD,
    3: ReviewRating.HARD,
    4: ReviewRating.AGAIN,
}

FIRST_INTERVALS: dict[ReviewRating, int] = {
    ReviewRating.AGAIN: 1,
    ReviewRating.HARD: 2,
    ReviewRating.GOOD: 3,
    ReviewRating.EASY: 4,
}

INTERVAL_MULTIPLIERS: dict[ReviewRating, float] = {
    ReviewRating.HARD: 1.2,
    ReviewRating.GOOD: 2.5,
    ReviewRating.EASY: 4.0,
}


@dataclass
class ReviewCard:
    """Review schedule for one question."""

    course_id: str
    unit_id: str
    topic_id: str
    question_id: str
    due_date: str
    interval: int = 0
    reps: int = 0
    last_reviewed: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewCard:
        return cls(
            course_id=data.get("courseId", ""),
            unit_id=data.get("unitId", ""),
            topic_id=data.get("topicId", ""),
            question_id=data["questionId"],
            due_date=data["dueDate"],
            interval=data.get("interval", 0),
            reps=data.get("reps", 0),
            last_reviewed=data.get("lastReviewed"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "courseId": self.course_id,
            "unitId": self.unit_id,
            "topicId": self.topic_id,
            "questionId": self.question_id,
            "dueDate": self.due_date,
            "interval": self.interval,
            "reps": self.reps,
            "lastReviewed": self.last_reviewed,
        }

    def matches(self, course_id: str, unit_id: str, topic_id: str, question_id: str) -> bool:
        return (
            self.course_id == course_id
            and self.unit_id == unit_id
            and self.topic_id == topic_id
            and self.question_id == question_id
        )

    @property
    def due_at(self) -> datetime:
        return parse_timestamp(self.due_date)


def parse_rating(value: Any) -> ReviewRating | None:
    """Accept a rating name or a legacy 1-4 number."""
    if isinstance(value, ReviewRating):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return LEGACY_RATINGS.get(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            return LEGACY_RATINGS.get(int(text))
        try:
            return ReviewRating(text)
        except ValueError:
            return None
    return None


def next_interval(card: ReviewCard, rating: ReviewRating, max_interval_days: int = 365) -> int:
    """Days until the next review after rating card."""
    if rating is ReviewRating.AGAIN:
        days = FIRST_INTERVALS[ReviewRating.AGAIN]
    elif card.reps == 0:
        days = FIRST_INTERVALS[rating]
    else:
        days = max(1, round(max(card.interval, 1) * INTERVAL_MULTIPLIERS[rating]))
    return min(days, max_interval_days)


def get_user_cards(user: User) -> list[ReviewCard]:
    section = user.metadata.get(METADATA_KEY) or {}
    return [ReviewCard.from_dict(c) for c in section.get("cards", [])]


def set_user_cards(user: User, cards: list[ReviewCard]) -> None:
    user.metadata[METADATA_KEY] = {
        "userId": user.id,
        "cards": [c.to_dict() for c in cards],
    }


def _user_not_found(user_id: str) -> ServiceResult:
    return ServiceResult.not_found(f"User with ID {user_id} not found")


# =============================================================================
# SERVICE OPERATIONS
# =============================================================================


def process_review(
    user_id: str,
    course_id: str,
    unit_id: str,
    topic_id: str,
    question_id: str,
    rating: Any,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Schedule a question's next review from the learner's rating.

    The review card is created on the first review.
    """
    parsed = parse_rating(rating)
    if parsed is None:
        return ServiceResult.invalid(
            f"Invalid rating: {rating}. Expected again, hard, good, easy or 1-4"
        )

    store = get_file_store(data_dir)
    try:
        users = load_users(store)
    except FileStoreError as e:
        return storage_failure("process review", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)

    now = utc_now()
    cards = get_user_cards(user)
    card = next(
        (c for c in cards if c.matches(course_id, unit_id, topic_id, question_id)),
        None,
    )
    if card is None:
        card = ReviewCard(
            course_id=course_id,
            unit_id=unit_id,
            topic_id=topic_id,
            question_id=question_id,
            due_date=now.isoformat(),
        )
        cards.append(card)

    card.interval = next_interval(card, parsed, load_app_config().review.max_interval_days)
    card.reps = 0 if parsed is ReviewRating.AGAIN else card.reps + 1
    card.due_date = (now + timedelta(days=card.interval)).isoformat()
    card.last_reviewed = now.isoformat()

    set_user_cards(user, cards)
    try:
        save_users(store, users)
    except FileStoreError as e:
        return storage_failure("save review", e)

    logger.info(
        "question_reviewed",
        user_id=user_id,
        question_id=question_id,
        rating=parsed.value,
        interval=card.interval,
    )
    return ServiceResult.ok(card)


def add_question(
    user_id: str,
    course_id: str,
    unit_id: str,
    topic_id: str,
    question_id: str,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Start tracking a question, due immediately. No-op if already tracked."""
    store = get_file_store(data_dir)
    try:
        users = load_users(store)
    except FileStoreError as e:
        return storage_failure("add review question", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)

    cards = get_user_cards(user)
    for card in cards:
        if card.matches(course_id, unit_id, topic_id, question_id):
            return ServiceResult.ok(card)

    card = ReviewCard(
        course_id=course_id,
        unit_id=unit_id,
        topic_id=topic_id,
        question_id=question_id,
        due_date=utc_now().isoformat(),
    )
    cards.append(card)
    set_user_cards(user, cards)

    try:
        save_users(store, users)
    except FileStoreError as e:
        return storage_failure("save review question", e)

    logger.info("review_question_added", user_id=user_id, question_id=question_id)
    return ServiceResult.ok(card)


def get_due_cards(user_id: str, limit: int = 20, data_dir: Path | None = None) -> ServiceResult:
    """Review cards due now, earliest first."""
    if limit < 1:
        return ServiceResult.invalid("limit must be at least 1")

    try:
        users = load_users(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve due reviews", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)

    now = utc_now()
    due = sorted(
        (c for c in get_user_cards(user) if c.due_at <= now),
        key=lambda c: c.due_at,
    )
    return ServiceResult.ok(due[:limit])


def get_review_stats(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    try:
        users = load_users(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve review stats", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)

    cards = get_user_cards(user)
    today_start = start_of_day(utc_now())
    tomorrow_start = today_start + timedelta(days=1)
    tomorrow_end = tomorrow_start + timedelta(days=1)

    return ServiceResult.ok(
        {
            "reviewsDueToday": sum(1 for c in cards if c.due_at < tomorrow_start),
            "reviewsDueTomorrow": sum(
                1 for c in cards if tomorrow_start <= c.due_at < tomorrow_end
            ),
            "reviewsCompletedToday": sum(
                1
                for c in cards
                if c.last_reviewed and parse_timestamp(c.last_reviewed) >= today_start
            ),
            "totalCards": len(cards),
        }
    )
