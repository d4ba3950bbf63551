"""User progress module.

Responsibilities:
- Persist users and their course/unit/topic progress (progress.json)
- Record question attempts and keep aggregate counters consistent
- Derive stats, strengths/weaknesses and practice recommendations
- Keep a per-user test history

Progress is nested CourseProgress -> UnitProgress -> TopicProgress. Records
are created on first attempt and never deleted (a course reset replaces the
course record with an empty one).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from unitize.core.catalog import load_courses
from unitize.core.results import ServiceResult, storage_failure
from unitize.db.file_store import PROGRESS, FileStore, FileStoreError, get_file_store
from unitize.utils.dates import days_between, generate_id, now_iso, parse_timestamp, utc_now

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

STRENGTH_THRESHOLD = 70.0
MAX_STRENGTHS = 2
MAX_WEAKNESSES = 2

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class TopicProgress:
    """Progress on a single topic."""

    topic_id: str
    completion_percentage: float = 0.0
    questions_attempted: list[str] = field(default_factory=list)
    questions_correct: list[str] = field(default_factory=list)
    time_spent_seconds: int = 0
    last_accessed: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TopicProgress:
        return cls(
            topic_id=data["topic_id"],
            completion_percentage=data.get("completion_percentage", 0.0),
            questions_attempted=list(data.get("questions_attempted", [])),
            questions_correct=list(data.get("questions_correct", [])),
            time_spent_seconds=data.get("time_spent_seconds", 0),
            last_accessed=data.get("last_accessed", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic_id": self.topic_id,
            "completion_percentage": self.completion_percentage,
            "questions_attempted": self.questions_attempted,
            "questions_correct": self.questions_correct,
            "time_spent_seconds": self.time_spent_seconds,
            "last_accessed": self.last_accessed,
        }

    def recalculate(self) -> None:
        """Completion is the share of attempted questions answered correctly."""
        if self.questions_attempted:
            self.completion_percentage = (
                len(self.questions_correct) / len(self.questions_attempted) * 100
            )
        else:
            self.completion_percentage = 0.0


@dataclass
class UnitProgress:
    """Progress on a unit, aggregated from its topics."""

    unit_id: str
    completion_percentage: float = 0.0
    topics_progress: list[TopicProgress] = field(default_factory=list)
    time_spent_seconds: int = 0
    last_accessed: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UnitProgress:
        return cls(
            unit_id=data["unit_id"],
            completion_percentage=data.get("completion_percentage", 0.0),
            topics_progress=[
                TopicProgress.from_dict(t) for t in data.get("topics_progress", [])
            ],
            time_spent_seconds=data.get("time_spent_seconds", 0),
            last_accessed=data.get("last_accessed", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "completion_percentage": self.completion_percentage,
            "topics_progress": [t.to_dict() for t in self.topics_progress],
            "time_spent_seconds": self.time_spent_seconds,
            "last_accessed": self.last_accessed,
        }

    def get_or_create_topic(self, topic_id: str, now: str) -> TopicProgress:
        for topic in self.topics_progress:
            if topic.topic_id == topic_id:
                return topic
        topic = TopicProgress(topic_id=topic_id, last_accessed=now)
        self.topics_progress.append(topic)
        return topic

    @property
    def attempted_count(self) -> int:
        return sum(len(t.questions_attempted) for t in self.topics_progress)

    @property
    def correct_count(self) -> int:
        return sum(len(t.questions_correct) for t in self.topics_progress)

    def recalculate(self) -> None:
        for topic in self.topics_progress:
            topic.recalculate()
        if self.topics_progress:
            self.completion_percentage = sum(
                t.completion_percentage for t in self.topics_progress
            ) / len(self.topics_progress)
        else:
            self.completion_percentage = 0.0


@dataclass
class CourseProgress:
    """Progress on a course, aggregated from its units."""

    course_id: str
    last_accessed: str = ""
    completion_percentage: float = 0.0
    units_progress: list[UnitProgress] = field(default_factory=list)
    time_spent_seconds: int = 0
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CourseProgress:
        return cls(
            course_id=data["course_id"],
            last_accessed=data.get("last_accessed", ""),
            completion_percentage=data.get("completion_percentage", 0.0),
            units_progress=[
                UnitProgress.from_dict(u) for u in data.get("units_progress", [])
            ],
            time_spent_seconds=data.get("time_spent_seconds", 0),
            strengths=list(data.get("strengths", [])),
            weaknesses=list(data.get("weaknesses", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "last_accessed": self.last_accessed,
            "completion_percentage": self.completion_percentage,
            "units_progress": [u.to_dict() for u in self.units_progress],
            "time_spent_seconds": self.time_spent_seconds,
            "strengths": self.strengths,
            "weaknesses": self.weaknesses,
        }

    def get_or_create_unit(self, unit_id: str, now: str) -> UnitProgress:
        for unit in self.units_progress:
            if unit.unit_id == unit_id:
                return unit
        unit = UnitProgress(unit_id=unit_id, last_accessed=now)
        self.units_progress.append(unit)
        return unit

    def recalculate(self) -> None:
        for unit in self.units_progress:
            unit.recalculate()
        if self.units_progress:
            self.completion_percentage = sum(
                u.completion_percentage for u in self.units_progress
            ) / len(self.units_progress)
        else:
            self.completion_percentage = 0.0

    def update_strengths_and_weaknesses(self) -> None:
        """Top units at or above the threshold are strengths, bottom ones below it weaknesses."""
        accuracies = [
            (unit.unit_id, unit.correct_count / unit.attempted_count * 100)
            for unit in self.units_progress
            if unit.attempted_count > 0
        ]
        ranked = sorted(accuracies, key=lambda item: item[1], reverse=True)

        self.strengths = [
            unit_id
            for unit_id, accuracy in ranked[:MAX_STRENGTHS]
            if accuracy >= STRENGTH_THRESHOLD
        ]
        self.weaknesses = [
            unit_id
            for unit_id, accuracy in ranked[-MAX_WEAKNESSES:]
            if accuracy < STRENGTH_THRESHOLD
        ]


@dataclass
class TestHistoryEntry:
    """Result of a completed practice test."""

    id: str
    course_id: str
    date: str
    score: float
    total_questions: int
    correct_questions: int
    time_spent_seconds: int
    unit_id: str | None = None
    topic_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestHistoryEntry:
        return cls(
            id=data["id"],
            course_id=data["course_id"],
            date=data.get("date", ""),
            score=data.get("score", 0),
            total_questions=data.get("total_questions", 0),
            correct_questions=data.get("correct_questions", 0),
            time_spent_seconds=data.get("time_spent_seconds", 0),
            unit_id=data.get("unit_id"),
            topic_id=data.get("topic_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "unit_id": self.unit_id,
            "topic_id": self.topic_id,
            "date": self.date,
            "score": self.score,
            "total_questions": self.total_questions,
            "correct_questions": self.correct_questions,
            "time_spent_seconds": self.time_spent_seconds,
        }


@dataclass
class QuestionRecord:
    """One question attempt, kept for activity analytics."""

    question_id: str
    course_id: str
    unit_id: str
    topic_id: str
    correct: bool
    time_spent_seconds: int
    timestamp: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuestionRecord:
        return cls(
            question_id=data["question_id"],
            course_id=data.get("course_id", ""),
            unit_id=data.get("unit_id", ""),
            topic_id=data.get("topic_id", ""),
            correct=bool(data.get("correct", False)),
            time_spent_seconds=data.get("time_spent_seconds", 0),
            timestamp=data.get("timestamp", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "course_id": self.course_id,
            "unit_id": self.unit_id,
            "topic_id": self.topic_id,
            "correct": self.correct,
            "time_spent_seconds": self.time_spent_seconds,
            "timestamp": self.timestamp,
        }


@dataclass
class User:
    """A learner with their progress across courses."""

    id: str
    name: str
    email: str = ""
    courses_progress: list[CourseProgress] = field(default_factory=list)
    study_streak_days: int = 0
    total_questions_attempted: int = 0
    total_questions_correct: int = 0
    total_time_spent_seconds: int = 0
    joined_date: str = ""
    last_login: str = ""
    test_history: list[TestHistoryEntry] = field(default_factory=list)
    question_history: list[QuestionRecord] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set timestamps if not provided."""
        now = now_iso()
        if not self.joined_date:
            self.joined_date = now
        if not self.last_login:
            self.last_login = now

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            courses_progress=[
                CourseProgress.from_dict(c) for c in data.get("courses_progress", [])
            ],
            study_streak_days=data.get("study_streak_days", 0),
            total_questions_attempted=data.get("total_questions_attempted", 0),
            total_questions_correct=data.get("total_questions_correct", 0),
            total_time_spent_seconds=data.get("total_time_spent_seconds", 0),
            joined_date=data.get("joined_date", ""),
            last_login=data.get("last_login", ""),
            test_history=[
                TestHistoryEntry.from_dict(t) for t in data.get("test_history", [])
            ],
            question_history=[
                QuestionRecord.from_dict(q) for q in data.get("question_history", [])
            ],
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "courses_progress": [c.to_dict() for c in self.courses_progress],
            "study_streak_days": self.study_streak_days,
            "total_questions_attempted": self.total_questions_attempted,
            "total_questions_correct": self.total_questions_correct,
            "total_time_spent_seconds": self.total_time_spent_seconds,
            "joined_date": self.joined_date,
            "last_login": self.last_login,
            "test_history": [t.to_dict() for t in self.test_history],
            "question_history": [q.to_dict() for q in self.question_history],
            "metadata": self.metadata,
        }

    def get_course_progress(self, course_id: str) -> CourseProgress | None:
        for course in self.courses_progress:
            if course.course_id == course_id:
                return course
        return None

    def get_or_create_course(self, course_id: str, now: str) -> CourseProgress:
        course = self.get_course_progress(course_id)
        if course is None:
            course = CourseProgress(course_id=course_id, last_accessed=now)
            self.courses_progress.append(course)
        return course

    def recalculate_totals(self) -> None:
        """Recompute distinct question totals and time spent from course records."""
        attempted: set[str] = set()
        correct: set[str] = set()
        for course in self.courses_progress:
            for unit in course.units_progress:
                for topic in unit.topics_progress:
                    attempted.update(topic.questions_attempted)
                    correct.update(topic.questions_correct)
        self.total_questions_attempted = len(attempted)
        self.total_questions_correct = len(correct)

    def update_study_streak(self) -> None:
        """Bump the streak on consecutive days; reset it after a gap.

        Must run before last_login is moved to now.
        """
        today = utc_now().date()
        try:
            last_day = parse_timestamp(self.last_login).date()
        except ValueError:
            last_day = None

        if last_day is None:
            self.study_streak_days = 1
            return

        gap = days_between(last_day, today)
        if gap == 0:
            if self.study_streak_days == 0:
                self.study_streak_days = 1
        elif gap == 1:
            self.study_streak_days += 1
        else:
            self.study_streak_days = 1


@dataclass
class ProgressUpdate:
    """A single question attempt to record."""

    user_id: str
    course_id: str
    unit_id: str
    topic_id: str
    question_id: str
    is_correct: bool
    time_spent_seconds: int


# =============================================================================
# PERSISTENCE
# =============================================================================


def load_users(store: FileStore) -> list[User]:
    """Load every user from the progress document."""
    data = store.read_or_default(PROGRESS)
    return [User.from_dict(u) for u in data.get("users", [])]


def save_users(store: FileStore, users: list[User]) -> Path:
    """Persist the whole progress document."""
    return store.write(PROGRESS, {"users": [u.to_dict() for u in users]})


def find_user(users: list[User], user_id: str) -> User | None:
    for user in users:
        if user.id == user_id:
            return user
    return None


def generate_next_user_id(users: list[User]) -> str:
    """Generate next available user ID."""
    existing_nums = []
    for user in users:
        if user.id.startswith("user"):
            try:
                existing_nums.append(int(user.id[4:]))
            except ValueError:
                pass
    next_num = max(existing_nums, default=0) + 1
    return f"user{next_num}"


def _user_not_found(user_id: str) -> ServiceResult:
    return ServiceResult.not_found(f"User with ID {user_id} not found")


# =============================================================================
# SERVICE OPERATIONS
# =============================================================================


def get_user(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Get a user by ID."""
    try:
        users = load_users(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve user data", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)
    return ServiceResult.ok(user)


def get_user_progress(
    user_id: str,
    course_id: str | None = None,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Get the whole user, or only their progress on course_id."""
    result = get_user(user_id, data_dir)
    if not result.success or course_id is None:
        return result

    course = result.data.get_course_progress(course_id)
    if course is None:
        return ServiceResult.not_found(
            f"Course progress for course {course_id} not found for user {user_id}"
        )
    return ServiceResult.ok(course)


def create_user(name: str, email: str, data_dir: Path | None = None) -> ServiceResult:
    """Create a new user account."""
    if not name.strip():
        return ServiceResult.invalid("Name must not be empty")

    store = get_file_store(data_dir)
    try:
        users = load_users(store)
        if any(u.email and u.email.lower() == email.lower() for u in users):
            return ServiceResult.invalid(f"User with email {email} already exists")

        user = User(id=generate_next_user_id(users), name=name, email=email)
        users.append(user)
        save_users(store, users)
    except FileStoreError as e:
        return storage_failure("create user", e)

    logger.info("user_created", user_id=user.id)
    return ServiceResult.ok(user)


def update_progress(update: ProgressUpdate, data_dir: Path | None = None) -> ServiceResult:
    """Record a question attempt and refresh every derived counter."""
    if update.time_spent_seconds < 0:
        return ServiceResult.invalid("timeSpentSeconds must not be negative")

    store = get_file_store(data_dir)
    try:
        users = load_users(store)
    except FileStoreError as e:
        return storage_failure("update progress", e)

    user = find_user(users, update.user_id)
    if user is None:
        return _user_not_found(update.user_id)

    now = now_iso()

    course = user.get_or_create_course(update.course_id, now)
    course.last_accessed = now
    unit = course.get_or_create_unit(update.unit_id, now)
    unit.last_accessed = now
    topic = unit.get_or_create_topic(update.topic_id, now)
    topic.last_accessed = now

    if update.question_id not in topic.questions_attempted:
        topic.questions_attempted.append(update.question_id)
    if update.is_correct and update.question_id not in topic.questions_correct:
        topic.questions_correct.append(update.question_id)

    topic.time_spent_seconds += update.time_spent_seconds
    unit.time_spent_seconds += update.time_spent_seconds
    course.time_spent_seconds += update.time_spent_seconds
    user.total_time_spent_seconds += update.time_spent_seconds

    for course_progress in user.courses_progress:
        course_progress.recalculate()
        course_progress.update_strengths_and_weaknesses()
    user.recalculate_totals()

    user.update_study_streak()
    user.last_login = now

    user.question_history.append(
        QuestionRecord(
            question_id=update.question_id,
            course_id=update.course_id,
            unit_id=update.unit_id,
            topic_id=update.topic_id,
            correct=update.is_correct,
            time_spent_seconds=update.time_spent_seconds,
            timestamp=now,
        )
    )

    try:
        save_users(store, users)
    except FileStoreError as e:
        return storage_failure("save progress data", e)

    logger.info(
        "progress_updated",
        user_id=update.user_id,
        course_id=update.course_id,
        question_id=update.question_id,
        is_correct=update.is_correct,
    )
    return ServiceResult.ok({"updated": True})


def get_user_stats(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Overall performance statistics for a user."""
    result = get_user(user_id, data_dir)
    if not result.success:
        return result
    user: User = result.data

    accuracy = (
        user.total_questions_correct / user.total_questions_attempted * 100
        if user.total_questions_attempted > 0
        else 0
    )
    return ServiceResult.ok(
        {
            "totalQuestions": user.total_questions_attempted,
            "correctQuestions": user.total_questions_correct,
            "accuracy": accuracy,
            "timeSpent": user.total_time_spent_seconds,
            "streak": user.study_streak_days,
            "strengths": [s for c in user.courses_progress for s in c.strengths],
            "weaknesses": [w for c in user.courses_progress for w in c.weaknesses],
        }
    )


def get_course_stats(user_id: str, course_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Per-unit accuracy breakdown for one course."""
    result = get_user_progress(user_id, course_id, data_dir)
    if not result.success:
        return result
    course: CourseProgress = result.data

    unit_breakdown = []
    total_attempted = 0
    total_correct = 0
    for unit in course.units_progress:
        attempted = unit.attempted_count
        correct = unit.correct_count
        total_attempted += attempted
        total_correct += correct
        unit_breakdown.append(
            {
                "unitId": unit.unit_id,
                "questionsAttempted": attempted,
                "questionsCorrect": correct,
                "accuracyRate": correct / attempted * 100 if attempted else 0,
            }
        )

    return ServiceResult.ok(
        {
            "totalAttempted": total_attempted,
            "totalCorrect": total_correct,
            "accuracyRate": total_correct / total_attempted * 100 if total_attempted else 0,
            "totalTimeSpent": course.time_spent_seconds,
            "completionPercentage": course.completion_percentage,
            "unitBreakdown": unit_breakdown,
        }
    )


def get_recommended_practice(
    user_id: str,
    course_id: str,
    count: int = 3,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Unit IDs to practice next, lowest completion first.

    Units the user has not touched yet (in catalog order) fill the list
    when there are fewer than count started units.
    """
    if count < 1:
        return ServiceResult.invalid("count must be at least 1")

    store = get_file_store(data_dir)
    try:
        users = load_users(store)
        courses = load_courses(store)
    except FileStoreError as e:
        return storage_failure("determine recommended practice", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)

    course_progress = user.get_course_progress(course_id)
    started = (
        sorted(course_progress.units_progress, key=lambda u: u.completion_percentage)
        if course_progress
        else []
    )
    recommended = [u.unit_id for u in started[:count]]

    for course in courses:
        if course.id != course_id:
            continue
        for unit in course.units:
            if len(recommended) >= count:
                break
            if unit.id not in recommended and (
                course_progress is None
                or all(u.unit_id != unit.id for u in course_progress.units_progress)
            ):
                recommended.append(unit.id)

    return ServiceResult.ok(recommended)


def get_recommended_topics(
    user_id: str,
    course_id: str,
    limit: int = 5,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Topics ranked by ascending accuracy, then by descending attempts."""
    result = get_user(user_id, data_dir)
    if not result.success:
        return result

    course = result.data.get_course_progress(course_id)
    if course is None:
        return ServiceResult.ok([])

    topic_stats = []
    for unit in course.units_progress:
        for topic in unit.topics_progress:
            attempts = len(topic.questions_attempted)
            correct = len(topic.questions_correct)
            topic_stats.append(
                {
                    "topicId": topic.topic_id,
                    "unitId": unit.unit_id,
                    "accuracyRate": correct / attempts * 100 if attempts else 0,
                    "attemptsCount": attempts,
                }
            )

    topic_stats.sort(key=lambda t: (t["accuracyRate"], -t["attemptsCount"]))
    return ServiceResult.ok(topic_stats[:limit])


def reset_course_progress(user_id: str, course_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Replace a course's progress with an empty record and recompute totals."""
    store = get_file_store(data_dir)
    try:
        users = load_users(store)
    except FileStoreError as e:
        return storage_failure("reset course progress", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)

    for index, course in enumerate(user.courses_progress):
        if course.course_id == course_id:
            user.courses_progress[index] = CourseProgress(
                course_id=course_id, last_accessed=now_iso()
            )
            break
    else:
        return ServiceResult.not_found(
            f"Course progress for course {course_id} not found for user {user_id}"
        )

    user.recalculate_totals()
    user.total_time_spent_seconds = sum(c.time_spent_seconds for c in user.courses_progress)
    for course in user.courses_progress:
        course.update_strengths_and_weaknesses()

    try:
        save_users(store, users)
    except FileStoreError as e:
        return storage_failure("save progress data", e)

    logger.info("course_progress_reset", user_id=user_id, course_id=course_id)
    return ServiceResult.ok(True)


def get_test_history(
    user_id: str,
    course_id: str | None = None,
    data_dir: Path | None = None,
) -> ServiceResult:
    """A user's test history, optionally for one course."""
    result = get_user(user_id, data_dir)
    if not result.success:
        return result

    history = result.data.test_history
    if course_id:
        history = [entry for entry in history if entry.course_id == course_id]
    return ServiceResult.ok(history)


def add_test_history_entry(
    user_id: str,
    course_id: str,
    total_questions: int,
    correct_questions: int,
    time_spent_seconds: int,
    score: float,
    unit_id: str | None = None,
    topic_id: str | None = None,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Append a completed test to the user's history."""
    if total_questions < 1:
        return ServiceResult.invalid("totalQuestions must be at least 1")
    if not 0 <= correct_questions <= total_questions:
        return ServiceResult.invalid("correctQuestions must be between 0 and totalQuestions")

    store = get_file_store(data_dir)
    try:
        users = load_users(store)
    except FileStoreError as e:
        return storage_failure("add test history entry", e)

    user = find_user(users, user_id)
    if user is None:
        return _user_not_found(user_id)

    entry = TestHistoryEntry(
        id=generate_id("test"),
        course_id=course_id,
        unit_id=unit_id,
        topic_id=topic_id,
        date=now_iso(),
        score=score,
        total_questions=total_questions,
        correct_questions=correct_questions,
        time_spent_seconds=time_spent_seconds,
    )
    user.test_history.append(entry)

    try:
        save_users(store, users)
    except FileStoreError as e:
        return storage_failure("save test history", e)

    logger.info("test_history_added", user_id=user_id, test_id=entry.id, score=score)
    return ServiceResult.ok(entry)
