"""Course catalog module.

Responsibilities:
- Load the read-only course catalog (units.json)
- Resolve courses, units, topics and questions by id
- Search questions and draw practice sets

The catalog is a nested tree: Course -> Unit -> Topic -> Question.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from unitize.core.results import ServiceResult, storage_failure
from unitize.db.file_store import UNITS, FileStore, FileStoreError, get_file_store

logger = structlog.get_logger(__name__)

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class Question:
    """A multiple-choice practice question."""

    id: str
    question: str
    options: list[str] = field(default_factory=list)
    answer: int = 0
    explanation: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Question:
        return cls(
            id=data["id"],
            question=data.get("question", ""),
            options=list(data.get("options", [])),
            answer=data.get("answer", 0),
            explanation=data.get("explanation", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": self.options,
            "answer": self.answer,
            "explanation": self.explanation,
        }

    def matches(self, query: str) -> bool:
        """Case-insensitive match on text, explanation or any option."""
        needle = query.lower()
        return (
            needle in self.question.lower()
            or needle in self.explanation.lower()
            or any(needle in option.lower() for option in self.options)
        )


@dataclass
class Topic:
    """A topic inside a unit."""

    id: str
    name: str
    questions: list[Question] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Topic:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "questions": [q.to_dict() for q in self.questions],
        }


@dataclass
class Unit:
    """A unit inside a course."""

    id: str
    name: str
    topics: list[Topic] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Unit:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            topics=[Topic.from_dict(t) for t in data.get("topics", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "topics": [t.to_dict() for t in self.topics],
        }


@dataclass
class Course:
    """A course in the catalog."""

    id: str
    name: str
    description: str = ""
    units: list[Unit] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Course:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            units=[Unit.from_dict(u) for u in data.get("units", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "units": [u.to_dict() for u in self.units],
        }

    def summary(self) -> dict[str, Any]:
        """Course without unit detail."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "units": [],
        }

    def get_unit(self, unit_id: str) -> Unit | None:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None


# =============================================================================
# LOADING
# =============================================================================


def load_courses(store: FileStore) -> list[Course]:
    """Load every course from the catalog document."""
    data = store.read_or_default(UNITS)
    return [Course.from_dict(c) for c in data.get("ap_courses", [])]


def _find_course(courses: list[Course], course_id: str) -> Course | None:
    for course in courses:
        if course.id == course_id:
            return course
    return None


def _resolve(
    courses: list[Course],
    course_id: str,
    unit_id: str | None = None,
    topic_id: str | None = None,
) -> tuple[Course | Unit | Topic | None, str | None]:
    """Walk the catalog tree down to the deepest id given.

    Returns:
        (node, None) on success, (None, error message) otherwise
    """
    course = _find_course(courses, course_id)
    if course is None:
        return None, f"Course with ID {course_id} not found"
    if unit_id is None:
        return course, None

    unit = course.get_unit(unit_id)
    if unit is None:
        return None, f"Unit with ID {unit_id} not found in course {course_id}"
    if topic_id is None:
        return unit, None

    for topic in unit.topics:
        if topic.id == topic_id:
            return topic, None
    return None, f"Topic with ID {topic_id} not found in unit {unit_id}"


# =============================================================================
# SERVICE OPERATIONS
# =============================================================================


def get_all_courses(data_dir: Path | None = None) -> ServiceResult:
    """List all courses without their units."""
    try:
        courses = load_courses(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve courses", e)
    return ServiceResult.ok([c.summary() for c in courses])


def get_course(course_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Get a course with all of its units."""
    try:
        courses = load_courses(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve course", e)

    node, error = _resolve(courses, course_id)
    if node is None:
        return ServiceResult.not_found(error)
    return ServiceResult.ok(node)


def get_unit(course_id: str, unit_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Get a unit of a course."""
    try:
        courses = load_courses(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve unit", e)

    node, error = _resolve(courses, course_id, unit_id)
    if node is None:
        return ServiceResult.not_found(error)
    return ServiceResult.ok(node)


def get_topic(
    course_id: str,
    unit_id: str,
    topic_id: str,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Get a topic of a unit, including its questions."""
    try:
        courses = load_courses(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve topic", e)

    node, error = _resolve(courses, course_id, unit_id, topic_id)
    if node is None:
        return ServiceResult.not_found(error)
    return ServiceResult.ok(node)


def get_question(
    course_id: str,
    unit_id: str,
    topic_id: str,
    question_id: str,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Get a single question."""
    try:
        courses = load_courses(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve question", e)

    topic, error = _resolve(courses, course_id, unit_id, topic_id)
    if topic is None:
        return ServiceResult.not_found(error)

    for question in topic.questions:
        if question.id == question_id:
            return ServiceResult.ok(question)
    return ServiceResult.not_found(
        f"Question with ID {question_id} not found in topic {topic_id}"
    )


def search_questions(query: str, data_dir: Path | None = None) -> ServiceResult:
    """Find questions whose text, explanation or options contain query.

    Each result carries courseId, unitId and topicId alongside the question.
    """
    if not query.strip():
        return ServiceResult.invalid("Search query must not be empty")

    try:
        courses = load_courses(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("search questions", e)

    results: list[dict[str, Any]] = []
    for course in courses:
        for unit in course.units:
            for topic in unit.topics:
                for question in topic.questions:
                    if question.matches(query):
                        results.append(
                            {
                                **question.to_dict(),
                                "courseId": course.id,
                                "unitId": unit.id,
                                "topicId": topic.id,
                            }
                        )

    logger.info("questions_searched", query=query, results=len(results))
    return ServiceResult.ok(results)


def get_practice_questions(
    course_id: str,
    count: int = 5,
    unit_ids: list[str] | None = None,
    topic_ids: list[str] | None = None,
    data_dir: Path | None = None,
    rng: random.Random | None = None,
) -> ServiceResult:
    """Draw a random practice set from a course.

    Args:
        course_id: Course to draw from
        count: Maximum number of questions
        unit_ids: Restrict to these units
        topic_ids: Restrict to these topics
        data_dir: Base data directory
        rng: Random source (for deterministic tests)

    Returns:
        ServiceResult with question dicts carrying unitId and topicId
    """
    if count < 1:
        return ServiceResult.invalid("count must be at least 1")

    try:
        courses = load_courses(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve practice questions", e)

    course = _find_course(courses, course_id)
    if course is None:
        return ServiceResult.not_found(f"Course with ID {course_id} not found")

    pool: list[dict[str, Any]] = []
    for unit in course.units:
        if unit_ids and unit.id not in unit_ids:
            continue
        for topic in unit.topics:
            if topic_ids and topic.id not in topic_ids:
                continue
            for question in topic.questions:
                pool.append({**question.to_dict(), "unitId": unit.id, "topicId": topic.id})

    rng = rng or random.Random()
    selected = rng.sample(pool, min(count, len(pool)))
    return ServiceResult.ok(selected)
