"""Pydantic schemas for the Web API.

Request bodies use camelCase field names on the wire (userId, deckId, ...).
Every response body is an Envelope.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading and writing camelCase keys."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# =============================================================================
# ENVELOPE
# =============================================================================


class Envelope(BaseModel):
    """Uniform response wrapper."""

    success: bool
    data: Any = None
    error: str | None = None
    timestamp: str


# =============================================================================
# PROGRESS SCHEMAS
# =============================================================================


class UserCreate(CamelModel):
    """Request body for creating a user."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=1, max_length=200)


class ProgressUpdateRequest(CamelModel):
    """Request body for recording a question attempt."""

    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    unit_id: str = Field(..., min_length=1)
    topic_id: str = Field(..., min_length=1)
    question_id: str = Field(..., min_length=1)
    is_correct: bool
    time_spent_seconds: int = Field(default=0, ge=0)


class CourseResetRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)


class HistoryEntryCreate(CamelModel):
    """Request body for recording a completed test."""

    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    unit_id: str | None = None
    topic_id: str | None = None
    score: float = Field(..., ge=0)
    total_questions: int = Field(..., ge=1)
    correct_questions: int = Field(..., ge=0)
    time_spent_seconds: int = Field(default=0, ge=0)


# =============================================================================
# FLASHCARD SCHEMAS
# =============================================================================


class DeckCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    course_id: str | None = None
    topic_id: str | None = None
    is_public: bool = False


class DeckUpdate(CamelModel):
    """Request body for updating a deck; only fields sent are changed."""

    user_id: str = Field(..., min_length=1)
    deck_id: str = Field(..., min_length=1)
    name: str | None = None
    description: str | None = None
    course_id: str | None = None
    topic_id: str | None = None
    is_public: bool | None = None

    def updates(self) -> dict[str, Any]:
        """Fields sent by the client, keyed by their camelCase names."""
        return self.model_dump(
            by_alias=True,
            exclude_unset=True,
            exclude={"user_id", "deck_id"},
        )


class DeckClone(CamelModel):
    user_id: str = Field(..., min_length=1)
    deck_id: str = Field(..., min_length=1)
    new_name: str | None = None


class FlashcardCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    deck_id: str = Field(..., min_length=1)
    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)
    hint: str | None = None
    course_id: str | None = None
    topic_id: str | None = None
    difficulty: str = "medium"


class FlashcardUpdate(CamelModel):
    """Request body for editing a card; only fields sent are changed."""

    user_id: str = Field(..., min_length=1)
    front: str | None = None
    back: str | None = None
    hint: str | None = None
    tags: list[str] | None = None
    difficulty: str | None = None
    course_id: str | None = None
    topic_id: str | None = None

    @field_validator("front", "back", "tags", "difficulty")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must not be null")
        return value

    def updates(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, exclude={"user_id"})


class FlashcardReview(CamelModel):
    user_id: str = Field(..., min_length=1)
    result: str = Field(..., min_length=1)


# =============================================================================
# SPACED REPETITION SCHEMAS
# =============================================================================


class ReviewQuestion(CamelModel):
    """Identifies a catalog question tracked for review."""

    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    unit_id: str = Field(..., min_length=1)
    topic_id: str = Field(..., min_length=1)
    question_id: str = Field(..., min_length=1)


class ReviewSubmit(ReviewQuestion):
    """A review of a question: again/hard/good/easy, or a legacy 1-4 number."""

    difficulty: str | int


# =============================================================================
# GOAL SCHEMAS
# =============================================================================


class GoalCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    target: float = Field(..., allow_inf_nan=False)
    course_id: str | None = None
    deadline: str | None = None


class GoalProgressUpdate(CamelModel):
    user_id: str = Field(..., min_length=1)
    goal_id: str = Field(..., min_length=1)
    progress: float = Field(..., allow_inf_nan=False)


class GoalReference(CamelModel):
    user_id: str = Field(..., min_length=1)
    goal_id: str = Field(..., min_length=1)


class UserReference(CamelModel):
    user_id: str = Field(..., min_length=1)


# =============================================================================
# STUDY SESSION SCHEMAS
# =============================================================================


class StudySessionCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    duration: float = Field(..., gt=0, allow_inf_nan=False)
    course_id: str | None = None
    topic_id: str | None = None
    notes: str | None = None
