"""Flashcards module.

Responsibilities:
- Persist flashcards and decks (flashcards.json)
- Deck CRUD, public deck listing and cloning
- Card CRUD with ownership checked through the user's decks
- Review scheduling with a fixed interval table

A card belongs to a user when one of the user's decks lists it in cardIds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from unitize.config.app_config import load_app_config
from unitize.core.results import ServiceResult, storage_failure
from unitize.db.file_store import FLASHCARDS, FileStore, FileStoreError, get_file_store
from unitize.utils.dates import generate_id, now_iso, parse_timestamp, utc_now

logger = structlog.get_logger(__name__)


class FlashcardDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ReviewResult(str, Enum):
    """How well the learner recalled a card."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


# Days until the next review after a card's first review
FIRST_REVIEW_DAYS: dict[ReviewResult, float] = {
    ReviewResult.AGAIN: 0.5,
    ReviewResult.HARD: 1,
    ReviewResult.GOOD: 3,
    ReviewResult.EASY: 5,
}

# Multipliers of the previous interval for later reviews; AGAIN is absolute
REVIEW_MULTIPLIERS: dict[ReviewResult, float] = {
    ReviewResult.HARD: 1.2,
    ReviewResult.GOOD: 2.0,
    ReviewResult.EASY: 3.0,
}
AGAIN_INTERVAL_DAYS = 1.0

# camelCase request keys -> attribute names
CARD_UPDATABLE_FIELDS = {
    "front": "front",
    "back": "back",
    "hint": "hint",
    "tags": "tags",
    "difficulty": "difficulty",
    "courseId": "course_id",
    "topicId": "topic_id",
}
DECK_UPDATABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "courseId": "course_id",
    "topicId": "topic_id",
    "isPublic": "is_public",
}

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class Flashcard:
    """A front/back card with review counters."""

    id: str
    front: str
    back: str
    tags: list[str] = field(default_factory=list)
    difficulty: str = FlashcardDifficulty.MEDIUM.value
    hint: str | None = None
    course_id: str | None = None
    topic_id: str | None = None
    created_at: str = ""
    last_reviewed: str | None = None
    next_review_date: str | None = None
    review_count: int = 0
    correct_count: int = 0
    incorrect_count: int = 0

    def __post_init__(self):
        if not self.created_at:
            self.created_at = now_iso()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Flashcard:
        return cls(
            id=data["id"],
            front=data.get("front", ""),
            back=data.get("back", ""),
            tags=list(data.get("tags") or []),
            difficulty=data.get("difficulty", FlashcardDifficulty.MEDIUM.value),
            hint=data.get("hint"),
            course_id=data.get("courseId"),
            topic_id=data.get("topicId"),
            created_at=data.get("createdAt", ""),
            last_reviewed=data.get("lastReviewed"),
            next_review_date=data.get("nextReviewDate"),
            review_count=data.get("reviewCount", 0),
            correct_count=data.get("correctCount", 0),
            incorrect_count=data.get("incorrectCount", 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "front": self.front,
            "back": self.back,
            "hint": self.hint,
            "tags": self.tags,
            "courseId": self.course_id,
            "topicId": self.topic_id,
            "difficulty": self.difficulty,
            "createdAt": self.created_at,
            "lastReviewed": self.last_reviewed,
            "nextReviewDate": self.next_review_date,
            "reviewCount": self.review_count,
            "correctCount": self.correct_count,
            "incorrectCount": self.incorrect_count,
        }

    def is_due(self, now: datetime) -> bool:
        if not self.next_review_date:
            return True
        return parse_timestamp(self.next_review_date) <= now


@dataclass
class FlashcardDeck:
    """A named, user-owned collection of card ids."""

    id: str
    user_id: str
    name: str
    description: str | None = None
    course_id: str | None = None
    topic_id: str | None = None
    is_public: bool = False
    created_at: str = ""
    last_modified: str = ""
    card_ids: list[str] = field(default_factory=list)

    def __post_init__(self):
        now = now_iso()
        if not self.created_at:
            self.created_at = now
        if not self.last_modified:
            self.last_modified = self.created_at

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlashcardDeck:
        return cls(
            id=data["id"],
            user_id=data.get("userId", ""),
            name=data.get("name", ""),
            description=data.get("description"),
            course_id=data.get("courseId"),
            topic_id=data.get("topicId"),
            is_public=bool(data.get("isPublic", False)),
            created_at=data.get("createdAt", ""),
            last_modified=data.get("lastModified", ""),
            card_ids=list(data.get("cardIds", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "description": self.description,
            "courseId": self.course_id,
            "topicId": self.topic_id,
            "createdAt": self.created_at,
            "lastModified": self.last_modified,
            "cardIds": self.card_ids,
            "isPublic": self.is_public,
        }


@dataclass
class FlashcardCollection:
    """The flashcards document: every card and every deck."""

    cards: list[Flashcard] = field(default_factory=list)
    decks: list[FlashcardDeck] = field(default_factory=list)

    def find_card(self, card_id: str) -> Flashcard | None:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def find_deck(self, deck_id: str) -> FlashcardDeck | None:
        for deck in self.decks:
            if deck.id == deck_id:
                return deck
        return None

    def user_decks(self, user_id: str) -> list[FlashcardDeck]:
        return [d for d in self.decks if d.user_id == user_id]

    def user_owns_card(self, user_id: str, card_id: str) -> bool:
        return any(card_id in d.card_ids for d in self.user_decks(user_id))

    def cards_for(self, card_ids: list[str]) -> list[Flashcard]:
        by_id = {card.id: card for card in self.cards}
        return [by_id[card_id] for card_id in card_ids if card_id in by_id]


def load_flashcards(store: FileStore) -> FlashcardCollection:
    """Load cards and decks from the flashcards document."""
    data = store.read_or_default(FLASHCARDS)
    return FlashcardCollection(
        cards=[Flashcard.from_dict(c) for c in data.get("cards", [])],
        decks=[FlashcardDeck.from_dict(d) for d in data.get("decks", [])],
    )


def save_flashcards(store: FileStore, collection: FlashcardCollection) -> Path:
    """Persist the whole flashcards document."""
    return store.write(
        FLASHCARDS,
        {
            "cards": [c.to_dict() for c in collection.cards],
            "decks": [d.to_dict() for d in collection.decks],
        },
    )


# =============================================================================
# SCHEDULING
# =============================================================================


def parse_review_result(value: str | ReviewResult) -> ReviewResult | None:
    """Return the ReviewResult for value, or None if it is not one."""
    try:
        return ReviewResult(value)
    except ValueError:
        return None


def calculate_next_review_date(
    card: Flashcard,
    result: ReviewResult,
    now: datetime | None = None,
    max_interval_days: int = 365,
) -> datetime:
    """When a card should next be reviewed.

    Uses the card's state before this review: a card with no reviews gets
    FIRST_REVIEW_DAYS, later reviews scale the previous interval (at least
    one day) by REVIEW_MULTIPLIERS. The result is capped at max_interval_days.
    """
    now = now or utc_now()

    if card.review_count == 0 or not (card.last_reviewed and card.next_review_date):
        days = FIRST_REVIEW_DAYS[result]
    elif result is ReviewResult.AGAIN:
        days = AGAIN_INTERVAL_DAYS
    else:
        previous = parse_timestamp(card.next_review_date) - parse_timestamp(card.last_reviewed)
        last_interval = max(1.0, previous.total_seconds() / 86400)
        days = last_interval * REVIEW_MULTIPLIERS[result]

    days = min(days, max_interval_days)
    return now + timedelta(days=days)


# =============================================================================
# DECK OPERATIONS
# =============================================================================


def get_user_decks(user_id: str, data_dir: Path | None = None) -> ServiceResult:
    """All decks owned by a user."""
    try:
        collection = load_flashcards(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve flashcard decks", e)
    return ServiceResult.ok(collection.user_decks(user_id))


def create_deck(
    user_id: str,
    name: str,
    description: str | None = None,
    course_id: str | None = None,
    topic_id: str | None = None,
    is_public: bool = False,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Create an empty deck for a user."""
    if not name.strip():
        return ServiceResult.invalid("Deck name must not be empty")

    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
        deck = FlashcardDeck(
            id=generate_id("deck"),
            user_id=user_id,
            name=name,
            description=description,
            course_id=course_id,
            topic_id=topic_id,
            is_public=is_public,
        )
        collection.decks.append(deck)
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("create flashcard deck", e)

    logger.info("deck_created", deck_id=deck.id, user_id=user_id)
    return ServiceResult.ok(deck)


def update_deck(
    user_id: str,
    deck_id: str,
    updates: dict[str, Any],
    data_dir: Path | None = None,
) -> ServiceResult:
    """Update a deck's editable fields.

    id, userId, createdAt and cardIds are never changed; unknown keys are ignored.
    """
    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
    except FileStoreError as e:
        return storage_failure("update flashcard deck", e)

    deck = collection.find_deck(deck_id)
    if deck is None or deck.user_id != user_id:
        return ServiceResult.not_found(f"Deck with ID {deck_id} not found for user {user_id}")

    if "name" in updates and not str(updates["name"] or "").strip():
        return ServiceResult.invalid("Deck name must not be empty")

    for key, attr in DECK_UPDATABLE_FIELDS.items():
        if key in updates:
            setattr(deck, attr, updates[key])
    deck.last_modified = now_iso()

    try:
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("save flashcard deck", e)

    logger.info("deck_updated", deck_id=deck_id, user_id=user_id, fields=sorted(updates))
    return ServiceResult.ok(deck)


def delete_deck(user_id: str, deck_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Delete a deck together with the cards it lists."""
    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
    except FileStoreError as e:
        return storage_failure("delete flashcard deck", e)

    deck = collection.find_deck(deck_id)
    if deck is None or deck.user_id != user_id:
        return ServiceResult.not_found(f"Deck with ID {deck_id} not found for user {user_id}")

    removed_ids = set(deck.card_ids)
    collection.decks = [d for d in collection.decks if d.id != deck_id]
    collection.cards = [c for c in collection.cards if c.id not in removed_ids]
    for other in collection.decks:
        other.card_ids = [cid for cid in other.card_ids if cid not in removed_ids]

    try:
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("save flashcards", e)

    logger.info("deck_deleted", deck_id=deck_id, user_id=user_id, cards_removed=len(removed_ids))
    return ServiceResult.ok(True)


def get_deck_with_cards(deck_id: str, data_dir: Path | None = None) -> ServiceResult:
    """A deck and its cards, in cardIds order."""
    try:
        collection = load_flashcards(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve flashcard deck", e)

    deck = collection.find_deck(deck_id)
    if deck is None:
        return ServiceResult.not_found(f"Deck with ID {deck_id} not found")

    return ServiceResult.ok(
        {
            "deck": deck.to_dict(),
            "cards": [c.to_dict() for c in collection.cards_for(deck.card_ids)],
        }
    )


def get_public_decks(
    limit: int = 20,
    offset: int = 0,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Public decks, most recently modified first."""
    if limit < 1 or offset < 0:
        return ServiceResult.invalid("limit must be positive and offset not negative")

    try:
        collection = load_flashcards(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve public decks", e)

    public = sorted(
        (d for d in collection.decks if d.is_public),
        key=lambda d: parse_timestamp(d.last_modified),
        reverse=True,
    )
    return ServiceResult.ok(public[offset:offset + limit])


def clone_deck(
    user_id: str,
    deck_id: str,
    new_name: str | None = None,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Copy a public (or own) deck and its cards into the user's decks.

    Cloned cards get fresh ids and start unreviewed; the clone is private.
    """
    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
    except FileStoreError as e:
        return storage_failure("clone flashcard deck", e)

    source = collection.find_deck(deck_id)
    if source is None or not (source.is_public or source.user_id == user_id):
        return ServiceResult.not_found(f"Deck with ID {deck_id} not found or not public")

    clone = FlashcardDeck(
        id=generate_id("deck"),
        user_id=user_id,
        name=new_name or f"{source.name} (Copy)",
        description=source.description,
        course_id=source.course_id,
        topic_id=source.topic_id,
        is_public=False,
    )
    for card in collection.cards_for(source.card_ids):
        cloned_card = Flashcard(
            id=generate_id("card"),
            front=card.front,
            back=card.back,
            tags=list(card.tags),
            difficulty=card.difficulty,
            hint=card.hint,
            course_id=card.course_id,
            topic_id=card.topic_id,
        )
        collection.cards.append(cloned_card)
        clone.card_ids.append(cloned_card.id)
    collection.decks.append(clone)

    try:
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("save cloned deck", e)

    logger.info("deck_cloned", source_deck_id=deck_id, deck_id=clone.id, user_id=user_id)
    return ServiceResult.ok(clone)


# =============================================================================
# CARD OPERATIONS
# =============================================================================


def create_flashcard(
    user_id: str,
    front: str,
    back: str,
    deck_id: str,
    tags: list[str] | None = None,
    hint: str | None = None,
    course_id: str | None = None,
    topic_id: str | None = None,
    difficulty: str = FlashcardDifficulty.MEDIUM.value,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Create a card and add it to one of the user's decks."""
    if not front.strip() or not back.strip():
        return ServiceResult.invalid("Flashcard front and back must not be empty")
    if difficulty not in {d.value for d in FlashcardDifficulty}:
        return ServiceResult.invalid(f"Invalid difficulty: {difficulty}")

    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
    except FileStoreError as e:
        return storage_failure("create flashcard", e)

    deck = collection.find_deck(deck_id)
    if deck is None or deck.user_id != user_id:
        return ServiceResult.not_found(f"Deck with ID {deck_id} not found for user {user_id}")

    card = Flashcard(
        id=generate_id("card"),
        front=front,
        back=back,
        tags=list(tags or []),
        difficulty=difficulty,
        hint=hint,
        course_id=course_id,
        topic_id=topic_id,
    )
    collection.cards.append(card)
    deck.card_ids.append(card.id)
    deck.last_modified = now_iso()

    try:
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("save flashcard", e)

    logger.info("flashcard_created", card_id=card.id, deck_id=deck_id, user_id=user_id)
    return ServiceResult.ok(card)


def update_flashcard(
    user_id: str,
    card_id: str,
    updates: dict[str, Any],
    data_dir: Path | None = None,
) -> ServiceResult:
    """Update a card's content fields; review counters are left alone."""
    for key in ("front", "back"):
        if key in updates and not str(updates[key] or "").strip():
            return ServiceResult.invalid(f"Flashcard {key} must not be empty")
    if "tags" in updates and not isinstance(updates["tags"], list):
        return ServiceResult.invalid("Flashcard tags must be a list")
    if "difficulty" in updates and updates["difficulty"] not in {
        d.value for d in FlashcardDifficulty
    }:
        return ServiceResult.invalid(f"Invalid difficulty: {updates['difficulty']}")

    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
    except FileStoreError as e:
        return storage_failure("update flashcard", e)

    card = collection.find_card(card_id)
    if card is None or not collection.user_owns_card(user_id, card_id):
        return ServiceResult.not_found(f"Flashcard with ID {card_id} not found for user {user_id}")

    for key, attr in CARD_UPDATABLE_FIELDS.items():
        if key in updates:
            setattr(card, attr, updates[key])

    try:
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("save flashcard", e)

    logger.info("flashcard_updated", card_id=card_id, user_id=user_id)
    return ServiceResult.ok(card)


def delete_flashcard(user_id: str, card_id: str, data_dir: Path | None = None) -> ServiceResult:
    """Delete a card and drop it from every deck listing it."""
    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
    except FileStoreError as e:
        return storage_failure("delete flashcard", e)

    if collection.find_card(card_id) is None or not collection.user_owns_card(user_id, card_id):
        return ServiceResult.not_found(f"Flashcard with ID {card_id} not found for user {user_id}")

    collection.cards = [c for c in collection.cards if c.id != card_id]
    now = now_iso()
    for deck in collection.decks:
        if card_id in deck.card_ids:
            deck.card_ids.remove(card_id)
            deck.last_modified = now

    try:
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("save flashcards", e)

    logger.info("flashcard_deleted", card_id=card_id, user_id=user_id)
    return ServiceResult.ok(True)


def review_card(
    user_id: str,
    card_id: str,
    result: str | ReviewResult,
    data_dir: Path | None = None,
) -> ServiceResult:
    """Record a review and schedule the card's next one."""
    review = parse_review_result(result)
    if review is None:
        return ServiceResult.invalid(
            f"Invalid review result: {result}. Expected one of again, hard, good, easy"
        )

    store = get_file_store(data_dir)
    try:
        collection = load_flashcards(store)
    except FileStoreError as e:
        return storage_failure("review flashcard", e)

    card = collection.find_card(card_id)
    if card is None or not collection.user_owns_card(user_id, card_id):
        return ServiceResult.not_found(f"Flashcard with ID {card_id} not found for user {user_id}")

    now = utc_now()
    max_days = load_app_config().review.max_interval_days
    next_review = calculate_next_review_date(card, review, now, max_days)

    card.review_count += 1
    if review in (ReviewResult.GOOD, ReviewResult.EASY):
        card.correct_count += 1
    else:
        card.incorrect_count += 1
    card.last_reviewed = now.isoformat()
    card.next_review_date = next_review.isoformat()

    try:
        save_flashcards(store, collection)
    except FileStoreError as e:
        return storage_failure("save flashcard review", e)

    logger.info(
        "flashcard_reviewed",
        card_id=card_id,
        user_id=user_id,
        result=review.value,
        next_review=card.next_review_date,
    )
    return ServiceResult.ok(card)


def get_due_cards(user_id: str, limit: int = 20, data_dir: Path | None = None) -> ServiceResult:
    """Cards in the user's decks that are due now.

    Never-reviewed cards come first, then the rest by nextReviewDate.
    """
    if limit < 1:
        return ServiceResult.invalid("limit must be at least 1")

    try:
        collection = load_flashcards(get_file_store(data_dir))
    except FileStoreError as e:
        return storage_failure("retrieve due cards", e)

    card_ids: list[str] = []
    for deck in collection.user_decks(user_id):
        for card_id in deck.card_ids:
            if card_id not in card_ids:
                card_ids.append(card_id)

    now = utc_now()
    due = [card for card in collection.cards_for(card_ids) if card.is_due(now)]
    due.sort(
        key=lambda c: (
            c.next_review_date is not None,
            parse_timestamp(c.next_review_date) if c.next_review_date else now,
        )
    )
    return ServiceResult.ok(due[:limit])
