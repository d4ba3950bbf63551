"""Flashcard endpoints."""

from fastapi import APIRouter, Query

from unitize.config.app_config import load_app_config
from unitize.core import flashcards
from unitize.web.responses import respond
from unitize.web.schemas import Envelope, FlashcardCreate, FlashcardReview, FlashcardUpdate

router = APIRouter(prefix="/api/flashcards", tags=["flashcards"])


@router.get("", response_model=Envelope)
async def get_flashcards(
    user_id: str = Query(..., alias="userId", min_length=1),
    deck_id: str | None = Query(default=None, alias="deckId"),
    limit: int | None = Query(default=None, ge=1, le=500),
) -> Envelope:
    """A deck with its cards when deckId is given, otherwise the user's due cards."""
    if deck_id:
        return respond(flashcards.get_deck_with_cards(deck_id))
    return respond(
        flashcards.get_due_cards(user_id, limit or load_app_config().review.due_cards_limit)
    )


@router.post("", response_model=Envelope)
async def create_flashcard(body: FlashcardCreate) -> Envelope:
    return respond(
        flashcards.create_flashcard(
            body.user_id,
            body.front,
            body.back,
            body.deck_id,
            tags=body.tags,
            hint=body.hint,
            course_id=body.course_id,
            topic_id=body.topic_id,
            difficulty=body.difficulty,
        )
    )


@router.patch("/{card_id}", response_model=Envelope)
async def update_flashcard(card_id: str, body: FlashcardUpdate) -> Envelope:
    return respond(flashcards.update_flashcard(body.user_id, card_id, body.updates()))


@router.patch("/{card_id}/review", response_model=Envelope)
async def review_flashcard(card_id: str, body: FlashcardReview) -> Envelope:
    """Record a review (again, hard, good or easy)."""
    return respond(flashcards.review_card(body.user_id, card_id, body.result))


@router.delete("/{card_id}", response_model=Envelope)
async def delete_flashcard(
    card_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
) -> Envelope:
    return respond(flashcards.delete_flashcard(user_id, card_id))
