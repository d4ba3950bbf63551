"""Flashcard deck endpoints."""

from fastapi import APIRouter, Query

from unitize.config.app_config import load_app_config
from unitize.core import flashcards
from unitize.web.responses import bad_request, respond
from unitize.web.schemas import DeckClone, DeckCreate, DeckUpdate, Envelope

router = APIRouter(prefix="/api/flashcards/decks", tags=["flashcards"])


@router.get("", response_model=Envelope)
async def list_decks(
    user_id: str | None = Query(default=None, alias="userId"),
    public: bool = Query(default=False),
    limit: int | None = Query(default=None, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> Envelope:
    """List a user's decks, or public decks when public=true."""
    if public:
        page_size = limit or load_app_config().api.default_page_size
        return respond(flashcards.get_public_decks(page_size, offset))

    if not user_id:
        raise bad_request("Missing required userId parameter for personal decks")
    return respond(flashcards.get_user_decks(user_id))


@router.post("", response_model=Envelope)
async def create_deck(body: DeckCreate) -> Envelope:
    return respond(
        flashcards.create_deck(
            body.user_id,
            body.name,
            description=body.description,
            course_id=body.course_id,
            topic_id=body.topic_id,
            is_public=body.is_public,
        )
    )


@router.patch("", response_model=Envelope)
async def update_deck(body: DeckUpdate) -> Envelope:
    return respond(flashcards.update_deck(body.user_id, body.deck_id, body.updates()))


@router.delete("", response_model=Envelope)
async def delete_deck(
    user_id: str = Query(..., alias="userId", min_length=1),
    deck_id: str = Query(..., alias="deckId", min_length=1),
) -> Envelope:
    """Delete a deck and its cards."""
    return respond(flashcards.delete_deck(user_id, deck_id))


@router.post("/clone", response_model=Envelope)
async def clone_deck(body: DeckClone) -> Envelope:
    return respond(flashcards.clone_deck(body.user_id, body.deck_id, body.new_name))
