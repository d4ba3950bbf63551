"""Tests for flashcards and decks."""

from datetime import timedelta

import pytest

from unitize.core.flashcards import (
    Flashcard,
    ReviewResult,
    calculate_next_review_date,
    clone_deck,
    create_deck,
    create_flashcard,
    delete_deck,
    delete_flashcard,
    get_deck_with_cards,
    get_due_cards,
    get_public_decks,
    get_user_decks,
    load_flashcards,
    review_card,
    save_flashcards,
    update_deck,
    update_flashcard,
)
from unitize.core.results import ErrorKind
from unitize.db.file_store import FileStore
from unitize.utils.dates import parse_timestamp, utc_now


@pytest.fixture
def deck(data_dir):
    return create_deck("user1", "Limits", description="Calc I", data_dir=data_dir).data


def _add_card(data_dir, deck, front="f(x)", back="y"):
    result = create_flashcard("user1", front, back, deck.id, data_dir=data_dir)
    assert result.success
    return result.data


def _days_until(timestamp, now):
    return (parse_timestamp(timestamp) - now).total_seconds() / 86400


class TestDecks:
    """Tests for deck CRUD."""

    def test_created_deck_listed_once(self, data_dir, deck):
        decks = get_user_decks("user1", data_dir).data
        assert [d.id for d in decks] == [deck.id]
        assert deck.id.startswith("deck_")
        assert deck.card_ids == []

    def test_other_users_decks_not_listed(self, data_dir, deck):
        assert get_user_decks("user2", data_dir).data == []

    def test_blank_name_rejected(self, data_dir):
        assert create_deck("user1", "   ", data_dir=data_dir).error_kind is ErrorKind.VALIDATION

    def test_update_only_editable_fields(self, data_dir, deck):
        result = update_deck(
            "user1", deck.id,
            {"name": "Limits II", "isPublic": True, "userId": "mallory", "cardIds": ["x"]},
            data_dir,
        )

        updated = result.data
        assert updated.name == "Limits II"
        assert updated.is_public is True
        assert updated.user_id == "user1"
        assert updated.card_ids == []

    def test_update_requires_owner(self, data_dir, deck):
        result = update_deck("user2", deck.id, {"name": "Mine"}, data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_update_rejects_blank_name(self, data_dir, deck):
        result = update_deck("user1", deck.id, {"name": ""}, data_dir)
        assert result.error_kind is ErrorKind.VALIDATION

    def test_delete_removes_cards(self, data_dir, deck):
        card = _add_card(data_dir, deck)

        assert delete_deck("user1", deck.id, data_dir).success

        collection = load_flashcards(FileStore(data_dir))
        assert collection.find_deck(deck.id) is None
        assert collection.find_card(card.id) is None

    def test_delete_unknown_deck(self, data_dir):
        assert delete_deck("user1", "deck_x", data_dir).error_kind is ErrorKind.NOT_FOUND

    def test_deck_with_cards_in_order(self, data_dir, deck):
        first = _add_card(data_dir, deck, front="one")
        second = _add_card(data_dir, deck, front="two")

        data = get_deck_with_cards(deck.id, data_dir).data
        assert data["deck"]["id"] == deck.id
        assert [c["id"] for c in data["cards"]] == [first.id, second.id]


class TestPublicDecks:
    """Tests for public deck listing and cloning."""

    def test_only_public_decks_newest_first(self, data_dir):
        older = create_deck("user1", "Old", is_public=True, data_dir=data_dir).data
        create_deck("user1", "Private", data_dir=data_dir)
        newer = create_deck("user2", "New", is_public=True, data_dir=data_dir).data

        store = FileStore(data_dir)
        collection = load_flashcards(store)
        collection.find_deck(older.id).last_modified = (utc_now() - timedelta(days=2)).isoformat()
        save_flashcards(store, collection)

        decks = get_public_decks(data_dir=data_dir).data
        assert [d.id for d in decks] == [newer.id, older.id]

    def test_limit_and_offset(self, data_dir):
        for index in range(3):
            create_deck("user1", f"Deck {index}", is_public=True, data_dir=data_dir)

        assert len(get_public_decks(limit=2, data_dir=data_dir).data) == 2
        assert len(get_public_decks(limit=2, offset=2, data_dir=data_dir).data) == 1

    def test_clone_copies_cards(self, data_dir):
        source = create_deck("user1", "Shared", is_public=True, data_dir=data_dir).data
        card = _add_card(data_dir, source)

        clone = clone_deck("user2", source.id, data_dir=data_dir).data

        assert clone.name == "Shared (Copy)"
        assert clone.user_id == "user2"
        assert clone.is_public is False
        assert len(clone.card_ids) == 1
        assert clone.card_ids[0] != card.id
        copied = load_flashcards(FileStore(data_dir)).find_card(clone.card_ids[0])
        assert (copied.front, copied.review_count) == (card.front, 0)

    def test_clone_private_deck_of_other_user(self, data_dir, deck):
        result = clone_deck("user2", deck.id, data_dir=data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND


class TestCards:
    """Tests for card CRUD."""

    def test_create_adds_card_to_deck(self, data_dir, deck):
        card = _add_card(data_dir, deck)

        collection = load_flashcards(FileStore(data_dir))
        assert collection.find_deck(deck.id).card_ids == [card.id]
        assert card.review_count == 0
        assert card.next_review_date is None

    def test_create_in_foreign_deck(self, data_dir, deck):
        result = create_flashcard("user2", "q", "a", deck.id, data_dir=data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_create_rejects_bad_difficulty(self, data_dir, deck):
        result = create_flashcard("user1", "q", "a", deck.id, difficulty="brutal", data_dir=data_dir)
        assert result.error_kind is ErrorKind.VALIDATION

    def test_update_content(self, data_dir, deck):
        card = _add_card(data_dir, deck)

        result = update_flashcard("user1", card.id, {"back": "z", "reviewCount": 99}, data_dir)

        assert result.data.back == "z"
        assert result.data.review_count == 0

    def test_update_requires_ownership(self, data_dir, deck):
        card = _add_card(data_dir, deck)
        result = update_flashcard("user2", card.id, {"back": "z"}, data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND

    @pytest.mark.parametrize("field", ["front", "back"])
    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_update_rejects_blank_text(self, data_dir, deck, field, value):
        card = _add_card(data_dir, deck)

        result = update_flashcard("user1", card.id, {field: value}, data_dir)

        assert result.error_kind is ErrorKind.VALIDATION
        stored = load_flashcards(FileStore(data_dir)).find_card(card.id)
        assert getattr(stored, field) == getattr(card, field)

    def test_update_rejects_null_tags(self, data_dir, deck):
        card = _add_card(data_dir, deck)

        result = update_flashcard("user1", card.id, {"tags": None}, data_dir)

        assert result.error_kind is ErrorKind.VALIDATION
        assert get_user_decks("user2", data_dir).success

    def test_stored_null_tags_load_as_empty(self):
        card = Flashcard.from_dict({"id": "c", "front": "f", "back": "b", "tags": None})
        assert card.tags == []

    def test_delete_removes_from_deck(self, data_dir, deck):
        card = _add_card(data_dir, deck)

        assert delete_flashcard("user1", card.id, data_dir).success

        collection = load_flashcards(FileStore(data_dir))
        assert collection.find_card(card.id) is None
        assert collection.find_deck(deck.id).card_ids == []


class TestScheduling:
    """Tests for calculate_next_review_date."""

    @pytest.mark.parametrize(
        "result,days",
        [
            (ReviewResult.AGAIN, 0.5),
            (ReviewResult.HARD, 1),
            (ReviewResult.GOOD, 3),
            (ReviewResult.EASY, 5),
        ],
    )
    def test_first_review_table(self, result, days):
        now = utc_now()
        card = Flashcard(id="c", front="f", back="b")
        assert calculate_next_review_date(card, result, now) == now + timedelta(days=days)

    def test_later_reviews_scale_previous_interval(self):
        now = utc_now()
        card = Flashcard(
            id="c", front="f", back="b", review_count=2,
            last_reviewed=(now - timedelta(days=4)).isoformat(),
            next_review_date=now.isoformat(),
        )

        def days(result):
            return (calculate_next_review_date(card, result, now) - now).total_seconds() / 86400

        assert days(ReviewResult.AGAIN) == pytest.approx(1)
        assert days(ReviewResult.HARD) == pytest.approx(4.8)
        assert days(ReviewResult.GOOD) == pytest.approx(8)
        assert days(ReviewResult.EASY) == pytest.approx(12)

    def test_easy_always_longer_than_again(self):
        """Holds even when the previous interval was shorter than a day."""
        now = utc_now()
        card = Flashcard(
            id="c", front="f", back="b", review_count=1,
            last_reviewed=(now - timedelta(hours=2)).isoformat(),
            next_review_date=now.isoformat(),
        )

        easy = calculate_next_review_date(card, ReviewResult.EASY, now)
        again = calculate_next_review_date(card, ReviewResult.AGAIN, now)
        assert easy > again

    def test_interval_capped(self):
        now = utc_now()
        card = Flashcard(
            id="c", front="f", back="b", review_count=10,
            last_reviewed=(now - timedelta(days=300)).isoformat(),
            next_review_date=now.isoformat(),
        )

        result = calculate_next_review_date(card, ReviewResult.EASY, now, max_interval_days=365)
        assert result == now + timedelta(days=365)


class TestReviewCard:
    """Tests for review_card."""

    def test_review_updates_counters(self, data_dir, deck):
        card = _add_card(data_dir, deck)
        before = utc_now()

        reviewed = review_card("user1", card.id, "good", data_dir).data

        assert reviewed.review_count == 1
        assert reviewed.correct_count == 1
        assert reviewed.incorrect_count == 0
        assert reviewed.last_reviewed is not None
        assert _days_until(reviewed.next_review_date, before) == pytest.approx(3, abs=0.01)

    def test_again_counts_as_incorrect(self, data_dir, deck):
        card = _add_card(data_dir, deck)
        reviewed = review_card("user1", card.id, "again", data_dir).data
        assert (reviewed.correct_count, reviewed.incorrect_count) == (0, 1)

    def test_invalid_result(self, data_dir, deck):
        card = _add_card(data_dir, deck)
        result = review_card("user1", card.id, "perfect", data_dir)
        assert result.error_kind is ErrorKind.VALIDATION

    def test_review_foreign_card(self, data_dir, deck):
        card = _add_card(data_dir, deck)
        assert review_card("user2", card.id, "good", data_dir).error_kind is ErrorKind.NOT_FOUND


class TestDueCards:
    """Tests for get_due_cards."""

    def test_unreviewed_cards_are_due(self, data_dir, deck):
        first = _add_card(data_dir, deck, front="one")
        second = _add_card(data_dir, deck, front="two")

        due = get_due_cards("user1", data_dir=data_dir).data
        assert [c.id for c in due] == [first.id, second.id]

    def test_reviewed_card_not_due(self, data_dir, deck):
        card = _add_card(data_dir, deck)
        review_card("user1", card.id, "easy", data_dir)

        assert get_due_cards("user1", data_dir=data_dir).data == []

    def test_limit_respected_and_all_due(self, data_dir, deck):
        for index in range(5):
            _add_card(data_dir, deck, front=f"card {index}")

        now = utc_now()
        due = get_due_cards("user1", limit=3, data_dir=data_dir).data
        assert len(due) == 3
        assert all(card.is_due(now) for card in due)

    def test_overdue_cards_after_new_ones(self, data_dir, deck):
        overdue = _add_card(data_dir, deck, front="old")
        fresh = _add_card(data_dir, deck, front="new")

        store = FileStore(data_dir)
        collection = load_flashcards(store)
        card = collection.find_card(overdue.id)
        card.review_count = 1
        card.last_reviewed = (utc_now() - timedelta(days=3)).isoformat()
        card.next_review_date = (utc_now() - timedelta(days=1)).isoformat()
        save_flashcards(store, collection)

        due = get_due_cards("user1", data_dir=data_dir).data
        assert [c.id for c in due] == [fresh.id, overdue.id]

    def test_limit_must_be_positive(self, data_dir):
        assert get_due_cards("user1", limit=0, data_dir=data_dir).error_kind is ErrorKind.VALIDATION
