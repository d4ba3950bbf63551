"""Tests for user progress tracking."""

from datetime import timedelta

import pytest

from unitize.core.progress import (
    ProgressUpdate,
    User,
    add_test_history_entry,
    create_user,
    get_course_stats,
    get_recommended_practice,
    get_recommended_topics,
    get_test_history,
    get_user,
    get_user_progress,
    get_user_stats,
    load_users,
    reset_course_progress,
    save_users,
    update_progress,
)
from unitize.core.results import ErrorKind
from unitize.db.file_store import FileStore
from unitize.utils.dates import utc_now


def _attempt(user_id, question_id, correct, unit_id="unit1", topic_id="topic1", seconds=30):
    return ProgressUpdate(
        user_id=user_id,
        course_id="apcalc",
        unit_id=unit_id,
        topic_id=topic_id,
        question_id=question_id,
        is_correct=correct,
        time_spent_seconds=seconds,
    )


def _set_last_login(data_dir, user_id, days_ago):
    store = FileStore(data_dir)
    users = load_users(store)
    for user in users:
        if user.id == user_id:
            user.last_login = (utc_now() - timedelta(days=days_ago)).isoformat()
    save_users(store, users)


class TestCreateUser:
    """Tests for create_user."""

    def test_assigns_sequential_ids(self, data_dir):
        first = create_user("Ana", "ana@example.com", data_dir)
        second = create_user("Luis", "luis@example.com", data_dir)

        assert first.data.id == "user1"
        assert second.data.id == "user2"
        assert second.data.courses_progress == []

    def test_rejects_duplicate_email(self, data_dir, sample_user):
        result = create_user("Other", "ANA@example.com", data_dir)
        assert result.error_kind is ErrorKind.VALIDATION

    def test_rejects_blank_name(self, data_dir):
        assert create_user("  ", "x@example.com", data_dir).error_kind is ErrorKind.VALIDATION


class TestGetUser:
    """Tests for get_user / get_user_progress."""

    def test_unknown_user(self, data_dir):
        result = get_user("ghost", data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_course_progress_absent(self, data_dir, sample_user):
        result = get_user_progress(sample_user.id, "apcalc", data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_user_round_trips_through_dict(self, sample_user):
        data = sample_user.to_dict()
        assert User.from_dict(data).to_dict() == data


class TestUpdateProgress:
    """Tests for update_progress."""

    def test_creates_nested_progress(self, data_dir, sample_user):
        result = update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        assert result.success

        course = get_user_progress(sample_user.id, "apcalc", data_dir).data
        unit = course.units_progress[0]
        topic = unit.topics_progress[0]
        assert (unit.unit_id, topic.topic_id) == ("unit1", "topic1")
        assert topic.questions_attempted == ["q1"]
        assert topic.questions_correct == ["q1"]
        assert topic.completion_percentage == 100

    def test_completion_percentages(self, data_dir, sample_user):
        """Topic = correct/attempted, unit = mean of topics, course = mean of units."""
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        update_progress(_attempt(sample_user.id, "q2", False), data_dir)
        update_progress(_attempt(sample_user.id, "q4", True, topic_id="topic2"), data_dir)
        update_progress(_attempt(sample_user.id, "q5", False, unit_id="unit2", topic_id="topic3"), data_dir)

        course = get_user_progress(sample_user.id, "apcalc", data_dir).data
        unit1, unit2 = course.units_progress
        assert [t.completion_percentage for t in unit1.topics_progress] == [50, 100]
        assert unit1.completion_percentage == 75
        assert unit2.completion_percentage == 0
        assert course.completion_percentage == 37.5

    def test_repeated_attempts_do_not_duplicate(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", False), data_dir)
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)

        user = get_user(sample_user.id, data_dir).data
        topic = user.courses_progress[0].units_progress[0].topics_progress[0]
        assert topic.questions_attempted == ["q1"]
        assert topic.questions_correct == ["q1"]
        assert user.total_questions_attempted == 1
        assert user.total_questions_correct == 1
        assert len(user.question_history) == 3

    def test_time_accumulates_at_every_level(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True, seconds=40), data_dir)
        update_progress(_attempt(sample_user.id, "q2", True, seconds=20), data_dir)

        user = get_user(sample_user.id, data_dir).data
        course = user.courses_progress[0]
        assert user.total_time_spent_seconds == 60
        assert course.time_spent_seconds == 60
        assert course.units_progress[0].time_spent_seconds == 60
        assert course.units_progress[0].topics_progress[0].time_spent_seconds == 60

    def test_strengths_and_weaknesses(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        update_progress(_attempt(sample_user.id, "q2", True), data_dir)
        update_progress(_attempt(sample_user.id, "q5", False, unit_id="unit2", topic_id="topic3"), data_dir)

        course = get_user_progress(sample_user.id, "apcalc", data_dir).data
        assert course.strengths == ["unit1"]
        assert course.weaknesses == ["unit2"]

    def test_unknown_user(self, data_dir):
        result = update_progress(_attempt("ghost", "q1", True), data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_negative_time_is_invalid(self, data_dir, sample_user):
        result = update_progress(_attempt(sample_user.id, "q1", True, seconds=-5), data_dir)
        assert result.error_kind is ErrorKind.VALIDATION


class TestStudyStreak:
    """Streak rules: same day unchanged, next day +1, longer gap resets to 1."""

    def test_first_activity_starts_streak(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        assert get_user(sample_user.id, data_dir).data.study_streak_days == 1

    def test_same_day_keeps_streak(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        update_progress(_attempt(sample_user.id, "q2", True), data_dir)
        assert get_user(sample_user.id, data_dir).data.study_streak_days == 1

    def test_next_day_extends_streak(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        _set_last_login(data_dir, sample_user.id, days_ago=1)

        update_progress(_attempt(sample_user.id, "q2", True), data_dir)
        assert get_user(sample_user.id, data_dir).data.study_streak_days == 2

    def test_gap_resets_streak(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        _set_last_login(data_dir, sample_user.id, days_ago=1)
        update_progress(_attempt(sample_user.id, "q2", True), data_dir)
        _set_last_login(data_dir, sample_user.id, days_ago=3)

        update_progress(_attempt(sample_user.id, "q3", True), data_dir)
        assert get_user(sample_user.id, data_dir).data.study_streak_days == 1


class TestStats:
    """Tests for user and course statistics."""

    def test_user_stats(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True, seconds=10), data_dir)
        update_progress(_attempt(sample_user.id, "q2", False, seconds=10), data_dir)

        stats = get_user_stats(sample_user.id, data_dir).data
        assert stats["totalQuestions"] == 2
        assert stats["correctQuestions"] == 1
        assert stats["accuracy"] == 50
        assert stats["timeSpent"] == 20
        assert stats["streak"] == 1

    def test_course_stats_breakdown(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        update_progress(_attempt(sample_user.id, "q5", False, unit_id="unit2", topic_id="topic3"), data_dir)

        stats = get_course_stats(sample_user.id, "apcalc", data_dir).data
        assert stats["totalAttempted"] == 2
        assert stats["accuracyRate"] == 50
        assert [u["unitId"] for u in stats["unitBreakdown"]] == ["unit1", "unit2"]
        assert stats["unitBreakdown"][0]["accuracyRate"] == 100


class TestRecommendations:
    """Tests for practice and topic recommendations."""

    def test_recommended_practice_without_progress(self, data_dir, sample_catalog, sample_user):
        """Untouched units come from the catalog in order."""
        result = get_recommended_practice(sample_user.id, "apcalc", 2, data_dir)
        assert result.data == ["unit1", "unit2"]

    def test_recommended_practice_lowest_completion_first(self, data_dir, sample_catalog, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        update_progress(_attempt(sample_user.id, "q5", False, unit_id="unit2", topic_id="topic3"), data_dir)

        result = get_recommended_practice(sample_user.id, "apcalc", 3, data_dir)
        assert result.data == ["unit2", "unit1", "unit3"]

    def test_recommended_topics_order(self, data_dir, sample_user):
        """Lowest accuracy first; ties broken by more attempts."""
        update_progress(_attempt(sample_user.id, "q1", True), data_dir)
        update_progress(_attempt(sample_user.id, "q2", False), data_dir)
        update_progress(_attempt(sample_user.id, "q3", False), data_dir)
        update_progress(_attempt(sample_user.id, "q4", True, topic_id="topic2"), data_dir)
        update_progress(_attempt(sample_user.id, "q5", False, unit_id="unit2", topic_id="topic3"), data_dir)
        update_progress(_attempt(sample_user.id, "q6", False, unit_id="unit2", topic_id="topic3"), data_dir)

        topics = get_recommended_topics(sample_user.id, "apcalc", 5, data_dir).data
        assert [t["topicId"] for t in topics] == ["topic3", "topic1", "topic2"]

    def test_recommended_topics_without_course(self, data_dir, sample_user):
        assert get_recommended_topics(sample_user.id, "apcalc", 5, data_dir).data == []


class TestResetCourseProgress:
    """Tests for reset_course_progress."""

    def test_reset_clears_course_and_totals(self, data_dir, sample_user):
        update_progress(_attempt(sample_user.id, "q1", True, seconds=30), data_dir)

        assert reset_course_progress(sample_user.id, "apcalc", data_dir).success

        user = get_user(sample_user.id, data_dir).data
        course = user.get_course_progress("apcalc")
        assert course.units_progress == []
        assert course.completion_percentage == 0
        assert user.total_questions_attempted == 0
        assert user.total_time_spent_seconds == 0

    def test_reset_unknown_course(self, data_dir, sample_user):
        result = reset_course_progress(sample_user.id, "apcalc", data_dir)
        assert result.error_kind is ErrorKind.NOT_FOUND


class TestHistoryEntries:
    """Tests for test history entries."""

    def test_add_and_filter_history(self, data_dir, sample_user):
        added = add_test_history_entry(
            sample_user.id, "apcalc", total_questions=10, correct_questions=8,
            time_spent_seconds=300, score=80, data_dir=data_dir,
        )
        add_test_history_entry(
            sample_user.id, "apbio", total_questions=5, correct_questions=5,
            time_spent_seconds=100, score=100, data_dir=data_dir,
        )

        assert added.data.id.startswith("test_")
        all_entries = get_test_history(sample_user.id, data_dir=data_dir).data
        calc_entries = get_test_history(sample_user.id, "apcalc", data_dir).data
        assert len(all_entries) == 2
        assert [e.score for e in calc_entries] == [80]

    @pytest.mark.parametrize("total,correct", [(0, 0), (5, 6), (5, -1)])
    def test_rejects_inconsistent_counts(self, data_dir, sample_user, total, correct):
        result = add_test_history_entry(
            sample_user.id, "apcalc", total_questions=total, correct_questions=correct,
            time_spent_seconds=0, score=0, data_dir=data_dir,
        )
        assert result.error_kind is ErrorKind.VALIDATION
