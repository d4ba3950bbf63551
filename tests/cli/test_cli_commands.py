"""Tests for the unitize CLI."""

from typer.testing import CliRunner

from unitize.cli import commands
from unitize.cli.commands import app
from unitize.core.flashcards import create_deck, create_flashcard
from unitize.core.study_sessions import create_session

runner = CliRunner()


class TestInitData:
    """Tests for unitize init-data."""

    def test_creates_documents(self, data_dir):
        result = runner.invoke(app, ["init-data"])

        assert result.exit_code == 0
        assert "Created 5 document(s)" in result.stdout
        assert (data_dir / "progress.json").exists()

    def test_second_run_creates_nothing(self, data_dir):
        runner.invoke(app, ["init-data"])
        result = runner.invoke(app, ["init-data"])

        assert result.exit_code == 0
        assert "already exist" in result.stdout

    def test_custom_data_dir(self, tmp_path):
        target = tmp_path / "elsewhere"
        result = runner.invoke(app, ["init-data", "--data-dir", str(target)])

        assert result.exit_code == 0
        assert (target / "units.json").exists()


class TestCourses:
    """Tests for unitize courses."""

    def test_lists_courses(self, sample_catalog):
        result = runner.invoke(app, ["courses"])

        assert result.exit_code == 0
        assert "apcalc" in result.stdout
        assert "AP Biology" in result.stdout

    def test_empty_catalog(self, data_dir):
        result = runner.invoke(app, ["courses"])
        assert "No courses found" in result.stdout


class TestCreateUser:
    """Tests for unitize create-user."""

    def test_create_user(self, data_dir):
        result = runner.invoke(app, ["create-user", "Ana", "ana@example.com"])

        assert result.exit_code == 0
        assert "user1" in result.stdout

    def test_duplicate_email_fails(self, sample_user):
        result = runner.invoke(app, ["create-user", "Other", "ana@example.com"])

        assert result.exit_code == 1
        assert "already exists" in result.stdout


class TestDueAndStats:
    """Tests for unitize due and unitize stats."""

    def test_due_lists_new_cards(self, data_dir, sample_user):
        deck = create_deck(sample_user.id, "Limits", data_dir=data_dir).data
        create_flashcard(sample_user.id, "lim 1/x", "0", deck.id, data_dir=data_dir)

        result = runner.invoke(app, ["due", sample_user.id])

        assert result.exit_code == 0
        assert "Flashcards due: 1" in result.stdout
        assert "lim 1/x" in result.stdout
        assert "Questions due: 0" in result.stdout

    def test_due_for_user_without_progress(self, data_dir):
        result = runner.invoke(app, ["due", "nobody"])

        assert result.exit_code == 0
        assert "Flashcards due: 0" in result.stdout

    def test_stats(self, data_dir, sample_user):
        create_session(sample_user.id, 30, data_dir=data_dir)

        result = runner.invoke(app, ["stats", sample_user.id])

        assert result.exit_code == 0
        assert "0/0 correct" in result.stdout
        assert "sessions:" in result.stdout

    def test_stats_unknown_user(self, data_dir):
        result = runner.invoke(app, ["stats", "ghost"])

        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestServe:
    """Tests for unitize serve."""

    def test_runs_uvicorn(self, monkeypatch):
        calls = []
        monkeypatch.setattr(commands.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))

        result = runner.invoke(app, ["serve", "--port", "9000"])

        assert result.exit_code == 0
        assert calls == [(("unitize.web.api:app",), {"host": "127.0.0.1", "port": 9000, "reload": False})]
