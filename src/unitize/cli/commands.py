"""CLI commands for unitize.

Commands:
- init-data: Create empty data documents
- courses: List catalog courses
- create-user: Add a user
- due: Show flashcards and questions due for review
- stats: Show a user's progress and study statistics
- serve: Run the Web API with uvicorn
"""

from pathlib import Path

import typer
import uvicorn
from rich.console import Console

from unitize.core import catalog, flashcards, progress, spaced_repetition, study_sessions
from unitize.core.results import ServiceResult
from unitize.db.file_store import FileStoreError, get_file_store

app = typer.Typer(
    name="unitize",
    help="Study and practice backend: courses, progress, flashcards and goals.",
    no_args_is_help=True,
)

console = Console()


def _data_dir_option() -> Path | None:
    return typer.Option(None, "--data-dir", "-d", help="Data directory (default: from config)")


def _exit_on_failure(result: ServiceResult) -> None:
    """Print the error of a failed result and exit with code 1."""
    if not result.success:
        console.print(f"[red]✗ {result.error}[/red]")
        raise typer.Exit(code=1)


@app.command(name="init-data")
def init_data(data_dir: Path | None = _data_dir_option()) -> None:
    """Create every missing data document with its empty shape."""
    store = get_file_store(data_dir)
    try:
        created = store.ensure_defaults()
    except FileStoreError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if not created:
        console.print(f"[yellow]⚠ All documents already exist in {store.data_dir}[/yellow]")
        return

    console.print(f"[green]✓ Created {len(created)} document(s)[/green]")
    for path in created:
        console.print(f"  [dim]-[/dim] {path}")


@app.command()
def courses(data_dir: Path | None = _data_dir_option()) -> None:
    """List the courses in the catalog."""
    result = catalog.get_all_courses(data_dir)
    _exit_on_failure(result)

    if not result.data:
        console.print("[yellow]No courses found[/yellow]")
        return

    for course in result.data:
        console.print(f"[bold]{course['id']}[/bold]  {course['name']}")
        if course["description"]:
            console.print(f"  [dim]{course['description']}[/dim]")


@app.command(name="create-user")
def create_user(
    name: str = typer.Argument(..., help="Display name"),
    email: str = typer.Argument(..., help="Email address"),
    data_dir: Path | None = _data_dir_option(),
) -> None:
    """Add a user."""
    result = progress.create_user(name, email, data_dir)
    _exit_on_failure(result)
    console.print("[green]✓ User created[/green]")
    console.print(f"  [dim]user_id:[/dim] {result.data.id}")


@app.command()
def due(
    user_id: str = typer.Argument(..., help="User ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum items per list"),
    data_dir: Path | None = _data_dir_option(),
) -> None:
    """Show flashcards and questions due for review."""
    cards = flashcards.get_due_cards(user_id, limit, data_dir)
    _exit_on_failure(cards)

    console.print(f"[bold]Flashcards due:[/bold] {len(cards.data)}")
    for card in cards.data:
        marker = "new" if card.next_review_date is None else card.next_review_date[:10]
        console.print(f"  [dim]{marker:>10}[/dim]  {card.front}")

    questions = spaced_repetition.get_due_cards(user_id, limit, data_dir)
    if not questions.success:
        # Users without a progress record have no review questions
        console.print(f"[dim]Questions due: - ({questions.error})[/dim]")
        return

    console.print(f"[bold]Questions due:[/bold] {len(questions.data)}")
    for card in questions.data:
        console.print(
            f"  [dim]{card.due_date[:10]:>10}[/dim]  "
            f"{card.course_id}/{card.unit_id}/{card.topic_id}/{card.question_id}"
        )


@app.command()
def stats(
    user_id: str = typer.Argument(..., help="User ID"),
    data_dir: Path | None = _data_dir_option(),
) -> None:
    """Show a user's progress and study statistics."""
    result = progress.get_user_stats(user_id, data_dir)
    _exit_on_failure(result)
    user_stats = result.data

    console.print(f"[bold]Progress for {user_id}[/bold]")
    console.print(
        f"  [dim]questions:[/dim] {user_stats['correctQuestions']}/{user_stats['totalQuestions']}"
        f" correct ({user_stats['accuracy']:.1f}%)"
    )
    console.print(f"  [dim]time:[/dim]      {user_stats['timeSpent'] // 60} min")
    console.print(f"  [dim]streak:[/dim]    {user_stats['streak']} day(s)")
    if user_stats["strengths"]:
        console.print(f"  [dim]strengths:[/dim] {', '.join(user_stats['strengths'])}")
    if user_stats["weaknesses"]:
        console.print(f"  [dim]weaknesses:[/dim] {', '.join(user_stats['weaknesses'])}")

    sessions = study_sessions.get_user_stats(user_id, data_dir)
    _exit_on_failure(sessions)
    console.print("[bold]Study sessions[/bold]")
    console.print(f"  [dim]sessions:[/dim]  {sessions.data['totalSessions']}")
    console.print(f"  [dim]today:[/dim]     {sessions.data['todayMinutes']} min")
    console.print(f"  [dim]this week:[/dim] {sessions.data['weekMinutes']} min")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the Web API."""
    console.print(f"[blue]Serving Unitize API on http://{host}:{port}[/blue]")
    uvicorn.run("unitize.web.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
