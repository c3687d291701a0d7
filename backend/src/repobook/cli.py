"""
RepoBook CLI - Command-line interface for RepoBook.

Minimal CLI providing server management, account administration and a
terminal version of the book pipeline. For interactive features, use the
web UI.
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from repobook.logging_config import setup_logging

app = typer.Typer(
    name="repobook",
    help="RepoBook - Turn a GitHub repository into a book",
    no_args_is_help=True,
)

console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.
    """
    import uvicorn

    console.print("[bold green]Starting RepoBook API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "repobook.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command("init-db")
def init_database() -> None:
    """Create all database tables."""
    from repobook.db.connection import init_db

    setup_logging(context="cli")
    init_db()
    console.print("[green]✓ Database tables created[/green]")


@app.command("create-user")
def create_user(
    email: str = typer.Argument(..., help="Account email"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True
    ),
    name: Optional[str] = typer.Option(None, help="Display name"),
    admin: bool = typer.Option(False, "--admin", help="Create an admin account"),
) -> None:
    """
    Create an account and print its API key.

    The key is shown once; only its hash is stored.
    """
    from repobook.api.auth import hash_password, issue_api_key
    from repobook.db.connection import db_session
    from repobook.db.repositories import UserRepository

    setup_logging(context="cli")

    with db_session() as session:
        users = UserRepository(session)
        if users.get_by_email(email) is not None:
            console.print(f"[red]✗ User already exists:[/red] {email}")
            raise typer.Exit(1)

        user = users.create(
            email=email.strip().lower(),
            name=name,
            password_hash=hash_password(password),
            is_admin=admin,
        )
        api_key = issue_api_key(user)
        session.commit()
        user_id = user.id

    console.print(f"[green]✓ Created user[/green] {email} ({user_id})")
    if admin:
        console.print("  Role: [bold]admin[/bold]")
    console.print(f"  API key: [bold]{api_key}[/bold]")


@app.command()
def credits(email: str = typer.Argument(..., help="Account email")) -> None:
    """Show a user's credit counters."""
    from repobook.credits.ledger import CreditLedger
    from repobook.db.connection import db_session
    from repobook.db.repositories import UserRepository

    setup_logging(context="cli")

    with db_session() as session:
        user = UserRepository(session).get_by_email(email)
        if user is None:
            console.print(f"[red]✗ No such user:[/red] {email}")
            raise typer.Exit(1)
        status = CreditLedger(session).get_credit_status(user.id)
        session.commit()

    table = Table(title=f"Credits for {email}")
    table.add_column("Type")
    table.add_column("Remaining", justify="right")
    table.add_column("Resets at")

    def fmt(value: float) -> str:
        return "unlimited" if status.is_admin else str(int(value))

    table.add_row(
        "document",
        fmt(status.document_credits),
        str(status.document_credits_reset_at or "-"),
    )
    table.add_row(
        "interview",
        fmt(status.interview_credits),
        str(status.interview_credits_reset_at or "-"),
    )
    console.print(table)


@app.command()
def analyze(
    repo_url: str = typer.Argument(..., help="GitHub repository URL or owner/name"),
    email: Optional[str] = typer.Option(
        None, help="Run the full book pipeline for this user (spends a credit)"
    ),
    output: Path = typer.Option(
        Path("analysis.json"), "--output", "-o", help="Where to write the result"
    ),
) -> None:
    """
    Analyze a repository's files, and optionally write the whole book.

    Without --email only the file analysis step runs and its output is
    written. With --email an Analysis is created for that user and taken
    through all four stages.
    """
    from repobook.db.connection import db_session
    from repobook.db.repositories import UserRepository
    from repobook.exceptions import RepoBookError
    from repobook.github.client import GitHubClient
    from repobook.github.resolver import UNKNOWN, resolve_repository
    from repobook.llm.service import get_completion_service
    from repobook.pipeline.file_analysis import FileAnalyzer, analyze_repository
    from repobook.pipeline.orchestrator import DocumentPipeline
    from repobook.pipeline.state import Stage

    setup_logging(context="cli")

    ref = resolve_repository(repo_url)
    if ref.owner == UNKNOWN:
        console.print(f"[red]✗ Not a GitHub repository:[/red] {repo_url}")
        raise typer.Exit(1)

    console.print(f"[bold blue]Analyzing:[/bold blue] {ref.full_name}")

    try:
        completions = get_completion_service()
        with GitHubClient() as github:
            listing = github.get_repository(ref.owner, ref.name)
            analyzer = FileAnalyzer(completions, github, ref.owner, ref.name)

            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.percentage:>3.0f}%"),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Reading files", total=100)

                def on_progress(path: str, percent: float) -> None:
                    progress.update(task, completed=percent, description=path[-40:])

                analyses = analyze_repository(
                    analyzer, [f.path for f in listing.files], on_progress
                )
    except RepoBookError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Analyzed {len(analyses)} files[/green]")

    if email is None:
        output.write_text(json.dumps([a.to_dict() for a in analyses], indent=2))
        console.print(f"  Wrote file analyses to {output}")
        return

    with db_session() as session:
        user = UserRepository(session).get_by_email(email)
        if user is None:
            console.print(f"[red]✗ No such user:[/red] {email}")
            raise typer.Exit(1)

        pipeline = DocumentPipeline(session, completions)
        try:
            with console.status("Chapter 1: Vision"):
                result = pipeline.start(user.id, ref.canonical_url, analyses)
            for stage in (Stage.STRUCTURE, Stage.VISUALS, Stage.BIND):
                with console.status(f"Step {int(stage)}: {stage.name.title()}"):
                    result = pipeline.advance(
                        user.id, int(stage), analysis_id=result.analysis_id
                    )
        except RepoBookError as e:
            console.print(f"[red]✗[/red] {e}")
            raise typer.Exit(1)

    output.write_text(result.book.model_dump_json(indent=2))
    console.print(f"[green]✓ Book written to {output}[/green] ({result.analysis_id})")


if __name__ == "__main__":
    app()
