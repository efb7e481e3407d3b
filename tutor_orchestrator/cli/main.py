"""
CLI interface for the tutor orchestrator.

Provides command-line access to schema setup, demo data, budget inspection,
note extraction and tutor replies.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from tutor_orchestrator.config.loader import OrchestratorConfig, load_orchestrator_config
from tutor_orchestrator.core.budget import TokenBudgetTracker
from tutor_orchestrator.core.completion import CompletionClient
from tutor_orchestrator.core.errors import OrchestratorError
from tutor_orchestrator.core.notes import NoteExtractor
from tutor_orchestrator.core.orchestrator import Orchestrator, ReplyRequest
from tutor_orchestrator.demo.seed_demo_data import seed_demo_data
from tutor_orchestrator.sdk.openai_client import OpenAICompletionTransport
from tutor_orchestrator.storage.db import DEFAULT_DB_PATH
from tutor_orchestrator.storage.repository import (
    SQLiteLanguageStore,
    SQLiteMessageStore,
    SQLiteSummaryStore,
    SQLiteUserStore,
    initialize_schema,
)

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DEFAULT_CONFIG_PATH = "orchestrator.yaml"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
):
    """Tutor orchestrator CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    if ctx.invoked_subcommand is None:
        console.print("Tutor Orchestrator - Use --help to see available commands")


@app.command()
def init(
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")
):
    """Initialize the tutor orchestrator database."""
    try:
        initialize_schema(db)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("seed-demo")
def seed_demo(
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")
):
    """Insert demo languages and users."""
    try:
        users = seed_demo_data(db)
        console.print(f"[green]✓[/] Demo data inserted ({len(users)} users)")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error seeding demo data:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def budget(
    user_id: str = typer.Argument(..., help="User to inspect"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="YAML config path"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path")
):
    """Show a user's daily token budget."""
    try:
        orchestrator_config = load_orchestrator_config(config)
        tracker = TokenBudgetTracker(SQLiteUserStore(db), orchestrator_config.token_limits)
        status = tracker.get_budget_status(user_id)
    except OrchestratorError as e:
        console.print(f"[red]Error:[/] {e.public_message}")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title=f"Token budget for {status.user_id}")
    table.add_column("Daily limit", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Last reset")
    table.add_row(
        f"{status.daily_limit:,}",
        f"{status.tokens_used:,}",
        f"{status.remaining:,}",
        status.last_reset.isoformat() if status.last_reset else "-"
    )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command("extract-notes")
def extract_notes(
    reply_file: str = typer.Argument(..., help="File containing a raw model reply"),
    language: str = typer.Option(..., "--language", "-l", help="Learning language code")
):
    """Print the study notes embedded in a saved model reply."""
    path = Path(reply_file)
    if not path.exists():
        console.print(f"[red]Error:[/] Reply file not found: {reply_file}")
        sys.exit(EXIT_CODE_FAIL)

    notes = NoteExtractor().extract(path.read_text(encoding="utf-8"), language)
    if not notes:
        console.print("[dim]No notes found in reply.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title=f"Extracted notes ({language})")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Summary")
    for note in notes:
        table.add_row(note.type, note.title, note.summary or "")
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def chat(
    user_id: str = typer.Argument(..., help="User sending the message"),
    language: str = typer.Argument(..., help="Learning language code"),
    message: str = typer.Argument(..., help="Message text"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="YAML config path"),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="SQLite database path"),
    intent: Optional[str] = typer.Option(None, "--intent", help="Message intent, e.g. vocabulary"),
    depth: Optional[str] = typer.Option(None, "--depth", help="Explanation depth, e.g. detailed"),
    no_context: bool = typer.Option(False, "--no-context", help="Skip conversation history")
):
    """Generate a tutor reply through the configured provider."""
    try:
        orchestrator = _build_orchestrator(load_orchestrator_config(config), db)
        result = orchestrator.generate_reply(ReplyRequest(
            user_id=user_id,
            language=language,
            message=message,
            intent=intent,
            depth=depth,
            include_context=not no_context
        ))
    except OrchestratorError as e:
        logging.getLogger(__name__).debug(f"Reply failed: {e}")
        console.print(f"[red]Error:[/] {e.public_message}")
        sys.exit(EXIT_CODE_FAIL)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(result.reply)
    console.print(
        f"\n[dim]model={result.model} tokens={result.usage.total_tokens}[/]"
    )
    if result.suggested_topics:
        console.print("\n[bold]Suggested topics:[/bold]")
        for topic in result.suggested_topics:
            console.print(f"- {topic}")
    sys.exit(EXIT_CODE_PASS)


def _build_orchestrator(config: OrchestratorConfig, db_path: str) -> Orchestrator:
    """Wire SQLite stores and the OpenAI transport into an orchestrator."""
    client = CompletionClient(OpenAICompletionTransport.from_config(config.api), config.retry)
    return Orchestrator(
        user_store=SQLiteUserStore(db_path),
        language_store=SQLiteLanguageStore(db_path),
        message_store=SQLiteMessageStore(db_path),
        summary_store=SQLiteSummaryStore(db_path),
        config=config,
        completion_client=client
    )


if __name__ == "__main__":
    app()
