"""Command-line harness for the Raiinmaker verification actions using Typer and Rich."""

import asyncio
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from raiinmaker_verification.agents.registry import create_plugin
from raiinmaker_verification.agents.runtime import ActionMessage, LocalRuntime
from raiinmaker_verification.config.logging import get_logger
from raiinmaker_verification.config.settings import ConfigurationError, resolve_config, settings
from raiinmaker_verification.data_management.memory_store import InMemoryMemoryStore

app = typer.Typer(
    help="Raiinmaker content verification - submit content and track human verification",
    add_completion=False,
)

console = Console()

logger = get_logger("cli")

DEFAULT_ROOM = "cli"
DEFAULT_MEMORY_FILE = ".raiinmaker_memory.json"


def _masked(value: Optional[str]) -> str:
    return f"{value[:4]}..." if value else "-"


def _run_action(
    action_name: str,
    text: str,
    options: Optional[dict[str, Any]] = None,
    memory_file: str = DEFAULT_MEMORY_FILE,
    room: str = DEFAULT_ROOM,
) -> tuple[bool, dict[str, Any]]:
    """Dispatch one action against a LocalRuntime and capture the callback payload."""
    runtime = LocalRuntime(memory=InMemoryMemoryStore(persistence_path=memory_file))
    registry = create_plugin()
    message = ActionMessage(text=text, room_id=room)
    captured: dict[str, Any] = {}

    def callback(payload: dict[str, Any]) -> None:
        captured.update(payload)

    ok = asyncio.run(registry.dispatch(action_name, runtime, message, options, callback))
    return ok, captured


def _report(ok: bool, result: dict[str, Any], title: str) -> None:
    if not result:
        console.print("[red]✗[/red] Action unavailable. Check RAIINMAKER_APP_ID and RAIINMAKER_API_KEY.")
        raise typer.Exit(1)

    console.print(Panel(
        result.get("text", ""),
        title=title,
        border_style="green" if ok else "red",
    ))
    if not ok:
        raise typer.Exit(1)


@app.command()
def status() -> None:
    """
    Display configuration status.

    Shows credentials (masked), API endpoint, pre-check policy and logging settings.
    """
    logger.info("Displaying configuration status")

    table = Table(title="Raiinmaker Verification Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=18)
    table.add_column("Details", style="yellow")

    try:
        config = resolve_config()
        table.add_row("Credentials", "✓ Configured", f"App ID: {_masked(config.app_id)}")
        table.add_row("API", "✓ Ready", f"{config.base_url} ({config.environment})")
        precheck_status = "✓ Enabled" if config.pre_verification_enabled else "✗ Disabled"
        policy = "fail-open" if config.pre_verification_fail_open else "fail-closed"
        table.add_row("Pre-verification", precheck_status, f"{config.precheck_model}, {policy}")
    except ConfigurationError as e:
        table.add_row("Credentials", "⚠ Not Configured", str(e).splitlines()[-1])

    table.add_row("Logging", "✓ Active", f"Level: {settings.log_level}, Format: {settings.log_format}")

    console.print(table)


@app.command()
def verify(
    content: str = typer.Argument(..., help="Content to submit for verification"),
    votes: int = typer.Option(3, min=1, help="Consensus votes required"),
    question: Optional[str] = typer.Option(None, help="Question shown to validators"),
    skip_precheck: bool = typer.Option(False, "--skip-precheck", help="Go straight to human verification"),
    memory_file: str = typer.Option(DEFAULT_MEMORY_FILE, help="Audit memory file"),
) -> None:
    """Submit content for verification."""
    logger.info("Verify command invoked")
    options = {
        "content": content,
        "consensus_votes": votes,
        "question": question,
        "skip_pre_verification": skip_precheck,
    }
    ok, result = _run_action("VERIFY_GENERATION_CONTENT", content, options, memory_file)
    _report(ok, result, "Content Verification")
    if result.get("taskId"):
        console.print(f"[dim]Task ID: {result['taskId']}[/dim]")


@app.command()
def check(
    task_id: Optional[str] = typer.Argument(None, help="Task ID (defaults to the most recent submission)"),
    memory_file: str = typer.Option(DEFAULT_MEMORY_FILE, help="Audit memory file"),
) -> None:
    """Check the status of a verification task."""
    logger.info("Check command invoked")
    options = {"task_id": task_id} if task_id else None
    ok, result = _run_action("CHECK_VERIFICATION_STATUS", "check verification status", options, memory_file)
    _report(ok, result, "Verification Status")


@app.command()
def quests(
    query: str = typer.Argument("", help='Filter phrase, e.g. "completed bool tasks this week"'),
) -> None:
    """List quests, optionally filtered by date range, status and type."""
    logger.info("Quests command invoked")
    ok, result = _run_action("GET_RAIIN_QUEST_STATUS", query or "show my quests")
    _report(ok, result, "Quests")


@app.command()
def validate(
    content: str = typer.Argument(..., help="Data to validate"),
) -> None:
    """Validate data accuracy through the validate endpoint."""
    logger.info("Validate command invoked")
    ok, result = _run_action("GET_RAIIN_DATA_VERIFICATION", content)
    _report(ok, result, "Data Verification")


@app.command()
def version() -> None:
    """Display version information."""
    console.print("[bold]Raiinmaker Verification[/bold]")
    console.print("Version: 0.1.0")


if __name__ == "__main__":
    app()
