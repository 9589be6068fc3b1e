"""CLI entry point.

Inspects and maintains the store configured through MEMORY_* environment
variables (see chatmem.settings).
"""

import json
from contextlib import contextmanager
from typing import Iterator

import typer
from rich.console import Console
from rich.table import Table

from chatmem.factory import create_memory_manager_from_env
from chatmem.memory.adapter import format_transcript
from chatmem.memory.errors import ChatMemoryError
from chatmem.memory.manager import MemoryManager
from chatmem.memory.utils import format_timestamp

app = typer.Typer(name="chatmem", help="Conversation memory store CLI")
console = Console()


@contextmanager
def _open_manager() -> Iterator[MemoryManager]:
    """Open the configured store; memory errors inside the block exit with code 1."""
    try:
        manager = create_memory_manager_from_env()
        manager.initialize()
        yield manager
    except ChatMemoryError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


@app.command()
def stats() -> None:
    """Show totals across all sessions and messages."""
    with _open_manager() as manager:
        result = manager.get_stats()

    table = Table(title="Memory Stats", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Sessions", str(result.total_sessions))
    table.add_row("Messages", str(result.total_messages))
    table.add_row("Avg messages/session", f"{result.average_messages_per_session:.2f}")
    table.add_row("Oldest message", format_timestamp(result.oldest_message) if result.oldest_message else "-")
    table.add_row("Newest message", format_timestamp(result.newest_message) if result.newest_message else "-")
    console.print(table)


@app.command()
def sessions() -> None:
    """List sessions, most recently updated first."""
    with _open_manager() as manager:
        items = manager.get_sessions()
    if not items:
        console.print("[dim]No sessions[/dim]")
        return

    table = Table(title=f"Sessions ({len(items)})")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Messages", justify="right")
    table.add_column("Updated")
    for session in items:
        table.add_row(
            session.id,
            session.title or "",
            str(session.message_count),
            format_timestamp(session.updated_at),
        )
    console.print(table)


@app.command()
def history(
    session_id: str = typer.Argument(..., help="Session ID"),
    limit: int = typer.Option(None, help="Max messages to show"),
    output_json: bool = typer.Option(False, "--json", help="Output raw JSON"),
) -> None:
    """Print a session's messages, oldest first."""
    with _open_manager() as manager:
        messages = manager.get_session_history(session_id, limit=limit)

    if output_json:
        typer.echo(json.dumps([m.to_wire() for m in messages], indent=2))
        return
    if not messages:
        console.print(f"[dim]No messages in session {session_id}[/dim]")
        return
    console.print(format_transcript(messages), markup=False)


@app.command("delete-session")
def delete_session(session_id: str = typer.Argument(..., help="Session ID")) -> None:
    """Delete a session and all of its messages."""
    with _open_manager() as manager:
        manager.delete_session(session_id)
    console.print(f"[green]Deleted session {session_id}[/green]")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", help="Confirm deleting everything"),
) -> None:
    """Delete every session and message."""
    if not yes:
        console.print("[yellow]Refusing to clear without --yes[/yellow]")
        raise typer.Exit(code=1)
    with _open_manager() as manager:
        manager.clear()
    console.print("[green]Memory cleared[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from chatmem import __version__

    typer.echo(f"chatmem v{__version__}")


if __name__ == "__main__":
    app()
