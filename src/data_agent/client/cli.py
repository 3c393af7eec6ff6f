"""Command-line client for the Data Agent service."""

import asyncio
import signal
from pathlib import Path

import httpx
import typer
from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from data_agent.client.blocks import (
    ChainOfThoughtBlock,
    ChartBlock,
    DocumentBlock,
    IntermediateBlock,
    MapBlock,
    NoticeBlock,
    SuggestionsBlock,
    TextBlock,
)
from data_agent.client.consumer import ServiceRequestError, StreamConsumer
from data_agent.client.reducer import StreamState
from data_agent.client.session import ChatSession, SharedContext
from data_agent.config import settings
from data_agent.orchestrator.cancellation import CancellationToken

console = Console()
app = typer.Typer(help="Data Agent: ask questions about your data")
session_app = typer.Typer(help="Manage the local chat session")
app.add_typer(session_app, name="session")


def _session_file_path() -> Path:
    """Resolve the session file in the project config dir or the XDG config dir."""
    project_config_dir = Path.cwd() / "config"
    if project_config_dir.is_dir():
        return project_config_dir / "current_session.json"
    return Path.home() / ".config" / "data_agent" / "current_session.json"


def _load_session(path: Path, new: bool) -> ChatSession:
    if new or not path.exists():
        return ChatSession()
    try:
        return ChatSession.load(path)
    except ValueError:
        console.print(f"[yellow]Ignoring unreadable session file {path}[/yellow]")
        return ChatSession()


def _request_error_message(error: Exception) -> str:
    """Convert client errors to user-friendly CLI output."""
    if isinstance(error, ServiceRequestError):
        return f"Service request failed ({error.status_code}): {error.message}"
    if isinstance(error, httpx.HTTPStatusError):
        return f"Service request failed ({error.response.status_code}): {error.response.text[:300]}"
    if isinstance(error, httpx.RequestError):
        return (
            f"Cannot reach Data Agent service at {settings.service_url}. "
            "Set AGENT_SERVICE_URL and ensure the service is running."
        )
    return str(error)


# ============================================================================
# Rendering
# ============================================================================


def render_blocks(state: StreamState) -> RenderableType:
    """Build a rich renderable for one message."""
    parts: list[RenderableType] = []
    for block in state.blocks:
        if isinstance(block, ChainOfThoughtBlock):
            inner: list[RenderableType] = []
            for segment in block.segments:
                if segment.type == "sql":
                    inner.append(Syntax(segment.content, "sql", word_wrap=True))
                else:
                    inner.append(Markdown(segment.content))
            title = "Working..." if block.active else "Chain of thought"
            parts.append(Panel(Group(*inner), title=title, border_style="dim"))
        elif isinstance(block, TextBlock):
            parts.append(Markdown(block.text))
        elif isinstance(block, IntermediateBlock):
            parts.append(Panel(Markdown(block.content), title=block.source, border_style="blue"))
        elif isinstance(block, (ChartBlock, MapBlock)):
            parts.append(_visual_table(block))
        elif isinstance(block, DocumentBlock):
            status = "complete" if block.is_complete else "streaming"
            share = f" | {settings.service_url}/share/{block.saved_id}" if block.saved_id else ""
            parts.append(
                Panel(
                    f"{len(block.content):,} characters ({status}){share}",
                    title="Report",
                    border_style="green",
                )
            )
        elif isinstance(block, SuggestionsBlock):
            parts.append(Markdown("\n".join(f"- {item}" for item in block.items)))
        elif isinstance(block, NoticeBlock):
            color = "red" if block.level == "error" else "yellow"
            parts.append(f"[{color}]{block.message}[/{color}]")

    if state.active_tools:
        parts.append(f"[dim]Running: {', '.join(state.active_tools)}[/dim]")
    return Group(*parts)


def _visual_table(block: ChartBlock | MapBlock) -> Table:
    spec = block.spec
    kind = "Map" if isinstance(block, MapBlock) else f"{spec.get('type', 'chart')} chart"
    table = Table(title=f"{spec.get('title', '')} ({kind})", show_lines=False)
    rows = spec.get("data") or []
    if isinstance(block, MapBlock):
        table.add_column("Location")
        table.add_column(str(spec.get("valueLabel") or "Value"), justify="right")
        for point in rows[:20]:
            table.add_row(str(point.get("label", "")), str(point.get("value", "")))
    else:
        x_key, y_key = spec.get("xKey", "x"), spec.get("yKey", "y")
        table.add_column(str(x_key))
        table.add_column(str(y_key), justify="right")
        for row in rows[:20]:
            table.add_row(str(row.get(x_key, "")), str(row.get(y_key, "")))
    return table


def _render_all(states: dict[str | None, StreamState]) -> RenderableType:
    if list(states) == [None]:
        return render_blocks(states[None])
    return Group(
        *(
            Panel(render_blocks(state), title=str(column))
            for column, state in states.items()
            if column is not None
        )
    )


# ============================================================================
# Commands
# ============================================================================


async def _ask(session: ChatSession, question: str) -> dict[str | None, StreamState]:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted")
    except NotImplementedError:
        pass

    with Live(console=console, refresh_per_second=8) as live:
        consumer = StreamConsumer(
            on_update=lambda column, state: live.update(_render_all(consumer.states))
        )
        try:
            return await consumer.send(session.build_request(question), token)
        finally:
            live.update(_render_all(consumer.states) if consumer.states else "")
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:
                pass


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model, pipeline or fan-out id"),
    new: bool = typer.Option(False, "--new", help="Start a new session first"),
    mobile: bool = typer.Option(False, "--mobile", help="Ask for single-column reports"),
    no_metadata: bool = typer.Option(
        False, "--no-metadata", help="Do not inject data-source metadata"
    ),
    shared_question: str | None = typer.Option(
        None, "--shared-question", help="Original question of a shared report to follow up on"
    ),
    shared_sql: str | None = typer.Option(
        None, "--shared-sql", help="Queries used by the shared report"
    ),
) -> None:
    """Ask a question and stream the answer."""
    path = _session_file_path()
    session = _load_session(path, new)
    if model is not None:
        session.model = model
    session.is_mobile = mobile
    session.include_metadata = not no_metadata
    if shared_question:
        session.shared_context = SharedContext(
            original_question=shared_question, sql_queries=shared_sql or ""
        )

    prepared = session.prepare_question(question)
    try:
        states = asyncio.run(_ask(session, prepared))
    except Exception as error:  # noqa: BLE001
        console.print(f"[red]{_request_error_message(error)}[/red]")
        raise typer.Exit(1) from None

    session.record(prepared, states)
    session.save(path)
    failed = any(state.error for state in states.values())
    raise typer.Exit(1 if failed else 0)


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Bind address"),
    port: int | None = typer.Option(None, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
) -> None:
    """Run the HTTP service."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run(
        "data_agent.service.app:app",
        host=host or settings.service_host,
        port=port or settings.service_port,
        reload=reload,
    )


@app.command()
def share(content_id: str = typer.Argument(..., help="Saved report id")) -> None:
    """Show metadata of a saved report."""
    try:
        with httpx.Client(timeout=30.0) as client:
            response = client.get(f"{settings.service_url}/share/{content_id}/info")
            response.raise_for_status()
            info = response.json()
    except Exception as error:  # noqa: BLE001
        console.print(f"[red]{_request_error_message(error)}[/red]")
        raise typer.Exit(1) from None

    table = Table(show_header=False)
    for key, value in info.items():
        table.add_row(key, str(value))
    table.add_row("url", f"{settings.service_url}/share/{content_id}")
    console.print(table)


@app.command()
def datasets() -> None:
    """List the datasets the service can answer questions about."""
    try:
        with httpx.Client(timeout=30.0) as client:
            response = client.get(f"{settings.service_url}/datasets")
            response.raise_for_status()
            entries = response.json()
    except Exception as error:  # noqa: BLE001
        console.print(f"[red]{_request_error_message(error)}[/red]")
        raise typer.Exit(1) from None

    if not entries:
        console.print("No datasets configured")
        return
    table = Table("dataset", "description", "try asking")
    for entry in entries:
        table.add_row(
            f"{entry['name']} ({entry['url_path']})",
            entry.get("description") or "",
            "\n".join(entry.get("example_prompts", [])),
        )
    console.print(table)


@session_app.callback(invoke_without_command=True)
def session_show(ctx: typer.Context) -> None:
    """Print a summary of the current session."""
    if ctx.invoked_subcommand is not None:
        return
    path = _session_file_path()
    if not path.exists():
        console.print("No session")
        return
    session = _load_session(path, new=False)
    console.print(f"model: {session.model or 'default'}")
    console.print(f"messages: {len(session.history)}")
    for column, messages in session.columns.items():
        console.print(f"  {column}: {len(messages)} messages")
    for query in session.sql_queries():
        console.print(Syntax(query, "sql", word_wrap=True))


@session_app.command("clear")
def session_clear() -> None:
    """Delete the current session."""
    path = _session_file_path()
    path.unlink(missing_ok=True)
    console.print("Session cleared")


if __name__ == "__main__":
    app()
