"""agentwire CLI: Typer + Rich terminal interface.

Commands: chat, transcribe, config.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from agentwire import __version__
from agentwire.audio.decoder import load_audio_file, make_file_info
from agentwire.cli_display import (
    TranscriptionDisplay,
    TurnDisplay,
    render_transcript,
    render_turn_result,
)
from agentwire.errors import AudioDecodeError, TranscriptionError
from agentwire.keys import (
    CREDENTIALS,
    KEYS_FILE,
    clear_keys,
    get_configured_keys,
    load_keys_env,
    save_keys,
)
from agentwire.schemas.audio import AudioFileInfo
from agentwire.schemas.config import ClientConfig
from agentwire.schemas.streaming import ClientTranscriptionRequest
from agentwire.schemas.transcription import TranscriptResult
from agentwire.settings import DEFAULTS_FILE, load_client_config
from agentwire.stream.client import AgentChatClient
from agentwire.stream.session import ChatSession
from agentwire.transcription.client import TranscriptionClient
from agentwire.transcription.orchestrator import TranscriptionOrchestrator

# Load credentials from ~/.agentwire/keys.env and .env on startup
load_keys_env()

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="agentwire",
    help="Streaming agent chat and chunked audio transcription.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show and edit client configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"agentwire {__version__}")
        raise typer.Exit()


# ── App Callback ────────────────────────────────────────────────


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging.",
    ),
) -> None:
    """Streaming agent chat and chunked audio transcription."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ── Helpers ──────────────────────────────────────────────────────

def _load_config(user: str | None = None) -> ClientConfig:
    """Load the client config, exit on error."""
    try:
        config = load_client_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None
    if user:
        config = config.model_copy(
            update={"agent": config.agent.model_copy(update={"user_id": user})},
        )
    return config


def _error_panel(title: str, message: str) -> None:
    console.print(Panel(
        f"[red]{escape(message)}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))


def _filename_from_url(url: str, fallback: str) -> str:
    name = PurePosixPath(urlparse(url).path).name
    return name or fallback


async def _run_transcription(
    orchestrator: TranscriptionOrchestrator,
    file_info: AudioFileInfo,
    language: str | None,
) -> TranscriptResult:
    result: TranscriptResult | None = None
    with TranscriptionDisplay(console) as display:
        async for event in orchestrator.iter_progress(file_info, language):
            display.update(event)
            if event.result is not None:
                result = event.result
    if result is None:
        raise TranscriptionError("Transcription finished without a result")
    return result


async def _transcribe_request(
    config: ClientConfig,
    request: ClientTranscriptionRequest,
) -> TranscriptResult:
    async with TranscriptionClient(config) as client:
        data = await client.fetch_audio(request.audio_url)
        name = _filename_from_url(request.audio_url, request.recording_id or "recording")
        orchestrator = TranscriptionOrchestrator(client, config.transcription.chunk_seconds)
        return await _run_transcription(orchestrator, make_file_info(data, name), request.language)


# ── agentwire chat ───────────────────────────────────────────────

@app.command()
def chat(
    message: str = typer.Argument(..., help="Message to send to the agent"),
    graph: str = typer.Option(None, "--graph", "-g", help="Knowledge graph id for context"),
    user: str = typer.Option(None, "--user", "-u", help="Caller id (overrides config)"),
    timeout: float = typer.Option(None, "--timeout", "-t", help="Turn timeout in seconds"),
    transcribe: bool = typer.Option(
        False, "--transcribe",
        help="Run transcription requests raised by the agent on this machine",
    ),
    log_file: Path = typer.Option(
        None, "--log",
        help="Write the plain-text chat log to this file",
    ),
) -> None:
    """Send one message and stream the agent's reply."""
    if not message.strip():
        _error_panel("Invalid message", "Cannot send an empty message")
        raise typer.Exit(1)
    config = _load_config(user)

    async def _run() -> tuple[ChatSession, bool]:
        async with AgentChatClient(config) as client:
            session = ChatSession(client, graph_id=graph)
            with TurnDisplay(console) as display:
                result = await session.send(message, on_state=display.update, timeout=timeout)
            render_turn_result(console, result)

            failed = bool(result.error)
            if transcribe:
                for request in session.pending_transcriptions():
                    console.print(f"[cyan]Transcribing[/cyan] {request.audio_url}")
                    try:
                        transcript = await _transcribe_request(config, request)
                    except (AudioDecodeError, TranscriptionError) as e:
                        _error_panel("Transcription failed", str(e))
                        failed = True
                        continue
                    render_transcript(console, transcript)
                    session.add_transcript(transcript.text, request.graph_title)
            return session, failed

    session, failed = asyncio.run(_run())

    if log_file:
        log_file.write_text(session.build_log(config.agent.user_id), encoding="utf-8")
        console.print(f"[dim]Chat log written to {log_file}[/dim]")

    if failed:
        raise typer.Exit(1)


# ── agentwire transcribe ─────────────────────────────────────────

@app.command()
def transcribe(
    file: Path = typer.Argument(..., help="Audio file to transcribe"),
    language: str = typer.Option(None, "--language", "-l", help="Language hint, e.g. 'en'"),
    chunk_seconds: float = typer.Option(
        None, "--chunk-seconds", "-c",
        help="Maximum chunk duration in seconds (overrides config)",
    ),
    output: Path = typer.Option(None, "--output", "-o", help="Write the transcript to this file"),
) -> None:
    """Transcribe an audio file, chunking long recordings."""
    config = _load_config()
    seconds = chunk_seconds if chunk_seconds is not None else config.transcription.chunk_seconds
    if seconds <= 0:
        console.print("[red]--chunk-seconds must be positive[/red]")
        raise typer.Exit(1)

    try:
        file_info = load_audio_file(file)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    async def _run() -> TranscriptResult:
        async with TranscriptionClient(config) as client:
            orchestrator = TranscriptionOrchestrator(client, seconds)
            return await _run_transcription(orchestrator, file_info, language)

    try:
        result = asyncio.run(_run())
    except AudioDecodeError as e:
        _error_panel("Could not decode audio", str(e))
        raise typer.Exit(1) from None
    except TranscriptionError as e:
        _error_panel("Transcription failed", str(e))
        raise typer.Exit(1) from None

    render_transcript(console, result)

    if output:
        output.write_text(result.text + "\n", encoding="utf-8")
        console.print(f"[dim]Transcript written to {output}[/dim]")

    if result.all_failed:
        _error_panel("Transcription failed", "No chunks were transcribed successfully")
        raise typer.Exit(1)


# ── agentwire config ─────────────────────────────────────────────

@config_app.command("show")
def config_show() -> None:
    """Show the effective client configuration."""
    config = _load_config()

    table = Table(title="Client Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Agent URL", config.agent.base_url)
    table.add_row("Chat Endpoint", config.agent.chat_url)
    table.add_row("User", config.agent.user_id or "[dim](not set)[/dim]")
    table.add_row("Chat Timeout", f"{config.agent.timeout:.0f}s")
    table.add_row("Transcription Endpoint", config.transcription_url)
    table.add_row("Speech Model", config.transcription.model)
    table.add_row("API Token", "set" if config.transcription.api_token else "[dim](not set)[/dim]")
    table.add_row("Chunk Length", f"{config.transcription.chunk_seconds:.0f}s")
    table.add_row("Request Timeout", f"{config.transcription.timeout:.0f}s")
    table.add_row("Max Attempts", str(config.transcription.max_attempts))
    table.add_row("Retry Backoff", f"{config.transcription.backoff}s")

    console.print(table)


@config_app.command("path")
def config_path() -> None:
    """Show configuration file locations."""
    files = [
        ("Defaults", DEFAULTS_FILE),
        ("Credentials", KEYS_FILE),
        ("Project .env", Path.cwd() / ".env"),
    ]

    table = Table(title="Configuration Paths", show_header=False)
    table.add_column("Config", style="bold")
    table.add_column("Path")
    table.add_column("Status")

    for name, path in files:
        status = "[green]exists[/green]" if path.exists() else "[dim]missing[/dim]"
        table.add_row(name, str(path), status)

    console.print(table)


@config_app.command("set-user")
def config_set_user(
    user_id: str = typer.Argument(..., help="Caller id sent with every request"),
    token: str = typer.Option(None, "--token", help="Bearer token for the transcription service"),
) -> None:
    """Save the caller id (and optional token) to ~/.agentwire/keys.env."""
    keys = get_configured_keys()
    keys["AGENTWIRE_USER_ID"] = user_id
    if token:
        keys["AGENTWIRE_API_TOKEN"] = token
    path = save_keys(keys)
    saved = [env_var for env_var, _ in CREDENTIALS if keys.get(env_var)]
    console.print(f"[green]✓[/green] Saved {', '.join(saved)} to {path}")


@config_app.command("clear")
def config_clear() -> None:
    """Remove saved credentials."""
    if clear_keys():
        console.print(f"[green]✓[/green] Removed {KEYS_FILE}")
    else:
        console.print(f"[dim]No saved credentials at {KEYS_FILE}[/dim]")
