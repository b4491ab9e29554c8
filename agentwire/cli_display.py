"""Rich rendering for streamed turns and transcription progress.

TurnDisplay wraps a Rich Live region that is redrawn from each new
AssistantState; it keeps no turn state of its own. Transcription progress
is shown with a Rich progress bar fed by TranscriptionProgress events.
"""

from __future__ import annotations

import json
import threading

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

from agentwire.schemas.streaming import AssistantState, ToolCall, ToolCallStatus, TurnResult
from agentwire.schemas.transcription import (
    TranscriptionProgress,
    TranscriptionStage,
    TranscriptResult,
)

_STATUS_MARKUP: dict[ToolCallStatus, str] = {
    ToolCallStatus.RUNNING: "[bold cyan]◉ running[/bold cyan]",
    ToolCallStatus.SUCCESS: "[bold green]● done[/bold green]",
    ToolCallStatus.ERROR: "[bold red]✗ failed[/bold red]",
}

_DETAIL_LIMIT = 80


def _tool_detail(call: ToolCall) -> str:
    if call.is_running:
        return call.progress or ""
    if call.summary:
        return call.summary
    if call.status == ToolCallStatus.ERROR and call.result:
        error = call.result.get("error")
        if error:
            return error if isinstance(error, str) else json.dumps(error)
    return ""


def render_tool_calls(calls: tuple[ToolCall, ...]) -> Table:
    """Table of tool calls in insertion order."""
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Tool", style="bold")
    table.add_column("Status")
    table.add_column("Detail", style="dim", overflow="ellipsis")
    for call in calls:
        detail = _tool_detail(call)
        if len(detail) > _DETAIL_LIMIT:
            detail = detail[: _DETAIL_LIMIT - 1] + "…"
        table.add_row(escape(call.tool), _STATUS_MARKUP[call.status], escape(detail))
    return table


def render_state(state: AssistantState) -> RenderableType:
    """Render one AssistantState as a single Rich renderable."""
    parts: list[RenderableType] = []
    if state.thinking:
        parts.append(Text("Thinking…", style="cyan italic"))
    if state.tool_calls:
        parts.append(render_tool_calls(state.tool_calls))
    if state.text:
        parts.append(Markdown(state.text))
    if state.error:
        parts.append(Text(f"Error: {state.error}", style="bold red"))
    if not parts:
        parts.append(Text("Waiting for the agent…", style="dim"))
    return Group(*parts)


class TurnDisplay:
    """Live view of one streamed turn. Use as a context manager."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self._live: Live | None = None
        self._lock = threading.Lock()
        self._state = AssistantState()

    def __enter__(self) -> TurnDisplay:
        self._live = Live(
            render_state(self._state),
            console=self._console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        if self._live:
            self._live.__exit__(*args)
            self._live = None

    def update(self, state: AssistantState) -> None:
        """Redraw from ``state``; suitable as an ``on_state`` listener."""
        with self._lock:
            self._state = state
            if self._live:
                self._live.update(render_state(state))


def render_turn_result(console: Console, result: TurnResult) -> None:
    """Print the final view of a turn after the live region is gone."""
    body = render_state(result.state.model_copy(update={"thinking": False}))
    if result.error:
        style, title = "red", "[bold red]Turn failed[/bold red]"
    elif not result.completed:
        style, title = "yellow", "[bold yellow]Stream ended early[/bold yellow]"
    else:
        style, title = "green", "[bold]Assistant[/bold]"
    console.print(Panel(body, title=title, border_style=style))
    if result.state.unmatched:
        names = ", ".join(f"{u.type}:{u.tool}" for u in result.state.unmatched)
        console.print(f"[yellow]⚠ Unmatched tool events:[/yellow] {escape(names)}")


class TranscriptionDisplay:
    """Progress bar for one transcription run. Use as a context manager."""

    def __init__(self, console: Console) -> None:
        self._progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self._task_id = None
        self._console = console

    def __enter__(self) -> TranscriptionDisplay:
        self._progress.__enter__()
        self._task_id = self._progress.add_task("Starting", total=None)
        return self

    def __exit__(self, *args: object) -> None:
        self._progress.__exit__(*args)

    def update(self, event: TranscriptionProgress) -> None:
        description = {
            TranscriptionStage.DECODING: "Decoding",
            TranscriptionStage.CHUNKING: "Chunking",
            TranscriptionStage.TRANSCRIBING: "Transcribing",
            TranscriptionStage.DONE: "Done",
        }[event.stage]
        self._progress.update(
            self._task_id,
            description=description,
            completed=event.current,
            total=event.total or None,
        )
        segment = event.segment
        if segment is not None and not segment.ok:
            self._progress.console.print(
                f"[yellow]⚠[/yellow] {escape(segment.label)} failed: {escape(segment.error)}"
            )


def render_transcript(console: Console, result: TranscriptResult) -> None:
    if result.chunked:
        style = "red" if result.all_failed else ("yellow" if result.failed else "green")
        title = f"Transcript ({result.succeeded}/{len(result.segments)} chunks)"
    else:
        style, title = "green", "Transcript"
    body = Text(result.text) if result.text else Text("(empty)", style="dim")
    console.print(Panel(body, title=title, border_style=style))
