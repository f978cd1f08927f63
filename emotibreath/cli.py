"""
Command-line interface tools for EmotiBreath.
"""

import asyncio
import json
from collections.abc import Coroutine
from datetime import datetime
from typing import Any

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse
from pydantic import ValidationError

from .catalog import default_catalog
from .config import get_settings
from .engine import BreathingEngine
from .errors import EmotiBreathError
from .log import configure_logging
from .models import Phase, SelectedEmotion, SessionSummary
from .store import SummaryStore

DEFAULT_BASE_URL = "http://localhost:8000"

PHASE_LABELS: dict[Phase, str] = {
    Phase.IDLE: "Get ready",
    Phase.INHALE: "Inhale",
    Phase.HOLD_IN: "Hold",
    Phase.EXHALE: "Exhale",
    Phase.HOLD_OUT: "Hold",
    Phase.COMPLETE: "Done",
}

app = typer.Typer(help="EmotiBreath CLI tools")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine events"),
) -> None:
    """Emotion check-ins and guided breathing from the terminal."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else "WARNING", json=settings.log_json)


# MARK: - Commands


@app.command()
def detect(
    selections: list[str] = typer.Argument(..., help="Emotions as id=intensity"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Detect the combined emotions formed by a set of selections."""
    engine = _build_engine()
    dyads = engine.detect(_parse_selections(selections))

    if json_output:
        print(json.dumps([dyad.model_dump(mode="json") for dyad in dyads], indent=2))
        return

    if not dyads:
        print("No combined emotions detected")
    for dyad in dyads:
        print(f"{dyad.label} ({dyad.strength}): {dyad.description}")


@app.command()
def recommend(
    selections: list[str] = typer.Argument(None, help="Emotions as id=intensity"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Recommend a breathing pattern for a check-in."""
    engine = _build_engine()
    recommendation = engine.check_in(_parse_selections(selections or []))

    if json_output:
        print(json.dumps(recommendation.model_dump(mode="json"), indent=2))
        return

    pattern = engine.catalog.pattern(recommendation.pattern_id)
    print(f"{pattern.name} [{pattern.id}]")
    print(recommendation.reason)
    if recommendation.guidance_topics:
        print(f"Guidance: {', '.join(recommendation.guidance_topics)}")
    for dyad in recommendation.dyads:
        print(f"  {dyad.label} ({dyad.strength})")


@app.command()
def patterns() -> None:
    """List the available breathing patterns."""
    for pattern in default_catalog().patterns:
        timing = "/".join(
            str(ms // 1000 if ms % 1000 == 0 else ms / 1000)
            for ms in (
                pattern.inhale_ms,
                pattern.hold_in_ms,
                pattern.exhale_ms,
                pattern.hold_out_ms,
            )
        )
        print(f"{pattern.id:<20} {timing:<12} x{pattern.cycles:<3} {pattern.name}")


@app.command()
def breathe(
    pattern_id: str = typer.Argument(..., help="Id of the pattern to breathe"),
) -> None:
    """Run a guided breathing session in the terminal (Ctrl+C to stop)."""
    settings = get_settings()
    summary_store = SummaryStore()
    engine = _build_engine(summary_store)

    def on_phase_change(phase: Phase, cycle_index: int) -> None:
        if phase == Phase.COMPLETE:
            return
        _print_phase(engine, phase, cycle_index)

    async def _breathe() -> None:
        engine.start(pattern_id, on_phase_change=on_phase_change)
        progress = engine.progress()
        _print_phase(engine, progress.phase, progress.cycle_index)

        while engine.session is not None:
            await asyncio.sleep(settings.tick_interval_ms / 1000)
            engine.tick()

    try:
        asyncio.run(_breathe())
    except KeyboardInterrupt:
        if engine.session is not None:
            engine.cancel()
    except EmotiBreathError as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    for summary in summary_store.read():
        print(_format_summary(summary))


@app.command()
def stream(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the EmotiBreath service"
    ),
) -> None:
    """Stream finished session summaries from a running service."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/sessions/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/sessions/stream"
            ) as event_source:
                async for sse in event_source.aiter_sse():
                    _handle_sse_event(sse)

    _run_with_error_handling(_stream(), base_url)


# MARK: - Private Helpers


def _build_engine(summary_store: SummaryStore | None = None) -> BreathingEngine:
    settings = get_settings()
    return BreathingEngine(
        catalog=default_catalog(settings.default_pattern_id),
        sink=summary_store,
    )


def _parse_selections(raw: list[str]) -> list[SelectedEmotion]:
    """Parse ``id=intensity`` arguments into selections."""
    selections: list[SelectedEmotion] = []
    for item in raw:
        emotion_id, sep, intensity = item.partition("=")
        if not sep or not emotion_id:
            raise typer.BadParameter(f"Expected id=intensity, got '{item}'")
        try:
            selections.append(
                SelectedEmotion(emotion_id=emotion_id.strip(), intensity=intensity)
            )
        except ValidationError as e:
            raise typer.BadParameter(
                f"Invalid intensity for '{emotion_id}': {e.errors()[0]['msg']}"
            )
    return selections


def _print_phase(engine: BreathingEngine, phase: Phase, cycle_index: int) -> None:
    pattern = engine.session.pattern
    seconds = pattern.duration_of(phase) / 1000
    print(
        f"Cycle {cycle_index + 1}/{pattern.cycles}  "
        f"{PHASE_LABELS[phase]:<7} {seconds:g}s"
    )


def _format_summary(summary: SessionSummary) -> str:
    """Format a session summary as a single line."""
    dt = datetime.fromtimestamp(summary.completed_at.timestamp())
    timestamp = dt.strftime("%H:%M:%S")
    return (
        f"{timestamp} > {summary.pattern_name}: {summary.status.value}, "
        f"{summary.cycles_completed} cycles in {summary.duration_ms / 1000:.0f}s"
    )


def _handle_sse_event(sse: ServerSentEvent) -> None:
    """Handle a single SSE event."""
    try:
        # Handle error events from server
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return

        summary = SessionSummary.model_validate_json(sse.data)
        print(_format_summary(summary))

    except ValidationError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
