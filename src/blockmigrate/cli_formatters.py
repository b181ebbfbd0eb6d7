# src/blockmigrate/cli_formatters.py
"""CLI event formatter factories for migration run output.

Each factory returns a dict mapping event types to handler callables,
suitable for subscribing to an EventBus. Console output is for people
watching a worker; JSON output is one object per line for log shipping.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import typer

from blockmigrate.contracts.events import (
    PhaseCompleted,
    PhaseError,
    PhaseStarted,
    ProgressEvent,
    RunSummary,
)
from blockmigrate.core.events import EventBusProtocol


def _format_duration(seconds: float) -> str:
    return f"{seconds:.2f}s" if seconds < 60 else f"{seconds / 60:.1f}m"


def create_console_formatters() -> dict[type, Callable[..., None]]:
    """Create console formatters for human-readable CLI output."""

    def _format_phase_started(event: PhaseStarted) -> None:
        target_info = f" → {event.target}" if event.target else ""
        typer.echo(f"[{event.phase.value.upper()}] {event.action.value.capitalize()}{target_info}...")

    def _format_phase_completed(event: PhaseCompleted) -> None:
        typer.echo(f"[{event.phase.value.upper()}] ✓ Completed in {_format_duration(event.duration_seconds)}")

    def _format_phase_error(event: PhaseError) -> None:
        target_info = f" ({event.target})" if event.target else ""
        typer.echo(f"[{event.phase.value.upper()}] ✗ Error{target_info}: {event.error_message}", err=True)

    def _format_progress(event: ProgressEvent) -> None:
        rate = event.records_read / event.elapsed_seconds if event.elapsed_seconds > 0 else 0
        typer.echo(
            f"  src: {event.records_read:,} dst: {event.records_accepted:,} | "
            f"{rate:.0f} records/sec"
            + (f" | ⚠{event.records_unprocessed:,} unprocessed" if event.records_unprocessed else "")
        )

    def _format_run_summary(event: RunSummary) -> None:
        status_symbols = {
            "completed": "✓",
            "partial": "⚠",
            "failed": "✗",
        }
        symbol = status_symbols[event.status.value]
        output_info = f" → {event.output_path}" if event.output_path else ""
        typer.echo(
            f"\n{symbol} {event.mode.value.capitalize()} {event.status.value.upper()} "
            f"[segment {event.segment}/{event.total_segments}]: "
            f"{event.records_read:,} read | "
            f"{event.records_accepted:,} accepted | "
            f"{event.records_unprocessed:,} unprocessed | "
            f"{_format_duration(event.duration_seconds)} total"
            f"{output_info}"
        )

    return {
        PhaseStarted: _format_phase_started,
        PhaseCompleted: _format_phase_completed,
        PhaseError: _format_phase_error,
        ProgressEvent: _format_progress,
        RunSummary: _format_run_summary,
    }


def create_json_formatters() -> dict[type, Callable[..., None]]:
    """Create JSON formatters for structured CLI output."""

    def _format_phase_started_json(event: PhaseStarted) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "phase_started",
                    "phase": event.phase.value,
                    "action": event.action.value,
                    "target": event.target,
                }
            )
        )

    def _format_phase_completed_json(event: PhaseCompleted) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "phase_completed",
                    "phase": event.phase.value,
                    "duration_seconds": event.duration_seconds,
                }
            )
        )

    def _format_phase_error_json(event: PhaseError) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "phase_error",
                    "phase": event.phase.value,
                    "error": event.error_message,
                    "error_type": type(event.error).__name__,
                    "target": event.target,
                }
            ),
            err=True,
        )

    def _format_progress_json(event: ProgressEvent) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "progress",
                    "mode": event.mode.value,
                    "records_read": event.records_read,
                    "records_accepted": event.records_accepted,
                    "records_unprocessed": event.records_unprocessed,
                    "elapsed_seconds": event.elapsed_seconds,
                }
            )
        )

    def _format_run_summary_json(event: RunSummary) -> None:
        typer.echo(
            json.dumps(
                {
                    "event": "run_completed",
                    "mode": event.mode.value,
                    "status": event.status.value,
                    "segment": event.segment,
                    "total_segments": event.total_segments,
                    "records_read": event.records_read,
                    "records_accepted": event.records_accepted,
                    "records_unprocessed": event.records_unprocessed,
                    "duration_seconds": event.duration_seconds,
                    "output_path": event.output_path,
                    "exit_code": event.exit_code,
                }
            )
        )

    return {
        PhaseStarted: _format_phase_started_json,
        PhaseCompleted: _format_phase_completed_json,
        PhaseError: _format_phase_error_json,
        ProgressEvent: _format_progress_json,
        RunSummary: _format_run_summary_json,
    }


def subscribe_formatters(
    event_bus: EventBusProtocol,
    formatters: dict[type, Callable[..., None]],
) -> None:
    """Subscribe all formatters to the event bus."""
    for event_type, handler in formatters.items():
        event_bus.subscribe(event_type, handler)
