# src/blockmigrate/contracts/events.py
"""Observability events for migration runs.

These domain events provide visibility into run phases, progress and
completion. They are emitted by the orchestrator and consumed by CLI
formatters for human-readable or structured output. Counters live in the
events themselves; nothing here is process-wide state.
"""

from dataclasses import dataclass
from enum import StrEnum


class MigrationMode(StrEnum):
    """The two independently runnable orchestration modes."""

    SCAN = "scan"
    WRITE = "write"


class PipelinePhase(StrEnum):
    """Run lifecycle phases for observability events."""

    CONFIG = "config"
    BACKEND = "backend"
    SCAN = "scan"
    WRITE = "write"


class PhaseAction(StrEnum):
    """Actions within a phase."""

    LOADING = "loading"
    CONNECTING = "connecting"
    PROCESSING = "processing"


class RunCompletionStatus(StrEnum):
    """Final status for RunSummary events."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PhaseStarted:
    """Emitted when a phase begins.

    Attributes:
        phase: The lifecycle phase starting
        action: What's happening (e.g., "connecting", "processing")
        target: Optional target (e.g., table name, file path)
    """

    phase: PipelinePhase
    action: PhaseAction
    target: str | None = None


@dataclass(frozen=True, slots=True)
class PhaseCompleted:
    """Emitted when a phase completes successfully."""

    phase: PipelinePhase
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class PhaseError:
    """Emitted when a phase fails.

    Stores the exception object so formatters can show type and message.
    """

    phase: PipelinePhase
    error: BaseException
    target: str | None = None

    @property
    def error_message(self) -> str:
        """Human-readable error message for formatting."""
        return str(self.error)


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress snapshot emitted every N source records and at the end.

    Attributes:
        mode: Which orchestration mode produced the event
        records_read: Records pulled from the source so far
        records_accepted: Records emitted to the candidate file (scan) or
            durably written to the destination table (write)
        records_unprocessed: Records the backend reported as unprocessed
        elapsed_seconds: Time elapsed since the run started
    """

    mode: MigrationMode
    records_read: int
    records_accepted: int
    records_unprocessed: int
    elapsed_seconds: float


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Summary emitted when a run finishes (success or failure).

    exit_code: 0 = completed or partial (unprocessed items went to the
    recovery file), 1 = failed.
    """

    mode: MigrationMode
    status: RunCompletionStatus
    segment: int
    total_segments: int
    records_read: int
    records_accepted: int
    records_unprocessed: int
    duration_seconds: float
    output_path: str | None
    exit_code: int


MigrationEvent = PhaseStarted | PhaseCompleted | PhaseError | ProgressEvent | RunSummary

MIGRATION_EVENT_TYPES: frozenset[type] = frozenset(
    {PhaseStarted, PhaseCompleted, PhaseError, ProgressEvent, RunSummary}
)
