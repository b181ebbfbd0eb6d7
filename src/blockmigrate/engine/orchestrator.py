# src/blockmigrate/engine/orchestrator.py
"""MigrationOrchestrator: wires the stages for one partition.

Scan mode (read-only, safe to re-run):

    scan -> [car path upgrade] -> flatten -> batch(100) -> existence filter -> candidate file

Write mode (mutating, idempotent per key):

    candidate records -> batch(25) -> batch put -> recovery file (unprocessed only)

Every stage is a generator pulling from the one before it, so at most one
batch per stage is in flight and a slow backend call holds back the scan.
Counters are per-run values reported through the event bus; they never
influence what gets written.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from blockmigrate.contracts.events import (
    MigrationMode,
    PhaseAction,
    PhaseCompleted,
    PhaseError,
    PhaseStarted,
    PipelinePhase,
    ProgressEvent,
    RunCompletionStatus,
    RunSummary,
)
from blockmigrate.core.batching import batch
from blockmigrate.core.events import EventBusProtocol, NullEventBus
from blockmigrate.core.logging import get_logger
from blockmigrate.core.partition import Partition
from blockmigrate.plugins.clients.base import BATCH_READ_LIMIT, BATCH_WRITE_LIMIT, TableBackend
from blockmigrate.plugins.sinks.table_writer import write_batch
from blockmigrate.plugins.sources.table_scan import scan_source_table
from blockmigrate.plugins.transforms.block_index import transform_item
from blockmigrate.plugins.transforms.car_path import upgrade_block_index
from blockmigrate.plugins.transforms.existence_filter import check_exists, dedupe_by_key

if TYPE_CHECKING:
    from blockmigrate.contracts.records import BlockIndex, CarPosition
    from blockmigrate.plugins.sinks.ndjson_sink import NDJSONSink

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class MigrationCounters:
    """Monotonic per-run counters. Observability only."""

    records_read: int = 0
    records_accepted: int = 0
    records_unprocessed: int = 0


@dataclass(frozen=True)
class MigrationSummary:
    """Result of one orchestrated run over one partition."""

    mode: MigrationMode
    segment: int
    total_segments: int
    records_read: int
    records_accepted: int
    records_unprocessed: int
    duration_seconds: float
    output_path: str | None = None

    @property
    def status(self) -> RunCompletionStatus:
        if self.records_unprocessed > 0:
            return RunCompletionStatus.PARTIAL
        return RunCompletionStatus.COMPLETED


class MigrationOrchestrator:
    """Runs scan or write mode for one (segment, total_segments) partition.

    Example:
        backend = create_dynamodb_backend(settings)
        orchestrator = MigrationOrchestrator(backend, event_bus=bus)
        with NDJSONSink(partition.path("migrate-block-index")) as sink:
            summary = orchestrator.run_scan("blocks", "blocks-cars-positions", 0, 10, sink)
    """

    def __init__(
        self,
        backend: TableBackend,
        *,
        event_bus: EventBusProtocol | None = None,
        progress_interval: int = 1000,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize orchestrator.

        Args:
            backend: Table backend for scans, existence checks and writes
            event_bus: Receives phase, progress and summary events
            progress_interval: Emit a ProgressEvent every N source records
            clock: Monotonic clock, injectable for tests
        """
        if progress_interval < 1:
            raise ValueError(f"progress_interval must be >= 1, got {progress_interval}")
        self._backend = backend
        self._events: EventBusProtocol = event_bus if event_bus is not None else NullEventBus()
        self._progress_interval = progress_interval
        self._clock = clock

    # === Modes ===

    def run_scan(
        self,
        source_table: str,
        destination_table: str,
        segment: int,
        total_segments: int,
        sink: NDJSONSink,
        *,
        upgrade_car_paths: bool = False,
    ) -> MigrationSummary:
        """Write the not-yet-migrated positions of one partition to `sink`.

        Nothing is written to the destination table. The sink is closed on
        return and on failure.

        Args:
            source_table: `blocks` table name
            destination_table: `blocks-cars-positions` table name
            segment: Zero-based partition index
            total_segments: Number of partitions
            sink: Candidate file sink
            upgrade_car_paths: Rewrite legacy CAR paths before flattening

        Raises:
            ConfigurationError: If the partition is invalid
            Exception: Any backend error, unchanged
        """
        partition = Partition(segment=segment, total_segments=total_segments)
        counters = MigrationCounters()
        started = self._clock()

        def execute() -> None:
            records: Iterable[BlockIndex] = self._counted(
                scan_source_table(self._backend, source_table, segment, total_segments),
                counters,
                MigrationMode.SCAN,
                started,
            )
            if upgrade_car_paths:
                records = map(upgrade_block_index, records)
            positions = (position for record in records for position in transform_item(record))
            for chunk in batch(positions, BATCH_READ_LIMIT):
                counters.records_accepted += sink.write(check_exists(self._backend, destination_table, chunk))

        return self._run(
            MigrationMode.SCAN,
            PipelinePhase.SCAN,
            f"{source_table} -> {destination_table}",
            partition,
            sink,
            counters,
            started,
            execute,
        )

    def run_write(
        self,
        records: Iterable[CarPosition],
        destination_table: str,
        segment: int,
        total_segments: int,
        sink: NDJSONSink,
    ) -> MigrationSummary:
        """Put candidate records into the destination table.

        Items the backend reports as unprocessed go to `sink` (the recovery
        file), which can be fed back into another write run.

        Args:
            records: Candidate records, usually an NDJSONSource
            destination_table: `blocks-cars-positions` table name
            segment: Partition the candidates came from
            total_segments: Number of partitions
            sink: Recovery file sink

        Raises:
            ConfigurationError: If the partition is invalid
            MalformedRecordError: If the candidate input is corrupt
            Exception: Any backend error, unchanged
        """
        partition = Partition(segment=segment, total_segments=total_segments)
        counters = MigrationCounters()
        started = self._clock()

        def execute() -> None:
            counted = self._counted(records, counters, MigrationMode.WRITE, started)
            for chunk in batch(counted, BATCH_WRITE_LIMIT):
                unprocessed = write_batch(self._backend, destination_table, chunk)
                counters.records_accepted += len(dedupe_by_key(chunk)) - len(unprocessed)
                counters.records_unprocessed += sink.write(unprocessed)

        return self._run(
            MigrationMode.WRITE,
            PipelinePhase.WRITE,
            destination_table,
            partition,
            sink,
            counters,
            started,
            execute,
        )

    # === Internals ===

    def _counted(
        self,
        items: Iterable[T],
        counters: MigrationCounters,
        mode: MigrationMode,
        started: float,
    ) -> Iterator[T]:
        """Pass items through, counting reads and emitting periodic progress."""
        for item in items:
            counters.records_read += 1
            if counters.records_read % self._progress_interval == 0:
                self._emit_progress(mode, counters, started)
            yield item

    def _emit_progress(self, mode: MigrationMode, counters: MigrationCounters, started: float) -> None:
        self._events.emit(
            ProgressEvent(
                mode=mode,
                records_read=counters.records_read,
                records_accepted=counters.records_accepted,
                records_unprocessed=counters.records_unprocessed,
                elapsed_seconds=self._clock() - started,
            )
        )

    def _run(
        self,
        mode: MigrationMode,
        phase: PipelinePhase,
        target: str,
        partition: Partition,
        sink: NDJSONSink,
        counters: MigrationCounters,
        started: float,
        execute: Callable[[], None],
    ) -> MigrationSummary:
        """Run `execute` with phase events, logging and sink lifecycle."""
        log = logger.bind(mode=mode.value, segment=partition.segment, total_segments=partition.total_segments)
        log.info("run_started", target=target, output=str(sink.path))
        self._events.emit(PhaseStarted(phase=phase, action=PhaseAction.PROCESSING, target=target))

        try:
            execute()
        except BaseException as e:
            # Lines already written stay on disk; a re-run overwrites them
            sink.close(touch=False)
            duration = self._clock() - started
            log.error(
                "run_failed",
                error=str(e),
                error_type=type(e).__name__,
                records_read=counters.records_read,
                records_accepted=counters.records_accepted,
            )
            self._events.emit(PhaseError(phase=phase, error=e, target=target))
            self._events.emit(
                RunSummary(
                    mode=mode,
                    status=RunCompletionStatus.FAILED,
                    segment=partition.segment,
                    total_segments=partition.total_segments,
                    records_read=counters.records_read,
                    records_accepted=counters.records_accepted,
                    records_unprocessed=counters.records_unprocessed,
                    duration_seconds=duration,
                    output_path=str(sink.path),
                    exit_code=1,
                )
            )
            raise

        sink.close()
        duration = self._clock() - started
        self._emit_progress(mode, counters, started)
        self._events.emit(PhaseCompleted(phase=phase, duration_seconds=duration))

        summary = MigrationSummary(
            mode=mode,
            segment=partition.segment,
            total_segments=partition.total_segments,
            records_read=counters.records_read,
            records_accepted=counters.records_accepted,
            records_unprocessed=counters.records_unprocessed,
            duration_seconds=duration,
            output_path=str(sink.path),
        )
        log.info(
            "run_completed",
            status=summary.status.value,
            records_read=summary.records_read,
            records_accepted=summary.records_accepted,
            records_unprocessed=summary.records_unprocessed,
            duration_seconds=round(duration, 3),
        )
        self._events.emit(
            RunSummary(
                mode=mode,
                status=summary.status,
                segment=summary.segment,
                total_segments=summary.total_segments,
                records_read=summary.records_read,
                records_accepted=summary.records_accepted,
                records_unprocessed=summary.records_unprocessed,
                duration_seconds=duration,
                output_path=summary.output_path,
                exit_code=0,
            )
        )
        return summary
