# src/blockmigrate/plugins/clients/base.py
"""Backend table interface consumed by the migration pipeline.

The pipeline only ever talks to a table through these three calls. Items
and keys are plain Python dicts; attribute-value marshalling belongs to
the concrete backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

# https://docs.aws.amazon.com/amazondynamodb/latest/developerguide/WorkingWithItems.html#WorkingWithItems.BatchOperations
# Backend constants, not tuning knobs. Changing them means changing the
# batch sizes in the orchestrator and nothing else.
BATCH_READ_LIMIT = 100
BATCH_WRITE_LIMIT = 25

Item = dict[str, Any]
Cursor = dict[str, Any]


@dataclass(frozen=True, slots=True)
class ScanPage:
    """One page of a partitioned scan.

    `cursor` is None on the last page. A page may be empty and still carry
    a cursor.
    """

    items: list[Item]
    cursor: Cursor | None = None


@dataclass(frozen=True, slots=True)
class BatchGetResult:
    """Response of a batch-get: found items plus keys the backend skipped."""

    items: list[Item]
    unprocessed_keys: list[Item] = field(default_factory=list)


@runtime_checkable
class TableBackend(Protocol):
    """Generic scan/get/put access to a key-value table.

    Implementations raise on request-level failures and never retry
    unprocessed keys or items themselves.
    """

    def scan_page(
        self,
        table: str,
        segment: int,
        total_segments: int,
        cursor: Cursor | None,
    ) -> ScanPage:
        """Fetch one page of partition `segment` of `total_segments`.

        Args:
            table: Table name
            segment: Zero-based partition index
            total_segments: Number of disjoint partitions
            cursor: Continuation token from the previous page, None to start
        """
        ...

    def batch_get(self, table: str, keys: list[Item]) -> BatchGetResult:
        """Fetch up to BATCH_READ_LIMIT items by key. Keys must be unique."""
        ...

    def batch_put(self, table: str, items: list[Item]) -> list[Item]:
        """Put (overwrite) up to BATCH_WRITE_LIMIT items.

        Returns:
            Items the backend did not process.
        """
        ...
