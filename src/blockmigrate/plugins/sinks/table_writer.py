# src/blockmigrate/plugins/sinks/table_writer.py
"""Batched put of CarPosition records into the destination table."""

from blockmigrate.contracts.records import CarPosition
from blockmigrate.core.logging import get_logger
from blockmigrate.plugins.clients.base import BATCH_WRITE_LIMIT, TableBackend
from blockmigrate.plugins.transforms.existence_filter import dedupe_by_key

logger = get_logger(__name__)


def write_batch(backend: TableBackend, table: str, records: list[CarPosition]) -> list[CarPosition]:
    """Put one batch and return the records the backend did not persist.

    Duplicate keys are collapsed first (last wins): a BatchWriteItem may
    not target the same key twice, and both puts would write the same row
    anyway. Puts overwrite, so writing a batch again leaves the table in
    the same state.

    Request-level errors propagate; nothing is retried here.

    Args:
        backend: Table backend
        table: Destination table name
        records: At most BATCH_WRITE_LIMIT unique keys (duplicates allowed)

    Returns:
        Unprocessed records, for the recovery file.

    Raises:
        ValueError: If the batch has more than BATCH_WRITE_LIMIT unique keys.
        MalformedRecordError: If the backend returns an undecodable item.
    """
    unique = dedupe_by_key(records)
    if not unique:
        return []
    if len(unique) > BATCH_WRITE_LIMIT:
        raise ValueError(f"write accepts at most {BATCH_WRITE_LIMIT} items, got {len(unique)}")

    unprocessed_items = backend.batch_put(table, [record.to_item() for record in unique])
    if not unprocessed_items:
        return []

    logger.warning("unprocessed_items", table=table, count=len(unprocessed_items), batch_size=len(unique))
    return [CarPosition.from_item(item, location=f"{table} unprocessed item") for item in unprocessed_items]
