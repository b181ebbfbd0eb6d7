# src/blockmigrate/plugins/transforms/existence_filter.py
"""Drop candidate positions that already exist in the destination table.

DynamoDB rejects a BatchGetItem that repeats a key:

    ValidationException: Provided list of item keys contains duplicates

so each batch is deduplicated by (multihash, car_path) before the request.
"""

from collections.abc import Iterable, Iterator

from blockmigrate.contracts.records import CarPosition, PositionKey, key_of
from blockmigrate.core.logging import get_logger
from blockmigrate.plugins.clients.base import BATCH_READ_LIMIT, TableBackend

logger = get_logger(__name__)


def dedupe_by_key(records: Iterable[CarPosition]) -> list[CarPosition]:
    """Collapse records sharing a key.

    The last record for a key wins; output order is the order in which each
    key was first seen.
    """
    by_key: dict[PositionKey, CarPosition] = {}
    for record in records:
        by_key[record.key] = record
    return list(by_key.values())


def check_exists(backend: TableBackend, table: str, records: list[CarPosition]) -> Iterator[CarPosition]:
    """Yield the records of one batch that are not in `table` yet.

    One batch-get per call. Keys the backend reports as unprocessed are
    logged and NOT re-queried. They were not found, so their records are
    still emitted; writing them later is a harmless idempotent put.

    Args:
        backend: Table backend
        table: Destination table name
        records: At most BATCH_READ_LIMIT unique keys (duplicates allowed)

    Raises:
        ValueError: If the batch has more than BATCH_READ_LIMIT unique keys.
    """
    unique = dedupe_by_key(records)
    if not unique:
        return
    if len(unique) > BATCH_READ_LIMIT:
        raise ValueError(f"existence check accepts at most {BATCH_READ_LIMIT} keys, got {len(unique)}")

    result = backend.batch_get(table, [record.key_item() for record in unique])

    found = {key_of(item) for item in result.items}
    unprocessed = {key_of(key) for key in result.unprocessed_keys}

    for record in unique:
        if record.key not in found:
            yield record

    if unprocessed:
        logger.warning(
            "unprocessed_keys",
            table=table,
            count=len(unprocessed),
            keys=[list(key) for key in sorted(unprocessed)],
        )
