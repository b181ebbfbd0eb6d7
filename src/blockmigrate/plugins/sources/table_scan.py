# src/blockmigrate/plugins/sources/table_scan.py
"""Paginated, partitioned scan of the source `blocks` table.

Each worker scans one (segment, total_segments) partition. Partitions are
disjoint and their union is the whole table, so N workers can run in
parallel with no coordination.

Source items are external data. A malformed item is logged and decoded to
a BlockIndex with no locations, so it contributes zero rows instead of
aborting a multi-hour scan.
"""

from collections.abc import Iterator, Mapping
from decimal import Decimal
from typing import Any

from blockmigrate.contracts.records import BlockIndex, CarLocation
from blockmigrate.core.logging import get_logger
from blockmigrate.core.partition import Partition
from blockmigrate.plugins.clients.base import Cursor, TableBackend

logger = get_logger(__name__)


def _as_non_negative_int(value: Any) -> int | None:
    """Coerce a backend number to int, or None if it is not a whole number >= 0."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        as_int = int(value)
        return as_int if as_int >= 0 else None
    return None


def _decode_location(entry: Any) -> CarLocation | None:
    if not isinstance(entry, Mapping):
        return None
    car = entry.get("car")
    offset = _as_non_negative_int(entry.get("offset"))
    length = _as_non_negative_int(entry.get("length"))
    if not isinstance(car, str) or offset is None or length is None:
        return None
    return CarLocation(car_path=car, offset=offset, length=length)


def decode_block_index(item: Mapping[str, Any]) -> BlockIndex:
    """Decode a `blocks` table item into a BlockIndex.

    Never raises on bad data:
    - missing/invalid `multihash` or `cars` -> BlockIndex with no locations
    - an invalid entry inside `cars` -> that entry is dropped

    Args:
        item: Unmarshalled table item

    Returns:
        BlockIndex (possibly with an empty `cars` tuple)
    """
    multihash = item.get("multihash")
    cars = item.get("cars")
    if not isinstance(multihash, str) or not isinstance(cars, list):
        logger.warning(
            "malformed_source_record",
            reason="missing or invalid multihash/cars",
            multihash=multihash if isinstance(multihash, str) else None,
            fields=sorted(item.keys()),
        )
        return BlockIndex(multihash=multihash if isinstance(multihash, str) else "", cars=())

    locations: list[CarLocation] = []
    for position, entry in enumerate(cars):
        location = _decode_location(entry)
        if location is None:
            logger.warning(
                "malformed_source_location",
                multihash=multihash,
                position=position,
            )
            continue
        locations.append(location)
    return BlockIndex(multihash=multihash, cars=tuple(locations))


def scan_source_table(
    backend: TableBackend,
    table: str,
    segment: int = 0,
    total_segments: int = 1,
) -> Iterator[BlockIndex]:
    """Lazily yield every record in one partition of `table`.

    Pages are fetched only as the consumer pulls. An empty page with a
    cursor is not the end of the scan. Backend errors propagate; there is
    no retry here.

    Args:
        backend: Table backend
        table: Source table name
        segment: Zero-based partition index
        total_segments: Number of partitions

    Raises:
        ConfigurationError: If the partition arguments are invalid. Raised
            on the first `next()`, before the first page is requested, since
            this is a generator.
    """
    Partition(segment=segment, total_segments=total_segments)

    cursor: Cursor | None = None
    pages = 0
    while True:
        page = backend.scan_page(table, segment, total_segments, cursor)
        pages += 1
        logger.debug("scan_page", table=table, segment=segment, page=pages, items=len(page.items))
        for item in page.items:
            yield decode_block_index(item)
        if page.cursor is None:
            return
        cursor = page.cursor
