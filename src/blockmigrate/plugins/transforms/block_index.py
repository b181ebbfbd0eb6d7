# src/blockmigrate/plugins/transforms/block_index.py
"""Flatten a `blocks` record into `blocks-cars-positions` records."""

from collections.abc import Iterator

from blockmigrate.contracts.records import BlockIndex, CarPosition


def transform_item(record: BlockIndex) -> Iterator[CarPosition]:
    """Yield one CarPosition per CAR location, all sharing the record's multihash.

    Pure: no I/O. A record with no locations yields nothing.
    """
    for location in record.cars:
        yield CarPosition(
            multihash=record.multihash,
            car_path=location.car_path,
            offset=location.offset,
            length=location.length,
        )
