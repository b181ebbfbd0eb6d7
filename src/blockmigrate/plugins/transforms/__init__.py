"""Record transforms: flattening, CAR path upgrade and existence filtering."""

from blockmigrate.plugins.transforms.block_index import transform_item
from blockmigrate.plugins.transforms.car_path import maybe_upgrade_car_path, upgrade_block_index
from blockmigrate.plugins.transforms.existence_filter import check_exists, dedupe_by_key

__all__ = [
    "check_exists",
    "dedupe_by_key",
    "maybe_upgrade_car_path",
    "transform_item",
    "upgrade_block_index",
]
