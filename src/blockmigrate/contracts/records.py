# src/blockmigrate/contracts/records.py
"""Record contracts for the block index migration.

Source schema (`blocks` table), one row per block:

    {"multihash": "zQm...", "cars": [{"offset": 0, "length": 10, "car": "region/bucket/key.car"}]}

Destination schema (`blocks-cars-positions` table), one row per
(block, CAR) pair, keyed by (blockmultihash, carpath):

    {"blockmultihash": "zQm...", "carpath": "region/bucket/key.car", "offset": 0, "length": 10}

The destination wire shape is also the NDJSON line shape used for
candidate and recovery files.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from blockmigrate.contracts.errors import MalformedRecordError

# Composite primary key of the destination table: (blockmultihash, carpath)
PositionKey = tuple[str, str]

HASH_ATTRIBUTE = "blockmultihash"
LOCATOR_ATTRIBUTE = "carpath"


@dataclass(frozen=True, slots=True)
class CarLocation:
    """One place a block lives: a byte range inside a CAR file."""

    car_path: str
    offset: int
    length: int


@dataclass(frozen=True, slots=True)
class BlockIndex:
    """Source record: every CAR location known for one block multihash."""

    multihash: str
    cars: tuple[CarLocation, ...] = ()


class _CarPositionItem(BaseModel):
    """Validation model for destination items crossing a trust boundary.

    Accepts the wire names and the short aliases `hash` / `locator`.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    blockmultihash: str = Field(validation_alias=AliasChoices(HASH_ATTRIBUTE, "hash"))
    carpath: str = Field(validation_alias=AliasChoices(LOCATOR_ATTRIBUTE, "locator"))
    offset: int = Field(ge=0)
    length: int = Field(ge=0)


@dataclass(frozen=True, slots=True)
class CarPosition:
    """Destination record: one block at one position in one CAR.

    (multihash, car_path) is unique in the destination table. Several
    positions may share a multihash.
    """

    multihash: str
    car_path: str
    offset: int
    length: int

    @property
    def key(self) -> PositionKey:
        """Composite primary key in the destination table."""
        return (self.multihash, self.car_path)

    def key_item(self) -> dict[str, str]:
        """Primary key as a table key item."""
        return {HASH_ATTRIBUTE: self.multihash, LOCATOR_ATTRIBUTE: self.car_path}

    def to_item(self) -> dict[str, Any]:
        """Serialize to the destination wire shape."""
        return {
            HASH_ATTRIBUTE: self.multihash,
            LOCATOR_ATTRIBUTE: self.car_path,
            "offset": self.offset,
            "length": self.length,
        }

    @classmethod
    def from_item(cls, item: Mapping[str, Any], *, location: str | None = None) -> "CarPosition":
        """Decode a destination item (table item or NDJSON object).

        Args:
            item: Mapping with wire names (or `hash` / `locator` aliases)
            location: Optional position used in error messages

        Raises:
            MalformedRecordError: If fields are missing or have the wrong type.
        """
        if not isinstance(item, Mapping):
            raise MalformedRecordError(
                f"expected an object, got {type(item).__name__}",
                record=item,
                location=location,
            )
        try:
            validated = _CarPositionItem.model_validate(dict(item))
        except ValidationError as e:
            raise MalformedRecordError(str(e), record=item, location=location) from e
        return cls(
            multihash=validated.blockmultihash,
            car_path=validated.carpath,
            offset=validated.offset,
            length=validated.length,
        )


def key_of(item: Mapping[str, Any]) -> PositionKey:
    """Extract the composite key from a raw destination key or item."""
    return (item[HASH_ATTRIBUTE], item[LOCATOR_ATTRIBUTE])
