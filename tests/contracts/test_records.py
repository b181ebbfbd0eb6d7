"""Tests for record contracts."""

from decimal import Decimal

import pytest

from blockmigrate.contracts.errors import MalformedRecordError
from blockmigrate.contracts.records import CarPosition, key_of


class TestCarPosition:
    """Tests for CarPosition wire conversion."""

    def test_key_is_multihash_and_car_path(self) -> None:
        position = CarPosition(multihash="z1", car_path="a/b.car", offset=0, length=10)

        assert position.key == ("z1", "a/b.car")
        assert position.key_item() == {"blockmultihash": "z1", "carpath": "a/b.car"}

    def test_to_item_uses_wire_names(self) -> None:
        position = CarPosition(multihash="z1", car_path="a/b.car", offset=5, length=10)

        assert position.to_item() == {"blockmultihash": "z1", "carpath": "a/b.car", "offset": 5, "length": 10}

    def test_from_item_round_trips_to_item(self) -> None:
        position = CarPosition(multihash="z1", car_path="a/b.car", offset=5, length=10)

        assert CarPosition.from_item(position.to_item()) == position

    def test_from_item_accepts_short_aliases(self) -> None:
        position = CarPosition.from_item({"hash": "z1", "locator": "a/b.car", "offset": 1, "length": 2})

        assert position == CarPosition(multihash="z1", car_path="a/b.car", offset=1, length=2)

    def test_from_item_accepts_backend_decimals(self) -> None:
        position = CarPosition.from_item(
            {"blockmultihash": "z1", "carpath": "a.car", "offset": Decimal("7"), "length": Decimal("9")}
        )

        assert position.offset == 7
        assert isinstance(position.offset, int)
        assert position.length == 9

    def test_from_item_ignores_extra_fields(self) -> None:
        position = CarPosition.from_item({"blockmultihash": "z1", "carpath": "a.car", "offset": 0, "length": 1, "ttl": 3})

        assert position.key == ("z1", "a.car")

    @pytest.mark.parametrize(
        "item",
        [
            {"carpath": "a.car", "offset": 0, "length": 1},
            {"blockmultihash": "z1", "offset": 0, "length": 1},
            {"blockmultihash": "z1", "carpath": "a.car", "length": 1},
            {"blockmultihash": "z1", "carpath": "a.car", "offset": -1, "length": 1},
            {"blockmultihash": "z1", "carpath": "a.car", "offset": 0, "length": 1.5},
            {"blockmultihash": 12, "carpath": "a.car", "offset": 0, "length": 1},
        ],
    )
    def test_from_item_rejects_malformed(self, item: dict) -> None:
        with pytest.raises(MalformedRecordError):
            CarPosition.from_item(item)

    def test_from_item_rejects_non_mapping(self) -> None:
        with pytest.raises(MalformedRecordError, match="expected an object"):
            CarPosition.from_item(["z1", "a.car", 0, 1])  # type: ignore[arg-type]

    def test_error_includes_location(self) -> None:
        with pytest.raises(MalformedRecordError, match=r"^candidates.ndjson:3: "):
            CarPosition.from_item({}, location="candidates.ndjson:3")

    def test_positions_are_immutable(self) -> None:
        position = CarPosition(multihash="z1", car_path="a.car", offset=0, length=1)

        with pytest.raises(AttributeError):
            position.offset = 2  # type: ignore[misc]


class TestKeyOf:
    def test_extracts_key_from_item(self) -> None:
        assert key_of({"blockmultihash": "z1", "carpath": "a.car", "offset": 0}) == ("z1", "a.car")
