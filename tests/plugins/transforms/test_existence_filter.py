# tests/plugins/transforms/test_existence_filter.py
"""Tests for the destination existence filter."""

import logging

import pytest

from blockmigrate.contracts.records import CarPosition
from blockmigrate.plugins.transforms.existence_filter import check_exists, dedupe_by_key
from tests.conftest import DESTINATION_TABLE, make_position
from tests.fixtures import InMemoryBackend


class TestDedupeByKey:
    def test_last_record_wins_in_first_seen_order(self) -> None:
        first = make_position(1, offset=0)
        other = make_position(2)
        last = make_position(1, offset=99)

        assert dedupe_by_key([first, other, last]) == [last, other]

    def test_same_multihash_different_car_are_distinct(self) -> None:
        a = make_position(1, car="r/b/a.car")
        b = make_position(1, car="r/b/b.car")

        assert dedupe_by_key([a, b]) == [a, b]


class TestCheckExists:
    def test_empty_batch_makes_no_request(self, backend: InMemoryBackend) -> None:
        assert list(check_exists(backend, DESTINATION_TABLE, [])) == []
        assert backend.calls_to("batch_get") == []

    def test_everything_missing_is_emitted(self, backend: InMemoryBackend) -> None:
        records = [make_position(i) for i in range(3)]

        assert list(check_exists(backend, DESTINATION_TABLE, records)) == records
        assert backend.calls_to("batch_get") == [("batch_get", DESTINATION_TABLE, 3)]

    def test_existing_keys_are_dropped(self, backend: InMemoryBackend) -> None:
        records = [make_position(i) for i in range(4)]
        backend.batch_put(DESTINATION_TABLE, [records[1].to_item(), records[3].to_item()])

        assert list(check_exists(backend, DESTINATION_TABLE, records)) == [records[0], records[2]]

    def test_existing_key_with_different_offset_is_still_dropped(self, backend: InMemoryBackend) -> None:
        """Existence is by key only; values are not compared."""
        stored = make_position(1, offset=0)
        backend.batch_put(DESTINATION_TABLE, [stored.to_item()])

        assert list(check_exists(backend, DESTINATION_TABLE, [make_position(1, offset=500)])) == []

    def test_duplicate_keys_are_queried_once(self, backend: InMemoryBackend) -> None:
        first = make_position(1, offset=0)
        last = make_position(1, offset=7)

        emitted = list(check_exists(backend, DESTINATION_TABLE, [first, make_position(2), last]))

        assert emitted == [last, make_position(2)]
        assert backend.calls_to("batch_get") == [("batch_get", DESTINATION_TABLE, 2)]

    def test_accepts_more_than_limit_when_duplicates_collapse(self, backend: InMemoryBackend) -> None:
        records = [make_position(i % 50) for i in range(150)]

        assert len(list(check_exists(backend, DESTINATION_TABLE, records))) == 50

    def test_rejects_more_than_limit_unique_keys(self, backend: InMemoryBackend) -> None:
        records = [make_position(i) for i in range(101)]

        with pytest.raises(ValueError, match="at most 100"):
            list(check_exists(backend, DESTINATION_TABLE, records))
        assert backend.calls_to("batch_get") == []

    def test_unprocessed_keys_are_emitted_and_logged(
        self, backend: InMemoryBackend, caplog: pytest.LogCaptureFixture
    ) -> None:
        records = [make_position(i) for i in range(3)]
        backend.batch_put(DESTINATION_TABLE, [records[1].to_item()])
        backend.unprocessed_get_keys.add(records[1].key)

        with caplog.at_level(logging.WARNING):
            emitted = list(check_exists(backend, DESTINATION_TABLE, records))

        assert emitted == records
        assert len(backend.calls_to("batch_get")) == 1
        assert "unprocessed_keys" in caplog.text

    def test_backend_errors_propagate(self, backend: InMemoryBackend) -> None:
        backend.fail_next["batch_get"] = ConnectionError("network down")

        with pytest.raises(ConnectionError, match="network down"):
            list(check_exists(backend, DESTINATION_TABLE, [make_position(1)]))

    def test_found_items_with_decimal_numbers_match(self, backend: InMemoryBackend) -> None:
        """Backends return numbers as Decimal; matching is by key strings only."""
        record = CarPosition(multihash="z1", car_path="a.car", offset=10, length=20)
        backend.batch_put(DESTINATION_TABLE, [record.to_item()])

        assert list(check_exists(backend, DESTINATION_TABLE, [record])) == []
