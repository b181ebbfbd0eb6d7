# tests/plugins/clients/test_dynamodb.py
"""Tests for the DynamoDB backend, against a stubbed boto3 client."""

from collections.abc import Iterator
from decimal import Decimal

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import ANY, Stubber

from blockmigrate.core.config import MigrateSettings
from blockmigrate.plugins.clients.base import TableBackend
from blockmigrate.plugins.clients.dynamodb import DynamoDBBackend, create_dynamodb_backend

TABLE = "blocks-cars-positions"


@pytest.fixture
def client():  # type: ignore[no-untyped-def]
    return boto3.client(
        "dynamodb",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(client) -> Iterator[Stubber]:  # type: ignore[no-untyped-def]
    with Stubber(client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def dynamodb(client) -> DynamoDBBackend:  # type: ignore[no-untyped-def]
    return DynamoDBBackend(client)


def _wire_position(multihash: str, car: str, offset: int, length: int) -> dict:
    return {
        "blockmultihash": {"S": multihash},
        "carpath": {"S": car},
        "offset": {"N": str(offset)},
        "length": {"N": str(length)},
    }


class TestDynamoDBBackend:
    def test_satisfies_protocol(self, dynamodb: DynamoDBBackend) -> None:
        assert isinstance(dynamodb, TableBackend)

    def test_scan_page_first_page(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_response(
            "scan",
            {
                "Items": [
                    {
                        "multihash": {"S": "bafy1"},
                        "cars": {"L": [{"M": {"offset": {"N": "0"}, "length": {"N": "10"}, "car": {"S": "a.car"}}}]},
                    }
                ],
                "LastEvaluatedKey": {"multihash": {"S": "bafy1"}},
            },
            {"TableName": "blocks", "Segment": 2, "TotalSegments": 10},
        )

        page = dynamodb.scan_page("blocks", 2, 10, None)

        assert page.items == [
            {"multihash": "bafy1", "cars": [{"offset": Decimal("0"), "length": Decimal("10"), "car": "a.car"}]}
        ]
        assert page.cursor == {"multihash": {"S": "bafy1"}}

    def test_scan_page_passes_cursor(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        cursor = {"multihash": {"S": "bafy1"}}
        stubber.add_response(
            "scan",
            {"Items": []},
            {"TableName": "blocks", "Segment": 0, "TotalSegments": 1, "ExclusiveStartKey": cursor},
        )

        page = dynamodb.scan_page("blocks", 0, 1, cursor)

        assert page.items == []
        assert page.cursor is None

    def test_batch_get_marshals_keys(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_response(
            "batch_get_item",
            {
                "Responses": {TABLE: [_wire_position("z1", "a.car", 0, 10)]},
                "UnprocessedKeys": {
                    TABLE: {"Keys": [{"blockmultihash": {"S": "z2"}, "carpath": {"S": "b.car"}}]},
                },
            },
            {
                "RequestItems": {
                    TABLE: {
                        "Keys": [
                            {"blockmultihash": {"S": "z1"}, "carpath": {"S": "a.car"}},
                            {"blockmultihash": {"S": "z2"}, "carpath": {"S": "b.car"}},
                        ]
                    }
                }
            },
        )

        result = dynamodb.batch_get(
            TABLE,
            [{"blockmultihash": "z1", "carpath": "a.car"}, {"blockmultihash": "z2", "carpath": "b.car"}],
        )

        assert result.items == [{"blockmultihash": "z1", "carpath": "a.car", "offset": 0, "length": 10}]
        assert result.unprocessed_keys == [{"blockmultihash": "z2", "carpath": "b.car"}]

    def test_batch_get_empty_makes_no_request(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        assert dynamodb.batch_get(TABLE, []).items == []

    def test_batch_get_over_limit(self, dynamodb: DynamoDBBackend) -> None:
        keys = [{"blockmultihash": f"z{i}", "carpath": "a.car"} for i in range(101)]

        with pytest.raises(ValueError, match="at most 100"):
            dynamodb.batch_get(TABLE, keys)

    def test_batch_put_returns_unprocessed_items(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_response(
            "batch_write_item",
            {"UnprocessedItems": {TABLE: [{"PutRequest": {"Item": _wire_position("z2", "b.car", 5, 20)}}]}},
            {
                "RequestItems": {
                    TABLE: [
                        {"PutRequest": {"Item": _wire_position("z1", "a.car", 0, 10)}},
                        {"PutRequest": {"Item": _wire_position("z2", "b.car", 5, 20)}},
                    ]
                }
            },
        )

        unprocessed = dynamodb.batch_put(
            TABLE,
            [
                {"blockmultihash": "z1", "carpath": "a.car", "offset": 0, "length": 10},
                {"blockmultihash": "z2", "carpath": "b.car", "offset": 5, "length": 20},
            ],
        )

        assert unprocessed == [{"blockmultihash": "z2", "carpath": "b.car", "offset": 5, "length": 20}]

    def test_batch_put_all_processed(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_response("batch_write_item", {"UnprocessedItems": {}}, {"RequestItems": ANY})

        assert dynamodb.batch_put(TABLE, [{"blockmultihash": "z1", "carpath": "a.car", "offset": 0, "length": 1}]) == []

    def test_batch_put_over_limit(self, dynamodb: DynamoDBBackend) -> None:
        items = [{"blockmultihash": f"z{i}", "carpath": "a.car", "offset": 0, "length": 1} for i in range(26)]

        with pytest.raises(ValueError, match="at most 25"):
            dynamodb.batch_put(TABLE, items)

    def test_request_errors_propagate(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_client_error("batch_write_item", service_error_code="ProvisionedThroughputExceededException")

        with pytest.raises(ClientError):
            dynamodb.batch_put(TABLE, [{"blockmultihash": "z1", "carpath": "a.car", "offset": 0, "length": 1}])

    def test_create_table_when_missing(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_client_error("describe_table", service_error_code="ResourceNotFoundException")
        stubber.add_response("create_table", {})
        stubber.add_response("describe_table", {"Table": {"TableName": TABLE, "TableStatus": "ACTIVE"}})

        assert dynamodb.create_table(TABLE) is True

    def test_create_table_when_present(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_response("describe_table", {"Table": {"TableName": TABLE, "TableStatus": "ACTIVE"}})

        assert dynamodb.create_table(TABLE) is False

    def test_create_table_other_errors_propagate(self, dynamodb: DynamoDBBackend, stubber: Stubber) -> None:
        stubber.add_client_error("describe_table", service_error_code="AccessDeniedException")

        with pytest.raises(ClientError):
            dynamodb.create_table(TABLE)


class TestCreateDynamoDBBackend:
    def test_local_uses_local_endpoint_and_default_region(self) -> None:
        backend = create_dynamodb_backend(MigrateSettings(), local=True)

        assert backend._client.meta.endpoint_url == "http://localhost:8000"
        assert backend._client.meta.region_name == "us-east-1"

    def test_explicit_region_and_endpoint(self) -> None:
        settings = MigrateSettings(region="eu-west-1", endpoint_url="http://dynamo.internal:8000")

        backend = create_dynamodb_backend(settings)

        assert backend._client.meta.endpoint_url == "http://dynamo.internal:8000"
        assert backend._client.meta.region_name == "eu-west-1"
