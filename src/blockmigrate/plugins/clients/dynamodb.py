# src/blockmigrate/plugins/clients/dynamodb.py
"""DynamoDB implementation of TableBackend using boto3.

All attribute-value marshalling (`{"S": ...}`, `{"N": ...}`) happens here
via boto3's TypeSerializer / TypeDeserializer. Numbers come back as
Decimal; record decoding converts them to int.

Retries of throttled requests are left to botocore's own retry config.
Unprocessed keys and items are surfaced to the caller, never retried here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

from blockmigrate.contracts.records import HASH_ATTRIBUTE, LOCATOR_ATTRIBUTE
from blockmigrate.core.logging import get_logger
from blockmigrate.plugins.clients.base import (
    BATCH_READ_LIMIT,
    BATCH_WRITE_LIMIT,
    BatchGetResult,
    Cursor,
    Item,
    ScanPage,
)

if TYPE_CHECKING:
    from blockmigrate.core.config import MigrateSettings

logger = get_logger(__name__)

# DynamoDB Local accepts any credentials but boto3 refuses to sign without some
_LOCAL_CREDENTIALS = {"aws_access_key_id": "local", "aws_secret_access_key": "local"}
_LOCAL_DEFAULT_REGION = "us-east-1"


class DynamoDBBackend:
    """TableBackend over a boto3 DynamoDB low-level client."""

    def __init__(self, client: Any) -> None:
        """Initialize with a boto3 `dynamodb` client.

        Args:
            client: Result of boto3.client("dynamodb", ...) or a stubbed client
        """
        self._client = client
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    def _marshall(self, item: Item) -> dict[str, Any]:
        return {k: self._serializer.serialize(v) for k, v in item.items()}

    def _unmarshall(self, item: dict[str, Any]) -> Item:
        return {k: self._deserializer.deserialize(v) for k, v in item.items()}

    def scan_page(
        self,
        table: str,
        segment: int,
        total_segments: int,
        cursor: Cursor | None,
    ) -> ScanPage:
        """Scan one page. The cursor is DynamoDB's raw LastEvaluatedKey."""
        kwargs: dict[str, Any] = {
            "TableName": table,
            "Segment": segment,
            "TotalSegments": total_segments,
        }
        if cursor is not None:
            kwargs["ExclusiveStartKey"] = cursor
        response = self._client.scan(**kwargs)
        items = [self._unmarshall(item) for item in response.get("Items", [])]
        return ScanPage(items=items, cursor=response.get("LastEvaluatedKey"))

    def batch_get(self, table: str, keys: list[Item]) -> BatchGetResult:
        """BatchGetItem against a single table."""
        if len(keys) > BATCH_READ_LIMIT:
            raise ValueError(f"batch_get accepts at most {BATCH_READ_LIMIT} keys, got {len(keys)}")
        if not keys:
            return BatchGetResult(items=[])
        response = self._client.batch_get_item(
            RequestItems={table: {"Keys": [self._marshall(key) for key in keys]}},
        )
        found = response.get("Responses", {}).get(table, [])
        unprocessed = response.get("UnprocessedKeys", {}).get(table, {}).get("Keys", [])
        return BatchGetResult(
            items=[self._unmarshall(item) for item in found],
            unprocessed_keys=[self._unmarshall(key) for key in unprocessed],
        )

    def batch_put(self, table: str, items: list[Item]) -> list[Item]:
        """BatchWriteItem with PutRequests only (overwrite semantics)."""
        if len(items) > BATCH_WRITE_LIMIT:
            raise ValueError(f"batch_put accepts at most {BATCH_WRITE_LIMIT} items, got {len(items)}")
        if not items:
            return []
        response = self._client.batch_write_item(
            RequestItems={table: [{"PutRequest": {"Item": self._marshall(item)}} for item in items]},
        )
        unprocessed = response.get("UnprocessedItems", {}).get(table, [])
        return [self._unmarshall(request["PutRequest"]["Item"]) for request in unprocessed]

    def create_table(self, table: str) -> bool:
        """Create a `blocks-cars-positions` shaped table if it does not exist.

        Used for --local runs against DynamoDB Local.

        Returns:
            True if the table was created, False if it already existed.
        """
        try:
            self._client.describe_table(TableName=table)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceNotFoundException":
                raise
        else:
            return False

        logger.info("creating_table", table=table)
        self._client.create_table(
            TableName=table,
            AttributeDefinitions=[
                {"AttributeName": HASH_ATTRIBUTE, "AttributeType": "S"},
                {"AttributeName": LOCATOR_ATTRIBUTE, "AttributeType": "S"},
            ],
            KeySchema=[
                {"AttributeName": HASH_ATTRIBUTE, "KeyType": "HASH"},
                {"AttributeName": LOCATOR_ATTRIBUTE, "KeyType": "RANGE"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        self._client.get_waiter("table_exists").wait(TableName=table)
        return True

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._client.close()


def create_dynamodb_backend(settings: MigrateSettings, *, local: bool = False) -> DynamoDBBackend:
    """Build a DynamoDBBackend from settings.

    Args:
        settings: Loaded settings (region, endpoints)
        local: Target DynamoDB Local at settings.local_endpoint_url

    Returns:
        Backend wrapping a fresh boto3 client
    """
    kwargs: dict[str, Any] = {}
    if local:
        kwargs["endpoint_url"] = settings.local_endpoint_url
        kwargs["region_name"] = settings.region or _LOCAL_DEFAULT_REGION
        kwargs.update(_LOCAL_CREDENTIALS)
    else:
        if settings.region is not None:
            kwargs["region_name"] = settings.region
        if settings.endpoint_url is not None:
            kwargs["endpoint_url"] = settings.endpoint_url
    logger.debug("creating_dynamodb_client", local=local, endpoint_url=kwargs.get("endpoint_url"))
    return DynamoDBBackend(boto3.client("dynamodb", **kwargs))
