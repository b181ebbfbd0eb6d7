"""Backend clients: the table interface and its DynamoDB implementation."""

from blockmigrate.plugins.clients.base import (
    BATCH_READ_LIMIT,
    BATCH_WRITE_LIMIT,
    BatchGetResult,
    ScanPage,
    TableBackend,
)
from blockmigrate.plugins.clients.dynamodb import DynamoDBBackend, create_dynamodb_backend

__all__ = [
    "BATCH_READ_LIMIT",
    "BATCH_WRITE_LIMIT",
    "BatchGetResult",
    "DynamoDBBackend",
    "ScanPage",
    "TableBackend",
    "create_dynamodb_backend",
]
