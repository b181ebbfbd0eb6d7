# src/blockmigrate/contracts/errors.py
"""Exception hierarchy for block index migration.

Backend request failures are NOT wrapped here. boto3/botocore exceptions
propagate unchanged so operators see the real cause and re-run the
partition.
"""


class BlockMigrateError(Exception):
    """Base class for all migration errors raised by this package."""


class MalformedRecordError(BlockMigrateError):
    """Raised when a destination record cannot be decoded.

    Source table items never raise this: a malformed source item contributes
    zero output rows instead. This is for the intermediate NDJSON files and
    backend-returned items, where a bad record means the file or the table
    was corrupted.

    Attributes:
        record: The offending raw value
        location: Optional human-readable position (e.g. "candidates.ndjson:12")
    """

    def __init__(self, message: str, *, record: object = None, location: str | None = None) -> None:
        self.record = record
        self.location = location
        prefix = f"{location}: " if location else ""
        super().__init__(f"{prefix}{message}")


class ConfigurationError(BlockMigrateError):
    """Raised for invalid settings or partition arguments."""
