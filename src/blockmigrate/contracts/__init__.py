"""Shared contracts: records, errors and observability events.

Leaf package. Nothing here imports from engine, plugins or cli.
"""

from blockmigrate.contracts.errors import (
    BlockMigrateError,
    ConfigurationError,
    MalformedRecordError,
)
from blockmigrate.contracts.events import (
    MIGRATION_EVENT_TYPES,
    MigrationEvent,
    MigrationMode,
    PhaseAction,
    PhaseCompleted,
    PhaseError,
    PhaseStarted,
    PipelinePhase,
    ProgressEvent,
    RunCompletionStatus,
    RunSummary,
)
from blockmigrate.contracts.records import (
    BlockIndex,
    CarLocation,
    CarPosition,
    PositionKey,
    key_of,
)

__all__ = [
    "MIGRATION_EVENT_TYPES",
    "BlockIndex",
    "BlockMigrateError",
    "CarLocation",
    "CarPosition",
    "ConfigurationError",
    "MalformedRecordError",
    "MigrationEvent",
    "MigrationMode",
    "PhaseAction",
    "PhaseCompleted",
    "PhaseError",
    "PhaseStarted",
    "PipelinePhase",
    "PositionKey",
    "ProgressEvent",
    "RunCompletionStatus",
    "RunSummary",
    "key_of",
]
