"""Pipeline engine: per-partition orchestration of scan and write runs."""

from blockmigrate.engine.orchestrator import (
    MigrationCounters,
    MigrationOrchestrator,
    MigrationSummary,
)

__all__ = [
    "MigrationCounters",
    "MigrationOrchestrator",
    "MigrationSummary",
]
