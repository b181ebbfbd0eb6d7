# src/blockmigrate/core/partition.py
"""Partition arguments and per-segment file naming.

Scan output for a (segment, total_segments) partition becomes the write
input for the same partition, so names must be deterministic and line up.
"""

from dataclasses import dataclass
from pathlib import Path

from blockmigrate.contracts.errors import ConfigurationError

NDJSON_SUFFIX = ".ndjson"


@dataclass(frozen=True, slots=True)
class Partition:
    """One disjoint slice of a parallel table scan."""

    segment: int
    total_segments: int

    def __post_init__(self) -> None:
        if self.total_segments < 1:
            raise ConfigurationError(f"total_segments must be >= 1, got {self.total_segments}")
        if not 0 <= self.segment < self.total_segments:
            raise ConfigurationError(
                f"segment must be in [0, {self.total_segments}), got {self.segment}"
            )

    @property
    def suffix(self) -> str:
        """File name suffix, e.g. `10-003` for segment 3 of 10."""
        return f"{self.total_segments}-{self.segment:03d}"

    def file_name(self, prefix: str) -> str:
        """NDJSON file name for this partition, e.g. `prefix-10-003.ndjson`."""
        return f"{prefix}-{self.suffix}{NDJSON_SUFFIX}"

    def path(self, prefix: str, directory: Path | str = ".") -> Path:
        """Full path for this partition's file under `directory`.

        `prefix` may itself contain directories; they are kept.
        """
        return Path(directory) / Path(prefix).parent / self.file_name(Path(prefix).name)
