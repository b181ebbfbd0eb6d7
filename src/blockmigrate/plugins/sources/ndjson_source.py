# src/blockmigrate/plugins/sources/ndjson_source.py
"""Read CarPosition records from an NDJSON candidate file.

Candidate files are written by the scan stage, so a line that does not
decode means the file is corrupt or was produced by something else. That
is raised with the file and line number rather than skipped: silently
dropping a candidate would leave the destination incomplete.
"""

import json
from collections.abc import Iterator
from pathlib import Path

from blockmigrate.contracts.errors import MalformedRecordError
from blockmigrate.contracts.records import CarPosition


def _reject_nonfinite_constant(value: str) -> None:
    """Reject NaN / Infinity, which json.loads accepts by default."""
    raise ValueError(f"Non-standard JSON constant '{value}' not allowed")


class NDJSONSource:
    """Lazily load CarPosition records from an NDJSON file.

    Blank lines are skipped. Every other line must be one JSON object with the
    destination wire fields (`blockmultihash`, `carpath`, `offset`,
    `length`, or the `hash` / `locator` aliases).
    """

    def __init__(self, path: Path | str, *, encoding: str = "utf-8") -> None:
        self._path = Path(path)
        self._encoding = encoding

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Iterator[CarPosition]:
        """Yield records in file order.

        Raises:
            FileNotFoundError: If the file does not exist.
            MalformedRecordError: On a line that is not a valid record.
        """
        if not self._path.exists():
            raise FileNotFoundError(f"NDJSON file not found: {self._path}")

        with open(self._path, encoding=self._encoding) as f:
            for line_num, raw_line in enumerate(f, start=1):
                line = raw_line.strip()
                if not line:
                    continue
                location = f"{self._path}:{line_num}"
                try:
                    row = json.loads(line, parse_constant=_reject_nonfinite_constant)
                except ValueError as e:
                    raise MalformedRecordError(f"invalid JSON: {e}", record=line, location=location) from e
                yield CarPosition.from_item(row, location=location)

    def __iter__(self) -> Iterator[CarPosition]:
        return self.load()
