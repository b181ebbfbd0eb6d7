# src/blockmigrate/plugins/sinks/ndjson_sink.py
"""NDJSON sink for candidate and recovery files.

One JSON object per line, destination wire field names. Lines are written
as records arrive, so an interrupted run leaves a valid (partial) file.
"""

import json
import os
from collections.abc import Iterable
from pathlib import Path
from typing import IO, Literal

from blockmigrate.contracts.records import CarPosition


class NDJSONSink:
    """Write CarPosition records to an NDJSON file.

    The file is opened on first write. With `touch_on_close`, a run that
    emits nothing still leaves an empty file, so every partition has an
    output to audit.

    Config options:
        path: Output file path; parent directories are created
        mode: "write" (truncate) or "append"
        encoding: File encoding (default: "utf-8")
        touch_on_close: Create an empty file if nothing was written
    """

    def __init__(
        self,
        path: Path | str,
        *,
        mode: Literal["write", "append"] = "write",
        encoding: str = "utf-8",
        touch_on_close: bool = True,
    ) -> None:
        self._path = Path(path)
        self._mode = mode
        self._encoding = encoding
        self._touch_on_close = touch_on_close
        self._file: IO[str] | None = None
        self._count = 0
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def records_written(self) -> int:
        """Records written since construction."""
        return self._count

    def _open(self) -> IO[str]:
        if self._closed:
            raise RuntimeError(f"NDJSON sink already closed: {self._path}")
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            file_mode = "a" if self._mode == "append" else "w"
            self._file = open(self._path, file_mode, encoding=self._encoding)  # noqa: SIM115
        return self._file

    def write(self, records: Iterable[CarPosition]) -> int:
        """Append records, one line each.

        Returns:
            Number of records written by this call.
        """
        f = self._open()
        written = 0
        for record in records:
            json.dump(record.to_item(), f, separators=(",", ":"))
            f.write("\n")
            written += 1
        self._count += written
        return written

    def flush(self) -> None:
        """Flush buffered data to disk with fsync for durability."""
        if self._file is not None:
            self._file.flush()
            os.fsync(self._file.fileno())

    def close(self, *, touch: bool | None = None) -> None:
        """Flush and close the file handle. Safe to call twice.

        Args:
            touch: Override `touch_on_close` for this call. Failed runs pass
                False so an aborted partition never looks like an empty one.
        """
        if self._closed:
            return
        if touch is None:
            touch = self._touch_on_close
        if self._file is None and touch:
            self._open()
        if self._file is not None:
            self.flush()
            self._file.close()
            self._file = None
        self._closed = True

    def __enter__(self) -> "NDJSONSink":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
