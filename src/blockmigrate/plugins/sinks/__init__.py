"""Record sinks: the destination table writer and NDJSON files."""

from blockmigrate.plugins.sinks.ndjson_sink import NDJSONSink
from blockmigrate.plugins.sinks.table_writer import write_batch

__all__ = ["NDJSONSink", "write_batch"]
