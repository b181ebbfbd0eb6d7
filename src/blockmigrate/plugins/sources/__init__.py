"""Record sources: the partitioned table scan and NDJSON candidate files."""

from blockmigrate.plugins.sources.ndjson_source import NDJSONSource
from blockmigrate.plugins.sources.table_scan import decode_block_index, scan_source_table

__all__ = ["NDJSONSource", "decode_block_index", "scan_source_table"]
