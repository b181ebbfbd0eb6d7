"""
blockmigrate: Partitioned migration of block index records.

Moves block-to-CAR index entries from the `blocks` table schema into the
flattened `blocks-cars-positions` schema, one partition at a time.
"""

__version__ = "0.1.0"
