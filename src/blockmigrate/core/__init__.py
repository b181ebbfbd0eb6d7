"""Core infrastructure: configuration, logging, events, batching, partitions."""

from blockmigrate.core.batching import batch
from blockmigrate.core.config import MigrateSettings, load_settings
from blockmigrate.core.events import EventBus, EventBusProtocol, NullEventBus
from blockmigrate.core.partition import Partition

__all__ = [
    "EventBus",
    "EventBusProtocol",
    "MigrateSettings",
    "NullEventBus",
    "Partition",
    "batch",
    "load_settings",
]
