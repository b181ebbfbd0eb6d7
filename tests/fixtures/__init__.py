"""Test doubles for the table backend."""

from tests.fixtures.memory_backend import (
    DESTINATION_KEY,
    SOURCE_KEY,
    BackendValidationError,
    InMemoryBackend,
    ScriptedBackend,
)

__all__ = [
    "DESTINATION_KEY",
    "SOURCE_KEY",
    "BackendValidationError",
    "InMemoryBackend",
    "ScriptedBackend",
]
