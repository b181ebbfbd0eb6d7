# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from blockmigrate.contracts.records import CarPosition
from blockmigrate.core.logging import configure_logging
from tests.fixtures import DESTINATION_KEY, InMemoryBackend

SOURCE_TABLE = "blocks"
DESTINATION_TABLE = "blocks-cars-positions"


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_logging() -> None:
    """Route structlog through stdlib so caplog sees warnings."""
    configure_logging(level="DEBUG")


@pytest.fixture
def backend() -> InMemoryBackend:
    """Backend with an empty source and destination table."""
    backend = InMemoryBackend(page_size=3)
    backend.seed(SOURCE_TABLE, [])
    backend.create_table(DESTINATION_TABLE, DESTINATION_KEY)
    return backend


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path


def make_position(i: int, *, car: str | None = None, offset: int | None = None, length: int = 1000) -> CarPosition:
    """Build a CarPosition with predictable values."""
    return CarPosition(
        multihash=f"z{i}",
        car_path=car if car is not None else f"/region/bucket/raw/sha{i}.car",
        offset=offset if offset is not None else i,
        length=length,
    )


def block_item(multihash: str, *locations: tuple[int, int, str]) -> dict:
    """Build a `blocks` table item from (offset, length, car) tuples."""
    return {
        "multihash": multihash,
        "cars": [{"offset": offset, "length": length, "car": car} for offset, length, car in locations],
    }
