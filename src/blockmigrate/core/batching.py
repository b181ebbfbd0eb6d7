# src/blockmigrate/core/batching.py
"""Fixed-size batching for lazy iterables."""

from collections.abc import Iterable, Iterator
from itertools import islice
from typing import TypeVar

T = TypeVar("T")


def batch(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Group items into lists of at most `size`, preserving order.

    Lazy: pulls at most `size` items from the upstream iterator before
    yielding, so a slow consumer holds back the producer. The final batch
    may be shorter. Empty input yields nothing.

    Raises:
        ValueError: If size < 1.
    """
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk
