"""Identifier allocation services.

Allocators are stateful services implementing the IdGenerator protocol.
"""

from __future__ import annotations

import itertools
import threading
import uuid


class UUIDAllocator:
    """Allocates random uuid4 identifiers, optionally prefixed.

    Args:
        prefix: String prepended to every id (default none).
    """

    def __init__(self, prefix: str = ""):
        self._prefix = prefix

    def allocate(self) -> str:
        """Allocate a fresh random identifier.

        Returns:
            The prefix followed by a canonical uuid4 string.
        """
        return f"{self._prefix}{uuid.uuid4()}"


class SequentialAllocator:
    """Allocates predictable identifiers from a counter.

    Useful for tests and reproducible demos. Ids are unique per allocator
    instance only, so never share a store between two sequential allocators
    with the same prefix.

    Args:
        prefix: String prepended to every id.
        start: First counter value.
    """

    def __init__(self, prefix: str = "e", start: int = 1):
        self._prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def allocate(self) -> str:
        """Allocate the next identifier in sequence.

        Returns:
            The prefix followed by the next counter value.
        """
        with self._lock:
            return f"{self._prefix}{next(self._counter)}"
