"""Payload filter models.

Usage:
    # Field equality
    Where(content="buy bread")

    # Chained refinements
    Where(done=False).also(owner="ana").satisfying(lambda p: p["priority"] > 2)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

type PayloadPredicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class Where:
    """Declarative filter over revision payload fields.

    Immutable - each method returns a new Where instance. An empty Where
    matches every payload.
    """

    equals: tuple[tuple[str, Any], ...] = ()
    predicates: tuple[PayloadPredicate, ...] = ()

    def __init__(self, **equals: Any):
        object.__setattr__(self, "equals", tuple(equals.items()))
        object.__setattr__(self, "predicates", ())

    def also(self, **equals: Any) -> Where:
        """Payload must also carry these field values."""
        new = Where(**{**dict(self.equals), **equals})
        object.__setattr__(new, "predicates", self.predicates)
        return new

    def satisfying(self, predicate: PayloadPredicate) -> Where:
        """Payload must also satisfy an arbitrary predicate."""
        new = Where(**dict(self.equals))
        object.__setattr__(new, "predicates", (*self.predicates, predicate))
        return new

    def __iter__(self) -> Iterator[str]:
        """Iterate the field names constrained by equality."""
        return (name for name, _ in self.equals)

    def is_empty(self) -> bool:
        """Check if this filter matches everything."""
        return not self.equals and not self.predicates

    def matches(self, payload: Mapping[str, Any]) -> bool:
        """Check whether a payload satisfies every equality and predicate.

        A missing field never equals anything, including None.
        """
        for name, value in self.equals:
            if name not in payload or payload[name] != value:
                return False
        return all(predicate(payload) for predicate in self.predicates)


EVERYTHING = Where()
