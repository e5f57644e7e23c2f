"""Filter and ordering normalization."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from worldline.core.query.models import EVERYTHING, PayloadPredicate, Where

type FilterSpec = Where | Mapping[str, Any] | PayloadPredicate | None
type OrderSpec = str | Callable[[Mapping[str, Any]], Any] | None


def normalize_filter(spec: FilterSpec) -> Where:
    """Convert the accepted filter spellings to a Where.

    Handles multiple input formats:
    - None -> match everything
    - Where -> passthrough
    - Mapping -> field equalities
    - Callable -> predicate over the payload

    Args:
        spec: Filter specification in one of the accepted formats.

    Returns:
        Normalized Where.

    Raises:
        TypeError: If spec is not a recognized filter format.
    """
    if spec is None:
        return EVERYTHING
    if isinstance(spec, Where):
        return spec
    if isinstance(spec, Mapping):
        return Where(**{str(k): v for k, v in spec.items()})
    if callable(spec):
        return EVERYTHING.satisfying(spec)
    raise TypeError(f"Invalid filter specification: {spec!r}")


def sort_key(order_by: OrderSpec) -> Callable[[Mapping[str, Any]], Any] | None:
    """Build a sort key from a field name or key function.

    Rows missing the named field sort first.

    Args:
        order_by: Field name, key function over the payload, or None.

    Returns:
        Key function, or None for insertion order.

    Raises:
        TypeError: If order_by is neither a string nor callable.
    """
    if order_by is None:
        return None
    if isinstance(order_by, str):
        field = order_by

        def by_field(payload: Mapping[str, Any]) -> Any:
            return (field in payload, payload.get(field))

        return by_field
    if callable(order_by):
        return order_by
    raise TypeError(f"Invalid order specification: {order_by!r}")
