"""Query functionality: payload filters and ordering."""

from worldline.core.query.models import EVERYTHING, PayloadPredicate, Where
from worldline.core.query.operations import FilterSpec, OrderSpec, normalize_filter, sort_key

__all__ = [
    # Models
    "Where",
    "EVERYTHING",
    "PayloadPredicate",
    # Operations
    "FilterSpec",
    "OrderSpec",
    "normalize_filter",
    "sort_key",
]
