"""Revision functionality: immutable versioned rows and visibility checks."""

from worldline.core.revision.models import Revision
from worldline.core.revision.operations import group_by_entity, interval_violations, visible

__all__ = [
    # Models
    "Revision",
    # Operations
    "visible",
    "group_by_entity",
    "interval_violations",
]
