"""Core type definitions for worldline."""

from collections.abc import Mapping
from typing import Any

type Pseudotime = int
"""Per-world logical clock value. Starts at 0, advanced once per commit."""

type Payload = Mapping[str, Any]
"""Field name to value mapping carried by a revision."""
