"""Configuration module using Pydantic Settings.

Usage:
    from worldline.config import StorageSettings, build_storage

    settings = StorageSettings(backend="sqlite", sqlite_path="history.db")
    storage = build_storage(settings)
"""

from worldline.config.factory import build_ids, build_storage
from worldline.config.settings import StorageSettings

__all__ = [
    "StorageSettings",
    "build_storage",
    "build_ids",
]
