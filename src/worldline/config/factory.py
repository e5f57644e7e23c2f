"""Build runtime services from settings."""

from __future__ import annotations

import logging

from worldline.config.settings import StorageSettings
from worldline.storage.allocator import UUIDAllocator
from worldline.storage.local import LocalStorage
from worldline.storage.protocol import Storage
from worldline.storage.sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


def build_storage(settings: StorageSettings) -> Storage:
    """Construct the configured storage backend.

    Args:
        settings: Storage settings.

    Returns:
        A fresh LocalStorage or SQLiteStorage.
    """
    if settings.backend == "sqlite":
        logger.debug("Using sqlite backend at %s", settings.sqlite_path)
        return SQLiteStorage(settings.sqlite_path, timeout=settings.sqlite_timeout)
    return LocalStorage()


def build_ids(settings: StorageSettings) -> UUIDAllocator:
    """Construct the id generator for new worlds and entities."""
    return UUIDAllocator(prefix=settings.id_prefix)
