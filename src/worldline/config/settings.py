"""Configuration settings using Pydantic Settings.

Provides typed configuration with environment variable support.

Usage:
    from worldline.config import StorageSettings

    # Load from environment variables (WORLDLINE_*)
    settings = StorageSettings()

    # Or override with explicit values
    settings = StorageSettings(backend="sqlite", sqlite_path="history.db")
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):  # type: ignore[misc]
    """Configuration for the storage backend and id generation.

    Attributes:
        backend: "memory" for LocalStorage, "sqlite" for SQLiteStorage.
        sqlite_path: Database file for the sqlite backend (":memory:" allowed).
        sqlite_timeout: Seconds to wait on a locked database file.
        id_prefix: Prefix prepended to minted world and entity ids.

    Environment Variables:
        WORLDLINE_BACKEND
        WORLDLINE_SQLITE_PATH
        WORLDLINE_SQLITE_TIMEOUT
        WORLDLINE_ID_PREFIX
    """

    model_config = SettingsConfigDict(
        env_prefix="WORLDLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["memory", "sqlite"] = "memory"
    sqlite_path: str = "worldline.db"
    sqlite_timeout: float = Field(default=5.0, gt=0)
    id_prefix: str = ""
