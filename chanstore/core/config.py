# chanstore/core/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env(name: str, default: str | None = None):
    """Default lu à l'instanciation, pas à l'import."""
    return field(default_factory=lambda: os.getenv(name) or default)


def _env_int(name: str):
    def _read() -> int | None:
        v = os.getenv(name)
        if v is None or not v.strip():
            return None
        return int(v)
    return field(default_factory=_read)


@dataclass
class Settings:
    # Filesystem provider
    STORAGE_DIR: str = _env("STORAGE_DIR", ".data/storage")
    JSON_INDENT: int | None = _env_int("JSON_INDENT")

    # Redis provider (utilisé dès que REDIS_URL est défini)
    REDIS_URL: str | None = _env("REDIS_URL")
    REDIS_PREFIX: str = _env("REDIS_PREFIX", "chanstore:")

    # Logging
    LOG_LEVEL: str = _env("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = _env("LOG_FORMAT", "json")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()
