# chanstore/__init__.py
from __future__ import annotations

import logging
from typing import Optional

from .core.config import Settings
from .core.logging import configure_logging
from .storage.base import StorageProvider

log = logging.getLogger(__name__)

__version__ = "1.0.0"


def create_provider(settings: Optional[Settings] = None) -> StorageProvider:
    settings = settings or Settings.from_env()
    if not logging.getLogger().handlers:
        configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    if settings.REDIS_URL:
        from .storage.redis_store import RedisStorageProvider

        provider: StorageProvider = RedisStorageProvider(settings.REDIS_URL, prefix=settings.REDIS_PREFIX)
    else:
        from .storage.filesystem_store import FileSystemStorageProvider

        provider = FileSystemStorageProvider(settings.STORAGE_DIR, indent=settings.JSON_INDENT)

    log.info("Storage provider created (backend=%s)", type(provider).__name__)
    return provider


__all__ = ["Settings", "StorageProvider", "create_provider", "configure_logging"]
