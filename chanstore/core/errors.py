# chanstore/core/errors.py
from __future__ import annotations


class StorageError(Exception):
    """Base class of every error raised by a storage provider."""


class DecodeError(StorageError, ValueError):
    """A stored document is not valid JSON, or not the expected shape."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class EncodeError(StorageError, TypeError):
    """A payload could not be serialized to JSON."""


class StorageIOError(StorageError, OSError):
    """Filesystem or backend failure other than "not found"."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class UserSettingsNotFoundError(StorageError, KeyError):
    def __init__(self, channel_label: str):
        super().__init__(channel_label)
        self.channel_label = channel_label

    def __str__(self) -> str:
        return f"no user settings stored for channel {self.channel_label!r}"


class InvalidKeyError(StorageError, ValueError):
    """Channel label or credentials key that cannot be used as a storage key."""
