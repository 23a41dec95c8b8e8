# chanstore/storage/base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..core.errors import InvalidKeyError
from ..schemas.user_settings import UserSettingsView


def check_key(value: str, what: str) -> str:
    """Rejects keys that could not name a file inside the storage directory."""
    if not isinstance(value, str) or not value:
        raise InvalidKeyError(f"{what} must be a non-empty string, got {value!r}")
    if value in {".", ".."} or "/" in value or "\\" in value or "\x00" in value:
        raise InvalidKeyError(f"invalid {what}: {value!r}")
    return value


class StorageProvider(ABC):
    @abstractmethod
    def store_auth_tokens(self, credentials_key: str, tokens: Any) -> None:
        ...

    @abstractmethod
    def get_auth_tokens_by_credentials_key(self, credentials_key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def get_auth_tokens_by_channel_label(self, channel_label: str) -> Optional[Any]:
        ...

    @abstractmethod
    def store_user_settings(self, channel_label: str, user_settings: Any, credentials_key: str) -> int:
        ...

    @abstractmethod
    def remove_user_settings(self, channel_label: str) -> int:
        ...

    @abstractmethod
    def get_user_settings(self, channel_label: str) -> UserSettingsView:
        ...

    @abstractmethod
    def get_all_user_settings(self) -> List[UserSettingsView]:
        ...
