# chanstore/storage/filesystem_store.py

from __future__ import annotations

import logging
import os
import threading
import weakref
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

from pydantic import ValidationError

from ..core.errors import DecodeError, StorageIOError, UserSettingsNotFoundError
from ..schemas.user_settings import UserSettingsRecord, UserSettingsView
from .base import StorageProvider, check_key
from .file_ops import delete_record, read_record, write_record

log = logging.getLogger(__name__)

AUTH_SUFFIX = ".auth.json"
USER_SETTINGS_SUFFIX = ".userSettings.json"


class FileSystemStorageProvider(StorageProvider):
    """
    Un document JSON par record dans `directory` :
      <credentialsKey>.auth.json          -> tokens (opaque)
      <channelLabel>.userSettings.json    -> {count, userSettings, credentialsKey}

    Aucun cache mémoire : le disque est la seule source de vérité.
    Les read-modify-write du compteur sont sérialisés par channel label
    (dans ce process uniquement).
    """

    def __init__(self, directory: str, indent: Optional[int] = None):
        self.directory = directory
        self.indent = indent
        os.makedirs(directory, exist_ok=True)
        # Une entrée ne vit que tant qu'un thread détient le lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()
        log.info("FileSystemStorageProvider ready (directory=%s)", directory)

    # ------------------------- PATHS -------------------------

    def _auth_path(self, credentials_key: str) -> str:
        check_key(credentials_key, "credentials key")
        return os.path.join(self.directory, credentials_key + AUTH_SUFFIX)

    def _user_settings_path(self, channel_label: str) -> str:
        check_key(channel_label, "channel label")
        return os.path.join(self.directory, channel_label + USER_SETTINGS_SUFFIX)

    @contextmanager
    def _channel_lock(self, channel_label: str) -> Iterator[None]:
        check_key(channel_label, "channel label")
        with self._locks_guard:
            lock = self._locks.setdefault(channel_label, threading.Lock())
        with lock:
            yield

    # ------------------------- RECORDS -------------------------

    def _read_user_settings(self, channel_label: str) -> Optional[UserSettingsRecord]:
        path = self._user_settings_path(channel_label)
        data = read_record(path)
        if data is None:
            return None
        try:
            return UserSettingsRecord.model_validate(data)
        except ValidationError as e:
            log.warning("Invalid user settings document path=%s: %s", path, e)
            raise DecodeError(f"invalid user settings document in {path}", path=path) from e

    def _write_user_settings(self, channel_label: str, record: UserSettingsRecord) -> None:
        write_record(self._user_settings_path(channel_label), record.model_dump(), indent=self.indent)

    # ------------------------- AUTH -------------------------

    def store_auth_tokens(self, credentials_key: str, tokens: Any) -> None:
        write_record(self._auth_path(credentials_key), tokens, indent=self.indent)
        log.debug("Auth tokens stored (credentials_key=%s)", credentials_key)

    def get_auth_tokens_by_credentials_key(self, credentials_key: str) -> Optional[Any]:
        return read_record(self._auth_path(credentials_key))

    def get_auth_tokens_by_channel_label(self, channel_label: str) -> Optional[Any]:
        record = self._read_user_settings(channel_label)
        if record is None or not record.credentialsKey:
            return None
        return self.get_auth_tokens_by_credentials_key(record.credentialsKey)

    # ------------------------- USER SETTINGS -------------------------

    def store_user_settings(self, channel_label: str, user_settings: Any, credentials_key: str) -> int:
        check_key(credentials_key, "credentials key")
        with self._channel_lock(channel_label):
            record = self._read_user_settings(channel_label)
            if record is None:
                record = UserSettingsRecord(
                    count=0,
                    userSettings=user_settings,
                    credentialsKey=credentials_key,
                )
                log.info("User settings created (channel=%s, credentials_key=%s)", channel_label, credentials_key)

            record.count += 1
            self._write_user_settings(channel_label, record)

        log.debug("User settings subscribed (channel=%s, count=%d)", channel_label, record.count)
        return record.count

    def remove_user_settings(self, channel_label: str) -> int:
        with self._channel_lock(channel_label):
            record = self._read_user_settings(channel_label)
            if record is None:
                log.debug("Remove ignored, no user settings (channel=%s)", channel_label)
                return 0

            count = record.count - 1
            if count <= 0:
                delete_record(self._user_settings_path(channel_label))
                log.info("User settings deleted, last subscriber gone (channel=%s)", channel_label)
                return 0

            record.count = count
            self._write_user_settings(channel_label, record)

        log.debug("User settings unsubscribed (channel=%s, count=%d)", channel_label, count)
        return count

    def get_user_settings(self, channel_label: str) -> UserSettingsView:
        record = self._read_user_settings(channel_label)
        if record is None:
            raise UserSettingsNotFoundError(channel_label)

        auth_tokens = None
        if record.credentialsKey:
            auth_tokens = self.get_auth_tokens_by_credentials_key(record.credentialsKey)

        return UserSettingsView(
            channelLabel=channel_label,
            userSettings=record.userSettings,
            authTokens=auth_tokens,
        )

    # ------------------------- ENUMERATION -------------------------

    def list_channel_labels(self) -> List[str]:
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            log.error("Listing failed directory=%s: %s", self.directory, e)
            raise StorageIOError(f"cannot list {self.directory}: {e}", path=self.directory) from e

        return [
            name[: -len(USER_SETTINGS_SUFFIX)]
            for name in names
            if name.endswith(USER_SETTINGS_SUFFIX) and len(name) > len(USER_SETTINGS_SUFFIX)
        ]

    def get_all_user_settings(self) -> List[UserSettingsView]:
        return [self.get_user_settings(label) for label in self.list_channel_labels()]
