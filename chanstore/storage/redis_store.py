# chanstore/storage/redis_store.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

import redis
from pydantic import ValidationError

from ..core.errors import DecodeError, StorageIOError, UserSettingsNotFoundError
from ..schemas.user_settings import UserSettingsRecord, UserSettingsView
from .base import StorageProvider, check_key
from .file_ops import decode_document, encode_document

log = logging.getLogger(__name__)

# KEYS[1] = hash des user settings. Retourne le compteur restant, -1 si absent.
_REMOVE_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return -1
end
local n = redis.call('HINCRBY', KEYS[1], 'count', -1)
if n <= 0 then
  redis.call('DEL', KEYS[1])
  return 0
end
return n
"""


def _text(raw: Any, key: str) -> str:
    if not isinstance(raw, bytes):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"invalid UTF-8 at {key}: {e}", path=key) from e


class RedisStorageProvider(StorageProvider):
    """
    Même contrat que le provider fichier, sur Redis :
      <prefix>auth:<credentialsKey>        -> string JSON
      <prefix>settings:<channelLabel>      -> hash {count, userSettings, credentialsKey}

    Le compteur est mis à jour côté serveur (HINCRBY), donc sûr entre process.
    """

    def __init__(self, url: str, prefix: str = "chanstore:"):
        self.r = redis.from_url(url)
        self.prefix = prefix
        self._remove = self.r.register_script(_REMOVE_SCRIPT)
        log.info("RedisStorageProvider ready (prefix=%s)", prefix)

    def _auth_key(self, credentials_key: str) -> str:
        return f"{self.prefix}auth:{check_key(credentials_key, 'credentials key')}"

    def _settings_key(self, channel_label: str) -> str:
        return f"{self.prefix}settings:{check_key(channel_label, 'channel label')}"

    def _read_user_settings(self, channel_label: str) -> Optional[UserSettingsRecord]:
        key = self._settings_key(channel_label)
        try:
            raw = self.r.hgetall(key)
        except redis.RedisError as e:
            raise StorageIOError(f"cannot read {key}: {e}", path=key) from e
        if not raw:
            return None

        fields = {_text(k, key): v for k, v in raw.items()}
        credentials_key = _text(fields.get("credentialsKey"), key)
        user_settings = decode_document(fields["userSettings"], key) if "userSettings" in fields else None
        try:
            return UserSettingsRecord(
                count=int(fields.get("count", 0)),
                userSettings=user_settings,
                credentialsKey=credentials_key or None,
            )
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"invalid user settings hash at {key}", path=key) from e

    # ------------------------- AUTH -------------------------

    def store_auth_tokens(self, credentials_key: str, tokens: Any) -> None:
        key = self._auth_key(credentials_key)
        payload = encode_document(tokens, key)
        try:
            self.r.set(key, payload)
        except redis.RedisError as e:
            raise StorageIOError(f"cannot write {key}: {e}", path=key) from e

    def get_auth_tokens_by_credentials_key(self, credentials_key: str) -> Optional[Any]:
        key = self._auth_key(credentials_key)
        try:
            raw = self.r.get(key)
        except redis.RedisError as e:
            raise StorageIOError(f"cannot read {key}: {e}", path=key) from e
        return decode_document(raw, key) if raw is not None else None

    def get_auth_tokens_by_channel_label(self, channel_label: str) -> Optional[Any]:
        record = self._read_user_settings(channel_label)
        if record is None or not record.credentialsKey:
            return None
        return self.get_auth_tokens_by_credentials_key(record.credentialsKey)

    # ------------------------- USER SETTINGS -------------------------

    def store_user_settings(self, channel_label: str, user_settings: Any, credentials_key: str) -> int:
        check_key(credentials_key, "credentials key")
        key = self._settings_key(channel_label)
        payload = encode_document(user_settings, key)
        try:
            pipe = self.r.pipeline(transaction=True)
            # HSETNX : les champs ne sont posés qu'à la création
            pipe.hsetnx(key, "userSettings", payload)
            pipe.hsetnx(key, "credentialsKey", credentials_key)
            pipe.hincrby(key, "count", 1)
            count = int(pipe.execute()[-1])
        except redis.RedisError as e:
            raise StorageIOError(f"cannot write {key}: {e}", path=key) from e

        log.debug("User settings subscribed (channel=%s, count=%d)", channel_label, count)
        return count

    def remove_user_settings(self, channel_label: str) -> int:
        key = self._settings_key(channel_label)
        try:
            count = int(self._remove(keys=[key]))
        except redis.RedisError as e:
            raise StorageIOError(f"cannot update {key}: {e}", path=key) from e

        if count < 0:
            log.debug("Remove ignored, no user settings (channel=%s)", channel_label)
            return 0
        if count == 0:
            log.info("User settings deleted, last subscriber gone (channel=%s)", channel_label)
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
        head = f"{self.prefix}settings:"
        try:
            keys = list(self.r.scan_iter(match=head + "*"))
        except redis.RedisError as e:
            raise StorageIOError(f"cannot scan {head}*: {e}", path=head) from e
        labels = []
        for k in keys:
            k = _text(k, head)
            labels.append(k[len(head):])
        return labels

    def get_all_user_settings(self) -> List[UserSettingsView]:
        return [self.get_user_settings(label) for label in self.list_channel_labels()]
