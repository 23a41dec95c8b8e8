# chanstore/storage/file_ops.py
"""
JSON file primitives shared by the filesystem provider.

- read_record : fichier absent -> None (pas une erreur)
- write_record : encodage AVANT écriture, puis écriture atomique (tmp + rename)
- delete_record : idempotent, un fichier déjà absent n'est pas une erreur
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Optional

from ..core.errors import DecodeError, EncodeError, StorageIOError

log = logging.getLogger(__name__)


def _check_keys(value: Any) -> None:
    """json.dumps would silently turn non-str keys into strings."""
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError(f"keys must be str, not {type(k).__name__} ({k!r})")
            _check_keys(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            _check_keys(v)


def encode_document(document: Any, where: str, indent: Optional[int] = None) -> bytes:
    try:
        _check_keys(document)
        return json.dumps(document, ensure_ascii=False, allow_nan=False, indent=indent).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodeError(f"cannot encode document for {where}: {e}") from e


def decode_document(raw: bytes | str, where: str) -> Any:
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        log.warning("Malformed JSON at %s: %s", where, e)
        raise DecodeError(f"malformed JSON in {where}: {e}", path=where) from e


def read_record(path: str) -> Optional[Any]:
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        return None
    except OSError as e:
        log.error("Read failed path=%s: %s", path, e)
        raise StorageIOError(f"cannot read {path}: {e}", path=path) from e

    return decode_document(raw, path)


def write_record(path: str, document: Any, indent: Optional[int] = None) -> None:
    payload = encode_document(document, path, indent=indent)

    directory = os.path.dirname(path) or "."
    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb", delete=False, dir=directory, suffix=".tmp"
        ) as tf:
            tmp_name = tf.name
            tf.write(payload)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        log.error("Write failed path=%s: %s", path, e)
        if tmp_name and os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise StorageIOError(f"cannot write {path}: {e}", path=path) from e

    log.debug("Wrote %s (%d bytes)", path, len(payload))


def delete_record(path: str) -> bool:
    """Returns False when the file was already gone."""
    try:
        os.remove(path)
    except FileNotFoundError:
        log.debug("Delete skipped, already absent: %s", path)
        return False
    except OSError as e:
        log.error("Delete failed path=%s: %s", path, e)
        raise StorageIOError(f"cannot delete {path}: {e}", path=path) from e
    return True
