# tests/test_file_ops.py
import os

import pytest

from chanstore.core.errors import DecodeError, EncodeError, StorageIOError
from chanstore.storage.file_ops import delete_record, read_record, write_record


def test_write_then_read(tmp_path):
    path = str(tmp_path / "doc.json")
    doc = {"nested": {"list": [1, 2.5, None, True]}, "text": "éà"}
    write_record(path, doc)
    assert read_record(path) == doc
    # pas de fichier temporaire résiduel
    assert os.listdir(tmp_path) == ["doc.json"]


def test_write_replaces_content(tmp_path):
    path = str(tmp_path / "doc.json")
    write_record(path, {"a": 1, "b": 2})
    write_record(path, [])
    assert read_record(path) == []


def test_read_missing_returns_none(tmp_path):
    assert read_record(str(tmp_path / "missing.json")) is None


def test_read_malformed(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(DecodeError) as exc:
        read_record(str(path))
    assert exc.value.path == str(path)


def test_read_directory_is_io_error(tmp_path):
    with pytest.raises(StorageIOError):
        read_record(str(tmp_path))


def test_write_encode_error(tmp_path):
    with pytest.raises(EncodeError):
        write_record(str(tmp_path / "x.json"), {"f": lambda: None})
    assert os.listdir(tmp_path) == []


def test_write_into_missing_directory(tmp_path):
    with pytest.raises(StorageIOError):
        write_record(str(tmp_path / "nope" / "x.json"), {})


def test_delete_is_idempotent(tmp_path):
    path = str(tmp_path / "x.json")
    write_record(path, {})
    assert delete_record(path) is True
    assert delete_record(path) is False
    assert not os.path.exists(path)


def test_read_invalid_utf8(tmp_path):
    path = tmp_path / "latin.json"
    path.write_bytes(b'{"a": "\xff\xfe"}')
    with pytest.raises(DecodeError) as exc:
        read_record(str(path))
    assert exc.value.path == str(path)


@pytest.mark.parametrize("doc", [
    {1: "a"},
    {"nested": [{"ok": 1}, {None: 2}]},
    {"x": float("nan")},
    [float("inf")],
    {"s": "\ud800"},
])
def test_write_rejects_documents_that_would_not_round_trip(tmp_path, doc):
    with pytest.raises(EncodeError):
        write_record(str(tmp_path / "x.json"), doc)
    assert os.listdir(tmp_path) == []
