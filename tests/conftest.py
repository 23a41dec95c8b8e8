# tests/conftest.py
import fnmatch
import logging

import pytest

from chanstore.storage.filesystem_store import FileSystemStorageProvider


class FakePipeline:
    """Exécute les commandes en file au moment de execute() (comme MULTI/EXEC)."""
    def __init__(self, client):
        self.client = client
        self.calls = []

    def hsetnx(self, *args):
        self.calls.append(("hsetnx", args))
        return self

    def hincrby(self, *args):
        self.calls.append(("hincrby", args))
        return self

    def execute(self):
        out = [getattr(self.client, name)(*args) for name, args in self.calls]
        self.calls = []
        return out


class FakeRedis:
    """Client redis en mémoire, réponses en bytes comme redis-py par défaut."""
    def __init__(self):
        self.strings = {}
        self.hashes = {}

    @staticmethod
    def _b(v):
        return v if isinstance(v, bytes) else str(v).encode("utf-8")

    def get(self, key):
        return self.strings.get(key)

    def set(self, key, value):
        self.strings[key] = self._b(value)
        return True

    def hgetall(self, key):
        return {self._b(k): v for k, v in self.hashes.get(key, {}).items()}

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = self._b(value)
        return 1

    def hsetnx(self, key, field, value):
        h = self.hashes.setdefault(key, {})
        if field in h:
            return 0
        h[field] = self._b(value)
        return 1

    def hincrby(self, key, field, amount=1):
        h = self.hashes.setdefault(key, {})
        n = int(h.get(field, b"0")) + amount
        h[field] = self._b(n)
        return n

    def exists(self, key):
        return int(key in self.hashes or key in self.strings)

    def delete(self, key):
        found = key in self.hashes or key in self.strings
        self.hashes.pop(key, None)
        self.strings.pop(key, None)
        return int(found)

    def scan_iter(self, match="*"):
        for key in list(self.hashes) + list(self.strings):
            if fnmatch.fnmatchcase(key, match):
                yield self._b(key)

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    def register_script(self, source):
        # Seul script utilisé : décrément + suppression à zéro
        def _run(keys=(), args=()):
            key = keys[0]
            if not self.exists(key):
                return -1
            n = self.hincrby(key, "count", -1)
            if n <= 0:
                self.delete(key)
                return 0
            return n
        return _run


@pytest.fixture(autouse=True)
def _no_env_side_effects(monkeypatch):
    for k in ("STORAGE_DIR", "REDIS_URL", "REDIS_PREFIX", "JSON_INDENT", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(k, raising=False)


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def provider(store_dir):
    return FileSystemStorageProvider(str(store_dir))


@pytest.fixture
def fake_redis(monkeypatch):
    import redis
    client = FakeRedis()
    monkeypatch.setattr(redis, "from_url", lambda url, **kw: client)
    return client


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
