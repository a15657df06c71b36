"""Durable key/value backends holding serialized collections.

Every backend exposes the same synchronous contract: ``get`` / ``set`` /
``remove`` / ``clear``. Values are structured data serialized to JSON text
on write and parsed back on read. Storage or serialization problems never
escape this layer: they are logged and reported as ``None`` / ``False``.

All keys are namespaced with ``prefix`` so several applications can share
one physical store; ``clear`` only ever touches keys under that prefix.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from hospital_admin.utils.app_settings import (
    BACKEND_MEMORY,
    BACKEND_SQLITE,
    DEFAULT_PREFIX,
    AppSettings,
)

logger = logging.getLogger(__name__)


class StorageQuotaExceeded(OSError):
    """Raised internally when a write would exceed the backend quota."""


class KeyValueBackend:
    """Base class implementing namespacing and (de)serialization.

    Subclasses only provide raw text access through ``_read``, ``_write``,
    ``_delete`` and ``_raw_keys``; they may raise freely, the public methods
    convert any failure into the sentinel return values.
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX) -> None:
        self.prefix = prefix

    # ----- Raw access (override) --------------------------------------
    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError

    def _raw_keys(self) -> Iterable[str]:
        raise NotImplementedError

    # ----- Public API --------------------------------------------------
    def get(self, key: str) -> Any:
        """Return the parsed value stored under ``key`` or ``None``."""

        full_key = self.prefix + key
        try:
            raw = self._read(full_key)
        except Exception as exc:
            logger.error("Storage get error (%s): %s", key, exc)
            return None
        if raw is None or raw == "":
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.warning("Discarding unparsable value for %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> bool:
        try:
            raw = json.dumps(value, ensure_ascii=False)
            self._write(self.prefix + key, raw)
        except Exception as exc:
            logger.error("Storage set error (%s): %s", key, exc)
            return False
        return True

    def remove(self, key: str) -> bool:
        try:
            self._delete(self.prefix + key)
        except Exception as exc:
            logger.error("Storage remove error (%s): %s", key, exc)
            return False
        return True

    def keys(self) -> List[str]:
        """Return the keys of this namespace, without the prefix."""

        try:
            raw_keys = list(self._raw_keys())
        except Exception as exc:
            logger.error("Storage key listing error: %s", exc)
            return []
        return [k[len(self.prefix):] for k in raw_keys if k.startswith(self.prefix)]

    def clear(self, prefix: str = "") -> bool:
        """Remove every key of this namespace (optionally narrowed by ``prefix``)."""

        scope = self.prefix + prefix
        try:
            doomed = [k for k in self._raw_keys() if k.startswith(scope)]
            for key in doomed:
                self._delete(key)
        except Exception as exc:
            logger.error("Storage clear error: %s", exc)
            return False
        return True

    def close(self) -> None:
        """Release any resources held by the backend."""


class MemoryBackend(KeyValueBackend):
    """Process-local backend.

    ``data`` may be shared between instances to emulate several namespaces
    living in one physical store. ``quota_bytes`` caps the total size of
    stored text, like a browser's local storage quota.
    """

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        *,
        data: Optional[Dict[str, str]] = None,
        quota_bytes: Optional[int] = None,
    ) -> None:
        super().__init__(prefix)
        self.data: Dict[str, str] = data if data is not None else {}
        self.quota_bytes = quota_bytes

    def _read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def _write(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self.data.items() if k != key)
            if used + len(value.encode("utf-8")) > self.quota_bytes:
                raise StorageQuotaExceeded(f"quota of {self.quota_bytes} bytes exceeded")
        self.data[key] = value

    def _delete(self, key: str) -> None:
        self.data.pop(key, None)

    def _raw_keys(self) -> Iterable[str]:
        return list(self.data.keys())


class JsonFileBackend(KeyValueBackend):
    """All keys kept in a single JSON document on disk."""

    def __init__(self, path: str | Path, prefix: str = DEFAULT_PREFIX) -> None:
        super().__init__(prefix)
        self.path = Path(path)
        self._entries: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            self._entries = {}
            return
        try:
            with self.path.open("r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to decode %s (%s); starting empty", self.path, exc)
            self._entries = {}
            return
        if not isinstance(loaded, dict):
            logger.warning("Unexpected content in %s; starting empty", self.path)
            self._entries = {}
            return
        self._entries = {str(k): v for k, v in loaded.items() if isinstance(v, str)}

    def _flush(self, entries: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(entries, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def _read(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def _write(self, key: str, value: str) -> None:
        entries = dict(self._entries)
        entries[key] = value
        self._flush(entries)
        self._entries = entries

    def _delete(self, key: str) -> None:
        if key not in self._entries:
            return
        entries = dict(self._entries)
        entries.pop(key)
        self._flush(entries)
        self._entries = entries

    def _raw_keys(self) -> Iterable[str]:
        return list(self._entries.keys())


_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SqliteBackend(KeyValueBackend):
    """Key/value pairs stored in a single SQLite table via SQLAlchemy."""

    def __init__(self, path: str | Path, prefix: str = DEFAULT_PREFIX) -> None:
        super().__init__(prefix)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._engine: Engine = create_engine(f"sqlite:///{self.path}")
        with self._engine.begin() as conn:
            conn.exec_driver_sql(_KV_TABLE)

    def _read(self, key: str) -> Optional[str]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT value FROM kv_store WHERE key = :key"), {"key": key}
            ).first()
        return None if row is None else row[0]

    def _write(self, key: str, value: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                text(
                    """
                    INSERT INTO kv_store (key, value) VALUES (:key, :value)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """
                ),
                {"key": key, "value": value},
            )

    def _delete(self, key: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(text("DELETE FROM kv_store WHERE key = :key"), {"key": key})

    def _raw_keys(self) -> Iterable[str]:
        with self._engine.connect() as conn:
            rows = conn.execute(text("SELECT key FROM kv_store ORDER BY key")).all()
        return [row[0] for row in rows]

    def close(self) -> None:
        self._engine.dispose()


def build_backend(settings: AppSettings) -> KeyValueBackend:
    """Instantiate the backend selected in ``settings``."""

    if settings.backend == BACKEND_MEMORY:
        return MemoryBackend(settings.prefix)
    if settings.backend == BACKEND_SQLITE:
        return SqliteBackend(settings.sqlite_path, settings.prefix)
    return JsonFileBackend(settings.json_path, settings.prefix)


__all__ = [
    "KeyValueBackend",
    "MemoryBackend",
    "JsonFileBackend",
    "SqliteBackend",
    "StorageQuotaExceeded",
    "build_backend",
]
