"""Persistence infrastructure: backends, collection store, seed loader."""

from .backend import JsonFileBackend, KeyValueBackend, MemoryBackend, SqliteBackend, build_backend
from .store import CollectionStore

__all__ = [
    "CollectionStore",
    "JsonFileBackend",
    "KeyValueBackend",
    "MemoryBackend",
    "SqliteBackend",
    "build_backend",
]
