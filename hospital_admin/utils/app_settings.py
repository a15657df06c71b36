"""Application settings resolved from the environment and ``data/app.ini``.

Environment variables win over the INI file, which wins over the built-in
defaults. The INI may contain::

    [app]
    dev = true

    [storage]
    backend = sqlite
    prefix = hospital_

    [billing]
    tva = 20

    [seed]
    path = data/sample-data.json
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

BACKEND_JSON = "json"
BACKEND_SQLITE = "sqlite"
BACKEND_MEMORY = "memory"
BACKENDS = (BACKEND_JSON, BACKEND_SQLITE, BACKEND_MEMORY)

DEFAULT_PREFIX = "hospital_"
DEFAULT_TVA = 20.0

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class AppSettings:
    data_dir: Path = Path("data")
    backend: str = BACKEND_JSON
    prefix: str = DEFAULT_PREFIX
    default_tva: float = DEFAULT_TVA
    seed_path: Optional[Path] = None
    dev_mode: bool = False

    @property
    def json_path(self) -> Path:
        return self.data_dir / "hospital.json"

    @property
    def sqlite_path(self) -> Path:
        return self.data_dir / "hospital.db"


def _read_ini(ini_path: Path) -> configparser.ConfigParser:
    cp = configparser.ConfigParser()
    if not ini_path.exists():
        return cp
    try:
        cp.read(ini_path, encoding="utf-8")
    except configparser.Error as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", ini_path, exc)
        return configparser.ConfigParser()
    return cp


def _to_float(raw: Optional[str], default: float) -> float:
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid numeric setting %r; using %s", raw, default)
        return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Build :class:`AppSettings` from ``env`` (defaults to ``os.environ``)."""

    env = os.environ if env is None else env
    data_dir = Path(env.get("HOSPITAL_DATA_DIR", "data"))
    cp = _read_ini(data_dir / "app.ini")

    backend = (
        env.get("HOSPITAL_BACKEND")
        or cp.get("storage", "backend", fallback=BACKEND_JSON)
    ).strip().lower()
    if backend not in BACKENDS:
        logger.warning("Unknown storage backend %r; falling back to %s", backend, BACKEND_JSON)
        backend = BACKEND_JSON

    prefix = env.get("HOSPITAL_STORAGE_PREFIX") or cp.get("storage", "prefix", fallback=DEFAULT_PREFIX)
    tva = _to_float(cp.get("billing", "tva", fallback=None), DEFAULT_TVA)

    seed_raw = env.get("HOSPITAL_SEED_PATH") or cp.get("seed", "path", fallback="")
    seed_path = Path(seed_raw) if seed_raw.strip() else None

    dev_raw = env.get("HOSPITAL_DEV") or cp.get("app", "dev", fallback="0")
    dev_mode = str(dev_raw).strip().lower() in _TRUTHY

    return AppSettings(
        data_dir=data_dir,
        backend=backend,
        prefix=prefix,
        default_tva=tva,
        seed_path=seed_path,
        dev_mode=dev_mode,
    )


__all__ = [
    "AppSettings",
    "BACKENDS",
    "BACKEND_JSON",
    "BACKEND_MEMORY",
    "BACKEND_SQLITE",
    "DEFAULT_PREFIX",
    "DEFAULT_TVA",
    "load_settings",
]
