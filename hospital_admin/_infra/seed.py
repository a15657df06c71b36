"""First-run sample data loader."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from hospital_admin.models.schemas import COLLECTIONS, DOCTORS, PATIENTS

from .store import CollectionStore

logger = logging.getLogger(__name__)

SAMPLE_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "sample_data.json"

SeedSource = Union[str, Path, Mapping[str, Any]]


def _read_document(source: SeedSource) -> Optional[Mapping[str, Any]]:
    if isinstance(source, Mapping):
        return source
    path = Path(source)
    try:
        with path.open("r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Seed document %s unreadable: %s", path, exc)
        return None
    if not isinstance(document, dict):
        logger.warning("Seed document %s is not an object", path)
        return None
    return document


def load_seed_if_empty(store: CollectionStore, source: Optional[SeedSource] = None) -> List[str]:
    """Populate an empty store from a seed document.

    Nothing happens unless both ``patients`` and ``doctors`` are empty. Each
    collection of the document is then loaded only if it is still empty, and
    its counter is moved to ``max(id)+1``. Returns the names of the
    collections that were loaded.
    """

    if store.get_raw(PATIENTS) or store.get_raw(DOCTORS):
        logger.debug("Seed skipped: store already holds patients or doctors")
        return []

    document = _read_document(source if source is not None else SAMPLE_DATA_PATH)
    if document is None:
        return []

    loaded: List[str] = []
    for collection in COLLECTIONS:
        rows = document.get(collection)
        if not isinstance(rows, list) or not rows:
            continue
        if store.get_raw(collection):
            continue
        records: List[Dict[str, Any]] = [row for row in rows if isinstance(row, dict)]
        if store.bulk_load(collection, records):
            loaded.append(collection)
        else:
            logger.error("Seed: could not load %s", collection)
    if loaded:
        logger.info("Seeded collections: %s", ", ".join(loaded))
    return loaded


__all__ = ["SAMPLE_DATA_PATH", "load_seed_if_empty"]
