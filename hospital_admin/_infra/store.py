"""Typed collections over a :class:`KeyValueBackend`.

Each collection is persisted whole under its own key (``patients``,
``doctors`` ...) as an ordered list of records, and a ``counters`` entry maps
every collection to the next id it will hand out. Ids are never reused, even
after deletes.

Storage failures never raise out of this class: they are logged and
surface as ``None`` (add/update/find) or ``False`` (delete/bulk writes).
Caller contract breaches (unknown collection, unknown fields, values of the
wrong type) do raise, since retrying cannot fix them.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Type, Union

from pydantic import BaseModel, ValidationError

from hospital_admin.models.schemas import (
    COLLECTIONS,
    ENTITY_MODELS,
    SERVER_FIELDS,
    UPDATE_MODELS,
    Record,
    accepted_keys,
)
from hospital_admin.utils.timefmt import utcnow_iso

from .backend import KeyValueBackend
from .exceptions import UnknownCollectionError, UnknownFieldError

logger = logging.getLogger(__name__)

COUNTERS_KEY = "counters"

Fields = Union[Mapping[str, Any], BaseModel]


def coerce_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CollectionStore:
    """CRUD, counters, search and bulk import/export for every collection."""

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        clock: Callable[[], str] = utcnow_iso,
    ) -> None:
        self.backend = backend
        self._clock = clock
        self.ensure_defaults()

    # ----- Schema helpers ---------------------------------------------
    @staticmethod
    def model_for(collection: str) -> Type[Record]:
        try:
            return ENTITY_MODELS[collection]
        except KeyError:
            raise UnknownCollectionError(collection) from None

    @staticmethod
    def _normalize(model: Type[BaseModel], collection: str, fields: Fields) -> Dict[str, Any]:
        """Return ``fields`` keyed by stored (camelCase) names.

        Raises :class:`UnknownFieldError` for keys ``model`` does not declare.
        """

        if isinstance(fields, BaseModel):
            raw = fields.model_dump(mode="json", by_alias=True, exclude_unset=True)
        else:
            raw = dict(fields)
        known = accepted_keys(model)
        unknown = [key for key in raw if key not in known]
        if unknown:
            raise UnknownFieldError(collection, unknown)
        normalized: Dict[str, Any] = {}
        for name, info in model.model_fields.items():
            alias = info.alias or name
            if alias in raw:
                normalized[alias] = raw[alias]
            elif name in raw:
                normalized[alias] = raw[name]
        return normalized

    def _parse(self, collection: str, raw: Mapping[str, Any]) -> Optional[Record]:
        model = self.model_for(collection)
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed record %s in %s: %s",
                raw.get("id"),
                collection,
                exc.errors(include_url=False),
            )
            return None

    # ----- Initialisation ---------------------------------------------
    def ensure_defaults(self) -> bool:
        """Reset missing or corrupt collections to ``[]`` and merge counter defaults."""

        ok = True
        for collection in COLLECTIONS:
            value = self.backend.get(collection)
            if not isinstance(value, list):
                ok = self.backend.set(collection, []) and ok

        stored = self.backend.get(COUNTERS_KEY)
        counters: Dict[str, int] = {collection: 1 for collection in COLLECTIONS}
        if isinstance(stored, dict):
            for key, value in stored.items():
                parsed = coerce_id(value)
                if parsed is not None:
                    counters[key] = parsed
        for collection in COLLECTIONS:
            floor = self._max_id(collection) + 1
            if counters[collection] < floor:
                logger.warning("Counter for %s moved from %s to %s", collection, counters[collection], floor)
                counters[collection] = floor
        return self.backend.set(COUNTERS_KEY, counters) and ok

    def _max_id(self, collection: str) -> int:
        ids = [i for i in (coerce_id(item.get("id")) for item in self.get_raw(collection)) if i is not None]
        return max(ids, default=0)

    # ----- Reads -------------------------------------------------------
    def get_raw(self, collection: str) -> List[Dict[str, Any]]:
        """Return the stored dicts of ``collection`` in insertion order."""

        self.model_for(collection)
        value = self.backend.get(collection)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def get_all(self, collection: str) -> List[Record]:
        records: List[Record] = []
        for raw in self.get_raw(collection):
            record = self._parse(collection, raw)
            if record is not None:
                records.append(record)
        return records

    def find_by_id(self, collection: str, record_id: Any) -> Optional[Record]:
        wanted = coerce_id(record_id)
        if wanted is None:
            return None
        for raw in self.get_raw(collection):
            if coerce_id(raw.get("id")) == wanted:
                return self._parse(collection, raw)
        return None

    def filter(self, collection: str, predicate: Callable[[Record], bool]) -> List[Record]:
        return [record for record in self.get_all(collection) if predicate(record)]

    def search(
        self,
        collection: str,
        term: Optional[str],
        fields: Optional[Sequence[str]] = None,
    ) -> List[Record]:
        """Case-insensitive substring search.

        Without ``fields`` every string value of a record is considered.
        Field names may be given as attributes or stored keys.
        """

        model = self.model_for(collection)
        needle = (term or "").lower()
        keys: List[str] = []
        if fields:
            aliases = {name: (info.alias or name) for name, info in model.model_fields.items()}
            keys = [aliases.get(f, f) for f in fields]

        matches: List[Record] = []
        for raw in self.get_raw(collection):
            values = [raw.get(k) for k in keys] if keys else list(raw.values())
            if any(isinstance(v, str) and needle in v.lower() for v in values):
                record = self._parse(collection, raw)
                if record is not None:
                    matches.append(record)
        return matches

    def statistics(self) -> Dict[str, int]:
        return {collection: len(self.get_raw(collection)) for collection in COLLECTIONS}

    # ----- Counters ----------------------------------------------------
    def _counters(self) -> Dict[str, Any]:
        counters = self.backend.get(COUNTERS_KEY)
        return counters if isinstance(counters, dict) else {}

    def get_next_id(self, collection: str) -> Optional[int]:
        """Return the next id for ``collection`` and persist the increment.

        Returns ``None`` if the increment could not be persisted.
        """

        self.model_for(collection)
        counters = self._counters()
        next_id = coerce_id(counters.get(collection)) or 1
        counters[collection] = next_id + 1
        if not self.backend.set(COUNTERS_KEY, counters):
            logger.error("Could not persist counter for %s", collection)
            return None
        return next_id

    def _bump_counter(self, collection: str, used_ids: Iterable[Any]) -> bool:
        ids = [i for i in (coerce_id(v) for v in used_ids) if i is not None]
        if not ids:
            return True
        counters = self._counters()
        current = coerce_id(counters.get(collection)) or 1
        wanted = max(ids) + 1
        if wanted <= current:
            return True
        counters[collection] = wanted
        return self.backend.set(COUNTERS_KEY, counters)

    # ----- Writes ------------------------------------------------------
    def add(self, collection: str, fields: Fields) -> Optional[Record]:
        """Append a record and return it with ``id`` and timestamps filled in.

        An ``id`` already present in ``fields`` is kept (seed data); otherwise
        the next counter value is used. Returns ``None`` if nothing was written.
        """

        model = self.model_for(collection)
        data = self._normalize(model, collection, fields)
        entity = model.model_validate(data)

        items = self.get_raw(collection)
        record_id = coerce_id(data.get("id"))
        if record_id is None:
            taken = {i for i in (coerce_id(item.get("id")) for item in items) if i is not None}
            record_id = self.get_next_id(collection)
            while record_id in taken:
                record_id = self.get_next_id(collection)
            if record_id is None:
                return None
        else:
            if any(coerce_id(item.get("id")) == record_id for item in items):
                logger.error("Add error (%s): id %s already exists", collection, record_id)
                return None
            if not self._bump_counter(collection, [record_id]):
                return None

        now = self._clock()
        entity = entity.model_copy(
            update={
                "id": record_id,
                "date_creation": entity.date_creation or now,
                "date_modification": now,
            }
        )
        items.append(entity.to_record())
        if not self.backend.set(collection, items):
            logger.error("Add error (%s): record %s not persisted", collection, record_id)
            return None
        return entity

    def update(self, collection: str, record_id: Any, changes: Fields) -> Optional[Record]:
        """Shallow-merge ``changes`` over the stored record.

        Returns the updated record, or ``None`` when the id is unknown or the
        write failed. A merge that leaves the record invalid raises
        :class:`pydantic.ValidationError`, as :meth:`add` does.
        """

        model = self.model_for(collection)
        update_model = UPDATE_MODELS[collection]
        patch_input = self._normalize(update_model, collection, changes)
        patch = update_model.model_validate(patch_input).model_dump(
            mode="json", by_alias=True, exclude_unset=True
        )

        wanted = coerce_id(record_id)
        items = self.get_raw(collection)
        index = next(
            (i for i, item in enumerate(items) if wanted is not None and coerce_id(item.get("id")) == wanted),
            None,
        )
        if index is None:
            logger.debug("Update skipped: no record %s in %s", record_id, collection)
            return None

        merged = {**items[index], **patch, "dateModification": self._clock()}
        entity = model.model_validate(merged)
        items[index] = {**items[index], **entity.to_record()}
        if not self.backend.set(collection, items):
            logger.error("Update error (%s): record %s not persisted", collection, record_id)
            return None
        return entity

    def delete(self, collection: str, record_id: Any) -> bool:
        wanted = coerce_id(record_id)
        items = self.get_raw(collection)
        remaining = [item for item in items if wanted is None or coerce_id(item.get("id")) != wanted]
        if len(remaining) == len(items):
            logger.debug("Delete skipped: no record %s in %s", record_id, collection)
            return False
        if not self.backend.set(collection, remaining):
            logger.error("Delete error (%s): record %s not removed", collection, record_id)
            return False
        return True

    # ----- Bulk operations --------------------------------------------
    def bulk_load(self, collection: str, records: Iterable[Union[Mapping[str, Any], Record]]) -> bool:
        """Replace ``collection`` wholesale and move its counter past the loaded ids."""

        self.model_for(collection)
        rows = [r.to_record() if isinstance(r, Record) else dict(r) for r in records]
        if not self.backend.set(collection, rows):
            return False
        return self._bump_counter(collection, [row.get("id") for row in rows])

    def export_data(self, *, indent: Optional[int] = 2) -> str:
        """Serialize every collection to one JSON document."""

        data = {collection: self.get_raw(collection) for collection in COLLECTIONS}
        return json.dumps(data, indent=indent, ensure_ascii=False)

    def import_data(self, document: Union[str, Mapping[str, Any]]) -> bool:
        """Overwrite each collection named in ``document``.

        Unknown keys are ignored; counters move past the imported ids.
        """

        if isinstance(document, str):
            try:
                document = json.loads(document)
            except ValueError as exc:
                logger.error("Import error: invalid JSON (%s)", exc)
                return False
        if not isinstance(document, Mapping):
            logger.error("Import error: expected an object, got %s", type(document).__name__)
            return False

        ok = True
        for key, rows in document.items():
            if key not in ENTITY_MODELS:
                logger.warning("Import: ignoring unknown key %r", key)
                continue
            if not isinstance(rows, list):
                logger.error("Import error: %s is not a list", key)
                ok = False
                continue
            ok = self.bulk_load(key, rows) and ok
        return ok

    def clear(self) -> bool:
        """Remove every key of the namespace, then restore empty collections."""

        if not self.backend.clear():
            return False
        return self.ensure_defaults()


__all__ = ["CollectionStore", "COUNTERS_KEY", "SERVER_FIELDS", "coerce_id"]
