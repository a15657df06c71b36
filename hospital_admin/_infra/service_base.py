"""Shared plumbing for the per-domain services.

A service validates form data, writes through :class:`CollectionStore`,
then calls the consistency rule that matches the mutation. Store sentinels
are turned into the exceptions of :mod:`hospital_admin._infra.exceptions`
so the view layer only has to catch :class:`HospitalError`.
"""
from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Type, Union

from pydantic import BaseModel, ValidationError

from hospital_admin.models.schemas import UPDATE_MODELS, Record, accepted_keys

from .exceptions import PersistenceFailed, RecordNotFound, UnknownFieldError, ValidationFailed
from .store import CollectionStore

logger = logging.getLogger(__name__)

FormData = Union[Mapping[str, Any], BaseModel]


def pydantic_messages(exc: ValidationError) -> List[str]:
    """Flatten a pydantic error into ``"field: message"`` strings."""

    messages = []
    for error in exc.errors(include_url=False):
        loc = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return messages


class BaseService:
    collection: ClassVar[str] = ""
    search_fields: ClassVar[Sequence[str]] = ()

    def __init__(self, store: CollectionStore, rules: Any = None, query: Any = None) -> None:
        self.store = store
        self.rules = rules
        self.query = query

    @property
    def model(self) -> Type[Record]:
        return self.store.model_for(self.collection)

    # -- Reads --------------------------------------------------------------
    def list(self) -> List[Record]:
        return self.store.get_all(self.collection)

    def get(self, record_id: Any) -> Record:
        record = self.store.find_by_id(self.collection, record_id)
        if record is None:
            raise RecordNotFound(self.collection, record_id)
        return record

    def search(self, term: Optional[str]) -> List[Record]:
        return self.store.search(self.collection, term, list(self.search_fields) or None)

    # -- Form handling ------------------------------------------------------
    def _fields(self, data: FormData) -> Dict[str, Any]:
        """Return ``data`` keyed by attribute name, rejecting unknown keys."""

        update_model = UPDATE_MODELS[self.collection]
        if isinstance(data, BaseModel):
            raw = data.model_dump(exclude_unset=True)
        else:
            raw = dict(data)
        unknown = [key for key in raw if key not in accepted_keys(update_model)]
        if unknown:
            raise UnknownFieldError(self.collection, unknown)
        by_alias = {(info.alias or name): name for name, info in update_model.model_fields.items()}
        return {by_alias.get(key, key): value for key, value in raw.items()}

    def _candidate(self, fields: Mapping[str, Any], existing: Optional[Record] = None) -> Record:
        """Typed view of the record as it would be after the write."""

        base: Dict[str, Any] = existing.model_dump() if existing is not None else {}
        base.update(fields)
        try:
            return self.model.model_validate(base)
        except ValidationError as exc:
            raise ValidationFailed(pydantic_messages(exc)) from exc

    @staticmethod
    def _check(errors: Sequence[str]) -> None:
        if errors:
            raise ValidationFailed(errors)

    def _synced(self, collection: str, target_id: Any, result: Any) -> Any:
        """Pass a rule result through, raising if it failed on an existing target.

        Rules return ``None`` both for a dangling id and for a write that did
        not happen; only the latter leaves derived state stale.
        """

        if result is None and target_id is not None and self.store.find_by_id(collection, target_id) is not None:
            logger.error("Derived fields of %s #%s are out of date", collection, target_id)
            raise PersistenceFailed(collection, "sync")
        return result

    # -- Writes -------------------------------------------------------------
    def _add(self, fields: Mapping[str, Any]) -> Record:
        try:
            record = self.store.add(self.collection, fields)
        except ValidationError as exc:
            raise ValidationFailed(pydantic_messages(exc)) from exc
        if record is None:
            raise PersistenceFailed(self.collection, "add")
        logger.info("Added %s #%s", self.collection, record.id)
        return record

    def _update(self, record_id: Any, fields: Mapping[str, Any]) -> Record:
        try:
            record = self.store.update(self.collection, record_id, fields)
        except ValidationError as exc:
            raise ValidationFailed(pydantic_messages(exc)) from exc
        if record is None:
            if self.store.find_by_id(self.collection, record_id) is None:
                raise RecordNotFound(self.collection, record_id)
            raise PersistenceFailed(self.collection, "update")
        logger.info("Updated %s #%s", self.collection, record.id)
        return record

    def _delete(self, record_id: Any) -> None:
        if not self.store.delete(self.collection, record_id):
            if self.store.find_by_id(self.collection, record_id) is None:
                raise RecordNotFound(self.collection, record_id)
            raise PersistenceFailed(self.collection, "delete")
        logger.info("Deleted %s #%s", self.collection, record_id)


__all__ = ["BaseService", "FormData", "pydantic_messages"]
