"""Small helpers shared by the per-domain form validators.

Validators return a list of human-readable messages; an empty list means
the data may be written.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple

PHONE_RE = re.compile(r"^[0-9\s\-+()]+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def required(record: Any, fields: Iterable[Tuple[str, str]]) -> List[str]:
    """Return ``message`` for every ``(attribute, message)`` whose value is blank.

    ``record`` may be a model or a mapping. Zero is not blank; ids use
    :func:`required_ids`.
    """

    errors = []
    for attr, message in fields:
        value = record.get(attr) if isinstance(record, Mapping) else getattr(record, attr, None)
        if _blank(value):
            errors.append(message)
    return errors


def required_ids(record: Any, fields: Iterable[Tuple[str, str]]) -> List[str]:
    """Like :func:`required` but an id of ``0`` also counts as missing."""

    errors = []
    for attr, message in fields:
        value = getattr(record, attr, None)
        if not value:
            errors.append(message)
    return errors


def phone_errors(value: Optional[str]) -> List[str]:
    if value and not PHONE_RE.match(value):
        return ["Le format du téléphone est invalide"]
    return []


def email_errors(value: Optional[str]) -> List[str]:
    if value and not EMAIL_RE.match(value.strip()):
        return ["Le format de l'email est invalide"]
    return []


__all__ = ["EMAIL_RE", "PHONE_RE", "email_errors", "phone_errors", "required", "required_ids"]
