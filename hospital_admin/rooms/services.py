"""Rooms and admissions.

Bed counts are owned by the admissions: room forms never write
``litsOccupes``, and every admission write is followed by the occupancy
rule.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from hospital_admin._infra.exceptions import OperationRefused, PersistenceFailed
from hospital_admin._infra.service_base import BaseService, FormData
from hospital_admin.models.schemas import (
    ADMISSIONS,
    ROOMS,
    Admission,
    AdmissionStatus,
    Room,
)

from .validators import validate_admission, validate_room

logger = logging.getLogger(__name__)


def occupies_bed(admission: Admission) -> bool:
    return admission.statut_admission != AdmissionStatus.SORTI.value


class RoomService(BaseService):
    collection = ROOMS
    search_fields = ("numero", "type", "service", "statut")

    def create(self, data: FormData) -> Room:
        fields = self._fields(data)
        fields["lits_occupes"] = 0
        self._check(validate_room(self._candidate(fields), self.list()))
        room = self._add(fields)
        return self._synced(ROOMS, room.id, self.rules.recompute_room_status(room.id)) or room

    def update(self, room_id: Any, data: FormData) -> Room:
        fields = self._fields(data)
        if fields.pop("lits_occupes", None) is not None:
            logger.debug("Ignoring litsOccupes in room %s form; admissions own it", room_id)
        candidate = self._candidate(fields, self.get(room_id))
        self._check(validate_room(candidate, self.list()))
        room = self._update(room_id, fields)
        return self._synced(ROOMS, room.id, self.rules.recompute_room_status(room.id)) or room

    def delete(self, room_id: Any) -> None:
        room = self.get(room_id)
        if room.lits_occupes > 0:
            raise OperationRefused("Impossible de supprimer une chambre occupée")
        self._delete(room_id)

    def available(self) -> List[Room]:
        return self.query.rooms_with_free_beds()


class AdmissionService(BaseService):
    collection = ADMISSIONS
    search_fields = ("motif_admission", "statut_admission", "date_admission", "notes_admission")

    def _room(self, room_id: Any) -> Optional[Room]:
        return self.store.find_by_id(ROOMS, room_id)

    def _move_bed(self, old_room_id: Any, new_room_id: Any, exiting: bool = False) -> List[Room]:
        rooms = self.rules.on_admission_room_change(old_room_id, new_room_id, exiting)
        if rooms is None:
            logger.error("Occupancy of rooms %s/%s is out of date", old_room_id, new_room_id)
            raise PersistenceFailed(ROOMS, "sync")
        return rooms

    def create(self, data: FormData) -> Admission:
        fields = self._fields(data)
        candidate = self._candidate(fields)
        takes_bed = occupies_bed(candidate)
        self._check(validate_admission(candidate, self._room(candidate.room_id), takes_bed))
        admission = self._add(fields)
        if takes_bed:
            self._move_bed(None, admission.room_id)
        return admission

    def update(self, admission_id: Any, data: FormData) -> Admission:
        existing = self.get(admission_id)
        fields = self._fields(data)
        candidate = self._candidate(fields, existing)
        was_in = occupies_bed(existing)
        now_in = occupies_bed(candidate)
        takes_bed = now_in and (not was_in or candidate.room_id != existing.room_id)
        self._check(validate_admission(candidate, self._room(candidate.room_id), takes_bed))

        admission = self._update(admission_id, fields)
        if was_in and now_in:
            if existing.room_id != admission.room_id:
                self._move_bed(existing.room_id, admission.room_id)
        elif was_in:
            self._move_bed(existing.room_id, admission.room_id, exiting=True)
        elif now_in:
            self._move_bed(None, admission.room_id)
        return admission

    def discharge(self, admission_id: Any, date_sortie: str, heure_sortie: Optional[str] = None) -> Admission:
        changes = {"statut_admission": AdmissionStatus.SORTI.value, "date_sortie": date_sortie}
        if heure_sortie is not None:
            changes["heure_sortie"] = heure_sortie
        return self.update(admission_id, changes)

    def delete(self, admission_id: Any) -> None:
        admission = self.get(admission_id)
        self._delete(admission_id)
        if occupies_bed(admission):
            self._move_bed(admission.room_id, None, exiting=True)

    def active(self) -> List[Admission]:
        return self.store.filter(ADMISSIONS, occupies_bed)
