"""Appointment scheduling with soft per-doctor conflict detection."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List

from hospital_admin._infra.exceptions import ScheduleConflict
from hospital_admin._infra.service_base import BaseService, FormData
from hospital_admin.models.schemas import APPOINTMENTS, Appointment, AppointmentStatus

from .validators import validate_appointment

logger = logging.getLogger(__name__)


class AppointmentService(BaseService):
    """Create, reschedule and cancel appointments.

    Overlapping slots for the same doctor raise :class:`ScheduleConflict`;
    the caller may confirm and retry with ``allow_conflict=True``.
    """

    collection = APPOINTMENTS
    search_fields = ("date", "heure", "statut", "motif")

    def __init__(self, store, rules=None, query=None, *, now: Callable[[], datetime] = datetime.now) -> None:
        super().__init__(store, rules, query)
        self._now = now

    def conflicts_for(self, appointment: Appointment) -> List[Appointment]:
        return self.query.find_conflicts(
            appointment.doctor_id,
            appointment.date,
            appointment.heure,
            appointment.duree,
            exclude_id=appointment.id,
        )

    def _guard_conflicts(self, candidate: Appointment, allow_conflict: bool) -> None:
        conflicts = self.conflicts_for(candidate)
        if not conflicts:
            return
        if not allow_conflict:
            raise ScheduleConflict(conflicts)
        logger.warning(
            "Appointment for doctor %s on %s %s overlaps %d other(s); saved on request",
            candidate.doctor_id,
            candidate.date,
            candidate.heure,
            len(conflicts),
        )

    def create(self, data: FormData, *, allow_conflict: bool = False) -> Appointment:
        fields = self._fields(data)
        candidate = self._candidate(fields)
        self._check(validate_appointment(candidate, now=self._now()))
        self._guard_conflicts(candidate, allow_conflict)
        return self._add(fields)

    def update(self, appointment_id: Any, data: FormData, *, allow_conflict: bool = False) -> Appointment:
        existing = self.get(appointment_id)
        fields = self._fields(data)
        candidate = self._candidate(fields, existing)
        rescheduled = (candidate.date, candidate.heure) != (existing.date, existing.heure)
        self._check(validate_appointment(candidate, now=self._now() if rescheduled else None))
        if rescheduled or candidate.duree != existing.duree or candidate.doctor_id != existing.doctor_id:
            self._guard_conflicts(candidate, allow_conflict)
        return self._update(appointment_id, fields)

    def set_status(self, appointment_id: Any, statut: str) -> Appointment:
        return self.update(appointment_id, {"statut": statut}, allow_conflict=True)

    def cancel(self, appointment_id: Any) -> Appointment:
        return self.set_status(appointment_id, AppointmentStatus.ANNULE.value)

    def delete(self, appointment_id: Any) -> None:
        self._delete(appointment_id)

    def for_day(self, day: str) -> List[Appointment]:
        return sorted(
            self.store.filter(APPOINTMENTS, lambda a: a.date == day),
            key=lambda a: a.heure,
        )
