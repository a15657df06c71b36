"""Appointment form validation."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from hospital_admin.models.schemas import Appointment, AppointmentStatus
from hospital_admin.utils.timefmt import combine, parse_time
from hospital_admin.utils.validation import required, required_ids

MIN_DURATION = 15
MAX_DURATION = 240

REQUIRED_APPOINTMENT_IDS = [
    ("patient_id", "Le patient est obligatoire"),
    ("doctor_id", "Le médecin est obligatoire"),
]
REQUIRED_APPOINTMENT_FIELDS = [
    ("date", "La date est obligatoire"),
    ("heure", "L'heure est obligatoire"),
]


def validate_appointment(appointment: Appointment, now: Optional[datetime] = None) -> List[str]:
    """Check an appointment form.

    ``now`` enables the "not in the past" check; pass ``None`` to skip it
    (editing an appointment whose slot did not change).
    """

    errors = required_ids(appointment, REQUIRED_APPOINTMENT_IDS)
    errors += required(appointment, REQUIRED_APPOINTMENT_FIELDS)

    if appointment.heure and parse_time(appointment.heure) is None:
        errors.append("L'heure est invalide")
    if appointment.date and now is not None:
        slot = combine(appointment.date, appointment.heure)
        if slot is None:
            errors.append("La date est invalide")
        elif slot < now:
            errors.append("La date du rendez-vous ne peut pas être dans le passé")

    if not MIN_DURATION <= appointment.duree <= MAX_DURATION:
        errors.append(f"La durée doit être comprise entre {MIN_DURATION} et {MAX_DURATION} minutes")
    if appointment.statut not in AppointmentStatus.values():
        errors.append(f"Statut de rendez-vous inconnu: {appointment.statut}")
    return errors
