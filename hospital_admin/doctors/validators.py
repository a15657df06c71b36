"""Doctor form validation."""
from __future__ import annotations

from typing import List

from hospital_admin.models.schemas import Doctor
from hospital_admin.utils.timefmt import time_to_minutes
from hospital_admin.utils.validation import email_errors, phone_errors, required

REQUIRED_DOCTOR_FIELDS = [
    ("nom", "Le nom est obligatoire"),
    ("prenom", "Le prénom est obligatoire"),
    ("specialite", "La spécialité est obligatoire"),
    ("service", "Le service est obligatoire"),
    ("telephone", "Le téléphone est obligatoire"),
    ("horaire_debut", "L'horaire de début est obligatoire"),
    ("horaire_fin", "L'horaire de fin est obligatoire"),
]


def validate_doctor(doctor: Doctor) -> List[str]:
    errors = required(doctor, REQUIRED_DOCTOR_FIELDS)
    errors += phone_errors(doctor.telephone)
    errors += email_errors(doctor.email)

    start = time_to_minutes(doctor.horaire_debut)
    end = time_to_minutes(doctor.horaire_fin)
    if doctor.horaire_debut and start is None:
        errors.append("L'horaire de début est invalide")
    if doctor.horaire_fin and end is None:
        errors.append("L'horaire de fin est invalide")
    if start is not None and end is not None and start >= end:
        errors.append("L'horaire de début doit être antérieur à l'horaire de fin")
    return errors
