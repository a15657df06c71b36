"""Patient form validation."""
from __future__ import annotations

from typing import List

from hospital_admin.models.schemas import Patient
from hospital_admin.utils.validation import email_errors, phone_errors, required

REQUIRED_PATIENT_FIELDS = [
    ("nom", "Le nom est obligatoire"),
    ("prenom", "Le prénom est obligatoire"),
    ("sexe", "Le sexe est obligatoire"),
    ("telephone", "Le téléphone est obligatoire"),
    ("adresse", "L'adresse est obligatoire"),
]

MIN_AGE = 0
MAX_AGE = 150


def validate_patient(patient: Patient) -> List[str]:
    errors = required(patient, REQUIRED_PATIENT_FIELDS)
    if patient.age is None or not MIN_AGE <= patient.age <= MAX_AGE:
        errors.append(f"L'âge doit être compris entre {MIN_AGE} et {MAX_AGE}")
    errors += phone_errors(patient.telephone)
    errors += email_errors(patient.email)
    return errors
