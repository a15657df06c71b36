"""Patient records."""
from __future__ import annotations

from typing import Any

from hospital_admin._infra.service_base import BaseService, FormData
from hospital_admin.models.schemas import PATIENTS, Patient

from .validators import validate_patient


class PatientService(BaseService):
    collection = PATIENTS
    search_fields = ("nom", "prenom", "telephone", "email")

    def create(self, data: FormData) -> Patient:
        fields = self._fields(data)
        self._check(validate_patient(self._candidate(fields)))
        return self._add(fields)

    def update(self, patient_id: Any, data: FormData) -> Patient:
        fields = self._fields(data)
        self._check(validate_patient(self._candidate(fields, self.get(patient_id))))
        return self._update(patient_id, fields)

    def delete(self, patient_id: Any) -> None:
        # Appointments, admissions and invoices keep the dangling id and
        # display it as unknown.
        self._delete(patient_id)
