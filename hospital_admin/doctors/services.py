"""Doctor records."""
from __future__ import annotations

from typing import Any

from hospital_admin._infra.service_base import BaseService, FormData
from hospital_admin.models.schemas import DOCTORS, Doctor

from .validators import validate_doctor


class DoctorService(BaseService):
    collection = DOCTORS
    search_fields = ("nom", "prenom", "specialite", "service")

    def create(self, data: FormData) -> Doctor:
        fields = self._fields(data)
        self._check(validate_doctor(self._candidate(fields)))
        return self._add(fields)

    def update(self, doctor_id: Any, data: FormData) -> Doctor:
        fields = self._fields(data)
        self._check(validate_doctor(self._candidate(fields, self.get(doctor_id))))
        return self._update(doctor_id, fields)

    def delete(self, doctor_id: Any) -> None:
        self._delete(doctor_id)
