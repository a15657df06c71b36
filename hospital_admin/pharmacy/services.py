"""Pharmacy: medicament stock and prescriptions.

Every prescription write is followed by the stock rule so that
``stockActuel`` reflects what was handed out.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from hospital_admin._infra.service_base import BaseService, FormData
from hospital_admin._infra.store import coerce_id
from hospital_admin.models.schemas import MEDICAMENTS, PRESCRIPTIONS, Medicament, Prescription

from .validators import validate_medicament, validate_prescription

logger = logging.getLogger(__name__)


class MedicamentService(BaseService):
    collection = MEDICAMENTS
    search_fields = ("nom", "code", "famille", "fournisseur")

    def create(self, data: FormData) -> Medicament:
        fields = self._fields(data)
        if "stock_actuel" not in fields and "stock_initial" in fields:
            fields["stock_actuel"] = fields["stock_initial"]
        candidate = self._candidate(fields)
        self._check(validate_medicament(candidate, self.list()))
        return self._add(fields)

    def update(self, medicament_id: Any, data: FormData) -> Medicament:
        fields = self._fields(data)
        candidate = self._candidate(fields, self.get(medicament_id))
        self._check(validate_medicament(candidate, self.list()))
        return self._update(medicament_id, fields)

    def delete(self, medicament_id: Any) -> None:
        self._delete(medicament_id)

    def low_stock(self) -> List[Medicament]:
        return self.query.low_stock_medicaments()


class PrescriptionService(BaseService):
    collection = PRESCRIPTIONS
    search_fields = ("posologie", "statut", "instructions", "date_prescription")

    def _sync_stock(self, medicament_id: Any, result: Optional[Medicament]) -> None:
        self._synced(MEDICAMENTS, medicament_id, result)

    def create(self, data: FormData) -> Prescription:
        fields = self._fields(data)
        candidate = self._candidate(fields)
        medicament = self.store.find_by_id(MEDICAMENTS, candidate.medicament_id)
        self._check(validate_prescription(candidate, medicament))
        record = self._add(fields)
        stock = self.rules.on_prescription_change(None, record.quantite, record.medicament_id)
        self._sync_stock(record.medicament_id, stock)
        return record

    def update(self, prescription_id: Any, data: FormData) -> Prescription:
        existing = self.get(prescription_id)
        fields = self._fields(data)
        candidate = self._candidate(fields, existing)
        medicament = self.store.find_by_id(MEDICAMENTS, candidate.medicament_id)
        available = None
        if medicament is not None:
            available = medicament.stock_actuel
            if candidate.medicament_id == existing.medicament_id:
                available += existing.quantite
        self._check(validate_prescription(candidate, medicament, available))

        record = self._update(prescription_id, fields)
        if record.medicament_id == existing.medicament_id:
            self._sync_stock(
                record.medicament_id,
                self.rules.on_prescription_change(existing.quantite, record.quantite, record.medicament_id),
            )
        else:
            logger.debug(
                "Prescription %s moved from medicament %s to %s",
                record.id,
                existing.medicament_id,
                record.medicament_id,
            )
            self._sync_stock(existing.medicament_id, self.rules.on_prescription_delete(existing))
            stock = self.rules.on_prescription_change(None, record.quantite, record.medicament_id)
            self._sync_stock(record.medicament_id, stock)
        return record

    def delete(self, prescription_id: Any) -> None:
        prescription = self.get(prescription_id)
        self._delete(prescription_id)
        self._sync_stock(prescription.medicament_id, self.rules.on_prescription_delete(prescription))

    def for_patient(self, patient_id: Any) -> List[Prescription]:
        return self.store.filter(PRESCRIPTIONS, lambda p: p.patient_id == coerce_id(patient_id))
