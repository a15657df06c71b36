"""Read-side helpers used by the views and by the service validators.

Nothing here writes. Foreign keys are weak references: a dangling id
resolves to ``None`` and is labelled ``"Inconnu"`` rather than failing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from hospital_admin._infra.store import CollectionStore, coerce_id
from hospital_admin.models.schemas import (
    ADMISSIONS,
    APPOINTMENTS,
    DOCTORS,
    INVOICES,
    MEDICAMENTS,
    PATIENTS,
    PAYMENTS,
    ROOMS,
    Admission,
    AdmissionStatus,
    Appointment,
    Invoice,
    InvoiceStatus,
    Medicament,
    Patient,
    Payment,
    Record,
    Room,
    RoomStatus,
)
from hospital_admin.utils.timefmt import intervals_overlap, time_to_minutes, today_iso

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Inconnu"
DEFAULT_DURATION = 30
RECENT_LIMIT = 5


@dataclass
class JoinedRow:
    """A record plus display labels for its foreign keys."""

    record: Record
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class DashboardSummary:
    total_patients: int = 0
    total_doctors: int = 0
    today_appointments: int = 0
    available_rooms: int = 0
    low_stock: int = 0
    total_revenue: float = 0.0
    room_breakdown: Dict[str, int] = field(default_factory=dict)
    service_breakdown: Dict[str, int] = field(default_factory=dict)
    recent_appointments: List[JoinedRow] = field(default_factory=list)
    recent_patients: List[Patient] = field(default_factory=list)


def _label_for(collection: str, record: Record) -> str:
    if collection == PATIENTS:
        return f"{record.prenom} {record.nom}".strip() or UNKNOWN_LABEL
    if collection == DOCTORS:
        return f"Dr. {record.prenom} {record.nom}".strip()
    if collection == MEDICAMENTS:
        return f"{record.nom} {record.dosage}".strip() or UNKNOWN_LABEL
    if collection == ROOMS:
        return f"Chambre {record.numero}"
    if collection == INVOICES:
        return record.numero_facture or f"Facture #{record.id}"
    return f"#{record.id}"


class QueryFacade:
    """Lookups, joins, aggregates and appointment conflict detection."""

    def __init__(self, store: CollectionStore, *, today: Callable[[], str] = today_iso) -> None:
        self.store = store
        self._today = today

    # ----- Joins -------------------------------------------------------
    def resolve(self, collection: str, record_id: Any) -> Optional[Record]:
        if record_id is None:
            return None
        return self.store.find_by_id(collection, record_id)

    def label(self, collection: str, record_id: Any) -> str:
        """Display label of the referenced record, ``"Inconnu"`` when dangling."""

        record = self.resolve(collection, record_id)
        if record is None:
            return UNKNOWN_LABEL
        return _label_for(collection, record)

    def join_labels(self, records: Sequence[Record], refs: Mapping[str, str]) -> List[JoinedRow]:
        """Attach labels for the foreign keys named in ``refs``.

        ``refs`` maps an attribute (``patient_id``) to the collection it
        points into (``patients``).
        """

        rows: List[JoinedRow] = []
        for record in records:
            labels = {attr: self.label(collection, getattr(record, attr, None)) for attr, collection in refs.items()}
            rows.append(JoinedRow(record=record, labels=labels))
        return rows

    def by_status(self, collection: str, status: str) -> List[Record]:
        model = self.store.model_for(collection)
        attr = "statut_admission" if "statut_admission" in model.model_fields else "statut"
        return self.store.filter(collection, lambda r: getattr(r, attr, None) == status)

    # ----- Aggregates --------------------------------------------------
    def collection_counts(self) -> Dict[str, int]:
        return self.store.statistics()

    def low_stock_medicaments(self) -> List[Medicament]:
        return self.store.filter(MEDICAMENTS, lambda m: m.stock_actuel <= m.stock_minimum)

    def low_stock_count(self) -> int:
        return len(self.low_stock_medicaments())

    def out_of_stock_medicaments(self) -> List[Medicament]:
        return self.store.filter(MEDICAMENTS, lambda m: m.stock_actuel <= 0)

    def today_appointment_count(self, today: Optional[str] = None) -> int:
        day = today or self._today()
        return len(self.store.filter(APPOINTMENTS, lambda a: a.date == day))

    def total_revenue(self) -> float:
        return sum(i.total_general for i in self.store.get_all(INVOICES))

    def available_room_count(self) -> int:
        return len(self.by_status(ROOMS, RoomStatus.DISPONIBLE.value))

    def room_status_breakdown(self) -> Dict[str, int]:
        rooms: List[Room] = self.store.get_all(ROOMS)
        return {
            "Occupées": sum(1 for r in rooms if r.statut == RoomStatus.OCCUPEE.value),
            "Disponibles": sum(1 for r in rooms if r.statut == RoomStatus.DISPONIBLE.value),
            "Maintenance": sum(1 for r in rooms if r.statut == RoomStatus.MAINTENANCE.value),
        }

    def service_type_breakdown(self) -> Dict[str, int]:
        """Number of invoice lines per service type."""

        counts: Dict[str, int] = {}
        for invoice in self.store.get_all(INVOICES):
            for line in invoice.services:
                counts[line.type] = counts.get(line.type, 0) + 1
        return counts

    def recent_appointments(self, limit: int = RECENT_LIMIT) -> List[JoinedRow]:
        latest = list(reversed(self.store.get_all(APPOINTMENTS)[-limit:]))
        return self.join_labels(latest, {"patient_id": PATIENTS, "doctor_id": DOCTORS})

    def recent_patients(self, limit: int = RECENT_LIMIT) -> List[Patient]:
        return list(reversed(self.store.get_all(PATIENTS)[-limit:]))

    def dashboard_summary(self) -> DashboardSummary:
        counts = self.collection_counts()
        return DashboardSummary(
            total_patients=counts.get(PATIENTS, 0),
            total_doctors=counts.get(DOCTORS, 0),
            today_appointments=self.today_appointment_count(),
            available_rooms=self.available_room_count(),
            low_stock=self.low_stock_count(),
            total_revenue=self.total_revenue(),
            room_breakdown=self.room_status_breakdown(),
            service_breakdown=self.service_type_breakdown(),
            recent_appointments=self.recent_appointments(),
            recent_patients=self.recent_patients(),
        )

    # ----- Appointments ------------------------------------------------
    def find_conflicts(
        self,
        doctor_id: Any,
        date: str,
        heure: str,
        duree: Optional[int] = None,
        exclude_id: Any = None,
    ) -> List[Appointment]:
        """Appointments of ``doctor_id`` on ``date`` overlapping ``[heure, heure+duree)``.

        ``exclude_id`` skips the appointment being edited. Cancelled
        appointments still count; a blank ``heure`` never conflicts.
        """

        start = time_to_minutes(heure)
        doctor_id = coerce_id(doctor_id)
        exclude_id = coerce_id(exclude_id)
        if start is None or doctor_id is None:
            return []
        end = start + (duree or DEFAULT_DURATION)

        conflicts: List[Appointment] = []
        for appt in self.store.get_all(APPOINTMENTS):
            if appt.doctor_id != doctor_id or appt.date != date:
                continue
            if exclude_id is not None and appt.id == exclude_id:
                continue
            other_start = time_to_minutes(appt.heure)
            if other_start is None:
                continue
            other_end = other_start + (appt.duree or DEFAULT_DURATION)
            if intervals_overlap(start, end, other_start, other_end):
                conflicts.append(appt)
        return conflicts

    def has_conflict(self, doctor_id: Any, date: str, heure: str, duree: Optional[int] = None, exclude_id: Any = None) -> bool:
        return bool(self.find_conflicts(doctor_id, date, heure, duree, exclude_id))

    # ----- Billing -----------------------------------------------------
    def payments_for_invoice(self, invoice_id: Any) -> List[Payment]:
        wanted = coerce_id(invoice_id)
        return self.store.filter(PAYMENTS, lambda p: p.invoice_id == wanted)

    def total_paid(self, invoice_id: Any) -> float:
        return sum(p.montant_paiement for p in self.payments_for_invoice(invoice_id))

    def outstanding_balance(self, invoice_id: Any) -> Optional[float]:
        invoice: Optional[Invoice] = self.resolve(INVOICES, invoice_id)
        if invoice is None:
            return None
        return max(0.0, invoice.total_general - self.total_paid(invoice.id))

    def open_invoices(self) -> List[Invoice]:
        return self.store.filter(INVOICES, lambda i: i.statut != InvoiceStatus.PAYEE.value)

    # ----- Rooms -------------------------------------------------------
    def rooms_with_free_beds(self) -> List[Room]:
        return self.store.filter(
            ROOMS,
            lambda r: r.lits_occupes < r.capacite and r.statut not in RoomStatus.sticky(),
        )

    def active_admissions_for_room(self, room_id: Any) -> List[Admission]:
        return self.store.filter(
            ADMISSIONS,
            lambda a: a.room_id == coerce_id(room_id) and a.statut_admission != AdmissionStatus.SORTI.value,
        )


__all__ = ["DashboardSummary", "JoinedRow", "QueryFacade", "UNKNOWN_LABEL"]
