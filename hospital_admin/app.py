"""Composition root: one store and its collaborators per session."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from hospital_admin._infra.backend import KeyValueBackend, build_backend
from hospital_admin._infra.seed import load_seed_if_empty
from hospital_admin._infra.store import CollectionStore
from hospital_admin.appointments.services import AppointmentService
from hospital_admin.billing.services import InvoiceService, PaymentService
from hospital_admin.doctors.services import DoctorService
from hospital_admin.patients.services import PatientService
from hospital_admin.pharmacy.services import MedicamentService, PrescriptionService
from hospital_admin.query.facade import QueryFacade
from hospital_admin.rooms.services import AdmissionService, RoomService
from hospital_admin.rules.consistency import ConsistencyRules
from hospital_admin.utils.app_settings import DEFAULT_TVA, AppSettings, load_settings
from hospital_admin.utils.timefmt import today_iso, utcnow_iso

logger = logging.getLogger(__name__)


class HospitalApp:
    """Owns the backend and hands the same store to every service."""

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        default_tva: float = DEFAULT_TVA,
        clock: Callable[[], str] = utcnow_iso,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.backend = backend
        self.store = CollectionStore(backend, clock=clock)
        self.rules = ConsistencyRules(self.store)
        self.query = QueryFacade(self.store, today=today_iso if now is None else (lambda: today_iso(now())))

        deps = (self.store, self.rules, self.query)
        self.patients = PatientService(*deps)
        self.doctors = DoctorService(*deps)
        self.appointments = AppointmentService(*deps, now=now or datetime.now)
        self.medicaments = MedicamentService(*deps)
        self.prescriptions = PrescriptionService(*deps)
        self.rooms = RoomService(*deps)
        self.admissions = AdmissionService(*deps)
        self.invoices = InvoiceService(*deps, default_tva=default_tva)
        self.payments = PaymentService(*deps)

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None, *, seed: bool = True) -> "HospitalApp":
        settings = settings or load_settings()
        logger.debug("Opening %s store (prefix %r)", settings.backend, settings.prefix)
        app = cls(build_backend(settings), default_tva=settings.default_tva)
        if seed and settings.seed_path is not None:
            app.seed(settings.seed_path)
        return app

    def seed(self, source=None) -> List[str]:
        return load_seed_if_empty(self.store, source)

    def close(self) -> None:
        self.backend.close()

    def __enter__(self) -> "HospitalApp":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["HospitalApp"]
