"""Valid form payloads used across the tests."""
from __future__ import annotations

import itertools
from typing import Any, Dict


class TickingClock:
    """ISO stamps one millisecond apart, so every write gets a distinct one."""

    def __init__(self) -> None:
        self._ticks = itertools.count()

    def __call__(self) -> str:
        return f"2025-03-01T09:00:00.{next(self._ticks):03d}Z"


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(base)
    data.update(overrides)
    return data


def patient_data(**overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "nom": "Dupont",
            "prenom": "Jean",
            "age": 45,
            "sexe": "M",
            "telephone": "01 23 45 67 89",
            "email": "jean.dupont@email.fr",
            "adresse": "12 rue de la Paix, Paris",
        },
        overrides,
    )


def doctor_data(**overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "nom": "Leroy",
            "prenom": "Claire",
            "specialite": "Cardiologie",
            "service": "Cardiologie",
            "telephone": "01 40 00 00 01",
            "horaireDebut": "08:00",
            "horaireFin": "16:00",
        },
        overrides,
    )


def appointment_data(patient_id: int, doctor_id: int, **overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "patientId": patient_id,
            "doctorId": doctor_id,
            "date": "2025-03-10",
            "heure": "10:00",
            "duree": 30,
            "motif": "Contrôle",
        },
        overrides,
    )


def medicament_data(**overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "nom": "Paracétamol",
            "code": "PARA500",
            "famille": "Antalgique",
            "dosage": "500mg",
            "stockInitial": 10,
            "stockActuel": 10,
            "stockMinimum": 2,
            "prixUnitaire": 0.15,
        },
        overrides,
    )


def prescription_data(patient_id: int, doctor_id: int, medicament_id: int, **overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "patientId": patient_id,
            "doctorId": doctor_id,
            "medicamentId": medicament_id,
            "datePrescription": "2025-03-01",
            "quantite": 4,
            "posologie": "1 comprimé matin et soir",
        },
        overrides,
    )


def room_data(**overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "numero": "101",
            "etage": 1,
            "type": "Double",
            "capacite": 2,
            "service": "Cardiologie",
            "prixParJour": 150,
        },
        overrides,
    )


def admission_data(patient_id: int, room_id: int, **overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "patientId": patient_id,
            "roomId": room_id,
            "dateAdmission": "2025-03-01",
            "heureAdmission": "08:30",
            "motifAdmission": "Observation",
        },
        overrides,
    )


def invoice_data(patient_id: int, **overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "patientId": patient_id,
            "numeroFacture": "FAC-2025-001",
            "dateFacture": "2025-03-01",
            "services": [
                {"type": "Consultation", "description": "Consultation", "quantite": 1, "prixUnitaire": 50},
                {"type": "Examen", "description": "ECG", "quantite": 1, "prixUnitaire": 30},
            ],
            "tva": 25,
        },
        overrides,
    )


def payment_data(invoice_id: int, montant: float, **overrides: Any) -> Dict[str, Any]:
    return _merge(
        {
            "invoiceId": invoice_id,
            "datePaiement": "2025-03-02",
            "montantPaiement": montant,
            "modePaiement": "Carte bancaire",
        },
        overrides,
    )


def fail_writes_to(monkeypatch: Any, backend: Any, key: str) -> None:
    """Make every later write of ``key`` on ``backend`` raise ``OSError``."""

    original = backend._write

    def _write(full_key: str, value: str) -> None:
        if full_key == backend.prefix + key:
            raise OSError(f"disk full while writing {key}")
        original(full_key, value)

    monkeypatch.setattr(backend, "_write", _write)
