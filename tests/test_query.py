from __future__ import annotations

from hospital_admin.models.schemas import (
    APPOINTMENTS,
    DOCTORS,
    INVOICES,
    MEDICAMENTS,
    PATIENTS,
    PAYMENTS,
    ROOMS,
)
from hospital_admin.query.facade import UNKNOWN_LABEL, QueryFacade

from tests.helpers import (
    appointment_data,
    doctor_data,
    invoice_data,
    medicament_data,
    patient_data,
    payment_data,
    room_data,
)


def test_labels_degrade_to_unknown_for_dangling_ids(store, query) -> None:
    patient = store.add(PATIENTS, patient_data())
    doctor = store.add(DOCTORS, doctor_data())

    assert query.label(PATIENTS, patient.id) == "Jean Dupont"
    assert query.label(DOCTORS, doctor.id) == "Dr. Claire Leroy"
    assert query.label(PATIENTS, 999) == UNKNOWN_LABEL
    assert query.label(PATIENTS, None) == UNKNOWN_LABEL

    appointment = store.add(APPOINTMENTS, appointment_data(patient.id, doctor.id))
    store.delete(PATIENTS, patient.id)

    [row] = query.join_labels([appointment], {"patient_id": PATIENTS, "doctor_id": DOCTORS})
    assert row.record.id == appointment.id
    assert row.labels == {"patient_id": UNKNOWN_LABEL, "doctor_id": "Dr. Claire Leroy"}


def test_conflicts_use_half_open_intervals(store, query) -> None:
    existing = store.add(APPOINTMENTS, appointment_data(1, 7, heure="10:00", duree=30))

    assert [a.id for a in query.find_conflicts(7, "2025-03-10", "10:15", 30)] == [existing.id]
    assert query.has_conflict(7, "2025-03-10", "09:45", 30)
    assert not query.has_conflict(7, "2025-03-10", "10:30", 30)
    assert not query.has_conflict(7, "2025-03-10", "09:30", 30)
    assert not query.has_conflict(8, "2025-03-10", "10:15", 30)
    assert not query.has_conflict(7, "2025-03-11", "10:15", 30)
    assert not query.has_conflict(7, "2025-03-10", "10:15", 30, exclude_id=existing.id)


def test_conflict_uses_default_duration_when_missing(store, query) -> None:
    store.add(APPOINTMENTS, appointment_data(1, 7, heure="10:00", duree=0))
    assert query.has_conflict(7, "2025-03-10", "10:29")
    assert not query.has_conflict(7, "2025-03-10", "10:30")


def test_aggregates(store, query) -> None:
    store.add(MEDICAMENTS, medicament_data(code="A", stockActuel=2, stockMinimum=2))
    store.add(MEDICAMENTS, medicament_data(code="B", stockActuel=0, stockMinimum=5))
    store.add(MEDICAMENTS, medicament_data(code="C", stockActuel=50, stockMinimum=5))
    store.add(APPOINTMENTS, appointment_data(1, 1, date="2025-03-01"))
    store.add(APPOINTMENTS, appointment_data(1, 1, date="2025-03-01T10:00"))
    store.add(APPOINTMENTS, appointment_data(1, 1, date="2025-03-02"))
    store.add(INVOICES, invoice_data(1, numeroFacture="F1", totalGeneral=100))
    store.add(INVOICES, invoice_data(1, numeroFacture="F2", totalGeneral=50.5))

    assert query.low_stock_count() == 2
    assert [m.code for m in query.out_of_stock_medicaments()] == ["B"]
    assert query.today_appointment_count("2025-03-01") == 1
    assert query.total_revenue() == 150.5
    assert query.collection_counts()[MEDICAMENTS] == 3


def test_today_count_uses_injected_date(store) -> None:
    store.add(APPOINTMENTS, appointment_data(1, 1, date="2025-03-01"))
    facade = QueryFacade(store, today=lambda: "2025-03-01")
    assert facade.today_appointment_count() == 1


def test_room_reads(store, query) -> None:
    store.add(ROOMS, room_data(numero="101", capacite=2, litsOccupes=1, statut="Occupée"))
    store.add(ROOMS, room_data(numero="102"))
    store.add(ROOMS, room_data(numero="103", statut="Maintenance"))
    store.add(ROOMS, room_data(numero="104", capacite=1, litsOccupes=1, statut="Occupée"))

    assert query.available_room_count() == 1
    assert query.room_status_breakdown() == {"Occupées": 2, "Disponibles": 1, "Maintenance": 1}
    assert [r.numero for r in query.rooms_with_free_beds()] == ["101", "102"]


def test_billing_reads(store, query) -> None:
    paid = store.add(INVOICES, invoice_data(1, numeroFacture="F1", totalGeneral=100, statut="Payée"))
    open_ = store.add(INVOICES, invoice_data(1, numeroFacture="F2", totalGeneral=80))
    store.add(PAYMENTS, payment_data(open_.id, 30))
    store.add(PAYMENTS, payment_data(open_.id, 20))
    store.add(PAYMENTS, payment_data(paid.id, 100))

    assert query.total_paid(open_.id) == 50
    assert query.outstanding_balance(open_.id) == 30
    assert query.outstanding_balance(paid.id) == 0
    assert query.outstanding_balance(999) is None
    assert [i.id for i in query.open_invoices()] == [open_.id]
    assert query.service_type_breakdown() == {"Consultation": 2, "Examen": 2}


def test_dashboard_summary(store, query) -> None:
    for i in range(7):
        store.add(PATIENTS, patient_data(nom=f"P{i}"))
    doctor = store.add(DOCTORS, doctor_data())
    for hour in ("09:00", "10:00", "11:00", "12:00", "13:00", "14:00"):
        store.add(APPOINTMENTS, appointment_data(1, doctor.id, heure=hour))
    store.add(ROOMS, room_data())

    summary = query.dashboard_summary()

    assert summary.total_patients == 7
    assert summary.total_doctors == 1
    assert summary.available_rooms == 1
    assert [p.nom for p in summary.recent_patients] == ["P6", "P5", "P4", "P3", "P2"]
    assert [row.record.heure for row in summary.recent_appointments] == [
        "14:00",
        "13:00",
        "12:00",
        "11:00",
        "10:00",
    ]
    assert summary.recent_appointments[0].labels["patient_id"] == "Jean P0"
