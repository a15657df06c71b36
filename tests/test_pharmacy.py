from __future__ import annotations

import pytest

from hospital_admin._infra.exceptions import PersistenceFailed, RecordNotFound, ValidationFailed

from tests.helpers import fail_writes_to, medicament_data, prescription_data


@pytest.fixture()
def medicament(app):
    return app.medicaments.create(medicament_data(stockActuel=10))


def _stock(app, medicament_id: int) -> int:
    return app.medicaments.get(medicament_id).stock_actuel


def test_current_stock_defaults_to_initial_stock(app) -> None:
    data = medicament_data(stockInitial=25)
    data.pop("stockActuel")
    assert app.medicaments.create(data).stock_actuel == 25


def test_medicament_code_must_be_unique(app, medicament) -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        app.medicaments.create(medicament_data(code="para500"))
    assert excinfo.value.messages == ["Ce code de médicament existe déjà"]

    # keeping its own code on update is fine
    assert app.medicaments.update(medicament.id, {"code": "PARA500", "prixUnitaire": 0.2}).prix_unitaire == 0.2


def test_medicament_negative_values(app) -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        app.medicaments.create(medicament_data(stockMinimum=-1, prixUnitaire=-2))
    assert excinfo.value.messages == [
        "Le stock minimum ne peut pas être négatif",
        "Le prix unitaire ne peut pas être négatif",
    ]


def test_prescription_lifecycle_moves_stock(app, medicament) -> None:
    prescription = app.prescriptions.create(prescription_data(1, 1, medicament.id, quantite=4))
    assert _stock(app, medicament.id) == 6

    app.prescriptions.update(prescription.id, {"quantite": 7})
    assert _stock(app, medicament.id) == 3

    app.prescriptions.update(prescription.id, {"quantite": 2})
    assert _stock(app, medicament.id) == 8

    app.prescriptions.delete(prescription.id)
    assert _stock(app, medicament.id) == 10
    with pytest.raises(RecordNotFound):
        app.prescriptions.get(prescription.id)


def test_insufficient_stock_is_reported(app, medicament) -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        app.prescriptions.create(prescription_data(1, 1, medicament.id, quantite=11))
    assert excinfo.value.messages == ["Stock insuffisant: 10 disponible, 11 demandé"]
    assert _stock(app, medicament.id) == 10


def test_update_may_use_the_quantity_it_already_holds(app, medicament) -> None:
    prescription = app.prescriptions.create(prescription_data(1, 1, medicament.id, quantite=8))
    assert _stock(app, medicament.id) == 2

    app.prescriptions.update(prescription.id, {"quantite": 10})
    assert _stock(app, medicament.id) == 0

    with pytest.raises(ValidationFailed) as excinfo:
        app.prescriptions.update(prescription.id, {"quantite": 11})
    assert excinfo.value.messages == ["Stock insuffisant: 10 disponible, 11 demandé"]


def test_switching_medicament_restores_the_old_one(app, medicament) -> None:
    other = app.medicaments.create(medicament_data(code="AMOX1G", nom="Amoxicilline", stockActuel=5))
    prescription = app.prescriptions.create(prescription_data(1, 1, medicament.id, quantite=4))

    app.prescriptions.update(prescription.id, {"medicamentId": other.id, "quantite": 3})

    assert _stock(app, medicament.id) == 10
    assert _stock(app, other.id) == 2


def test_prescription_validation(app, medicament) -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        app.prescriptions.create({"medicamentId": 999, "quantite": 0})
    assert excinfo.value.messages == [
        "Le patient est obligatoire",
        "Le médecin est obligatoire",
        "La date de prescription est obligatoire",
        "La posologie est obligatoire",
        "La quantité doit être supérieure à 0",
        "Le médicament sélectionné n'existe pas",
    ]


def test_low_stock_listing(app, medicament) -> None:
    app.prescriptions.create(prescription_data(1, 1, medicament.id, quantite=8))
    assert [m.id for m in app.medicaments.low_stock()] == [medicament.id]
    assert [p.quantite for p in app.prescriptions.for_patient(1)] == [8]


def test_prescription_is_reported_when_stock_cannot_be_saved(app, backend, medicament, monkeypatch) -> None:
    fail_writes_to(monkeypatch, backend, "medicaments")

    with pytest.raises(PersistenceFailed) as excinfo:
        app.prescriptions.create(prescription_data(1, 1, medicament.id, quantite=4))

    assert excinfo.value.collection == "medicaments"
    assert _stock(app, medicament.id) == 10


def test_stock_rule_on_missing_medicament_is_not_a_failure(app, medicament) -> None:
    prescription = app.prescriptions.create(prescription_data(1, 1, medicament.id, quantite=4))
    app.store.delete("medicaments", medicament.id)

    app.prescriptions.delete(prescription.id)

    assert app.prescriptions.list() == []
