from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from hospital_admin._infra.backend import MemoryBackend
from hospital_admin._infra.exceptions import UnknownCollectionError, UnknownFieldError
from hospital_admin._infra.store import CollectionStore
from hospital_admin.models.schemas import (
    COLLECTIONS,
    DOCTORS,
    INVOICES,
    PATIENTS,
    ROOMS,
    Patient,
)

from tests.helpers import (
    TickingClock,
    admission_data,
    appointment_data,
    doctor_data,
    invoice_data,
    medicament_data,
    patient_data,
    payment_data,
    prescription_data,
    room_data,
)

SAMPLE_FIELDS = {
    "patients": patient_data(),
    "doctors": doctor_data(),
    "appointments": appointment_data(1, 1),
    "medicaments": medicament_data(),
    "prescriptions": prescription_data(1, 1, 1),
    "rooms": room_data(),
    "admissions": admission_data(1, 1),
    "invoices": invoice_data(1),
    "payments": payment_data(1, 40),
}


def _fresh_store(backend=None) -> CollectionStore:
    return CollectionStore(backend or MemoryBackend(), clock=TickingClock())


def test_defaults_are_created_on_construction() -> None:
    backend = MemoryBackend()
    _fresh_store(backend)

    for collection in COLLECTIONS:
        assert backend.get(collection) == []
    assert backend.get("counters") == {c: 1 for c in COLLECTIONS}


def test_corrupt_collection_is_reset_and_counters_merged() -> None:
    backend = MemoryBackend()
    backend.set(PATIENTS, {"not": "a list"})
    backend.set("counters", {PATIENTS: 7})

    store = _fresh_store(backend)

    assert store.get_all(PATIENTS) == []
    assert backend.get("counters")[PATIENTS] == 7
    assert backend.get("counters")[DOCTORS] == 1


def test_lost_counters_never_hand_out_a_used_id() -> None:
    backend = MemoryBackend()
    store = _fresh_store(backend)
    first = store.add(PATIENTS, patient_data(nom="A"))
    second = store.add(PATIENTS, patient_data(nom="B"))
    backend.data[backend.prefix + "counters"] = "{not json"

    reopened = _fresh_store(backend)
    third = reopened.add(PATIENTS, patient_data(nom="C"))

    assert [p.id for p in reopened.get_all(PATIENTS)] == [first.id, second.id, 3]
    assert third.id == 3
    assert backend.get("counters")[PATIENTS] == 4


def test_auto_id_skips_ids_already_stored() -> None:
    backend = MemoryBackend()
    store = _fresh_store(backend)
    backend.set(PATIENTS, [{**patient_data(), "id": 1}, {**patient_data(), "id": 2}])

    added = store.add(PATIENTS, patient_data(nom="Martin"))

    assert added.id == 3


@pytest.mark.parametrize("collection", COLLECTIONS)
def test_added_record_is_found_again(collection: str) -> None:
    store = _fresh_store()

    added = store.add(collection, SAMPLE_FIELDS[collection])

    assert added is not None
    assert added.id == 1
    assert added.date_creation and added.date_modification
    found = store.find_by_id(collection, added.id)
    assert found.model_dump() == added.model_dump()
    expected = store.model_for(collection).model_validate(SAMPLE_FIELDS[collection])
    server = {"id", "date_creation", "date_modification"}
    assert found.model_dump(exclude=server) == expected.model_dump(exclude=server)


def test_add_keeps_given_creation_date_and_id() -> None:
    store = _fresh_store()

    added = store.add(PATIENTS, patient_data(id=10, dateCreation="2020-01-01T00:00:00.000Z"))

    assert added.id == 10
    assert added.date_creation == "2020-01-01T00:00:00.000Z"
    assert added.date_modification != added.date_creation
    assert store.add(PATIENTS, patient_data()).id == 11


def test_add_refuses_duplicate_explicit_id() -> None:
    store = _fresh_store()
    store.add(PATIENTS, patient_data(id=3))

    assert store.add(PATIENTS, patient_data(id=3)) is None
    assert len(store.get_all(PATIENTS)) == 1


def test_add_accepts_models_and_snake_case_names() -> None:
    store = _fresh_store()

    from_model = store.add(PATIENTS, Patient(nom="Martin", prenom="Sophie", historique_medical="RAS"))
    from_dict = store.add(PATIENTS, {"nom": "Petit", "historique_medical": "Asthme"})

    assert from_model.historique_medical == "RAS"
    assert store.get_raw(PATIENTS)[1]["historiqueMedical"] == "Asthme"
    assert from_dict.id == 2


def test_add_rejects_unknown_fields() -> None:
    store = _fresh_store()
    with pytest.raises(UnknownFieldError):
        store.add(PATIENTS, patient_data(favouriteColour="blue"))
    assert store.get_all(PATIENTS) == []


def test_next_id_is_strictly_increasing_and_never_reused() -> None:
    store = _fresh_store()
    first = store.add(PATIENTS, patient_data())
    second = store.add(PATIENTS, patient_data(nom="Martin"))
    assert store.delete(PATIENTS, second.id)

    third = store.add(PATIENTS, patient_data(nom="Bernard"))
    issued = [store.get_next_id(PATIENTS) for _ in range(3)]

    assert (first.id, second.id, third.id) == (1, 2, 3)
    assert issued == [4, 5, 6]
    assert store.get_next_id(DOCTORS) == 1


def test_update_merges_shallowly_and_touches_modification_date() -> None:
    store = _fresh_store()
    added = store.add(PATIENTS, patient_data())

    updated = store.update(PATIENTS, added.id, {"nom": "Durand"})

    assert updated.nom == "Durand"
    assert updated.prenom == "Jean"
    assert updated.date_creation == added.date_creation
    assert updated.date_modification > added.date_modification
    assert store.find_by_id(PATIENTS, added.id).model_dump() == updated.model_dump()


def test_update_missing_record_returns_none() -> None:
    store = _fresh_store()
    assert store.update(PATIENTS, 99, {"nom": "X"}) is None


def test_update_rejects_unknown_and_server_fields() -> None:
    store = _fresh_store()
    added = store.add(PATIENTS, patient_data())

    with pytest.raises(UnknownFieldError):
        store.update(PATIENTS, added.id, {"shoeSize": 44})
    with pytest.raises(UnknownFieldError):
        store.update(PATIENTS, added.id, {"id": 5})
    assert store.find_by_id(PATIENTS, added.id).model_dump() == added.model_dump()


def test_update_rejects_wrongly_typed_values() -> None:
    store = _fresh_store()
    added = store.add(PATIENTS, patient_data())

    with pytest.raises(ValueError):
        store.update(PATIENTS, added.id, {"age": "quarante"})


def test_update_that_invalidates_the_record_raises() -> None:
    store = _fresh_store()
    added = store.add(PATIENTS, patient_data())

    with pytest.raises(ValidationError):
        store.update(PATIENTS, added.id, {"nom": None})
    assert store.find_by_id(PATIENTS, added.id).nom == "Dupont"


def test_delete_reports_whether_something_was_removed() -> None:
    store = _fresh_store()
    added = store.add(PATIENTS, patient_data())

    assert store.delete(PATIENTS, added.id) is True
    assert store.delete(PATIENTS, added.id) is False
    assert store.find_by_id(PATIENTS, added.id) is None


def test_search_is_case_insensitive_substring_in_order() -> None:
    store = _fresh_store()
    store.add(PATIENTS, patient_data(nom="Dupont", prenom="Jean"))
    store.add(PATIENTS, patient_data(nom="Martin", prenom="Sophie", email="s.martin@email.fr"))
    store.add(PATIENTS, patient_data(nom="Jeanneau", prenom="Paul"))

    for term in ("jean", "JEAN", "Jean"):
        names = [p.nom for p in store.search(PATIENTS, term)]
        assert names == ["Dupont", "Jeanneau"]

    assert [p.nom for p in store.search(PATIENTS, "martin@")] == ["Martin"]
    assert store.search(PATIENTS, "dupont", ["prenom"]) == []
    assert [p.nom for p in store.search(PATIENTS, "dupont", ["nom"])] == ["Dupont"]


def test_failed_write_returns_none_and_leaves_data_intact() -> None:
    backend = MemoryBackend()
    store = _fresh_store(backend)
    used = sum(len(v.encode("utf-8")) for v in backend.data.values())
    backend.quota_bytes = used + 20

    assert store.add(PATIENTS, patient_data()) is None
    assert store.get_all(PATIENTS) == []


def test_export_import_round_trip() -> None:
    store = _fresh_store()
    for collection in COLLECTIONS:
        store.add(collection, SAMPLE_FIELDS[collection])
    store.add(PATIENTS, patient_data(nom="Martin"))
    before = {c: store.get_raw(c) for c in COLLECTIONS}

    document = store.export_data()
    assert set(json.loads(document)) == set(COLLECTIONS)
    assert store.import_data(document)
    assert {c: store.get_raw(c) for c in COLLECTIONS} == before

    other = _fresh_store()
    assert other.import_data(json.loads(document))
    assert {c: other.get_raw(c) for c in COLLECTIONS} == before
    assert other.add(PATIENTS, patient_data()).id == 3


def test_import_rejects_malformed_documents() -> None:
    store = _fresh_store()
    assert store.import_data("{broken") is False
    assert store.import_data("[1, 2]") is False
    assert store.import_data({PATIENTS: "nope"}) is False


def test_import_ignores_unknown_keys() -> None:
    store = _fresh_store()
    assert store.import_data({"unicorns": [1], ROOMS: [room_data(id=4)]})
    assert [r.numero for r in store.get_all(ROOMS)] == ["101"]


def test_bulk_load_never_lowers_counter() -> None:
    store = _fresh_store()
    for _ in range(5):
        store.get_next_id(INVOICES)

    assert store.bulk_load(INVOICES, [invoice_data(1, id=2)])

    assert store.get_next_id(INVOICES) == 6


def test_malformed_records_are_skipped_by_typed_readers() -> None:
    backend = MemoryBackend()
    store = _fresh_store(backend)
    backend.set(PATIENTS, [{"id": 1, "nom": "X", "age": "abc"}, {"id": 2, "nom": "Y", "age": 30}])

    assert [p.id for p in store.get_all(PATIENTS)] == [2]
    assert len(store.get_raw(PATIENTS)) == 2
    assert store.find_by_id(PATIENTS, 1) is None


def test_statistics_and_clear() -> None:
    store = _fresh_store()
    store.add(PATIENTS, patient_data())
    store.add(DOCTORS, doctor_data())

    stats = store.statistics()
    assert stats[PATIENTS] == 1 and stats[DOCTORS] == 1 and stats[ROOMS] == 0

    assert store.clear()
    assert store.statistics() == {c: 0 for c in COLLECTIONS}
    assert store.get_next_id(PATIENTS) == 1


def test_unknown_collection_is_a_programming_error() -> None:
    store = _fresh_store()
    with pytest.raises(UnknownCollectionError):
        store.get_all("wards")
    with pytest.raises(KeyError):
        store.add("wards", {})
