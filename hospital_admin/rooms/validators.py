"""Room and admission form validation."""
from __future__ import annotations

from typing import Iterable, List, Optional

from hospital_admin.models.schemas import Admission, AdmissionStatus, Room, RoomStatus
from hospital_admin.utils.timefmt import combine
from hospital_admin.utils.validation import required, required_ids

MIN_CAPACITY = 1
MAX_CAPACITY = 10

REQUIRED_ROOM_FIELDS = [
    ("numero", "Le numéro de chambre est obligatoire"),
    ("type", "Le type de chambre est obligatoire"),
    ("service", "Le service est obligatoire"),
]

REQUIRED_ADMISSION_IDS = [
    ("patient_id", "Le patient est obligatoire"),
    ("room_id", "La chambre est obligatoire"),
]
REQUIRED_ADMISSION_FIELDS = [
    ("date_admission", "La date d'admission est obligatoire"),
    ("heure_admission", "L'heure d'admission est obligatoire"),
    ("motif_admission", "Le motif d'admission est obligatoire"),
]


def validate_room(room: Room, others: Iterable[Room] = ()) -> List[str]:
    errors = required(room, REQUIRED_ROOM_FIELDS)
    if room.etage < 0:
        errors.append("L'étage ne peut pas être négatif")
    if not MIN_CAPACITY <= room.capacite <= MAX_CAPACITY:
        errors.append(f"La capacité doit être entre {MIN_CAPACITY} et {MAX_CAPACITY}")
    elif room.capacite < room.lits_occupes:
        errors.append(
            f"La capacité ne peut pas être inférieure au nombre de lits occupés ({room.lits_occupes})"
        )
    if room.prix_par_jour < 0:
        errors.append("Le prix par jour ne peut pas être négatif")
    if room.statut not in RoomStatus.values():
        errors.append(f"Statut de chambre inconnu: {room.statut}")

    numero = (room.numero or "").strip().lower()
    if numero and any(r.id != room.id and (r.numero or "").strip().lower() == numero for r in others):
        errors.append("Ce numéro de chambre existe déjà")
    return errors


def validate_admission(admission: Admission, room: Optional[Room] = None, takes_bed: bool = False) -> List[str]:
    """Check an admission form.

    ``takes_bed`` is true when the write would occupy a new bed in ``room``
    (new active admission, room switch or reactivation).
    """

    errors = required_ids(admission, REQUIRED_ADMISSION_IDS)
    errors += required(admission, REQUIRED_ADMISSION_FIELDS)
    if admission.statut_admission not in AdmissionStatus.values():
        errors.append(f"Statut d'admission inconnu: {admission.statut_admission}")

    if admission.date_admission and admission.date_sortie:
        entry = combine(admission.date_admission, admission.heure_admission)
        exit_ = combine(admission.date_sortie, admission.heure_sortie)
        if entry is None or exit_ is None:
            errors.append("Les dates d'admission ou de sortie sont invalides")
        elif exit_ < entry:
            errors.append("La date de sortie ne peut pas être antérieure à la date d'admission")

    if admission.room_id and room is None:
        errors.append("La chambre sélectionnée n'existe pas")
    elif room is not None and takes_bed:
        if room.statut == RoomStatus.MAINTENANCE.value:
            errors.append("La chambre sélectionnée est en maintenance")
        elif room.lits_occupes >= room.capacite:
            errors.append("La chambre sélectionnée est complète")
    return errors
