"""Medicament and prescription form validation."""
from __future__ import annotations

from typing import Iterable, List, Optional

from hospital_admin.models.schemas import Medicament, Prescription, PrescriptionStatus
from hospital_admin.utils.validation import required, required_ids

REQUIRED_MEDICAMENT_FIELDS = [
    ("nom", "Le nom du médicament est obligatoire"),
    ("code", "Le code est obligatoire"),
    ("famille", "La famille est obligatoire"),
]

REQUIRED_PRESCRIPTION_IDS = [
    ("patient_id", "Le patient est obligatoire"),
    ("doctor_id", "Le médecin est obligatoire"),
    ("medicament_id", "Le médicament est obligatoire"),
]
REQUIRED_PRESCRIPTION_FIELDS = [
    ("date_prescription", "La date de prescription est obligatoire"),
    ("posologie", "La posologie est obligatoire"),
]


def validate_medicament(medicament: Medicament, others: Iterable[Medicament] = ()) -> List[str]:
    """``others`` are the stored medicaments, used for the unique code check."""

    errors = required(medicament, REQUIRED_MEDICAMENT_FIELDS)
    if medicament.stock_initial < 0:
        errors.append("Le stock initial ne peut pas être négatif")
    if medicament.stock_actuel < 0:
        errors.append("Le stock actuel ne peut pas être négatif")
    if medicament.stock_minimum < 0:
        errors.append("Le stock minimum ne peut pas être négatif")
    if medicament.prix_unitaire < 0:
        errors.append("Le prix unitaire ne peut pas être négatif")

    code = (medicament.code or "").strip().lower()
    if code and any(
        m.id != medicament.id and (m.code or "").strip().lower() == code for m in others
    ):
        errors.append("Ce code de médicament existe déjà")
    return errors


def validate_prescription(
    prescription: Prescription,
    medicament: Optional[Medicament] = None,
    available: Optional[int] = None,
) -> List[str]:
    """Check a prescription form.

    ``available`` is the stock this prescription may draw on: the current
    stock, plus the quantity it already holds when it is being edited.
    """

    errors = required_ids(prescription, REQUIRED_PRESCRIPTION_IDS)
    errors += required(prescription, REQUIRED_PRESCRIPTION_FIELDS)
    if prescription.quantite is None or prescription.quantite <= 0:
        errors.append("La quantité doit être supérieure à 0")
    if prescription.statut not in PrescriptionStatus.values():
        errors.append(f"Statut de prescription inconnu: {prescription.statut}")

    if prescription.medicament_id and medicament is None:
        errors.append("Le médicament sélectionné n'existe pas")
    elif medicament is not None and prescription.quantite and prescription.quantite > 0:
        stock = medicament.stock_actuel if available is None else available
        if stock < prescription.quantite:
            errors.append(f"Stock insuffisant: {stock} disponible, {prescription.quantite} demandé")
    return errors
