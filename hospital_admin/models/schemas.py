"""Pydantic models for every stored entity.

Attributes are snake_case; the persisted (and accepted) keys are the
camelCase names used by the stored documents (``stockActuel``,
``litsOccupes``, ``dateCreation`` ...). Models only check types; ranges and
required-ness are enforced by the per-domain validators before a write.

Each entity has a generated ``*Update`` companion where every field is
optional and unknown fields are forbidden. Server-managed fields (``id``,
``dateCreation``, ``dateModification``) are not part of the update models.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Status vocabularies
# ---------------------------------------------------------------------------


class _Choices(str, Enum):
    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


class AppointmentStatus(_Choices):
    PROGRAMME = "Programmé"
    CONFIRME = "Confirmé"
    EN_COURS = "En cours"
    TERMINE = "Terminé"
    ANNULE = "Annulé"


class PrescriptionStatus(_Choices):
    EN_ATTENTE = "En attente"
    DELIVRE = "Délivré"
    TERMINE = "Terminé"


class RoomStatus(_Choices):
    DISPONIBLE = "Disponible"
    OCCUPEE = "Occupée"
    MAINTENANCE = "Maintenance"
    RESERVEE = "Réservée"

    @classmethod
    def sticky(cls) -> Tuple["RoomStatus", ...]:
        """Statuses that occupancy-derived recomputation never overwrites."""
        return (cls.MAINTENANCE, cls.RESERVEE)


class AdmissionStatus(_Choices):
    ACTIF = "Actif"
    TRANSFERE = "Transféré"
    SORTI = "Sorti"


class InvoiceStatus(_Choices):
    NON_PAYEE = "Non payée"
    PARTIELLEMENT_PAYEE = "Partiellement payée"
    PAYEE = "Payée"
    ANNULEE = "Annulée"


class PaymentMode(_Choices):
    ESPECES = "Espèces"
    CARTE = "Carte bancaire"
    CHEQUE = "Chèque"
    VIREMENT = "Virement"
    ASSURANCE = "Assurance"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class Record(BaseModel):
    """Fields shared by every stored record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: Optional[int] = None
    date_creation: Optional[str] = None
    date_modification: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """Return the mapping written to storage (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


class Patient(Record):
    nom: str = ""
    prenom: str = ""
    age: int = 0
    sexe: str = ""
    telephone: str = ""
    email: Optional[str] = None
    adresse: str = ""
    historique_medical: Optional[str] = None


class Doctor(Record):
    nom: str = ""
    prenom: str = ""
    specialite: str = ""
    service: str = ""
    telephone: str = ""
    email: Optional[str] = None
    horaire_debut: str = ""
    horaire_fin: str = ""
    adresse: Optional[str] = None


class Appointment(Record):
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    date: str = ""
    heure: str = ""
    duree: int = 30
    statut: str = AppointmentStatus.PROGRAMME.value
    motif: str = ""
    notes: Optional[str] = None


class Medicament(Record):
    nom: str = ""
    code: str = ""
    famille: str = ""
    dosage: str = ""
    stock_initial: int = 0
    stock_actuel: int = 0
    stock_minimum: int = 0
    prix_unitaire: float = 0.0
    fournisseur: Optional[str] = None
    description: Optional[str] = None


class Prescription(Record):
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    medicament_id: Optional[int] = None
    date_prescription: str = ""
    quantite: int = 0
    posologie: str = ""
    duree_traitement: Optional[str] = None
    statut: str = PrescriptionStatus.EN_ATTENTE.value
    instructions: Optional[str] = None


class Room(Record):
    numero: str = ""
    etage: int = 0
    type: str = ""
    capacite: int = 1
    lits_occupes: int = 0
    service: str = ""
    prix_par_jour: float = 0.0
    equipements: Optional[str] = None
    statut: str = RoomStatus.DISPONIBLE.value


class Admission(Record):
    patient_id: Optional[int] = None
    room_id: Optional[int] = None
    date_admission: str = ""
    heure_admission: str = ""
    motif_admission: str = ""
    statut_admission: str = AdmissionStatus.ACTIF.value
    date_sortie: Optional[str] = None
    heure_sortie: Optional[str] = None
    notes_admission: Optional[str] = None


class ServiceLine(BaseModel):
    """One billed line of an invoice."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    type: str = ""
    description: str = ""
    quantite: float = 0
    prix_unitaire: float = 0.0

    @property
    def montant(self) -> float:
        return self.quantite * self.prix_unitaire


class Invoice(Record):
    patient_id: Optional[int] = None
    numero_facture: str = ""
    date_facture: str = ""
    statut: str = InvoiceStatus.NON_PAYEE.value
    services: List[ServiceLine] = Field(default_factory=list)
    sous_total: float = 0.0
    tva: float = 20.0
    montant_tva: float = 0.0
    total_general: float = 0.0
    notes_facture: Optional[str] = None


class Payment(Record):
    invoice_id: Optional[int] = None
    date_paiement: str = ""
    montant_paiement: float = 0.0
    mode_paiement: str = ""
    reference_paiement: Optional[str] = None
    notes_paiement: Optional[str] = None


# ---------------------------------------------------------------------------
# Partial update models
# ---------------------------------------------------------------------------

SERVER_FIELDS = frozenset({"id", "date_creation", "date_modification"})


def partial_model(model: Type[Record]) -> Type[BaseModel]:
    """Build ``<Model>Update``: every entity field optional, extras forbidden."""

    definitions: Dict[str, Any] = {}
    for name, info in model.model_fields.items():
        if name in SERVER_FIELDS:
            continue
        definitions[name] = (Optional[info.annotation], None)
    return create_model(
        f"{model.__name__}Update",
        __config__=ConfigDict(
            alias_generator=to_camel,
            populate_by_name=True,
            extra="forbid",
        ),
        **definitions,
    )


PatientUpdate = partial_model(Patient)
DoctorUpdate = partial_model(Doctor)
AppointmentUpdate = partial_model(Appointment)
MedicamentUpdate = partial_model(Medicament)
PrescriptionUpdate = partial_model(Prescription)
RoomUpdate = partial_model(Room)
AdmissionUpdate = partial_model(Admission)
InvoiceUpdate = partial_model(Invoice)
PaymentUpdate = partial_model(Payment)


# ---------------------------------------------------------------------------
# Collection registry
# ---------------------------------------------------------------------------

PATIENTS = "patients"
DOCTORS = "doctors"
APPOINTMENTS = "appointments"
MEDICAMENTS = "medicaments"
PRESCRIPTIONS = "prescriptions"
ROOMS = "rooms"
ADMISSIONS = "admissions"
INVOICES = "invoices"
PAYMENTS = "payments"

ENTITY_MODELS: Dict[str, Type[Record]] = {
    PATIENTS: Patient,
    DOCTORS: Doctor,
    APPOINTMENTS: Appointment,
    MEDICAMENTS: Medicament,
    PRESCRIPTIONS: Prescription,
    ROOMS: Room,
    ADMISSIONS: Admission,
    INVOICES: Invoice,
    PAYMENTS: Payment,
}

UPDATE_MODELS: Dict[str, Type[BaseModel]] = {
    PATIENTS: PatientUpdate,
    DOCTORS: DoctorUpdate,
    APPOINTMENTS: AppointmentUpdate,
    MEDICAMENTS: MedicamentUpdate,
    PRESCRIPTIONS: PrescriptionUpdate,
    ROOMS: RoomUpdate,
    ADMISSIONS: AdmissionUpdate,
    INVOICES: InvoiceUpdate,
    PAYMENTS: PaymentUpdate,
}

COLLECTIONS: Tuple[str, ...] = tuple(ENTITY_MODELS)


def accepted_keys(model: Type[BaseModel]) -> frozenset[str]:
    """Attribute names and aliases accepted as input for ``model``."""

    keys = set()
    for name, info in model.model_fields.items():
        keys.add(name)
        keys.add(info.alias or to_camel(name))
    return frozenset(keys)


__all__ = [
    "AppointmentStatus",
    "PrescriptionStatus",
    "RoomStatus",
    "AdmissionStatus",
    "InvoiceStatus",
    "PaymentMode",
    "Record",
    "Patient",
    "Doctor",
    "Appointment",
    "Medicament",
    "Prescription",
    "Room",
    "Admission",
    "ServiceLine",
    "Invoice",
    "Payment",
    "PatientUpdate",
    "DoctorUpdate",
    "AppointmentUpdate",
    "MedicamentUpdate",
    "PrescriptionUpdate",
    "RoomUpdate",
    "AdmissionUpdate",
    "InvoiceUpdate",
    "PaymentUpdate",
    "SERVER_FIELDS",
    "partial_model",
    "PATIENTS",
    "DOCTORS",
    "APPOINTMENTS",
    "MEDICAMENTS",
    "PRESCRIPTIONS",
    "ROOMS",
    "ADMISSIONS",
    "INVOICES",
    "PAYMENTS",
    "ENTITY_MODELS",
    "UPDATE_MODELS",
    "COLLECTIONS",
    "accepted_keys",
]
