"""Invoice and payment form validation."""
from __future__ import annotations

from typing import Iterable, List, Optional

from hospital_admin.models.schemas import Invoice, InvoiceStatus, Payment, PaymentMode
from hospital_admin.utils.validation import required, required_ids

REQUIRED_INVOICE_FIELDS = [
    ("numero_facture", "Le numéro de facture est obligatoire"),
    ("date_facture", "La date de facture est obligatoire"),
]

REQUIRED_PAYMENT_FIELDS = [
    ("date_paiement", "La date de paiement est obligatoire"),
    ("mode_paiement", "Le mode de paiement est obligatoire"),
]


def validate_invoice(invoice: Invoice, others: Iterable[Invoice] = ()) -> List[str]:
    errors = required_ids(invoice, [("patient_id", "Le patient est obligatoire")])
    errors += required(invoice, REQUIRED_INVOICE_FIELDS)

    if not invoice.services:
        errors.append("Au moins un service est obligatoire")
    for index, line in enumerate(invoice.services, start=1):
        if (
            not (line.type or "").strip()
            or not (line.description or "").strip()
            or line.quantite <= 0
            or line.prix_unitaire < 0
        ):
            errors.append(f"Le service {index} est incomplet ou invalide")

    if invoice.tva < 0:
        errors.append("La TVA ne peut pas être négative")
    if invoice.statut not in InvoiceStatus.values():
        errors.append(f"Statut de facture inconnu: {invoice.statut}")

    numero = (invoice.numero_facture or "").strip().lower()
    if numero and any(
        i.id != invoice.id and (i.numero_facture or "").strip().lower() == numero for i in others
    ):
        errors.append("Ce numéro de facture existe déjà")
    return errors


def validate_payment(payment: Payment, invoice: Optional[Invoice] = None) -> List[str]:
    errors = required_ids(payment, [("invoice_id", "La facture est obligatoire")])
    errors += required(payment, REQUIRED_PAYMENT_FIELDS)
    if payment.montant_paiement is None or payment.montant_paiement <= 0:
        errors.append("Le montant doit être positif")
    if payment.mode_paiement and payment.mode_paiement not in PaymentMode.values():
        errors.append(f"Mode de paiement inconnu: {payment.mode_paiement}")
    if payment.invoice_id and invoice is None:
        errors.append("La facture sélectionnée n'existe pas")
    return errors
