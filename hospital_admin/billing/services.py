"""Billing: invoices with derived totals, payments driving invoice status."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from hospital_admin._infra.service_base import BaseService, FormData
from hospital_admin.models.schemas import (
    INVOICES,
    PAYMENTS,
    Invoice,
    InvoiceStatus,
    Payment,
)
from hospital_admin.rules.consistency import compute_invoice_totals
from hospital_admin.utils.app_settings import DEFAULT_TVA

from .validators import validate_invoice, validate_payment

logger = logging.getLogger(__name__)

DERIVED_INVOICE_FIELDS = ("sous_total", "montant_tva", "total_general")


class InvoiceService(BaseService):
    """Invoices.

    ``sousTotal``, ``montantTva`` and ``totalGeneral`` are always derived from
    the service lines and the VAT rate; values sent by a form are ignored.
    """

    collection = INVOICES
    search_fields = ("numero_facture", "date_facture", "statut")

    def __init__(self, store, rules=None, query=None, *, default_tva: float = DEFAULT_TVA) -> None:
        super().__init__(store, rules, query)
        self.default_tva = default_tva

    def _strip_derived(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        for name in DERIVED_INVOICE_FIELDS:
            fields.pop(name, None)
        return fields

    def create(self, data: FormData) -> Invoice:
        fields = self._strip_derived(self._fields(data))
        if fields.get("tva") is None:
            fields["tva"] = self.default_tva
        candidate = self._candidate(fields)
        self._check(validate_invoice(candidate, self.list()))

        sous_total, montant_tva, total = compute_invoice_totals(candidate.services, candidate.tva)
        fields.update(sous_total=sous_total, montant_tva=montant_tva, total_general=total)
        invoice = self._add(fields)
        return self._synced(INVOICES, invoice.id, self.rules.on_payment_change(invoice.id)) or invoice

    def update(self, invoice_id: Any, data: FormData) -> Invoice:
        fields = self._strip_derived(self._fields(data))
        candidate = self._candidate(fields, self.get(invoice_id))
        self._check(validate_invoice(candidate, self.list()))
        invoice = self._update(invoice_id, fields)
        if "services" in fields or "tva" in fields:
            return self._synced(INVOICES, invoice.id, self.rules.recompute_invoice_totals(invoice.id)) or invoice
        return invoice

    def cancel(self, invoice_id: Any) -> Invoice:
        """Mark the invoice ``Annulée``; a later payment change re-derives the status."""
        return self.update(invoice_id, {"statut": InvoiceStatus.ANNULEE.value})

    def delete(self, invoice_id: Any) -> None:
        self.get(invoice_id)
        orphans = self.query.payments_for_invoice(invoice_id)
        if orphans:
            logger.warning("Invoice %s deleted with %d payment(s) still referencing it", invoice_id, len(orphans))
        self._delete(invoice_id)

    def balance(self, invoice_id: Any) -> Optional[float]:
        return self.query.outstanding_balance(invoice_id)


class PaymentService(BaseService):
    collection = PAYMENTS
    search_fields = ("mode_paiement", "reference_paiement", "date_paiement")

    def _sync_invoice(self, invoice_id: Any) -> None:
        self._synced(INVOICES, invoice_id, self.rules.on_payment_change(invoice_id))

    def create(self, data: FormData) -> Payment:
        fields = self._fields(data)
        candidate = self._candidate(fields)
        invoice = self.store.find_by_id(INVOICES, candidate.invoice_id)
        self._check(validate_payment(candidate, invoice))
        payment = self._add(fields)
        self._sync_invoice(payment.invoice_id)
        return payment

    def update(self, payment_id: Any, data: FormData) -> Payment:
        existing = self.get(payment_id)
        fields = self._fields(data)
        candidate = self._candidate(fields, existing)
        invoice = self.store.find_by_id(INVOICES, candidate.invoice_id)
        self._check(validate_payment(candidate, invoice))
        payment = self._update(payment_id, fields)
        self._sync_invoice(payment.invoice_id)
        if existing.invoice_id != payment.invoice_id:
            self._sync_invoice(existing.invoice_id)
        return payment

    def delete(self, payment_id: Any) -> None:
        payment = self.get(payment_id)
        self._delete(payment_id)
        self._sync_invoice(payment.invoice_id)

    def for_invoice(self, invoice_id: Any) -> List[Payment]:
        return self.query.payments_for_invoice(invoice_id)
