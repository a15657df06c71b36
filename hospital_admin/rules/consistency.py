"""Post-mutation hooks that keep derived fields in sync.

The store never triggers these by itself: every code path that adds,
updates or deletes a prescription, payment, invoice or admission must call
the matching hook afterwards. The per-domain services do so; bulk scripts
that write through :class:`CollectionStore` directly must do the same.

Hooks read the current state and write derived fields back through the
store. They do not validate user input. A hook pointed at a missing record
logs a warning and returns ``None``.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Tuple, Union

from hospital_admin._infra.store import CollectionStore
from hospital_admin.models.schemas import (
    INVOICES,
    MEDICAMENTS,
    PAYMENTS,
    ROOMS,
    Invoice,
    InvoiceStatus,
    Medicament,
    Prescription,
    Room,
    RoomStatus,
    ServiceLine,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure derivations
# ---------------------------------------------------------------------------


def compute_invoice_totals(
    services: Iterable[Union[ServiceLine, dict]], tva: float
) -> Tuple[float, float, float]:
    """Return ``(sous_total, montant_tva, total_general)`` for invoice lines."""

    sous_total = 0.0
    for line in services:
        if not isinstance(line, ServiceLine):
            line = ServiceLine.model_validate(line)
        sous_total += line.montant
    montant_tva = sous_total * (tva or 0) / 100
    return sous_total, montant_tva, sous_total + montant_tva


def invoice_status_for(total_paid: float, total_general: float) -> str:
    """Map the amount paid against the invoice total to a status value."""

    if total_paid >= total_general:
        return InvoiceStatus.PAYEE.value
    if total_paid > 0:
        return InvoiceStatus.PARTIELLEMENT_PAYEE.value
    return InvoiceStatus.NON_PAYEE.value


def room_status_for(room: Room) -> str:
    """Occupancy-derived status, leaving sticky statuses untouched."""

    if room.statut in RoomStatus.sticky():
        return room.statut
    if room.lits_occupes > 0:
        return RoomStatus.OCCUPEE.value
    return RoomStatus.DISPONIBLE.value


# ---------------------------------------------------------------------------
# Rule engine
# ---------------------------------------------------------------------------


class ConsistencyRules:
    """Derived-state propagation for stock, occupancy and invoice status."""

    def __init__(self, store: CollectionStore) -> None:
        self.store = store

    # -- Pharmacy -----------------------------------------------------------
    def on_prescription_change(
        self,
        old_qty: Optional[int],
        new_qty: Optional[int],
        medicament_id: Optional[int],
    ) -> Optional[Medicament]:
        """Apply ``stockActuel -= new_qty - old_qty``, never going below zero."""

        medicament = self.store.find_by_id(MEDICAMENTS, medicament_id)
        if medicament is None:
            logger.warning("Stock rule skipped: medicament %s not found", medicament_id)
            return None
        delta = (new_qty or 0) - (old_qty or 0)
        if delta == 0:
            return medicament
        stock = max(0, medicament.stock_actuel - delta)
        if delta > medicament.stock_actuel:
            logger.info(
                "Stock of medicament %s clamped to 0 (had %s, needed %s)",
                medicament_id,
                medicament.stock_actuel,
                delta,
            )
        logger.debug("Medicament %s stock %s -> %s", medicament_id, medicament.stock_actuel, stock)
        return self.store.update(MEDICAMENTS, medicament_id, {"stock_actuel": stock})

    def on_prescription_delete(self, prescription: Prescription) -> Optional[Medicament]:
        """Give the prescribed quantity back to the medicament stock."""
        return self.on_prescription_change(prescription.quantite, 0, prescription.medicament_id)

    # -- Billing ------------------------------------------------------------
    def on_payment_change(self, invoice_id: Optional[int]) -> Optional[Invoice]:
        """Recompute the invoice status from the sum of its payments.

        The status is always re-derived, including for cancelled invoices.
        """

        invoice = self.store.find_by_id(INVOICES, invoice_id)
        if invoice is None:
            logger.warning("Payment rule skipped: invoice %s not found", invoice_id)
            return None
        total_paid = sum(
            p.montant_paiement
            for p in self.store.filter(PAYMENTS, lambda p: p.invoice_id == invoice.id)
        )
        statut = invoice_status_for(total_paid, invoice.total_general)
        if statut == invoice.statut:
            return invoice
        logger.debug("Invoice %s status %s -> %s (paid %s)", invoice.id, invoice.statut, statut, total_paid)
        return self.store.update(INVOICES, invoice.id, {"statut": statut})

    def recompute_invoice_totals(self, invoice_id: Optional[int]) -> Optional[Invoice]:
        """Re-derive ``sousTotal``, ``montantTva``, ``totalGeneral`` then the status."""

        invoice = self.store.find_by_id(INVOICES, invoice_id)
        if invoice is None:
            logger.warning("Totals rule skipped: invoice %s not found", invoice_id)
            return None
        sous_total, montant_tva, total = compute_invoice_totals(invoice.services, invoice.tva)
        if (sous_total, montant_tva, total) != (invoice.sous_total, invoice.montant_tva, invoice.total_general):
            updated = self.store.update(
                INVOICES,
                invoice.id,
                {"sous_total": sous_total, "montant_tva": montant_tva, "total_general": total},
            )
            if updated is None:
                return None
        return self.on_payment_change(invoice.id)

    # -- Rooms --------------------------------------------------------------
    def adjust_room_occupancy(self, room_id: Optional[int], delta: int) -> Optional[Room]:
        """Add ``delta`` to ``litsOccupes``, clamped to ``[0, capacite]``."""

        room = self.store.find_by_id(ROOMS, room_id)
        if room is None:
            logger.warning("Occupancy rule skipped: room %s not found", room_id)
            return None
        occupied = max(0, min(room.capacite, room.lits_occupes + delta))
        if occupied == room.lits_occupes:
            return room
        logger.debug("Room %s occupancy %s -> %s", room_id, room.lits_occupes, occupied)
        return self.store.update(ROOMS, room_id, {"lits_occupes": occupied})

    def recompute_room_status(self, room_id: Optional[int]) -> Optional[Room]:
        """Set ``Occupée``/``Disponible`` from occupancy unless the status is sticky."""

        room = self.store.find_by_id(ROOMS, room_id)
        if room is None:
            logger.warning("Room status rule skipped: room %s not found", room_id)
            return None
        statut = room_status_for(room)
        if statut == room.statut:
            return room
        return self.store.update(ROOMS, room_id, {"statut": statut})

    def on_admission_room_change(
        self,
        old_room_id: Optional[int],
        new_room_id: Optional[int],
        exiting: bool = False,
    ) -> Optional[List[Room]]:
        """Move one bed between rooms.

        * admission created: ``(None, room, False)``
        * room switched: ``(old, new, False)``
        * patient discharged: ``(room, room, True)``
        * active admission deleted: ``(room, None, True)``

        Returns the touched rooms that still exist, after status recomputation,
        or ``None`` when a write to one of them failed.
        """

        failed = False
        touched: List[Optional[int]] = []
        moving = old_room_id != new_room_id
        if old_room_id is not None and (exiting or moving):
            failed |= self._write_failed(old_room_id, self.adjust_room_occupancy(old_room_id, -1))
            touched.append(old_room_id)
        if new_room_id is not None and not exiting and moving:
            failed |= self._write_failed(new_room_id, self.adjust_room_occupancy(new_room_id, +1))
            touched.append(new_room_id)

        rooms: List[Room] = []
        seen: Set[Optional[int]] = set()
        for room_id in touched:
            if room_id in seen:
                continue
            seen.add(room_id)
            room = self.recompute_room_status(room_id)
            if room is not None:
                rooms.append(room)
            else:
                failed |= self._write_failed(room_id, room)
        return None if failed else rooms

    def _write_failed(self, room_id: Optional[int], result: Optional[Room]) -> bool:
        return result is None and self.store.find_by_id(ROOMS, room_id) is not None


__all__ = [
    "ConsistencyRules",
    "compute_invoice_totals",
    "invoice_status_for",
    "room_status_for",
]
