from .consistency import ConsistencyRules, compute_invoice_totals, invoice_status_for

__all__ = ["ConsistencyRules", "compute_invoice_totals", "invoice_status_for"]
