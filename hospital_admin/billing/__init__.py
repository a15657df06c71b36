from .services import InvoiceService, PaymentService
from .validators import validate_invoice, validate_payment

__all__ = ["InvoiceService", "PaymentService", "validate_invoice", "validate_payment"]
