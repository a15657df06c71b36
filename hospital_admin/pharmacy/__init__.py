from .services import MedicamentService, PrescriptionService
from .validators import validate_medicament, validate_prescription

__all__ = [
    "MedicamentService",
    "PrescriptionService",
    "validate_medicament",
    "validate_prescription",
]
