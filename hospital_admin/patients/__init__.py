from .services import PatientService
from .validators import validate_patient

__all__ = ["PatientService", "validate_patient"]
