from .services import DoctorService
from .validators import validate_doctor

__all__ = ["DoctorService", "validate_doctor"]
