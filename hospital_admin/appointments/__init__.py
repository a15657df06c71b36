from .services import AppointmentService
from .validators import validate_appointment

__all__ = ["AppointmentService", "validate_appointment"]
