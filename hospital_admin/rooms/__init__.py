from .services import AdmissionService, RoomService
from .validators import validate_admission, validate_room

__all__ = ["AdmissionService", "RoomService", "validate_admission", "validate_room"]
