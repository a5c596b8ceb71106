from .admin import Admin
from .doctor import Doctor, DoctorAvailableTime
from .patient import Patient
from .appointment import Appointment, AppointmentStatus
from .prescription import Prescription

__all__ = [
    "Admin",
    "Doctor",
    "DoctorAvailableTime",
    "Patient",
    "Appointment",
    "AppointmentStatus",
    "Prescription",
]
