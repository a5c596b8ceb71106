"""Appointment request bodies and the eager response projection."""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, field_validator

from ..models.appointment import Appointment, AppointmentStatus


def to_local_naive(value: datetime) -> datetime:
    """Appointment times are stored as naive local wall-clock times."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class AppointmentCreate(BaseModel):
    doctor_id: int
    patient_id: int
    appointment_time: datetime

    @field_validator("appointment_time")
    @classmethod
    def normalize_time(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class AppointmentUpdate(AppointmentCreate):
    status: AppointmentStatus = AppointmentStatus.SCHEDULED


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: int
    doctor_id: int
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None
    patient_id: int
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    patient_address: Optional[str] = None
    appointment_time: datetime
    appointment_date: date
    appointment_time_only: time
    end_time: datetime
    status: int
    status_text: str

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        """Build the projection from an appointment whose doctor and patient are already loaded."""
        doctor = appointment.doctor
        patient = appointment.patient
        return cls(
            id=appointment.id,
            doctor_id=appointment.doctor_id,
            doctor_name=doctor.name if doctor else None,
            doctor_specialty=doctor.specialty if doctor else None,
            patient_id=appointment.patient_id,
            patient_name=patient.name if patient else None,
            patient_email=patient.email if patient else None,
            patient_phone=patient.phone if patient else None,
            patient_address=patient.address if patient else None,
            appointment_time=appointment.appointment_time,
            appointment_date=appointment.appointment_time.date(),
            appointment_time_only=appointment.appointment_time.time(),
            end_time=appointment.end_time,
            status=appointment.status,
            status_text=appointment.status_text,
        )


class AppointmentListResponse(BaseModel):
    appointments: List[AppointmentResponse]
    total_appointments: int
    doctor_name: Optional[str] = None
    date: Optional[str] = None
    condition: Optional[str] = None
