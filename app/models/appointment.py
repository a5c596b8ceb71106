from sqlalchemy import Column, Integer, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import timedelta
import enum

from ..core.database import Base

APPOINTMENT_DURATION = timedelta(hours=1)

class AppointmentStatus(int, enum.Enum):
    SCHEDULED = 0
    COMPLETED = 1

    @property
    def label(self) -> str:
        return self.name.capitalize()

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)

    # Appointment details
    appointment_time = Column(DateTime, nullable=False, index=True)
    status = Column(Integer, nullable=False, default=AppointmentStatus.SCHEDULED.value)

    # Relationships
    doctor = relationship("Doctor", back_populates="appointments")
    patient = relationship("Patient", back_populates="appointments")

    @property
    def end_time(self):
        if self.appointment_time is None:
            return None
        return self.appointment_time + APPOINTMENT_DURATION

    @property
    def status_text(self) -> str:
        try:
            return AppointmentStatus(self.status).label
        except ValueError:
            return "Unknown"

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, time='{self.appointment_time}')>"
