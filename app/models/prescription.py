from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean
from sqlalchemy.sql import func

from ..core.database import Base

class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    doctor_id = Column(Integer, nullable=True, index=True)

    patient_name = Column(String(100), nullable=False)
    medication = Column(String(100), nullable=False)
    dosage = Column(String(20), nullable=False)
    doctor_notes = Column(String(200), nullable=True)
    duration_days = Column(Integer, nullable=True)
    refills = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)

    # Timestamps
    prescribed_date = Column(DateTime, server_default=func.now())
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Prescription(id={self.id}, appointment_id={self.appointment_id}, medication='{self.medication}')>"
