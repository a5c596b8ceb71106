from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)

    # Profile
    name = Column(String(100), nullable=False, index=True)
    specialty = Column(String(50), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(10), nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    time_slots = relationship(
        "DoctorAvailableTime",
        back_populates="doctor",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    # Appointments are removed explicitly before the doctor is deleted
    appointments = relationship("Appointment", back_populates="doctor", passive_deletes=True)

    @property
    def available_times(self):
        """The availability template as a list of period labels."""
        return [slot.time_slot for slot in self.time_slots]

    @available_times.setter
    def available_times(self, labels):
        self.time_slots = [DoctorAvailableTime(time_slot=label) for label in labels or []]

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', specialty='{self.specialty}')>"

class DoctorAvailableTime(Base):
    __tablename__ = "doctor_available_times"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True)
    time_slot = Column(String(20), nullable=False)

    doctor = relationship("Doctor", back_populates="time_slots")

    def __repr__(self):
        return f"<DoctorAvailableTime(doctor_id={self.doctor_id}, time_slot='{self.time_slot}')>"
