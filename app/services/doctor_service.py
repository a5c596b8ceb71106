from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func
from typing import List, Optional
import logging

from ..core.errors import ErrorKind, ServiceResult
from ..core.security import get_password_hash
from ..models import Appointment, Doctor, Prescription
from ..schemas.doctor import DoctorCreate, DoctorResponse, DoctorUpdate, PERIOD_LABELS

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def save_doctor(self, doctor_data: DoctorCreate) -> ServiceResult:
        """Create a doctor; email must be unused."""
        if self.get_doctor_by_email(doctor_data.email):
            return ServiceResult.fail(ErrorKind.DUPLICATE, "Doctor already exists")

        doctor = Doctor(
            name=doctor_data.name,
            specialty=doctor_data.specialty,
            email=doctor_data.email,
            phone=doctor_data.phone,
            password_hash=get_password_hash(doctor_data.password),
        )
        doctor.available_times = doctor_data.available_times

        try:
            self.db.add(doctor)
            self.db.commit()
            self.db.refresh(doctor)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save doctor: {str(e)}")
            return ServiceResult.fail(ErrorKind.PERSISTENCE_FAILURE, "Failed to save doctor")

        return ServiceResult.ok("Doctor added successfully", data=DoctorResponse.model_validate(doctor))

    def update_doctor(self, doctor_id: int, doctor_data: DoctorUpdate) -> ServiceResult:
        """Replace a doctor's profile and availability template."""
        doctor = self.get_doctor(doctor_id)
        if not doctor:
            return ServiceResult.fail(ErrorKind.DOCTOR_NOT_FOUND, "Doctor not found")

        other = self.get_doctor_by_email(doctor_data.email)
        if other and other.id != doctor_id:
            return ServiceResult.fail(ErrorKind.DUPLICATE, "Email already belongs to another doctor")

        try:
            doctor.name = doctor_data.name
            doctor.specialty = doctor_data.specialty
            doctor.email = doctor_data.email
            doctor.phone = doctor_data.phone
            if doctor_data.password:
                doctor.password_hash = get_password_hash(doctor_data.password)
            doctor.available_times = doctor_data.available_times
            self.db.commit()
            self.db.refresh(doctor)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update doctor {doctor_id}: {str(e)}")
            return ServiceResult.fail(ErrorKind.PERSISTENCE_FAILURE, "Failed to update doctor")

        return ServiceResult.ok("Doctor updated successfully", data=DoctorResponse.model_validate(doctor))

    def delete_doctor(self, doctor_id: int) -> ServiceResult:
        """Delete a doctor together with all of their appointments."""
        doctor = self.get_doctor(doctor_id)
        if not doctor:
            return ServiceResult.fail(ErrorKind.DOCTOR_NOT_FOUND, "Doctor not found")

        try:
            appointment_ids = self.db.query(Appointment.id).filter(
                Appointment.doctor_id == doctor_id
            )
            self.db.query(Prescription).filter(
                Prescription.appointment_id.in_(appointment_ids.scalar_subquery())
            ).delete(synchronize_session="fetch")
            deleted = self.db.query(Appointment).filter(
                Appointment.doctor_id == doctor_id
            ).delete(synchronize_session="fetch")
            self.db.delete(doctor)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete doctor {doctor_id}: {str(e)}")
            return ServiceResult.fail(ErrorKind.PERSISTENCE_FAILURE, "Failed to delete doctor")

        logger.info(f"Deleted doctor {doctor_id} and {deleted} appointment(s)")
        return ServiceResult.ok("Doctor deleted successfully")

    def get_doctors(self) -> List[Doctor]:
        return self.db.query(Doctor).order_by(Doctor.id.asc()).all()

    def get_doctor(self, doctor_id: int) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.id == doctor_id).first()

    def get_doctor_by_email(self, email: str) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.email == email).first()

    def filter_doctors(
        self,
        name: Optional[str] = None,
        specialty: Optional[str] = None,
        time: Optional[str] = None
    ) -> List[Doctor]:
        """Filter by name substring, exact specialty and AM/PM availability; blank filters are ignored."""
        query = self.db.query(Doctor)
        if name and name.strip():
            query = query.filter(Doctor.name.ilike(f"%{name.strip()}%"))
        if specialty and specialty.strip():
            query = query.filter(func.lower(Doctor.specialty) == specialty.strip().lower())

        doctors = query.order_by(Doctor.id.asc()).all()
        if not time or not time.strip():
            return doctors

        period = time.strip().upper()
        if period not in PERIOD_LABELS:
            return []
        return [
            doctor for doctor in doctors
            if any(label.upper() == period for label in doctor.available_times)
        ]
