from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import or_
from typing import Optional
import logging

from ..core.errors import ErrorKind, ServiceResult
from ..core.security import get_password_hash
from ..models import Appointment, AppointmentStatus, Doctor, Patient
from ..schemas.appointment import AppointmentListResponse, AppointmentResponse
from ..schemas.patient import PatientCreate, PatientResponse
from .appointment_service import AppointmentService

logger = logging.getLogger(__name__)

# "past" visits are the completed ones, "future" the ones still scheduled
CONDITION_STATUSES = {
    "past": AppointmentStatus.COMPLETED,
    "future": AppointmentStatus.SCHEDULED,
}

class PatientService:
    def __init__(self, db: Session):
        self.db = db

    def create_patient(self, patient_data: PatientCreate) -> ServiceResult:
        """Register a patient; email and phone must both be unused."""
        if self.find_by_email_or_phone(patient_data.email, patient_data.phone):
            return ServiceResult.fail(
                ErrorKind.DUPLICATE,
                "Patient with email id or phone no already exist"
            )

        patient = Patient(
            name=patient_data.name,
            email=patient_data.email,
            phone=patient_data.phone,
            address=patient_data.address,
            password_hash=get_password_hash(patient_data.password),
        )

        try:
            self.db.add(patient)
            self.db.commit()
            self.db.refresh(patient)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to register patient: {str(e)}")
            return ServiceResult.fail(ErrorKind.PERSISTENCE_FAILURE, "Failed to register patient")

        return ServiceResult.ok("Signup successful", data=PatientResponse.model_validate(patient))

    def find_by_email_or_phone(self, email: str, phone: str) -> Optional[Patient]:
        return self.db.query(Patient).filter(
            or_(Patient.email == email, Patient.phone == phone)
        ).first()

    def get_patient_details(self, patient_id: int) -> ServiceResult:
        patient = self.db.query(Patient).filter(Patient.id == patient_id).first()
        if not patient:
            return ServiceResult.fail(ErrorKind.PATIENT_NOT_FOUND, "Patient not found")
        return ServiceResult.ok(data=PatientResponse.model_validate(patient))

    def get_patient_appointments(self, patient_id: int) -> ServiceResult:
        if not self._exists(patient_id):
            return ServiceResult.fail(ErrorKind.PATIENT_NOT_FOUND, "Patient not found")

        appointments = AppointmentService(self.db).get_patient_appointments(patient_id)
        return ServiceResult.ok(data=AppointmentListResponse(
            appointments=appointments,
            total_appointments=len(appointments),
        ))

    def filter_appointments(
        self,
        patient_id: int,
        condition: Optional[str] = None,
        doctor_name: Optional[str] = None
    ) -> ServiceResult:
        """Narrow a patient's appointments by past/future and by doctor name."""
        if not self._exists(patient_id):
            return ServiceResult.fail(ErrorKind.PATIENT_NOT_FOUND, "Patient not found")

        query = AppointmentService(self.db).eager_query().filter(
            Appointment.patient_id == patient_id
        )

        normalized_condition = None
        if condition and condition.strip():
            normalized_condition = condition.strip().lower()
            if normalized_condition not in CONDITION_STATUSES:
                return ServiceResult.fail(
                    ErrorKind.INVALID_REQUEST,
                    "Invalid condition. Use 'past' or 'future'"
                )
            query = query.filter(
                Appointment.status == CONDITION_STATUSES[normalized_condition].value
            )

        if doctor_name and doctor_name.strip():
            query = query.join(Appointment.doctor).filter(
                Doctor.name.ilike(f"%{doctor_name.strip()}%")
            )

        appointments = [
            AppointmentResponse.from_appointment(a)
            for a in query.order_by(Appointment.appointment_time.asc()).all()
        ]
        return ServiceResult.ok(data=AppointmentListResponse(
            appointments=appointments,
            total_appointments=len(appointments),
            condition=normalized_condition,
        ))

    def _exists(self, patient_id: int) -> bool:
        return self.db.query(Patient.id).filter(Patient.id == patient_id).first() is not None
