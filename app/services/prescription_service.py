from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import logging

from ..core.errors import ErrorKind, ServiceResult
from ..models import Appointment, Prescription
from ..schemas.prescription import PrescriptionCreate, PrescriptionListResponse, PrescriptionResponse

logger = logging.getLogger(__name__)

class PrescriptionService:
    def __init__(self, db: Session):
        self.db = db

    def save_prescription(self, prescription_data: PrescriptionCreate, doctor_id: Optional[int] = None) -> ServiceResult:
        """Attach a prescription to an appointment; one per appointment."""
        appointment = self.db.query(Appointment).filter(
            Appointment.id == prescription_data.appointment_id
        ).first()
        if not appointment:
            return ServiceResult.fail(ErrorKind.APPOINTMENT_NOT_FOUND, "Appointment not found")

        existing = self.db.query(Prescription).filter(
            Prescription.appointment_id == prescription_data.appointment_id
        ).first()
        if existing:
            return ServiceResult.fail(
                ErrorKind.DUPLICATE,
                "Prescription already exists for this appointment"
            )

        prescription = Prescription(
            appointment_id=prescription_data.appointment_id,
            doctor_id=doctor_id,
            patient_name=prescription_data.patient_name,
            medication=prescription_data.medication,
            dosage=prescription_data.dosage,
            doctor_notes=prescription_data.doctor_notes,
            duration_days=prescription_data.duration_days,
            refills=prescription_data.refills,
            is_active=True,
        )

        try:
            self.db.add(prescription)
            self.db.commit()
            self.db.refresh(prescription)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save prescription: {str(e)}")
            return ServiceResult.fail(ErrorKind.PERSISTENCE_FAILURE, "Failed to save prescription")

        return ServiceResult.ok(
            "Prescription saved successfully",
            data=PrescriptionResponse.model_validate(prescription)
        )

    def get_prescriptions(self, appointment_id: int) -> PrescriptionListResponse:
        prescriptions = self.db.query(Prescription).filter(
            Prescription.appointment_id == appointment_id
        ).all()
        return PrescriptionListResponse(
            appointment_id=appointment_id,
            prescriptions=[PrescriptionResponse.model_validate(p) for p in prescriptions],
            count=len(prescriptions),
        )
