from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from datetime import date
from typing import List, Optional
import logging

from ..core.errors import ErrorKind, ServiceResult
from ..models import Appointment, AppointmentStatus, Patient
from ..schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from .availability_service import day_bounds

logger = logging.getLogger(__name__)

def check_transition(current_status: int, new_status: AppointmentStatus) -> ServiceResult:
    """Completed is final: it never goes back to Scheduled."""
    if (
        current_status == AppointmentStatus.COMPLETED.value
        and AppointmentStatus(new_status) == AppointmentStatus.SCHEDULED
    ):
        return ServiceResult.fail(
            ErrorKind.INVALID_TRANSITION,
            "A completed appointment cannot be rescheduled"
        )
    return ServiceResult.ok()

class AppointmentService:
    """Booking, update, cancellation and status changes for appointments.

    Role checks and slot legality are the caller's job (see AccessGuard and
    AvailabilityResolver); this class owns ownership rules and the write itself.
    """

    def __init__(self, db: Session):
        self.db = db

    def book_appointment(self, appointment_data: AppointmentCreate) -> ServiceResult:
        """Persist a new appointment in Scheduled state."""
        appointment = Appointment(
            doctor_id=appointment_data.doctor_id,
            patient_id=appointment_data.patient_id,
            appointment_time=appointment_data.appointment_time,
            status=AppointmentStatus.SCHEDULED.value
        )

        try:
            self.db.add(appointment)
            self.db.commit()
            projection = self._project(appointment.id)
        except SQLAlchemyError as e:
            return self._persistence_failure("Failed to book appointment", e)

        logger.info(f"Booked appointment {appointment.id} with doctor {appointment.doctor_id}")
        return ServiceResult.ok("Appointment booked successfully", data=projection)

    def check_update(self, existing: Appointment, appointment_data: AppointmentUpdate) -> ServiceResult:
        """Rules an update must pass before anything is written."""
        if existing.patient_id != appointment_data.patient_id:
            return ServiceResult.fail(ErrorKind.CONFLICT, "Patient ID does not match")

        if existing.status == AppointmentStatus.COMPLETED.value:
            return ServiceResult.fail(
                ErrorKind.INVALID_TRANSITION,
                "A completed appointment cannot be changed"
            )

        return ServiceResult.ok()

    def update_appointment(self, appointment_id: int, appointment_data: AppointmentUpdate) -> ServiceResult:
        """Move an appointment; the patient on it can never change."""
        try:
            existing = self.get_appointment(appointment_id)
            if not existing:
                return ServiceResult.fail(ErrorKind.APPOINTMENT_NOT_FOUND, "Appointment not found")

            allowed = self.check_update(existing, appointment_data)
            if not allowed.success:
                return allowed

            existing.appointment_time = appointment_data.appointment_time
            existing.doctor_id = appointment_data.doctor_id
            existing.status = AppointmentStatus(appointment_data.status).value
            self.db.commit()
            projection = self._project(appointment_id)
        except SQLAlchemyError as e:
            return self._persistence_failure(f"Failed to update appointment {appointment_id}", e)

        return ServiceResult.ok("Appointment updated successfully", data=projection)

    def cancel_appointment(self, appointment_id: int, requesting_patient_id: Optional[int]) -> ServiceResult:
        """Delete the appointment if it belongs to the requesting patient."""
        try:
            appointment = self.get_appointment(appointment_id)
            if not appointment:
                return ServiceResult.fail(ErrorKind.APPOINTMENT_NOT_FOUND, "Appointment not found")

            if requesting_patient_id is None or appointment.patient_id != requesting_patient_id:
                return ServiceResult.fail(
                    ErrorKind.RESOURCE_OWNERSHIP_MISMATCH,
                    "You can only cancel your own appointments"
                )

            self.db.delete(appointment)
            self.db.commit()
        except SQLAlchemyError as e:
            return self._persistence_failure(f"Failed to cancel appointment {appointment_id}", e)

        logger.info(f"Cancelled appointment {appointment_id}")
        return ServiceResult.ok("Appointment cancelled successfully")

    def change_status(self, appointment_id: int, new_status: AppointmentStatus) -> ServiceResult:
        """Update only the status; Completed never goes back to Scheduled."""
        try:
            appointment = self.get_appointment(appointment_id)
            if not appointment:
                return ServiceResult.fail(ErrorKind.APPOINTMENT_NOT_FOUND, "Appointment not found")

            allowed = check_transition(appointment.status, new_status)
            if not allowed.success:
                return allowed

            appointment.status = AppointmentStatus(new_status).value
            self.db.commit()
        except SQLAlchemyError as e:
            return self._persistence_failure(f"Failed to update status of appointment {appointment_id}", e)

        return ServiceResult.ok("Appointment status updated successfully")

    def _persistence_failure(self, message: str, error: SQLAlchemyError) -> ServiceResult:
        self.db.rollback()
        logger.error(f"{message}: {str(error)}")
        return ServiceResult.fail(ErrorKind.PERSISTENCE_FAILURE, message)

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def get_doctor_appointments(
        self,
        doctor_id: int,
        day: date,
        patient_name: Optional[str] = None
    ) -> List[AppointmentResponse]:
        """A doctor's appointments for one day, optionally narrowed by patient name."""
        start_of_day, end_of_day = day_bounds(day)
        query = self.eager_query().filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_time >= start_of_day,
            Appointment.appointment_time <= end_of_day,
        )
        if patient_name and patient_name.strip():
            query = query.join(Appointment.patient).filter(
                Patient.name.ilike(f"%{patient_name.strip()}%")
            )

        appointments = query.order_by(Appointment.appointment_time.asc()).all()
        return [AppointmentResponse.from_appointment(a) for a in appointments]

    def get_patient_appointments(
        self,
        patient_id: int,
        status: Optional[AppointmentStatus] = None
    ) -> List[AppointmentResponse]:
        query = self.eager_query().filter(Appointment.patient_id == patient_id)
        if status is not None:
            query = query.filter(Appointment.status == AppointmentStatus(status).value)

        appointments = query.order_by(Appointment.appointment_time.asc()).all()
        return [AppointmentResponse.from_appointment(a) for a in appointments]

    def eager_query(self):
        return self.db.query(Appointment).options(
            joinedload(Appointment.doctor),
            joinedload(Appointment.patient),
        )

    def _project(self, appointment_id: int) -> Optional[AppointmentResponse]:
        appointment = self.eager_query().filter(Appointment.id == appointment_id).first()
        if appointment is None:
            return None
        return AppointmentResponse.from_appointment(appointment)
