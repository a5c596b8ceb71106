"""Free/busy view of a doctor's day at half-day granularity.

A doctor declares a template of coarse periods ("AM", "PM"). Any appointment
on the day consumes the period its start hour falls in; what remains of the
template is the doctor's availability.
"""

from datetime import date, datetime, time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.errors import ErrorKind, ServiceResult
from ..models import Appointment, Doctor

AM = "AM"
PM = "PM"
NOON_HOUR = 12


def period_for(moment: datetime) -> str:
    return AM if moment.hour < NOON_HOUR else PM


def day_bounds(day: date):
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


class AvailabilityResolver:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock

    def get_availability(
        self,
        doctor_id: int,
        day: date,
        exclude_appointment_id: Optional[int] = None
    ) -> List[str]:
        """Template periods not consumed by the doctor's appointments on day.

        Order follows the template; repeated labels are reported once. A
        missing doctor or an empty template gives an empty list.
        """
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if doctor is None:
            return []

        template = [label.strip().upper() for label in doctor.available_times if label]
        if not template:
            return []

        start_of_day, end_of_day = day_bounds(day)
        query = self.db.query(Appointment.appointment_time).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_time >= start_of_day,
            Appointment.appointment_time <= end_of_day,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)

        consumed = {period_for(appointment_time) for (appointment_time,) in query.all()}

        free: List[str] = []
        for label in template:
            if label not in consumed and label not in free:
                free.append(label)
        return free

    def validate_slot(
        self,
        doctor_id: Optional[int],
        appointment_time: datetime,
        exclude_appointment_id: Optional[int] = None
    ) -> ServiceResult:
        """Check that a doctor exists, the time is in the future and its period is free."""
        if doctor_id is None:
            return ServiceResult.fail(ErrorKind.DOCTOR_NOT_FOUND, "Doctor not specified")

        if self.db.query(Doctor.id).filter(Doctor.id == doctor_id).first() is None:
            return ServiceResult.fail(ErrorKind.DOCTOR_NOT_FOUND, "Doctor not found")

        if appointment_time <= self.clock():
            return ServiceResult.fail(
                ErrorKind.APPOINTMENT_IN_PAST,
                "Appointment time must be in the future"
            )

        free = self.get_availability(
            doctor_id,
            appointment_time.date(),
            exclude_appointment_id=exclude_appointment_id
        )
        if period_for(appointment_time) not in free:
            return ServiceResult.fail(
                ErrorKind.SLOT_UNAVAILABLE,
                "Time slot not available"
            )

        return ServiceResult.ok("Appointment time is available")
