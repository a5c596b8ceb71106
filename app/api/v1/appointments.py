from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import AuthorizationError, UserRole
from ...api.deps import (
    get_access_guard, get_bearer_token, get_doctor, get_patient,
    raise_for_decision, raise_for_result
)
from ...services.access_guard import AccessDecision, AccessGuard
from ...models import AppointmentStatus
from ...services.appointment_service import AppointmentService
from ...services.availability_service import AvailabilityResolver
from ...schemas.appointment import (
    AppointmentCreate, AppointmentResponse, AppointmentStatusUpdate, AppointmentUpdate
)
from ...schemas.auth import MessageResponse

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    appointment_data: AppointmentCreate,
    token: str = Depends(get_bearer_token),
    guard: AccessGuard = Depends(get_access_guard),
    db: Session = Depends(get_db)
):
    """Book an appointment for the signed-in patient."""
    raise_for_decision(
        guard.authorize_for_resource(token, UserRole.PATIENT, appointment_data.patient_id)
    )

    raise_for_result(AvailabilityResolver(db).validate_slot(
        appointment_data.doctor_id, appointment_data.appointment_time
    ))

    result = AppointmentService(db).book_appointment(appointment_data)
    raise_for_result(result)
    return result.data

@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    appointment_data: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_patient: AccessDecision = Depends(get_patient)
):
    """Reschedule one of the signed-in patient's appointments."""
    if appointment_data.status == AppointmentStatus.COMPLETED:
        raise AuthorizationError("Only the doctor can complete an appointment")

    service = AppointmentService(db)
    existing = service.get_appointment(appointment_id)
    if existing:
        if existing.patient_id != current_patient.user_id:
            raise AuthorizationError("You can only update your own appointments")
        raise_for_result(service.check_update(existing, appointment_data))
        raise_for_result(AvailabilityResolver(db).validate_slot(
            appointment_data.doctor_id,
            appointment_data.appointment_time,
            exclude_appointment_id=appointment_id
        ))

    result = service.update_appointment(appointment_id, appointment_data)
    raise_for_result(result)
    return result.data

@router.delete("/{appointment_id}", response_model=MessageResponse)
async def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_patient: AccessDecision = Depends(get_patient)
):
    """Cancel (delete) one of the signed-in patient's appointments."""
    result = AppointmentService(db).cancel_appointment(appointment_id, current_patient.user_id)
    raise_for_result(result)
    return MessageResponse(message=result.message)

@router.patch("/{appointment_id}/status", response_model=MessageResponse)
async def change_appointment_status(
    appointment_id: int,
    status_data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    _: AccessDecision = Depends(get_doctor)
):
    """Mark an appointment completed (doctor only)."""
    result = AppointmentService(db).change_status(appointment_id, status_data.status)
    raise_for_result(result)
    return MessageResponse(message=result.message)
