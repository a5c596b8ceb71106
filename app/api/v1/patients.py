from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import (
    get_access_guard, get_bearer_token, get_patient, raise_for_decision, raise_for_result
)
from ...services.access_guard import AccessDecision, AccessGuard
from ...services.patient_service import PatientService
from ...schemas.appointment import AppointmentListResponse
from ...schemas.patient import PatientCreate, PatientResponse

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(patient_data: PatientCreate, db: Session = Depends(get_db)):
    """Patient signup."""
    result = PatientService(db).create_patient(patient_data)
    raise_for_result(result)
    return result.data

@router.get("/me", response_model=PatientResponse)
async def get_my_details(
    db: Session = Depends(get_db),
    current_patient: AccessDecision = Depends(get_patient)
):
    result = PatientService(db).get_patient_details(current_patient.user_id)
    raise_for_result(result)
    return result.data

@router.get("/me/appointments/filter", response_model=AppointmentListResponse)
async def filter_my_appointments(
    condition: Optional[str] = None,
    doctor_name: Optional[str] = None,
    db: Session = Depends(get_db),
    current_patient: AccessDecision = Depends(get_patient)
):
    """Filter own appointments by 'past'/'future' and doctor name."""
    result = PatientService(db).filter_appointments(
        current_patient.user_id, condition=condition, doctor_name=doctor_name
    )
    raise_for_result(result)
    return result.data

@router.get("/{patient_id}/appointments", response_model=AppointmentListResponse)
async def get_patient_appointments(
    patient_id: int,
    token: str = Depends(get_bearer_token),
    guard: AccessGuard = Depends(get_access_guard),
    db: Session = Depends(get_db)
):
    """A patient's own appointments."""
    raise_for_decision(guard.authorize_for_resource(token, UserRole.PATIENT, patient_id))
    result = PatientService(db).get_patient_appointments(patient_id)
    raise_for_result(result)
    return result.data
