from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_doctor, raise_for_result
from ...services.access_guard import AccessDecision
from ...services.prescription_service import PrescriptionService
from ...schemas.prescription import (
    PrescriptionCreate, PrescriptionListResponse, PrescriptionResponse
)

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])

@router.post("", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
async def save_prescription(
    prescription_data: PrescriptionCreate,
    db: Session = Depends(get_db),
    current_doctor: AccessDecision = Depends(get_doctor)
):
    """Write a prescription for an appointment (doctor only)."""
    result = PrescriptionService(db).save_prescription(
        prescription_data, doctor_id=current_doctor.user_id
    )
    raise_for_result(result)
    return result.data

@router.get("/{appointment_id}", response_model=PrescriptionListResponse)
async def get_prescription(
    appointment_id: int,
    db: Session = Depends(get_db),
    _: AccessDecision = Depends(get_doctor)
):
    return PrescriptionService(db).get_prescriptions(appointment_id)
