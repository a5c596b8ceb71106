from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_admin, get_any_user, get_doctor, raise_for_result
from ...services.access_guard import AccessDecision
from ...services.appointment_service import AppointmentService
from ...services.availability_service import AvailabilityResolver
from ...services.doctor_service import DoctorService
from ...schemas.appointment import AppointmentListResponse
from ...schemas.auth import MessageResponse
from ...schemas.doctor import (
    AvailabilityResponse, DoctorCreate, DoctorListResponse, DoctorResponse, DoctorUpdate
)

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=DoctorListResponse)
async def list_doctors(db: Session = Depends(get_db)):
    """List all doctors."""
    doctors = DoctorService(db).get_doctors()
    return DoctorListResponse(
        doctors=[DoctorResponse.model_validate(d) for d in doctors],
        count=len(doctors)
    )

@router.get("/filter", response_model=DoctorListResponse)
async def filter_doctors(
    name: Optional[str] = None,
    specialty: Optional[str] = None,
    time: Optional[str] = Query(default=None, description="AM or PM"),
    db: Session = Depends(get_db)
):
    """Filter doctors by name, specialty and AM/PM availability."""
    doctors = DoctorService(db).filter_doctors(name=name, specialty=specialty, time=time)
    return DoctorListResponse(
        doctors=[DoctorResponse.model_validate(d) for d in doctors],
        count=len(doctors)
    )

@router.get("/me/appointments", response_model=AppointmentListResponse)
async def my_appointments(
    date: date_type,
    patient_name: Optional[str] = None,
    db: Session = Depends(get_db),
    current_doctor: AccessDecision = Depends(get_doctor)
):
    """The signed-in doctor's appointments for one day."""
    doctor = DoctorService(db).get_doctor(current_doctor.user_id)
    appointments = AppointmentService(db).get_doctor_appointments(
        current_doctor.user_id, date, patient_name=patient_name
    )
    return AppointmentListResponse(
        appointments=appointments,
        total_appointments=len(appointments),
        doctor_name=doctor.name if doctor else None,
        date=date.isoformat(),
    )

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor_by_id(doctor_id: int, db: Session = Depends(get_db)):
    doctor = DoctorService(db).get_doctor(doctor_id)
    if not doctor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Doctor not found"
        )
    return DoctorResponse.model_validate(doctor)

@router.get("/{doctor_id}/availability", response_model=AvailabilityResponse)
async def get_doctor_availability(
    doctor_id: int,
    date: date_type,
    db: Session = Depends(get_db),
    _: AccessDecision = Depends(get_any_user)
):
    """Free AM/PM periods for a doctor on a date."""
    available = AvailabilityResolver(db).get_availability(doctor_id, date)
    return AvailabilityResponse(
        doctor_id=doctor_id,
        date=date.isoformat(),
        available_times=available
    )

@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def save_doctor(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db),
    _: AccessDecision = Depends(get_admin)
):
    """Add a doctor (admin only)."""
    result = DoctorService(db).save_doctor(doctor_data)
    raise_for_result(result)
    return result.data

@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    doctor_data: DoctorUpdate,
    db: Session = Depends(get_db),
    _: AccessDecision = Depends(get_admin)
):
    """Update a doctor's profile and availability (admin only)."""
    result = DoctorService(db).update_doctor(doctor_id, doctor_data)
    raise_for_result(result)
    return result.data

@router.delete("/{doctor_id}", response_model=MessageResponse)
async def delete_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    _: AccessDecision = Depends(get_admin)
):
    """Delete a doctor and their appointments (admin only)."""
    result = DoctorService(db).delete_doctor(doctor_id)
    raise_for_result(result)
    return MessageResponse(message=result.message)
