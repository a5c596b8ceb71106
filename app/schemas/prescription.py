from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PrescriptionCreate(BaseModel):
    patient_name: str = Field(min_length=3, max_length=100)
    appointment_id: int
    medication: str = Field(min_length=3, max_length=100)
    dosage: str = Field(min_length=3, max_length=20)
    doctor_notes: Optional[str] = Field(default=None, max_length=200)
    duration_days: Optional[int] = Field(default=None, ge=1)
    refills: int = Field(default=0, ge=0)


class PrescriptionResponse(BaseModel):
    id: int
    appointment_id: int
    doctor_id: Optional[int] = None
    patient_name: str
    medication: str
    dosage: str
    doctor_notes: Optional[str] = None
    duration_days: Optional[int] = None
    refills: int = 0
    is_active: bool = True
    prescribed_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PrescriptionListResponse(BaseModel):
    appointment_id: int
    prescriptions: List[PrescriptionResponse]
    count: int
