from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PERIOD_LABELS = ("AM", "PM")


def normalize_periods(values: List[str]) -> List[str]:
    normalized = []
    for value in values:
        label = value.strip().upper()
        if label not in PERIOD_LABELS:
            raise ValueError("Available times must be 'AM' or 'PM'")
        normalized.append(label)
    return normalized


class DoctorBase(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    specialty: str = Field(min_length=3, max_length=50)
    email: EmailStr
    phone: str = Field(pattern=r"^\d{10}$")
    available_times: List[str] = []

    @field_validator("available_times")
    @classmethod
    def validate_available_times(cls, value: List[str]) -> List[str]:
        return normalize_periods(value)


class DoctorCreate(DoctorBase):
    password: str = Field(min_length=6)


class DoctorUpdate(DoctorBase):
    password: Optional[str] = Field(default=None, min_length=6)


class DoctorResponse(BaseModel):
    id: int
    name: str
    specialty: str
    email: str
    phone: str
    available_times: List[str] = []

    model_config = ConfigDict(from_attributes=True)


class DoctorListResponse(BaseModel):
    doctors: List[DoctorResponse]
    count: int


class AvailabilityResponse(BaseModel):
    doctor_id: int
    date: str
    available_times: List[str]
