"""Error kinds and operation results shared by the services and the API layer."""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status
from pydantic import BaseModel


class ErrorKind(str, Enum):
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    ROLE_MISMATCH = "role_mismatch"
    USER_NOT_FOUND = "user_not_found"
    RESOURCE_OWNERSHIP_MISMATCH = "resource_ownership_mismatch"
    APPOINTMENT_NOT_FOUND = "appointment_not_found"
    DOCTOR_NOT_FOUND = "doctor_not_found"
    PATIENT_NOT_FOUND = "patient_not_found"
    CONFLICT = "conflict"
    INVALID_TRANSITION = "invalid_transition"
    SLOT_UNAVAILABLE = "slot_unavailable"
    APPOINTMENT_IN_PAST = "appointment_in_past"
    DUPLICATE = "duplicate"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_REQUEST = "invalid_request"
    PERSISTENCE_FAILURE = "persistence_failure"


ERROR_STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.EXPIRED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ROLE_MISMATCH: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.USER_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.RESOURCE_OWNERSHIP_MISMATCH: status.HTTP_403_FORBIDDEN,
    ErrorKind.APPOINTMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DOCTOR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.PATIENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.SLOT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorKind.DUPLICATE: status.HTTP_409_CONFLICT,
    ErrorKind.APPOINTMENT_IN_PAST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERSISTENCE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ServiceResult(BaseModel):
    """Outcome of a service operation: either success with optional data, or an error kind."""

    success: bool
    error: Optional[ErrorKind] = None
    message: str = ""
    data: Optional[Any] = None

    @classmethod
    def ok(cls, message: str = "", data: Any = None) -> "ServiceResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "ServiceResult":
        return cls(success=False, error=error, message=message)

    @property
    def status_code(self) -> int:
        if self.success:
            return status.HTTP_200_OK
        return ERROR_STATUS_CODES.get(self.error, status.HTTP_400_BAD_REQUEST)
