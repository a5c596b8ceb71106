from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, field_validator

from ..core.security import UserRole


class AdminLogin(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Username is required")
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    role: UserRole
    user_id: int
    expires_in: int
    name: Optional[str] = None
    email: Optional[str] = None
    message: str = ""


class RefreshTokenRequest(BaseModel):
    token: str


class RefreshTokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"


class TokenVerification(BaseModel):
    valid: bool
    user_id: Optional[int] = None
    subject: Optional[str] = None
    role: Optional[UserRole] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    claims: Dict[str, Any] = {}


class MessageResponse(BaseModel):
    message: str
