from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import AuthenticationError, ExpiredTokenError, TokenEngine, TokenError
from ...api.deps import (
    get_bearer_token, get_token_engine, rate_limit_check, raise_for_result
)
from ...services.auth_service import AuthService
from ...schemas.auth import (
    AdminLogin, UserLogin, TokenResponse, RefreshTokenRequest,
    RefreshTokenResponse, TokenVerification
)

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(
    login_data: AdminLogin,
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine),
    _: None = Depends(rate_limit_check)
):
    """Authenticate an admin and return a session token."""
    result = AuthService(db, token_engine).login_admin(login_data)
    raise_for_result(result)
    return result.data

@router.post("/doctor/login", response_model=TokenResponse)
async def doctor_login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine),
    _: None = Depends(rate_limit_check)
):
    """Authenticate a doctor and return a session token."""
    result = AuthService(db, token_engine).login_doctor(login_data)
    raise_for_result(result)
    return result.data

@router.post("/patient/login", response_model=TokenResponse)
async def patient_login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine),
    _: None = Depends(rate_limit_check)
):
    """Authenticate a patient and return a session token."""
    result = AuthService(db, token_engine).login_patient(login_data)
    raise_for_result(result)
    return result.data

@router.post("/refresh", response_model=RefreshTokenResponse)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine)
):
    """Issue a fresh token carrying the same role, user id and custom claims."""
    new_token = AuthService(db, token_engine).refresh_token(refresh_data.token)
    if new_token is None:
        raise AuthenticationError("Invalid token")
    return RefreshTokenResponse(token=new_token)

@router.post("/verify-token", response_model=TokenVerification)
async def verify_token_endpoint(
    token: str = Depends(get_bearer_token),
    token_engine: TokenEngine = Depends(get_token_engine)
):
    """Verify if token is valid."""
    try:
        claims = token_engine.parse(token)
    except ExpiredTokenError:
        raise AuthenticationError("Token has expired")
    except TokenError:
        raise AuthenticationError("Invalid token")

    return TokenVerification(
        valid=True,
        user_id=claims.user_id,
        subject=claims.subject,
        role=claims.role,
        issued_at=claims.issued_at,
        expires_at=claims.expires_at,
        claims=claims.extra,
    )
