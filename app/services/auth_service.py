from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
import logging

from ..models import Admin, Doctor, Patient
from ..core.errors import ErrorKind, ServiceResult
from ..core.security import TokenEngine, UserRole, utc_now, verify_password
from ..schemas.auth import AdminLogin, UserLogin, TokenResponse

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session, token_engine: TokenEngine):
        self.db = db
        self.token_engine = token_engine

    def login_admin(self, login_data: AdminLogin) -> ServiceResult:
        """Authenticate an admin by username and return a token."""
        admin = self.db.query(Admin).filter(
            Admin.username == login_data.username
        ).first()

        if not admin or not verify_password(login_data.password, admin.password_hash):
            logger.info(f"Failed admin login for '{login_data.username}'")
            return ServiceResult.fail(ErrorKind.INVALID_CREDENTIALS, "Invalid username or password")

        return ServiceResult.ok(
            "Admin login successful",
            data=self._token_response(admin.id, UserRole.ADMIN, name=admin.username)
        )

    def login_doctor(self, login_data: UserLogin) -> ServiceResult:
        """Authenticate a doctor by email and return a token."""
        doctor = self.db.query(Doctor).filter(
            Doctor.email == login_data.email
        ).first()

        if not doctor or not verify_password(login_data.password, doctor.password_hash):
            logger.info(f"Failed doctor login for '{login_data.email}'")
            return ServiceResult.fail(ErrorKind.INVALID_CREDENTIALS, "Invalid email or password")

        return ServiceResult.ok(
            "Doctor login successful",
            data=self._token_response(doctor.id, UserRole.DOCTOR, name=doctor.name, email=doctor.email)
        )

    def login_patient(self, login_data: UserLogin) -> ServiceResult:
        """Authenticate a patient by email and return a token."""
        patient = self.db.query(Patient).filter(
            Patient.email == login_data.email
        ).first()

        if not patient or not verify_password(login_data.password, patient.password_hash):
            logger.info(f"Failed patient login for '{login_data.email}'")
            return ServiceResult.fail(ErrorKind.INVALID_CREDENTIALS, "Invalid email or password")

        try:
            patient.last_login = utc_now().replace(tzinfo=None)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record login for patient {patient.id}: {str(e)}")
            return ServiceResult.fail(ErrorKind.PERSISTENCE_FAILURE, "Login failed")

        return ServiceResult.ok(
            "Patient login successful",
            data=self._token_response(patient.id, UserRole.PATIENT, name=patient.name, email=patient.email)
        )

    def refresh_token(self, token: str) -> Optional[str]:
        """Renew a token; None when the token cannot be verified."""
        return self.token_engine.refresh(token)

    def _token_response(
        self,
        user_id: int,
        role: UserRole,
        name: Optional[str] = None,
        email: Optional[str] = None
    ) -> TokenResponse:
        return TokenResponse(
            token=self.token_engine.issue(user_id, role),
            role=role,
            user_id=user_id,
            expires_in=self.token_engine.config.expiration_ms // 1000,
            name=name,
            email=email,
        )
