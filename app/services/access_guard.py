"""Role and resource-ownership checks on top of the Token Engine.

A token is only honoured while the account it names still exists in the
store for its role, so deleting an admin, doctor or patient revokes all of
that account's outstanding tokens at once.
"""

from typing import Optional
import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.errors import ErrorKind
from ..core.security import TokenEngine, TokenError, UserRole
from ..models import Admin, Doctor, Patient

logger = logging.getLogger(__name__)

_ROLE_MODELS = {
    UserRole.ADMIN: Admin,
    UserRole.DOCTOR: Doctor,
    UserRole.PATIENT: Patient,
}


class SqlRoleStore:
    """Existence lookups for each role's account table."""

    def __init__(self, db: Session):
        self.db = db

    def exists(self, role: UserRole, user_id: int) -> bool:
        model = _ROLE_MODELS.get(UserRole(role))
        if model is None:
            return False
        return self.db.query(model.id).filter(model.id == user_id).first() is not None

    def exists_admin(self, user_id: int) -> bool:
        return self.exists(UserRole.ADMIN, user_id)

    def exists_doctor(self, user_id: int) -> bool:
        return self.exists(UserRole.DOCTOR, user_id)

    def exists_patient(self, user_id: int) -> bool:
        return self.exists(UserRole.PATIENT, user_id)


class AccessDecision(BaseModel):
    allowed: bool
    user_id: Optional[int] = None
    role: Optional[UserRole] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def deny(cls, error: ErrorKind, message: str) -> "AccessDecision":
        return cls(allowed=False, error=error, message=message)


class AccessGuard:
    def __init__(self, token_engine: TokenEngine, role_store: SqlRoleStore):
        self.token_engine = token_engine
        self.role_store = role_store

    def authorize(self, token: str, required_role: UserRole) -> AccessDecision:
        """Allow when the token parses, carries required_role and names an existing account."""
        try:
            claims = self.token_engine.parse(token)
        except TokenError as exc:
            logger.info(f"Rejected token: {exc.kind.value}")
            message = "Token has expired" if exc.kind == ErrorKind.EXPIRED_TOKEN else "Invalid token"
            return AccessDecision.deny(exc.kind, message)

        required_role = UserRole(required_role)
        if claims.role != required_role:
            return AccessDecision.deny(
                ErrorKind.ROLE_MISMATCH,
                f"Access denied. Required role: {required_role.value}"
            )

        user_id = claims.user_id
        if user_id is None:
            return AccessDecision.deny(ErrorKind.INVALID_TOKEN, "Invalid token payload")

        if not self.role_store.exists(required_role, user_id):
            logger.warning(f"Token presented for missing {required_role.value} account {user_id}")
            return AccessDecision.deny(ErrorKind.USER_NOT_FOUND, "User not found")

        return AccessDecision(allowed=True, user_id=user_id, role=required_role)

    def authorize_for_resource(
        self,
        token: str,
        required_role: UserRole,
        resource_owner_id: Optional[int]
    ) -> AccessDecision:
        """As authorize, and the token's user must own the resource."""
        decision = self.authorize(token, required_role)
        if not decision.allowed:
            return decision

        if resource_owner_id is None or decision.user_id != resource_owner_id:
            return AccessDecision.deny(
                ErrorKind.RESOURCE_OWNERSHIP_MISMATCH,
                "You can only access your own resources"
            )
        return decision

    def validate(self, token: str) -> AccessDecision:
        """Authorize against whatever role the token itself claims."""
        role = self.token_engine.extract_role(token)
        if role is None:
            return AccessDecision.deny(ErrorKind.INVALID_TOKEN, "Invalid or expired token")
        return self.authorize(token, role)
