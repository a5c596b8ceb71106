from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from pydantic import BaseModel, Field
from enum import Enum
import hashlib
import logging

from .config import Settings
from .errors import ErrorKind

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# JWT Security
security = HTTPBearer()

class UserRole(str, Enum):
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    PATIENT = "PATIENT"

# Claim names owned by the engine; everything else is carried in TokenClaims.extra
SUBJECT_CLAIM = "sub"
ROLE_CLAIM = "role"
USER_ID_CLAIM = "user_id"
ISSUED_AT_CLAIM = "iat"
EXPIRY_CLAIM = "exp"
RESERVED_CLAIMS = {SUBJECT_CLAIM, ROLE_CLAIM, USER_ID_CLAIM, ISSUED_AT_CLAIM, EXPIRY_CLAIM}

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def _to_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(round(moment.timestamp() * 1000))

def _from_numeric_date(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value), tz=timezone.utc)

class TokenConfig(BaseModel):
    secret: str
    algorithm: str = "HS256"
    expiration_ms: int = 604800000

class TokenClaims(BaseModel):
    subject: str
    role: Optional[UserRole] = None
    user_id: Optional[int] = None
    issued_at: datetime
    expires_at: datetime
    extra: Dict[str, Any] = Field(default_factory=dict)

class TokenError(Exception):
    kind = ErrorKind.INVALID_TOKEN

class InvalidTokenError(TokenError):
    kind = ErrorKind.INVALID_TOKEN

class ExpiredTokenError(TokenError):
    kind = ErrorKind.EXPIRED_TOKEN

# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

class TokenEngine:
    """Issues, parses and refreshes signed session tokens.

    Tokens are stateless HS256 JWTs carrying the user id, its role, issued-at
    and expiry. Timestamps are written as NumericDate values with millisecond
    precision so that short TTLs behave exactly under a fixed clock.
    """

    def __init__(self, config: TokenConfig, clock: Clock = utc_now):
        self.config = config
        self.clock = clock
        # HMAC-SHA256 wants a fixed-length key, whatever the secret's length
        self._key = hashlib.sha256(config.secret.encode("utf-8")).digest()

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utc_now) -> "TokenEngine":
        return cls(
            TokenConfig(
                secret=settings.SECRET_KEY,
                algorithm=settings.ALGORITHM,
                expiration_ms=settings.TOKEN_EXPIRATION_MS,
            ),
            clock=clock,
        )

    def issue(self, user_id: int, role: UserRole, extra_claims: Optional[Dict[str, Any]] = None) -> str:
        """Create a signed token for user_id acting as role."""
        role = UserRole(role)
        to_encode = {
            key: value for key, value in (extra_claims or {}).items()
            if key not in RESERVED_CLAIMS
        }
        issued_ms = _to_millis(self.clock())
        expires_ms = issued_ms + self.config.expiration_ms

        to_encode.update({
            SUBJECT_CLAIM: str(user_id),
            ROLE_CLAIM: role.value,
            USER_ID_CLAIM: int(user_id),
            ISSUED_AT_CLAIM: issued_ms / 1000,
            EXPIRY_CLAIM: expires_ms / 1000,
        })

        return jwt.encode(to_encode, self._key, algorithm=self.config.algorithm)

    def issue_with_claims(self, user_id: int, role: UserRole, claims: Dict[str, Any]) -> str:
        return self.issue(user_id, role, extra_claims=claims)

    def parse(self, token: str) -> TokenClaims:
        """Verify signature and expiry; raise InvalidTokenError or ExpiredTokenError."""
        claims = self._decode(token)
        if _to_millis(self.clock()) >= _to_millis(claims.expires_at):
            raise ExpiredTokenError("Token has expired")
        return claims

    def validate(self, token: str) -> bool:
        try:
            self.parse(token)
        except TokenError:
            return False
        return True

    def is_expired(self, token: str) -> bool:
        """True when the token is structurally valid and signed, but past its expiry."""
        try:
            claims = self._decode(token)
        except TokenError:
            return False
        return _to_millis(self.clock()) >= _to_millis(claims.expires_at)

    def extract_expiration(self, token: str) -> Optional[datetime]:
        try:
            return self._decode(token).expires_at
        except TokenError:
            return None

    def extract_role(self, token: str) -> Optional[UserRole]:
        claims = self._parse_or_none(token)
        return claims.role if claims else None

    def extract_user_id(self, token: str) -> Optional[int]:
        claims = self._parse_or_none(token)
        if claims is None:
            return None
        if claims.user_id is not None:
            return claims.user_id
        try:
            return int(claims.subject)
        except ValueError:
            return None

    def extract_subject_id(self, token: str) -> Optional[str]:
        claims = self._parse_or_none(token)
        return claims.subject if claims else None

    def extract_role_scoped_id(self, token: str, expected_role: UserRole) -> Optional[int]:
        """Return the user id only when the token was issued for expected_role."""
        if self.extract_role(token) != UserRole(expected_role):
            return None
        return self.extract_user_id(token)

    def extract_patient_id(self, token: str) -> Optional[int]:
        return self.extract_role_scoped_id(token, UserRole.PATIENT)

    def extract_doctor_id(self, token: str) -> Optional[int]:
        return self.extract_role_scoped_id(token, UserRole.DOCTOR)

    def extract_admin_id(self, token: str) -> Optional[int]:
        return self.extract_role_scoped_id(token, UserRole.ADMIN)

    def refresh(self, token: str) -> Optional[str]:
        """Re-issue a token with the same role, user id and custom claims.

        The signature must verify, but an expired token is accepted: renewing
        expired sessions is what refresh is for.
        """
        try:
            claims = self._decode(token)
        except TokenError:
            return None
        user_id = claims.user_id
        if user_id is None or claims.role is None:
            return None
        return self.issue(user_id, claims.role, extra_claims=claims.extra)

    def _parse_or_none(self, token: str) -> Optional[TokenClaims]:
        try:
            return self.parse(token)
        except TokenError:
            return None

    def _decode(self, token: str) -> TokenClaims:
        """Verify the signature and map the payload, without checking expiry."""
        if not token or not isinstance(token, str):
            raise InvalidTokenError("Token is missing")
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[self.config.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        if SUBJECT_CLAIM not in payload or EXPIRY_CLAIM not in payload or ISSUED_AT_CLAIM not in payload:
            raise InvalidTokenError("Token is missing required claims")

        try:
            role = UserRole(payload[ROLE_CLAIM]) if payload.get(ROLE_CLAIM) is not None else None
            user_id = int(payload[USER_ID_CLAIM]) if payload.get(USER_ID_CLAIM) is not None else None
            return TokenClaims(
                subject=str(payload[SUBJECT_CLAIM]),
                role=role,
                user_id=user_id,
                issued_at=_from_numeric_date(payload[ISSUED_AT_CLAIM]),
                expires_at=_from_numeric_date(payload[EXPIRY_CLAIM]),
                extra={k: v for k, v in payload.items() if k not in RESERVED_CLAIMS},
            )
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("Token claims are malformed") from exc

# Security exceptions
class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
