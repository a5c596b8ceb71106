from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from functools import lru_cache
import logging

import redis

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.errors import ErrorKind, ServiceResult
from ..core.security import (
    security, AuthenticationError, AuthorizationError, TokenEngine, UserRole
)
from ..services.access_guard import AccessDecision, AccessGuard, SqlRoleStore

logger = logging.getLogger(__name__)

@lru_cache()
def get_token_engine() -> TokenEngine:
    """Token engine built from the application settings."""
    return TokenEngine.from_settings(settings)

def get_access_guard(
    db: Session = Depends(get_db),
    token_engine: TokenEngine = Depends(get_token_engine)
) -> AccessGuard:
    return AccessGuard(token_engine, SqlRoleStore(db))

async def get_bearer_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """Raw token from the Authorization header."""
    return credentials.credentials

def raise_for_decision(decision: AccessDecision) -> None:
    if decision.allowed:
        return
    if decision.error == ErrorKind.RESOURCE_OWNERSHIP_MISMATCH:
        raise AuthorizationError(decision.message)
    raise AuthenticationError(decision.message)

def raise_for_result(result: ServiceResult) -> None:
    """Turn a failed service result into the matching HTTP error."""
    if result.success:
        return
    if result.status_code == status.HTTP_401_UNAUTHORIZED:
        raise AuthenticationError(result.message)
    if result.status_code == status.HTTP_403_FORBIDDEN:
        raise AuthorizationError(result.message)
    raise HTTPException(status_code=result.status_code, detail=result.message)

# Role-based access control dependencies
def require_role(role: UserRole):
    """Create a dependency that authorizes the bearer token for one role."""
    async def role_checker(
        token: str = Depends(get_bearer_token),
        guard: AccessGuard = Depends(get_access_guard)
    ) -> AccessDecision:
        decision = guard.authorize(token, role)
        raise_for_decision(decision)
        return decision

    return role_checker

get_admin = require_role(UserRole.ADMIN)
get_doctor = require_role(UserRole.DOCTOR)
get_patient = require_role(UserRole.PATIENT)

async def get_any_user(
    token: str = Depends(get_bearer_token),
    guard: AccessGuard = Depends(get_access_guard)
) -> AccessDecision:
    """Any authenticated account, whatever its role."""
    decision = guard.validate(token)
    raise_for_decision(decision)
    return decision

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window rate limiting for login endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    try:
        current_requests = redis_client.get(key)
        if current_requests is None:
            redis_client.setex(key, settings.LOGIN_RATE_WINDOW_SECONDS, 1)
            return
        if int(current_requests) >= settings.LOGIN_RATE_LIMIT:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
    except redis.RedisError as e:
        # Login stays available when Redis is down
        logger.warning(f"Rate limiting skipped, Redis unavailable: {str(e)}")
