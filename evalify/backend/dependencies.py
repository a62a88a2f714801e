"""
Evalify Quiz Attempt Service
Dependency injection components
"""

import logging
from typing import Optional, List

import jwt
import redis.asyncio as redis
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import async_sessionmaker

from .database.connection import get_session_factory
from .database.documents import QuestionStore, get_question_store
from .database.models import UserRole
from .exceptions import AuthenticationException
from .services.attempts import AttemptInitializer, SubmissionFinalizer
from .services.question_cache import QuestionCache
from ..config import get_settings, get_redis_url

# Configure logging
logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

# Redis connection
_redis_client: Optional[redis.Redis] = None


class SessionUser(BaseModel):
    """Identity carried by a verified session token"""
    id: str
    role: UserRole
    email: Optional[str] = None


async def init_redis_client() -> redis.Redis:
    """Create the Redis client and check it answers"""
    global _redis_client

    _redis_client = redis.from_url(
        get_redis_url(),
        encoding="utf-8",
        decode_responses=True,
        socket_keepalive=True,
        health_check_interval=30
    )
    try:
        await _redis_client.ping()
        logger.info("✅ Redis connection established")
    except Exception as e:
        logger.error(f"❌ Redis connection failed: {e}")
        raise

    return _redis_client


def get_redis_client() -> redis.Redis:
    """Get Redis client instance"""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis_client() first.")
    return _redis_client


def verify_jwt_token(token: str) -> dict:
    """Verify and decode JWT token"""
    settings = get_settings()

    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationException(details={"reason": "token_expired"})
    except jwt.InvalidTokenError:
        raise AuthenticationException(details={"reason": "token_invalid"})


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[SessionUser]:
    """Get current session user (optional)"""

    if not credentials:
        return None

    payload = verify_jwt_token(credentials.credentials)
    user_id = payload.get("sub")
    role = payload.get("role")

    if not user_id or not role:
        raise AuthenticationException(details={"reason": "token_payload"})

    try:
        return SessionUser(id=str(user_id), role=UserRole(str(role).upper()), email=payload.get("email"))
    except ValueError:
        raise AuthenticationException(details={"reason": "unknown_role"})


def require_role(allowed_roles: List[UserRole]):
    """Factory function to create role-based dependencies"""

    async def check_role(current_user: Optional[SessionUser] = Depends(get_current_user)) -> SessionUser:
        if current_user is None or current_user.role not in allowed_roles:
            raise AuthenticationException()
        return current_user

    return check_role


# Pre-built role dependencies
require_student = require_role([UserRole.STUDENT])
require_staff = require_role([UserRole.STAFF, UserRole.MANAGER, UserRole.ADMIN])


def get_question_cache(client: redis.Redis = Depends(get_redis_client)) -> QuestionCache:
    return QuestionCache(client)


def get_attempt_initializer(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    cache: QuestionCache = Depends(get_question_cache),
    store: QuestionStore = Depends(get_question_store)
) -> AttemptInitializer:
    return AttemptInitializer(session_factory, cache, store)


def get_submission_finalizer(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    cache: QuestionCache = Depends(get_question_cache)
) -> SubmissionFinalizer:
    return SubmissionFinalizer(session_factory, cache)


# Cleanup function
async def cleanup_dependencies():
    """Cleanup dependency resources"""
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("✅ Redis connection closed")


# Export main dependencies
__all__ = [
    "SessionUser",
    "get_current_user",
    "require_role",
    "require_student",
    "require_staff",
    "init_redis_client",
    "get_redis_client",
    "get_question_cache",
    "get_attempt_initializer",
    "get_submission_finalizer",
    "cleanup_dependencies"
]
