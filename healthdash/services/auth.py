"""
Authentication - bcrypt password hashing and HS256 JWT sessions.

Tokens carry the user id and email:
    {"id": <user id>, "email": <email>, "iat": ..., "exp": ...}

The FastAPI dependencies at the bottom resolve the bearer token on a request
to the stored user row.
"""
import logging
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Header, HTTPException

from healthdash.config import settings
from healthdash.database.connection import require_session
from healthdash.services.user_service import UserService
from healthdash.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

_DEV_SECRET = "healthdash-dev-secret"
_warned_dev_secret = False


def _secret() -> str:
    global _warned_dev_secret
    if settings.JWT_SECRET:
        return settings.JWT_SECRET
    if not settings.is_development:
        raise RuntimeError("JWT_SECRET must be set in production")
    if not _warned_dev_secret:
        logger.warning("JWT_SECRET not set - using the built-in development secret")
        _warned_dev_secret = True
    return _DEV_SECRET


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def create_access_token(user_id: str, email: str, expires_days: Optional[int] = None) -> str:
    """Issue a signed session token for a user"""
    now = utcnow()
    days = settings.JWT_EXPIRES_DAYS if expires_days is None else expires_days
    payload = {
        "id": user_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=days),
    }
    token = jwt.encode(payload, _secret(), algorithm=settings.JWT_ALGORITHM)
    logger.debug("Generated token for user %s, expires in %sd", user_id, days)
    return token


def decode_token(token: str) -> dict:
    """
    Verify a session token and return its claims.

    Raises:
        jwt.ExpiredSignatureError: token expired
        jwt.InvalidTokenError: bad signature, malformed token, missing claims
    """
    claims = jwt.decode(
        token,
        _secret(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp", "id"]},
    )
    return claims


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an Authorization header or raise 401"""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Access denied. No token provided or invalid format."
        )
    token = authorization[7:].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Access denied. Token is empty.")
    return token


async def get_current_user(authorization: Optional[str] = Header(None)) -> dict:
    """Resolve the bearer token to the stored user (without password hash)"""
    token = extract_bearer_token(authorization)

    try:
        claims = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired. Please login again.")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token. Please login again.")

    session_maker = require_session()
    async with session_maker() as session:
        user = await UserService.get_by_id(session, str(claims["id"]))

    if not user:
        raise HTTPException(status_code=401, detail="Invalid token. User not found.")
    if not user["is_verified"]:
        raise HTTPException(status_code=401, detail="Account not verified. Please verify your email.")
    return user


async def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[dict]:
    """Like get_current_user, but anonymous requests resolve to None"""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    try:
        return await get_current_user(authorization)
    except HTTPException as e:
        if e.status_code == 503:
            raise
        logger.debug("Optional auth failed: %s", e.detail)
        return None
