"""
Authentication endpoints
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from healthdash.database.connection import require_session
from healthdash.models.schemas import LoginPayload, RefreshPayload, SignupPayload
from healthdash.services.auth import (
    create_access_token,
    decode_token,
    extract_bearer_token,
    get_current_user,
    hash_password,
    verify_password,
)
from healthdash.services.user_service import UserService
from healthdash.utils.responses import server_error
from healthdash.utils.rate_limit import limit_auth_requests
from healthdash.utils.timeutils import utcnow
from healthdash.utils.validators import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", dependencies=[Depends(limit_auth_requests)])


@router.post("/signup", status_code=201)
async def signup(payload: SignupPayload):
    """Create an account and return a session token"""
    email = normalize_email(payload.email)
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name, email, and password are required")

    session_maker = require_session()
    logger.info("Signup request for %s", email)

    try:
        async with session_maker() as session:
            async with session.begin():
                if await UserService.get_by_email(session, email):
                    raise HTTPException(status_code=400, detail="Email already registered")

                medical = payload.medicalInfo
                user_id = await UserService.create(
                    session,
                    name=name,
                    email=email,
                    password_hash=hash_password(payload.password),
                    age=payload.age,
                    gender=payload.gender,
                    conditions=medical.conditions if medical else [],
                    goals=medical.goals if medical else [],
                )
            user = await UserService.get_by_id(session, user_id)

        logger.info("User created: %s", user_id)
        return {
            "message": "User created successfully",
            "token": create_access_token(user_id, user["email"]),
            "user": UserService.public_user(user),
        }
    except HTTPException:
        raise
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        raise HTTPException(status_code=400, detail="Email already registered")
    except Exception as e:
        return server_error("signup", e, "Signup failed")


@router.post("/login")
async def login(payload: LoginPayload):
    """Check credentials and return a fresh session token"""
    email = (payload.email or "").strip().lower()
    if not email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    session_maker = require_session()

    try:
        async with session_maker() as session:
            user = await UserService.get_by_email(session, email)

        if not user or not verify_password(payload.password, user["password_hash"]):
            logger.info("Failed login for %s", email)
            raise HTTPException(status_code=400, detail="Invalid credentials")

        logger.info("Login successful for user %s", user["id"])
        return {
            "token": create_access_token(user["id"], user["email"]),
            "user": UserService.public_user(user),
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("login", e, "Login failed")


@router.post("/refresh")
async def refresh_token(payload: RefreshPayload):
    """Exchange a still-valid token for a new one"""
    if not payload.refreshToken:
        raise HTTPException(status_code=401, detail="Refresh token required")
    try:
        claims = decode_token(payload.refreshToken)
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    return {"token": create_access_token(str(claims["id"]), claims.get("email", ""))}


@router.get("/verify")
async def verify_token(authorization: Optional[str] = Header(None)):
    """Report whether the bearer token is valid and when it expires"""
    token = extract_bearer_token(authorization)
    try:
        claims = decode_token(token)
    except jwt.InvalidTokenError as e:
        return JSONResponse(status_code=401, content={"valid": False, "error": str(e)})

    now = int(utcnow().replace(tzinfo=timezone.utc).timestamp())
    time_until_expiry = int(claims["exp"]) - now
    return {
        "valid": True,
        "userId": claims["id"],
        "expiresAt": datetime.fromtimestamp(claims["exp"], tz=timezone.utc).isoformat(),
        "timeUntilExpiry": time_until_expiry,
        "needsRefresh": time_until_expiry < 3600,
    }


@router.get("/me")
async def me(user: dict = Depends(get_current_user)):
    """Current user"""
    return UserService.public_user(user)


@router.get("/health")
async def auth_health():
    return {
        "status": "OK",
        "timestamp": utcnow().isoformat() + "Z",
        "routes": ["/signup", "/login", "/refresh", "/verify", "/me"],
    }
