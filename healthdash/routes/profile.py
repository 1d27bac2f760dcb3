"""
Profile endpoints - onboarding quiz, dashboard customization, uploads
"""
import logging

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from healthdash.database.connection import require_session
from healthdash.services.auth import get_current_user
from healthdash.services.measurement_service import (
    DASHBOARD_TYPES,
    MeasurementError,
    MeasurementService,
    validate_measurement,
)
from healthdash.services.profile_service import (
    ProfileService,
    sanitize_quiz_payload,
    serialize_profile,
)
from healthdash.services.user_service import UserService
from healthdash.utils.responses import server_error
from healthdash.utils.uploads import DOCUMENT_TYPES, IMAGE_TYPES, save_upload
from healthdash.utils.validators import validate_profile_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile")


@router.post("/quiz")
async def submit_quiz(payload: dict = Body(...), user: dict = Depends(get_current_user)):
    """
    Save onboarding quiz answers.

    Partial payloads are fine: only the fields present (and non-null) are
    written, so the client can submit after each step. initialMeasurements
    are stored as measurements with source 'quiz'; a bad one is skipped.
    """
    sanitized = sanitize_quiz_payload(payload)
    initial_measurements = sanitized.pop("initialMeasurements", None)

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await ProfileService.merge(session, user["id"], sanitized, completed=True)

                saved = []
                if isinstance(initial_measurements, list):
                    for item in initial_measurements:
                        try:
                            values = validate_measurement(dict(item, source=item.get("source") or "quiz"))
                        except (MeasurementError, AttributeError, TypeError) as e:
                            logger.warning("Skipping quiz measurement %r: %s", item, e)
                            continue
                        saved.append(await MeasurementService.create(session, user["id"], values))

        logger.info("Quiz data updated for user %s", user["email"])
        if saved:
            logger.info("Saved %d initial measurements", len(saved))

        return {
            "success": True,
            "message": "Quiz data saved successfully",
            "data": {
                "profile": serialize_profile(row),
                "user": UserService.public_user(user),
                "measurements": saved,
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("submit_quiz", e, "Error saving quiz data")


async def _profile_response(user: dict):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            row = await ProfileService.get_row(session, user["id"])
            latest = await MeasurementService.latest_by_type(session, user["id"], DASHBOARD_TYPES)
        return {
            "success": True,
            "data": {
                "profile": serialize_profile(row),
                "user": UserService.public_user(user),
                "latestMeasurements": latest,
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("get_profile", e, "Error fetching profile data")


@router.get("")
async def get_profile(user: dict = Depends(get_current_user)):
    """Profile, public user and the newest dashboard measurements"""
    return await _profile_response(user)


@router.get("/me")
async def get_my_profile(user: dict = Depends(get_current_user)):
    return await _profile_response(user)


@router.put("")
async def update_profile(payload: dict = Body(...), user: dict = Depends(get_current_user)):
    """Validate and merge profile edits"""
    errors = validate_profile_fields(payload)
    if errors:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Validation failed", "errors": errors},
        )

    sanitized = sanitize_quiz_payload(payload)
    sanitized.pop("initialMeasurements", None)

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await ProfileService.merge(session, user["id"], sanitized)

        logger.info("Profile updated for user %s", user["email"])
        return {
            "success": True,
            "message": "Profile updated successfully",
            "data": {"profile": serialize_profile(row), "user": UserService.public_user(user)},
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("update_profile", e, "Error updating profile")


@router.post("/dashboard-quiz")
async def save_dashboard_quiz(payload: dict = Body(...), user: dict = Depends(get_current_user)):
    """Store dashboard customization answers as-is"""
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await ProfileService.save_dashboard_preferences(session, user["id"], payload)

        logger.info("Dashboard quiz completed for user %s", user["email"])
        return {
            "success": True,
            "message": "Dashboard preferences saved successfully",
            "data": {"profile": serialize_profile(row), "user": UserService.public_user(user)},
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("save_dashboard_quiz", e, "Error saving dashboard preferences")


@router.post("/avatar")
async def upload_avatar(file: UploadFile = File(...), user: dict = Depends(get_current_user)):
    """Replace the profile photo"""
    url = await save_upload(file, IMAGE_TYPES)

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                await UserService.set_profile_photo(session, user["id"], url)
            updated = await UserService.get_by_id(session, user["id"])
        return {"success": True, "message": "Avatar updated", "data": {"user": UserService.public_user(updated)}}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("upload_avatar", e, "Error saving avatar")


@router.post("/prescription")
async def upload_prescription(file: UploadFile = File(...), user: dict = Depends(get_current_user)):
    """Attach a prescription document to the profile"""
    url = await save_upload(file, DOCUMENT_TYPES)

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await ProfileService.merge(session, user["id"], {"prescriptionFile": url})
        return {"success": True, "message": "Prescription uploaded", "data": {"profile": serialize_profile(row)}}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("upload_prescription", e, "Error saving prescription")
