"""
Care team and doctor directory endpoints
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from healthdash.database.connection import require_session
from healthdash.models.schemas import AddDoctorPayload, SelectedDoctorsPayload
from healthdash.services.auth import get_current_user, get_optional_user
from healthdash.services.care_team_service import CareTeamService, serialize_member
from healthdash.services.profile_service import ProfileService
from healthdash.utils.responses import server_error
from healthdash.utils.validators import canonical_id, canonical_ids, validate_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/care-team")
doctors_router = APIRouter(prefix="/api/doctors")


@router.get("/suggested-doctors")
async def suggested_doctors(user: dict = Depends(get_current_user)):
    """System-approved doctors, best rated and most experienced first"""
    session_maker = require_session()
    try:
        async with session_maker() as session:
            doctors = await CareTeamService.system_doctors(session, ranked=True)
        logger.info("Found %d system-approved doctors", len(doctors))
        return {"success": True, "data": doctors}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("suggested_doctors", e, "Failed to fetch suggested doctors")


@router.post("/add-doctor")
async def add_doctor(payload: AddDoctorPayload, user: dict = Depends(get_current_user)):
    """
    Add an existing doctor to the caller's care team

    An entry that exists but was never accepted (or was removed) is
    accepted and reactivated instead of duplicated.
    """
    doctor_id = validate_id(payload.doctorId, "Doctor ID")

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                doctor = await CareTeamService.get_doctor(session, doctor_id)
                if doctor is None:
                    raise HTTPException(status_code=404, detail="Doctor not found")

                existing = await CareTeamService.get_entry(session, user["id"], doctor_id)
                if existing is not None and existing["accepted"] and existing["is_active"]:
                    raise HTTPException(status_code=409, detail="Doctor already in care team")

                entry = await CareTeamService.add_member(session, user["id"], doctor_id)

        logger.info("Doctor %s added to care team of user %s", doctor["name"], user["id"])
        return {"success": True, "data": serialize_member(entry, doctor)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("add_doctor", e, "Failed to add doctor to care team")


@router.get("")
async def my_care_team(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            members = await CareTeamService.members(session, user["id"])
        return {"success": True, "data": members}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("my_care_team", e, "Failed to fetch care team")


@router.delete("/{doctor_id}")
async def remove_doctor(doctor_id: str, user: dict = Depends(get_current_user)):
    """Deactivate a care team entry (the history is kept)"""
    doctor_id = validate_id(doctor_id, "Doctor ID")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                removed = await CareTeamService.deactivate(session, user["id"], doctor_id)
        if not removed:
            raise HTTPException(status_code=404, detail="Doctor not in care team")
        logger.info("Doctor %s removed from care team of user %s", doctor_id, user["id"])
        return {"success": True, "message": "Doctor removed from care team"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("remove_doctor", e, "Failed to remove doctor from care team")


# Doctor directory

@doctors_router.get("/system")
async def system_doctors(user: Optional[dict] = Depends(get_optional_user)):
    """Public list of system-approved doctors (used before signup completes)"""
    session_maker = require_session()
    try:
        async with session_maker() as session:
            doctors = await CareTeamService.system_doctors(session)
        return {"success": True, "message": "System doctors retrieved successfully", "data": doctors}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("system_doctors", e, "Error fetching system doctors")


@doctors_router.post("/careteam/add", status_code=201)
async def add_to_care_team(payload: AddDoctorPayload, user: dict = Depends(get_current_user)):
    """Add a directory doctor by id, or create a personal doctor from doctorData"""
    if payload.doctorData is None and not payload.doctorId:
        raise HTTPException(status_code=400, detail="Doctor ID or doctor data required")
    doctor_id = None if payload.doctorData is not None else validate_id(payload.doctorId, "Doctor ID")

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                if payload.doctorData is not None:
                    doctor = await CareTeamService.create_personal_doctor(
                        session, user["id"], payload.doctorData.model_dump()
                    )
                    logger.info("Personal doctor %s created by user %s", doctor["name"], user["id"])
                else:
                    doctor = await CareTeamService.get_doctor(session, doctor_id)
                    if doctor is None:
                        raise HTTPException(status_code=404, detail="Doctor not found")
                    existing = await CareTeamService.get_entry(session, user["id"], doctor_id)
                    if existing is not None and existing["accepted"] and existing["is_active"]:
                        raise HTTPException(status_code=409, detail="Doctor already in care team")

                entry = await CareTeamService.add_member(session, user["id"], doctor["id"])

        return {"success": True, "data": serialize_member(entry, doctor)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("add_to_care_team", e, "Failed to add doctor to care team")


@doctors_router.get("/careteam")
async def doctors_care_team(user: dict = Depends(get_current_user)):
    return await my_care_team(user)


@doctors_router.post("/selected")
async def save_selected_doctors(payload: SelectedDoctorsPayload, user: dict = Depends(get_current_user)):
    """Store the onboarding doctor selection on the profile"""
    if any(canonical_id(doctor_id) is None for doctor_id in payload.selectedDoctors):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Some doctor IDs are invalid or not system doctors"},
        )
    doctor_ids = canonical_ids(payload.selectedDoctors)

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                found = await CareTeamService.doctors_by_ids(session, doctor_ids)
                if len(found) != len(doctor_ids) or not all(d["isSystemApproved"] for d in found):
                    return JSONResponse(
                        status_code=400,
                        content={"success": False, "message": "Some doctor IDs are invalid or not system doctors"},
                    )
                await ProfileService.merge(session, user["id"], {"selectedDoctors": doctor_ids})

        return {
            "success": True,
            "message": "Selected doctors updated successfully",
            "data": {"selectedDoctors": found},
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("save_selected_doctors", e, "Error updating selected doctors")


@doctors_router.get("/selected")
async def get_selected_doctors(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            profile = await ProfileService.get_row(session, user["id"])
            stored = ((profile["data"] or {}) if profile else {}).get("selectedDoctors")
            doctor_ids = canonical_ids(stored)
            found = await CareTeamService.doctors_by_ids(session, doctor_ids)
        return {
            "success": True,
            "message": "Selected doctors retrieved successfully",
            "data": {"selectedDoctors": found},
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("get_selected_doctors", e, "Error fetching selected doctors")
