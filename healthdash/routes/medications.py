"""
Medication endpoints - suggestions, acceptance, schedules, intake tracking
"""
import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError

from healthdash.database.connection import require_session
from healthdash.models.schemas import (
    MedicationAccept,
    MedicationCreate,
    MedicationLogPayload,
    MedicationSuggest,
    SchedulePayload,
)
from healthdash.services.auth import get_current_user
from healthdash.services.care_team_service import CareTeamService
from healthdash.services.medication_service import (
    ACTIVE_STATUSES,
    MedicationService,
    adherence,
    build_today_schedule,
    nearest_slot,
    serialize_log,
    serialize_medication,
    slot_datetime,
)
from healthdash.services.notification_service import create_notification
from healthdash.services.user_service import UserService
from healthdash.utils.responses import server_error
from healthdash.utils.timeutils import utcnow
from healthdash.utils.validators import canonical_id, validate_id, validate_time_of_day

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/medications")


def _clean_times(times: Optional[List[str]]) -> Optional[List[str]]:
    if times is None:
        return None
    return sorted(set(validate_time_of_day(t) for t in times))


@router.post("/suggest", status_code=201)
async def suggest_medication(payload: MedicationSuggest, user: dict = Depends(get_current_user)):
    """Store a care team doctor's suggestion as pending for the patient"""
    patient_id = validate_id(payload.userId, "User ID")
    doctor_id = validate_id(payload.doctorId, "Doctor ID") if payload.doctorId else None

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                if await UserService.get_by_id(session, patient_id) is None:
                    raise HTTPException(status_code=404, detail="User not found")
                if doctor_id and await CareTeamService.get_doctor(session, doctor_id) is None:
                    raise HTTPException(status_code=404, detail="Doctor not found")

                row = await MedicationService.create(session, patient_id, {
                    "doctor_id": doctor_id,
                    "name": payload.name,
                    "dosage": payload.dosage,
                    "frequency": payload.frequency,
                    "instructions": payload.instructions,
                    "status": "pending",
                    "suggested_at": utcnow(),
                    "scheduled_times": [],
                })
                await create_notification(
                    session,
                    patient_id,
                    "New medication suggestion",
                    f"{payload.name} {payload.dosage} ({payload.frequency}) was suggested for you.",
                    type="medication",
                    action_url="/medications",
                    action_text="Review",
                    metadata={"medicationId": row["id"]},
                )

        logger.info("Medication %s suggested for user %s", payload.name, patient_id)
        return {"success": True, "data": serialize_medication(row)}
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Medication with this name and dosage already exists")
    except HTTPException:
        raise
    except Exception as e:
        return server_error("suggest_medication", e, "Failed to suggest medication")


@router.post("/accept")
async def accept_medication(payload: MedicationAccept, user: dict = Depends(get_current_user)):
    """
    Accept/decline a suggestion, or record a manual medication

    With a valid medicationId the caller's medication is updated. Otherwise
    name and dosage identify the medication: an existing one is updated, a
    new one is created.
    """
    times = _clean_times(payload.scheduledTimes)
    status = payload.status or "accepted"
    values = {"status": status}
    if times is not None:
        values["scheduled_times"] = times
    if status == "accepted":
        values["accepted_at"] = utcnow()

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                medication_id = canonical_id(payload.medicationId)
                if medication_id:
                    if await MedicationService.get(session, user["id"], medication_id) is None:
                        raise HTTPException(status_code=404, detail="Medication not found")
                    row = await MedicationService.update(session, user["id"], medication_id, values)
                else:
                    if not payload.name or not payload.dosage:
                        raise HTTPException(status_code=400, detail="Manual medications require name and dosage")
                    existing = await MedicationService.find_by_name(session, user["id"], payload.name, payload.dosage)
                    if existing is not None:
                        row = await MedicationService.update(session, user["id"], existing["id"], values)
                    else:
                        values.setdefault("scheduled_times", [])
                        row = await MedicationService.create(session, user["id"], dict(
                            values, name=payload.name, dosage=payload.dosage, frequency="Once daily"
                        ))

        logger.info("Medication %s set to %s for user %s", row["name"], row["status"], user["id"])
        return {"success": True, "data": serialize_medication(row)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("accept_medication", e, "Failed to update medication")


@router.post("", status_code=201)
async def create_medication(payload: MedicationCreate, user: dict = Depends(get_current_user)):
    """Add a medication directly (onboarding medication step)"""
    values = {
        "name": payload.name,
        "dosage": payload.dosage,
        "frequency": payload.frequency,
        "instructions": payload.instructions,
        "status": payload.status,
        "scheduled_times": _clean_times(payload.scheduledTimes),
    }
    if payload.status == "accepted":
        values["accepted_at"] = utcnow()

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await MedicationService.create(session, user["id"], values)
        return {"success": True, "data": serialize_medication(row)}
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Medication with this name and dosage already exists")
    except HTTPException:
        raise
    except Exception as e:
        return server_error("create_medication", e, "Failed to create medication")


@router.get("/user")
async def user_medications(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await MedicationService.find(session, user["id"])
        return {"success": True, "data": [serialize_medication(row) for row in rows]}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("user_medications", e, "Failed to fetch medications")


@router.get("/pending")
async def pending_medications(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await MedicationService.find(session, user["id"], ["pending"])
        return {"success": True, "data": [serialize_medication(row) for row in rows]}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("pending_medications", e, "Failed to fetch pending medications")


@router.get("/today")
async def today_schedule(user: dict = Depends(get_current_user)):
    """Today's doses with Taken/Missed/Upcoming status"""
    now = utcnow()
    start = slot_datetime(now.date(), "00:00")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            meds = await MedicationService.find(session, user["id"], ACTIVE_STATUSES)
            logs = await MedicationService.logs_between(session, user["id"], start, start + timedelta(days=1))
        return {"success": True, "data": build_today_schedule(meds, logs, now)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("today_schedule", e, "Failed to fetch today's schedule")


@router.get("/history")
async def medication_history(days: int = Query(7, ge=1, le=365), user: dict = Depends(get_current_user)):
    """Intake logs for the last N days with adherence summary"""
    now = utcnow()
    start = slot_datetime(now.date() - timedelta(days=days - 1), "00:00")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            logs = await MedicationService.logs_between(
                session, user["id"], start, slot_datetime(now.date() + timedelta(days=1), "00:00")
            )
        return {
            "success": True,
            "data": {
                "logs": [serialize_log(row) for row in logs],
                "adherence": adherence(logs),
                "days": days,
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("medication_history", e, "Failed to fetch medication history")


@router.patch("/{medication_id}/schedule")
async def schedule_medication(medication_id: str, payload: SchedulePayload,
                              user: dict = Depends(get_current_user)):
    medication_id = validate_id(medication_id, "Medication ID")
    times = _clean_times(payload.scheduledTimes)
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                if await MedicationService.get(session, user["id"], medication_id) is None:
                    raise HTTPException(status_code=404, detail="Medication not found")
                row = await MedicationService.update(
                    session, user["id"], medication_id, {"scheduled_times": times, "status": "scheduled"}
                )
        return {"success": True, "data": serialize_medication(row)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("schedule_medication", e, "Failed to update schedule")


async def _record(medication_id: str, payload: Optional[MedicationLogPayload], user: dict, status: str):
    payload = payload or MedicationLogPayload()
    medication_id = validate_id(medication_id, "Medication ID")
    if payload.scheduledTime is not None:
        validate_time_of_day(payload.scheduledTime)

    now = utcnow()
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                med = await MedicationService.get(session, user["id"], medication_id)
                if med is None:
                    raise HTTPException(status_code=404, detail="Medication not found")

                scheduled = med["scheduled_times"] or []
                hhmm = payload.scheduledTime
                if hhmm is None:
                    hhmm = nearest_slot(scheduled, now) or now.strftime("%H:%M")
                elif hhmm not in scheduled:
                    raise HTTPException(status_code=400, detail=f"{hhmm} is not a scheduled time for this medication")

                log = await MedicationService.record_intake(
                    session, user["id"], medication_id, slot_datetime(now.date(), hhmm), status, payload.notes
                )

        logger.info("Medication %s marked %s for user %s at %s", med["name"], status, user["id"], hhmm)
        return {"success": True, "message": f"Medication marked as {status}", "data": serialize_log(log)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error(f"mark_medication_{status}", e, "Failed to record medication")


@router.patch("/{medication_id}/taken")
async def mark_taken(medication_id: str, payload: Optional[MedicationLogPayload] = None,
                     user: dict = Depends(get_current_user)):
    return await _record(medication_id, payload, user, "taken")


@router.patch("/{medication_id}/missed")
async def mark_missed(medication_id: str, payload: Optional[MedicationLogPayload] = None,
                     user: dict = Depends(get_current_user)):
    return await _record(medication_id, payload, user, "missed")
