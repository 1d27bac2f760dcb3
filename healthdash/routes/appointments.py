"""
Appointment endpoints
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, insert, or_, update

from healthdash.database.connection import require_session
from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import appointments, new_id
from healthdash.models.schemas import (
    APPOINTMENT_STATUSES,
    APPOINTMENT_TYPES,
    AppointmentCreate,
    AppointmentUpdate,
    StatusPayload,
)
from healthdash.services.appointment_service import (
    CLOSED_STATUSES,
    AppointmentService,
    appointment_columns,
)
from healthdash.services.auth import get_current_user
from healthdash.services.care_team_service import CareTeamService
from healthdash.services.notification_service import create_notification
from healthdash.utils.responses import server_error
from healthdash.utils.timeutils import today, utcnow
from healthdash.utils.validators import (
    pagination_meta,
    validate_choice,
    validate_id,
    validate_pagination,
    validate_time_of_day,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments")


async def _check_doctor(session, doctor_id: Optional[str]) -> Optional[str]:
    if doctor_id is None:
        return None
    doctor_id = validate_id(doctor_id, "Doctor ID")
    if await CareTeamService.get_doctor(session, doctor_id) is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return doctor_id


@router.post("", status_code=201)
async def create_appointment(payload: AppointmentCreate, user: dict = Depends(get_current_user)):
    """Book an appointment and notify the user"""
    validate_time_of_day(payload.time)
    values = appointment_columns(payload.model_dump())

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                values["doctor_id"] = await _check_doctor(session, payload.doctorId)
                appointment_id = new_id()
                await execute_with_retry(
                    session,
                    insert(appointments).values(id=appointment_id, user_id=user["id"], **values)
                )
                appointment = await AppointmentService.get(session, user["id"], appointment_id)

                with_whom = f" with {appointment['doctor']['name']}" if appointment["doctor"] else ""
                await create_notification(
                    session,
                    user["id"],
                    "Appointment booked",
                    f"{appointment['title']}{with_whom} on {appointment['date']} at {appointment['time']}",
                    type="appointment",
                    action_url="/appointments",
                    action_text="View",
                    metadata={"appointmentId": appointment_id},
                )

        logger.info("Appointment %s created for user %s", appointment_id, user["id"])
        return {"success": True, "message": "Appointment created successfully", "data": appointment}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("create_appointment", e, "Failed to create appointment")


@router.get("")
async def list_appointments(
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    limit: int = Query(50),
    page: int = Query(1),
    user: dict = Depends(get_current_user),
):
    """The caller's appointments, soonest first"""
    limit, page, offset = validate_pagination(limit, page)
    conditions = [appointments.c.user_id == user["id"]]
    if status:
        conditions.append(appointments.c.status == validate_choice(status, APPOINTMENT_STATUSES, "status"))
    if type:
        conditions.append(appointments.c.type == validate_choice(type, APPOINTMENT_TYPES, "appointment type"))

    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await AppointmentService.find(
                session, conditions, [appointments.c.date.asc(), appointments.c.time.asc()], limit, offset
            )
            total = await AppointmentService.count(session, conditions)
        return {"success": True, "data": rows, "pagination": pagination_meta(total, page, limit)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("list_appointments", e, "Failed to fetch appointments")


@router.get("/upcoming")
async def upcoming_appointments(user: dict = Depends(get_current_user)):
    """Next 10 upcoming appointments from today on"""
    conditions = [
        appointments.c.user_id == user["id"],
        appointments.c.status == "upcoming",
        appointments.c.date >= today(),
    ]
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await AppointmentService.find(
                session, conditions, [appointments.c.date.asc(), appointments.c.time.asc()], limit=10
            )
        return {"success": True, "data": rows}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("upcoming_appointments", e, "Failed to fetch upcoming appointments")


@router.get("/history")
async def appointment_history(user: dict = Depends(get_current_user)):
    """Past or closed appointments, newest first"""
    conditions = [
        appointments.c.user_id == user["id"],
        or_(appointments.c.date < today(), appointments.c.status.in_(CLOSED_STATUSES)),
    ]
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await AppointmentService.find(
                session, conditions, [appointments.c.date.desc(), appointments.c.time.desc()]
            )
        return {"success": True, "data": rows}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("appointment_history", e, "Failed to fetch appointment history")


async def _update(user_id: str, appointment_id: str, values: dict, context: str, message: str):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                if "doctor_id" in values:
                    values["doctor_id"] = await _check_doctor(session, values["doctor_id"])
                result = await execute_with_retry(
                    session,
                    update(appointments)
                    .where(appointments.c.id == appointment_id, appointments.c.user_id == user_id)
                    .values(**values, updated_at=utcnow())
                )
                if result.rowcount == 0:
                    raise HTTPException(status_code=404, detail="Appointment not found")
                appointment = await AppointmentService.get(session, user_id, appointment_id)
        return {"success": True, "message": message, "data": appointment}
    except HTTPException:
        raise
    except Exception as e:
        return server_error(context, e, "Failed to update appointment")


@router.patch("/{appointment_id}/status")
async def update_status(appointment_id: str, payload: StatusPayload, user: dict = Depends(get_current_user)):
    appointment_id = validate_id(appointment_id, "Appointment ID")
    if payload.status not in APPOINTMENT_STATUSES:
        raise HTTPException(
            status_code=400,
            detail="Invalid status. Must be: upcoming, completed, cancelled, or no-show"
        )
    return await _update(
        user["id"], appointment_id, {"status": payload.status},
        "update_appointment_status", "Appointment status updated successfully",
    )


@router.patch("/{appointment_id}/cancel")
async def cancel_appointment(appointment_id: str, user: dict = Depends(get_current_user)):
    appointment_id = validate_id(appointment_id, "Appointment ID")
    return await _update(
        user["id"], appointment_id, {"status": "cancelled"},
        "cancel_appointment", "Appointment cancelled successfully",
    )


@router.put("/{appointment_id}")
async def update_appointment(appointment_id: str, payload: AppointmentUpdate,
                             user: dict = Depends(get_current_user)):
    """Partial update of the editable fields"""
    appointment_id = validate_id(appointment_id, "Appointment ID")
    values = appointment_columns(payload.model_dump())
    if "time" in values:
        validate_time_of_day(values["time"])
    if not values:
        raise HTTPException(status_code=400, detail="No fields to update")
    return await _update(
        user["id"], appointment_id, values, "update_appointment", "Appointment updated successfully"
    )


@router.delete("/{appointment_id}")
async def delete_appointment(appointment_id: str, user: dict = Depends(get_current_user)):
    appointment_id = validate_id(appointment_id, "Appointment ID")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                result = await execute_with_retry(
                    session,
                    delete(appointments)
                    .where(appointments.c.id == appointment_id, appointments.c.user_id == user["id"])
                )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return {"success": True, "message": "Appointment deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("delete_appointment", e, "Failed to delete appointment")
