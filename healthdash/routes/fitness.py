"""
Fitness endpoints - goals from the quiz, daily activity logging, weekly stats
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy import update

from healthdash.database.connection import require_session
from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import fitness_goals
from healthdash.models.schemas import FitnessLogPayload, FitnessQuizPayload, TargetsPayload
from healthdash.services.auth import get_current_user
from healthdash.services.fitness_service import (
    PROGRESS_COLUMNS,
    TARGET_COLUMNS,
    FitnessService,
    generate_insights,
    progress_columns,
    serialize_goal,
    serialize_log,
    targets_from_quiz,
)
from healthdash.utils.responses import server_error
from healthdash.utils.timeutils import today, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fitness")
goals_router = APIRouter(prefix="/api/goals")


@router.post("/goals")
async def create_fitness_goals(payload: FitnessQuizPayload, user: dict = Depends(get_current_user)):
    """Derive and store targets from the fitness quiz; resets weekly stats"""
    values = targets_from_quiz(payload.model_dump())
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await FitnessService.upsert_goal(session, user["id"], values)
        logger.info("Fitness goals set for user %s (%s)", user["id"], values["primary_fitness_goal"])
        return {"success": True, "data": serialize_goal(row), "message": "Fitness goals created successfully"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("create_fitness_goals", e, "Failed to create fitness goals")


@router.get("/goals")
async def get_fitness_goals(user: dict = Depends(get_current_user)):
    """
    Current goals with week-to-date stats and insights

    Creates default goals on first access. Weekly stats are recomputed from
    the logs and today's log (if any) becomes the progress snapshot.
    """
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row, stats = await FitnessService.refresh_goal(session, user["id"], today())

        goal = serialize_goal(row)
        goal["insights"] = generate_insights(goal, stats)
        return {"success": True, "data": goal}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("get_fitness_goals", e, "Failed to fetch fitness goals")


@router.post("/log")
async def log_fitness_activity(payload: FitnessLogPayload, user: dict = Depends(get_current_user)):
    """Add activity to today's log"""
    increments = {
        "steps": payload.steps,
        "calories": payload.calories,
        "workout_minutes": payload.workoutMinutes,
        "water_intake": payload.waterIntake,
    }
    session_maker = require_session()
    try:
        row = await FitnessService.increment_log(
            session_maker, user["id"], today(), increments, payload.workoutType, payload.notes
        )
        return {"success": True, "data": serialize_log(row), "message": "Activity logged successfully"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("log_fitness_activity", e, "Failed to log activity")


@router.patch("/goals/progress")
async def update_fitness_progress(payload: dict = Body(...), user: dict = Depends(get_current_user)):
    """Replace the progress snapshot"""
    values = {column: 0 for column in PROGRESS_COLUMNS.values()}
    values.update(progress_columns(payload))

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                result = await execute_with_retry(
                    session,
                    update(fitness_goals)
                    .where(fitness_goals.c.user_id == user["id"])
                    .values(**values, updated_at=utcnow())
                )
                if result.rowcount == 0:
                    raise HTTPException(status_code=404, detail="Fitness goals not found")
                row = await FitnessService.get_goal(session, user["id"])
        return {"success": True, "data": serialize_goal(row)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("update_fitness_progress", e, "Failed to update progress")


@router.get("/logs")
async def get_fitness_logs(days: int = Query(7, ge=1, le=365), user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            logs = await FitnessService.recent_logs(session, user["id"], days)
        return {"success": True, "data": [serialize_log(row) for row in logs]}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("get_fitness_logs", e, "Failed to fetch fitness logs")


@router.get("/weekly-stats")
async def get_weekly_stats(user: dict = Depends(get_current_user)):
    """Week-to-date roll-up (weeks start on Sunday)"""
    session_maker = require_session()
    try:
        async with session_maker() as session:
            stats = await FitnessService.weekly_stats(session, user["id"], today())
        return {"success": True, "data": stats}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("get_weekly_stats", e, "Failed to fetch weekly stats")


# Dashboard "Edit targets" API

@goals_router.get("")
async def get_goals(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await FitnessService.ensure_goal(session, user["id"])
        return serialize_goal(row)
    except HTTPException:
        raise
    except Exception as e:
        return server_error("get_goals", e, "Failed to fetch goals")


@goals_router.post("")
async def upsert_targets(payload: TargetsPayload, user: dict = Depends(get_current_user)):
    """Set the given targets; absent keys keep their value"""
    values = {
        column: getattr(payload, key)
        for key, column in TARGET_COLUMNS.items()
        if getattr(payload, key) is not None
    }
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await FitnessService.upsert_goal(session, user["id"], values)
        return serialize_goal(row)
    except HTTPException:
        raise
    except Exception as e:
        return server_error("upsert_targets", e, "Failed to update targets")


@goals_router.patch("/progress")
async def update_progress(payload: dict = Body(...), user: dict = Depends(get_current_user)):
    """Set only the numeric progress keys given"""
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                row = await FitnessService.upsert_goal(session, user["id"], progress_columns(payload))
        return serialize_goal(row)
    except HTTPException:
        raise
    except Exception as e:
        return server_error("update_progress", e, "Failed to update progress")
