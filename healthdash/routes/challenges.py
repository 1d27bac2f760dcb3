"""
Challenge endpoints - catalogue, participation, progress, leaderboard
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from healthdash.database.connection import require_session
from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import challenges, new_id, user_challenges
from healthdash.models.schemas import (
    CHALLENGE_DIFFICULTIES,
    CHALLENGE_STATUSES,
    CHALLENGE_TYPES,
    ChallengeProgressPayload,
)
from healthdash.services.auth import get_current_user
from healthdash.services.challenge_service import (
    ChallengeService,
    ProgressError,
    apply_progress,
    parse_progress,
    serialize_challenge,
    serialize_participation,
)
from healthdash.services.notification_service import create_notification
from healthdash.utils.responses import server_error
from healthdash.utils.validators import pagination_meta, validate_choice, validate_id, validate_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/challenges")


@router.get("")
async def list_challenges(
    type: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    isActive: bool = Query(True),
    limit: int = Query(50),
    page: int = Query(1),
    user: dict = Depends(get_current_user),
):
    """Challenge catalogue, newest first"""
    limit, page, offset = validate_pagination(limit, page)
    conditions = [challenges.c.is_active.is_(isActive)]
    if type:
        conditions.append(challenges.c.type == validate_choice(type, CHALLENGE_TYPES, "challenge type"))
    if difficulty:
        conditions.append(
            challenges.c.difficulty == validate_choice(difficulty, CHALLENGE_DIFFICULTIES, "difficulty")
        )

    session_maker = require_session()
    try:
        async with session_maker() as session:
            result = await execute_with_retry(
                session,
                select(challenges)
                .where(*conditions)
                .order_by(challenges.c.created_at.desc(), challenges.c.title.asc())
                .limit(limit)
                .offset(offset)
            )
            rows = [serialize_challenge(row) for row in result.mappings()]
            total = (await execute_with_retry(
                session, select(func.count()).select_from(challenges).where(*conditions)
            )).scalar_one()
        return {"success": True, "data": rows, "pagination": pagination_meta(total, page, limit)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("list_challenges", e, "Failed to fetch challenges")


@router.get("/mine")
async def my_challenges(
    status: Optional[str] = Query(None),
    limit: int = Query(50),
    page: int = Query(1),
    user: dict = Depends(get_current_user),
):
    """The caller's participations with progress percentage"""
    limit, page, offset = validate_pagination(limit, page)
    conditions = [user_challenges.c.user_id == user["id"]]
    if status:
        conditions.append(user_challenges.c.status == validate_choice(status, CHALLENGE_STATUSES, "status"))

    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await ChallengeService.participations(session, conditions, limit, offset)
            total = (await execute_with_retry(
                session, select(func.count()).select_from(user_challenges).where(*conditions)
            )).scalar_one()
        return {"success": True, "data": rows, "pagination": pagination_meta(total, page, limit)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("my_challenges", e, "Failed to fetch user challenges")


@router.get("/stats")
async def challenge_stats(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            stats = await ChallengeService.stats(session, user["id"])
        return {"success": True, "data": stats}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("challenge_stats", e, "Failed to fetch challenge statistics")


@router.get("/leaderboard")
async def leaderboard(limit: int = Query(10), page: int = Query(1), user: dict = Depends(get_current_user)):
    limit, page, offset = validate_pagination(limit, page, max_limit=100)
    session_maker = require_session()
    try:
        async with session_maker() as session:
            board = await ChallengeService.leaderboard(session, limit, offset)
        return {"success": True, "data": board}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("leaderboard", e, "Failed to fetch leaderboard")


@router.post("/{challenge_id}/join", status_code=201)
async def join_challenge(challenge_id: str, user: dict = Depends(get_current_user)):
    challenge_id = validate_id(challenge_id, "Challenge ID")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                if await ChallengeService.get_participation(session, user["id"], challenge_id):
                    raise HTTPException(status_code=400, detail="You have already joined this challenge")

                challenge = await ChallengeService.get_challenge(session, challenge_id)
                if challenge is None or not challenge["is_active"]:
                    raise HTTPException(status_code=404, detail="Challenge not found or inactive")

                await execute_with_retry(
                    session,
                    insert(user_challenges).values(
                        id=new_id(), user_id=user["id"], challenge_id=challenge_id, current=0, status="active"
                    )
                )
                await execute_with_retry(
                    session,
                    update(challenges)
                    .where(challenges.c.id == challenge_id)
                    .values(participants=challenges.c.participants + 1)
                )
                entry = await ChallengeService.get_participation(session, user["id"], challenge_id)
                challenge = await ChallengeService.get_challenge(session, challenge_id)

        logger.info("User %s joined challenge %s", user["id"], challenge["title"])
        return {
            "success": True,
            "message": "Successfully joined challenge",
            "data": serialize_participation(entry, challenge),
        }
    except HTTPException:
        raise
    except IntegrityError:
        # Concurrent join for the same user and challenge
        raise HTTPException(status_code=400, detail="You have already joined this challenge")
    except Exception as e:
        return server_error("join_challenge", e, "Failed to join challenge")


@router.patch("/{challenge_id}/progress")
async def update_progress(challenge_id: str, payload: ChallengeProgressPayload,
                          user: dict = Depends(get_current_user)):
    """
    Report progress towards a joined challenge

    Progress is clamped to the target; reaching the target completes the
    challenge and notifies the user.
    """
    challenge_id = validate_id(challenge_id, "Challenge ID")
    try:
        progress = parse_progress(payload.progress)
    except ProgressError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                entry = await ChallengeService.get_participation(session, user["id"], challenge_id)
                if entry is None:
                    raise HTTPException(status_code=404, detail="You have not joined this challenge")
                if entry["status"] != "active":
                    raise HTTPException(status_code=400, detail="Challenge is not active")

                challenge = await ChallengeService.get_challenge(session, challenge_id)
                state = apply_progress(progress, challenge["target"])
                await execute_with_retry(
                    session,
                    update(user_challenges)
                    .where(user_challenges.c.id == entry["id"])
                    .values(**state, updated_at=state["last_updated"])
                )

                if state.get("status") == "completed":
                    await create_notification(
                        session,
                        user["id"],
                        "Challenge completed!",
                        f"You completed '{challenge['title']}' and earned {challenge['points']} points.",
                        type="challenge",
                        priority="high",
                        action_url="/challenges",
                        metadata={"challengeId": challenge_id, "points": challenge["points"]},
                    )
                    logger.info("User %s completed challenge %s", user["id"], challenge["title"])

                entry = await ChallengeService.get_participation(session, user["id"], challenge_id)

        return {
            "success": True,
            "message": "Progress updated successfully",
            "data": serialize_participation(entry, challenge),
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("update_challenge_progress", e, "Failed to update progress")


@router.delete("/{challenge_id}/leave")
async def leave_challenge(challenge_id: str, user: dict = Depends(get_current_user)):
    challenge_id = validate_id(challenge_id, "Challenge ID")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                result = await execute_with_retry(
                    session,
                    delete(user_challenges).where(
                        user_challenges.c.user_id == user["id"],
                        user_challenges.c.challenge_id == challenge_id,
                    )
                )
                if result.rowcount == 0:
                    raise HTTPException(status_code=404, detail="You have not joined this challenge")
                await execute_with_retry(
                    session,
                    update(challenges)
                    .where(challenges.c.id == challenge_id)
                    .values(participants=case(
                        (challenges.c.participants > 0, challenges.c.participants - 1),
                        else_=0,
                    ))
                )
        return {"success": True, "message": "Successfully left challenge"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("leave_challenge", e, "Failed to leave challenge")
