"""
Fitness service - goals, daily activity logs and the weekly roll-up
"""
import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import fitness_goals, fitness_logs, new_id
from healthdash.utils.timeutils import isoformat, utcnow, week_start

logger = logging.getLogger(__name__)

# Created by GET /api/fitness/goals for users who skipped the fitness quiz
DEFAULT_GOALS = {
    "steps_target": 8000,
    "calories_target": 300,
    "workout_target": 5,
    "water_target": 2000,
    "primary_fitness_goal": "general_fitness",
}

CALORIE_TARGETS = {
    "lose_weight": 500,
    "build_strength": 400,
    "improve_endurance": 600,
}

PROGRESS_COLUMNS = {
    "steps": "progress_steps",
    "calories": "progress_calories",
    "workout": "progress_workout",
    "water": "progress_water",
}

TARGET_COLUMNS = {
    "stepsTarget": "steps_target",
    "caloriesTarget": "calories_target",
    "workoutTarget": "workout_target",
    "waterTarget": "water_target",
}


def _first(values, default):
    if isinstance(values, list) and values and values[0]:
        return values[0]
    return default


def empty_weekly_stats(start: date) -> dict:
    return {
        "totalSteps": 0,
        "totalCalories": 0,
        "totalWorkouts": 0,
        "totalWater": 0,
        "weekStartDate": isoformat(start),
    }


def compute_weekly_stats(logs: Iterable, start: date) -> dict:
    """
    Sum daily logs into the weekly roll-up

    A day counts as one workout when it has any workout minutes.
    """
    stats = empty_weekly_stats(start)
    for log in logs:
        stats["totalSteps"] += log["steps"] or 0
        stats["totalCalories"] += log["calories"] or 0
        stats["totalWorkouts"] += 1 if (log["workout_minutes"] or 0) > 0 else 0
        stats["totalWater"] += log["water_intake"] or 0
    return stats


def targets_from_quiz(quiz: dict) -> dict:
    """
    Derive goal columns from the fitness quiz answers

    Steps come from the chosen daily step goal only when the user opted
    into step tracking; calories depend on the primary goal.
    """
    primary_goal = quiz.get("primaryFitnessGoal") or "general_fitness"
    steps = _first(quiz.get("dailyStepGoal"), 8000) if quiz.get("stepTracking") == "yes" else 8000
    workouts = _first(quiz.get("exerciseDaysPerWeek"), 3)

    return {
        "steps_target": steps,
        "calories_target": CALORIE_TARGETS.get(primary_goal, 300),
        "workout_target": workouts,
        "water_target": 2000,
        "primary_fitness_goal": primary_goal,
        "exercise_days_per_week": workouts,
        "preferred_activities": quiz.get("preferredActivities") or [],
        "exercise_duration": quiz.get("exerciseDuration") or "30min",
        "workout_difficulty": quiz.get("workoutDifficulty") or "beginner",
        "weekly_stats": empty_weekly_stats(week_start(utcnow().date())),
    }


def _percent(value, target) -> int:
    if not target:
        return 0
    return round((value or 0) / target * 100)


def generate_insights(goal: dict, weekly_stats: dict) -> List[str]:
    """
    Motivational lines for the fitness widget

    Args:
        goal: Serialized goal (see serialize_goal)
        weekly_stats: Week-to-date roll-up
    """
    insights = []
    progress = goal["progress"]

    workout_pct = _percent(weekly_stats["totalWorkouts"], goal["workoutTarget"])
    if workout_pct >= 100:
        insights.append("🎉 Amazing! You've completed all your weekly workouts!")
    elif workout_pct >= 75:
        insights.append(f"🔥 You reached {workout_pct}% of your weekly activity goal!")
    elif workout_pct >= 50:
        insights.append(f"💪 You're halfway there! {workout_pct}% of weekly goal completed.")
    else:
        insights.append(f"🚀 Let's get moving! You're at {workout_pct}% of your weekly goal.")

    steps_pct = _percent(progress["steps"], goal["stepsTarget"])
    if steps_pct >= 100:
        insights.append("👣 Step goal crushed today! Keep it up!")
    elif steps_pct >= 80:
        insights.append(f"👟 Almost there! {goal['stepsTarget'] - progress['steps']} more steps to go.")

    if _percent(progress["water"], goal["waterTarget"]) < 50:
        insights.append("💧 Remember to stay hydrated! Drink more water today.")

    if goal["primaryFitnessGoal"] == "lose_weight" and weekly_stats["totalCalories"] > 0:
        insights.append(f"🔥 You've burned {weekly_stats['totalCalories']} calories this week!")
    elif goal["primaryFitnessGoal"] == "build_strength" and weekly_stats["totalWorkouts"] > 0:
        insights.append(f"💪 {weekly_stats['totalWorkouts']} strength sessions completed this week!")

    return insights


def serialize_goal(row) -> dict:
    return {
        "userId": row["user_id"],
        "stepsTarget": row["steps_target"],
        "caloriesTarget": row["calories_target"],
        "workoutTarget": row["workout_target"],
        "waterTarget": row["water_target"],
        "progress": {
            "steps": row["progress_steps"],
            "calories": row["progress_calories"],
            "workout": row["progress_workout"],
            "water": row["progress_water"],
        },
        "primaryFitnessGoal": row["primary_fitness_goal"],
        "exerciseDaysPerWeek": row["exercise_days_per_week"],
        "preferredActivities": row["preferred_activities"] or [],
        "exerciseDuration": row["exercise_duration"],
        "workoutDifficulty": row["workout_difficulty"],
        "weeklyStats": row["weekly_stats"],
        "createdAt": isoformat(row["created_at"]),
        "updatedAt": isoformat(row["updated_at"]),
    }


def serialize_log(row) -> dict:
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "date": isoformat(row["log_date"]),
        "steps": row["steps"],
        "calories": row["calories"],
        "workoutMinutes": row["workout_minutes"],
        "waterIntake": row["water_intake"],
        "workoutType": row["workout_type"],
        "notes": row["notes"],
    }


def progress_columns(progress: dict) -> dict:
    """Map numeric progress keys to goal columns; anything else is ignored"""
    values = {}
    for key, column in PROGRESS_COLUMNS.items():
        value = progress.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            values[column] = int(value)
    return values


class FitnessService:
    """Service for fitness goals and logs"""

    @staticmethod
    async def get_goal(session: AsyncSession, user_id: str):
        result = await execute_with_retry(
            session, select(fitness_goals).where(fitness_goals.c.user_id == user_id)
        )
        return result.mappings().first()

    @staticmethod
    async def ensure_goal(session: AsyncSession, user_id: str, defaults: Optional[dict] = None):
        """Get the goal row, creating it (with column defaults) when missing"""
        row = await FitnessService.get_goal(session, user_id)
        if row is None:
            values = dict(defaults or {})
            values.setdefault("weekly_stats", empty_weekly_stats(week_start(utcnow().date())))
            await execute_with_retry(
                session, insert(fitness_goals).values(user_id=user_id, **values)
            )
            row = await FitnessService.get_goal(session, user_id)
        return row

    @staticmethod
    async def upsert_goal(session: AsyncSession, user_id: str, values: dict):
        """Insert or update the goal row with the given column values"""
        existing = await FitnessService.get_goal(session, user_id)
        if existing is None:
            await execute_with_retry(
                session, insert(fitness_goals).values(user_id=user_id, **values)
            )
        elif values:
            await execute_with_retry(
                session,
                update(fitness_goals)
                .where(fitness_goals.c.user_id == user_id)
                .values(**values, updated_at=utcnow())
            )
        return await FitnessService.get_goal(session, user_id)

    @staticmethod
    async def logs_since(session: AsyncSession, user_id: str, start: date) -> list:
        """Daily logs on or after start, oldest first"""
        result = await execute_with_retry(
            session,
            select(fitness_logs)
            .where(fitness_logs.c.user_id == user_id, fitness_logs.c.log_date >= start)
            .order_by(fitness_logs.c.log_date.asc())
        )
        return list(result.mappings())

    @staticmethod
    async def get_log(session: AsyncSession, user_id: str, day: date):
        result = await execute_with_retry(
            session,
            select(fitness_logs).where(fitness_logs.c.user_id == user_id, fitness_logs.c.log_date == day)
        )
        return result.mappings().first()

    @staticmethod
    async def weekly_stats(session: AsyncSession, user_id: str, day: date) -> dict:
        start = week_start(day)
        logs = await FitnessService.logs_since(session, user_id, start)
        return compute_weekly_stats(logs, start)

    @staticmethod
    async def refresh_goal(session: AsyncSession, user_id: str, day: date):
        """
        Recompute weekly stats and today's progress, and persist both

        Returns:
            (goal row, weekly stats)
        """
        await FitnessService.ensure_goal(session, user_id, DEFAULT_GOALS)
        stats = await FitnessService.weekly_stats(session, user_id, day)

        values = {"weekly_stats": stats, "updated_at": utcnow()}
        today_log = await FitnessService.get_log(session, user_id, day)
        if today_log is not None:
            values.update({
                "progress_steps": today_log["steps"],
                "progress_calories": today_log["calories"],
                "progress_workout": stats["totalWorkouts"],
                "progress_water": today_log["water_intake"],
            })

        await execute_with_retry(
            session,
            update(fitness_goals).where(fitness_goals.c.user_id == user_id).values(**values)
        )
        return await FitnessService.get_goal(session, user_id), stats

    @staticmethod
    async def increment_log(session_maker, user_id: str, day: date, increments: dict,
                            workout_type: Optional[str] = None, notes: Optional[str] = None):
        """
        Add to the day's counters, creating the log when absent

        The counters are incremented in SQL. Two concurrent first writes of
        the day race on the (user_id, log_date) unique key; the loser's
        transaction is rolled back and retried as an update.

        Args:
            session_maker: Session factory (this method owns its transactions)
            increments: steps/calories/workout_minutes/water_intake deltas
        """
        extra = {}
        if workout_type:
            extra["workout_type"] = workout_type
        if notes:
            extra["notes"] = notes

        for attempt in range(2):
            try:
                async with session_maker() as session:
                    async with session.begin():
                        result = await execute_with_retry(
                            session,
                            update(fitness_logs)
                            .where(fitness_logs.c.user_id == user_id, fitness_logs.c.log_date == day)
                            .values(
                                steps=fitness_logs.c.steps + increments.get("steps", 0),
                                calories=fitness_logs.c.calories + increments.get("calories", 0),
                                workout_minutes=fitness_logs.c.workout_minutes + increments.get("workout_minutes", 0),
                                water_intake=fitness_logs.c.water_intake + increments.get("water_intake", 0),
                                updated_at=utcnow(),
                                **extra,
                            )
                        )
                        if result.rowcount == 0:
                            await execute_with_retry(
                                session,
                                insert(fitness_logs).values(
                                    id=new_id(),
                                    user_id=user_id,
                                    log_date=day,
                                    steps=increments.get("steps", 0),
                                    calories=increments.get("calories", 0),
                                    workout_minutes=increments.get("workout_minutes", 0),
                                    water_intake=increments.get("water_intake", 0),
                                    **extra,
                                )
                            )
                    return await FitnessService.get_log(session, user_id, day)
            except IntegrityError:
                if attempt:
                    raise
                logger.info("Concurrent first log of the day for user %s, retrying as update", user_id)

    @staticmethod
    async def recent_logs(session: AsyncSession, user_id: str, days: int) -> list:
        """Logs for the last N days including today, oldest first"""
        start = utcnow().date() - timedelta(days=days - 1)
        return await FitnessService.logs_since(session, user_id, start)
