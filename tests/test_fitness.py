from datetime import date

from healthdash.services.fitness_service import (
    compute_weekly_stats,
    generate_insights,
    progress_columns,
    targets_from_quiz,
)
from healthdash.utils.timeutils import week_start


def test_week_starts_on_sunday():
    # 2026-10-19 is a Monday
    assert week_start(date(2026, 10, 19)) == date(2026, 10, 18)
    assert week_start(date(2026, 10, 18)) == date(2026, 10, 18)
    assert week_start(date(2026, 10, 24)) == date(2026, 10, 18)


def test_targets_from_quiz():
    targets = targets_from_quiz({
        "primaryFitnessGoal": "lose_weight",
        "exerciseDaysPerWeek": [4],
        "dailyStepGoal": [12000],
        "stepTracking": "yes",
        "preferredActivities": ["running"],
    })
    assert targets["steps_target"] == 12000
    assert targets["calories_target"] == 500
    assert targets["workout_target"] == 4
    assert targets["preferred_activities"] == ["running"]


def test_targets_from_quiz_defaults():
    targets = targets_from_quiz({"dailyStepGoal": [12000], "stepTracking": "no"})
    assert targets["steps_target"] == 8000
    assert targets["calories_target"] == 300
    assert targets["workout_target"] == 3
    assert targets["primary_fitness_goal"] == "general_fitness"
    assert targets["exercise_duration"] == "30min"


def test_compute_weekly_stats_counts_workout_days():
    logs = [
        {"steps": 1000, "calories": 100, "workout_minutes": 20, "water_intake": 500},
        {"steps": 2000, "calories": 0, "workout_minutes": 0, "water_intake": 250},
    ]
    stats = compute_weekly_stats(logs, date(2026, 10, 18))
    assert stats == {
        "totalSteps": 3000,
        "totalCalories": 100,
        "totalWorkouts": 1,
        "totalWater": 750,
        "weekStartDate": "2026-10-18",
    }


def _goal(**overrides):
    goal = {
        "stepsTarget": 10000,
        "waterTarget": 2000,
        "workoutTarget": 4,
        "primaryFitnessGoal": "general_fitness",
        "progress": {"steps": 0, "calories": 0, "workout": 0, "water": 0},
    }
    goal.update(overrides)
    return goal


def _week(workouts=0, calories=0):
    return {"totalWorkouts": workouts, "totalCalories": calories, "totalSteps": 0, "totalWater": 0}


def test_insights_by_workout_percentage():
    assert generate_insights(_goal(), _week(4))[0] == "🎉 Amazing! You've completed all your weekly workouts!"
    assert generate_insights(_goal(), _week(3))[0] == "🔥 You reached 75% of your weekly activity goal!"
    assert generate_insights(_goal(), _week(2))[0] == "💪 You're halfway there! 50% of weekly goal completed."
    assert generate_insights(_goal(), _week(1))[0] == "🚀 Let's get moving! You're at 25% of your weekly goal."


def test_insights_steps_water_and_goal_specific():
    goal = _goal(primaryFitnessGoal="lose_weight",
                 progress={"steps": 8500, "calories": 0, "workout": 0, "water": 1500})
    insights = generate_insights(goal, _week(0, calories=900))
    assert "👟 Almost there! 1500 more steps to go." in insights
    assert "💧 Remember to stay hydrated! Drink more water today." not in insights
    assert insights[-1] == "🔥 You've burned 900 calories this week!"


def test_insights_zero_target():
    insights = generate_insights(_goal(workoutTarget=0, waterTarget=0), _week(2))
    assert insights[0] == "🚀 Let's get moving! You're at 0% of your weekly goal."


def test_progress_columns_ignores_non_numbers():
    assert progress_columns({"steps": 10.7, "water": "lots", "workout": True, "other": 3}) == {
        "progress_steps": 10,
    }


def test_fitness_goals_default_on_first_read(client, auth_headers):
    body = client.get("/api/fitness/goals", headers=auth_headers).json()
    goal = body["data"]
    assert goal["stepsTarget"] == 8000
    assert goal["caloriesTarget"] == 300
    assert goal["workoutTarget"] == 5
    assert goal["insights"][0] == "🚀 Let's get moving! You're at 0% of your weekly goal."
    assert goal["weeklyStats"]["totalSteps"] == 0


def test_fitness_goals_from_quiz(client, auth_headers):
    response = client.post("/api/fitness/goals", headers=auth_headers, json={
        "primaryFitnessGoal": "improve_endurance",
        "exerciseDaysPerWeek": [5],
        "dailyStepGoal": [10000],
        "stepTracking": "yes",
    })
    assert response.status_code == 200
    goal = response.json()["data"]
    assert (goal["stepsTarget"], goal["caloriesTarget"], goal["workoutTarget"]) == (10000, 600, 5)


def test_log_accumulates_into_today(client, auth_headers):
    first = client.post("/api/fitness/log", headers=auth_headers, json={"steps": 3000, "waterIntake": 500})
    assert first.status_code == 200
    second = client.post("/api/fitness/log", headers=auth_headers,
                         json={"steps": 2000, "workoutMinutes": 30, "workoutType": "running"})
    log = second.json()["data"]
    assert (log["steps"], log["workoutMinutes"], log["waterIntake"]) == (5000, 30, 500)
    assert log["workoutType"] == "running"

    logs = client.get("/api/fitness/logs?days=7", headers=auth_headers).json()["data"]
    assert len(logs) == 1

    stats = client.get("/api/fitness/weekly-stats", headers=auth_headers).json()["data"]
    assert stats["totalSteps"] == 5000
    assert stats["totalWorkouts"] == 1

    goal = client.get("/api/fitness/goals", headers=auth_headers).json()["data"]
    assert goal["progress"]["steps"] == 5000
    assert goal["progress"]["water"] == 500


def test_log_rejects_negative_values(client, auth_headers):
    response = client.post("/api/fitness/log", headers=auth_headers, json={"steps": -5})
    assert response.status_code == 422


def test_replace_progress(client, auth_headers):
    assert client.patch("/api/fitness/goals/progress", headers=auth_headers,
                        json={"steps": 10}).status_code == 404

    client.get("/api/fitness/goals", headers=auth_headers)
    client.patch("/api/fitness/goals/progress", headers=auth_headers, json={"water": 900})
    response = client.patch("/api/fitness/goals/progress", headers=auth_headers, json={"steps": 100})
    progress = response.json()["data"]["progress"]
    assert progress == {"steps": 100, "calories": 0, "workout": 0, "water": 0}


def test_targets_api(client, auth_headers):
    goal = client.get("/api/goals", headers=auth_headers).json()
    assert (goal["stepsTarget"], goal["caloriesTarget"], goal["workoutTarget"], goal["waterTarget"]) == (
        8000, 500, 30, 2000
    )

    goal = client.post("/api/goals", headers=auth_headers, json={"stepsTarget": 12000}).json()
    assert goal["stepsTarget"] == 12000
    assert goal["waterTarget"] == 2000

    goal = client.patch("/api/goals/progress", headers=auth_headers, json={"water": 1500, "steps": "x"}).json()
    assert goal["progress"]["water"] == 1500
    assert goal["progress"]["steps"] == 0
