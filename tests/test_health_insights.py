from datetime import datetime, timedelta

from healthdash.services.insight_service import daily_trends, generate_insights, vitals_summary
from healthdash.utils.timeutils import utcnow

DAY = datetime(2026, 10, 1, 8, 0, 0)


def _row(type, value, timestamp=DAY, metadata=None, unit=None):
    return {"type": type, "value": value, "timestamp": timestamp, "metadata": metadata, "unit": unit}


def test_daily_trends_group_by_type_and_day():
    rows = [
        _row("glucose", 100),
        _row("glucose", 120, DAY + timedelta(hours=2)),
        _row("blood_pressure", "120/80", metadata={"systolic": 120, "diastolic": 80}),
        _row("glucose", 90, DAY + timedelta(days=1)),
        _row("glucose", "n/a", DAY + timedelta(days=1)),
    ]
    trends = {trend["metric"]: trend["data"] for trend in daily_trends(rows)}
    assert trends["glucose"] == [
        {"date": "2026-10-01", "avgValue": 110, "minValue": 100, "maxValue": 120, "count": 2},
        {"date": "2026-10-02", "avgValue": 90, "minValue": 90, "maxValue": 90, "count": 1},
    ]
    assert trends["blood_pressure"][0]["avgValue"] == 120


def test_vitals_summary_takes_newest_reading():
    rows = [
        _row("weight", 71, DAY + timedelta(days=1), unit="kg"),
        _row("steps", 9000),
        _row("weight", 72, DAY, unit="kg"),
    ]
    assert vitals_summary(rows) == [{
        "metric": "weight",
        "latestValue": 71,
        "latestDate": "2026-10-02T08:00:00Z",
        "unit": "kg",
        "metadata": None,
        "totalMeasurements": 2,
    }]


def test_insights_from_readings():
    rows = [
        _row("blood_pressure", "150/95", metadata={"systolic": 150, "diastolic": 95}),
        _row("weight", 80),
        _row("weight", 76.5, DAY + timedelta(days=20)),
        _row("sleep", 6),
    ]
    assert generate_insights(rows) == [
        "Your average systolic blood pressure is elevated. Consider consulting your healthcare provider.",
        "Your weight has decreased by 3.5 kg over the past month.",
        "Your average sleep duration is below the recommended 7-9 hours. Consider improving your sleep hygiene.",
        "Consider tracking more health metrics regularly for better insights.",
    ]


def test_insights_fallback():
    rows = [_row("steps", 8000 + i) for i in range(10)]
    assert generate_insights(rows) == ["Keep tracking your health metrics for personalized insights!"]


def _post(client, headers, **data):
    response = client.post("/api/measurements", headers=headers, json=data)
    assert response.status_code == 201, response.text


def _at(days_ago, hour):
    moment = (utcnow() - timedelta(days=days_ago)).replace(hour=hour, minute=0, second=0, microsecond=0)
    return moment.isoformat() + "Z", moment.date().isoformat()


def test_trends_endpoint(client, auth_headers):
    early, early_day = _at(2, 8)
    first, day = _at(1, 8)
    second, _ = _at(1, 9)
    old, _ = _at(60, 8)
    _post(client, auth_headers, type="heart_rate", value=60, timestamp=early)
    _post(client, auth_headers, type="heart_rate", value=70, timestamp=first)
    _post(client, auth_headers, type="heart_rate", value=80, timestamp=second)
    _post(client, auth_headers, type="heart_rate", value=99, timestamp=old)
    _post(client, auth_headers, type="steps", value=5000, timestamp=first)

    body = client.get("/api/health-insights/trends?metric=heart_rate", headers=auth_headers).json()
    assert body["success"] is True
    [trend] = body["data"]
    assert trend["metric"] == "heart_rate"
    assert trend["data"] == [
        {"date": early_day, "avgValue": 60, "minValue": 60, "maxValue": 60, "count": 1},
        {"date": day, "avgValue": 75, "minValue": 70, "maxValue": 80, "count": 2},
    ]

    everything = client.get("/api/health-insights/trends?days=90", headers=auth_headers).json()["data"]
    assert sorted(t["metric"] for t in everything) == ["heart_rate", "steps"]

    assert client.get("/api/health-insights/trends?metric=mood", headers=auth_headers).status_code == 400
    assert client.get("/api/health-insights/trends?days=0", headers=auth_headers).status_code == 422


def test_vitals_wellness_and_insights_endpoints(client, signup):
    headers, _ = signup()
    other, _ = signup()
    first, _ = _at(1, 8)
    second, _ = _at(1, 9)
    _post(client, headers, type="blood_pressure", value="118/76", timestamp=first,
          metadata={"systolic": 118, "diastolic": 76})
    _post(client, headers, type="blood_pressure", value="122/80", timestamp=second,
          metadata={"systolic": 122, "diastolic": 80})
    _post(client, headers, type="sleep", value=8, timestamp=first)

    vitals = client.get("/api/health-insights/vitals-summary", headers=headers).json()["data"]
    assert vitals == [{
        "metric": "blood_pressure",
        "latestValue": "122/80",
        "latestDate": second,
        "unit": None,
        "metadata": {"systolic": 122, "diastolic": 80},
        "totalMeasurements": 2,
    }]

    wellness = client.get("/api/health-insights/wellness", headers=headers).json()["data"]
    assert [w["metric"] for w in wellness] == ["sleep"]
    assert wellness[0]["dailyData"][0]["avgValue"] == 8

    insights = client.get("/api/health-insights", headers=headers).json()["data"]
    assert insights["dataPoints"] == 3
    assert insights["analysisPeriod"] == "30 days"
    assert insights["insights"][0] == (
        "Your blood pressure readings are within a healthy range. Keep up the good work!"
    )

    # Readings are private to their owner
    assert client.get("/api/health-insights/vitals-summary", headers=other).json()["data"] == []
    assert client.get("/api/health-insights").status_code == 401
