from datetime import datetime

import pytest

from healthdash.services.measurement_service import MeasurementError, compute_stats, validate_measurement


@pytest.mark.parametrize("data, message", [
    ({"type": "mood", "value": 1}, "Invalid measurement type"),
    ({"type": "glucose"}, "Measurement value is required"),
    ({"type": "glucose", "value": 5}, "Invalid glucose value"),
    ({"type": "heart_rate", "value": "fast"}, "Invalid heart rate value"),
    ({"type": "blood_pressure", "value": "120/80"},
     "Blood pressure measurements require systolic and diastolic values in metadata"),
    ({"type": "blood_pressure", "value": "120/80", "metadata": {"systolic": 350, "diastolic": 80}},
     "Systolic pressure must be between 50 and 300"),
    ({"type": "weight", "value": 70, "timestamp": "yesterday"}, "Invalid timestamp format"),
    ({"type": "sleep", "value": 8, "source": "guess"}, "Invalid measurement source"),
])
def test_validate_measurement_errors(data, message):
    with pytest.raises(MeasurementError) as exc_info:
        validate_measurement(data)
    assert str(exc_info.value) == message


def test_validate_measurement_normalises():
    values = validate_measurement({
        "type": "weight", "value": 70.5, "unit": " kg ", "timestamp": "2026-01-02T03:04:05Z",
    })
    assert values["unit"] == "kg"
    assert values["source"] == "manual"
    assert values["timestamp"] == datetime(2026, 1, 2, 3, 4, 5)


def test_compute_stats_trend():
    rows = [{"value": v, "metadata": None} for v in (100, 100, 120, 130)]
    stats = compute_stats("glucose", rows, 30)
    assert stats["count"] == 4
    assert stats["average"] == 112.5
    assert stats["min"] == 100
    assert stats["max"] == 130
    assert stats["trend"] == "increasing"
    assert stats["period"] == "30 days"


def test_compute_stats_blood_pressure_uses_systolic():
    rows = [
        {"value": "x", "metadata": {"systolic": 140, "diastolic": 90}},
        {"value": "y", "metadata": {"systolic": 120, "diastolic": 80}},
    ]
    stats = compute_stats("blood_pressure", rows, 7)
    assert stats["average"] == 130
    assert stats["trend"] == "decreasing"


def test_compute_stats_empty():
    assert compute_stats("glucose", [], 30)["count"] == 0


def _post(client, headers, **data):
    return client.post("/api/measurements", headers=headers, json=data)


def test_create_and_list(client, auth_headers):
    response = _post(client, auth_headers, type="glucose", value=110, unit="mg/dL",
                     timestamp="2026-03-01T08:00:00Z")
    assert response.status_code == 201
    assert response.json()["data"]["value"] == 110
    _post(client, auth_headers, type="heart_rate", value=72, timestamp="2026-03-02T08:00:00Z")

    body = client.get("/api/measurements", headers=auth_headers).json()
    assert [m["type"] for m in body["data"]] == ["heart_rate", "glucose"]
    assert body["pagination"] == {"total": 2, "page": 1, "limit": 100, "pages": 1}

    filtered = client.get("/api/measurements?type=glucose", headers=auth_headers).json()
    assert [m["type"] for m in filtered["data"]] == ["glucose"]

    ranged = client.get(
        "/api/measurements?startDate=2026-03-02T00:00:00Z", headers=auth_headers
    ).json()
    assert [m["type"] for m in ranged["data"]] == ["heart_rate"]


def test_create_rejects_out_of_range(client, auth_headers):
    response = _post(client, auth_headers, type="glucose", value=1000)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid glucose value"


def test_list_validates_query(client, auth_headers):
    assert client.get("/api/measurements?type=mood", headers=auth_headers).status_code == 400
    assert client.get("/api/measurements?limit=501", headers=auth_headers).status_code == 400
    assert client.get("/api/measurements?startDate=soon", headers=auth_headers).status_code == 400


def test_batch_reports_errors_by_index(client, auth_headers):
    response = client.post("/api/measurements/batch", headers=auth_headers, json={"measurements": [
        {"type": "steps", "value": 4000},
        {"type": "glucose", "value": 1},
        "junk",
    ]})
    assert response.status_code == 201
    body = response.json()
    assert len(body["data"]) == 1
    assert body["errors"] == [
        {"index": 1, "error": "Invalid glucose value"},
        {"index": 2, "error": "Measurement must be an object"},
    ]

    response = client.post("/api/measurements/batch", headers=auth_headers, json={"measurements": [{}]})
    assert response.status_code == 400
    assert response.json()["success"] is False

    response = client.post("/api/measurements/batch", headers=auth_headers, json={"measurements": "x"})
    assert response.status_code == 400


def test_latest_per_type(client, auth_headers):
    _post(client, auth_headers, type="weight", value=80, timestamp="2026-01-01T00:00:00Z")
    _post(client, auth_headers, type="weight", value=78, timestamp="2026-02-01T00:00:00Z")
    _post(client, auth_headers, type="sleep", value=7)

    body = client.get("/api/measurements/latest?types=weight,sleep", headers=auth_headers).json()
    assert [(m["type"], m["value"]) for m in body["data"]] == [("weight", 78), ("sleep", 7)]


def test_stats_endpoint(client, auth_headers):
    assert client.get("/api/measurements/stats", headers=auth_headers).status_code == 400

    _post(client, auth_headers, type="heart_rate", value=60)
    _post(client, auth_headers, type="heart_rate", value=80)
    body = client.get("/api/measurements/stats?type=heart_rate&days=7", headers=auth_headers).json()
    assert body["data"]["count"] == 2
    assert body["data"]["average"] == 70


def test_delete_is_scoped_to_owner(client, signup):
    owner, _ = signup()
    other, _ = signup()
    measurement_id = _post(client, owner, type="steps", value=100).json()["data"]["id"]

    assert client.delete(f"/api/measurements/{measurement_id}", headers=other).status_code == 404
    assert client.delete(f"/api/measurements/{measurement_id}", headers=owner).status_code == 200
    assert client.delete(f"/api/measurements/{measurement_id}", headers=owner).status_code == 404
    assert client.delete("/api/measurements/not-a-uuid", headers=owner).status_code == 400
