import pytest

from healthdash.services.profile_service import merge_profile_data, sanitize_quiz_payload
from healthdash.utils.validators import validate_profile_fields


def test_sanitize_drops_unknown_fields():
    assert sanitize_quiz_payload({"age": 30, "isAdmin": True}) == {"age": 30}
    assert sanitize_quiz_payload(["not", "a", "dict"]) == {}


def test_merge_keeps_previous_values_for_nulls():
    merged = merge_profile_data({"age": 30, "weight": 70}, {"age": None, "height": 180})
    assert merged == {"age": 30, "weight": 70, "height": 180}


def test_profile_field_bounds():
    errors = validate_profile_fields({
        "age": 151,
        "gender": "robot",
        "weight": "heavy",
        "sleepHours": [8, 25],
        "stepGoal": "lots",
    })
    fields = [error["field"] for error in errors]
    assert fields == ["age", "gender", "weight", "sleepHours[1]", "stepGoal"]
    assert validate_profile_fields({"age": "42", "height": 170.5, "sleepHours": [7.5]}) == []


def test_profile_empty_before_quiz(client, auth_headers):
    body = client.get("/api/profile", headers=auth_headers).json()
    assert body["success"] is True
    assert body["data"]["profile"] is None
    assert body["data"]["latestMeasurements"] == []


def test_quiz_saves_profile_and_initial_measurements(client, auth_headers):
    response = client.post("/api/profile/quiz", headers=auth_headers, json={
        "age": 30,
        "weight": 72,
        "conditions": ["asthma"],
        "unknownField": "ignored",
        "initialMeasurements": [
            {"type": "glucose", "value": 105, "unit": "mg/dL"},
            {"type": "not-a-type", "value": 1},
        ],
    })
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["profile"]["age"] == 30
    assert "unknownField" not in data["profile"]
    assert data["profile"]["completedAt"] is not None
    assert len(data["measurements"]) == 1
    assert data["measurements"][0]["source"] == "quiz"

    # Step-by-step submission keeps earlier answers
    client.post("/api/profile/quiz", headers=auth_headers, json={"age": None, "height": 180})
    profile = client.get("/api/profile/me", headers=auth_headers).json()["data"]
    assert profile["profile"]["age"] == 30
    assert profile["profile"]["height"] == 180
    assert [m["type"] for m in profile["latestMeasurements"]] == ["glucose"]


def test_update_profile_validation(client, auth_headers):
    response = client.put("/api/profile", headers=auth_headers, json={"age": 200})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert body["errors"][0]["field"] == "age"

    response = client.put("/api/profile", headers=auth_headers, json={"gender": "female", "weight": 60})
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["gender"] == "female"


def test_dashboard_quiz(client, auth_headers):
    preferences = {"widgets": ["glucose", "steps"], "theme": "dark"}
    response = client.post("/api/profile/dashboard-quiz", headers=auth_headers, json=preferences)
    assert response.status_code == 200
    profile = response.json()["data"]["profile"]
    assert profile["dashboardPreferences"] == preferences
    assert profile["dashboardQuizCompleted"] is True


def test_avatar_upload(client, auth_headers):
    response = client.post(
        "/api/profile/avatar",
        headers=auth_headers,
        files={"file": ("me.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
    )
    assert response.status_code == 200
    avatar = response.json()["data"]["user"]["avatar"]
    assert avatar.startswith("/uploads/") and avatar.endswith(".png")

    served = client.get(avatar)
    assert served.status_code == 200
    assert served.content == b"\x89PNG\r\n\x1a\nfake"


def test_upload_rejects_wrong_type(client, auth_headers):
    response = client.post(
        "/api/profile/avatar",
        headers=auth_headers,
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400


def test_prescription_upload(client, auth_headers):
    response = client.post(
        "/api/profile/prescription",
        headers=auth_headers,
        files={"file": ("rx.pdf", b"%PDF-1.4 fake", "application/pdf")},
    )
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["prescriptionFile"].endswith(".pdf")


@pytest.mark.parametrize("payload", [
    {"age": "nan"},
    {"age": "inf"},
    {"weight": "-inf"},
    {"stepGoal": ["inf"]},
    {"sleepHours": ["nan"]},
    {"age": 10 ** 400},
])
def test_update_profile_rejects_non_finite_numbers(client, auth_headers, payload):
    response = client.put("/api/profile", headers=auth_headers, json=payload)
    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


def test_update_profile_rejects_overflowing_float_literal(client, auth_headers):
    response = client.put(
        "/api/profile",
        headers=dict(auth_headers, **{"Content-Type": "application/json"}),
        content=b'{"height": 1e400}',
    )
    assert response.status_code == 400
    [error] = response.json()["errors"]
    assert error["field"] == "height"
    assert error["value"] == "inf"


def test_update_profile_rejects_malformed_selected_doctors(client, auth_headers):
    for selected in ("abc", [{"_id": "x"}], ["not-an-id"]):
        response = client.put("/api/profile", headers=auth_headers, json={"selectedDoctors": selected})
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "selectedDoctors"


def test_sanitize_canonicalizes_selected_doctors():
    doctor_id = "6f1c2a9e-3b4d-4e5f-8a7b-9c0d1e2f3a4b"
    payload = {"selectedDoctors": [doctor_id.upper(), doctor_id.replace("-", ""), {"_id": "x"}, 7]}
    assert sanitize_quiz_payload(payload) == {"selectedDoctors": [doctor_id]}
    assert sanitize_quiz_payload({"selectedDoctors": "abc"}) == {"selectedDoctors": []}
