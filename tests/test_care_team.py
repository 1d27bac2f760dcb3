import uuid

import pytest


def _system_doctors(client):
    return client.get("/api/doctors/system").json()["data"]


def test_system_doctors_are_public_and_sorted_by_name(client):
    doctors = _system_doctors(client)
    assert len(doctors) == 6
    names = [doctor["name"] for doctor in doctors]
    assert names == sorted(names)
    assert all(doctor["isSystemApproved"] for doctor in doctors)


def test_suggested_doctors_ranked(client, auth_headers):
    doctors = client.get("/api/care-team/suggested-doctors", headers=auth_headers).json()["data"]
    assert [d["name"] for d in doctors[:3]] == ["Dr. Michael Chen", "Dr. Lisa Thompson", "Dr. Sarah Johnson"]


def test_add_and_remove_doctor(client, auth_headers):
    doctor = _system_doctors(client)[0]

    response = client.post("/api/care-team/add-doctor", headers=auth_headers, json={"doctorId": doctor["id"]})
    assert response.status_code == 200
    member = response.json()["data"]
    assert member["doctor"]["id"] == doctor["id"]
    assert member["accepted"] is True and member["isActive"] is True

    duplicate = client.post("/api/care-team/add-doctor", headers=auth_headers, json={"doctorId": doctor["id"]})
    assert duplicate.status_code == 409

    team = client.get("/api/care-team", headers=auth_headers).json()["data"]
    assert [m["doctor"]["id"] for m in team] == [doctor["id"]]

    assert client.delete(f"/api/care-team/{doctor['id']}", headers=auth_headers).status_code == 200
    assert client.get("/api/care-team", headers=auth_headers).json()["data"] == []
    missing = client.delete(f"/api/care-team/{doctor['id']}", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Doctor not in care team"

    # A removed doctor can be added again
    again = client.post("/api/care-team/add-doctor", headers=auth_headers, json={"doctorId": doctor["id"]})
    assert again.status_code == 200
    assert again.json()["data"]["id"] == member["id"]


def test_add_doctor_validation(client, auth_headers):
    assert client.post("/api/care-team/add-doctor", headers=auth_headers, json={}).status_code == 400
    assert client.post("/api/care-team/add-doctor", headers=auth_headers,
                       json={"doctorId": "abc"}).status_code == 400
    assert client.post("/api/care-team/add-doctor", headers=auth_headers,
                       json={"doctorId": str(uuid.uuid4())}).status_code == 404


def test_care_teams_are_per_user(client, signup):
    alice, _ = signup()
    bob, _ = signup()
    doctor = _system_doctors(client)[0]
    client.post("/api/care-team/add-doctor", headers=alice, json={"doctorId": doctor["id"]})
    assert client.get("/api/care-team", headers=bob).json()["data"] == []


def test_add_personal_doctor(client, auth_headers):
    response = client.post("/api/doctors/careteam/add", headers=auth_headers, json={
        "doctorData": {"name": "Dr. Family", "specialization": "General Practitioner"},
    })
    assert response.status_code == 201
    doctor = response.json()["data"]["doctor"]
    assert doctor["isSystemApproved"] is False
    assert doctor["rating"] == 4.5

    team = client.get("/api/doctors/careteam", headers=auth_headers).json()["data"]
    assert [m["doctor"]["name"] for m in team] == ["Dr. Family"]

    # Personal doctors stay out of the public directory
    assert "Dr. Family" not in [d["name"] for d in _system_doctors(client)]

    assert client.post("/api/doctors/careteam/add", headers=auth_headers, json={}).status_code == 400


def test_selected_doctors(client, auth_headers):
    ids = [doctor["id"] for doctor in _system_doctors(client)[:2]]

    response = client.post("/api/doctors/selected", headers=auth_headers,
                           json={"selectedDoctors": ids + [ids[0]]})
    assert response.status_code == 200
    assert [d["id"] for d in response.json()["data"]["selectedDoctors"]] == ids

    stored = client.get("/api/doctors/selected", headers=auth_headers).json()["data"]["selectedDoctors"]
    assert [d["id"] for d in stored] == ids

    bad = client.post("/api/doctors/selected", headers=auth_headers,
                      json={"selectedDoctors": [ids[0], str(uuid.uuid4())]})
    assert bad.status_code == 400
    assert bad.json()["message"] == "Some doctor IDs are invalid or not system doctors"


def test_selected_doctors_reject_personal_doctor(client, auth_headers):
    personal = client.post("/api/doctors/careteam/add", headers=auth_headers, json={
        "doctorData": {"name": "Dr. Mine", "specialization": "Dentist"},
    }).json()["data"]["doctor"]
    response = client.post("/api/doctors/selected", headers=auth_headers,
                           json={"selectedDoctors": [personal["id"]]})
    assert response.status_code == 400


@pytest.mark.parametrize("path", ["/api/care-team", "/api/doctors/careteam"])
def test_care_team_lists_member_with_doctor(client, auth_headers, path):
    doctor = _system_doctors(client)[1]
    client.post("/api/care-team/add-doctor", headers=auth_headers, json={"doctorId": doctor["id"]})

    response = client.get(path, headers=auth_headers)
    assert response.status_code == 200
    [member] = response.json()["data"]
    assert member["doctor"] == doctor
    assert member["accepted"] is True
    assert member["isActive"] is True


@pytest.mark.parametrize("selected", ["abc", [{"_id": "x"}], None])
def test_selected_doctors_ignore_malformed_quiz_data(client, auth_headers, selected):
    client.post("/api/profile/quiz", headers=auth_headers, json={"selectedDoctors": selected, "age": 30})

    response = client.get("/api/doctors/selected", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["selectedDoctors"] == []


def test_selected_doctors_accept_any_uuid_spelling(client, auth_headers):
    doctor = _system_doctors(client)[0]
    client.post("/api/profile/quiz", headers=auth_headers,
                json={"selectedDoctors": [doctor["id"].upper()]})
    stored = client.get("/api/doctors/selected", headers=auth_headers).json()["data"]["selectedDoctors"]
    assert [d["id"] for d in stored] == [doctor["id"]]

    response = client.post("/api/doctors/selected", headers=auth_headers,
                           json={"selectedDoctors": [doctor["id"].replace("-", "")]})
    assert response.status_code == 200
    assert [d["id"] for d in response.json()["data"]["selectedDoctors"]] == [doctor["id"]]
