from datetime import timedelta

from healthdash.utils.timeutils import today


def _doctor_id(client):
    return client.get("/api/doctors/system").json()["data"][0]["id"]


def _book(client, headers, days_ahead=3, **extra):
    payload = {
        "title": "Checkup",
        "date": (today() + timedelta(days=days_ahead)).isoformat(),
        "time": "09:30",
    }
    payload.update(extra)
    return client.post("/api/appointments", headers=headers, json=payload)


def test_book_appointment_notifies_user(client, auth_headers):
    doctor_id = _doctor_id(client)
    response = _book(client, auth_headers, doctorId=doctor_id, type="follow-up")
    assert response.status_code == 201
    appointment = response.json()["data"]
    assert appointment["status"] == "upcoming"
    assert appointment["duration"] == 30
    assert appointment["doctor"]["id"] == doctor_id

    notifications = client.get("/api/notifications", headers=auth_headers).json()["data"]
    assert notifications[0]["title"] == "Appointment booked"
    assert notifications[0]["type"] == "appointment"
    assert notifications[0]["metadata"] == {"appointmentId": appointment["id"]}


def test_book_validation(client, auth_headers):
    assert _book(client, auth_headers, time="25:00").status_code == 400
    assert _book(client, auth_headers, duration=10).status_code == 422
    assert _book(client, auth_headers, type="surgery").status_code == 422
    missing = _book(client, auth_headers, doctorId="00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Doctor not found"


def test_upcoming_and_history(client, auth_headers):
    later = _book(client, auth_headers, days_ahead=5, title="Later").json()["data"]
    sooner = _book(client, auth_headers, days_ahead=1, title="Sooner").json()["data"]
    past = _book(client, auth_headers, days_ahead=-3, title="Past").json()["data"]

    upcoming = client.get("/api/appointments/upcoming", headers=auth_headers).json()["data"]
    assert [a["id"] for a in upcoming] == [sooner["id"], later["id"]]

    client.patch(f"/api/appointments/{later['id']}/cancel", headers=auth_headers)
    history = client.get("/api/appointments/history", headers=auth_headers).json()["data"]
    assert [a["id"] for a in history] == [later["id"], past["id"]]

    listing = client.get("/api/appointments?status=upcoming", headers=auth_headers).json()
    assert [a["id"] for a in listing["data"]] == [past["id"], sooner["id"]]
    assert listing["pagination"]["total"] == 2


def test_status_update(client, auth_headers):
    appointment = _book(client, auth_headers).json()["data"]
    url = f"/api/appointments/{appointment['id']}/status"

    bad = client.patch(url, headers=auth_headers, json={"status": "done"})
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Invalid status. Must be: upcoming, completed, cancelled, or no-show"

    response = client.patch(url, headers=auth_headers, json={"status": "no-show"})
    assert response.json()["data"]["status"] == "no-show"


def test_partial_update(client, auth_headers):
    appointment = _book(client, auth_headers).json()["data"]
    url = f"/api/appointments/{appointment['id']}"

    assert client.put(url, headers=auth_headers, json={}).status_code == 400
    assert client.put(url, headers=auth_headers, json={"time": "9am"}).status_code == 400

    updated = client.put(url, headers=auth_headers, json={"location": "Room 4", "duration": 45}).json()["data"]
    assert updated["location"] == "Room 4"
    assert updated["duration"] == 45
    assert updated["title"] == "Checkup"


def test_appointments_are_private(client, signup):
    owner, _ = signup()
    stranger, _ = signup()
    appointment = _book(client, owner).json()["data"]

    assert client.patch(f"/api/appointments/{appointment['id']}/cancel", headers=stranger).status_code == 404
    assert client.delete(f"/api/appointments/{appointment['id']}", headers=stranger).status_code == 404
    assert client.get("/api/appointments", headers=stranger).json()["data"] == []

    assert client.delete(f"/api/appointments/{appointment['id']}", headers=owner).status_code == 200
    assert client.get("/api/appointments", headers=owner).json()["data"] == []
