import pytest

from healthdash.services.auth import create_access_token, decode_token, hash_password, verify_password


def test_password_hash_roundtrip():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong", hashed)


def test_malformed_hash_does_not_verify():
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_token_claims():
    claims = decode_token(create_access_token("user-1", "a@b.com"))
    assert claims["id"] == "user-1"
    assert claims["email"] == "a@b.com"
    assert claims["exp"] > claims["iat"]


def test_signup_returns_token_and_public_user(client):
    response = client.post("/api/auth/signup", json={
        "name": "  Ada Lovelace ",
        "email": "Ada@HealthMail.com",
        "password": "secret123",
        "age": 36,
        "medicalInfo": {"conditions": ["diabetes"], "goals": ["walk more"]},
    })
    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    user = body["user"]
    assert user["name"] == "Ada Lovelace"
    assert user["email"] == "ada@healthmail.com"
    assert user["conditions"] == ["diabetes"]
    assert "password_hash" not in user
    assert user["avatar"].startswith("https://ui-avatars.com/api/?name=Ada")


def test_signup_duplicate_email(client, signup):
    signup(email="dup@healthmail.com")
    response = client.post("/api/auth/signup", json={
        "name": "Other", "email": "DUP@healthmail.com", "password": "x",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


def test_signup_rejects_bad_email(client):
    response = client.post("/api/auth/signup", json={"name": "A", "email": "nope", "password": "x"})
    assert response.status_code == 422


def test_login(client, signup):
    signup(email="login@healthmail.com", password="pw12345")

    bad = client.post("/api/auth/login", json={"email": "login@healthmail.com", "password": "wrong"})
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Invalid credentials"

    unknown = client.post("/api/auth/login", json={"email": "ghost@healthmail.com", "password": "pw12345"})
    assert unknown.status_code == 400

    good = client.post("/api/auth/login", json={"email": " LOGIN@healthmail.com", "password": "pw12345"})
    assert good.status_code == 200
    assert good.json()["user"]["email"] == "login@healthmail.com"


def test_me(client, signup):
    headers, user = signup(name="Grace")
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]


@pytest.mark.parametrize("header", [None, "Token abc", "Bearer ", "Bearer garbage"])
def test_me_rejects_bad_authorization(client, header):
    headers = {"Authorization": header} if header is not None else {}
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_expired_token(client, signup):
    _, user = signup()
    token = create_access_token(user["id"], user["email"], expires_days=-1)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired. Please login again."


def test_token_for_deleted_user(client):
    token = create_access_token("00000000-0000-0000-0000-000000000000", "gone@healthmail.com")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token. User not found."


def test_verify(client, signup):
    headers, user = signup()
    body = client.get("/api/auth/verify", headers=headers).json()
    assert body["valid"] is True
    assert body["userId"] == user["id"]
    assert body["needsRefresh"] is False

    response = client.get("/api/auth/verify", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["valid"] is False


def test_refresh(client, signup):
    headers, user = signup()
    token = headers["Authorization"][7:]
    response = client.post("/api/auth/refresh", json={"refreshToken": token})
    assert response.status_code == 200
    assert decode_token(response.json()["token"])["id"] == user["id"]

    assert client.post("/api/auth/refresh", json={}).status_code == 401
    assert client.post("/api/auth/refresh", json={"refreshToken": "garbage"}).status_code == 401


def test_auth_requests_are_rate_limited(client, monkeypatch):
    from limits import parse

    from healthdash.utils import rate_limit

    monkeypatch.setattr(rate_limit, "AUTH_LIMIT", parse("3 per 15 minutes"))
    for _ in range(3):
        assert client.get("/api/auth/health").status_code == 200

    response = client.get("/api/auth/health")
    assert response.status_code == 429
    assert response.json()["detail"] == "Too many requests, please try again later."
    # Failed logins count against the same window
    assert client.post("/api/auth/login", json={"email": "a@b.co", "password": "x"}).status_code == 429

    # Other APIs are not limited
    assert client.get("/api/challenges").status_code == 401
