from auth import create_access_token, decode_token
from security import hash_password, verify_password


def test_password_hash_round_trip():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong-password", hashed)
    assert not verify_password("secret123", "not-a-bcrypt-hash")


def test_access_token_carries_subject():
    token = create_access_token({"sub": "user-42"})
    assert decode_token(token)["sub"] == "user-42"


def test_signup_then_login(client, signup):
    _, user = signup(email="Reader@Example.com", nickname="Reader")
    assert user["email"] == "reader@example.com"

    response = client.post("/login", json={"email": "READER@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user["id"]


def test_signup_rejects_duplicate_email(client, signup):
    signup(email="dup@example.com")
    response = client.post("/signup", json={"email": "DUP@example.com", "password": "secret123"})
    assert response.status_code == 400


def test_signup_checks_password(client):
    short = client.post("/signup", json={"email": "a@example.com", "password": "123"})
    assert short.status_code == 422

    mismatch = client.post(
        "/signup",
        json={"email": "b@example.com", "password": "secret123", "password_confirmation": "secret124"},
    )
    assert mismatch.status_code == 422


def test_login_rejects_wrong_password(client, signup):
    signup(email="c@example.com")
    response = client.post("/login", json={"email": "c@example.com", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_profile_requires_login(client):
    assert client.get("/profile").status_code == 401
    assert client.get("/profile", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_profile_update_keeps_password_when_blank(client, signup):
    headers, _ = signup(email="d@example.com")

    response = client.patch("/profile", json={"nickname": "Dee", "password": ""}, headers=headers)
    assert response.status_code == 200
    assert response.json()["nickname"] == "Dee"
    assert client.get("/profile", headers=headers).json()["nickname"] == "Dee"

    login = client.post("/login", json={"email": "d@example.com", "password": "secret123"})
    assert login.status_code == 200


def test_profile_update_changes_password(client, signup):
    headers, _ = signup(email="e@example.com")

    response = client.patch(
        "/profile",
        json={"password": "newsecret", "password_confirmation": "newsecret"},
        headers=headers,
    )
    assert response.status_code == 200
    assert client.post("/login", json={"email": "e@example.com", "password": "secret123"}).status_code == 401
    assert client.post("/login", json={"email": "e@example.com", "password": "newsecret"}).status_code == 200
