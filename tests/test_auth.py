import io

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ecotrack.config import settings
from ecotrack.models.action import Action
from ecotrack.models.post import Post
from ecotrack.models.user import User
from ecotrack.schemas.auth_schema import SignUpRequest
from ecotrack.services.auth import register_user

SIGNUP = {
    "email": "Maya@Example.com",
    "password": "secret123",
    "username": "maya_green",
    "full_name": "Maya Green",
}


def _signup_and_verify(client):
    response = client.post("/auth/signup", json=SIGNUP)
    assert response.status_code == 201, response.text
    response = client.post("/auth/verify-otp", json={"email": "maya@example.com", "token": "123456"})
    assert response.status_code == 200, response.text
    return response.json()


def test_signup_creates_profile_with_zero_points(client, db):
    response = client.post("/auth/signup", json=SIGNUP)

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "maya@example.com"
    assert body["requires_verification"] is True
    user = db.query(User).filter(User.id == body["user_id"]).one()
    assert user.username == "maya_green"
    assert user.points == 0


def test_signup_rejects_taken_username(client, make_user):
    make_user(username="maya_green")
    response = client.post("/auth/signup", json=SIGNUP)
    assert response.status_code == 400
    assert response.json()["detail"] == "Username is already taken"


def test_signup_rejects_malformed_email(client):
    response = client.post("/auth/signup", json={**SIGNUP, "email": "a@b..com"})
    assert response.status_code == 422

    with pytest.raises(ValidationError):
        SignUpRequest(email="no-at-sign.example.com", password="secret123", username="abc",
                      full_name="x")
    assert SignUpRequest(**SIGNUP).email == "maya@example.com"


def test_signup_rejects_short_password(client):
    response = client.post("/auth/signup", json={**SIGNUP, "password": "123"})
    assert response.status_code == 422


def test_wrong_otp_is_rejected(client):
    client.post("/auth/signup", json=SIGNUP)
    response = client.post("/auth/verify-otp", json={"email": "maya@example.com", "token": "000000"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid OTP. Please check your email and try again."


def test_verify_otp_returns_session_and_profile(client):
    body = _signup_and_verify(client)
    assert body["access_token"]
    assert body["profile"]["username"] == "maya_green"
    assert body["profile"]["level"] == 1


def test_resend_otp(client):
    response = client.post("/auth/resend-otp", json={"email": "maya@example.com"})
    assert response.status_code == 200


def test_login_and_read_me(client):
    _signup_and_verify(client)
    response = client.post("/auth/login", json={"email": "maya@example.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "maya@example.com"


def test_login_with_wrong_password_gets_friendly_message(client):
    _signup_and_verify(client)
    response = client.post("/auth/login", json={"email": "maya@example.com", "password": "wrong-one"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Incorrect email or password."


def test_me_requires_token(client):
    assert client.get("/auth/me").status_code == 401
    bad = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


def test_me_without_profile_row(client, fake_platform, token_for):
    user_id = fake_platform.add_account("ghost@example.com")
    headers = {"Authorization": f"Bearer {token_for(user_id, 'ghost@example.com')}"}
    response = client.get("/auth/me", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Profile not found"


def test_update_me(client, make_user):
    make_user(username="taken_name")
    _, headers = make_user(username="someone")

    response = client.patch("/auth/me", json={"bio": "Planting trees", "full_name": "Some One"},
                            headers=headers)
    assert response.status_code == 200
    assert response.json()["bio"] == "Planting trees"

    clash = client.patch("/auth/me", json={"username": "taken_name"}, headers=headers)
    assert clash.status_code == 409


def test_upload_profile_photo(client, make_user, fake_platform):
    user, headers = make_user()
    files = {"file": ("me.png", io.BytesIO(b"\x89PNG fake"), "image/png")}

    response = client.post("/auth/me/photo", files=files, headers=headers)

    assert response.status_code == 200, response.text
    photo = response.json()["profile_photo"]
    assert photo == f"{settings.SUPABASE_URL}/storage/v1/object/public/profiles/{user.id}/avatar.png"
    assert f"profiles/{user.id}/avatar.png" in fake_platform.objects


def test_profile_photo_rejects_video(client, make_user):
    _, headers = make_user()
    files = {"file": ("clip.mp4", io.BytesIO(b"video"), "video/mp4")}
    response = client.post("/auth/me/photo", files=files, headers=headers)
    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


def test_logout(client, make_user, fake_platform):
    _, headers = make_user()
    assert client.post("/auth/logout", headers=headers).status_code == 204
    assert fake_platform.signed_out == 1


def test_delete_account_needs_confirmation(client, make_user):
    _, headers = make_user()
    response = client.request("DELETE", "/auth/me", json={"confirmation": "delete"}, headers=headers)
    assert response.status_code == 400


def test_delete_account_removes_rows_and_identity(client, db, make_user, fake_platform):
    user, headers = make_user()
    user_id = user.id
    client.post("/posts/", data={"caption": "Bottles sorted", "category": "Recycling"},
                headers=headers)

    response = client.request("DELETE", "/auth/me", json={"confirmation": "DELETE"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["auth_deleted"] is True
    assert fake_platform.deleted_users == [user_id]
    db.expire_all()
    assert db.query(User).filter(User.id == user_id).first() is None
    assert db.query(Post).count() == 0
    assert db.query(Action).filter(Action.user_id == user_id).count() == 0


def test_delete_account_reports_identity_failure(client, make_user, fake_platform):
    _, headers = make_user()
    fake_platform.fail_admin_delete = True

    response = client.request("DELETE", "/auth/me", json={"confirmation": "DELETE"}, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["profile_deleted"] is True
    assert body["auth_deleted"] is False


def test_reset_is_disabled_by_default(client, make_user):
    _, headers = make_user()
    response = client.post("/admin/reset", json={"confirmation": "RESET"}, headers=headers)
    assert response.status_code == 403


def test_reset_wipes_every_table(client, db, make_user, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_APP_RESET", True)
    _, headers = make_user()
    make_user()
    client.post("/posts/", data={"caption": "Bus to work", "category": "Transportation"},
                headers=headers)

    assert client.post("/admin/reset", json={"confirmation": "nope"}, headers=headers).status_code == 400
    response = client.post("/admin/reset", json={"confirmation": "RESET"}, headers=headers)

    assert response.status_code == 200
    counts = response.json()
    assert counts["users"] == 2
    assert counts["posts"] == 1
    assert counts["actions"] == 1
    db.expire_all()
    assert db.query(User).count() == 0


def test_signup_discards_identity_when_profile_insert_fails(db, platform, fake_platform, monkeypatch):
    def broken_commit():
        raise SQLAlchemyError("insert failed")

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(HTTPException) as exc:
        register_user(SignUpRequest(**SIGNUP), db, platform)

    assert exc.value.status_code == 500
    assert fake_platform.deleted_users == [fake_platform.accounts["maya@example.com"]["id"]]
