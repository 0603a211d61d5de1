"""
Tests for session management, email verification, password recovery and account deactivation.
"""
from datetime import datetime, timedelta, timezone

import pytest

from medimantra.auth.exceptions import (
    AccountNotFoundException,
    EmailAlreadyVerifiedException,
    InvalidCredentialsException,
    InvalidTokenException,
    ResetTokenInvalidException,
    TokenExpiredException,
    VerificationTokenInvalidException,
)
from medimantra.auth.models import UserRole
from medimantra.auth.service import (
    change_password,
    forgot_password,
    login_user,
    logout_user,
    refresh_session,
    resend_verification,
    reset_password,
    verify_email,
)
from medimantra.core.security import verify_password

PASSWORD = "s3cure-passw0rd"


def test_refresh_session_issues_access_token(db, register_doctor_account, token_service):
    result = register_doctor_account()

    refreshed = refresh_session(db, result["refresh_token"], token_service)

    assert token_service.verify(refreshed["access_token"])["id"] == result["user"].id


def test_refresh_session_requires_stored_token(db, register_doctor_account, token_service):
    user = register_doctor_account()["user"]
    unknown = token_service.create_refresh_token(user.id, expires_delta=timedelta(days=5))

    with pytest.raises(InvalidTokenException):
        refresh_session(db, unknown, token_service)


def test_refresh_session_rejects_access_token(db, register_doctor_account, token_service):
    result = register_doctor_account()

    with pytest.raises(InvalidTokenException):
        refresh_session(db, result["access_token"], token_service)


def test_refresh_session_expired(db, register_doctor_account, token_service):
    user = register_doctor_account()["user"]
    expired = token_service.create_refresh_token(user.id, expires_delta=timedelta(seconds=-5))

    with pytest.raises(TokenExpiredException):
        refresh_session(db, expired, token_service)


def test_logout_invalidates_refresh_token(db, register_doctor_account, token_service):
    result = register_doctor_account()

    logout_user(db, result["user"])

    assert result["user"].refresh_token is None
    with pytest.raises(InvalidTokenException):
        refresh_session(db, result["refresh_token"], token_service)


def test_verify_email(db, register_patient_account, mailer):
    user = register_patient_account()["user"]

    verify_email(db, mailer.last_verification_token())

    db.refresh(user)
    assert user.is_email_verified
    assert user.email_verification_token is None
    assert user.email_verification_expires is None


def test_verify_email_token_is_single_use(db, register_patient_account, mailer):
    register_patient_account()
    token = mailer.last_verification_token()
    verify_email(db, token)

    with pytest.raises(VerificationTokenInvalidException):
        verify_email(db, token)


def test_verify_email_expired_token(db, register_patient_account, mailer):
    user = register_patient_account()["user"]
    user.email_verification_expires = datetime.now(timezone.utc) - timedelta(hours=1)
    db.commit()

    with pytest.raises(VerificationTokenInvalidException):
        verify_email(db, mailer.last_verification_token())


def test_resend_verification_replaces_token(db, settings, register_doctor_account, mailer):
    user = register_doctor_account()["user"]
    first_token = mailer.last_verification_token()

    resend_verification(db, user.email, settings, mailer)

    second_token = mailer.last_verification_token()
    assert second_token != first_token
    assert mailer.sent[-1]["subject"] == "Doctor Verification - MediMantra"
    with pytest.raises(VerificationTokenInvalidException):
        verify_email(db, first_token)
    verify_email(db, second_token)


def test_resend_verification_errors(db, settings, register_patient_account, mailer):
    with pytest.raises(AccountNotFoundException):
        resend_verification(db, "nobody@example.com", settings, mailer)

    user = register_patient_account()["user"]
    verify_email(db, mailer.last_verification_token())

    with pytest.raises(EmailAlreadyVerifiedException):
        resend_verification(db, user.email, settings, mailer)


def test_me_with_bearer_token(client, register_doctor_account, auth_header):
    result = register_doctor_account()

    response = client.get("/api/v1/auth/me", headers=auth_header(result["access_token"]))

    assert response.status_code == 200
    assert response.json()["email"] == "meera.iyer@example.com"


def test_me_with_cookie(client, register_doctor_account):
    register_doctor_account()
    login = client.post("/api/v1/auth/login/doctor", json={"email": "meera.iyer@example.com", "password": PASSWORD})
    assert login.status_code == 200

    response = client.get("/api/v1/auth/me")

    assert response.status_code == 200
    assert response.json()["role"] == "doctor"


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Bearer not-a-jwt"},
    {"Authorization": "Basic dXNlcjpwYXNz"},
])
def test_me_without_valid_token(client, headers):
    client.cookies.clear()

    response = client.get("/api/v1/auth/me", headers=headers)

    assert response.status_code == 401


def test_refresh_token_route(client, register_doctor_account, token_service):
    result = register_doctor_account()

    response = client.post("/api/v1/auth/refresh-token", json={"refresh_token": result["refresh_token"]})

    assert response.status_code == 200
    assert token_service.verify(response.json()["access_token"])["id"] == result["user"].id


def test_renew_route(client, register_doctor_account, token_service, auth_header):
    user = register_doctor_account()["user"]
    near_expiry = token_service.create_access_token(user.id, expires_delta=timedelta(hours=2))
    fresh = token_service.create_access_token(user.id, expires_delta=timedelta(days=3))

    renewed = client.post("/api/v1/auth/token/renew", headers=auth_header(near_expiry))
    assert renewed.status_code == 200
    assert token_service.verify(renewed.json()["access_token"])["refreshed"] is True

    not_eligible = client.post("/api/v1/auth/token/renew", headers=auth_header(fresh))
    assert not_eligible.status_code == 400

    missing = client.post("/api/v1/auth/token/renew")
    assert missing.status_code == 401


def test_logout_route(client, db, register_doctor_account, auth_header):
    result = register_doctor_account()

    response = client.post("/api/v1/auth/logout", headers=auth_header(result["access_token"]))

    assert response.status_code == 200
    db.refresh(result["user"])
    assert result["user"].refresh_token is None


def test_verify_email_routes(client, register_patient_account, mailer):
    register_patient_account()

    response = client.post("/api/v1/auth/verify-email", json={"token": mailer.last_verification_token()})
    assert response.status_code == 200

    again = client.post("/api/v1/auth/verify-email", json={"token": "0" * 64})
    assert again.status_code == 400

    resend = client.post("/api/v1/auth/resend-verification", json={"email": "rahul.sharma@example.com"})
    assert resend.status_code == 400
    assert resend.json()["detail"] == "Email is already verified"


def test_admin_deactivates_account(client, db, register_doctor_account, admin_token, auth_header):
    result = register_doctor_account()
    user_id = result["user"].id

    response = client.put(f"/api/v1/auth/admin/deactivate/{user_id}", headers=auth_header(admin_token))

    assert response.status_code == 200
    assert response.json()["is_active"] is False

    login = client.post("/api/v1/auth/login/doctor", json={"email": "meera.iyer@example.com", "password": PASSWORD})
    assert login.status_code == 403

    me = client.get("/api/v1/auth/me", headers=auth_header(result["access_token"]))
    assert me.status_code == 403


def test_deactivation_requires_admin(client, register_doctor_account, auth_header):
    result = register_doctor_account()

    response = client.put(
        f"/api/v1/auth/admin/deactivate/{result['user'].id}", headers=auth_header(result["access_token"])
    )

    assert response.status_code == 403


def test_deactivate_unknown_account(client, admin_token, auth_header):
    response = client.put("/api/v1/auth/admin/deactivate/999", headers=auth_header(admin_token))
    assert response.status_code == 404


def test_forgot_password_stores_digest(db, settings, register_patient_account, mailer):
    user = register_patient_account()["user"]

    forgot_password(db, user.email, settings, mailer)

    db.refresh(user)
    raw_token = mailer.last_reset_token()
    assert mailer.sent[-1]["subject"] == "Password Reset - MediMantra"
    assert f"{settings.client_url}/reset-password/{raw_token}" in mailer.sent[-1]["text"]
    assert user.password_reset_token is not None
    assert user.password_reset_token != raw_token
    assert user.password_reset_expires is not None


def test_forgot_password_unknown_email_sends_nothing(db, settings, mailer):
    forgot_password(db, "nobody@example.com", settings, mailer)

    assert mailer.sent == []


def test_forgot_password_mail_failure_keeps_token(db, settings, register_patient_account, mailer):
    user = register_patient_account()["user"]
    mailer.fail = True

    forgot_password(db, user.email, settings, mailer)

    db.refresh(user)
    assert user.password_reset_token is not None


def test_reset_password(db, settings, register_doctor_account, mailer, token_service):
    result = register_doctor_account()
    user = result["user"]
    forgot_password(db, user.email, settings, mailer)

    reset_password(db, mailer.last_reset_token(), "brand-new-passw0rd")

    db.refresh(user)
    assert verify_password("brand-new-passw0rd", user.password_hash)
    assert user.password_reset_token is None
    assert user.password_reset_expires is None
    assert user.refresh_token is None
    with pytest.raises(InvalidTokenException):
        refresh_session(db, result["refresh_token"], token_service)
    with pytest.raises(InvalidCredentialsException):
        login_user(db, user.email, PASSWORD, UserRole.DOCTOR, token_service)
    assert login_user(db, user.email, "brand-new-passw0rd", UserRole.DOCTOR, token_service)["user"].id == user.id


def test_reset_token_is_single_use(db, settings, register_patient_account, mailer):
    user = register_patient_account()["user"]
    forgot_password(db, user.email, settings, mailer)
    token = mailer.last_reset_token()
    reset_password(db, token, "brand-new-passw0rd")

    with pytest.raises(ResetTokenInvalidException):
        reset_password(db, token, "another-passw0rd")


def test_reset_password_expired_token(db, settings, register_patient_account, mailer):
    user = register_patient_account()["user"]
    forgot_password(db, user.email, settings, mailer)
    user.password_reset_expires = datetime.now(timezone.utc) - timedelta(minutes=1)
    db.commit()

    with pytest.raises(ResetTokenInvalidException):
        reset_password(db, mailer.last_reset_token(), "brand-new-passw0rd")

    db.refresh(user)
    assert verify_password(PASSWORD, user.password_hash)


def test_change_password(db, register_patient_account):
    user = register_patient_account()["user"]

    with pytest.raises(InvalidCredentialsException) as exc_info:
        change_password(db, user, "not-the-password", "brand-new-passw0rd")
    assert exc_info.value.detail == "Current password is incorrect"

    change_password(db, user, PASSWORD, "brand-new-passw0rd")

    db.refresh(user)
    assert verify_password("brand-new-passw0rd", user.password_hash)


def test_password_recovery_routes(client, register_patient_account, mailer):
    register_patient_account()

    forgot = client.post("/api/v1/auth/forgot-password", json={"email": "rahul.sharma@example.com"})
    assert forgot.status_code == 200
    assert mailer.sent[-1]["subject"] == "Password Reset - MediMantra"

    unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})
    assert unknown.status_code == 200
    assert unknown.json()["message"] == forgot.json()["message"]

    short = client.post("/api/v1/auth/reset-password", json={"token": mailer.last_reset_token(), "new_password": "short"})
    assert short.status_code == 422

    reset = client.post(
        "/api/v1/auth/reset-password",
        json={"token": mailer.last_reset_token(), "new_password": "brand-new-passw0rd"},
    )
    assert reset.status_code == 200

    invalid = client.post("/api/v1/auth/reset-password", json={"token": "0" * 64, "new_password": "brand-new-passw0rd"})
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Invalid or expired reset token"

    login = client.post(
        "/api/v1/auth/login/patient", json={"email": "rahul.sharma@example.com", "password": "brand-new-passw0rd"}
    )
    assert login.status_code == 200


def test_change_password_route(client, register_doctor_account, auth_header):
    result = register_doctor_account()
    headers = auth_header(result["access_token"])

    wrong = client.put(
        "/api/v1/auth/change-password",
        json={"current_password": "not-the-password", "new_password": "brand-new-passw0rd"},
        headers=headers,
    )
    assert wrong.status_code == 401

    changed = client.put(
        "/api/v1/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-passw0rd"},
        headers=headers,
    )
    assert changed.status_code == 200

    client.cookies.clear()
    anonymous = client.put(
        "/api/v1/auth/change-password",
        json={"current_password": "brand-new-passw0rd", "new_password": "another-passw0rd"},
    )
    assert anonymous.status_code == 401
