"""
Authentication Tests
====================

Identity resolution (first-party tokens, provider tokens, dev cookie),
credential login, refresh and role checks.
"""

import pytest

from reelreview.auth import (
    AuthContext, AuthService, create_refresh_token, is_password_too_long,
    hash_password, verify_password, seed_dev_users, DEV_USERS,
)
from reelreview.config import get_settings
from reelreview.db.models import User, UserRole
from reelreview.errors import NotProvisionedError

from conftest import make_user, make_submission, auth_headers, provider_token


# =============================================================================
# Password hashing
# =============================================================================

class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_password_over_72_bytes_rejected(self):
        """bcrypt limit is enforced instead of silently truncating"""
        long_password = "x" * 73
        assert is_password_too_long(long_password)
        with pytest.raises(ValueError):
            hash_password(long_password)

    def test_multibyte_password_length_counts_bytes(self):
        assert is_password_too_long("ש" * 37)
        assert not is_password_too_long("ש" * 36)


# =============================================================================
# Identity resolution
# =============================================================================

class TestResolve:

    def test_first_party_access_token(self, db, users):
        """Access token resolves to its user"""
        headers = auth_headers(users["reviewer"])
        token = headers["Authorization"].split(" ", 1)[1]
        auth = AuthService(db).resolve(token)
        assert auth.user_id == users["reviewer"].id
        assert auth.role == UserRole.REVIEWER
        assert auth.source == "token"

    def test_resolve_does_not_touch_last_login(self, db, users):
        token = auth_headers(users["reviewer"])["Authorization"].split(" ", 1)[1]
        AuthService(db).resolve(token)
        db.expire_all()
        assert db.query(User).filter(User.id == users["reviewer"].id).first().last_login is None

    def test_authenticate_stamps_last_login(self, db):
        user = make_user(db, "stamp@test.com", password="password123")
        assert AuthService(db).authenticate("stamp@test.com", "password123") is not None
        db.expire_all()
        assert db.query(User).filter(User.id == user.id).first().last_login is not None

    def test_refresh_token_is_not_an_access_token(self, db, users):
        token = create_refresh_token({"sub": users["submitter"].id})
        assert AuthService(db).resolve(token) is None

    def test_provider_token_resolves_by_external_identity(self, db):
        user = make_user(db, "linked@test.com", UserRole.REVIEWER, external_identity_id="provider-1")
        auth = AuthService(db).resolve(provider_token("provider-1"))
        assert auth.user_id == user.id
        assert auth.source == "provider"

    def test_provider_token_links_email_only_user(self, db):
        """Admin-created users without an identity are linked on first sign-in"""
        user = make_user(db, "new@test.com", UserRole.SUBMITTER)
        auth = AuthService(db).resolve(provider_token("provider-2", email="new@test.com"))
        assert auth.user_id == user.id
        db.refresh(user)
        assert user.external_identity_id == "provider-2"

    def test_unprovisioned_provider_identity_raises(self, db):
        with pytest.raises(NotProvisionedError):
            AuthService(db).resolve(provider_token("nobody"))

    def test_provider_token_wrong_audience_rejected(self, db):
        make_user(db, "aud@test.com", external_identity_id="provider-3")
        token = provider_token("provider-3", audience="someone-else")
        assert AuthService(db).resolve(token) is None

    def test_inactive_user_not_resolved(self, db):
        user = make_user(db, "gone@test.com", is_active=False)
        token = auth_headers(user)["Authorization"].split(" ", 1)[1]
        assert AuthService(db).resolve(token) is None

    def test_dev_cookie_ignored_outside_dev_mode(self, db):
        seed_dev_users(db)
        assert AuthService(db).resolve(None, dev_cookie="dev-admin-uid") is None

    def test_dev_cookie_in_dev_mode(self, db, monkeypatch):
        monkeypatch.setenv("DEV_MODE", "true")
        get_settings.cache_clear()
        seed_dev_users(db)
        auth = AuthService(db).resolve(None, dev_cookie="dev-admin-uid")
        assert auth.is_admin
        assert auth.source == "dev"

    def test_seed_dev_users_is_idempotent(self, db):
        assert seed_dev_users(db) == len(DEV_USERS)
        assert seed_dev_users(db) == 0
        assert db.query(User).count() == len(DEV_USERS)


# =============================================================================
# Role checks
# =============================================================================

class TestAuthContext:

    def test_roles(self):
        admin = AuthContext(user_id="a", email="a@x", role=UserRole.ADMIN)
        reviewer = AuthContext(user_id="r", email="r@x", role=UserRole.REVIEWER)
        submitter = AuthContext(user_id="s", email="s@x", role=UserRole.SUBMITTER)
        assert admin.is_admin and admin.is_reviewer
        assert reviewer.is_reviewer and not reviewer.is_admin
        assert submitter.is_submitter and not submitter.is_reviewer

    def test_submission_visibility(self, db, users):
        submission = make_submission(db, users["submitter"])
        owner = AuthContext.from_user(users["submitter"])
        other = AuthContext.from_user(users["other"])
        reviewer = AuthContext.from_user(users["reviewer"])
        assert owner.can_view_submission(submission)
        assert reviewer.can_view_submission(submission)
        assert not other.can_view_submission(submission)
        assert not reviewer.can_modify_submission(submission)


# =============================================================================
# API
# =============================================================================

class TestAuthAPI:

    def test_requests_without_identity_get_401(self, client):
        response = client.get("/api/v1/submissions")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    def test_unprovisioned_identity_gets_403(self, client):
        response = client.get(
            "/api/v1/submissions",
            headers={"Authorization": f"Bearer {provider_token('stranger')}"},
        )
        assert response.status_code == 403

    def test_login_refresh_and_me(self, client, db):
        make_user(db, "login@test.com", UserRole.REVIEWER, password="password123")

        response = client.post("/api/v1/auth/login", json={"email": "Login@test.com", "password": "password123"})
        assert response.status_code == 200
        tokens = response.json()
        assert tokens["token_type"] == "bearer"

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "login@test.com"
        assert me.json()["role"] == "reviewer"

        refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refreshed.status_code == 200
        assert refreshed.json()["access_token"]

    def test_login_wrong_password(self, client, db):
        make_user(db, "login2@test.com", password="password123")
        response = client.post("/api/v1/auth/login", json={"email": "login2@test.com", "password": "nope"})
        assert response.status_code == 401

    def test_refresh_rejects_access_token(self, client, users):
        access = auth_headers(users["submitter"])["Authorization"].split(" ", 1)[1]
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": access})
        assert response.status_code == 401

    def test_change_password(self, client, db):
        user = make_user(db, "pw@test.com", password="password123")
        headers = auth_headers(user)

        bad = client.post("/api/v1/auth/change-password", headers=headers, json={
            "current_password": "wrong", "new_password": "newpassword1",
        })
        assert bad.status_code == 400

        ok = client.post("/api/v1/auth/change-password", headers=headers, json={
            "current_password": "password123", "new_password": "newpassword1",
        })
        assert ok.status_code == 200

        login = client.post("/api/v1/auth/login", json={"email": "pw@test.com", "password": "newpassword1"})
        assert login.status_code == 200

    def test_dev_login_disabled_outside_dev_mode(self, client):
        response = client.post("/api/v1/auth/dev-login", json={
            "email": "admin@example.com", "password": "123password",
        })
        assert response.status_code == 403

    def test_dev_login_sets_cookie(self, client, monkeypatch):
        monkeypatch.setenv("DEV_MODE", "true")
        get_settings.cache_clear()

        wrong = client.post("/api/v1/auth/dev-login", json={
            "email": "reviewer@example.com", "password": "bad",
        })
        assert wrong.status_code == 401

        response = client.post("/api/v1/auth/dev-login", json={
            "email": "reviewer@example.com", "password": "123password",
        })
        assert response.status_code == 200
        assert response.cookies.get("dev_user_uid") == "dev-reviewer-uid"

        me = client.get("/api/v1/auth/me")
        assert me.status_code == 200
        assert me.json()["role"] == "reviewer"

    def test_dev_login_stamps_last_login(self, client, db, monkeypatch):
        monkeypatch.setenv("DEV_MODE", "true")
        get_settings.cache_clear()

        response = client.post("/api/v1/auth/dev-login", json={
            "email": "admin@example.com", "password": "123password",
        })
        assert response.status_code == 200

        db.expire_all()
        user = db.query(User).filter(User.external_identity_id == "dev-admin-uid").first()
        assert user.last_login is not None
