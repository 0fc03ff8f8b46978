"""Authentication endpoint tests."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tests.conftest import TEST_PASSWORD, AuthenticatedClient, RecordingEmailBackend, make_user
from turfhub.models import Organization, PasswordResetToken, User
from turfhub.models.base import utcnow
from turfhub.services.auth import create_token, decode_token

REGISTRATION = {
    "first_name": "Alice",
    "last_name": "Field",
    "email": "a@example.com",
    "password": "secret123",
}


def link_params(link: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlparse(link).query).items()}


def set_cookie_headers(response) -> list[str]:
    return response.headers.get_list("set-cookie")


class TestRegister:
    """Tests for registration."""

    @pytest.mark.asyncio
    async def test_register_creates_unverified_user(
        self, client: AsyncClient, session: AsyncSession, mailbox: RecordingEmailBackend
    ):
        response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert "verify" in body["message"]
        assert body["data"]["user"]["email"] == "a@example.com"
        assert body["data"]["user"]["is_verified"] is False
        assert body["data"]["user"]["role"] == "user"

        result = await session.execute(select(User).where(User.email == "a@example.com"))
        user = result.scalar_one()
        assert user.password_hash != REGISTRATION["password"]
        assert user.verification_token

        assert len(mailbox.sent) == 1
        assert mailbox.sent[0]["to"] == "a@example.com"
        params = link_params(mailbox.last_link())
        assert params["id"] == user.id
        assert params["token"] == user.verification_token

    @pytest.mark.asyncio
    async def test_register_never_exposes_secrets(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        user = response.json()["data"]["user"]
        assert "password_hash" not in user
        assert "password" not in user
        assert "verification_token" not in user
        assert "verification_token_expires" not in user

    @pytest.mark.asyncio
    async def test_register_missing_fields(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register", json={"email": "a@example.com", "password": "secret123"}
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "All fields are required"}

    @pytest.mark.asyncio
    async def test_register_invalid_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register", json={**REGISTRATION, "email": "not-an-email"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid email format"

    @pytest.mark.asyncio
    async def test_register_short_password(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "password": "abc"})

        assert response.status_code == 400
        assert "at least 6 characters" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_register_duplicate_email_any_case(self, client: AsyncClient):
        first = await client.post("/api/v1/auth/register", json=REGISTRATION)
        assert first.status_code == 201

        response = await client.post(
            "/api/v1/auth/register", json={**REGISTRATION, "email": "A@Example.com"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Email already registered"

    @pytest.mark.asyncio
    async def test_register_owner_role(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "role": "owner"})

        assert response.status_code == 201
        assert response.json()["data"]["user"]["role"] == "owner"

    @pytest.mark.asyncio
    async def test_register_rejects_unknown_role(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register", json={**REGISTRATION, "role": "super_admin"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_register_email_failure_keeps_user(
        self, client: AsyncClient, session: AsyncSession, mailbox: RecordingEmailBackend
    ):
        mailbox.fail = True

        response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        assert "could not send" in response.json()["message"]
        result = await session.execute(select(User).where(User.email == "a@example.com"))
        assert result.scalar_one_or_none() is not None

    @pytest.mark.asyncio
    async def test_register_password_over_bcrypt_limit(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register", json={**REGISTRATION, "password": "x" * 80}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Password must be at most 72 bytes"

    @pytest.mark.asyncio
    async def test_register_password_limit_counts_bytes(self, client: AsyncClient):
        # 36 two-byte characters fill the limit exactly, one more goes over
        at_limit = await client.post(
            "/api/v1/auth/register", json={**REGISTRATION, "password": "é" * 36}
        )
        assert at_limit.status_code == 201

        over = await client.post(
            "/api/v1/auth/register",
            json={**REGISTRATION, "email": "b@example.com", "password": "é" * 37},
        )
        assert over.status_code == 400

    @pytest.mark.asyncio
    async def test_register_concurrent_duplicate(
        self, client: AsyncClient, session: AsyncSession, mailbox: RecordingEmailBackend
    ):
        """A row inserted after the duplicate lookup still yields a 400."""
        await make_user(session, "a@example.com")

        with patch(
            "turfhub.services.accounts.get_user_by_email", new_callable=AsyncMock, return_value=None
        ):
            response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        assert response.status_code == 400
        assert response.json()["error"] == "Email already registered"
        assert mailbox.sent == []

    @pytest.mark.asyncio
    async def test_register_login_then_duplicate(self, client: AsyncClient):
        """Unverified accounts may log in; the email stays taken in any case."""
        registered = await client.post("/api/v1/auth/register", json=REGISTRATION)
        assert registered.status_code == 201

        login = await client.post(
            "/api/v1/auth/login",
            json={"email": "a@example.com", "password": "secret123"},
        )
        assert login.status_code == 200
        assert login.json()["data"]["user"]["is_verified"] is False

        duplicate = await client.post(
            "/api/v1/auth/register", json={**REGISTRATION, "email": "A@example.com"}
        )
        assert duplicate.status_code == 400
        assert duplicate.json()["error"] == "Email already registered"


class TestLogin:
    """Tests for password login."""

    @pytest.mark.asyncio
    async def test_login_sets_cookie_and_returns_token(self, client: AsyncClient, user: User):
        response = await client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["id"] == user.id
        assert decode_token(body["data"]["token"])["sub"] == user.id

        cookies = set_cookie_headers(response)
        token_cookie = next(c for c in cookies if c.startswith("token="))
        assert "HttpOnly" in token_cookie
        assert "Max-Age=2592000" in token_cookie
        assert response.headers["cache-control"] == "no-store"

    @pytest.mark.asyncio
    async def test_login_email_is_case_insensitive(self, client: AsyncClient, user: User):
        response = await client.post(
            "/api/v1/auth/login", json={"email": "TEST@example.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_match(self, client: AsyncClient, user: User):
        wrong_password = await client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": "wrong-password"}
        )
        unknown_email = await client.post(
            "/api/v1/auth/login", json={"email": "nobody@example.com", "password": TEST_PASSWORD}
        )

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_missing_credentials(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/login", json={"email": "a@example.com"})

        assert response.status_code == 400
        assert response.json()["error"] == "Please provide an email and password"

    @pytest.mark.asyncio
    async def test_login_rate_limited(self, client: AsyncClient, user: User):
        for _ in range(10):
            await client.post("/api/v1/auth/login", json={"email": user.email, "password": "nope"})

        response = await client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 429
        assert response.json()["success"] is False
        assert "Retry-After" in response.headers


class TestAdminLogin:
    """Tests for admin dashboard login."""

    @pytest.mark.asyncio
    async def test_admin_login_requires_permission(self, client: AsyncClient, user: User):
        response = await client.post(
            "/api/v1/auth/admin/login", json={"email": user.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized access to admin dashboard"
        assert not set_cookie_headers(response)

    @pytest.mark.asyncio
    async def test_admin_login_sets_both_cookies(self, client: AsyncClient, admin_user: User):
        response = await client.post(
            "/api/v1/auth/admin/login",
            json={"email": admin_user.email, "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == admin_user.id
        names = {c.split("=", 1)[0] for c in set_cookie_headers(response)}
        assert names == {"admin_token", "token"}

    @pytest.mark.asyncio
    async def test_admin_login_bad_password(self, client: AsyncClient, admin_user: User):
        response = await client.post(
            "/api/v1/auth/admin/login", json={"email": admin_user.email, "password": "wrong"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid credentials"


class TestOrganizationLogin:
    """Tests for organization login."""

    @pytest.mark.asyncio
    async def test_member_can_log_in(
        self, client: AsyncClient, user: User, organization: Organization
    ):
        response = await client.post(
            "/api/v1/auth/organization/login",
            json={"email": user.email, "password": TEST_PASSWORD, "organization_id": organization.id},
        )

        assert response.status_code == 200
        assert response.json()["data"]["organization_id"] == organization.id
        names = {c.split("=", 1)[0] for c in set_cookie_headers(response)}
        assert names == {"org_token", "token"}

    @pytest.mark.asyncio
    async def test_non_member_is_rejected(
        self, client: AsyncClient, session: AsyncSession, organization: Organization
    ):
        outsider = await make_user(session, "outsider@example.com")

        response = await client.post(
            "/api/v1/auth/organization/login",
            json={
                "email": outsider.email,
                "password": TEST_PASSWORD,
                "organization_id": organization.id,
            },
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Not authorized as organization owner"

    @pytest.mark.asyncio
    async def test_organization_id_required(self, client: AsyncClient, user: User):
        response = await client.post(
            "/api/v1/auth/organization/login",
            json={"email": user.email, "password": TEST_PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Organization id is required"


class TestSession:
    """Tests for /me and logout."""

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Not authorized to access this route",
        }

    @pytest.mark.asyncio
    async def test_me_rejects_garbage_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_for_deleted_user(self, client: AsyncClient, session: AsyncSession):
        gone = await make_user(session, "gone@example.com")
        token = create_token(gone)
        await session.delete(gone)
        await session.commit()

        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Not authorized to access this route"

    @pytest.mark.asyncio
    async def test_me_with_bearer(self, authenticated_client: AuthenticatedClient, user: User):
        response = await authenticated_client.get("/api/v1/auth/me")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == user.email
        assert "password_hash" not in data
        assert "verification_token" not in data

    @pytest.mark.asyncio
    async def test_me_with_cookie_after_login(self, client: AsyncClient, user: User):
        login = await client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
        )
        client.cookies.set("token", login.cookies["token"])

        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user.id

    @pytest.mark.asyncio
    async def test_me_admin_cookie_rechecks_access(
        self, client: AsyncClient, user: User, user_token: str
    ):
        client.cookies.set("admin_token", user_token)

        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 403
        assert response.json()["error"] == "Not authorized as admin"

    @pytest.mark.asyncio
    async def test_me_admin_cookie_for_admin(
        self, client: AsyncClient, admin_user: User, admin_token: str
    ):
        client.cookies.set("admin_token", admin_token)

        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 200
        assert response.json()["data"]["id"] == admin_user.id

    @pytest.mark.asyncio
    async def test_me_org_cookie_rechecks_membership(
        self, client: AsyncClient, session: AsyncSession, organization: Organization
    ):
        outsider = await make_user(session, "outsider@example.com")
        token = create_token(outsider)
        client.cookies.set("token", token)
        client.cookies.set("org_token", token)

        response = await client.get(
            "/api/v1/auth/me", params={"organization_id": organization.id}
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_logout_clears_all_cookies(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}
        cookies = set_cookie_headers(response)
        for name in ("token", "admin_token", "org_token"):
            cleared = next(c for c in cookies if c.startswith(f"{name}="))
            assert "Max-Age=0" in cleared


class TestEmailVerification:
    """Tests for email verification and resending."""

    async def _register(self, client: AsyncClient, mailbox: RecordingEmailBackend) -> dict:
        response = await client.post("/api/v1/auth/register", json=REGISTRATION)
        assert response.status_code == 201
        return link_params(mailbox.last_link())

    @pytest.mark.asyncio
    async def test_verify_once(
        self, client: AsyncClient, session: AsyncSession, mailbox: RecordingEmailBackend
    ):
        params = await self._register(client, mailbox)

        response = await client.post("/api/v1/auth/verify-email", params=params)
        assert response.status_code == 200
        assert response.json()["message"] == "Email verified successfully!"

        user = (await session.execute(select(User).where(User.id == params["id"]))).scalar_one()
        assert user.is_verified is True
        assert user.verification_token is None
        assert user.verification_token_expires is None

        again = await client.post("/api/v1/auth/verify-email", params=params)
        assert again.status_code == 400
        assert again.json()["error"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_verify_wrong_token(self, client: AsyncClient, mailbox: RecordingEmailBackend):
        params = await self._register(client, mailbox)

        response = await client.post(
            "/api/v1/auth/verify-email", params={"id": params["id"], "token": "0" * 64}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_verify_expired_token(
        self, client: AsyncClient, session: AsyncSession, mailbox: RecordingEmailBackend
    ):
        params = await self._register(client, mailbox)
        user = (await session.execute(select(User).where(User.id == params["id"]))).scalar_one()
        user.verification_token_expires = utcnow() - timedelta(minutes=1)
        await session.commit()

        response = await client.post("/api/v1/auth/verify-email", params=params)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_verify_missing_params(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/verify-email")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid verification link"

    @pytest.mark.asyncio
    async def test_verify_unknown_user(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/verify-email", params={"id": "missing", "token": "abc"}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_resend_replaces_token(
        self, client: AsyncClient, mailbox: RecordingEmailBackend
    ):
        first = await self._register(client, mailbox)

        response = await client.post(
            "/api/v1/auth/resend-verification", json={"email": "A@example.com"}
        )
        assert response.status_code == 200
        second = link_params(mailbox.last_link())
        assert second["token"] != first["token"]

        stale = await client.post("/api/v1/auth/verify-email", params=first)
        assert stale.status_code == 400
        fresh = await client.post("/api/v1/auth/verify-email", params=second)
        assert fresh.status_code == 200

    @pytest.mark.asyncio
    async def test_resend_for_verified_user(self, client: AsyncClient, user: User):
        response = await client.post("/api/v1/auth/resend-verification", json={"email": user.email})

        assert response.status_code == 400
        assert response.json()["error"] == "Email is already verified"

    @pytest.mark.asyncio
    async def test_resend_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/resend-verification", json={"email": "nobody@example.com"}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "User with this email not found"

    @pytest.mark.asyncio
    async def test_resend_send_failure(
        self, client: AsyncClient, session: AsyncSession, mailbox: RecordingEmailBackend
    ):
        await make_user(session, "pending@example.com", is_verified=False)
        mailbox.fail = True

        response = await client.post(
            "/api/v1/auth/resend-verification", json={"email": "pending@example.com"}
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to send verification email"


class TestPasswordReset:
    """Tests for forgot/reset password."""

    async def _request_reset(
        self, client: AsyncClient, mailbox: RecordingEmailBackend, email: str
    ) -> dict:
        response = await client.post("/api/v1/auth/forgot-password", json={"email": email})
        assert response.status_code == 200
        return link_params(mailbox.last_link())

    @pytest.mark.asyncio
    async def test_reset_flow(
        self, client: AsyncClient, session: AsyncSession, user: User, mailbox: RecordingEmailBackend
    ):
        params = await self._request_reset(client, mailbox, user.email)
        assert params["id"] == user.id

        record = (
            await session.execute(
                select(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
            )
        ).scalar_one()
        assert record.token_hash != params["token"]

        response = await client.post(
            "/api/v1/auth/reset-password", params=params, json={"password": "new-password"}
        )
        assert response.status_code == 200

        old = await client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD}
        )
        assert old.status_code == 401
        new = await client.post(
            "/api/v1/auth/login", json={"email": user.email, "password": "new-password"}
        )
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_reset_token_single_use(
        self, client: AsyncClient, user: User, mailbox: RecordingEmailBackend
    ):
        params = await self._request_reset(client, mailbox, user.email)

        first = await client.post(
            "/api/v1/auth/reset-password", params=params, json={"password": "new-password"}
        )
        assert first.status_code == 200

        second = await client.post(
            "/api/v1/auth/reset-password", params=params, json={"password": "other-password"}
        )
        assert second.status_code == 400
        assert second.json()["error"] == "Invalid or expired password reset token"

    @pytest.mark.asyncio
    async def test_reset_expired_token(
        self, client: AsyncClient, session: AsyncSession, user: User, mailbox: RecordingEmailBackend
    ):
        params = await self._request_reset(client, mailbox, user.email)
        record = (
            await session.execute(
                select(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
            )
        ).scalar_one()
        record.expires = utcnow() - timedelta(minutes=1)
        await session.commit()

        response = await client.post(
            "/api/v1/auth/reset-password", params=params, json={"password": "new-password"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid or expired password reset token"
        remaining = await session.execute(
            select(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
        )
        assert remaining.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_new_request_supersedes_old_token(
        self, client: AsyncClient, user: User, mailbox: RecordingEmailBackend
    ):
        first = await self._request_reset(client, mailbox, user.email)
        second = await self._request_reset(client, mailbox, user.email)

        stale = await client.post(
            "/api/v1/auth/reset-password", params=first, json={"password": "new-password"}
        )
        assert stale.status_code == 400

        fresh = await client.post(
            "/api/v1/auth/reset-password", params=second, json={"password": "new-password"}
        )
        assert fresh.status_code == 200

    @pytest.mark.asyncio
    async def test_reset_password_over_bcrypt_limit(
        self, client: AsyncClient, user: User, mailbox: RecordingEmailBackend
    ):
        params = await self._request_reset(client, mailbox, user.email)

        response = await client.post(
            "/api/v1/auth/reset-password", params=params, json={"password": "x" * 80}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Password must be at most 72 bytes"

        # The token was not consumed
        retry = await client.post(
            "/api/v1/auth/reset-password", params=params, json={"password": "new-password"}
        )
        assert retry.status_code == 200

    @pytest.mark.asyncio
    async def test_reset_missing_parameters(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/reset-password", json={"password": "whatever"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request. Missing parameters."

    @pytest.mark.asyncio
    async def test_forgot_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/forgot-password", json={"email": "nobody@example.com"}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    @pytest.mark.asyncio
    async def test_forgot_send_failure_discards_token(
        self, client: AsyncClient, session: AsyncSession, user: User, mailbox: RecordingEmailBackend
    ):
        mailbox.fail = True

        response = await client.post("/api/v1/auth/forgot-password", json={"email": user.email})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to send password reset email"
        result = await session.execute(
            select(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
        )
        assert result.scalar_one_or_none() is None
