"""Tests for the auth router: login, TOTP, trusted devices, reset, logout."""

import pytest
from httpx import AsyncClient

from app.auth.jwt import AAL_MFA, AAL_PASSWORD, assurance_level
from app.auth.session import ACCESS_COOKIE, REFRESH_COOKIE
from app.auth.trusted_device import COOKIE_NAME as TRUST_COOKIE
from app.auth.trusted_device import TrustedDevices
from app.config import settings
from conftest import COOKIE_DOMAIN, VALID_CODE, cleared, set_cookie, sign_in


@pytest.mark.auth
@pytest.mark.api
class TestLogin:
    """POST /api/auth/login"""

    async def test_login_success_goes_to_challenge(self, client: AsyncClient, owner):
        """A password sign-in alone is aal1: the next page is the challenge."""
        response = await client.post(
            "/api/auth/login",
            json={"email": owner["email"], "password": owner["password"]},
        )

        assert response.status_code == 200
        assert response.json() == {"next": "/auth/verify-totp"}
        assert assurance_level(set_cookie(response, ACCESS_COOKIE)) == AAL_PASSWORD
        assert set_cookie(response, REFRESH_COOKIE)

    async def test_login_on_trusted_device_goes_to_dashboard(self, client: AsyncClient, owner):
        """A remembered browser skips the challenge."""
        client.cookies.set(TRUST_COOKIE, await TrustedDevices.issue(), domain=COOKIE_DOMAIN)

        response = await client.post(
            "/api/auth/login",
            json={"email": owner["email"], "password": owner["password"]},
        )

        assert response.status_code == 200
        assert response.json()["next"] == "/dashboard"

    async def test_wrong_password_is_expelled(self, client: AsyncClient, owner):
        """Rejected credentials redirect off-site; no error body."""
        response = await client.post(
            "/api/auth/login",
            json={"email": owner["email"], "password": "wrong"},
        )

        assert response.status_code == 303
        assert response.headers["location"] == settings.fail_closed_redirect_url
        assert cleared(response, ACCESS_COOKIE)

    async def test_unknown_email_looks_like_wrong_password(self, client: AsyncClient, owner):
        """No hint about which accounts exist."""
        response = await client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": owner["password"]},
        )

        assert response.status_code == 303
        assert response.headers["location"] == settings.fail_closed_redirect_url

    async def test_malformed_email_is_rejected(self, client: AsyncClient):
        """Body validation happens before the provider is asked."""
        response = await client.post(
            "/api/auth/login",
            json={"email": "not-an-email", "password": "x"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.auth
@pytest.mark.api
class TestTotpVerify:
    """POST /api/auth/totp/verify"""

    async def test_correct_code_upgrades_session(self, client: AsyncClient, identity, owner):
        """Verify returns an aal2 session and remembers the device by default."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/totp/verify", json={"code": VALID_CODE})

        assert response.status_code == 200
        assert response.json() == {"success": True, "next": "/dashboard"}
        assert assurance_level(set_cookie(response, ACCESS_COOKIE)) == AAL_MFA

        trust_token = set_cookie(response, TRUST_COOKIE)
        assert trust_token
        assert await TrustedDevices.is_trusted(trust_token)

    async def test_verified_session_passes_gate(self, client: AsyncClient, identity, owner):
        """Cookies from verify are enough to reach a protected route."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))
        await client.post("/api/auth/totp/verify", json={"code": VALID_CODE, "trust_device": False})

        response = await client.get("/api/clients")
        assert response.status_code == 200

    async def test_opt_out_of_trust(self, client: AsyncClient, identity, owner):
        """trust_device=false issues no trust cookie."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))

        response = await client.post(
            "/api/auth/totp/verify", json={"code": VALID_CODE, "trust_device": False},
        )

        assert response.status_code == 200
        assert set_cookie(response, TRUST_COOKIE) is None

    async def test_wrong_code_expels_and_signs_out(self, client: AsyncClient, identity, owner):
        """A rejected code ends the session server-side as well."""
        session = identity.issue_session(owner["id"], aal=AAL_PASSWORD)
        sign_in(client, session)

        response = await client.post("/api/auth/totp/verify", json={"code": "000000"})

        assert response.status_code == 302
        assert response.headers["location"] == settings.fail_closed_redirect_url
        assert cleared(response, ACCESS_COOKIE)
        assert session.access_token in identity.signed_out

    async def test_malformed_code_fails_closed(self, client: AsyncClient, identity, owner):
        """A typo is treated like a wrong code, not a validation error."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/totp/verify", json={"code": "12ab"})

        assert response.status_code == 302

    async def test_no_session_is_expelled(self, client: AsyncClient, identity):
        """Nothing to verify against."""
        response = await client.post("/api/auth/totp/verify", json={"code": VALID_CODE})

        assert response.status_code == 302
        assert response.headers["location"] == settings.fail_closed_redirect_url
        assert identity.signed_out == []

    async def test_no_verified_factor_is_expelled(self, client: AsyncClient, identity):
        """An account that never finished enrollment cannot be challenged."""
        user = identity.add_user(email="fresh@example.com", verified_factors=0)
        sign_in(client, identity.issue_session(user["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/totp/verify", json={"code": VALID_CODE})

        assert response.status_code == 302
        assert response.headers["location"] == settings.fail_closed_redirect_url


@pytest.mark.auth
@pytest.mark.api
class TestEnrollment:
    """POST /api/auth/totp/enroll and /api/auth/totp/enroll/verify"""

    async def test_enroll_returns_secret(self, client: AsyncClient, identity, owner):
        """A new, uniquely named factor is created next to the old one."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/totp/enroll")

        assert response.status_code == 200
        data = response.json()
        assert data["factor_id"]
        assert data["qr_code"].startswith("data:image/svg+xml")
        assert data["uri"].startswith("otpauth://totp/")

        factors = identity.users[owner["id"]]["factors"]
        assert len(factors) == 2
        assert factors[1]["friendly_name"].startswith("Authenticator App ")

    async def test_enroll_without_session_is_expelled(self, client: AsyncClient):
        response = await client.post("/api/auth/totp/enroll")
        assert response.status_code == 302

    async def test_verify_enrollment_removes_old_factors(
        self, client: AsyncClient, identity, owner,
    ):
        """Once the new factor is verified, every other TOTP factor goes."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))
        factor_id = (await client.post("/api/auth/totp/enroll")).json()["factor_id"]

        response = await client.post(
            "/api/auth/totp/enroll/verify",
            json={"factor_id": factor_id, "code": VALID_CODE},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "removed": 1}
        remaining = identity.users[owner["id"]]["factors"]
        assert [f["id"] for f in remaining] == [factor_id]
        assert remaining[0]["status"] == "verified"
        assert assurance_level(set_cookie(response, ACCESS_COOKIE)) == AAL_MFA

    async def test_verify_enrollment_wrong_code(self, client: AsyncClient, identity, owner):
        """A wrong code during enrollment is an ordinary 400, old factors stay."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))
        factor_id = (await client.post("/api/auth/totp/enroll")).json()["factor_id"]

        response = await client.post(
            "/api/auth/totp/enroll/verify",
            json={"factor_id": factor_id, "code": "000000"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"
        assert len(identity.users[owner["id"]]["factors"]) == 2


@pytest.mark.auth
@pytest.mark.api
class TestTrustedDevice:
    """GET /api/auth/check-trust and POST /api/auth/trust-device"""

    async def test_check_trust_without_cookie(self, client: AsyncClient):
        response = await client.get("/api/auth/check-trust")
        assert response.json() == {"trusted": False}

    async def test_check_trust_with_cookie(self, client: AsyncClient):
        client.cookies.set(TRUST_COOKIE, await TrustedDevices.issue(), domain=COOKIE_DOMAIN)
        response = await client.get("/api/auth/check-trust")
        assert response.json() == {"trusted": True}

    async def test_trust_device_needs_aal2(self, client: AsyncClient, identity, owner):
        """A password-only session cannot mark the browser trusted."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/trust-device")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"
        assert set_cookie(response, TRUST_COOKIE) is None

    async def test_trust_device(self, auth_client: AsyncClient):
        """An aal2 session gets a trust cookie with the configured lifetime."""
        response = await auth_client.post("/api/auth/trust-device")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert await TrustedDevices.is_trusted(set_cookie(response, TRUST_COOKIE))

        header = next(
            h for h in response.headers.get_list("set-cookie") if h.startswith(f"{TRUST_COOKIE}=")
        )
        assert f"Max-Age={settings.trusted_device_ttl_days * 86400}" in header
        assert "HttpOnly" in header


@pytest.mark.auth
@pytest.mark.api
class TestResetTotp:
    """POST /api/auth/reset-totp"""

    async def test_requires_session(self, client: AsyncClient):
        response = await client.post("/api/auth/reset-totp")
        assert response.status_code == 401

    async def test_deletes_all_totp_factors(self, client: AsyncClient, identity, owner):
        """Works from an aal1 session; that is the point of the service key."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/reset-totp")

        assert response.status_code == 200
        assert response.json() == {"deleted": 1, "total": 1}
        assert identity.users[owner["id"]]["factors"] == []

    async def test_partial_failure_is_counted(self, client: AsyncClient, identity):
        """A factor that cannot be deleted is logged and left out of the count."""
        user = identity.add_user(email="two@example.com", verified_factors=2)
        identity.fail_admin_delete.add("factor-1")
        sign_in(client, identity.issue_session(user["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/reset-totp")

        assert response.status_code == 200
        assert response.json() == {"deleted": 1, "total": 2}
        assert identity.admin_deleted == ["factor-0"]

    async def test_list_failure(self, client: AsyncClient, identity, owner):
        """If factors cannot be listed nothing is deleted."""
        identity.fail_admin_list = True
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))

        response = await client.post("/api/auth/reset-totp")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "FACTOR_LIST_FAILED"
        assert identity.admin_deleted == []


@pytest.mark.auth
@pytest.mark.api
class TestLogout:
    """POST /api/auth/logout"""

    async def test_logout_clears_session(self, client: AsyncClient, identity, owner):
        """Session cookies go; the provider session is signed out."""
        session = identity.issue_session(owner["id"], aal=AAL_MFA)
        sign_in(client, session)

        response = await client.post("/api/auth/logout")

        assert response.status_code == 204
        assert cleared(response, ACCESS_COOKIE)
        assert cleared(response, REFRESH_COOKIE)
        assert session.access_token in identity.signed_out

    async def test_logout_keeps_device_trust(self, auth_client: AsyncClient):
        """Trust is only ever revoked by expiry."""
        token = await TrustedDevices.issue()
        auth_client.cookies.set(TRUST_COOKIE, token, domain=COOKIE_DOMAIN)

        response = await auth_client.post("/api/auth/logout")

        assert not cleared(response, TRUST_COOKIE)
        assert await TrustedDevices.is_trusted(token)

    async def test_logout_without_session(self, client: AsyncClient):
        response = await client.post("/api/auth/logout")
        assert response.status_code == 204
