"""Tests for the authentication gate: policy functions and middleware."""

import pytest
from httpx import AsyncClient

from app.auth.gate import (
    GateDecision,
    GateSignals,
    GateState,
    decide,
    evaluate,
    next_path,
)
from app.auth.jwt import AAL_MFA, AAL_PASSWORD
from app.auth.session import ACCESS_COOKIE, REFRESH_COOKIE
from app.auth.trusted_device import COOKIE_NAME as TRUST_COOKIE
from app.auth.trusted_device import TrustedDevices
from app.config import settings
from conftest import COOKIE_DOMAIN, cleared, set_cookie, sign_in


@pytest.mark.unit
class TestGatePolicy:
    """evaluate() / decide() are pure; cover every state."""

    def test_no_session_is_anonymous(self):
        assert evaluate(GateSignals(has_session=False)) == GateState.ANONYMOUS

    def test_session_without_verified_factor_is_anonymous(self):
        """Even an aal2 session without a verified factor does not pass."""
        signals = GateSignals(has_session=True, has_verified_totp=False, assurance_level=AAL_MFA)
        assert evaluate(signals) == GateState.ANONYMOUS
        assert decide(evaluate(signals)) == GateDecision.EXPEL

    def test_password_only_awaits_mfa(self):
        signals = GateSignals(has_session=True, has_verified_totp=True, assurance_level=AAL_PASSWORD)
        assert evaluate(signals) == GateState.AWAITING_MFA
        assert decide(GateState.AWAITING_MFA) == GateDecision.CHALLENGE

    def test_aal2_is_verified(self):
        signals = GateSignals(has_session=True, has_verified_totp=True, assurance_level=AAL_MFA)
        assert evaluate(signals) == GateState.MFA_VERIFIED
        assert decide(GateState.MFA_VERIFIED) == GateDecision.ALLOW

    def test_trusted_device_bypasses_challenge(self):
        signals = GateSignals(
            has_session=True, has_verified_totp=True,
            assurance_level=AAL_PASSWORD, trusted_device=True,
        )
        assert evaluate(signals) == GateState.TRUSTED_DEVICE
        assert decide(GateState.TRUSTED_DEVICE) == GateDecision.ALLOW

    def test_trust_without_session_is_still_anonymous(self):
        assert evaluate(GateSignals(has_session=False, trusted_device=True)) == GateState.ANONYMOUS

    def test_state_values(self):
        assert GateState.AWAITING_MFA.value == "password-verified-awaiting-mfa"
        assert GateState.TRUSTED_DEVICE.value == "trusted-device-bypass"

    def test_next_path(self):
        assert next_path(GateState.MFA_VERIFIED) == "/dashboard"
        assert next_path(GateState.TRUSTED_DEVICE) == "/dashboard"
        assert next_path(GateState.AWAITING_MFA) == "/auth/verify-totp"


@pytest.mark.auth
@pytest.mark.api
class TestGateMiddleware:
    """Protected paths through the full ASGI stack."""

    async def test_anonymous_request_is_expelled(self, client: AsyncClient):
        response = await client.get("/api/clients")

        assert response.status_code == 302
        assert response.headers["location"] == settings.fail_closed_redirect_url
        assert cleared(response, ACCESS_COOKIE)
        assert cleared(response, REFRESH_COOKIE)

    async def test_expel_has_no_error_body(self, client: AsyncClient):
        response = await client.get("/dashboard")
        assert response.status_code == 302
        assert "error" not in response.text

    async def test_garbage_token_is_expelled(self, client: AsyncClient):
        client.cookies.set(ACCESS_COOKIE, "not-a-jwt", domain=COOKIE_DOMAIN)
        response = await client.get("/api/clients")

        assert response.status_code == 302
        assert response.headers["location"] == settings.fail_closed_redirect_url

    async def test_password_session_is_challenged(self, client: AsyncClient, identity, owner):
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))
        response = await client.get("/api/clients")

        assert response.status_code == 302
        assert response.headers["location"] == "/auth/verify-totp"

    async def test_mfa_session_is_allowed(self, auth_client: AsyncClient):
        response = await auth_client.get("/api/clients")
        assert response.status_code == 200
        assert response.json() == []

    async def test_session_without_factor_is_expelled(self, client: AsyncClient, identity):
        user = identity.add_user(email="new@example.com", verified_factors=0)
        sign_in(client, identity.issue_session(user["id"], aal=AAL_MFA))

        response = await client.get("/api/clients")
        assert response.status_code == 302
        assert response.headers["location"] == settings.fail_closed_redirect_url

    async def test_trusted_device_skips_challenge(self, client: AsyncClient, identity, owner):
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))
        client.cookies.set(TRUST_COOKIE, await TrustedDevices.issue(), domain=COOKIE_DOMAIN)

        response = await client.get("/api/clients")
        assert response.status_code == 200

    async def test_unknown_trust_token_does_not_bypass(self, client: AsyncClient, identity, owner):
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))
        client.cookies.set(TRUST_COOKIE, "f" * 64, domain=COOKIE_DOMAIN)

        response = await client.get("/api/clients")
        assert response.headers["location"] == "/auth/verify-totp"

    async def test_expired_token_is_refreshed(self, client: AsyncClient, identity, owner):
        """A refreshed session is aal1, so trust is what lets it through."""
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_MFA, expires_in=-60))
        client.cookies.set(TRUST_COOKIE, await TrustedDevices.issue(), domain=COOKIE_DOMAIN)

        response = await client.get("/api/clients")

        assert response.status_code == 200
        new_access = set_cookie(response, ACCESS_COOKIE)
        assert new_access
        assert identity.sessions[new_access] == owner["id"]

    async def test_failed_refresh_is_expelled(self, client: AsyncClient, identity, owner):
        session = identity.issue_session(owner["id"], aal=AAL_MFA, expires_in=-60)
        identity.refresh_tokens.clear()
        sign_in(client, session)

        response = await client.get("/api/clients")
        assert response.headers["location"] == settings.fail_closed_redirect_url


@pytest.mark.auth
@pytest.mark.api
class TestEntryRedirects:

    async def test_root_without_session_goes_to_login(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    async def test_root_with_session_goes_to_dashboard(self, auth_client: AsyncClient):
        response = await auth_client.get("/")
        assert response.headers["location"] == "/dashboard"

    async def test_login_page_is_public(self, client: AsyncClient):
        response = await client.get("/login")
        assert response.status_code == 200
        assert response.json()["view"] == "login"
        assert response.json()["authenticated"] is False

    async def test_login_page_with_verified_session_redirects(self, auth_client: AsyncClient):
        response = await auth_client.get("/login")
        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"

    async def test_login_page_with_password_session_redirects_to_challenge(
        self, client: AsyncClient, identity, owner,
    ):
        sign_in(client, identity.issue_session(owner["id"], aal=AAL_PASSWORD))
        response = await client.get("/login")
        assert response.headers["location"] == "/auth/verify-totp"

    async def test_challenge_page_is_public(self, client: AsyncClient):
        response = await client.get("/auth/verify-totp")
        assert response.status_code == 200
        assert response.json()["view"] == "verify-totp"

    async def test_dashboard_view_for_verified_session(self, auth_client: AsyncClient):
        response = await auth_client.get("/dashboard")
        assert response.status_code == 200
        assert response.json()["assurance_level"] == AAL_MFA

    async def test_health_is_public(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_security_headers_on_redirects(self, client: AsyncClient):
        response = await client.get("/api/clients")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
