"""Auth routes: password login, TOTP challenge and enrollment, device trust.

Route overview:
  POST /login               - email + password; sets session cookies
  POST /totp/verify         - answer the TOTP challenge → aal2 session
  POST /totp/enroll         - start enrolling a new TOTP factor
  POST /totp/enroll/verify  - confirm the new factor, drop the old ones
  GET  /check-trust         - is this browser a trusted device?
  POST /trust-device        - remember this browser (aal2 only)
  POST /reset-totp          - delete every TOTP factor via the service key
  POST /logout              - end the session (device trust survives)

Login and challenge failures never produce an error body: the session is
signed out and the caller is redirected off-site.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from app.auth.deps import (
    SessionContext,
    get_session_context,
    require_mfa_session,
    require_session,
)
from app.auth.gate import DASHBOARD_PATH, GateSignals, evaluate, next_path
from app.auth.identity import (
    IdentityProviderError,
    factors_of,
    get_identity_provider,
    verified_totp_factors,
)
from app.auth.jwt import assurance_level
from app.auth.session import (
    clear_session_cookies,
    read_session_tokens,
    set_session_cookies,
)
from app.auth.trusted_device import COOKIE_NAME as TRUST_COOKIE
from app.auth.trusted_device import TrustedDevices, set_trust_cookie
from app.middleware.auth_gate import expel
from app.middleware.exceptions import InvalidRequestError, OpsDeskError
from app.schemas.auth import (
    LoginRequest,
    NextStep,
    TotpEnrollResponse,
    TotpEnrollVerifyRequest,
    TotpEnrollVerifyResponse,
    TotpResetResponse,
    TotpVerifyRequest,
    TotpVerifyResponse,
    TrustCheckResponse,
)
from app.schemas.common import SuccessResponse
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

async def _sign_out_quietly(access_token: str | None) -> None:
    if not access_token:
        return
    try:
        await get_identity_provider().sign_out(access_token)
    except IdentityProviderError as e:
        logger.warning(f"Sign-out failed: {e.message}")


async def _fail_closed(
    access_token: str | None, reason: str, request: Request, status_code: int = 302,
) -> Response:
    logger.warning(
        f"Authentication anomaly: {reason}",
        extra={"path": request.url.path, "method": request.method},
    )
    await _sign_out_quietly(access_token)
    return expel(status_code)


def _json(payload, context: SessionContext | None = None, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(payload.model_dump(), status_code=status_code)
    if context is not None and context.refreshed is not None:
        set_session_cookies(response, context.refreshed)
    return response


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=NextStep)
async def login(body: LoginRequest, request: Request):
    """Email + password sign-in. The response names the next page."""
    provider = get_identity_provider()
    existing_access, _ = read_session_tokens(request)

    try:
        session = await provider.sign_in_with_password(body.email, body.password)
    except IdentityProviderError as e:
        # Unknown address and wrong password look identical from outside
        return await _fail_closed(
            existing_access, f"login rejected ({e.message})", request, status.HTTP_303_SEE_OTHER,
        )

    user = session.user
    if "factors" not in user:
        try:
            user = await provider.get_user(session.access_token)
        except IdentityProviderError as e:
            return await _fail_closed(
                session.access_token, f"user lookup failed ({e.message})", request,
                status.HTTP_303_SEE_OTHER,
            )

    signals = GateSignals(
        has_session=True,
        has_verified_totp=bool(verified_totp_factors(factors_of(user))),
        assurance_level=assurance_level(session.access_token),
        trusted_device=await TrustedDevices.is_trusted(request.cookies.get(TRUST_COOKIE)),
    )
    state = evaluate(signals)
    logger.info("Password sign-in succeeded", extra={"user_id": user.get("id"), "state": state.value})

    response = JSONResponse(NextStep(next=next_path(state)).model_dump())
    set_session_cookies(response, session)
    return response


# ── POST /totp/verify ────────────────────────────────────────

@router.post("/totp/verify", response_model=TotpVerifyResponse)
async def verify_totp(
    body: TotpVerifyRequest,
    request: Request,
    context: SessionContext = Depends(get_session_context),
):
    """Answer the TOTP challenge with the first verified factor."""
    if not context.has_session:
        return await _fail_closed(None, "challenge without session", request)

    factors = context.verified_factors
    if not factors:
        return await _fail_closed(context.access_token, "challenge without verified factor", request)

    provider = get_identity_provider()
    factor = factors[0]
    try:
        challenge_id = await provider.challenge(context.access_token, factor.id)
        session = await provider.verify(context.access_token, factor.id, challenge_id, body.code)
    except IdentityProviderError as e:
        return await _fail_closed(context.access_token, f"TOTP rejected ({e.message})", request)

    response = JSONResponse(TotpVerifyResponse(next=DASHBOARD_PATH).model_dump())
    set_session_cookies(response, session)

    if body.trust_device:
        try:
            set_trust_cookie(response, await TrustedDevices.issue())
        except Exception:
            logger.exception("Failed to remember trusted device")

    return response


# ── POST /totp/enroll ────────────────────────────────────────

@router.post("/totp/enroll", response_model=TotpEnrollResponse)
async def enroll_totp(
    request: Request,
    context: SessionContext = Depends(get_session_context),
):
    """Create a new, uniquely named TOTP factor.

    Existing factors stay in place: removing them needs an aal2 session,
    which only exists once the new factor has been verified.
    """
    if not context.has_session:
        return await _fail_closed(None, "enrollment without session", request)

    friendly_name = f"Authenticator App {utcnow().strftime('%Y-%m-%dT%H:%M:%SZ')}"
    try:
        enrollment = await get_identity_provider().enroll_totp(context.access_token, friendly_name)
    except IdentityProviderError as e:
        return await _fail_closed(context.access_token, f"enrollment rejected ({e.message})", request)

    return _json(TotpEnrollResponse(**enrollment.model_dump()), context)


@router.post("/totp/enroll/verify", response_model=TotpEnrollVerifyResponse)
async def verify_enrollment(
    body: TotpEnrollVerifyRequest,
    request: Request,
    context: SessionContext = Depends(get_session_context),
):
    """Verify the new factor, then delete every other TOTP factor."""
    if not context.has_session:
        return await _fail_closed(None, "enrollment verify without session", request)

    provider = get_identity_provider()
    try:
        challenge_id = await provider.challenge(context.access_token, body.factor_id)
        session = await provider.verify(context.access_token, body.factor_id, challenge_id, body.code)
    except IdentityProviderError as e:
        logger.info(f"Enrollment code rejected: {e.message}")
        raise InvalidRequestError("Invalid code. Please try again.")

    removed = 0
    for factor in context.factors:
        if factor.id == body.factor_id or factor.factor_type != "totp":
            continue
        try:
            await provider.unenroll(session.access_token, factor.id)
            removed += 1
        except IdentityProviderError as e:
            logger.warning(
                f"Could not remove stale factor {factor.id}: {e.message}",
                extra={"factor_id": factor.id},
            )

    response = JSONResponse(TotpEnrollVerifyResponse(removed=removed).model_dump())
    set_session_cookies(response, session)
    return response


# ── Trusted devices ──────────────────────────────────────────

@router.get("/check-trust", response_model=TrustCheckResponse)
async def check_trust(request: Request):
    trusted = await TrustedDevices.is_trusted(request.cookies.get(TRUST_COOKIE))
    return TrustCheckResponse(trusted=trusted)


@router.post("/trust-device", response_model=SuccessResponse)
async def trust_device(context: SessionContext = Depends(require_mfa_session)):
    """Remember this browser for trusted_device_ttl_days."""
    response = _json(SuccessResponse(), context)
    set_trust_cookie(response, await TrustedDevices.issue())
    return response


# ── POST /reset-totp ─────────────────────────────────────────

@router.post("/reset-totp", response_model=TotpResetResponse)
async def reset_totp(context: SessionContext = Depends(require_session)):
    """Delete all TOTP factors of the current user with the service key.

    Bypasses the aal2 requirement of self-service unenrollment.
    Individual delete failures are logged and counted out.
    """
    provider = get_identity_provider()
    try:
        factors = await provider.admin_list_factors(context.user_id)
    except IdentityProviderError as e:
        logger.error(f"Failed to list MFA factors: {e.message}", extra={"user_id": context.user_id})
        raise OpsDeskError("Failed to list MFA factors", error_code="FACTOR_LIST_FAILED")

    totp_factors = [f for f in factors if f.factor_type == "totp"]
    deleted = 0
    for factor in totp_factors:
        try:
            await provider.admin_delete_factor(context.user_id, factor.id)
            deleted += 1
        except IdentityProviderError as e:
            logger.error(
                f"Failed to delete factor {factor.id}: {e.message}",
                extra={"user_id": context.user_id, "factor_id": factor.id},
            )

    return _json(TotpResetResponse(deleted=deleted, total=len(totp_factors)), context)


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request):
    access_token, _ = read_session_tokens(request)
    await _sign_out_quietly(access_token)

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_session_cookies(response)
    return response
