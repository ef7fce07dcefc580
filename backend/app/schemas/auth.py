from pydantic import BaseModel, EmailStr, Field


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class NextStep(BaseModel):
    """Where the front end should navigate after a successful call."""
    next: str


# ── TOTP ─────────────────────────────────────────────────────

class TotpVerifyRequest(BaseModel):
    # Format is left to the provider so a typo still fails closed
    code: str = Field(..., min_length=1, max_length=12)
    trust_device: bool = True


class TotpVerifyResponse(BaseModel):
    success: bool = True
    next: str


class TotpEnrollResponse(BaseModel):
    factor_id: str
    qr_code: str
    secret: str
    uri: str


class TotpEnrollVerifyRequest(BaseModel):
    factor_id: str = Field(..., min_length=1)
    code: str = Field(..., pattern=r"^\d{6}$")


class TotpEnrollVerifyResponse(BaseModel):
    success: bool = True
    removed: int


class TotpResetResponse(BaseModel):
    deleted: int
    total: int


# ── Trusted device ───────────────────────────────────────────

class TrustCheckResponse(BaseModel):
    trusted: bool


# ── Views ────────────────────────────────────────────────────

class ViewDescriptor(BaseModel):
    """Minimal description of a page; rendering belongs to the front end."""
    view: str
    title: str
    authenticated: bool = False
    assurance_level: str | None = None
