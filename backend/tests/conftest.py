"""Pytest configuration and fixtures for OpsDesk tests.

Everything runs in-process:
  - database: in-memory SQLite via aiosqlite, one fresh schema per test
  - redis:    fakeredis, installed as the shared client
  - identity: FakeIdentityProvider, installed as the shared provider
"""

import time
import uuid
from typing import AsyncGenerator

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth import identity as identity_module
from app.auth.identity import (
    Factor,
    IdentityProviderError,
    IdentitySession,
    TotpEnrollment,
)
from app.auth.jwt import AAL_MFA, AAL_PASSWORD, assurance_level
from app.auth.session import ACCESS_COOKIE, REFRESH_COOKIE
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models import *  # noqa: F401,F403
from app.utils import cache as cache_module

VALID_CODE = "123456"


def mint_token(user_id: str, aal: str = AAL_PASSWORD, expires_in: int = 3600) -> str:
    """A session JWT shaped like the identity provider's."""
    claims = {
        "sub": user_id,
        "aal": aal,
        "exp": int(time.time()) + expires_in,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.identity_jwt_secret, algorithm=settings.identity_jwt_algorithm)


class FakeIdentityProvider:
    """In-memory stand-in for the identity provider client.

    Same coroutine interface as app.auth.identity.IdentityProvider.
    Accepts VALID_CODE as the only correct TOTP code.
    """

    def __init__(self):
        self.users: dict[str, dict] = {}
        self.sessions: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.challenges: dict[str, str] = {}
        self.signed_out: list[str] = []
        self.admin_deleted: list[str] = []
        self.fail_admin_list = False
        self.fail_admin_delete: set[str] = set()

    # ── Test setup helpers ─────────────────────────────────

    def add_user(
        self,
        email: str = "owner@example.com",
        password: str = "correct-horse",
        verified_factors: int = 1,
    ) -> dict:
        user_id = str(uuid.uuid4())
        self.users[user_id] = {
            "id": user_id,
            "email": email,
            "password": password,
            "factors": [
                {
                    "id": f"factor-{i}",
                    "factor_type": "totp",
                    "status": "verified",
                    "friendly_name": f"Phone {i}",
                }
                for i in range(verified_factors)
            ],
        }
        return self.users[user_id]

    def issue_session(self, user_id: str, aal: str = AAL_PASSWORD, expires_in: int = 3600) -> IdentitySession:
        access_token = mint_token(user_id, aal, expires_in)
        refresh_token = f"refresh-{uuid.uuid4().hex}"
        self.sessions[access_token] = user_id
        self.refresh_tokens[refresh_token] = user_id
        return IdentitySession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            user=self._payload(user_id),
        )

    def _payload(self, user_id: str) -> dict:
        user = self.users[user_id]
        return {
            "id": user_id,
            "email": user["email"],
            "factors": [dict(f) for f in user["factors"]],
        }

    def _user_id(self, access_token: str) -> str:
        user_id = self.sessions.get(access_token)
        if not user_id or assurance_level(access_token) is None:
            raise IdentityProviderError("invalid JWT", status_code=401)
        return user_id

    # ── Provider interface ─────────────────────────────────

    async def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        for user in self.users.values():
            if user["email"] == email and user["password"] == password:
                return self.issue_session(user["id"])
        raise IdentityProviderError("Invalid login credentials", status_code=400)

    async def refresh_session(self, refresh_token: str) -> IdentitySession:
        user_id = self.refresh_tokens.pop(refresh_token, None)
        if not user_id:
            raise IdentityProviderError("Invalid Refresh Token", status_code=400)
        return self.issue_session(user_id)

    async def get_user(self, access_token: str) -> dict:
        return self._payload(self._user_id(access_token))

    async def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)
        self.sessions.pop(access_token, None)

    async def enroll_totp(self, access_token: str, friendly_name: str) -> TotpEnrollment:
        user_id = self._user_id(access_token)
        factor_id = f"factor-{uuid.uuid4().hex[:8]}"
        self.users[user_id]["factors"].append({
            "id": factor_id,
            "factor_type": "totp",
            "status": "unverified",
            "friendly_name": friendly_name,
        })
        return TotpEnrollment(
            factor_id=factor_id,
            qr_code="data:image/svg+xml;utf-8,<svg/>",
            secret="JBSWY3DPEHPK3PXP",
            uri=f"otpauth://totp/OpsDesk:{self.users[user_id]['email']}?secret=JBSWY3DPEHPK3PXP",
        )

    async def challenge(self, access_token: str, factor_id: str) -> str:
        user_id = self._user_id(access_token)
        if not any(f["id"] == factor_id for f in self.users[user_id]["factors"]):
            raise IdentityProviderError("Factor not found", status_code=404)
        challenge_id = f"challenge-{uuid.uuid4().hex[:8]}"
        self.challenges[challenge_id] = factor_id
        return challenge_id

    async def verify(
        self, access_token: str, factor_id: str, challenge_id: str, code: str,
    ) -> IdentitySession:
        user_id = self._user_id(access_token)
        if self.challenges.pop(challenge_id, None) != factor_id or code != VALID_CODE:
            raise IdentityProviderError("Invalid TOTP code entered", status_code=422)
        for factor in self.users[user_id]["factors"]:
            if factor["id"] == factor_id:
                factor["status"] = "verified"
        return self.issue_session(user_id, aal=AAL_MFA)

    async def unenroll(self, access_token: str, factor_id: str) -> None:
        user_id = self._user_id(access_token)
        if assurance_level(access_token) != AAL_MFA:
            raise IdentityProviderError("AAL2 required", status_code=403)
        factors = self.users[user_id]["factors"]
        self.users[user_id]["factors"] = [f for f in factors if f["id"] != factor_id]

    async def admin_list_factors(self, user_id: str) -> list[Factor]:
        if self.fail_admin_list:
            raise IdentityProviderError("Service unavailable", status_code=503)
        return [Factor.model_validate(f) for f in self.users[user_id]["factors"]]

    async def admin_delete_factor(self, user_id: str, factor_id: str) -> None:
        if factor_id in self.fail_admin_delete:
            raise IdentityProviderError("Delete failed", status_code=500)
        factors = self.users[user_id]["factors"]
        self.users[user_id]["factors"] = [f for f in factors if f["id"] != factor_id]
        self.admin_deleted.append(factor_id)

    async def close(self):
        pass


# ── Database ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database per test.

    pysqlite's own transaction handling is switched off so SQLAlchemy
    emits BEGIN itself; without it SAVEPOINT does not behave.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _no_pysqlite_transactions(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSession(db_engine, expire_on_commit=False) as session:
        yield session


# ── Redis / identity provider ────────────────────────────────────

@pytest_asyncio.fixture
async def fake_redis(monkeypatch):
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(cache_module, "_redis_client", client)
    yield client
    await client.flushall()


@pytest.fixture
def identity(monkeypatch) -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    monkeypatch.setattr(identity_module, "_provider", provider)
    return provider


@pytest.fixture
def owner(identity) -> dict:
    """The account holder, with one verified TOTP factor."""
    return identity.add_user()


# ── HTTP clients ─────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(db_session, fake_redis, identity) -> AsyncGenerator[AsyncClient, None]:
    """Client with no session cookies. Redirects are not followed."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# Host-only cookies for http://test live under "test.local" in the jar;
# using the same domain lets Set-Cookie responses replace them.
COOKIE_DOMAIN = "test.local"


def sign_in(client: AsyncClient, session: IdentitySession) -> None:
    client.cookies.set(ACCESS_COOKIE, session.access_token, domain=COOKIE_DOMAIN)
    client.cookies.set(REFRESH_COOKIE, session.refresh_token, domain=COOKIE_DOMAIN)


def cleared(response, name: str) -> bool:
    """True if the response deletes cookie `name`."""
    return any(
        h.startswith(f"{name}=") and "Max-Age=0" in h
        for h in response.headers.get_list("set-cookie")
    )


def set_cookie(response, name: str) -> str | None:
    """Value the response sets for cookie `name`, ignoring deletions."""
    for h in response.headers.get_list("set-cookie"):
        if h.startswith(f"{name}=") and "Max-Age=0" not in h:
            return h.split(";", 1)[0].split("=", 1)[1]
    return None


@pytest.fixture
def auth_client(client, identity, owner) -> AsyncClient:
    """Client holding an aal2 session for `owner`: passes the gate."""
    sign_in(client, identity.issue_session(owner["id"], aal=AAL_MFA))
    return client


# ── Data helpers ─────────────────────────────────────────────────

@pytest_asyncio.fixture
async def make_client(db_session):
    """Factory committing a Client (with optional services)."""
    from app.models.client import Client, ClientService

    async def _make(name: str = "Acme Ltd", services: tuple[str, ...] = (), **fields):
        fields.setdefault("is_active", True)
        client = Client(name=name, **fields)
        client.services = [
            ClientService(service_type=s, is_active=True, config={}) for s in services
        ]
        db_session.add(client)
        await db_session.commit()
        return client

    return _make
