"""Tests for the activity feed and the log_activity helper."""

from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.activity import ActivityEntry
from app.models.client import Client
from app.utils import activity as activity_module
from app.utils.activity import log_activity


async def _seed_feed(db):
    rows = [
        ("mlc", "c1", "clients", "created", "Added client 'Acme Ltd'", datetime(2026, 10, 17, 9, 0)),
        ("mlc", "c1", "projects", "archived", "Archived project", datetime(2026, 10, 18, 23, 59)),
        ("life", None, "tasks", "created", "Created task 'Renew passport'", datetime(2026, 10, 19, 8, 0)),
        ("product", "p1", "products", "updated", "Updated product", datetime(2026, 10, 19, 10, 0)),
    ]
    for domain, ref, module, kind, title, created_at in rows:
        db.add(ActivityEntry(
            domain=domain, domain_ref_id=ref, module=module,
            activity_type=kind, title=title, created_at=created_at,
        ))
    await db.commit()


class TestLogActivity:

    async def test_writes_entry(self, db_session):
        ok = await log_activity(
            db_session, domain="mlc", module="clients", activity_type="created",
            title="Added client 'Acme Ltd'", ref_type="client", ref_id="c1",
        )

        assert ok is True
        entry = (await db_session.execute(select(ActivityEntry))).scalar_one()
        assert entry.ref_id == "c1"
        assert entry.created_at is not None

    async def test_failure_is_swallowed(self, db_session):
        """A failed insert returns False and leaves the caller's work intact."""
        client = Client(name="Acme Ltd", is_active=True)
        db_session.add(client)
        await db_session.flush()

        ok = await log_activity(
            db_session, domain="mlc", module="clients", activity_type="created", title=None,
        )

        assert ok is False
        await db_session.commit()
        assert (await db_session.execute(select(Client.name))).scalars().all() == ["Acme Ltd"]
        assert (await db_session.execute(select(ActivityEntry))).scalars().all() == []

    async def test_error_is_logged_not_raised(self, db_session, monkeypatch, caplog):
        """Any exception while building the entry is logged with its context."""
        def broken_entry(**fields):
            raise RuntimeError("activity table gone")

        monkeypatch.setattr(activity_module, "ActivityEntry", broken_entry)

        ok = await log_activity(
            db_session, domain="mlc", module="clients", activity_type="created", title="Added client",
        )

        assert ok is False
        [record] = [r for r in caplog.records if r.getMessage() == "Failed to log activity"]
        assert record.activity_module == "clients"
        assert record.activity_type == "created"


@pytest.mark.api
class TestActivityFeed:
    """GET /api/activity"""

    async def test_newest_first_with_total(self, auth_client: AsyncClient, db_session):
        await _seed_feed(db_session)

        data = (await auth_client.get("/api/activity")).json()

        assert data["total"] == 4
        assert data["limit"] == 50
        assert data["offset"] == 0
        assert [e["module"] for e in data["items"]] == ["products", "tasks", "projects", "clients"]

    async def test_filters(self, auth_client: AsyncClient, db_session):
        await _seed_feed(db_session)

        async def titles(**params):
            data = (await auth_client.get("/api/activity", params=params)).json()
            return [e["title"] for e in data["items"]]

        assert await titles(domain="mlc", domain_ref_id="c1") == [
            "Archived project", "Added client 'Acme Ltd'",
        ]
        assert await titles(activity_type="updated") == ["Updated product"]
        assert await titles(search="passport") == ["Created task 'Renew passport'"]

    async def test_date_to_is_inclusive(self, auth_client: AsyncClient, db_session):
        """date_to covers the whole day, up to 23:59:59."""
        await _seed_feed(db_session)

        data = (await auth_client.get(
            "/api/activity", params={"date_from": "2026-10-18", "date_to": "2026-10-18"},
        )).json()

        assert [e["title"] for e in data["items"]] == ["Archived project"]

    async def test_pagination(self, auth_client: AsyncClient, db_session):
        await _seed_feed(db_session)

        page = (await auth_client.get("/api/activity", params={"limit": 2, "offset": 2})).json()

        assert page["total"] == 4
        assert [e["module"] for e in page["items"]] == ["projects", "clients"]

    async def test_limit_bounds(self, auth_client: AsyncClient):
        assert (await auth_client.get("/api/activity", params={"limit": 0})).status_code == 400
        assert (await auth_client.get("/api/activity", params={"limit": 201})).status_code == 400
        assert (await auth_client.get("/api/activity", params={"offset": -1})).status_code == 400
