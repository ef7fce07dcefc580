"""Tests for the dashboard widgets."""

from datetime import datetime, time, timedelta

import pytest
from httpx import AsyncClient

from app.models.time_entry import TimeEntry
from app.utils.dates import utcnow


def _today_at(hour: int) -> datetime:
    return datetime.combine(utcnow().date(), time(hour))


@pytest.mark.api
class TestDashboardWidgets:
    """GET /api/dashboard/widgets"""

    async def test_empty_dashboard(self, auth_client: AsyncClient):
        data = (await auth_client.get("/api/dashboard/widgets")).json()

        assert data["tasks_due_today"] == {"count": 0, "items": []}
        assert data["overdue_tasks"] == {"count": 0, "items": []}
        assert data["active_projects"] == {"count": 0, "items": []}
        assert data["recent_activity"] == []
        assert data["time_tracked_today"] == 0

    async def test_task_widgets(self, auth_client: AsyncClient):
        """Done tasks never show; due dates split today from overdue."""
        today = _today_at(12).isoformat()
        yesterday = (_today_at(12) - timedelta(days=1)).isoformat()
        tomorrow = (_today_at(12) + timedelta(days=1)).isoformat()

        for title, due, status in (
            ("Due today", today, "todo"),
            ("Done today", today, "done"),
            ("Overdue", yesterday, "in_progress"),
            ("Later", tomorrow, "todo"),
        ):
            await auth_client.post("/api/tasks", json={"title": title, "due_date": due, "status": status})

        data = (await auth_client.get("/api/dashboard/widgets")).json()

        assert [t["title"] for t in data["tasks_due_today"]["items"]] == ["Due today"]
        assert [t["title"] for t in data["overdue_tasks"]["items"]] == ["Overdue"]
        assert data["overdue_tasks"]["count"] == 1

    async def test_active_projects_with_counts(self, auth_client: AsyncClient):
        live = (await auth_client.post("/api/projects", json={"name": "Live", "domain": "mlc"})).json()
        gone = (await auth_client.post("/api/projects", json={"name": "Gone", "domain": "mlc"})).json()
        await auth_client.delete(f"/api/projects/{gone['id']}")
        await auth_client.post("/api/tasks", json={"title": "Ship", "project_id": live["id"]})

        data = (await auth_client.get("/api/dashboard/widgets")).json()

        assert data["active_projects"]["count"] == 1
        assert data["active_projects"]["items"][0]["id"] == live["id"]
        assert data["active_projects"]["items"][0]["task_count"] == 1

    async def test_recent_activity_is_capped(self, auth_client: AsyncClient):
        for i in range(12):
            await auth_client.post("/api/clients", json={"name": f"Client {i:02d}"})

        data = (await auth_client.get("/api/dashboard/widgets")).json()

        assert len(data["recent_activity"]) == 10

    async def test_time_tracked_today(self, auth_client: AsyncClient, db_session):
        """Closed entries count their duration; yesterday's do not count."""
        db_session.add_all([
            TimeEntry(
                domain="mlc", module="clients", source="manual",
                started_at=_today_at(0), ended_at=_today_at(0) + timedelta(minutes=45),
                duration_minutes=45,
            ),
            TimeEntry(
                domain="life", module="timer", source="manual",
                started_at=_today_at(0) - timedelta(hours=2),
                ended_at=_today_at(0) - timedelta(hours=1), duration_minutes=60,
            ),
        ])
        await db_session.commit()

        data = (await auth_client.get("/api/dashboard/widgets")).json()

        assert data["time_tracked_today"] == 45

    async def test_requires_verified_session(self, client: AsyncClient):
        response = await client.get("/api/dashboard/widgets")
        assert response.status_code == 302
