"""Tests for products, product modules and the built-in seed."""

import pytest
from httpx import AsyncClient

from app.services.seed import SEED_PRODUCTS


@pytest.mark.api
class TestProducts:

    async def test_create_with_modules(self, auth_client: AsyncClient):
        response = await auth_client.post(
            "/api/products",
            json={"name": "ManlyMan", "domain": "manlyman.men", "modules": ["shop", "blog", "shop"]},
        )

        assert response.status_code == 201
        data = response.json()
        assert sorted(m["module_type"] for m in data["modules"]) == ["blog", "shop"]

        feed = (await auth_client.get("/api/activity", params={"domain": "product"})).json()
        assert feed["items"][0]["title"] == "Added product 'ManlyMan'"
        assert feed["items"][0]["domain_ref_id"] == data["id"]

    async def test_archive_product(self, auth_client: AsyncClient):
        product = (await auth_client.post("/api/products", json={"name": "Old tool"})).json()

        response = await auth_client.delete(f"/api/products/{product['id']}")
        assert response.json()["is_active"] is False

        active = (await auth_client.get("/api/products", params={"active": "true"})).json()
        assert active == []

    async def test_update_product(self, auth_client: AsyncClient):
        product = (await auth_client.post("/api/products", json={"name": "Tool"})).json()

        response = await auth_client.put(
            f"/api/products/{product['id']}", json={"description": "Now with docs"},
        )

        assert response.json()["description"] == "Now with docs"
        listed = (await auth_client.get("/api/products")).json()
        assert listed[0]["description"] == "Now with docs"

    async def test_unknown_product(self, auth_client: AsyncClient):
        assert (await auth_client.get("/api/products/nope")).status_code == 404

    async def test_module_toggle(self, auth_client: AsyncClient):
        """Same toggle-or-create contract as client services."""
        product = (await auth_client.post(
            "/api/products", json={"name": "GetShelfed", "modules": ["shop"]},
        )).json()
        url = f"/api/products/{product['id']}/modules"

        created = await auth_client.post(url, json={"module_type": "blog"})
        toggled = await auth_client.post(url, json={"module_type": "shop"})

        assert created.status_code == 201
        assert toggled.status_code == 200
        assert toggled.json()["is_active"] is False

        modules = (await auth_client.get(url)).json()
        assert [(m["module_type"], m["is_active"]) for m in modules] == [
            ("blog", True), ("shop", False),
        ]

    async def test_update_module(self, auth_client: AsyncClient):
        product = (await auth_client.post(
            "/api/products", json={"name": "GetShelfed", "modules": ["shop"]},
        )).json()
        module_id = product["modules"][0]["id"]

        response = await auth_client.put(
            f"/api/products/{product['id']}/modules/{module_id}",
            json={"config": {"currency": "USD"}},
        )

        assert response.json()["config"] == {"currency": "USD"}
        missing = await auth_client.put(
            f"/api/products/{product['id']}/modules/nope", json={"is_active": False},
        )
        assert missing.status_code == 404


@pytest.mark.api
class TestSeed:
    """POST /api/products/seed"""

    async def test_seed_is_idempotent(self, auth_client: AsyncClient):
        first = (await auth_client.post("/api/products/seed")).json()
        second = (await auth_client.post("/api/products/seed")).json()

        assert [r["status"] for r in first] == ["created"] * len(SEED_PRODUCTS)
        assert [r["status"] for r in second] == ["already exists"] * len(SEED_PRODUCTS)
        assert [r["id"] for r in first] == [r["id"] for r in second]

        names = [p["name"] for p in (await auth_client.get("/api/products")).json()]
        assert sorted(names) == sorted(p["name"] for p in SEED_PRODUCTS)

    async def test_seed_keeps_existing(self, auth_client: AsyncClient):
        existing = (await auth_client.post("/api/products", json={"name": "ManlyMan"})).json()

        results = {r["name"]: r for r in (await auth_client.post("/api/products/seed")).json()}

        assert results["ManlyMan"] == {"name": "ManlyMan", "status": "already exists", "id": existing["id"]}
        assert results["GetShelfed"]["status"] == "created"
