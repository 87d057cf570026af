"""
Route table and end-to-end behaviour over a real socket.
"""

from __future__ import annotations

import asyncio

import asyncpg
import httpx
import pytest
from fastapi import FastAPI

import startup
from core.dependencies import get_db_pool
from core.errors import ConfigurationError
from core.routes import build_route_table
from health import router as health_router
from subscriptions import router as subscriptions_router
from fakes import FakePool, base_url, messages_starting, records_for, serving


@pytest.mark.unit
def test_route_table_has_exactly_the_declared_routes(listener, fake_pool):
    handle = startup.run(listener, fake_pool)
    assert dict(handle.routes) == {
        ("GET", "/health_check"): health_router.health_check,
        ("POST", "/subscriptions"): subscriptions_router.subscribe,
    }


@pytest.mark.unit
def test_route_table_is_read_only(listener, fake_pool):
    handle = startup.run(listener, fake_pool)
    with pytest.raises(TypeError):
        handle.routes[("DELETE", "/subscriptions")] = subscriptions_router.subscribe


async def _admin() -> dict:
    return {"ok": True}


@pytest.mark.unit
def test_routes_cannot_be_added_after_the_handle_exists(listener, fake_pool):
    handle = startup.run(listener, fake_pool)
    with pytest.raises(ConfigurationError, match="fixed"):
        handle.app.add_api_route("/admin", _admin, methods=["GET"])
    with pytest.raises(ConfigurationError):
        handle.app.include_router(health_router.router, prefix="/v2")
    with pytest.raises(ConfigurationError):
        handle.app.router.routes.pop()
    assert len(handle.app.routes) == len(handle.routes) == 2


@pytest.mark.integration
@pytest.mark.asyncio
async def test_rejected_late_route_is_never_served(listener, fake_pool):
    handle = startup.run(listener, fake_pool)
    with pytest.raises(ConfigurationError):
        handle.app.add_api_route("/admin", _admin, methods=["GET"])

    await handle.start()
    try:
        async with httpx.AsyncClient(base_url=base_url(handle)) as client:
            response = await client.get("/admin")
    finally:
        await handle.stop()
    assert response.status_code == 404


@pytest.mark.unit
def test_duplicate_routes_are_a_configuration_error(fake_pool):
    app = startup.build_app(fake_pool)
    app.add_api_route("/health_check", health_router.health_check, methods=["GET"])
    with pytest.raises(ConfigurationError, match="GET /health_check"):
        build_route_table(app)


@pytest.mark.unit
def test_pool_is_attached_by_reference(fake_pool):
    app = startup.build_app(fake_pool)
    assert app.state.db_pool is fake_pool


@pytest.mark.unit
def test_get_db_pool_requires_attached_pool():
    class _Request:
        app = FastAPI()

    with pytest.raises(RuntimeError, match="not attached"):
        get_db_pool(_Request())


@pytest.mark.integration
@pytest.mark.asyncio
async def test_health_check_is_empty_200(server):
    async with httpx.AsyncClient(base_url=base_url(server)) as client:
        response = await client.get("/health_check")
    assert response.status_code == 200
    assert response.content == b""


@pytest.mark.integration
@pytest.mark.asyncio
async def test_health_check_ignores_pool_health(listener):
    broken = FakePool(error=asyncpg.PostgresError("connection refused"))
    async with serving(listener, broken) as handle:
        async with httpx.AsyncClient(base_url=base_url(handle)) as client:
            response = await client.get("/health_check")
    assert response.status_code == 200
    assert broken.calls == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_unknown_path_is_404_and_server_keeps_serving(server):
    async with httpx.AsyncClient(base_url=base_url(server)) as client:
        missing = await client.get("/does-not-exist")
        health = await client.get("/health_check")
    assert missing.status_code == 404
    assert health.status_code == 200


@pytest.mark.integration
@pytest.mark.asyncio
async def test_known_path_wrong_method_is_405(server):
    async with httpx.AsyncClient(base_url=base_url(server)) as client:
        wrong_on_subscriptions = await client.get("/subscriptions")
        wrong_on_health = await client.post("/health_check")
    assert wrong_on_subscriptions.status_code == 405
    assert "POST" in wrong_on_subscriptions.headers["allow"]
    assert wrong_on_health.status_code == 405
    assert "GET" in wrong_on_health.headers["allow"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_subscribe_persists_valid_form(server, fake_pool):
    async with httpx.AsyncClient(base_url=base_url(server)) as client:
        response = await client.post(
            "/subscriptions",
            data={"name": "  Ursula Le Guin ", "email": "Ursula@Example.com"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True

    [(sql, args)] = fake_pool.calls
    assert "INSERT INTO subscriptions" in sql
    assert str(args[0]) == body["subscription_id"]
    assert args[1] == "ursula@example.com"
    assert args[2] == "Ursula Le Guin"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_concurrent_subscriptions_share_one_pool(listener):
    pool = FakePool(delay_s=0.2)
    async with serving(listener, pool) as handle:
        async with httpx.AsyncClient(base_url=base_url(handle), timeout=5.0) as client:
            responses = await asyncio.gather(
                *[
                    client.post("/subscriptions", data={"name": f"reader {i}", "email": f"reader{i}@example.com"})
                    for i in range(10)
                ]
            )
        assert handle.app.state.db_pool is pool

    assert [r.status_code for r in responses] == [200] * 10
    assert pool.max_in_flight > 1
    assert pool.seen_pool_ids == [id(pool)] * 10
    assert sorted(args[1] for _, args in pool.calls) == sorted(
        f"reader{i}@example.com" for i in range(10)
    )


@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "form",
    [
        {"name": "le guin"},
        {"email": "ursula@example.com"},
        {},
    ],
)
async def test_subscribe_missing_fields_is_422(server, fake_pool, form):
    async with httpx.AsyncClient(base_url=base_url(server)) as client:
        response = await client.post("/subscriptions", data=form)
    assert response.status_code == 422
    assert fake_pool.calls == []


@pytest.mark.integration
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "form",
    [
        {"name": " ", "email": "ursula@example.com"},
        {"name": "Ursula", "email": "not-an-email"},
        {"name": "<script>", "email": "ursula@example.com"},
    ],
)
async def test_subscribe_invalid_values_is_400(server, fake_pool, form):
    async with httpx.AsyncClient(base_url=base_url(server)) as client:
        response = await client.post("/subscriptions", data=form)
    assert response.status_code == 400
    assert fake_pool.calls == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_subscribe_duplicate_email_is_409(listener):
    pool = FakePool(error=asyncpg.UniqueViolationError("duplicate key value violates unique constraint"))
    async with serving(listener, pool) as handle:
        async with httpx.AsyncClient(base_url=base_url(handle)) as client:
            response = await client.post("/subscriptions", data={"name": "Ursula", "email": "ursula@example.com"})
    assert response.status_code == 409


@pytest.mark.integration
@pytest.mark.asyncio
async def test_subscribe_database_error_is_logged_500(listener, caplog):
    pool = FakePool(error=asyncpg.PostgresError("relation subscriptions does not exist"))
    async with serving(listener, pool) as handle:
        async with httpx.AsyncClient(base_url=base_url(handle)) as client:
            response = await client.post("/subscriptions", data={"name": "Ursula", "email": "ursula@example.com"})

    assert response.status_code == 500
    request_id = response.headers["x-request-id"]
    failures = messages_starting(records_for(caplog.records, request_id), "subscription_failed")
    assert len(failures) == 1
    assert failures[0].name == "subscriptions.router"
