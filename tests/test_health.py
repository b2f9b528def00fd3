"""Health, liveness and readiness endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx


async def test_health_ok(client):
    resp = await client.get("/health/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["status"] == "ok"
    assert body["data"]["services"] == {"database": "ok"}
    assert body["data"]["version"] == "1.0.0"
    assert "timestamp" in body["data"]


async def test_health_degraded_when_db_down(client):
    with patch("restapi.health.ping_db", new_callable=AsyncMock, return_value=False):
        resp = await client.get("/health/")
    assert resp.status_code == 503
    assert resp.json()["data"]["status"] == "degraded"
    assert resp.json()["data"]["services"]["database"] == "error"


async def test_liveness(client):
    resp = await client.get("/health/live")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "alive"


async def test_readiness(client):
    resp = await client.get("/health/ready")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "ready"


async def test_readiness_fails_without_db(client):
    with patch("restapi.health.ping_db", new_callable=AsyncMock, return_value=False):
        resp = await client.get("/health/ready")
    assert resp.status_code == 503
    assert resp.json()["error"] == {
        "code": "SERVICE_UNAVAILABLE",
        "message": "Service not ready",
        "details": "Database connection failed",
    }


def test_cli_health_check_reports_failure():
    from restapi.__main__ import health_check

    with patch("restapi.__main__.httpx.get", side_effect=httpx.ConnectError("refused")):
        assert health_check(65530) == 1


def test_cli_version(capsys):
    from restapi.__main__ import main

    assert main(["--version"]) == 0
    assert "v1.0.0" in capsys.readouterr().out


def test_cli_serves_with_trusted_proxy_headers():
    from restapi.__main__ import main
    from restapi.config import settings

    with patch("restapi.__main__.uvicorn.run") as run:
        assert main([]) == 0

    kwargs = run.call_args.kwargs
    assert kwargs["proxy_headers"] is True
    assert kwargs["forwarded_allow_ips"] == settings.FORWARDED_ALLOW_IPS
