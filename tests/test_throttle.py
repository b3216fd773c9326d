import time

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.core.config import get_settings
from app.core.throttle import ThrottleMiddleware


def build_throttled_app() -> ThrottleMiddleware:
    inner = FastAPI()

    @inner.get("/ping")
    async def ping() -> dict[str, str]:
        return {"status": "ok"}

    return ThrottleMiddleware(inner)


@pytest.mark.asyncio
async def test_requests_over_the_limit_get_429(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = get_settings()
    monkeypatch.setattr(settings, "throttle_limit", 2)
    monkeypatch.setattr(settings, "throttle_ttl", 600)
    throttled = build_throttled_app()

    async with AsyncClient(transport=ASGITransport(app=throttled), base_url="http://testserver") as client:
        assert (await client.get("/ping")).status_code == 200
        assert (await client.get("/ping")).status_code == 200
        blocked = await client.get("/ping")

    assert blocked.status_code == 429
    assert blocked.json()["detail"] == "Too Many Requests"
    assert int(blocked.headers["Retry-After"]) >= 1


@pytest.mark.asyncio
async def test_expired_client_windows_are_evicted(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = get_settings()
    monkeypatch.setattr(settings, "throttle_limit", 5)
    monkeypatch.setattr(settings, "throttle_ttl", 60)
    throttled = build_throttled_app()

    long_ago = time.monotonic() - 3600
    for n in range(50):
        throttled._windows[f"10.0.0.{n}"] = (long_ago, 3)

    async with AsyncClient(transport=ASGITransport(app=throttled), base_url="http://testserver") as client:
        assert (await client.get("/ping")).status_code == 200

    assert list(throttled._windows) == ["127.0.0.1"]


def test_prune_keeps_windows_still_open() -> None:
    throttled = build_throttled_app()
    throttled._windows = {"old": (0.0, 4), "fresh": (95.0, 1)}

    throttled.prune(100.0, 60)

    assert throttled._windows == {"fresh": (95.0, 1)}
