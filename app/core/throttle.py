import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger("throttle")


class ThrottleMiddleware(BaseHTTPMiddleware):
    """Fixed-window request limit per client address.

    Window length and allowance come from THROTTLE_TTL / THROTTLE_LIMIT; a limit of 0 turns it off.
    Windows older than the TTL are dropped, so only recently seen clients are kept.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_sweep = 0.0

    def prune(self, now: float, ttl: float) -> None:
        stale = [client for client, (started, _) in self._windows.items() if now - started >= ttl]
        for client in stale:
            del self._windows[client]
        self._last_sweep = now

    async def dispatch(self, request: Request, call_next) -> Response:
        settings = get_settings()
        if settings.throttle_limit <= 0 or request.method == "OPTIONS":
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        now = time.monotonic()
        if now - self._last_sweep >= settings.throttle_ttl:
            self.prune(now, settings.throttle_ttl)

        started, count = self._windows.get(client, (now, 0))
        if now - started >= settings.throttle_ttl:
            started, count = now, 0

        if count >= settings.throttle_limit:
            retry_after = max(1, int(settings.throttle_ttl - (now - started)))
            logger.warning("Throttled %s %s from %s", request.method, request.url.path, client)
            return JSONResponse(
                {"detail": "Too Many Requests"},
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )

        self._windows[client] = (started, count + 1)
        return await call_next(request)
