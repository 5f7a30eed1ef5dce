"""Redis-backed rate limiting middleware for device reading ingest."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings

_INGEST_PATH = re.compile(r"^/api/v1/devices/(?P<mac>[^/]+)/readings/?$")


def extract_ingest_mac(request: Request) -> str | None:
	"""MAC of the device targeted by a reading-ingest POST, upper-cased."""
	if request.method != "POST":
		return None
	match = _INGEST_PATH.match(request.url.path)
	if match is None:
		return None
	return match.group("mac").upper()


class RateLimitMiddleware(BaseHTTPMiddleware):
	"""Per-device quota limiter backed by Redis atomic counters."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		mac = extract_ingest_mac(request)
		if mac is None:
			return await call_next(request)

		redis_client = getattr(request.app.state, "redis", None)
		if redis_client is None:
			return await call_next(request)

		quota = get_settings().rate_limit_ingest_per_minute
		minute_bucket = datetime.now(UTC).strftime("%Y%m%d%H%M")
		key = f"ratelimit:device:{mac}:{minute_bucket}"
		current = await redis_client.incr(key)
		if current == 1:
			await redis_client.expire(key, 65)

		if current > quota:
			return JSONResponse(
				status_code=429,
				content={
					"detail": {
						"error": "rate_limited",
						"message": "Device ingest quota exceeded",
						"device_mac": mac,
						"quota": quota,
					}
				},
			)

		return await call_next(request)
