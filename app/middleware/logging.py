"""Structured logging setup and per-request access logs with request IDs."""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import LogFormat, get_settings

_configured = False

# orchestrator health checks hit these every few seconds; logged at debug only
_QUIET_PREFIXES = ("/health",)
_DEVICE_PATH = re.compile(r"^/api/v1/devices/(?P<mac>[0-9A-Fa-f:]{17})(?:/|$)")


def configure_structured_logging() -> None:
	"""Configure stdlib + structlog once per process."""
	global _configured
	if _configured:
		return

	settings = get_settings()
	log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

	shared_processors: list[Any] = [
		structlog.contextvars.merge_contextvars,
		structlog.processors.add_log_level,
		structlog.processors.TimeStamper(fmt="iso", utc=True),
	]

	if settings.log_format == LogFormat.json:
		renderer: Any = structlog.processors.JSONRenderer()
		logging.basicConfig(level=log_level, format="%(message)s")
	else:
		renderer = structlog.dev.ConsoleRenderer()
		logging.basicConfig(level=log_level)

	# SQL echo is controlled by DATABASE_ECHO, not by the app log level
	if not settings.database_echo:
		logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

	structlog.configure(
		processors=[
			*shared_processors,
			structlog.processors.format_exc_info,
			renderer,
		],
		wrapper_class=structlog.make_filtering_bound_logger(log_level),
		logger_factory=structlog.PrintLoggerFactory(),
		cache_logger_on_first_use=True,
	)
	_configured = True


def request_context(request: Request, request_id: str) -> dict[str, str]:
	"""Context variables bound for the lifetime of one request."""
	context = {"request_id": request_id}
	match = _DEVICE_PATH.match(request.url.path)
	if match is not None:
		context["device_mac"] = match.group("mac").upper()
	return context


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Propagate ``x-request-id`` and emit one ``http_request`` event per request."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
		request.state.request_id = request_id

		structlog.contextvars.clear_contextvars()
		structlog.contextvars.bind_contextvars(**request_context(request, request_id))

		logger = structlog.get_logger("fieldsense.request")
		start = time.perf_counter()

		try:
			response = await call_next(request)
		except Exception as exc:
			logger.exception(
				"http_request_failed",
				method=request.method,
				path=request.url.path,
				duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
				error=str(exc),
			)
			raise

		response.headers["x-request-id"] = request_id
		if request.url.path.startswith(_QUIET_PREFIXES):
			emit = logger.debug
		elif response.status_code >= 500:
			emit = logger.error
		elif response.status_code >= 400:
			emit = logger.warning
		else:
			emit = logger.info
		emit(
			"http_request",
			method=request.method,
			path=request.url.path,
			status_code=response.status_code,
			duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
		)
		return response
