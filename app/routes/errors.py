"""Service exception → HTTP status mapping shared by every router."""

from __future__ import annotations

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError

from app.services.errors import ConflictError

logger = structlog.get_logger("fieldsense.api")


def map_service_error(exc: Exception, failure: str = "Unexpected service failure") -> HTTPException:
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, ConflictError):
		return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
	# unique or foreign-key race lost at flush time
	if isinstance(exc, IntegrityError):
		logger.warning("integrity_conflict", error=str(exc.orig))
		return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conflicting concurrent write")
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	logger.exception("service_failure", error=str(exc), error_type=type(exc).__name__)
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure)
