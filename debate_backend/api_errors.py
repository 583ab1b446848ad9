"""Translate debate-domain errors into HTTP errors for the routers."""
import logging

from fastapi import HTTPException

from debate_backend.services.errors import (
    ConflictError,
    DebateError,
    NotFoundError,
    PreconditionError,
    UpstreamError,
    UpstreamErrorKind,
    ValidationError,
)

logger = logging.getLogger(__name__)

UPSTREAM_STATUS = {
    UpstreamErrorKind.OVERLOADED: 503,
    UpstreamErrorKind.AUTHENTICATION: 500,
    UpstreamErrorKind.RATE_LIMITED: 429,
    UpstreamErrorKind.TIMEOUT: 504,
    UpstreamErrorKind.UNPARSEABLE: 502,
    UpstreamErrorKind.UNKNOWN: 500,
}


def status_for(error: DebateError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, PreconditionError):
        return 400
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, UpstreamError):
        return UPSTREAM_STATUS.get(error.kind, 500)
    return 500


def to_http_exception(error: Exception) -> HTTPException:
    """
    Build the ``HTTPException`` for an error raised by a service call.

    Unexpected exceptions are logged with their traceback and reported as a
    bare 500.
    """
    if isinstance(error, DebateError):
        return HTTPException(status_code=status_for(error), detail=error.message)
    logger.exception("Unhandled error: %s", error)
    return HTTPException(status_code=500, detail="Internal server error")
