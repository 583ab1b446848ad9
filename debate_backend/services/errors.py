"""
Error taxonomy for debate operations.

Every failure at an operation boundary is one of these. Structural errors
(validation, not-found, precondition, conflict) are raised before any state
is touched; upstream errors come from the AI pipeline only.
"""

from enum import Enum


class DebateError(Exception):
    """Base class for all debate-domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DebateError, ValueError):
    """Malformed or missing input: empty text, bad type, length over limit."""


class NotFoundError(DebateError, LookupError):
    """A referenced debate, block, review or prompt does not exist."""


class PreconditionError(DebateError):
    """Structurally disallowed operation, e.g. disabling the opening statement."""


class ConflictError(DebateError):
    """Valid in isolation but blocked by the current tree state."""


class UpstreamErrorKind(str, Enum):
    OVERLOADED = "overloaded"
    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    UNPARSEABLE = "unparseable"
    UNKNOWN = "unknown"


UPSTREAM_MESSAGES = {
    UpstreamErrorKind.OVERLOADED: "AI service is temporarily overloaded. Please try again in a few minutes.",
    UpstreamErrorKind.AUTHENTICATION: "AI service authentication error. Please contact support.",
    UpstreamErrorKind.RATE_LIMITED: "Too many AI requests. Please wait a moment before trying again.",
    UpstreamErrorKind.TIMEOUT: "AI service took too long to respond. Please try again shortly.",
    UpstreamErrorKind.UNPARSEABLE: "Failed to parse AI response",
    UpstreamErrorKind.UNKNOWN: "Failed to analyze text with AI. Please try again later.",
}


class UpstreamError(DebateError):
    """The text-generation collaborator failed or returned unusable output."""

    def __init__(self, kind: UpstreamErrorKind, detail: str = ""):
        super().__init__(UPSTREAM_MESSAGES[kind])
        self.kind = kind
        self.detail = detail
