"""
Domain error taxonomy.

Every error carries a user-facing `message` and the HTTP status it maps to
in the FastAPI exception handler (see sentinell/main.py).
"""


class SentinellError(Exception):
    status_code = 500

    def __init__(self, message: str = "", status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(SentinellError):
    """Required credential missing. Fatal; nothing is sent upstream."""
    status_code = 503


class ValidationError(SentinellError):
    """Evidence rejected: wrong media type, too large, or unreadable."""
    status_code = 400


class ServiceError(SentinellError):
    """Upstream model call failed or returned non-conformant content."""
    status_code = 502


class ExportDegradation(SentinellError):
    """An embedded report image could not be decoded. Never reaches the user."""


class SessionNotFoundError(SentinellError):
    status_code = 404


class SessionBusyError(SentinellError):
    """The requested transition is illegal in the session's current state."""
    status_code = 409
