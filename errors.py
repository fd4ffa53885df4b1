"""Failures the hunt core surfaces to its callers."""


class HuntError(Exception):
    """Base class: carries the HTTP status and a machine-readable reason."""

    status_code = 500
    reason = "hunt_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.reason)
        self.message = message or self.reason


class InvalidRequest(HuntError):
    status_code = 400
    reason = "invalid_request"


class InvalidPermalink(HuntError):
    status_code = 400
    reason = "invalid_permalink"


class OwnershipMismatch(HuntError):
    status_code = 403
    reason = "ownership_mismatch"


class SessionNotFound(HuntError):
    status_code = 404
    reason = "session_not_found"


class HuntStartFailed(HuntError):
    status_code = 500
    reason = "hunt_start_failed"


class NoSuitablePostFound(HuntStartFailed):
    status_code = 503
    reason = "no_suitable_post"


class NoCommentsFound(HuntStartFailed):
    status_code = 503
    reason = "no_comments"


class UpstreamUnavailable(HuntError):
    """Raised by adapters only; stages convert it to a fallback or a rejection."""

    status_code = 502
    reason = "upstream_unavailable"
