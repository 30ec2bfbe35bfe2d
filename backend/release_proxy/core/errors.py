"""
Client-facing error taxonomy.

Every error the proxy reports to a caller is a ProxyError. The handler in
main.py renders it as a small JSON object with an `error` field (plus
`retryAfter` for rate limiting). Internal details go to the log only.
"""

from fastapi import status


class ProxyError(Exception):
    """Base class for errors rendered to the client."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationFailed(ProxyError):
    """Wrong or missing X-Password. Same message for both cases."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid password"


class RateLimited(ProxyError):
    """Identity is blocked after too many failed attempts."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Too many failed attempts. Try again later."

    def __init__(self, retry_after: int) -> None:
        super().__init__()
        self.retry_after = retry_after


class AssetNotFound(ProxyError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Asset not found"


class UpstreamUnavailable(ProxyError):
    """GitHub could not be reached or answered with an error."""

    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Upstream service unavailable"
