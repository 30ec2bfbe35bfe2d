"""
FastAPI dependency for shared-password authentication.

Flow:
  1. Derive the client identity from network-origin headers
  2. Ask the rate limiter whether that identity is blocked  → 429
  3. Compare X-Password with VIEWER_PASSWORD (constant time)
  4. On mismatch: count the failure                          → 401
  5. On match: clear the identity's failure record, continue

Order in request pipeline: RATE CHECK → AUTH → ROUTER LOGIC.
A blocked identity is refused even when it sends the right password.

Security:
  • Same 401 message for missing and wrong passwords
  • Passwords are NEVER logged
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from release_proxy.auth.credentials import passwords_match
from release_proxy.core.config import Settings
from release_proxy.core.errors import AuthenticationFailed, RateLimited
from release_proxy.services.rate_limiter import RateLimiter, client_identity


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def require_password(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    x_password: str | None = Header(default=None, alias="X-Password"),
) -> str:
    """
    FastAPI dependency — gate a route behind the shared password.

    Usage in routers:
        Authenticated = Annotated[str, Depends(require_password)]

    Returns the client identity so routes can log against it.

    Raises RateLimited (429) or AuthenticationFailed (401).
    """
    identity = client_identity(request.headers)

    # ── 1. Rate check (read-only) ───────────────────────────
    decision = await limiter.check_blocked(identity)
    if decision.blocked:
        raise RateLimited(retry_after=decision.retry_after or 1)

    # ── 2. Compare password ─────────────────────────────────
    if not passwords_match(x_password, settings.VIEWER_PASSWORD):
        await limiter.record_failure(identity)
        raise AuthenticationFailed()

    # ── 3. Success resets the counter ───────────────────────
    await limiter.record_success(identity)
    return identity
