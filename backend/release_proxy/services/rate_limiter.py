"""
Failed-login rate limiter backed by the durable key-value store.

Tracks failed password attempts per client identity and blocks an
identity for BLOCK_DURATION once it reaches MAX_FAILED_ATTEMPTS.

Design decisions:
  • Check BEFORE authenticating — a blocked identity never reaches the
    password comparison, so a correct password does not lift a block.
  • Blocking starts at the threshold — failures below it are counted
    (and still answered with 401) but never block.
  • Rolling window — every failure rewrites resetAt = now + BLOCK_DURATION.
  • Fail open — store errors are logged and treated as "no record".
    Availability of the proxy wins over strictness of the limiter.
  • No store configured → limiter disabled, never blocks, never writes.

Record format (JSON string under "ratelimit:<identity>"):
    {"attempts": 3, "resetAt": 1767225600000}   # resetAt in epoch ms
"""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from release_proxy.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

# ── Defaults (overridable via Settings) ─────────────────────
MAX_FAILED_ATTEMPTS = 5
BLOCK_DURATION_SECONDS = 15 * 60
RECORD_TTL_SECONDS = 900

KEY_PREFIX = "ratelimit:"

# Network-origin headers, most trusted first. These are client-supplied:
# behind a proxy that does not overwrite them they can be spoofed.
IDENTITY_HEADERS = ("CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP")
UNKNOWN_IDENTITY = "unknown"


def client_identity(headers: Mapping[str, str]) -> str:
    """Derive the rate-limit bucket key from request headers."""
    for name in IDENTITY_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return UNKNOWN_IDENTITY


@dataclass(frozen=True, slots=True)
class RateLimitRecord:
    """Failed-attempt counter for one identity."""

    attempts: int
    reset_at_ms: int

    def to_json(self) -> str:
        return json.dumps({"attempts": self.attempts, "resetAt": self.reset_at_ms})

    @classmethod
    def from_json(cls, raw: str) -> RateLimitRecord:
        data = json.loads(raw)
        return cls(attempts=int(data["attempts"]), reset_at_ms=int(data["resetAt"]))


@dataclass(frozen=True, slots=True)
class BlockDecision:
    """Result of check_blocked(). retry_after is set only when blocked."""

    blocked: bool
    retry_after: int | None = None


_NOT_BLOCKED = BlockDecision(blocked=False)


class RateLimiter:
    """Per-identity failed-login counter with fail-open semantics."""

    def __init__(
        self,
        store: KeyValueStore | None,
        *,
        max_attempts: int = MAX_FAILED_ATTEMPTS,
        block_seconds: int = BLOCK_DURATION_SECONDS,
        record_ttl_seconds: int = RECORD_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self.max_attempts = max_attempts
        self.block_seconds = block_seconds
        self.record_ttl_seconds = record_ttl_seconds
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._store is not None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _read(self, identity: str) -> RateLimitRecord | None:
        """Load the record for identity. Store or decode errors → None."""
        if self._store is None:
            return None

        try:
            raw = await self._store.get(KEY_PREFIX + identity)
        except Exception:
            logger.warning(
                "Rate limit store unavailable while reading %s; continuing without it",
                identity,
                exc_info=True,
            )
            return None

        if raw is None:
            return None

        try:
            return RateLimitRecord.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring malformed rate limit record for %s", identity)
            return None

    async def check_blocked(self, identity: str) -> BlockDecision:
        """
        Read-only check — is identity currently blocked?

        Stale records (now >= resetAt) are reported as not blocked but
        left in place; the next write or the store TTL replaces them.
        """
        if self._store is None:
            return _NOT_BLOCKED

        record = await self._read(identity)
        if record is None or record.attempts < self.max_attempts:
            return _NOT_BLOCKED

        now_ms = self._now_ms()
        if now_ms >= record.reset_at_ms:
            return _NOT_BLOCKED

        retry_after = math.ceil((record.reset_at_ms - now_ms) / 1000)
        return BlockDecision(blocked=True, retry_after=retry_after)

    async def record_failure(self, identity: str) -> int | None:
        """
        Count one failed attempt and refresh the block window.

        Returns the new attempt count, or None when the limiter is
        disabled or the write failed.
        """
        if self._store is None:
            return None

        current = await self._read(identity)
        attempts = (current.attempts if current else 0) + 1
        record = RateLimitRecord(
            attempts=attempts,
            reset_at_ms=self._now_ms() + self.block_seconds * 1000,
        )

        try:
            await self._store.put(
                KEY_PREFIX + identity,
                record.to_json(),
                self.record_ttl_seconds,
            )
        except Exception:
            logger.warning(
                "Failed to update rate limit record for %s", identity, exc_info=True
            )
            return None

        if attempts >= self.max_attempts:
            logger.warning(
                "Blocking %s for %ds after %d failed attempts",
                identity,
                self.block_seconds,
                attempts,
            )
        else:
            logger.info(
                "Failed authentication from %s (attempt %d/%d)",
                identity,
                attempts,
                self.max_attempts,
            )
        return attempts

    async def record_success(self, identity: str) -> None:
        """Forget all failures for identity. Idempotent."""
        if self._store is None:
            return

        try:
            await self._store.delete(KEY_PREFIX + identity)
        except Exception:
            logger.warning(
                "Failed to reset rate limit record for %s", identity, exc_info=True
            )
