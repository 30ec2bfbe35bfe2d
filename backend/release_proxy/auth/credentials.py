"""
Shared-secret comparison.

Security notes:
  • hmac.compare_digest inspects every byte of equal-length inputs, so
    the time taken does not reveal where a guess first differs.
  • Inputs are UTF-8 encoded first — compare_digest rejects non-ASCII str.
  • A missing header is compared as the empty string, never an error.
  • The password is never logged.
"""

import hmac


def passwords_match(supplied: str | None, expected: str) -> bool:
    """Constant-time check of a caller-supplied secret against the configured one."""
    return hmac.compare_digest(
        (supplied or "").encode("utf-8"),
        expected.encode("utf-8"),
    )
