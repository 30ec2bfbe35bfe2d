# backend/tests/test_credentials.py
"""Tests for the constant-time password comparison."""

from unittest.mock import patch

import pytest

from release_proxy.auth import credentials
from release_proxy.auth.credentials import passwords_match


class TestPasswordsMatch:
    def test_identical_strings_match(self) -> None:
        assert passwords_match("s3cret!", "s3cret!") is True

    @pytest.mark.parametrize(
        "supplied",
        ["X3cret!", "s3creX!", "s3cret?", "S3CRET!"],
    )
    def test_equal_length_mismatch_anywhere_fails(self, supplied: str) -> None:
        assert passwords_match(supplied, "s3cret!") is False

    @pytest.mark.parametrize("supplied", ["s3cret", "s3cret!!", "", "s"])
    def test_different_length_fails(self, supplied: str) -> None:
        assert passwords_match(supplied, "s3cret!") is False

    def test_missing_header_is_empty_string(self) -> None:
        assert passwords_match(None, "s3cret!") is False

    def test_non_ascii_secrets_are_supported(self) -> None:
        assert passwords_match("pässwörd-🔑", "pässwörd-🔑") is True
        assert passwords_match("passwörd-🔑", "pässwörd-🔑") is False

    def test_compares_full_byte_strings(self) -> None:
        """Both sides reach compare_digest whole, never a prefix."""
        with patch.object(credentials.hmac, "compare_digest", return_value=False) as spy:
            passwords_match("abcdef", "abcxyz")

        spy.assert_called_once_with(b"abcdef", b"abcxyz")
