# backend/tests/test_config.py
"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from release_proxy.core.config import Settings


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "GITHUB_TOKEN": "ghs_x",
        "VIEWER_PASSWORD": "pw",
        "REPO_NAME": "acme/widgets",
        "DATABASE_URL": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[arg-type]


def test_defaults() -> None:
    settings = _settings()

    assert settings.GITHUB_API_URL == "https://api.github.com"
    assert settings.UPSTREAM_TIMEOUT_SECONDS == 10.0
    assert settings.RATE_LIMIT_MAX_ATTEMPTS == 5
    assert settings.RATE_LIMIT_BLOCK_SECONDS == 900
    assert settings.rate_limiting_enabled is False


@pytest.mark.parametrize("repo", ["acme", "acme/", "/widgets", "acme/widgets/extra", "ac me/w"])
def test_repo_name_must_be_owner_slash_name(repo: str) -> None:
    with pytest.raises(ValidationError):
        _settings(REPO_NAME=repo)


def test_repo_name_allows_dots_and_dashes() -> None:
    assert _settings(REPO_NAME="my-org/app.desktop_v2").REPO_NAME == "my-org/app.desktop_v2"


def test_empty_password_is_rejected() -> None:
    with pytest.raises(ValidationError):
        _settings(VIEWER_PASSWORD="")


def test_blank_database_url_disables_rate_limiting() -> None:
    assert _settings(DATABASE_URL="").DATABASE_URL is None


def test_database_url_enables_rate_limiting() -> None:
    settings = _settings(DATABASE_URL="postgresql+asyncpg://u:p@db:5432/proxy")
    assert settings.rate_limiting_enabled is True


def test_api_url_trailing_slash_is_stripped() -> None:
    assert _settings(GITHUB_API_URL="https://ghe.example.com/api/v3/").GITHUB_API_URL == (
        "https://ghe.example.com/api/v3"
    )


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghs_env")
    monkeypatch.setenv("VIEWER_PASSWORD", "from-env")
    monkeypatch.setenv("REPO_NAME", "octo/private")
    monkeypatch.delenv("DATABASE_URL", raising=False)

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.VIEWER_PASSWORD == "from-env"
    assert settings.REPO_NAME == "octo/private"
    assert settings.DATABASE_URL is None
