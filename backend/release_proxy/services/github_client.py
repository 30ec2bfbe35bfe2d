"""
GitHub REST client for private release metadata and asset downloads.

Uses httpx against api.github.com with a server-held token.
Exactly two read-only operations are exposed:
  • list_releases      — passes the release list through verbatim
  • resolve_asset_url  — returns GitHub's short-lived CDN redirect target

Configuration:
  GITHUB_TOKEN   — server-side only (never logged, never returned)
  REPO_NAME      — owner/name of the private repository
  GITHUB_API_URL — defaults to https://api.github.com

Safety:
  • Redirects are never followed — the CDN URL is handed to the client,
    which downloads directly without routing bytes through the proxy.
  • Bounded timeout comes from the shared AsyncClient.
  • No retries; transport failures surface as UpstreamUnavailable.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from release_proxy.core.errors import AssetNotFound, UpstreamUnavailable

logger = logging.getLogger(__name__)

_USER_AGENT = "release-proxy"
_JSON_ACCEPT = "application/vnd.github.v3+json"
_BINARY_ACCEPT = "application/octet-stream"


class GitHubClient:
    """Authenticated gateway to one repository's releases."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        repo: str,
        token: str,
        api_url: str = "https://api.github.com",
    ) -> None:
        self._http = http_client
        self._token = token
        self._base = f"{api_url.rstrip('/')}/repos/{repo}/releases"

    def _headers(self, accept: str) -> dict[str, str]:
        return {
            "Authorization": f"token {self._token}",
            "Accept": accept,
            "User-Agent": _USER_AGENT,
        }

    async def _get(self, url: str, accept: str) -> httpx.Response:
        try:
            return await self._http.get(
                url,
                headers=self._headers(accept),
                follow_redirects=False,
            )
        except httpx.TimeoutException as exc:
            logger.error("GitHub request timed out: %s", url)
            raise UpstreamUnavailable() from exc
        except httpx.HTTPError as exc:
            logger.error("GitHub request failed: %s (%s)", url, exc.__class__.__name__)
            raise UpstreamUnavailable() from exc

    async def list_releases(self) -> Any:
        """
        Fetch every release of the configured repository.

        Returns:
            The decoded JSON payload, unmodified.

        Raises:
            UpstreamUnavailable: transport error, non-2xx status, or a body
                that is not JSON.
        """
        response = await self._get(self._base, _JSON_ACCEPT)

        if not response.is_success:
            logger.error(
                "GitHub releases error: status=%d body=%s",
                response.status_code,
                response.text[:500],
            )
            raise UpstreamUnavailable()

        try:
            return response.json()
        except ValueError as exc:
            logger.error("GitHub releases returned non-JSON body")
            raise UpstreamUnavailable() from exc

    async def resolve_asset_url(self, asset_id: str) -> str:
        """
        Resolve an asset id to GitHub's time-limited download URL.

        GitHub answers the binary endpoint with 302 + Location. The URL
        embeds its own expiry, so callers must not cache it.

        Raises:
            AssetNotFound: non-numeric id, any status other than 302,
                or a 302 without Location.
            UpstreamUnavailable: transport error or timeout.
        """
        if not (asset_id.isascii() and asset_id.isdigit()):
            raise AssetNotFound()

        response = await self._get(f"{self._base}/assets/{asset_id}", _BINARY_ACCEPT)

        location = response.headers.get("Location")
        if response.status_code != 302 or not location:
            logger.info(
                "Asset %s not resolvable: upstream status=%d",
                asset_id,
                response.status_code,
            )
            raise AssetNotFound()

        return location
