"""
Release router — the proxy's three recognised operations.

GET /releases                 → upstream release list, verbatim
GET /download-url/{asset_id}  → {"downloadUrl": "<short-lived CDN URL>"}
anything else                 → API info document

Every route requires the shared password (see auth.dependencies).
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from release_proxy.auth.dependencies import require_password
from release_proxy.schemas.releases import ApiInfoOut, DownloadUrlOut
from release_proxy.services.github_client import GitHubClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Releases"])


def get_github_client(request: Request) -> GitHubClient:
    return request.app.state.github


# Type aliases for cleaner signatures
Authenticated = Annotated[str, Depends(require_password)]
GitHub = Annotated[GitHubClient, Depends(get_github_client)]

API_INFO = ApiInfoOut(
    name="GitHub Release Proxy",
    endpoints={
        "/releases": "List all releases",
        "/download-url/:assetId": "Get download URL for an asset",
    },
    usage="Add X-Password header with your password",
)


@router.get(
    "/releases",
    summary="List all releases",
    description=(
        "Returns GitHub's release list for the configured repository "
        "unmodified. Intermediaries may cache it for 60 seconds."
    ),
)
async def list_releases(_identity: Authenticated, github: GitHub) -> JSONResponse:
    releases = await github.list_releases()
    return JSONResponse(
        content=releases,
        headers={"Cache-Control": "public, max-age=60"},
    )


@router.get(
    "/download-url/{asset_id:path}",
    summary="Resolve an asset download URL",
    description=(
        "Returns the short-lived CDN URL GitHub redirects to for this asset. "
        "The URL expires upstream, so the response is never cacheable."
    ),
)
async def get_download_url(
    asset_id: str,
    identity: Authenticated,
    github: GitHub,
) -> JSONResponse:
    url = await github.resolve_asset_url(asset_id)
    logger.info("Issued download URL for asset %s to %s", asset_id, identity)
    body = DownloadUrlOut(download_url=url)
    return JSONResponse(
        content=body.model_dump(by_alias=True),
        headers={"Cache-Control": "no-cache"},
    )


# Registered last — catches "/" and every unmatched path.
@router.api_route(
    "/{path:path}",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"],
    summary="API info",
)
async def api_info(_identity: Authenticated) -> dict:
    return API_INFO.model_dump()
