# backend/tests/conftest.py
from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from release_proxy.core.config import Settings
from release_proxy.main import create_app

PASSWORD = "correct horse battery staple"
TOKEN = "ghs_server_side_token"
REPO = "acme/widgets"
CDN_URL = "https://objects.githubusercontent.com/release-asset/123?X-Amz-Expires=300"

RELEASES: list[dict[str, Any]] = [
    {
        "id": 2,
        "tag_name": "v1.1.0",
        "name": "Widgets 1.1",
        "assets": [{"id": 123, "name": "widgets-1.1.zip", "size": 2048}],
    },
    {"id": 1, "tag_name": "v1.0.0", "name": "Widgets 1.0", "assets": []},
]


class FakeClock:
    """Manually advanced replacement for time.time()."""

    def __init__(self, start: float = 1_767_225_600.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryStore:
    """In-memory KeyValueStore that counts every call."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}
        self.reads = 0
        self.writes = 0
        self.deletes = 0

    @property
    def calls(self) -> int:
        return self.reads + self.writes + self.deletes

    def raw(self, key: str) -> dict[str, Any] | None:
        item = self._data.get(key)
        return json.loads(item[0]) if item else None

    async def get(self, key: str) -> str | None:
        self.reads += 1
        item = self._data.get(key)
        if item is None or item[1] <= self._clock():
            return None
        return item[0]

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self.writes += 1
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self.deletes += 1
        self._data.pop(key, None)


class BrokenStore:
    """KeyValueStore whose backend is always down."""

    async def get(self, key: str) -> str | None:
        raise ConnectionError("store offline")

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        raise ConnectionError("store offline")

    async def delete(self, key: str) -> None:
        raise ConnectionError("store offline")


class FakeGitHub:
    """httpx transport handler standing in for api.github.com."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.releases_status = 200
        self.asset_status = 302
        self.fail_with: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with

        path = request.url.path
        if path == f"/repos/{REPO}/releases":
            if self.releases_status != 200:
                return httpx.Response(self.releases_status, json={"message": "Bad credentials"})
            return httpx.Response(200, json=RELEASES)
        if path == f"/repos/{REPO}/releases/assets/123":
            if self.asset_status == 302:
                return httpx.Response(302, headers={"Location": CDN_URL})
            return httpx.Response(self.asset_status, json={"message": "Not Found"})
        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock)


@pytest.fixture()
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        GITHUB_TOKEN=TOKEN,
        VIEWER_PASSWORD=PASSWORD,
        REPO_NAME=REPO,
        DATABASE_URL=None,
    )


@pytest.fixture()
def make_client(
    test_settings: Settings,
    github: FakeGitHub,
) -> Iterator[Callable[..., TestClient]]:
    """Factory: build a started TestClient around a chosen store."""
    opened: list[TestClient] = []

    def _make(store: Any = None) -> TestClient:
        app: FastAPI = create_app(
            test_settings,
            store=store,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(github)),
        )
        client = TestClient(app, base_url="http://proxy.test")
        client.__enter__()
        opened.append(client)
        return client

    yield _make

    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client: Callable[..., TestClient], store: MemoryStore) -> TestClient:
    return make_client(store)
