"""
Shared fixtures: a local aiohttp server that serves fragments with configurable
delays and failures, and a static fragment-list provider.
"""

import asyncio
from collections import Counter

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from fragment_dl.models.config import FetchConfig
from fragment_dl.models.fragments import FragmentList

ALWAYS = -1


class FragmentServer:
    """Serves ``/media/<name>`` and ``/media/playlist_16.m3u8`` from memory."""

    def __init__(self):
        self.payloads: dict[str, bytes] = {}
        self.delays: dict[str, float] = {}
        # Remaining number of 503 answers per fragment; ALWAYS never recovers.
        self.failures: dict[str, int] = {}
        self.playlist: str | None = None
        self.hits: Counter[str] = Counter()
        self.in_flight = 0
        self.peak_in_flight = 0
        self.seen_headers: list[dict[str, str]] = []
        self._server: TestServer | None = None

    @property
    def base_uri(self) -> str:
        return str(self._server.make_url("/media/"))

    @property
    def playlist_url(self) -> str:
        return str(self._server.make_url("/media/playlist_16.m3u8"))

    def url(self, name: str) -> str:
        return self.base_uri + name

    def add(self, name: str, payload: bytes, delay: float = 0.0, failures: int = 0):
        self.payloads[name] = payload
        self.delays[name] = delay
        self.failures[name] = failures

    async def _playlist(self, request: web.Request) -> web.Response:
        self.seen_headers.append(dict(request.headers))
        if self.playlist is None:
            return web.Response(status=404)
        return web.Response(text=self.playlist)

    async def _fragment(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        self.hits[name] += 1
        self.seen_headers.append(dict(request.headers))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(name, 0.0))
            remaining = self.failures.get(name, 0)
            if remaining:
                if remaining > 0:
                    self.failures[name] = remaining - 1
                return web.Response(status=503)
            if name not in self.payloads:
                return web.Response(status=404)
            return web.Response(body=self.payloads[name])
        finally:
            self.in_flight -= 1

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/media/playlist_16.m3u8", self._playlist)
        app.router.add_get("/media/{name}", self._fragment)
        self._server = TestServer(app)
        await self._server.start_server()

    async def close(self) -> None:
        await self._server.close()


class StaticProvider:
    """A fragment-list provider that returns a fixed list."""

    def __init__(self, fragment_list: FragmentList | None = None, error=None):
        self.fragment_list = fragment_list
        self.error = error
        self.calls = 0

    async def list_fragments(self) -> FragmentList:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.fragment_list


@pytest_asyncio.fixture
async def fragment_server():
    server = FragmentServer()
    await server.start()
    yield server
    await server.close()


@pytest.fixture
def fast_config():
    """Configuration with retries disabled and no backoff."""
    return FetchConfig(concurrency=2, max_retries=0, base_backoff=0.0, jitter=False)
