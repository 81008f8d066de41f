"""Shared fixtures: an httpx mock transport routed by URL, and isolated engines."""

import httpx
import pytest

from product_parser.layers.cache import ResultCache
from product_parser.layers.extraction import ExtractionEngine
from product_parser.layers.metrics import MetricsRecorder


PROXY_URL = "https://render.example.net/v1/extract"


class FakeClock:
    """Manually advanced clock for cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def page(body: str, status_code: int = 200):
    """Route answering every request with a fresh HTML response."""
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=body, headers={"Content-Type": "text/html"})
    return respond


def redirect(location: str, status_code: int = 301):
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, headers={"Location": location})
    return respond


def json_body(payload, status_code: int = 200):
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)
    return respond


def raise_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def raise_connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def build_transport(routes: dict) -> httpx.MockTransport:
    """
    Mock transport answering from routes, keyed by full URL.

    A route is a callable taking the request and returning a response.
    Unknown URLs get a 404. Every request is recorded on .requests.
    """
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)

    transport = httpx.MockTransport(handler)
    transport.requests = requests
    return transport


@pytest.fixture
def routes():
    return {}


@pytest.fixture
def transport(routes):
    return build_transport(routes)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics():
    return MetricsRecorder()


@pytest.fixture
def engine(transport, metrics, clock):
    return ExtractionEngine(
        cache=ResultCache(ttl_seconds=900, max_size=100, clock=clock),
        metrics=metrics,
        transport=transport,
        remote_render_url=PROXY_URL,
    )
