"""Shared pytest fixtures for Dream Pie tests."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from dreampie.api.main import create_app
from dreampie.api.proxy import ProxyHandler
from dreampie.core.config import DreamPieConfig
from dreampie.core.providers import provider_registry

CREDENTIAL_VARS = ("SEEDDREAM_API_KEY", "GEMINI_API_KEY", "STABILITY_API_KEY")


class ProviderStub:
    """Stand-in for an external provider behind ``httpx.MockTransport``.

    Answers with the queued responses in order; the last one repeats once
    the queue is down to a single entry.  Every request is recorded.
    """

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses) or [httpx.Response(200, json={})]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture(autouse=True)
def clean_credentials(monkeypatch) -> None:
    """Keep credentials from the developer's shell out of the tests."""
    for name in CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config() -> DreamPieConfig:
    """Create a configuration with credentials for both provider families.

    Returns:
        DreamPieConfig instance for testing
    """
    return DreamPieConfig(
        _env_file=None,
        provider="imagen",
        gemini_api_key="test-google-key",
        stability_api_key="test-stability-key",
        request_timeout=5.0,
    )


@pytest.fixture
def make_handler() -> Callable[..., ProxyHandler]:
    """Factory for a :class:`ProxyHandler` talking to a :class:`ProviderStub`.

    Returns:
        ``make_handler(stub, provider="imagen", credential="test-key")``
    """

    def _make(
        stub: ProviderStub,
        provider: str = "imagen",
        credential: str | None = "test-key",
    ) -> ProxyHandler:
        client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
        return ProxyHandler(provider_registry.get(provider), credential, client)

    return _make


@pytest.fixture
def recorded_sleeps() -> list[float]:
    """Delays passed to the fake sleep used by generation client tests."""
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps: list[float]) -> Callable[[float], object]:
    """Async sleep replacement that records the delay and returns at once."""

    async def _sleep(delay: float) -> None:
        recorded_sleeps.append(delay)

    return _sleep


@pytest.fixture
def provider_stub() -> type[ProviderStub]:
    """Expose :class:`ProviderStub` so tests can queue provider responses."""
    return ProviderStub


@pytest.fixture
def api_stub() -> ProviderStub:
    """Provider stub behind the app's outbound client; answers with one image."""
    return ProviderStub(httpx.Response(200, json={"predictions": [{"bytesBase64Encoded": "Zm9v"}]}))


@pytest.fixture
def test_client(test_config: DreamPieConfig, api_stub: ProviderStub) -> Iterator[TestClient]:
    """Create a FastAPI TestClient whose provider is ``api_stub``.

    Entering the client runs the app lifespan, which builds the proxy
    handler around a mock transport.

    Yields:
        Started TestClient instance.
    """
    app = create_app(test_config, transport=httpx.MockTransport(api_stub))
    with TestClient(app) as client:
        yield client
