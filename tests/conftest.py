"""Shared fixtures: fake verifier, recording sink and a mocked upstream."""

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import REQUIRED_ROLE, Config
from core.exceptions import InvalidCredentialError
from core.request_types import Identity


class FakeVerifier:
    """Token table standing in for the identity provider."""

    def __init__(self, identities: dict[str, Identity]):
        self.identities = identities
        self.calls: list[str] = []

    async def verify(self, token: str) -> Identity:
        self.calls.append(token)
        try:
            return self.identities[token]
        except KeyError:
            raise InvalidCredentialError(f"introspection says {token} is not active") from None


class RecordingSink:
    """EventSink that keeps every event for assertions."""

    def __init__(self):
        self.events: list[tuple] = []

    def log_rewrite(self, path: str) -> None:
        self.events.append(("rewrite", path))

    def log_denied(self, path: str, status: int, reason: str) -> None:
        self.events.append(("denied", path, status, reason))

    def log_proxy(self, url: str, subject: str | None = None) -> None:
        self.events.append(("proxy", url, subject))

    def log_error(self, route: str, status: int, message: str) -> None:
        self.events.append(("error", route, status, message))

    def of(self, kind: str) -> list[tuple]:
        return [event for event in self.events if event[0] == kind]


class Upstream:
    """MockTransport handler that counts outbound fetches."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.respond = lambda request: httpx.Response(200, content=b"hello")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def verifier():
    granted = frozenset({REQUIRED_ROLE})
    return FakeVerifier(
        {
            "good": Identity("user-1", granted),
            "secret123": Identity("user-2", granted),
            "queryToken": Identity("user-3", granted),
            "headerToken": Identity("user-4", granted),
            "norole": Identity("user-5", frozenset({"some-other-role"})),
        }
    )


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def app(config, verifier, sink, http_client):
    return create_app(config, verifier, sink, http_client=http_client)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer good"}
