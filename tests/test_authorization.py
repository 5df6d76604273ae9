"""Tests for the role-based authorization gate."""

import pytest
from fastapi import Request, Response

from core.authorization import AuthorizationGate
from core.config import REQUIRED_ROLE
from core.exceptions import AuthorizationDenied


def make_request(authorization: bytes | None = None) -> Request:
    headers = [(b"authorization", authorization)] if authorization is not None else []
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/api/proxy",
            "query_string": b"",
            "headers": headers,
        }
    )


@pytest.fixture
def gate(verifier, sink):
    return AuthorizationGate(verifier, REQUIRED_ROLE, sink)


@pytest.fixture
def operation():
    calls = []

    async def op(request: Request) -> Response:
        calls.append(request)
        return Response("done")

    op.calls = calls
    return op


@pytest.mark.asyncio
async def test_granted_decision(gate):
    decision = await gate.authorize(make_request(b"Bearer good"))

    assert decision.granted
    assert decision.subject == "user-1"
    assert REQUIRED_ROLE in decision.roles


@pytest.mark.asyncio
@pytest.mark.parametrize("header", [None, b"", b"Basic dXNlcjpwYXNz", b"Bearer", b"Bearer   "])
async def test_missing_or_malformed_header_is_401(gate, verifier, header):
    with pytest.raises(AuthorizationDenied) as exc_info:
        await gate.authorize(make_request(header))

    assert exc_info.value.status_code == 401
    assert verifier.calls == []


@pytest.mark.asyncio
async def test_bearer_scheme_is_case_insensitive(gate):
    decision = await gate.authorize(make_request(b"bearer good"))

    assert decision.granted


@pytest.mark.asyncio
async def test_rejected_token_is_401(gate):
    with pytest.raises(AuthorizationDenied) as exc_info:
        await gate.authorize(make_request(b"Bearer expired"))

    assert exc_info.value.status_code == 401
    assert "not active" in exc_info.value.detail


@pytest.mark.asyncio
async def test_missing_role_is_403(gate):
    with pytest.raises(AuthorizationDenied) as exc_info:
        await gate.authorize(make_request(b"Bearer norole"))

    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_guard_runs_operation_once_when_granted(gate, operation):
    request = make_request(b"Bearer good")

    response = await gate.guard(operation)(request)

    assert response.body == b"done"
    assert operation.calls == [request]
    assert request.state.authorization.subject == "user-1"


@pytest.mark.asyncio
async def test_guard_short_circuits_denials(gate, operation, sink):
    response = await gate.guard(operation)(make_request(b"Bearer norole"))

    assert response.status_code == 403
    assert operation.calls == []
    assert sink.of("denied") == [("denied", "/api/proxy", 403, f"user-5 lacks role {REQUIRED_ROLE}")]


@pytest.mark.asyncio
async def test_guard_sets_www_authenticate_on_401(gate, operation):
    response = await gate.guard(operation)(make_request())

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_each_request_is_verified_afresh(gate, verifier, operation):
    guarded = gate.guard(operation)

    await guarded(make_request(b"Bearer good"))
    await guarded(make_request(b"Bearer good"))

    assert verifier.calls == ["good", "good"]
