"""Shared protocol definitions."""

from typing import Protocol

from core.request_types import Identity


class AuthorizationVerifier(Protocol):
    """Resolve a bearer token to a verified identity.

    Implementations raise ``InvalidCredentialError`` for any token they cannot
    accept.
    """

    async def verify(self, token: str) -> Identity: ...


class EventSink(Protocol):
    """Protocol for structured request events (Dashboard)."""

    def log_rewrite(self, path: str) -> None: ...
    def log_denied(self, path: str, status: int, reason: str) -> None: ...
    def log_proxy(self, url: str, subject: str | None = None) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...
