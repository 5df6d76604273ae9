"""Role-based authorization gate for protected operations."""

from collections.abc import Awaitable, Callable
from functools import wraps

from fastapi import Request, Response

from core.exceptions import AuthorizationDenied, InvalidCredentialError
from core.headers import bearer_token
from core.protocols import AuthorizationVerifier, EventSink
from core.request_types import AuthorizationDecision
from core.responses import error_response

Operation = Callable[[Request], Awaitable[Response]]


class AuthorizationGate:
    """Admit a request only when its credential carries the required role."""

    def __init__(
        self,
        verifier: AuthorizationVerifier,
        required_role: str,
        sink: EventSink,
    ) -> None:
        self._verifier = verifier
        self._sink = sink
        self.required_role = required_role

    async def authorize(self, request: Request) -> AuthorizationDecision:
        """Resolve a fresh decision for this request.

        Raises:
            AuthorizationDenied: 401 when the credential is missing or rejected
                by the verifier, 403 when the required role is absent.
        """
        token = bearer_token(request.headers)
        if token is None:
            raise AuthorizationDenied("missing bearer token", status_code=401)

        try:
            identity = await self._verifier.verify(token)
        except InvalidCredentialError as e:
            raise AuthorizationDenied("invalid credential", status_code=401, detail=str(e)) from e

        decision = AuthorizationDecision(
            granted=self.required_role in identity.roles,
            subject=identity.subject,
            roles=identity.roles,
        )
        if not decision.granted:
            raise AuthorizationDenied(
                "missing required role",
                status_code=403,
                detail=f"{identity.subject} lacks role {self.required_role}",
            )
        return decision

    def guard(self, operation: Operation) -> Operation:
        """Wrap operation so it runs only after a granted decision."""

        @wraps(operation)
        async def guarded(request: Request) -> Response:
            try:
                decision = await self.authorize(request)
            except AuthorizationDenied as denied:
                self._sink.log_denied(
                    request.url.path, denied.status_code, denied.detail or denied.message
                )
                headers = {"WWW-Authenticate": "Bearer"} if denied.status_code == 401 else None
                return error_response(denied.message, denied.status_code, headers)

            request.state.authorization = decision
            return await operation(request)

        return guarded
