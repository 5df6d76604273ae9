"""Credential transport normalization.

Clients that cannot set headers (browser image tags, RSS readers, ...) may pass
their token as ``?apiKey=<token>``. The rewriter turns that into the canonical
``Authorization: Bearer <token>`` header before routing, so the authorization
gate only ever reads one transport.
"""

from starlette.datastructures import QueryParams
from starlette.types import ASGIApp, Receive, Scope, Send

from core.protocols import EventSink

API_KEY_PARAM = "apiKey"


def first_query_value(params: QueryParams, name: str) -> str:
    """First value of a query parameter, or "" when absent."""
    values = params.getlist(name)
    return values[0] if values else ""


class CredentialRewriter:
    """ASGI middleware copying a query-string token into the Authorization header."""

    def __init__(
        self,
        app: ASGIApp,
        sink: EventSink | None = None,
        param: str = API_KEY_PARAM,
    ) -> None:
        self.app = app
        self.sink = sink
        self.param = param

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            scope = self.rewrite(scope)
        await self.app(scope, receive, send)

    def rewrite(self, scope: Scope) -> Scope:
        """Return scope with the Authorization header replaced, if a key is present."""
        params = QueryParams(scope.get("query_string", b""))
        api_key = first_query_value(params, self.param)
        if not api_key:
            return scope

        try:
            value = f"Bearer {api_key}".encode("latin-1")
        except UnicodeEncodeError:
            # Not representable as a header value; treat as absent
            return scope

        headers = [
            (name, raw)
            for name, raw in scope.get("headers", [])
            if name.lower() != b"authorization"
        ]
        headers.append((b"authorization", value))

        if self.sink:
            self.sink.log_rewrite(scope.get("path", ""))
        return {**scope, "headers": headers}
