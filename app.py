"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_healthz, handle_proxy
from core.authorization import AuthorizationGate
from core.config import Config
from core.credentials import CredentialRewriter
from core.headers import HeaderBuilder
from core.protocols import AuthorizationVerifier, EventSink
from services.upstream import ForwardingHandler


def create_app(
    config: Config,
    verifier: AuthorizationVerifier,
    sink: EventSink,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``http_client`` replaces the outbound client built at startup; an
    injected client is left open on shutdown.
    """
    gate = AuthorizationGate(verifier, config.auth.required_role, sink)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = http_client or httpx.AsyncClient(
            timeout=config.upstream.timeout,
            follow_redirects=config.upstream.follow_redirects,
        )
        forwarder = ForwardingHandler(
            client,
            HeaderBuilder(config.upstream.user_agent),
            sink,
        )
        app.state.proxy_operation = gate.guard(forwarder.handle)
        try:
            yield
        finally:
            if http_client is None:
                await client.aclose()
            close_verifier = getattr(verifier, "aclose", None)
            if close_verifier is not None:
                await close_verifier()

    app = FastAPI(title="Reddit Forward Proxy", version="0.1.0", lifespan=lifespan)

    @app.get("/api/healthz")
    async def healthz(request: Request):
        return await handle_healthz(request)

    @app.get("/api/proxy")
    async def proxy(request: Request):
        return await handle_proxy(request)

    # Ahead of routing, so every path sees the rewritten Authorization header
    app.add_middleware(CredentialRewriter, sink=sink)

    return app
