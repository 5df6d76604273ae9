"""FastAPI route handlers."""

from fastapi import Request, Response
from fastapi.responses import JSONResponse


async def handle_healthz(_request: Request) -> Response:
    """Liveness probe; always a JSON ``"OK"``."""
    return JSONResponse("OK", status_code=200)


async def handle_proxy(request: Request) -> Response:
    """Forward /api/proxy through the gate and forwarding handler."""
    proxy_operation = request.app.state.proxy_operation
    return await proxy_operation(request)
