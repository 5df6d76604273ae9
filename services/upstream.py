"""Outbound fetch and streaming relay for proxied requests."""

from collections.abc import AsyncIterator

import httpx
from fastapi import Request, Response
from fastapi.responses import StreamingResponse

from core.credentials import first_query_value
from core.exceptions import (
    ClientInputError,
    StreamingError,
    UpstreamConstructionError,
    UpstreamError,
    UpstreamTransportError,
)
from core.headers import HeaderBuilder
from core.protocols import EventSink
from core.request_types import ProxyTarget
from core.responses import error_response

URL_PARAM = "url"
SNIFF_LEN = 512
TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"
OCTET_STREAM = "application/octet-stream"

# Control bytes that never appear in text
_BINARY_BYTES = frozenset([*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)])
_HTML_PREFIXES = (b"<!doctype html", b"<html", b"<head", b"<body", b"<script", b"<title")


class ForwardingHandler:
    """Fetch a caller-supplied URL and relay its body without buffering it."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        header_builder: HeaderBuilder,
        sink: EventSink,
    ) -> None:
        self._client = client
        self._headers = header_builder
        self._sink = sink

    async def handle(self, request: Request) -> Response:
        """Handle an already-authorized /api/proxy request."""
        try:
            target = parse_target(request)
        except ClientInputError as e:
            return error_response(str(e), e.status_code)

        decision = getattr(request.state, "authorization", None)
        self._sink.log_proxy(target.url, decision.subject if decision else None)

        try:
            return await self.forward(target)
        except UpstreamError as e:
            self._sink.log_error("proxy", e.status_code, str(e))
            return error_response(str(e), e.status_code)

    async def forward(self, target: ProxyTarget) -> StreamingResponse:
        """Open the upstream body and wrap it in a fixed-200 streaming response.

        The first chunk is read before the response starts, so a failure
        there can still be reported as a 500 envelope. Later failures can
        only truncate the body.
        """
        upstream = await self._open(target)
        chunks = upstream.aiter_bytes()
        try:
            first = await anext(chunks, b"")
        except (httpx.HTTPError, httpx.StreamError) as e:
            await upstream.aclose()
            raise StreamingError(_describe(e)) from e

        # Upstream status and headers are not relayed; callers always see 200
        return StreamingResponse(
            self._relay(upstream, chunks, first),
            status_code=200,
            media_type=sniff_media_type(first),
        )

    async def _open(self, target: ProxyTarget) -> httpx.Response:
        try:
            request = self._client.build_request(
                "GET",
                target.url,
                headers=self._headers.build_upstream_headers(),
            )
        except httpx.InvalidURL as e:
            # Report and stop here; there is no request to send
            raise UpstreamConstructionError(_describe(e)) from e

        try:
            return await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamTransportError(_describe(e)) from e

    async def _relay(
        self,
        upstream: httpx.Response,
        chunks: AsyncIterator[bytes],
        first: bytes,
    ) -> AsyncIterator[bytes]:
        try:
            if first:
                yield first
            async for chunk in chunks:
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            self._sink.log_error("proxy", 500, f"stream truncated: {_describe(e)}")
            raise StreamingError(_describe(e)) from e
        finally:
            await upstream.aclose()


def parse_target(request: Request) -> ProxyTarget:
    """Presence is the only check; scheme and host are not restricted."""
    url = first_query_value(request.query_params, URL_PARAM)
    if not url:
        raise ClientInputError("missing url parameter")
    return ProxyTarget(url)


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def sniff_media_type(head: bytes) -> str:
    """Guess a content type from the start of the body.

    Upstream headers are not relayed, so the type is derived from the
    bytes: HTML, then plain UTF-8 text, otherwise octet-stream.
    """
    head = head[:SNIFF_LEN]
    if head.lstrip(b"\t\n\x0c\r ").lower().startswith(_HTML_PREFIXES):
        return TEXT_HTML
    if any(b in _BINARY_BYTES for b in head):
        return OCTET_STREAM
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte sequence cut at the sniff boundary is still text
        if e.start < len(head) - 3:
            return OCTET_STREAM
    return TEXT_PLAIN
