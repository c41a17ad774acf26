"""HTTP proxying utilities for upstream requests."""

from collections.abc import AsyncIterator

import httpx
from fastapi import Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from core.config import UpstreamSettings
from core.exceptions import UpstreamConnectionError, UpstreamTimeoutError
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import PreparedRequest

# Statuses whose responses must not carry a body
NULL_BODY_STATUSES = {101, 103, 204, 205, 304}


class UpstreamClient:
    """Proxy requests to the upstream host with streaming support."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        upstream: UpstreamSettings,
        header_builder: HeaderBuilder,
    ) -> None:
        self._client = client
        self._upstream = upstream
        self._headers = header_builder

    async def proxy(
        self,
        prepared: PreparedRequest,
        logger: RequestLogger,
    ) -> Response | StreamingResponse:
        """Issue the request and map the upstream response for the caller."""
        response = await self.send(prepared)

        if not response.is_success:
            # The upstream body is discarded, only the status is surfaced
            await response.aclose()
            if response.status_code in NULL_BODY_STATUSES:
                return Response(status_code=response.status_code, headers=self._headers.cors_headers())
            return PlainTextResponse(
                f"Source server error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                headers=self._headers.cors_headers(),
            )

        try:
            headers = self._headers.build_response_headers(response.headers)
        except Exception:
            await response.aclose()
            raise

        return StreamingResponse(
            self._relay(response, logger),
            status_code=response.status_code,
            headers=dict(headers),
            background=BackgroundTask(self._cleanup_streaming, response),
        )

    async def send(self, prepared: PreparedRequest) -> httpx.Response:
        """Send the request, leaving the body unread for streaming."""
        req = self._client.build_request(
            prepared.method,
            prepared.target_url,
            headers=prepared.headers,
        )
        try:
            return await self._client.send(req, stream=True, follow_redirects=True)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(str(e)) from e
        except httpx.RequestError as e:
            raise UpstreamConnectionError(str(e)) from e

    async def _relay(
        self,
        response: httpx.Response,
        logger: RequestLogger,
    ) -> AsyncIterator[bytes]:
        """Yield the raw (still encoded) upstream bytes as they arrive."""
        try:
            async for chunk in response.aiter_raw():
                yield chunk
        except httpx.HTTPError as e:
            # Headers are already sent; abort the connection instead of truncating
            logger.log_error(self._upstream.host, response.status_code, f"Stream interrupted: {e}")
            raise

    async def _cleanup_streaming(self, response: httpx.Response) -> None:
        """Clean up streaming resources."""
        await response.aclose()
