"""FastAPI route handlers."""

from fastapi import Request, Response
from fastapi.responses import StreamingResponse


async def handle_proxy(request: Request) -> Response | StreamingResponse:
    """Handle any method on any path; gating happens in the proxy service."""
    proxy_service = request.app.state.proxy_service
    return await proxy_service.handle(request)
