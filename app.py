"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from api.handlers import handle_proxy
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.router import RouteDecider
from services.proxy_service import ProxyService
from services.upstream import UpstreamClient


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport`` replaces the network layer of the upstream client, which
    lets tests stub the upstream host.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        upstream = config.upstream
        limits = httpx.Limits(
            max_connections=upstream.max_connections,
            max_keepalive_connections=upstream.max_keepalive_connections,
        )
        client = httpx.AsyncClient(
            timeout=upstream.timeout,
            limits=limits,
            transport=transport,
        )
        header_builder = HeaderBuilder(upstream)
        app.state.proxy_service = ProxyService(
            config=config,
            logger=logger,
            upstream=UpstreamClient(client, upstream, header_builder),
            decider=RouteDecider(config.routing.allowed_paths),
            header_builder=header_builder,
        )
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(
        title="hole.cert.pl Proxy",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # No method list: every verb reaches the service, which answers 405 itself
    app.add_route("/{path:path}", handle_proxy, include_in_schema=False)

    return app
