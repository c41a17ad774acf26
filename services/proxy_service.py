"""Request handling for the hole.cert.pl proxy."""

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse

from core.config import Config
from core.exceptions import UpstreamError
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import PreparedRequest
from core.router import METHOD_NOT_ALLOWED, NOT_FOUND, PREFLIGHT, RouteDecider
from services.upstream import UpstreamClient

SINGLE_DOT_SEGMENTS = {".", "%2e"}
DOUBLE_DOT_SEGMENTS = {"..", ".%2e", "%2e.", "%2e%2e"}


class ProxyService:
    """Gate inbound requests and forward the allowed ones upstream."""

    def __init__(
        self,
        config: Config,
        logger: RequestLogger,
        upstream: UpstreamClient,
        decider: RouteDecider,
        header_builder: HeaderBuilder,
    ) -> None:
        self._config = config
        self._logger = logger
        self._upstream = upstream
        self._decider = decider
        self._headers = header_builder

    async def handle(self, request: Request) -> Response | StreamingResponse:
        """Map an inbound request to a response. Never raises."""
        method = request.method
        path, query = raw_path_and_query(request)

        decision = self._decider.decide(method, path)
        if decision.action == NOT_FOUND:
            return self._finish(method, path, PlainTextResponse(
                f"Not Found - This proxy only handles {self._decider.describe_paths()} paths",
                status_code=404,
                headers=self._headers.cors_headers(),
            ))
        if decision.action == PREFLIGHT:
            return self._finish(method, path, Response(
                status_code=200,
                headers=self._headers.preflight_headers(),
            ))
        if decision.action == METHOD_NOT_ALLOWED:
            return self._finish(method, path, PlainTextResponse(
                "Method Not Allowed",
                status_code=405,
                headers=self._headers.method_not_allowed_headers(),
            ))

        try:
            prepared = self.prepare(method, path, query, request.headers)
            response = await self._upstream.proxy(prepared, self._logger)
        except UpstreamError as e:
            return self._proxy_error(self._config.upstream.host, e)
        except Exception as e:
            return self._proxy_error("proxy", e)
        return self._finish(method, path, response)

    def prepare(self, method: str, path: str, query: str, headers) -> PreparedRequest:
        """Build the outbound request; only path and query come from the caller."""
        search = f"?{query}" if query else ""
        return PreparedRequest(
            method=method,
            target_url=f"{self._config.upstream.origin}{path}{search}",
            headers=self._headers.build_upstream_headers(headers),
        )

    def _proxy_error(self, route: str, error: Exception) -> Response:
        """500 for a request that was accepted but could not be proxied."""
        self._logger.log_error(route, 500, f"Proxy error: {error}")
        return PlainTextResponse(
            f"Proxy error: {error}",
            status_code=500,
            headers=self._headers.cors_headers(),
        )

    def _finish(self, method: str, path: str, response: Response) -> Response:
        self._logger.log_request(method, path, response.status_code)
        return response


def raw_path_and_query(request: Request) -> tuple[str, str]:
    """Return the client's path with dot segments resolved, and its raw query.

    The path keeps its percent-encoding; only ``.`` and ``..`` segments
    (in any encoding) are collapsed, so the prefix check sees the same path
    the upstream will receive.
    """
    scope = request.scope
    raw_path = scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else scope["path"]
    # Some servers include the query in raw_path
    path = path.split("?", 1)[0]
    query = scope.get("query_string", b"").decode("latin-1")
    return resolve_dot_segments(path), query


def resolve_dot_segments(path: str) -> str:
    """Collapse ``.``/``..`` segments the way a browser URL parser does."""
    segments = path.replace("\\", "/").split("/")[1:]
    resolved: list[str] = []
    for index, segment in enumerate(segments):
        is_last = index == len(segments) - 1
        lowered = segment.lower()
        if lowered in DOUBLE_DOT_SEGMENTS:
            if resolved:
                resolved.pop()
            if is_last:
                resolved.append("")
        elif lowered in SINGLE_DOT_SEGMENTS:
            if is_last:
                resolved.append("")
        else:
            resolved.append(segment)
    return "/" + "/".join(resolved)
