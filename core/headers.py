"""Header construction for upstream requests and proxied responses."""

from collections.abc import Mapping

import httpx

from core.config import UpstreamSettings
from core.router import ALLOWED_METHODS

# Inbound headers forwarded upstream, with the value used when absent
FORWARDED_REQUEST_HEADERS = {
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate",
    "Accept-Language": "en-US,en;q=0.9",
}

# Upstream response headers relayed to the caller
KEPT_RESPONSE_HEADERS = (
    "content-type",
    "content-length",
    "content-encoding",
    "content-disposition",
    "last-modified",
    "etag",
    "expires",
    "cache-control",
)

DEFAULT_CACHE_CONTROL = "public, max-age=3600"
PREFLIGHT_MAX_AGE = "86400"


class HeaderBuilder:
    """Build upstream request headers and caller-facing response headers."""

    def __init__(self, upstream: UpstreamSettings) -> None:
        self._upstream = upstream

    def cors_headers(self, content_type: str | None = None) -> dict[str, str]:
        """CORS headers attached to every response."""
        headers = {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": "Content-Type",
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def preflight_headers(self) -> dict[str, str]:
        return {**self.cors_headers(), "Access-Control-Max-Age": PREFLIGHT_MAX_AGE}

    def method_not_allowed_headers(self) -> dict[str, str]:
        return {**self.cors_headers(), "Allow": ALLOWED_METHODS}

    def build_upstream_headers(self, headers: Mapping[str, str]) -> dict[str, str]:
        """Fixed User-Agent plus the Accept* headers; nothing else is forwarded."""
        lowered = {key.lower(): value for key, value in headers.items()}
        upstream = {"User-Agent": self._upstream.user_agent}
        for name, default in FORWARDED_REQUEST_HEADERS.items():
            upstream[name] = lowered.get(name.lower()) or default
        return upstream

    def build_response_headers(self, upstream_headers: httpx.Headers) -> httpx.Headers:
        """Filter upstream headers to the allow-list and apply proxy defaults."""
        headers = httpx.Headers()
        for name in KEPT_RESPONSE_HEADERS:
            value = upstream_headers.get(name)
            if value:
                headers[name] = value

        # CORS overrides anything the upstream sent under the same name
        for name, value in self.cors_headers().items():
            headers[name] = value

        if "cache-control" not in headers:
            headers["Cache-Control"] = DEFAULT_CACHE_CONTROL

        headers["X-Proxied-By"] = self._upstream.proxied_by
        headers["X-Proxy-Source"] = self._upstream.host
        return headers
