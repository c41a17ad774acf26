"""Exceptions raised by the hole.cert.pl proxy."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Configuration cannot run a proxy (no upstream host, no allowed paths)."""


class UpstreamError(ProxyError):
    """The upstream request failed before any response arrived.

    The message is the transport's own, so it can be shown to the caller.
    """


class UpstreamTimeoutError(UpstreamError):
    pass


class UpstreamConnectionError(UpstreamError):
    pass
