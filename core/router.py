"""Request gating logic - decides whether a request is forwarded upstream."""

from dataclasses import dataclass

NOT_FOUND = "not_found"
PREFLIGHT = "preflight"
METHOD_NOT_ALLOWED = "method_not_allowed"
FORWARD = "forward"

FORWARDED_METHODS = ("GET", "HEAD")
ALLOWED_METHODS = ", ".join((*FORWARDED_METHODS, "OPTIONS"))


@dataclass(frozen=True)
class RouteDecision:
    """Routing decision for a request."""

    action: str


class RouteDecider:
    """Decide what to do with an inbound request from its method and path."""

    def __init__(self, allowed_paths: tuple[str, ...] | list[str] | None = None):
        self.allowed_paths = tuple(allowed_paths or ())

    def decide(self, method: str, path: str) -> RouteDecision:
        """Return the decision; checks run in order and the first match wins."""
        if not self.is_path_allowed(path):
            return RouteDecision(action=NOT_FOUND)
        method = method.upper()
        if method == "OPTIONS":
            return RouteDecision(action=PREFLIGHT)
        if method not in FORWARDED_METHODS:
            return RouteDecision(action=METHOD_NOT_ALLOWED)
        return RouteDecision(action=FORWARD)

    def is_path_allowed(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.allowed_paths)

    def describe_paths(self) -> str:
        """Human-readable list of prefixes, e.g. '/a/ and /b/'."""
        paths = list(self.allowed_paths)
        if len(paths) <= 1:
            return "".join(paths)
        return ", ".join(paths[:-1]) + " and " + paths[-1]
