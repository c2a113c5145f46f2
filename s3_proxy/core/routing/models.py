"""
Domain models for request routing.

These models describe how an incoming path maps onto object storage.
Like the rest of core, they know nothing about HTTP frameworks or boto3.
"""

from dataclasses import dataclass
from typing import Optional


class RouteError(Exception):
    """
    Raised when a request path cannot be mapped to a bucket and key.

    Route errors are always the client's fault (wrong shape of path),
    so they are never retried and always surface as 400.
    """

    reason = "invalid path"

    def __init__(self, path: str) -> None:
        super().__init__(f"{self.reason}: {path!r}")
        self.path = path


class InvalidEncoding(RouteError):
    """A path segment does not percent-decode to valid UTF-8."""
    reason = "path is not valid percent-encoded UTF-8"


class PrefixMismatch(RouteError):
    """First path segment is missing or differs from the configured prefix."""
    reason = "path does not start with the configured URL prefix"


class MissingBucket(RouteError):
    """No bucket is configured and the path has no segment to supply one."""
    reason = "path does not name a bucket"


class MissingKey(RouteError):
    """Nothing is left of the path to use as the object key."""
    reason = "path does not name an object key"


@dataclass(frozen=True)
class ProxyConfig:
    """
    Static routing configuration, read-only for the lifetime of the process.

    host/port are only used to start the server; the resolver looks at
    bucket and url_prefix.
    """
    host: str = "0.0.0.0"
    port: int = 8080
    bucket: Optional[str] = None
    region: str = "us-east-1"
    url_prefix: Optional[str] = None

    def __post_init__(self) -> None:
        # Normalise "" to None and strip slashes so "/files/" == "files"
        prefix = (self.url_prefix or "").strip("/") or None
        object.__setattr__(self, "url_prefix", prefix)
        object.__setattr__(self, "bucket", self.bucket or None)

    @property
    def route_template(self) -> str:
        """Human-readable shape of the paths this config accepts."""
        parts = []
        if self.url_prefix:
            parts.append(self.url_prefix)
        if not self.bucket:
            parts.append("{bucket}")
        parts.append("{key...}")
        return "/" + "/".join(parts)


@dataclass(frozen=True)
class ResolvedTarget:
    """The object a single request refers to."""
    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"
