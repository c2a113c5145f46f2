"""
Domain models for relaying stored objects.

A backend fetch ends in exactly one BackendOutcome. Only Found carries a
body; the other variants map 1:1 to an HTTP status.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, Optional, Protocol, Union


class RelayState(Enum):
    """
    Lifecycle of a single proxied request.

    Terminal states are COMPLETED, STREAM_FAILED, ROUTE_FAILED, NOT_FOUND,
    ACCESS_DENIED and BACKEND_FAILED. STREAMING can only be left for
    COMPLETED or STREAM_FAILED: once headers are sent, a failure can no
    longer become a status code.
    """
    RECEIVED = "received"
    RESOLVING = "resolving"
    ROUTE_FAILED = "route_failed"
    FETCHING = "fetching"
    STREAMING = "streaming"
    COMPLETED = "completed"
    STREAM_FAILED = "stream_failed"
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    BACKEND_FAILED = "backend_failed"

    @property
    def is_terminal(self) -> bool:
        return self not in _NON_TERMINAL


_NON_TERMINAL = frozenset({
    RelayState.RECEIVED,
    RelayState.RESOLVING,
    RelayState.FETCHING,
    RelayState.STREAMING,
})


class StreamFailed(Exception):
    """
    Raised when the backend body fails after response headers were sent.

    There is no way to report this to the client other than cutting the
    connection, so it must propagate to the server.
    """

    def __init__(self, uri: str, bytes_sent: int, cause: BaseException) -> None:
        super().__init__(f"stream of {uri} failed after {bytes_sent} bytes: {cause}")
        self.uri = uri
        self.bytes_sent = bytes_sent
        self.cause = cause


class ObjectBody(Protocol):
    """Streaming handle on an object's content."""

    def __aiter__(self) -> AsyncIterator[bytes]:
        ...

    async def aclose(self) -> None:
        ...


@dataclass
class Found:
    """The object exists and its body is ready to be streamed."""
    body: ObjectBody
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    e_tag: Optional[str] = None
    last_modified: Optional[datetime] = None
    content_range: Optional[str] = None
    accept_ranges: Optional[str] = None

    state = RelayState.STREAMING


@dataclass(frozen=True)
class NotFound:
    """No such key (or bucket)."""
    state = RelayState.NOT_FOUND


@dataclass(frozen=True)
class AccessDenied:
    """Backend refused access to the object."""
    state = RelayState.ACCESS_DENIED


@dataclass(frozen=True)
class BackendError:
    """Transport failure or unexpected backend response."""
    detail: str
    state = RelayState.BACKEND_FAILED


BackendOutcome = Union[Found, NotFound, AccessDenied, BackendError]
