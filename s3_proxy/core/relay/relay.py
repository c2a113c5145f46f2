"""
Object relay: fetch a resolved target and stream its body.

This module holds the part of the pipeline that talks to the backend. It
doesn't know about HTTP frameworks; turning outcomes into responses is
the api layer's job.

Two phases with different failure semantics:
- fetch(): anything that goes wrong becomes a BackendOutcome and,
  eventually, a status code.
- RelayStream: headers are already committed while it runs, so a failure
  can only abort the connection.
"""

import logging
from typing import AsyncIterator, Optional, Protocol

from ..routing.models import ResolvedTarget
from .models import BackendOutcome, ObjectBody, RelayState, StreamFailed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class BackendClient(Protocol):
    """
    Interface for object storage backends.

    One instance is created at startup and shared by every request, so
    implementations must not keep per-request state. Credential handling
    and retry policy belong to the implementation.
    """

    async def get_object(
        self,
        bucket: str,
        key: str,
        byte_range: Optional[str] = None,
    ) -> BackendOutcome:
        """Fetch an object; never raises for backend failures."""
        ...


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

async def fetch(
    target: ResolvedTarget,
    backend: BackendClient,
    byte_range: Optional[str] = None,
) -> BackendOutcome:
    """
    Issue a single get-object call for the target.

    No retries here: a failed attempt is surfaced immediately.
    """
    logger.debug(
        "Fetching object",
        extra={"bucket": target.bucket, "key": target.key, "range": byte_range},
    )

    outcome = await backend.get_object(target.bucket, target.key, byte_range)

    logger.debug(
        "Backend responded",
        extra={"uri": target.uri, "outcome": type(outcome).__name__},
    )
    return outcome


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------

class RelayStream:
    """
    Streaming state of a request.

    Iterating yields the body chunk by chunk, never buffering the whole
    object. The state moves from STREAMING to COMPLETED when the body is
    exhausted, or to STREAM_FAILED when reading it raises. The body is
    closed on every exit path, including the consumer abandoning the
    iteration (client disconnect).
    """

    def __init__(self, body: ObjectBody, target: ResolvedTarget) -> None:
        self._body = body
        self._target = target
        self.state = RelayState.STREAMING
        self.bytes_sent = 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._relay()

    async def _relay(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._body:
                self.bytes_sent += len(chunk)
                yield chunk
        except Exception as e:
            self.state = RelayState.STREAM_FAILED
            logger.error(
                "Backend stream failed mid-transfer, aborting connection",
                extra={
                    "uri": self._target.uri,
                    "bytes_sent": self.bytes_sent,
                    "error": str(e),
                },
            )
            raise StreamFailed(self._target.uri, self.bytes_sent, e) from e
        else:
            self.state = RelayState.COMPLETED
            logger.debug(
                "Stream completed",
                extra={"uri": self._target.uri, "bytes_sent": self.bytes_sent},
            )
        finally:
            await self._body.aclose()
