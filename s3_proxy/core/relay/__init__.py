"""
Object relay logic.

Contains backend outcomes, the relay state machine and the streaming relay.
"""

from .models import (
    AccessDenied,
    BackendError,
    BackendOutcome,
    Found,
    NotFound,
    ObjectBody,
    RelayState,
    StreamFailed,
)
from .relay import BackendClient, RelayStream, fetch

__all__ = [
    "AccessDenied",
    "BackendError",
    "BackendOutcome",
    "Found",
    "NotFound",
    "ObjectBody",
    "RelayState",
    "StreamFailed",
    "BackendClient",
    "RelayStream",
    "fetch",
]
