"""
Request routing logic.

Maps incoming request paths to (bucket, key) pairs.
"""

from .models import (
    InvalidEncoding,
    MissingBucket,
    MissingKey,
    PrefixMismatch,
    ProxyConfig,
    ResolvedTarget,
    RouteError,
)
from .resolver import resolve, split_path

__all__ = [
    "InvalidEncoding",
    "MissingBucket",
    "MissingKey",
    "PrefixMismatch",
    "ProxyConfig",
    "ResolvedTarget",
    "RouteError",
    "resolve",
    "split_path",
]
