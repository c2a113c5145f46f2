"""
Turning backend outcomes into HTTP responses.

This is the response-writing step of the relay. Errors are plain-text
and short; clients are expected to act on the status code.
"""

import logging
import mimetypes
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional

from fastapi import Response, status
from fastapi.responses import StreamingResponse

from ..config.settings import Settings
from ..core.relay.models import (
    AccessDenied,
    BackendError,
    BackendOutcome,
    Found,
    NotFound,
)
from ..core.relay.relay import RelayStream
from ..core.routing.models import ResolvedTarget

logger = logging.getLogger(__name__)

# Content types that say nothing about the object; we guess from the key instead
GENERIC_CONTENT_TYPES = frozenset({"binary/octet-stream", "application/octet-stream"})


def error_response(status_code: int, message: str) -> Response:
    return Response(content=message, status_code=status_code, media_type="text/plain")


def guess_content_type(key: str, reported: Optional[str]) -> Optional[str]:
    """
    Pick the Content-Type to send for an object.

    Backends often store uploads as a generic octet-stream; when they do,
    the key's extension is a better hint. Otherwise the stored type wins.
    """
    if reported and reported not in GENERIC_CONTENT_TYPES:
        return reported

    guessed, _ = mimetypes.guess_type(key, strict=False)
    if guessed:
        logger.debug(
            "Determined content type from extension",
            extra={"key": key, "content_type": guessed}
        )
        return guessed
    return reported


def format_http_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def object_headers(found: Found, target: ResolvedTarget, settings: Settings) -> dict[str, str]:
    """Headers forwarded to the client for a found object."""
    headers: dict[str, str] = {}

    content_type = guess_content_type(target.key, found.content_type)
    if content_type:
        headers["Content-Type"] = content_type
    if found.content_length is not None:
        headers["Content-Length"] = str(found.content_length)
    if found.e_tag:
        headers["ETag"] = found.e_tag
    if found.last_modified is not None:
        headers["Last-Modified"] = format_http_date(found.last_modified)
    if found.accept_ranges:
        headers["Accept-Ranges"] = found.accept_ranges
    if found.content_range:
        headers["Content-Range"] = found.content_range
    if settings.cache_control:
        headers["Cache-Control"] = settings.cache_control

    return headers


def found_status(found: Found) -> int:
    if found.content_range:
        return status.HTTP_206_PARTIAL_CONTENT
    return status.HTTP_200_OK


def write_head(found: Found, target: ResolvedTarget, settings: Settings) -> Response:
    """
    Headers-only response for a HEAD request.

    Content-Length is the stored object's, not the (empty) body's. The
    caller is responsible for closing the unread body.
    """
    return Response(
        status_code=found_status(found),
        headers=object_headers(found, target, settings),
    )


def write(outcome: BackendOutcome, target: ResolvedTarget, settings: Settings) -> Response:
    """
    Build the response for a backend outcome.

    Found becomes a streaming response; the body is pulled from the backend
    only as the server sends it. Every other outcome maps to a status code.
    """
    if isinstance(outcome, Found):
        return StreamingResponse(
            RelayStream(outcome.body, target),
            status_code=found_status(outcome),
            headers=object_headers(outcome, target, settings),
        )

    if isinstance(outcome, NotFound):
        return error_response(status.HTTP_404_NOT_FOUND, "404 - Not found")

    if isinstance(outcome, AccessDenied):
        return error_response(status.HTTP_403_FORBIDDEN, "403 - Forbidden")

    if isinstance(outcome, BackendError):
        return error_response(status.HTTP_502_BAD_GATEWAY, "502 - Bad gateway")

    raise TypeError(f"Unknown backend outcome: {outcome!r}")
