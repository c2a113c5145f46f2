"""
Object proxy endpoint.

A single catch-all route: every method on every path is treated as a
read of the object the path resolves to.

Flow per request:
1. Resolve the raw path to (bucket, key) - RouteError becomes 400
2. Fetch the object once - NotFound/AccessDenied/BackendError become 404/403/502
3. Stream the body back as it is read from storage (HEAD gets headers only)
"""

import logging
from urllib.parse import quote, quote_from_bytes

from fastapi import APIRouter, Request, Response

from ...core.relay.models import Found, RelayState
from ...core.relay.relay import fetch
from ...core.routing.resolver import resolve
from ..dependencies import BackendClientDep, ProxyConfigDep, SettingsDep
from ..responses import write, write_head

logger = logging.getLogger(__name__)

router = APIRouter()

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]

# Characters allowed unescaped in a path; everything else gets a %XX escape
PATH_SAFE = "/%:@!$&'()*+,;="


def raw_request_path(request: Request) -> str:
    """
    The request path as it came over the wire, still percent-encoded.

    ASGI servers put the undecoded path bytes in scope["raw_path"]. Bytes
    the client sent unescaped (raw UTF-8, spaces) are escaped here so the
    resolver sees plain ASCII and decodes every segment exactly once.
    Without raw_path, the decoded path is re-encoded instead.
    """
    raw_path = request.scope.get("raw_path")
    if raw_path:
        raw_path = raw_path.split(b"?", 1)[0]
        return quote_from_bytes(raw_path, safe=PATH_SAFE)
    return quote(request.scope["path"])


@router.api_route(
    "/{path:path}",
    methods=PROXY_METHODS,
    include_in_schema=False,
)
async def proxy_object(
    request: Request,
    config: ProxyConfigDep,
    backend: BackendClientDep,
    settings: SettingsDep,
) -> Response:
    """
    Relay the object the request path refers to.

    Range headers are passed to storage untouched; storage decides whether
    to honour them (206 + Content-Range) or return the whole object.
    """
    raw_path = raw_request_path(request)
    target = resolve(raw_path, config)

    outcome = await fetch(target, backend, request.headers.get("range"))

    if not isinstance(outcome, Found):
        log = logger.error if outcome.state is RelayState.BACKEND_FAILED else logger.info
        log(
            "Request finished without body",
            extra={
                "method": request.method,
                "uri": target.uri,
                "state": outcome.state.value,
            }
        )
        return write(outcome, target, settings)

    if request.method == "HEAD":
        # Headers only; release the backend stream without reading it
        await outcome.body.aclose()
        return write_head(outcome, target, settings)

    logger.debug(
        "Streaming object",
        extra={
            "uri": target.uri,
            "content_length": outcome.content_length,
            "content_type": outcome.content_type,
        }
    )
    return write(outcome, target, settings)
