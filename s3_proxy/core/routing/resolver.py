"""
Path resolution: incoming request path -> (bucket, key).

Accepted path shape, depending on what is configured:

    url_prefix  bucket   path
    ----------  ------   -------------------------
    unset       set      /{key...}
    unset       unset    /{bucket}/{key...}
    set         set      /{url_prefix}/{key...}
    set         unset    /{url_prefix}/{bucket}/{key...}

The key is everything that remains, rejoined with "/". No further
structure is assumed.
"""

from urllib.parse import unquote_to_bytes

from .models import (
    InvalidEncoding,
    MissingBucket,
    MissingKey,
    PrefixMismatch,
    ProxyConfig,
    ResolvedTarget,
)


def split_path(path: str) -> list[str]:
    """
    Split a raw request path into decoded, non-empty segments.

    Segments are percent-decoded exactly once, after splitting, so an
    encoded slash (%2F) stays part of its segment. Empty segments are
    dropped, which makes trailing and doubled slashes insignificant.

    Decoded bytes must be valid UTF-8. A segment like "%FF" is rejected
    rather than replaced, since a substituted character would name a
    different object.

    Raises:
        InvalidEncoding: a segment does not decode to UTF-8
    """
    path = path.split("?", 1)[0]
    segments = []
    for segment in path.split("/"):
        if not segment:
            continue
        try:
            segments.append(unquote_to_bytes(segment).decode("utf-8"))
        except UnicodeDecodeError as e:
            raise InvalidEncoding(path) from e
    return segments


def resolve(path: str, config: ProxyConfig) -> ResolvedTarget:
    """
    Map a request path onto a bucket and object key.

    Args:
        path: Request path as received on the wire (still percent-encoded)
        config: Static routing configuration

    Returns:
        The resolved target

    Raises:
        InvalidEncoding: a path segment is not valid percent-encoded UTF-8
        PrefixMismatch: url_prefix is configured but the path doesn't start with it
        MissingBucket: no bucket is configured and the path doesn't name one
        MissingKey: nothing is left for the object key
    """
    segments = split_path(path)

    if config.url_prefix is not None:
        if not segments or segments[0] != config.url_prefix:
            raise PrefixMismatch(path)
        segments = segments[1:]

    if config.bucket is not None:
        bucket = config.bucket
    else:
        if not segments:
            raise MissingBucket(path)
        bucket, segments = segments[0], segments[1:]

    key = "/".join(segments)
    if not key:
        raise MissingKey(path)

    return ResolvedTarget(bucket=bucket, key=key)
