"""Header conventions of the object storage service."""

USER_META_HEADER_PREFIX = "x-meta-"
USER_QUERY_HEADER_PREFIX = "x-query-"
TTL_HEADER = "x-eio-ttl"
CONTENT_TYPE_HEADER = "content-type"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _prefixed(prefix, values):
    return {f"{prefix}{key}": str(value) for key, value in (values or {}).items()}


def _unprefixed(prefix, headers):
    result = {}
    for key, value in headers.items():
        lowered = key.lower()
        if lowered.startswith(prefix):
            result[lowered[len(prefix) :]] = value
    return result


def meta_to_headers(meta):
    return _prefixed(USER_META_HEADER_PREFIX, meta)


def query_to_headers(query):
    return _prefixed(USER_QUERY_HEADER_PREFIX, query)


def headers_to_meta(headers):
    return _unprefixed(USER_META_HEADER_PREFIX, headers)


def headers_to_query(headers):
    return _unprefixed(USER_QUERY_HEADER_PREFIX, headers)


def query_params(query):
    """Turn {"status": "READY"} into {"query[status]": "READY"}."""
    return {f"query[{key}]": str(value) for key, value in (query or {}).items()}


def write_headers(content_type=None, ttl=None, metadata=None, query=None, extra=None):
    """Request headers for POST/PUT object writes."""
    headers = {CONTENT_TYPE_HEADER: content_type or DEFAULT_CONTENT_TYPE}
    if ttl:
        headers[TTL_HEADER] = str(int(ttl))
    # header names are case-insensitive, later sources replace earlier ones
    for source in (meta_to_headers(metadata), query_to_headers(query), extra or {}):
        headers.update({key.lower(): value for key, value in source.items()})
    return headers


class ObjectResponse:
    """An object read from storage together with its parsed headers.

    ``data`` is an async byte iterator, parsed JSON or bytes depending on
    the requested response type.
    """

    def __init__(self, data, headers, close=None):
        self.data = data
        self._close = close
        self.headers = {key.lower(): value for key, value in headers.items()}
        self.content_type = self.headers.get(CONTENT_TYPE_HEADER)
        length = self.headers.get("content-length")
        self.content_length = int(length) if length else None
        self.metadata = headers_to_meta(self.headers)
        self.query_fields = headers_to_query(self.headers)

    async def aclose(self):
        """Release the underlying connection of a streamed object."""
        if self._close is not None:
            close, self._close = self._close, None
            await close()

    def __repr__(self):
        return (
            f"<ObjectResponse content_type={self.content_type!r} "
            f"content_length={self.content_length!r}>"
        )
