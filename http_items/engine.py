"""Request preparation.

Turns request items into a ``requests.PreparedRequest``: headers, query
string and body are taken from the items, default ``Content-Type`` and
``Accept`` headers are derived from the body kind. Nothing is sent.
"""

from __future__ import annotations

from typing import Optional

import requests
from requests.structures import CaseInsensitiveDict

from http_items.body import (
    FORM_CONTENT_TYPE,
    JSON_ACCEPT,
    JSON_CONTENT_TYPE,
    Body,
    FileBody,
    FormBody,
    JsonBody,
    MultipartBody,
    RawBody,
)
from http_items.errors import ModeError
from http_items.items import RequestItems, RequestType
from http_items.logger import logger

# Maximum number of body characters shown by print_request
MAX_BODY_PREVIEW = 500


def build_url(url: str, default_scheme: str = "http") -> str:
    """Add ``default_scheme`` to URLs given without one.

    Args:
        url: The URL as typed, e.g. ``example.com/api`` or ``:8000/api``.
        default_scheme: Scheme used when the URL has none.

    Returns:
        The fully-qualified URL string.
    """
    if "://" in url:
        return url
    # ":8000/path" is shorthand for localhost
    if url.startswith(":"):
        url = "localhost" + url
    return f"{default_scheme}://{url}"


def default_headers(body: Body, request_type: RequestType) -> dict[str, str]:
    """Headers implied by the body representation."""
    headers: dict[str, str] = {}
    if request_type is RequestType.JSON and not isinstance(body, (FileBody, RawBody)):
        headers["Accept"] = JSON_ACCEPT
        if not body.is_empty():
            headers["Content-Type"] = JSON_CONTENT_TYPE
    elif isinstance(body, FormBody) and not body.is_empty():
        headers["Content-Type"] = FORM_CONTENT_TYPE
    elif isinstance(body, MultipartBody):
        headers["Content-Type"] = body.content_type
    elif isinstance(body, FileBody) and body.file_type is not None:
        headers["Content-Type"] = body.file_type
    return headers


def body_to_kwargs(body: Body) -> dict:
    """Map a body onto the keyword arguments of ``requests.Request``."""
    if body.is_empty():
        return {}
    if isinstance(body, JsonBody):
        return {"json": body.data}
    if isinstance(body, FormBody):
        return {"data": body.fields}
    if isinstance(body, MultipartBody):
        return {"data": body.stream()}
    if isinstance(body, RawBody):
        return {"data": body.data}
    if isinstance(body, FileBody):
        return {"data": body.open()}
    raise AssertionError(f"unknown body {body!r}")


def build_body(
    items: RequestItems, request_type: RequestType, raw: Optional[bytes] = None
) -> Body:
    """Build the body from ``items``, or from ``raw`` when given.

    Raises:
        ModeError: If ``raw`` is given together with body data items.
    """
    body = items.body(request_type)
    if raw is None:
        return body
    if not body.is_empty():
        if isinstance(body, MultipartBody):
            body.close()
        raise ModeError(
            "Request body (from stdin) and request data (key=value) cannot be mixed."
        )
    return RawBody(raw)


def build_request(
    method: Optional[str],
    url: str,
    items: RequestItems,
    request_type: RequestType = RequestType.JSON,
    raw: Optional[bytes] = None,
) -> tuple[requests.Request, list[str]]:
    """Assemble a ``requests.Request`` from request items.

    Args:
        method: HTTP method, or None to pick one from the body.
        url: Target URL, a missing scheme defaults to http.
        items: Parsed request items, consumed by this call.
        request_type: How data fields are encoded.
        raw: Optional raw body that replaces the item-derived body.

    Returns:
        A tuple of (request, names of headers to remove after preparation).
    """
    # Views first: body() consumes the items
    user_headers, headers_to_unset = items.headers()
    query = items.query()
    body = build_body(items, request_type, raw)

    headers = CaseInsensitiveDict(default_headers(body, request_type))
    headers.update(user_headers)
    for name in headers_to_unset:
        # None drops the header from the session defaults as well
        headers[name] = None

    method = (method or body.pick_method()).upper()
    logger.debug("built request", method=method, url=url, body=type(body).__name__)

    request = requests.Request(
        method=method,
        url=build_url(url),
        headers=headers,
        params=query,
        **body_to_kwargs(body),
    )
    return request, headers_to_unset


def prepare_request(
    method: Optional[str],
    url: str,
    items: RequestItems,
    request_type: RequestType = RequestType.JSON,
    raw: Optional[bytes] = None,
    session: Optional[requests.Session] = None,
) -> requests.PreparedRequest:
    """Build and prepare the request, merging the session's default headers."""
    request, headers_to_unset = build_request(method, url, items, request_type, raw)
    session = session or requests.Session()
    try:
        prepared = session.prepare_request(request)
    except Exception:
        close = getattr(request.data, "close", None)
        if close is not None:
            close()
        raise
    for name in headers_to_unset:
        prepared.headers.pop(name, None)
    return prepared


def close_request(prepared: requests.PreparedRequest) -> None:
    """Release the files held open by a streamed request body."""
    close = getattr(prepared.body, "close", None)
    if close is not None:
        close()


def describe_body(prepared: requests.PreparedRequest) -> str:
    body = prepared.body
    if body is None:
        return "<none>"
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        if len(body) > MAX_BODY_PREVIEW:
            return body[:MAX_BODY_PREVIEW] + "..."
        return body
    if hasattr(body, "boundary"):
        return f"<multipart body, {len(body)} bytes>"
    name = getattr(body, "name", None)
    if name is not None:
        return f"<file body: {name}>"
    return f"<{type(body).__name__} body>"


def print_request(prepared: requests.PreparedRequest) -> None:
    """Print the request that would be sent to stdout.

    Args:
        prepared: The prepared request.
    """
    banner = "=" * 60
    print(f"\n{banner}")
    print(f"  {prepared.method} {prepared.url}")
    print(banner)
    print("\n  Headers:")
    for key, value in prepared.headers.items():
        print(f"    {key}: {value}")
    print(f"\n  Body:\n    {describe_body(prepared)}")
    print(f"\n{banner}\n")
