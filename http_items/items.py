"""The request item collection and body assembly.

:class:`RequestItems` keeps the parsed items in input order. Headers and
query parameters are read from it as views; the body is built once, by
:meth:`RequestItems.body`, which consumes the collection.
"""

from __future__ import annotations

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator

from requests.structures import CaseInsensitiveDict

from http_items.body import (
    Body,
    FileBody,
    FormBody,
    JsonBody,
    MultipartBody,
    file_to_part,
    validate_header,
    validate_media_type,
)
from http_items.errors import ModeError
from http_items.logger import logger
from http_items.parser import (
    FIELD_ITEMS,
    JSON_ITEMS,
    DataField,
    DataFieldFromFile,
    FormFile,
    HttpHeader,
    HttpHeaderToUnset,
    JsonField,
    JsonFieldFromFile,
    RequestItem,
    UrlParam,
    load_field_file,
    parse_json_literal,
    parse_request_items,
)


class RequestType(Enum):
    """How data fields are sent: ``--json`` (default), ``--form`` or ``--multipart``."""

    JSON = "json"
    FORM = "form"
    MULTIPART = "multipart"


class RequestItems:
    """Ordered collection of request items."""

    def __init__(self, items: Iterable[RequestItem] = ()) -> None:
        self._items: list[RequestItem] | None = list(items)

    @classmethod
    def parse(cls, texts: Iterable[str]) -> "RequestItems":
        return cls(parse_request_items(texts))

    def __repr__(self) -> str:
        if self._items is None:
            return "RequestItems(<consumed>)"
        return f"RequestItems({self._items!r})"

    def __iter__(self) -> Iterator[RequestItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def items(self) -> list[RequestItem]:
        if self._items is None:
            raise RuntimeError("request items have already been consumed by body()")
        return self._items

    def _take(self) -> list[RequestItem]:
        items = self.items
        self._items = None
        return items

    def has_form_files(self) -> bool:
        return any(isinstance(item, FormFile) for item in self.items)

    def headers(self) -> tuple[CaseInsensitiveDict, list[str]]:
        """Collect header items.

        Returns:
            A tuple of (headers to set, names of default headers to remove).
            A later header overwrites an earlier one with the same name.

        Raises:
            HeaderError: If a header name or value is invalid.
        """
        headers = CaseInsensitiveDict()
        headers_to_unset: list[str] = []
        for item in self.items:
            if isinstance(item, HttpHeader):
                validate_header(item.name, item.value)
                headers[item.name] = item.value
            elif isinstance(item, HttpHeaderToUnset):
                validate_header(item.name, "")
                headers_to_unset.append(item.name)
        return headers, headers_to_unset

    def query(self) -> list[tuple[str, str]]:
        return [(item.name, item.value) for item in self.items if isinstance(item, UrlParam)]

    def body(self, request_type: RequestType) -> Body:
        """Build the request body for ``request_type``, consuming the items.

        Raises:
            ModeError: If the items can't be sent in this mode.
            JsonValueError: If a ``:=@`` file does not hold valid JSON.
            HeaderError: If a declared media type is invalid.
            OSError: If a referenced file can't be read.
        """
        has_form_files = self.has_form_files()
        items = self._take()
        if request_type is RequestType.MULTIPART:
            body = _body_as_multipart(items)
        elif request_type is RequestType.FORM and has_form_files:
            body = _body_as_multipart(items)
        elif request_type is RequestType.FORM:
            body = _body_as_form(items)
        elif request_type is RequestType.JSON and has_form_files:
            body = _body_from_file(items)
        elif request_type is RequestType.JSON:
            body = _body_as_json(items)
        else:
            raise AssertionError(f"unknown request type {request_type!r}")

        logger.debug("built request body", request_type=request_type.value, body=type(body).__name__)
        return body

    def is_multipart(self, request_type: RequestType) -> bool:
        """Tell whether :meth:`body` would build a multipart body, without building it."""
        if request_type is RequestType.MULTIPART:
            return True
        if request_type is RequestType.FORM:
            return self.has_form_files()
        return False

    def pick_method(self, request_type: RequestType) -> str:
        """Guess the HTTP method for the body :meth:`body` would build.

        Prefer ``Body.pick_method`` once a body exists; this variant works
        from the items alone and reads no files.
        """
        if request_type is RequestType.MULTIPART:
            return "POST"
        for item in self.items:
            if isinstance(item, FIELD_ITEMS + (FormFile,)):
                return "POST"
        return "GET"


def _body_as_json(items: list[RequestItem]) -> JsonBody:
    body = JsonBody()
    for item in items:
        if isinstance(item, JsonField):
            body.data[item.name] = item.value
        elif isinstance(item, JsonFieldFromFile):
            body.data[item.name] = parse_json_literal(load_field_file(item.path), item.path)
        elif isinstance(item, DataField):
            body.data[item.name] = item.value
        elif isinstance(item, DataFieldFromFile):
            body.data[item.name] = load_field_file(item.path)
        elif isinstance(item, FormFile):
            raise AssertionError("file fields never reach the JSON body")
    return body


def _body_as_form(items: list[RequestItem]) -> FormBody:
    body = FormBody()
    for item in items:
        if isinstance(item, JSON_ITEMS):
            raise ModeError("JSON values are not supported in Form fields")
        if isinstance(item, DataField):
            body.fields.append((item.name, item.value))
        elif isinstance(item, DataFieldFromFile):
            body.fields.append((item.name, load_field_file(item.path)))
        elif isinstance(item, FormFile):
            raise AssertionError("file fields never reach the form body")
    return body


def _body_as_multipart(items: list[RequestItem]) -> MultipartBody:
    body = MultipartBody()
    try:
        for item in items:
            if isinstance(item, JSON_ITEMS):
                raise ModeError("JSON values are not supported in multipart fields")
            if isinstance(item, DataField):
                body.text(item.name, item.value)
            elif isinstance(item, DataFieldFromFile):
                body.text(item.name, load_field_file(item.path))
            elif isinstance(item, FormFile):
                part = file_to_part(item.file_name)
                body.part(item.key, part)
                if item.file_type is not None:
                    part.content_type = validate_media_type(item.file_type)
    except Exception:
        body.close()
        raise
    return body


def _body_from_file(items: list[RequestItem]) -> FileBody:
    if any(isinstance(item, FormFile) and item.key for item in items):
        raise ModeError("Can't use file fields in JSON mode (perhaps you meant --form?)")

    body = None
    for item in items:
        if isinstance(item, FIELD_ITEMS):
            raise ModeError(
                "Request body (from a file) and request data (key=value) cannot be mixed."
            )
        if isinstance(item, FormFile):
            if body is not None:
                raise ModeError("Can't read request from multiple files")
            file_type = item.file_type or mimetypes.guess_type(item.file_name)[0]
            if file_type is not None:
                validate_header("Content-Type", file_type)
            body = FileBody(Path(item.file_name), file_type)

    assert body is not None, "should have had at least one file field"
    return body
