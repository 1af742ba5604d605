"""Request item parsing.

Turns the compact command-line syntax (``name=value``, ``name:=1``,
``name@file.png`` ...) into typed request items.

Parsing happens in three steps:

  - the tokenizer finds the first unescaped separator in the raw token,
  - the escape scanner unescapes the key and the value independently,
  - the classifier maps ``(key, separator, value)`` to a request item,
    decoding JSON literals and ``;type=`` suffixes on the way.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from http_items.errors import FileDecodeError, ItemSyntaxError, JsonValueError
from http_items.logger import logger

# Characters that may be escaped with a backslash
SPECIAL_CHARS = "=@:;\\"

# Tried in this order at every scan position; compound separators come
# before their single-character prefixes.
SEPARATORS = ("=@", ":=@", "==", ":=", "=", "@", ":")

FILE_TYPE_MARKER = ";type="


@dataclass(frozen=True)
class HttpHeader:
    name: str
    value: str


@dataclass(frozen=True)
class HttpHeaderToUnset:
    name: str


@dataclass(frozen=True)
class UrlParam:
    name: str
    value: str


@dataclass(frozen=True)
class DataField:
    name: str
    value: str


@dataclass(frozen=True)
class DataFieldFromFile:
    name: str
    path: str


@dataclass(frozen=True)
class JsonField:
    name: str
    value: Any


@dataclass(frozen=True)
class JsonFieldFromFile:
    name: str
    path: str


@dataclass(frozen=True)
class FormFile:
    """A file to upload.

    An empty ``key`` means the file is the whole request body rather than a
    named form field.
    """

    key: str
    file_name: str
    file_type: Optional[str] = None


RequestItem = Union[
    HttpHeader,
    HttpHeaderToUnset,
    UrlParam,
    DataField,
    DataFieldFromFile,
    JsonField,
    JsonFieldFromFile,
    FormFile,
]

FIELD_ITEMS = (DataField, DataFieldFromFile, JsonField, JsonFieldFromFile)
JSON_ITEMS = (JsonField, JsonFieldFromFile)


def unescape(text: str) -> str:
    """Resolve backslash escapes of the special characters in ``text``.

    Only ``= @ : ; \\`` can be escaped. A backslash in front of any other
    character, or at the very end, is kept as-is so that paths such as
    ``C:\\temp`` survive untouched.
    """
    out: list[str] = []
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if ch == "\\" and i + 1 < length:
            nxt = text[i + 1]
            if nxt in SPECIAL_CHARS:
                out.append(nxt)
            else:
                out.append(ch)
                out.append(nxt)
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def split_request_item(text: str) -> tuple[str, str, str] | None:
    """Split ``text`` on its first unescaped separator.

    Returns:
        ``(key, separator, value)`` with key and value unescaped, or None
        when the token holds no separator.
    """
    i = 0
    length = len(text)
    while i < length:
        if text[i] == "\\":
            # Whatever follows a backslash can't start a separator
            i += 2
            continue
        for sep in SEPARATORS:
            if text.startswith(sep, i):
                key = text[:i]
                value = text[i + len(sep) :]
                return unescape(key), sep, unescape(value)
        i += 1
    return None


def _ends_with_unescaped(text: str, char: str) -> bool:
    if not text.endswith(char):
        return False
    backslashes = 0
    for ch in reversed(text[:-1]):
        if ch != "\\":
            break
        backslashes += 1
    return backslashes % 2 == 0


def _reject_constant(name: str):
    # NaN and Infinity are not JSON
    raise ValueError(f"invalid JSON constant {name!r}")


def parse_json_literal(text: str, origin: str) -> Any:
    """Decode ``text`` as a JSON document.

    Raises:
        JsonValueError: If ``text`` is not valid JSON. The message names
            ``origin`` (the raw token or the file path) and the decoder's
            reason.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        raise JsonValueError(f"{origin!r}: {exc}") from exc


def split_file_type(value: str) -> tuple[str, Optional[str]]:
    """Split ``file;type=mime`` on the last ``;type=`` marker."""
    file_name, marker, file_type = value.rpartition(FILE_TYPE_MARKER)
    if not marker:
        return value, None
    return file_name, file_type


def classify(key: str, sep: str, value: str, raw: str) -> RequestItem:
    """Build the request item for an already split token."""
    if sep == "==":
        return UrlParam(key, value)
    if sep == "=":
        return DataField(key, value)
    if sep == ":=":
        return JsonField(key, parse_json_literal(value, raw))
    if sep == "@":
        file_name, file_type = split_file_type(value)
        return FormFile(key, file_name, file_type)
    if sep == ":":
        if not value:
            return HttpHeaderToUnset(key)
        return HttpHeader(key, value)
    if sep == "=@":
        return DataFieldFromFile(key, value)
    if sep == ":=@":
        return JsonFieldFromFile(key, value)
    raise AssertionError(f"unknown separator {sep!r}")


def parse_request_item(text: str) -> RequestItem:
    """Parse a single raw request item.

    Args:
        text: The token as typed on the command line, e.g. ``foo:=[1,2]``.

    Returns:
        The classified request item.

    Raises:
        ItemSyntaxError: If ``text`` has no separator and no trailing ``;``.
        JsonValueError: If a ``:=`` value is not valid JSON.
    """
    parts = split_request_item(text)
    if parts is not None:
        item = classify(*parts, raw=text)
    elif _ends_with_unescaped(text, ";"):
        # "name;" sets a header to an empty value
        item = HttpHeader(unescape(text[:-1]), "")
    else:
        raise ItemSyntaxError(f"{text!r} is not a valid request item")

    logger.debug("parsed request item", raw=text, item=repr(item))
    return item


def parse_request_items(texts) -> list[RequestItem]:
    """Parse every token in ``texts``, keeping their order."""
    return [parse_request_item(text) for text in texts]


def load_field_file(path: str) -> str:
    """Read the text contents of a file named by ``=@`` / ``:=@`` / ``key=@``.

    Line endings are kept as they are in the file.

    Raises:
        OSError: If the file cannot be opened or read.
        FileDecodeError: If the file is not valid UTF-8.
    """
    with open(path, "r", encoding="utf-8", newline="") as fh:
        try:
            return fh.read()
        except UnicodeDecodeError as exc:
            raise FileDecodeError(f"{path!r} is not valid UTF-8 text: {exc}") from exc
