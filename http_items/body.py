"""Request body representations.

Exactly one body is produced per request. Multipart bodies are streamed:
file parts keep an open file handle and only report their length (taken from
the file's metadata) until the body is actually iterated.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional, Union

import requests
from urllib3.fields import RequestField
from urllib3.filepost import choose_boundary

from http_items.errors import HeaderError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
JSON_ACCEPT = "application/json, */*;q=0.5"

# Size of the blocks read from uploaded files while streaming
CHUNK_SIZE = 64 * 1024

# RFC 7230 token characters, see tchar
TCHAR = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]"
MEDIA_TYPE = re.compile(r"^" + TCHAR + r"+/" + TCHAR + r"+\s*(;.*)?$")


def validate_header(name: str, value: str) -> None:
    """Reject header names and values that ``requests`` would refuse to send.

    Raises:
        HeaderError: If the name or value is invalid.
    """
    try:
        requests.utils.check_header_validity((name, value))
    except requests.exceptions.InvalidHeader as exc:
        raise HeaderError(str(exc)) from exc


def validate_media_type(media_type: str) -> str:
    """Check that ``media_type`` looks like ``type/subtype[; params]``."""
    if not MEDIA_TYPE.match(media_type):
        raise HeaderError(f"{media_type!r} is not a valid media type")
    validate_header("Content-Type", media_type)
    return media_type


class FilePart:
    """An uploaded file inside a multipart body."""

    __slots__ = ("path", "file", "length", "file_name", "content_type")

    def __init__(
        self,
        path: str,
        file,
        length: int,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        self.path = path
        self.file = file
        self.length = length
        self.file_name = file_name
        self.content_type = content_type

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilePart):
            return NotImplemented
        return (
            self.path == other.path
            and self.length == other.length
            and self.file_name == other.file_name
            and self.content_type == other.content_type
        )

    def __repr__(self) -> str:
        return (
            f"FilePart(path={self.path!r}, length={self.length}, "
            f"file_name={self.file_name!r}, content_type={self.content_type!r})"
        )

    def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        self.file.seek(0)
        while True:
            chunk = self.file.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def close(self) -> None:
        self.file.close()


@dataclass(frozen=True)
class TextPart:
    value: str


def file_to_part(path: Union[str, os.PathLike]) -> FilePart:
    """Open ``path`` as a streamable multipart file part.

    The length comes from ``fstat``; the file is never read here.

    Raises:
        OSError: If the file cannot be opened or its metadata read.
    """
    path = os.fspath(path)
    file_name = Path(path).name or None
    fh = open(path, "rb")
    try:
        length = os.fstat(fh.fileno()).st_size
    except OSError:
        fh.close()
        raise
    return FilePart(path, fh, length, file_name)


class MultipartStream:
    """Iterable multipart/form-data encoding with a known total length.

    ``requests`` sends it with a ``Content-Length`` header because it
    defines ``__len__``.
    """

    def __init__(self, parts: list[tuple[str, Union[TextPart, FilePart]]], boundary: str) -> None:
        self.boundary = boundary
        self._segments: list[Union[bytes, FilePart]] = []
        for name, part in parts:
            if isinstance(part, FilePart):
                request_field = RequestField(name=name, data=b"", filename=part.file_name)
                request_field.make_multipart(content_type=part.content_type)
            else:
                request_field = RequestField(name=name, data=part.value)
                request_field.make_multipart()
            self._segments.append(
                f"--{boundary}\r\n".encode("latin-1")
                + request_field.render_headers().encode("utf-8")
            )
            if isinstance(part, FilePart):
                self._segments.append(part)
            else:
                self._segments.append(part.value.encode("utf-8"))
            self._segments.append(b"\r\n")
        self._segments.append(f"--{boundary}--\r\n".encode("latin-1"))

    def __len__(self) -> int:
        return sum(
            segment.length if isinstance(segment, FilePart) else len(segment)
            for segment in self._segments
        )

    def __iter__(self) -> Iterator[bytes]:
        for segment in self._segments:
            if isinstance(segment, FilePart):
                yield from segment.iter_chunks()
            else:
                yield segment

    def close(self) -> None:
        for segment in self._segments:
            if isinstance(segment, FilePart):
                segment.close()


class Body:
    """Common behaviour of every body representation."""

    def is_empty(self) -> bool:
        raise NotImplementedError

    def pick_method(self) -> str:
        return "GET" if self.is_empty() else "POST"

    def is_multipart(self) -> bool:
        return False


@dataclass
class JsonBody(Body):
    data: dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.data


@dataclass
class FormBody(Body):
    fields: list[tuple[str, str]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.fields


@dataclass
class MultipartBody(Body):
    """Ordered named parts, each inline text or a streamed file.

    Never considered empty: the ``Content-Type`` header has to carry the
    boundary used to encode the parts, even when there are none.
    """

    parts: list[tuple[str, Union[TextPart, FilePart]]] = field(default_factory=list)
    boundary: str = field(default_factory=choose_boundary, compare=False)

    def is_empty(self) -> bool:
        return False

    def is_multipart(self) -> bool:
        return True

    def text(self, name: str, value: str) -> None:
        self.parts.append((name, TextPart(value)))

    def part(self, name: str, part: FilePart) -> None:
        self.parts.append((name, part))

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def stream(self) -> MultipartStream:
        return MultipartStream(self.parts, self.boundary)

    def close(self) -> None:
        for _, part in self.parts:
            if isinstance(part, FilePart):
                part.close()


@dataclass
class RawBody(Body):
    data: bytes = b""

    def is_empty(self) -> bool:
        return not self.data


@dataclass
class FileBody(Body):
    """The whole request body is streamed from one local file."""

    file_name: Path
    file_type: Optional[str] = None

    def is_empty(self) -> bool:
        return False

    def open(self):
        return open(self.file_name, "rb")
