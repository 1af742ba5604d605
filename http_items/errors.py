"""Exceptions raised while parsing request items and assembling bodies.

Every user-facing failure derives from :class:`RequestItemError`, which is a
``ValueError`` so callers that only care about "bad input" can catch that.
File access failures are not wrapped: the ``OSError`` raised by ``open`` is
propagated as-is and carries the offending path in ``exc.filename``.
"""


class RequestItemError(ValueError):
    """Base class for request item and body construction errors."""


class ItemSyntaxError(RequestItemError):
    """A raw token contains no recognised separator."""


class JsonValueError(RequestItemError):
    """A ``:=`` value or ``:=@`` file is not a valid JSON document."""


class ModeError(RequestItemError):
    """The request items cannot be combined in the selected request mode."""


class HeaderError(RequestItemError):
    """A header name, header value or media type is rejected by the transport."""


class FileDecodeError(RequestItemError):
    """A file read for a ``=@`` or ``:=@`` field is not valid UTF-8 text."""
