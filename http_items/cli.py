"""Command-line interface.

Provides the argparse front-end of the offline ``http-items`` tool: it takes
a URL and request items and prints the request they describe.
"""

import argparse
import re
import sys

from http_items import __version__
from http_items.items import RequestType

# An upper-case first positional followed by more arguments is the method
METHOD_PATTERN = re.compile(r"^[A-Z]+$")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for the http-items CLI."""
    parser = argparse.ArgumentParser(
        prog="http-items",
        description=(
            "http-items v{ver} - Show the HTTP request described by a URL "
            "and a list of request items.\n\n"
            "Request items:\n"
            "  key=value        data field\n"
            "  key=@path        data field read from a file\n"
            "  key==value       query parameter\n"
            "  key:value        header\n"
            "  key:             remove a default header\n"
            "  key;             header with an empty value\n"
            "  key:=json        JSON field\n"
            "  key:=@path       JSON field read from a file\n"
            "  key@path         file upload, optionally followed by ;type=MIME\n\n"
            "Prefix = @ : ; \\ with a backslash to use them literally."
        ).format(ver=__version__),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  http-items example.com/api name=John age:=29\n"
            "  http-items --form PUT example.com/api name=John avatar@me.png\n"
        ),
    )

    parser.add_argument(
        "target",
        nargs="+",
        metavar="ARG",
        help="[METHOD] URL [REQUEST_ITEM ...]",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--json",
        "-j",
        action="store_const",
        const=RequestType.JSON,
        dest="request_type",
        help="Serialize data items as a JSON object (default).",
    )
    mode.add_argument(
        "--form",
        "-f",
        action="store_const",
        const=RequestType.FORM,
        dest="request_type",
        help="Serialize data items as form fields; files switch to multipart.",
    )
    mode.add_argument(
        "--multipart",
        action="store_const",
        const=RequestType.MULTIPART,
        dest="request_type",
        help="Always send a multipart/form-data request.",
    )
    parser.set_defaults(request_type=RequestType.JSON)

    parser.add_argument(
        "--raw",
        default=None,
        help="Use this text as the request body instead of data items.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log parsing and body assembly to stderr.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def split_target(args: argparse.Namespace) -> None:
    """Split the positional arguments into method, URL and request items."""
    target = list(args.target)
    if len(target) > 1 and METHOD_PATTERN.match(target[0]):
        args.method = target.pop(0)
    else:
        args.method = None
    args.url = target[0]
    args.request_items = target[1:]


def validate_args(args: argparse.Namespace) -> None:
    """Validate parsed CLI arguments.

    Raises:
        SystemExit: If the URL is empty.
    """
    if not args.url.strip():
        print("Error: URL cannot be empty.", file=sys.stderr)
        sys.exit(1)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse and validate command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed and validated argument namespace.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    split_target(args)
    validate_args(args)
    return args
