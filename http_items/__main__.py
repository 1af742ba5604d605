"""http-items - Main entry point.

Ties together the CLI, parser, items and engine modules to print the
request described on the command line.
"""

import sys

import requests

from http_items.cli import parse_cli
from http_items.engine import close_request, prepare_request, print_request
from http_items.errors import RequestItemError
from http_items.items import RequestItems
from http_items.logger import LoggerConfig, logger, setup_logging


def main(argv: list[str] | None = None) -> int:
    """Run the http-items tool.

    Args:
        argv: Optional argument list (defaults to sys.argv).

    Returns:
        Exit code (0 = request printed, 2 = error).
    """
    args = parse_cli(argv)
    setup_logging(LoggerConfig(debug=args.debug))

    try:
        items = RequestItems.parse(args.request_items)
    except RequestItemError as exc:
        print(f"Error parsing request item: {exc}", file=sys.stderr)
        return 2

    logger.debug(
        "request items parsed",
        count=len(items),
        multipart=items.is_multipart(args.request_type),
        method=args.method or items.pick_method(args.request_type),
    )

    raw = args.raw.encode("utf-8") if args.raw is not None else None
    try:
        prepared = prepare_request(
            method=args.method,
            url=args.url,
            items=items,
            request_type=args.request_type,
            raw=raw,
        )
    except RequestItemError as exc:
        print(f"Error building request: {exc}", file=sys.stderr)
        return 2
    except requests.RequestException as exc:
        print(f"Error preparing request: {exc}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"Error reading file: {exc}", file=sys.stderr)
        return 2

    try:
        print_request(prepared)
    finally:
        close_request(prepared)

    return 0


if __name__ == "__main__":
    sys.exit(main())
