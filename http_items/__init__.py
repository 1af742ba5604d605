"""http-items: request item parsing and body assembly for HTTP clients."""

__version__ = "0.1.0"
