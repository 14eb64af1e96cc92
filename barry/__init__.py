"""A file-based HTML framework with server-side data handlers, page caching and live reload."""

__version__ = "0.1.0"