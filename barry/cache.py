"""Reading and writing rendered pages in the output cache."""

from __future__ import annotations

import gzip
from pathlib import Path

from .config import Config


def get_cached_html(config: Config, route: str) -> bytes | None:
    """Return the cached ``index.html`` for ``route``, or None if absent."""
    cache_path = Path(config.output_dir, route, "index.html")
    try:
        return cache_path.read_bytes()
    except OSError:
        return None


def save_cached_html(config: Config, route_key: str, html: bytes) -> None:
    """Store ``html`` gzip-compressed as ``index.html.gz`` under the route key."""
    out_dir = Path(config.output_dir, route_key)
    out_dir.mkdir(parents=True, exist_ok=True)
    gz_path = out_dir / "index.html.gz"
    with gzip.open(gz_path, "wb") as fh:
        fh.write(html)