"""Project configuration loaded from ``barry.config.yml``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_OUTPUT_DIR = "./cache"


@dataclass
class Config:
    """Settings controlling output location, caching and debug headers."""

    output_dir: str = DEFAULT_OUTPUT_DIR
    cache_enabled: bool = False
    debug_headers: bool = False


def load_config(path: str | Path) -> Config:
    """Read the YAML config at ``path``; fall back to defaults where absent."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        return Config()

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        data = None
    if not isinstance(data, dict):
        data = {}

    output_dir = data.get("outputDir")
    cache = data.get("cache")
    debug = data.get("debugHeaders")

    return Config(
        output_dir=output_dir if isinstance(output_dir, str) and output_dir else DEFAULT_OUTPUT_DIR,
        cache_enabled=cache if isinstance(cache, bool) else False,
        debug_headers=debug if isinstance(debug, bool) else False,
    )