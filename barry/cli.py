"""The ``barry`` command line."""

from __future__ import annotations

import argparse
import os
import shutil
import sys
from pathlib import Path
from typing import Sequence

import jinja2

from .config import load_config
from .server import CONFIG_FILE, RuntimeConfig, start
from .starter import copy_starter

ROUTES_DIR = "routes"
COMPONENTS_DIR = "components"
PAGE_FILE = "index.html"
LAYOUT_MARKER = "<!-- layout:"


class CommandError(Exception):
    """A command failed; the message is shown to the user."""


def _html_files(base: str) -> list[str]:
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        found.extend(os.path.join(dirpath, n) for n in sorted(filenames) if n.endswith(".html"))
    return found


def _page_dirs() -> list[str]:
    dirs: list[str] = []
    for dirpath, dirnames, _ in os.walk(ROUTES_DIR):
        dirnames.sort()
        if os.path.exists(os.path.join(dirpath, PAGE_FILE)):
            dirs.append(dirpath)
    return dirs


def _find_layout(text: str) -> str:
    for raw in text.split("\n"):
        line = raw.strip()
        if line.startswith(LAYOUT_MARKER) and line.endswith("-->"):
            return line[len(LAYOUT_MARKER):-3].strip()
    return ""


def init_project(target_dir: str | Path | None = None) -> list[Path]:
    """Create a new project from the starter in ``target_dir`` (default: cwd)."""
    target = Path(target_dir) if target_dir is not None else Path.cwd()
    print("🚀 Creating Barry project in:", target)
    try:
        written = copy_starter(target)
    except OSError as exc:
        raise CommandError(f"failed to create project: {exc}") from exc
    print("✅ Project created successfully.")
    print("▶  Run: barry dev")
    return written


def clean(route: str | None = None) -> bool:
    """Delete the output directory, or one route below it. True if removed."""
    config = load_config(CONFIG_FILE)
    target = config.output_dir
    if route:
        target = os.path.join(config.output_dir, route.removeprefix("/"))

    if not os.path.lexists(target):
        print("🧼 Nothing to clean:", target)
        return False
    if not os.path.isdir(target):
        raise CommandError(f"not a directory: {target}")

    print("🧹 Cleaning:", target)
    try:
        shutil.rmtree(target)
    except OSError as exc:
        raise CommandError(f"failed to clean cache: {exc}") from exc
    print("✅ Done.")
    return True


def check() -> list[str]:
    """Parse every page with its layout and components; return checked routes."""
    components = _html_files(COMPONENTS_DIR)
    environment = jinja2.Environment(autoescape=True)
    checked: list[str] = []
    failed = False

    for page_dir in _page_dirs():
        html_path = os.path.join(page_dir, PAGE_FILE)
        try:
            layout = _find_layout(Path(html_path).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError):
            layout = ""
        files = ([layout] if layout else []) + [html_path] + components
        rel = page_dir.removeprefix(ROUTES_DIR).replace(os.sep, "/")

        try:
            for file in files:
                environment.parse(Path(file).read_text(encoding="utf-8"), file, file)
        except (OSError, UnicodeDecodeError, jinja2.TemplateSyntaxError) as exc:
            failed = True
            print(f"❌ {rel} → {exc}")
        else:
            print(f"✅ {rel}")
        checked.append(rel)

    if failed:
        raise CommandError("some templates failed to compile")
    print("✅ All templates validated successfully.")
    return checked


def info() -> dict[str, int]:
    """Print configuration and counts of routes, components and cached pages."""
    config = load_config(CONFIG_FILE)
    print("📁 Output Directory:", config.output_dir)
    print("🔁 Cache Enabled:", str(config.cache_enabled).lower())
    print("🔁 Debug Headers Enabled:", str(config.debug_headers).lower())
    print()

    summary = {
        "routes": len(_page_dirs()),
        "components": len(_html_files(COMPONENTS_DIR)),
        "cached_pages": len(_html_files(config.output_dir)),
    }
    print("🗂️  Routes Found:", summary["routes"])
    print("📦 Components Found:", summary["components"])
    print("💾 Cached Pages:", summary["cached_pages"])
    return summary


def _run_dev(_args: argparse.Namespace) -> None:
    start(RuntimeConfig(env="dev", enable_cache=False, port=8080))


def _run_prod(_args: argparse.Namespace) -> None:
    start(RuntimeConfig(env="prod", enable_cache=True, port=8080))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="barry", description="A dynamic HTML framework powered by Python"
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init", help="Create a new Barry project from the default starter").set_defaults(
        func=lambda _a: init_project()
    )
    sub.add_parser("dev", help="Start Barry in dev mode (no caching, live reload)").set_defaults(
        func=_run_dev
    )
    sub.add_parser(
        "prod", help="Start Barry in production mode (caching on by default)"
    ).set_defaults(func=_run_prod)
    clean_parser = sub.add_parser(
        "clean",
        help="Delete cached HTML from the output directory (default: outputDir in barry.config.yml)",
    )
    clean_parser.add_argument("route", nargs="?", default=None)
    clean_parser.set_defaults(func=lambda a: clean(a.route))
    sub.add_parser("check", help="Validate templates, components, and layouts").set_defaults(
        func=lambda _a: check()
    )
    sub.add_parser("info", help="Print project structure and cache summary").set_defaults(
        func=lambda _a: info()
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; return the process exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    try:
        args.func(args)
    except CommandError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())