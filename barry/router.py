"""File-system based page routing, rendering and response caching."""

from __future__ import annotations

import asyncio
import hashlib
import os
import re
import threading
import time
from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import Any, Callable, Mapping

import jinja2
from aiohttp import web
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .assets import template_funcs
from .cache import save_cached_html
from .config import Config
from .errors import NotFoundError, is_not_found_error
from .executor import ExecutionError, execute_server_file

ROUTES_DIR = "routes"
COMPONENTS_DIR = "components"
WATCH_DIRS = ("routes", "components", "public")
PAGE_FILE = "index.html"
SERVER_FILE = "index.server.py"
ERROR_DIR = "routes/_error"
LAYOUT_MARKER = "<!-- layout:"
LAYOUT_SCAN_LINES = 50

LIVE_RELOAD_SCRIPT = """
<script>
	if (typeof WebSocket !== "undefined") {
		const ws = new WebSocket("ws://" + location.host + "/__barry_reload");
		ws.onmessage = e => {
			if (e.data === "reload") location.reload();
		};
	}
</script>
</body>"""

_WATCHED_EVENTS = frozenset({"created", "modified", "deleted", "moved"})


@dataclass
class Route:
    """A page directory and the URL pattern that reaches it."""

    url_pattern: re.Pattern[str]
    param_keys: list[str]
    html_path: str
    server_path: str
    file_path: str


@dataclass
class RuntimeContext:
    """How the router runs: environment, file watching and reload hook."""

    env: str = "dev"
    enable_watch: bool = False
    on_reload: Callable[[], Any] | None = None


class _SourceLoader(jinja2.BaseLoader):
    """Serve template sources from an in-memory name -> text mapping."""

    def __init__(self, sources: Mapping[str, str]) -> None:
        self._sources = dict(sources)

    def get_source(self, environment: jinja2.Environment, template: str):
        try:
            source = self._sources[template]
        except KeyError:
            raise jinja2.TemplateNotFound(template) from None
        return source, None, lambda: True

    def list_templates(self) -> list[str]:
        return sorted(self._sources)


def _compile_page(
    page: str, layout: str, components: list[str], env: str, cache_dir: str
) -> jinja2.Template:
    """Parse a page with its layout and components; return the page template.

    Pages may ``{% extends "layout" %}`` to use the layout named in their
    ``<!-- layout: ... -->`` comment, and include components by path or by
    file name.
    """
    files = ([layout] if layout else []) + [page] + list(components)
    sources: dict[str, str] = {}
    for name in files:
        sources[name] = Path(name).read_text(encoding="utf-8")
    for name in components:
        sources.setdefault(os.path.basename(name), sources[name])
    if layout:
        sources["layout"] = sources[layout]

    environment = jinja2.Environment(loader=_SourceLoader(sources), autoescape=True)
    environment.globals.update(template_funcs(env, cache_dir))
    for name in sources:
        environment.get_template(name)
    return environment.get_template(page)


def _walk_files(base: str, suffix: str) -> list[str]:
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        found.extend(
            os.path.join(dirpath, name) for name in sorted(filenames) if name.endswith(suffix)
        )
    return found


def _plain_error(status: int, message: str) -> web.Response:
    return web.Response(
        status=status,
        text=message + "\n",
        headers={"X-Content-Type-Options": "nosniff"},
    )


def extract_layout_path(file: str | os.PathLike[str]) -> str:
    """Return the layout named by a ``<!-- layout: ... -->`` line near the top."""
    try:
        with open(file, encoding="utf-8", errors="replace") as fh:
            for raw in islice(fh, LAYOUT_SCAN_LINES):
                line = raw.strip()
                if line.startswith(LAYOUT_MARKER) and line.endswith("-->"):
                    return line[len(LAYOUT_MARKER):-3].strip()
    except OSError:
        return ""
    return ""


def hash_template_files(paths: list[str]) -> str:
    """Hash file names and modification times into a template cache key."""
    digest = hashlib.sha256()
    for path in paths:
        digest.update(path.encode())
        try:
            digest.update(str(os.stat(path).st_mtime_ns).encode())
        except OSError:
            pass
    return digest.hexdigest()


def generate_etag(data: bytes) -> str:
    """Weak ETag built from the first eight bytes of the SHA-256 digest."""
    return f'W/"{hashlib.sha256(data).digest()[:8].hex()}"'


def accepts_gzip(headers: Mapping[str, str]) -> bool:
    """True when the request's Accept-Encoding mentions gzip."""
    return "gzip" in (headers.get("Accept-Encoding") or "")


def should_log_request(path: str) -> bool:
    """Dev-mode request logging skips well-known, favicon and robots paths."""
    return not path.startswith(("/.well-known", "/favicon.ico", "/robots.txt"))


def inject_live_reload(html: bytes) -> bytes:
    """Insert the live-reload client before the first ``</body>``."""
    return html.replace(b"</body>", LIVE_RELOAD_SCRIPT.encode(), 1)


def render_error_page(
    config: Config,
    env: str,
    status: int,
    message: str,
    path: str,
    component_files: list[str],
) -> web.Response:
    """Render ``routes/_error/<status>.html`` or ``index.html``, else plain text."""
    context = {
        "Title": f"{status} - {message}",
        "StatusCode": status,
        "Message": message,
        "Path": path,
        "Description": message,
    }
    for file in (f"{ERROR_DIR}/{status}.html", f"{ERROR_DIR}/index.html"):
        try:
            template = _compile_page(
                file, extract_layout_path(file), component_files, env, config.output_dir
            )
        except (jinja2.TemplateError, OSError) as exc:
            print("❌ Error parsing error page:", exc)
            continue
        try:
            body = template.render(context)
        except Exception as exc:  # noqa: BLE001 - template helpers may raise anything
            print("❌ Error executing error layout:", exc)
            continue
        return web.Response(status=status, text=body, content_type="text/html")
    return web.Response(status=status, text=f"{status} - {message}")


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, router: Router) -> None:
        super().__init__()
        self._router = router

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _WATCHED_EVENTS:
            self._router._on_change(str(event.src_path))


class Router:
    """Maps request paths to page directories under ``routes/`` and renders them."""

    def __init__(self, config: Config, ctx: RuntimeContext) -> None:
        self.config = config
        self.env = ctx.env
        self.on_reload = ctx.on_reload
        self.routes: list[Route] = []
        self.component_files: list[str] = []
        self._template_cache: dict[str, jinja2.Template] = {}
        self._lock = threading.Lock()
        self._observer: Any = None

        self.load_routes()
        self.load_component_files()

        if ctx.enable_watch:
            self.start_watching()

    def load_routes(self) -> None:
        """Scan ``routes/`` for directories holding ``index.html``."""
        routes: list[Route] = []
        for dirpath, dirnames, _ in os.walk(ROUTES_DIR):
            dirnames.sort()
            html_path = os.path.join(dirpath, PAGE_FILE)
            if not os.path.exists(html_path):
                continue

            rel = dirpath[len(ROUTES_DIR):].replace(os.sep, "/")
            param_keys: list[str] = []
            pieces: list[str] = []
            for part in rel.strip("/").split("/"):
                if part.startswith("_"):
                    param_keys.append(part[1:])
                    pieces.append("([^/]+)")
                else:
                    pieces.append(re.escape(part))

            routes.append(
                Route(
                    url_pattern=re.compile("^" + "/".join(pieces) + "$"),
                    param_keys=param_keys,
                    html_path=html_path,
                    server_path=os.path.join(dirpath, SERVER_FILE),
                    file_path=dirpath,
                )
            )
        self.routes = routes

    def load_component_files(self) -> None:
        """Collect every ``.html`` file under ``components/``."""
        self.component_files = _walk_files(COMPONENTS_DIR, ".html")

    def match(self, path: str) -> tuple[Route, dict[str, str]] | None:
        """Return the first route matching ``path`` and its parameters."""
        path = path.strip("/")
        for route in self.routes:
            found = route.url_pattern.match(path)
            if found:
                return route, dict(zip(route.param_keys, found.groups()))
        return None

    async def handle(self, request: web.Request) -> web.StreamResponse:
        """aiohttp handler serving pages for any path."""
        start = time.monotonic()
        path = request.path.strip("/")

        if not path:
            response = await self._serve_page(
                f"{ROUTES_DIR}/{PAGE_FILE}", f"{ROUTES_DIR}/{SERVER_FILE}", request, {}, ""
            )
        else:
            found = self.match(path)
            if found is None:
                response = self._not_found(request)
            else:
                route, params = found
                response = await self._serve_page(
                    route.html_path, route.server_path, request, params, path
                )

        if self.env == "dev" and should_log_request(request.path):
            elapsed = int((time.monotonic() - start) * 1000)
            print(f"{request.path} {response.status} {elapsed}ms")
        return response

    def _not_found(self, request: web.Request) -> web.Response:
        return render_error_page(
            self.config, self.env, 404, "Page not found", request.path, self.component_files
        )

    def _serve_cached(self, route_key: str, request: web.Request) -> web.Response | None:
        cached_file = Path(self.config.output_dir, route_key, PAGE_FILE)
        gz_file = cached_file.with_name(cached_file.name + ".gz")
        match = request.headers.get("If-None-Match")

        candidates: list[tuple[Path, dict[str, str]]] = []
        if self.env == "prod" and accepts_gzip(request.headers):
            candidates.append((gz_file, {"Content-Encoding": "gzip", "Vary": "Accept-Encoding"}))
        candidates.append((cached_file, {}))

        for file, extra in candidates:
            try:
                data = file.read_bytes()
            except OSError:
                continue
            etag = generate_etag(data)
            if match == etag:
                return web.Response(status=304)
            headers = {"ETag": etag, **extra, "Content-Type": "text/html"}
            if self.config.debug_headers:
                headers["X-Barry-Cache"] = "HIT"
            return web.Response(body=data, headers=headers)
        return None

    async def _serve_page(
        self,
        html_path: str,
        server_path: str,
        request: web.Request,
        params: dict[str, str],
        resolved_path: str,
    ) -> web.Response:
        if not os.path.exists(html_path):
            return self._not_found(request)

        route_key = resolved_path.removeprefix("/")

        if self.config.cache_enabled:
            cached = self._serve_cached(route_key, request)
            if cached is not None:
                return cached

        data: dict[str, Any] = {}
        if os.path.exists(server_path):
            try:
                data = await asyncio.to_thread(
                    execute_server_file, server_path, params, self.env == "dev"
                )
            except (NotFoundError, ExecutionError, OSError) as exc:
                if is_not_found_error(exc):
                    return self._not_found(request)
                return _plain_error(500, f"Server logic error: {exc}")

        layout = extract_layout_path(html_path)
        files = ([layout] if layout else []) + [html_path] + self.component_files
        key = hash_template_files(files)
        with self._lock:
            template = self._template_cache.get(key)
        if template is None:
            try:
                template = _compile_page(
                    html_path, layout, self.component_files, self.env, self.config.output_dir
                )
            except (jinja2.TemplateError, OSError) as exc:
                return _plain_error(500, f"Template error: {exc}")
            with self._lock:
                self._template_cache[key] = template

        try:
            html = template.render(data).encode("utf-8")
        except Exception as exc:  # noqa: BLE001 - template helpers may raise anything
            return _plain_error(500, f"Template execution error: {exc}")

        if self.env == "dev":
            html = inject_live_reload(html)

        if self.config.cache_enabled:
            try:
                save_cached_html(self.config, route_key, html)
            except OSError:
                pass

        headers = {"Content-Type": "text/html"}
        if self.config.debug_headers:
            headers["X-Barry-Cache"] = "MISS"
        return web.Response(body=html, headers=headers)

    def _on_change(self, name: str) -> None:
        self.load_routes()
        if self.env == "dev":
            print("🔄 Change detected:", name)
            if self.on_reload is not None:
                self.on_reload()

    def start_watching(self) -> None:
        """Watch routes, components and public files; reload routes on change."""
        if self._observer is not None:
            return
        observer = Observer()
        handler = _ChangeHandler(self)
        for base in WATCH_DIRS:
            if os.path.isdir(base):
                observer.schedule(handler, base, recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer

    def stop_watching(self) -> None:
        """Stop the file watcher if it is running."""
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()