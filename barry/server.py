"""HTTP application: static assets, live reload and page routing."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Mapping

from aiohttp import web

from .config import Config, load_config
from .livereload import LiveReloader
from .router import Router, RuntimeContext, accepts_gzip

PUBLIC_DIR = "public"
CONFIG_FILE = "barry.config.yml"
RELOAD_PATH = "/__barry_reload"
IMMUTABLE = "public, max-age=31536000, immutable"
NO_STORE = "no-store"
OCTET_STREAM = "application/octet-stream"

_GZIP_TYPES = {
    ".css": "text/css",
    ".js": "application/javascript",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}

_PUBLIC_TYPES = {
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@dataclass
class RuntimeConfig:
    """How the server is started: environment, caching and port."""

    env: str = "dev"
    enable_cache: bool = False
    port: int = 8080


def gzip_content_type(ext: str) -> str:
    """Content type for a pre-compressed asset with extension ``ext``."""
    return _GZIP_TYPES.get(ext, OCTET_STREAM)


def public_content_type(ext: str) -> str | None:
    """Explicit content type for a public file, or None to guess it."""
    return _PUBLIC_TYPES.get(ext)


def _ext(name: str) -> str:
    dot = name.rfind(".")
    return name[dot:] if dot != -1 else ""


def _not_found(headers: Mapping[str, str] | None = None) -> web.Response:
    return web.Response(status=404, text="404 page not found", headers=dict(headers or {}))


def _resolve(base: str | Path, rel: str) -> Path | None:
    """Join ``rel`` onto ``base``, refusing paths that escape it."""
    root = Path(base).resolve()
    candidate = (root / rel.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


def _file_response(path: Path, headers: Mapping[str, str]) -> web.Response:
    try:
        body = path.read_bytes()
    except OSError:
        return _not_found(headers)
    guessed = mimetypes.guess_type(path.name)[0] or OCTET_STREAM
    return web.Response(body=body, headers={"Content-Type": guessed, **headers})


def _serve_named(file: Path, cache_control: str) -> _Handler:
    async def handler(request: web.Request) -> web.StreamResponse:
        headers = {"Cache-Control": cache_control}
        if not file.is_file():
            return _not_found(headers)
        return _file_response(file, headers)

    return handler


def _dev_static() -> _Handler:
    async def handler(request: web.Request) -> web.StreamResponse:
        headers = {"Cache-Control": NO_STORE}
        path = _resolve(PUBLIC_DIR, request.match_info["tail"])
        if path is None or not path.is_file():
            return _not_found(headers)
        return _file_response(path, headers)

    return handler


def _prod_static(cache_static_dir: Path) -> _Handler:
    async def handler(request: web.Request) -> web.StreamResponse:
        trimmed = request.path.removeprefix("/static/")

        cached = _resolve(cache_static_dir, trimmed)
        if cached is not None:
            gz_file = Path(str(cached) + ".gz")
            if accepts_gzip(request.headers) and gz_file.is_file():
                return _file_response(
                    gz_file,
                    {
                        "Content-Type": gzip_content_type(_ext(cached.name)),
                        "Content-Encoding": "gzip",
                        "Vary": "Accept-Encoding",
                        "Cache-Control": IMMUTABLE,
                    },
                )
            if cached.is_file():
                return _file_response(cached, {"Cache-Control": IMMUTABLE})

        public = _resolve(PUBLIC_DIR, trimmed)
        if public is not None and public.is_file():
            headers = {"Cache-Control": IMMUTABLE}
            content_type = public_content_type(_ext(public.name))
            if content_type is not None:
                headers["Content-Type"] = content_type
            return _file_response(public, headers)

        return _not_found()

    return handler


def create_app(cfg: RuntimeConfig, config: Config | None = None) -> web.Application:
    """Build the web application for the project in the current directory."""
    if config is None:
        config = load_config(CONFIG_FILE)
        config.cache_enabled = cfg.enable_cache

    app = web.Application()
    public = Path(PUBLIC_DIR)
    dev = cfg.env == "dev"

    if dev:
        app.router.add_get("/static/{tail:.*}", _dev_static())
        cache_control = NO_STORE
    else:
        app.router.add_get("/static/{tail:.*}", _prod_static(Path(config.output_dir, "static")))
        cache_control = IMMUTABLE
    app.router.add_get("/favicon.ico", _serve_named(public / "favicon.ico", cache_control))
    app.router.add_get("/robots.txt", _serve_named(public / "robots.txt", cache_control))

    if dev:
        reloader = LiveReloader()
        app.router.add_get(RELOAD_PATH, reloader.handler)
        ctx = RuntimeContext(env=cfg.env, enable_watch=True, on_reload=reloader.broadcast_reload)
    else:
        ctx = RuntimeContext(env=cfg.env, enable_watch=False, on_reload=None)

    router = Router(config, ctx)
    app.router.add_route("*", "/{tail:.*}", router.handle)

    async def _stop_watching(_app: web.Application) -> None:
        router.stop_watching()

    app.on_cleanup.append(_stop_watching)
    return app


def start(cfg: RuntimeConfig) -> None:
    """Load the project config and serve it until interrupted."""
    print("Starting Barry in", cfg.env, "mode...")
    config = load_config(CONFIG_FILE)
    config.cache_enabled = cfg.enable_cache
    app = create_app(cfg, config)
    print(f"✅ Barry running at http://localhost:{cfg.port}")
    web.run_app(app, port=cfg.port, print=None)