"""Asset helpers and the functions made available to templates."""

from __future__ import annotations

import gzip
import hashlib
import re
from pathlib import Path
from typing import Any, Callable

STATIC_PREFIX = "/static/"

_CSS_TIGHT = set("{};,>")
_JS_WS = set(" \t\r\n\f\v")
_JS_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_JS_REGEX_KEYWORD = re.compile(
    r"(?:^|[^\w$])(?:return|typeof|case|do|else|in|of|new|delete|void|throw|instanceof|yield|await)$"
)


class _SafeHTML(str):
    """A string that template autoescaping leaves untouched."""

    def __html__(self) -> str:
        return str(self)


def _scan_quoted(text: str, start: int, quote: str, allow_newline: bool) -> int:
    """Return the index just past the string literal starting at ``start``."""
    j = start + 1
    n = len(text)
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == quote:
            return j + 1
        if c == "\n" and not allow_newline:
            break
        j += 1
    raise ValueError(f"unterminated string starting at offset {start}")


def minify_css(text: str) -> str:
    """Remove comments and redundant whitespace from a stylesheet."""
    out: list[str] = []
    depth = 0
    pending = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            pending = True
            i += 1
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise ValueError("unterminated comment")
            pending = True
            i = end + 2
            continue
        if pending:
            prev = out[-1] if out else ""
            drop = (
                not out
                or prev in _CSS_TIGHT
                or prev == ":"
                or ch in _CSS_TIGHT
                or (ch == ":" and depth > 0)
            )
            if not drop:
                out.append(" ")
            pending = False
        if ch in "'\"":
            end = _scan_quoted(text, i, ch, allow_newline=False)
            out.append(text[i:end])
            i = end
            continue
        if ch == "\\":
            out.append(text[i : i + 2])
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(depth - 1, 0)
            if out and out[-1] == ";":
                out.pop()
        out.append(ch)
        i += 1
    return "".join(out).strip()


def _is_word(ch: str) -> bool:
    return ch.isalnum() or ch in "_$" or (ch != "" and ord(ch) > 127)


def _scan_regex(text: str, start: int) -> int:
    j = start + 1
    n = len(text)
    in_class = False
    while j < n:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == "\n":
            break
        if c == "[":
            in_class = True
        elif c == "]":
            in_class = False
        elif c == "/" and not in_class:
            return j + 1
        j += 1
    raise ValueError(f"unterminated regular expression at offset {start}")


def minify_js(text: str) -> str:
    """Remove comments and redundant whitespace from a script."""
    out: list[str] = []
    pending: str | None = None
    i = 0
    n = len(text)

    def emit_separator(sep: str, nxt: str) -> None:
        if not out:
            return
        prev = out[-1][-1]
        if sep == "\n":
            if prev in "{;,(" or nxt in "});,":
                return
            out.append("\n")
            return
        if (_is_word(prev) and _is_word(nxt)) or (prev in "+-" and nxt in "+-"):
            out.append(" ")

    while i < n:
        ch = text[i]
        if ch in _JS_WS:
            j = i
            while j < n and text[j] in _JS_WS:
                j += 1
            run = text[i:j]
            if "\n" in run or "\r" in run:
                pending = "\n"
            elif pending is None:
                pending = " "
            i = j
            continue
        if text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise ValueError("unterminated comment")
            if "\n" in text[i:end]:
                pending = "\n"
            elif pending is None:
                pending = " "
            i = end + 2
            continue
        if pending is not None:
            emit_separator(pending, ch)
            pending = None
        if ch in "'\"`":
            end = _scan_quoted(text, i, ch, allow_newline=ch == "`")
            out.append(text[i:end])
            i = end
            continue
        if ch == "/":
            prev = out[-1][-1] if out else ""
            tail = "".join(out[-16:])
            if prev == "" or prev in _JS_REGEX_PRECEDERS or _JS_REGEX_KEYWORD.search(tail):
                end = _scan_regex(text, i)
                out.append(text[i:end])
                i = end
                continue
        out.append(ch)
        i += 1
    return "".join(out).strip()


def _short_hash(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()[:6]


def minify_asset(env: str, path: str, cache_dir: str) -> str:
    """Minify a CSS/JS asset in production and return its versioned URL.

    The minified output is written gzip-compressed into ``<cache_dir>/static``.
    On any problem the original ``path`` is returned.
    """
    if env != "prod":
        return path

    base = path.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    ext = base[dot:] if dot != -1 else ""
    name = base[:dot] if dot != -1 else base

    if ext not in (".css", ".js"):
        return path
    if ".min" in name:
        return path

    public_path = path[len(STATIC_PREFIX):] if path.startswith(STATIC_PREFIX) else path
    src = Path("public", public_path)
    min_file = Path(cache_dir, "static", f"{name}.min{ext}")
    min_gz = min_file.with_name(min_file.name + ".gz")

    try:
        original = src.read_bytes().decode("utf-8", "surrogateescape")
    except OSError:
        return path

    try:
        minified_text = minify_css(original) if ext == ".css" else minify_js(original)
    except ValueError:
        return path
    minified = minified_text.encode("utf-8", "surrogateescape")

    try:
        min_file.parent.mkdir(parents=True, exist_ok=True)
        with gzip.open(min_gz, "wb") as fh:
            fh.write(minified)
    except OSError:
        pass

    return f"{STATIC_PREFIX}{name}.min{ext}?v={_short_hash(minified)}"


def versioned(path: str, cache_dir: str) -> str:
    """Append a content hash to a ``/static/`` URL if the file can be found."""
    if not path.startswith(STATIC_PREFIX):
        return path
    rel = path[len(STATIC_PREFIX):]
    for location in (Path("public", rel), Path(cache_dir, "static", rel)):
        try:
            content = location.read_bytes()
        except OSError:
            continue
        return f"{STATIC_PREFIX}{rel}?v={_short_hash(content)}"
    return path


def props(*args: Any) -> dict[str, Any]:
    """Build a mapping from alternating keys and values."""
    if len(args) % 2 != 0:
        raise ValueError("props must be called with even number of arguments")
    keys = args[0::2]
    if not all(isinstance(key, str) for key in keys):
        raise TypeError("props keys must be strings")
    return dict(zip(keys, args[1::2]))


def safe_html(value: Any) -> _SafeHTML:
    """Mark a string as trusted HTML; anything else becomes empty."""
    if hasattr(value, "__html__"):
        return _SafeHTML(value.__html__())
    if isinstance(value, str):
        return _SafeHTML(value)
    return _SafeHTML("")


def template_funcs(env: str, cache_dir: str) -> dict[str, Callable[..., Any]]:
    """Return the helper functions exposed to page templates."""
    return {
        "minify": lambda path: minify_asset(env, path, cache_dir),
        "props": props,
        "safeHTML": safe_html,
        "versioned": lambda path: versioned(path, cache_dir),
    }