"""Files of the default starter project."""

from __future__ import annotations

from pathlib import Path

MAIN_SOURCE = '''from barry.server import RuntimeConfig, start


def main() -> None:
    start(RuntimeConfig(env="dev", enable_cache=False, port=8080))


if __name__ == "__main__":
    main()
'''

INDEX_SERVER_SOURCE = '''def handle_request(request, params):
    return {
        "Title": "barry.",
        "Intro": "A developer-first HTML + Python framework. No JS. No builds. Just Python.",
        "Button": {
            "Text": "Read the docs",
        },
    }
'''

_FILES = {
    "main.py": MAIN_SOURCE,
    "routes/index.server.py": INDEX_SERVER_SOURCE,
}


def starter_files() -> dict[str, str]:
    """Mapping of relative path (``/``-separated) to file content."""
    return dict(_FILES)


def copy_starter(target_dir: str | Path) -> list[Path]:
    """Write the starter files under ``target_dir``; return the written paths."""
    target = Path(target_dir)
    written: list[Path] = []
    for rel, content in _FILES.items():
        dest = target.joinpath(*rel.split("/"))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(content, encoding="utf-8")
        written.append(dest)
    return written