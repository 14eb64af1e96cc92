"""Run a route's server logic file in a separate interpreter.

A server file is a Python file defining ``handle_request(request, params)``
which returns a mapping of template data, or raises ``NotFoundError``.
"""

from __future__ import annotations

import ast
import json
import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Sequence

from .errors import NOT_FOUND_MESSAGE, NotFoundError

HANDLER_NAME = "handle_request"
ERROR_PREFIX = "barry-error:"
RUNNER_NAME = "main.py"

# Appended to a staged copy of the server file so that running the copy
# calls its handler and prints the result as JSON.
RUNNER_TAIL = """

if __name__ == "__main__":
    import sys as _barry_sys
    from barry.executor import _run_handler as _barry_run_handler

    _barry_sys.exit(_barry_run_handler(handle_request, _barry_sys.argv[1:]))
"""


class ExecutionError(Exception):
    """Raised when server logic cannot be run or returns unusable output."""


def _defines_handler(tree: ast.Module) -> bool:
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == HANDLER_NAME:
            return True
        if isinstance(node, ast.Assign) and any(
            isinstance(target, ast.Name) and target.id == HANDLER_NAME for target in node.targets
        ):
            return True
        if isinstance(node, ast.ImportFrom) and any(
            (alias.asname or alias.name) == HANDLER_NAME for alias in node.names
        ):
            return True
    return False


def load_handler(file_path: str | Path) -> Callable[..., Any]:
    """Return a callable that runs ``handle_request`` from the server file."""
    path = Path(file_path)
    if not path.is_file():
        raise ExecutionError(f"server file not found: {path}")
    try:
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except SyntaxError as exc:
        raise ExecutionError(f"{path}: {exc}") from exc
    if not _defines_handler(tree):
        raise ExecutionError(f"{path} does not define {HANDLER_NAME}(request, params)")

    def handler(request: Any, params: dict[str, str]) -> dict[str, Any]:
        return execute_server_file(path, params, False)

    return handler


def _child_env(*extra_paths: str) -> dict[str, str]:
    env = dict(os.environ)
    package_root = str(Path(__file__).resolve().parent.parent)
    entries = [*extra_paths, package_root]
    existing = env.get("PYTHONPATH")
    if existing:
        entries.append(existing)
    env["PYTHONPATH"] = os.pathsep.join(entries)
    return env


def _run_handler(handler: Callable[..., Any], args: Sequence[str]) -> int:
    """Call ``handler`` with JSON params from ``args`` and print its result."""
    params = json.loads(args[0]) if args else {}
    try:
        output = json.dumps(handler(None, params))
    except Exception as exc:
        print(f"{ERROR_PREFIX} {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(output + "\n")
    sys.stdout.flush()
    return 0


def execute_server_file(
    file_path: str | Path, params: dict[str, str], dev_mode: bool
) -> dict[str, Any]:
    """Run the server file in a child interpreter and return its data."""
    abs_path = Path(file_path).resolve()
    try:
        source = abs_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExecutionError(f"exec error: cannot read {abs_path}: {exc}") from exc

    with tempfile.TemporaryDirectory(prefix="barry-") as staging:
        runner = Path(staging, RUNNER_NAME)
        runner.write_text(source + RUNNER_TAIL, encoding="utf-8")
        proc = subprocess.run(
            [sys.executable, str(runner), json.dumps(dict(params))],
            capture_output=True,
            text=True,
            env=_child_env(str(abs_path.parent)),
        )

    if dev_mode and proc.stderr:
        sys.stderr.write(proc.stderr)

    if proc.returncode != 0:
        if f"{ERROR_PREFIX} {NOT_FOUND_MESSAGE}" in proc.stderr:
            raise NotFoundError()
        raise ExecutionError(f"exec error: exit status {proc.returncode}\nstderr: {proc.stderr}")

    try:
        result = json.loads(proc.stdout)
    except json.JSONDecodeError as exc:
        raise ExecutionError(f"json decode error: {exc}") from exc

    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ExecutionError(
            f"json decode error: expected an object, got {type(result).__name__}"
        )
    return result


def main(argv: Sequence[str] | None = None) -> int:
    """Run ``<server file> [params json]`` and print the resulting JSON data."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("usage: python -m barry.executor FILE [PARAMS_JSON]", file=sys.stderr)
        return 2

    try:
        params = json.loads(args[1]) if len(args) > 1 else {}
    except json.JSONDecodeError as exc:
        print(f"invalid params: {exc}", file=sys.stderr)
        return 1

    try:
        result = execute_server_file(args[0], params, False)
    except NotFoundError as exc:
        print(f"{ERROR_PREFIX} {exc}", file=sys.stderr)
        return 1
    except ExecutionError as exc:
        print(exc, file=sys.stderr)
        return 1

    sys.stdout.write(json.dumps(result) + "\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())