#!/usr/bin/env python3
"""
Fail if the core engine imports web-framework or transport modules.
Checks all Python files under src/halrest/core/.
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
CORE_DIR = REPO_ROOT / "src" / "halrest" / "core"

FORBIDDEN_PREFIXES = (
    "starlette",
    "fastapi",
    "uvicorn",
    "httpx",
    "halrest.transports",
)


def is_forbidden(module: str) -> bool:
    return any(
        module == prefix or module.startswith(prefix + ".")
        for prefix in FORBIDDEN_PREFIXES
    )


def _resolve_relative(node: ast.ImportFrom) -> str:
    # core modules live in halrest.core; level 1 is core itself
    base = ["halrest", "core"][: max(0, 3 - node.level)]
    if node.module:
        base.append(node.module)
    return ".".join(base)


def scan_file(path: Path) -> list[str]:
    errors: list[str] = []
    tree = ast.parse(path.read_text(encoding="utf-8"))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if is_forbidden(alias.name):
                    errors.append(f"{path}: forbidden import '{alias.name}'")
        elif isinstance(node, ast.ImportFrom):
            mod = _resolve_relative(node) if node.level else (node.module or "")
            if mod and is_forbidden(mod):
                errors.append(f"{path}: forbidden import '{mod}'")
    return errors


def main() -> int:
    violations: list[str] = []
    for py_file in sorted(CORE_DIR.rglob("*.py")):
        violations.extend(scan_file(py_file))

    if violations:
        for v in violations:
            print(v, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
