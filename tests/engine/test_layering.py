from __future__ import annotations

import ast
from pathlib import Path

import pytest


ENGINE_DIR = Path(__file__).resolve().parents[2] / "src" / "engine"


def _imported_modules(path: Path) -> set[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    out: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom):
            out.add("." * node.level + (node.module or ""))
        elif isinstance(node, ast.Import):
            out.update(alias.name for alias in node.names)
    return out


@pytest.mark.parametrize("path", sorted(ENGINE_DIR.glob("*.py")), ids=lambda p: p.name)
def test_engine_does_not_import_upper_layers(path: Path) -> None:
    for module in _imported_modules(path):
        for upper in ("eval", "search", "game", "protocol", "cli"):
            assert not module.startswith((f"src.{upper}", f"..{upper}")), (path.name, module)
