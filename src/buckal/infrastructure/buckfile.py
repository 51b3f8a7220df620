"""BUCK file reader — existing rule sets for field-level merging.

Starlark call syntax is a subset of Python expressions, so the file is
parsed with :mod:`ast`. Only top-level calls with a literal ``name``
keyword become rules; ``load(...)`` statements and anything that is not a
literal (function calls other than ``glob``, variables, comprehensions)
are skipped.
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Any

from buckal.domain.errors import BuckalError
from buckal.domain.rules import Glob, ParsedRule

logger = logging.getLogger(__name__)


class _NotLiteral(Exception):
    pass


def _literal(node: ast.expr) -> Any:
    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id == "glob":
        include = _literal(node.args[0]) if node.args else []
        exclude: list[str] = []
        for keyword in node.keywords:
            if keyword.arg == "exclude":
                exclude = _literal(keyword.value)
        return Glob(include={str(i) for i in include}, exclude={str(e) for e in exclude})
    try:
        return ast.literal_eval(node)
    except (ValueError, TypeError):
        raise _NotLiteral from None


def parse_buck_content(content: str, *, source: str = "<BUCK>") -> list[ParsedRule]:
    """Parse BUCK file *content* into rules, in file order.

    Raises BuckalError (``INVALID_BUCK_FILE``) on a syntax error.
    """
    try:
        tree = ast.parse(content, filename=source)
    except SyntaxError as exc:
        msg = f"Failed to parse {source}: {exc.msg} (line {exc.lineno})"
        raise BuckalError("INVALID_BUCK_FILE", msg, path=source) from exc

    rules: list[ParsedRule] = []
    for stmt in tree.body:
        if not isinstance(stmt, ast.Expr) or not isinstance(stmt.value, ast.Call):
            continue
        call = stmt.value
        if not isinstance(call.func, ast.Name) or call.func.id == "load":
            continue

        attrs: dict[str, Any] = {}
        for keyword in call.keywords:
            if keyword.arg is None:
                continue
            try:
                attrs[keyword.arg] = _literal(keyword.value)
            except _NotLiteral:
                logger.debug("Skipping non-literal %s.%s in %s", call.func.id, keyword.arg, source)

        name = attrs.pop("name", None)
        if isinstance(name, str):
            rules.append(ParsedRule(function=call.func.id, name=name, attrs=attrs))
    return rules


def read_buck_file(path: Path) -> list[ParsedRule]:
    """Read and parse the rule file at *path*."""
    return parse_buck_content(path.read_text(encoding="utf-8"), source=str(path))
