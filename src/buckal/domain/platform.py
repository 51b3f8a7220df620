"""Platform predicates on dependency edges.

An edge's ``target`` is either a target triple (``x86_64-pc-windows-msvc``)
or a ``cfg(...)`` expression such as
``cfg(all(unix, not(target_os = "macos")))``. Expressions are evaluated
against the cfg set reported by ``rustc --print=cfg``.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Iterable
from dataclasses import dataclass

from buckal.domain.errors import BuckalError


@dataclass(frozen=True)
class Cfg:
    """A single cfg flag: ``unix`` or ``target_os="linux"``."""

    name: str
    value: str | None = None

    @classmethod
    def parse(cls, line: str) -> Cfg:
        """Parse one line of ``rustc --print=cfg`` output."""
        name, sep, value = line.strip().partition("=")
        if not sep:
            return cls(name=name.strip())
        return cls(name=name.strip(), value=value.strip().strip('"'))

    def __str__(self) -> str:
        if self.value is None:
            return self.name
        return f'{self.name}="{self.value}"'


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CfgValue:
    cfg: Cfg

    def matches(self, cfgs: frozenset[Cfg]) -> bool:
        return self.cfg in cfgs


@dataclass(frozen=True)
class CfgAll:
    items: tuple[CfgExpr, ...]

    def matches(self, cfgs: frozenset[Cfg]) -> bool:
        return all(item.matches(cfgs) for item in self.items)


@dataclass(frozen=True)
class CfgAny:
    items: tuple[CfgExpr, ...]

    def matches(self, cfgs: frozenset[Cfg]) -> bool:
        return any(item.matches(cfgs) for item in self.items)


@dataclass(frozen=True)
class CfgNot:
    item: CfgExpr

    def matches(self, cfgs: frozenset[Cfg]) -> bool:
        return not self.item.matches(cfgs)


type CfgExpr = CfgValue | CfgAll | CfgAny | CfgNot


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

_TOKEN_PATTERN = re.compile(
    r'\s*(?:(?P<punct>[(),=])|"(?P<string>[^"]*)"|(?P<ident>[A-Za-z_]\w*))'
)


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_PATTERN.match(text, pos)
        if match is None or match.end() == pos:
            msg = f"unexpected character {text[pos:].strip()[:1]!r}"
            raise ValueError(msg)
        kind = match.lastgroup or ""
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[tuple[str, str]]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> tuple[str, str] | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _next(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            msg = "unexpected end of expression"
            raise ValueError(msg)
        self._pos += 1
        return token

    def parse(self) -> CfgExpr:
        expr = self._expr()
        trailing = self._peek()
        if trailing is not None:
            msg = f"trailing input {trailing[1]!r}"
            raise ValueError(msg)
        return expr

    def _expr(self) -> CfgExpr:
        kind, ident = self._next()
        if kind != "ident":
            msg = f"expected identifier, found {ident!r}"
            raise ValueError(msg)

        token = self._peek()
        if ident in ("all", "any", "not") and token == ("punct", "("):
            self._next()
            items = self._list()
            if ident == "all":
                return CfgAll(tuple(items))
            if ident == "any":
                return CfgAny(tuple(items))
            if len(items) != 1:
                msg = "not() takes exactly one predicate"
                raise ValueError(msg)
            return CfgNot(items[0])

        if token == ("punct", "="):
            self._next()
            kind, value = self._next()
            if kind != "string":
                msg = f"expected string after '{ident} =', found {value!r}"
                raise ValueError(msg)
            return CfgValue(Cfg(ident, value))
        return CfgValue(Cfg(ident))

    def _list(self) -> list[CfgExpr]:
        items: list[CfgExpr] = []
        while True:
            if self._peek() == ("punct", ")"):
                self._next()
                return items
            items.append(self._expr())
            token = self._peek()
            if token == ("punct", ","):
                self._next()
            elif token != ("punct", ")"):
                msg = "expected ',' or ')'"
                raise ValueError(msg)


def parse_cfg_expr(text: str) -> CfgExpr:
    """Parse the inside of ``cfg(...)``."""
    return _Parser(_tokenize(text)).parse()


# ---------------------------------------------------------------------------
# Platform matching
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlatformPredicate:
    """Either a target triple (``triple``) or a cfg expression (``expr``)."""

    triple: str | None = None
    expr: CfgExpr | None = None

    def matches(self, target: str, cfgs: frozenset[Cfg]) -> bool:
        if self.expr is not None:
            return self.expr.matches(cfgs)
        return self.triple == target


@functools.lru_cache(maxsize=512)
def parse_platform(text: str) -> PlatformPredicate:
    """Parse an edge platform string, raising BuckalError when malformed."""
    stripped = text.strip()
    if stripped.startswith("cfg(") and stripped.endswith(")"):
        try:
            return PlatformPredicate(expr=parse_cfg_expr(stripped[4:-1]))
        except ValueError as exc:
            msg = f"Invalid platform predicate {text!r}: {exc}"
            raise BuckalError("INVALID_METADATA", msg, predicate=text) from exc
    if not stripped or any(c in stripped for c in "()\" ,="):
        msg = f"Invalid platform predicate {text!r}"
        raise BuckalError("INVALID_METADATA", msg, predicate=text)
    return PlatformPredicate(triple=stripped)


def platform_matches(platform: str | None, target: str, cfgs: Iterable[Cfg]) -> bool:
    """True when *platform* is absent or matches the active target and cfgs."""
    if platform is None:
        return True
    return parse_platform(platform).matches(target, frozenset(cfgs))
