"""Semantic version parsing and node-style range expressions.

Range grammar (whitespace inside a set ANDs comparators, ``||`` ORs sets)::

    >=1.2.0 <2.0.0 || ^3.1 || 4.x || 1.0.0 - 1.4 || ~0.9.2

Prerelease versions only satisfy a set when one of its comparators names a
prerelease of the same ``major.minor.patch``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from semver import Version

from regindex.errors import ValueCoercionError

_WILDCARDS = frozenset({"x", "X", "*"})

_PARTIAL = re.compile(
    r"^v?(?P<major>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<minor>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<patch>0|[1-9]\d*|[xX*])"
    r"(?P<rest>(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?))?)?$"
)
_OPERATOR = re.compile(r"^(?P<op><=|>=|<|>|=|\^|~>?)?(?P<version>.*)$")
_HYPHEN = re.compile(r"^\s*(?P<low>\S+)\s+-\s+(?P<high>\S+)\s*$")
_OPERATOR_SPACE = re.compile(r"(<=|>=|<|>|=|\^|~>?)\s+")


def parse_version(value: Version | str) -> Version:
    """Coerce ``value`` into a :class:`semver.Version`."""
    if isinstance(value, Version):
        return value
    if not isinstance(value, str):
        raise ValueCoercionError(value, "expected a version string")
    text = value.strip()
    if text.startswith(("v", "=")):
        text = text[1:]
    try:
        return Version.parse(text)
    except (ValueError, TypeError) as exc:
        raise ValueCoercionError(value, str(exc)) from exc


@dataclass(slots=True, frozen=True)
class _Partial:
    major: int | None
    minor: int | None
    patch: int | None
    version: Version | None  # set only when all three parts are present

    def floor(self) -> Version:
        return self.version or Version(self.major or 0, self.minor or 0, self.patch or 0)


@dataclass(slots=True, frozen=True)
class _Comparator:
    op: str
    version: Version

    def test(self, version: Version) -> bool:
        if self.op == "<":
            return version < self.version
        if self.op == "<=":
            return version <= self.version
        if self.op == ">":
            return version > self.version
        if self.op == ">=":
            return version >= self.version
        return version == self.version


def _number(text: str | None) -> int | None:
    if text is None or text in _WILDCARDS:
        return None
    return int(text)


def _parse_partial(text: str, expression: str) -> _Partial:
    m = _PARTIAL.match(text)
    if m is None:
        raise ValueCoercionError(expression, f"invalid version {text!r} in range")
    major = _number(m["major"])
    minor = _number(m["minor"]) if major is not None else None
    patch = _number(m["patch"]) if minor is not None else None
    version = None
    if patch is not None:
        version = Version.parse(f"{major}.{minor}.{patch}{m['rest'] or ''}")
    return _Partial(major, minor, patch, version)


def _bump(partial: _Partial) -> Version:
    """The first version above everything ``partial`` covers."""
    if partial.minor is None:
        return Version((partial.major or 0) + 1, 0, 0)
    return Version(partial.major or 0, partial.minor + 1, 0)


def _desugar(op: str, partial: _Partial) -> list[_Comparator]:
    if partial.major is None:
        # wildcard: "<*" matches nothing, everything else matches anything
        return [_Comparator("<", Version(0, 0, 0))] if op == "<" else []

    if op in ("^", "~", "~>"):
        low = partial.floor()
        if op == "^":
            if partial.minor is None or low.major > 0:
                high = Version(low.major + 1, 0, 0)
            elif partial.patch is None or low.minor > 0:
                high = Version(0, low.minor + 1, 0)
            else:
                high = Version(0, 0, low.patch + 1)
        else:
            high = _bump(partial) if partial.minor is None else Version(low.major, low.minor + 1, 0)
        return [_Comparator(">=", low), _Comparator("<", high)]

    if partial.version is not None:
        return [_Comparator(op or "=", partial.version)]

    # partial versions
    if op in ("", "="):
        return [_Comparator(">=", partial.floor()), _Comparator("<", _bump(partial))]
    if op == ">":
        return [_Comparator(">=", _bump(partial))]
    if op == ">=":
        return [_Comparator(">=", partial.floor())]
    if op == "<":
        return [_Comparator("<", partial.floor())]
    return [_Comparator("<", _bump(partial))]  # "<="


class VersionRange:
    """A parsed node-style version range expression."""

    def __init__(self, expression: str) -> None:
        if not isinstance(expression, str):
            raise ValueCoercionError(expression, "expected a range expression")
        self.expression = expression
        self._sets = [self._parse_set(part) for part in expression.split("||")]

    def __repr__(self) -> str:
        return f"VersionRange({self.expression!r})"

    def _parse_set(self, text: str) -> list[_Comparator]:
        hyphen = _HYPHEN.match(text)
        if hyphen:
            low = _parse_partial(hyphen["low"], self.expression)
            high = _parse_partial(hyphen["high"], self.expression)
            result = [] if low.major is None else [_Comparator(">=", low.floor())]
            if high.version is not None:
                result.append(_Comparator("<=", high.version))
            elif high.major is not None:
                result.append(_Comparator("<", _bump(high)))
            return result

        comparators: list[_Comparator] = []
        for token in _OPERATOR_SPACE.sub(r"\1", text.strip()).split():
            m = _OPERATOR.match(token)
            if m is None:
                raise ValueCoercionError(self.expression, f"invalid comparator {token!r}")
            comparators.extend(
                _desugar(m["op"] or "", _parse_partial(m["version"] or "*", self.expression))
            )
        return comparators

    def test(self, value: Version | str) -> bool:
        version = parse_version(value)
        return any(self._test_set(comparators, version) for comparators in self._sets)

    @staticmethod
    def _test_set(comparators: list[_Comparator], version: Version) -> bool:
        if not all(c.test(version) for c in comparators):
            return False
        if not version.prerelease:
            return True
        core = (version.major, version.minor, version.patch)
        return any(
            c.version.prerelease and (c.version.major, c.version.minor, c.version.patch) == core
            for c in comparators
        )
