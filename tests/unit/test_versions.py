"""Unit tests for regindex.versions."""

from __future__ import annotations

import pytest
from semver import Version

from regindex.errors import ErrorCode, ValueCoercionError
from regindex.versions import VersionRange, parse_version

# ---------------------------------------------------------------------------
# parse_version
# ---------------------------------------------------------------------------


class TestParseVersion:
    def test_parses_string(self) -> None:
        assert parse_version("1.2.3") == Version(1, 2, 3)

    def test_accepts_v_prefix_and_whitespace(self) -> None:
        assert parse_version(" v1.2.3 ") == Version(1, 2, 3)

    def test_passes_version_through(self) -> None:
        version = Version(2, 0, 0)
        assert parse_version(version) is version

    def test_prerelease(self) -> None:
        assert parse_version("1.0.0-rc.1").prerelease == "rc.1"

    @pytest.mark.parametrize("value", ["1.2", "latest", "", "1.2.3.4"])
    def test_invalid_raises(self, value: str) -> None:
        with pytest.raises(ValueCoercionError) as exc_info:
            parse_version(value)
        assert exc_info.value.code == ErrorCode.INVALID_VALUE

    def test_non_string_raises(self) -> None:
        with pytest.raises(ValueCoercionError):
            parse_version(123)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# VersionRange
# ---------------------------------------------------------------------------


class TestVersionRange:
    @pytest.mark.parametrize(
        ("expression", "version", "expected"),
        [
            (">=1.0.0 <2.0.0", "1.0.0", True),
            (">=1.0.0 <2.0.0", "1.9.9", True),
            (">=1.0.0 <2.0.0", "2.0.0", False),
            (">= 1.0.0", "1.0.0", True),
            ("1.2.3", "1.2.3", True),
            ("=1.2.3", "1.2.4", False),
            ("^1.2.3", "1.9.0", True),
            ("^1.2.3", "2.0.0", False),
            ("^1.2.3", "1.2.2", False),
            ("^0.2.3", "0.2.9", True),
            ("^0.2.3", "0.3.0", False),
            ("^0.0.3", "0.0.4", False),
            ("~1.2.3", "1.2.9", True),
            ("~1.2.3", "1.3.0", False),
            ("~1", "1.9.0", True),
            ("1.x", "1.9.9", True),
            ("1.x", "2.0.0", False),
            ("1.2.*", "1.2.7", True),
            ("1", "1.4.0", True),
            (">1.2", "1.2.9", False),
            (">1.2", "1.3.0", True),
            ("<=1.2", "1.2.9", True),
            ("<=1.2", "1.3.0", False),
            ("<1.2", "1.1.9", True),
            ("<1.2", "1.2.0", False),
            ("1.0.0 - 1.4", "1.4.7", True),
            ("1.0.0 - 1.4", "1.5.0", False),
            ("1.0.0 - 1.4", "0.9.0", False),
            ("1.0.0 - 2.0.0", "2.0.0", True),
            ("<1.0.0 || >=3.0.0", "0.5.0", True),
            ("<1.0.0 || >=3.0.0", "2.0.0", False),
            ("<1.0.0 || >=3.0.0", "3.1.0", True),
            ("*", "1.2.3", True),
            ("", "0.0.1", True),
        ],
    )
    def test_ranges(self, expression: str, version: str, expected: bool) -> None:
        assert VersionRange(expression).test(version) is expected

    def test_prerelease_excluded_by_default(self) -> None:
        assert not VersionRange("*").test("1.2.3-alpha")
        assert not VersionRange(">=1.0.0").test("2.0.0-rc.1")

    def test_prerelease_included_when_named(self) -> None:
        version_range = VersionRange(">=2.0.0-rc.1 <3.0.0")
        assert version_range.test("2.0.0-rc.2")
        assert version_range.test("2.0.0")
        # prereleases of other versions still do not match
        assert not version_range.test("2.1.0-rc.1")

    def test_accepts_version_objects(self) -> None:
        assert VersionRange("^1.0.0").test(Version(1, 4, 0))

    @pytest.mark.parametrize("expression", ["not-a-version", ">=1.0.0 <banana", "1.2.3.4"])
    def test_malformed_expression_raises(self, expression: str) -> None:
        with pytest.raises(ValueCoercionError):
            VersionRange(expression)

    def test_invalid_candidate_raises(self) -> None:
        with pytest.raises(ValueCoercionError):
            VersionRange(">=1.0.0").test("garbage")
