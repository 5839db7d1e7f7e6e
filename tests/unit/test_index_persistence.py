"""Serialization and deserialization of Index / IndexSchema."""

from __future__ import annotations

import json
from typing import Any

import pytest

from regindex.errors import DeserializationError, ErrorCode
from regindex.indexer import Index

from .test_indexer import RECORDS, PackageIndex, PkgIndex, _build


def _roundtrip(index: PkgIndex) -> PkgIndex:
    restored: PkgIndex = Index(PackageIndex)
    restored.deserialize(json.loads(json.dumps(index.serialize())))
    return restored


QUERIES = [
    lambda v: v.name.equals("tools/cmake"),
    lambda v: v.name.name_or_short_name_is("cmake"),
    lambda v: v.name.starts_with("compilers/"),
    lambda v: v.name.ends_with("ninja"),
    lambda v: v.name.match("l+"),
    lambda v: v.name.less_than("tools"),
    lambda v: v.summary.contains("build-system"),
    lambda v: v.summary.equals("hello world"),
    lambda v: v.tags.equals("cc"),
    lambda v: v.platform.equals("macos"),
    lambda v: v.version.greater_than("1.0.0"),
    lambda v: v.version.less_than("2.0.0"),
    lambda v: v.version.range_match("^1.0.0"),
    lambda v: v.version.equals("2.1.0-beta.1"),
]


# ---------------------------------------------------------------------------
# Serialize
# ---------------------------------------------------------------------------


class TestSerialize:
    def test_shape(self) -> None:
        content = _build().serialize()
        assert content["items"] == RECORDS
        assert list(content["indexes"]) == ["name", "version", "summary", "tags", "platform"]
        assert content["indexes"]["tags"]["keys"] == {"build": [2], "cc": [0, 1], "cxx": [0]}
        assert content["indexes"]["summary"]["words"]["hello"] == [0]

    def test_version_key_has_no_words(self) -> None:
        content = _build().serialize()
        assert "words" not in content["indexes"]["version"]
        assert content["indexes"]["version"]["keys"]["1.5.0"] == [1]

    def test_is_json_compatible(self) -> None:
        content = _build().serialize()
        assert json.loads(json.dumps(content)) == content


# ---------------------------------------------------------------------------
# Deserialize
# ---------------------------------------------------------------------------


class TestDeserialize:
    @pytest.mark.parametrize("query", QUERIES)
    def test_roundtrip_preserves_query_results(self, query: Any) -> None:
        original = _build()
        restored = _roundtrip(original)
        assert query(restored.where).ids == query(original.where).ids

    def test_roundtrip_preserves_items_and_short_names(self) -> None:
        restored = _roundtrip(_build())
        assert restored.where.items == RECORDS
        assert restored.schema.name.get_short_name_of("tools/cmake") == "cmake"

    def test_accepts_alias(self) -> None:
        content = _build().serialize()
        content["indexes"]["description"] = content["indexes"].pop("summary")
        index: PkgIndex = Index(PackageIndex)
        index.deserialize(content)
        assert index.where.summary.contains("hello").ids == [0]

    def test_missing_key_fails(self) -> None:
        content = _build().serialize()
        del content["indexes"]["tags"]
        index: PkgIndex = Index(PackageIndex)
        with pytest.raises(DeserializationError) as exc_info:
            index.deserialize(content)
        assert exc_info.value.key == "tags"
        assert exc_info.value.code == ErrorCode.DESERIALIZATION_FAILED
        assert "tags" in exc_info.value.message

    def test_failure_leaves_previous_state(self) -> None:
        index = _build()
        content = index.serialize()
        content["items"] = ["replaced"]
        del content["indexes"]["platform"]
        with pytest.raises(DeserializationError):
            index.deserialize(content)
        assert index.targets == RECORDS
        assert index.where.tags.equals("cc").ids == [0, 1]

    def test_malformed_content_fails(self) -> None:
        index: PkgIndex = Index(PackageIndex)
        with pytest.raises(DeserializationError):
            index.deserialize({"items": "nope", "indexes": {}})
        with pytest.raises(DeserializationError):
            index.deserialize({"indexes": {}})

    def test_bad_version_in_content_fails(self) -> None:
        content = _build().serialize()
        content["indexes"]["version"]["keys"]["banana"] = [0]
        index: PkgIndex = Index(PackageIndex)
        with pytest.raises(DeserializationError) as exc_info:
            index.deserialize(content)
        assert exc_info.value.key == "version"
        assert len(index) == 0

    def test_replaces_existing_content(self) -> None:
        index = _build()
        other = _build(RECORDS[:1])
        index.deserialize(other.serialize())
        assert len(index) == 1
        assert index.where.tags.equals("cc").ids == [0]
