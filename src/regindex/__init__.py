"""Queryable, persistable multi-key index over package-registry records."""

from __future__ import annotations

from regindex.artifact_index import ArtifactIndex
from regindex.cache import IndexCache, open_cache
from regindex.config import Settings
from regindex.errors import (
    ArtifactNotFoundError,
    DeserializationError,
    DuplicateIdentityError,
    ErrorCode,
    RegIndexError,
    ValueCoercionError,
)
from regindex.indexer import IdentityKey, Index, IndexSchema, Key, SemverKey, StringKey
from regindex.registry import ArtifactRegistry
from regindex.versions import VersionRange, parse_version

__all__ = [
    # indexer
    "Index",
    "IndexSchema",
    "Key",
    "StringKey",
    "SemverKey",
    "IdentityKey",
    "ArtifactIndex",
    # registry
    "ArtifactRegistry",
    "IndexCache",
    "open_cache",
    "Settings",
    # versions
    "VersionRange",
    "parse_version",
    # errors
    "ErrorCode",
    "RegIndexError",
    "DeserializationError",
    "DuplicateIdentityError",
    "ValueCoercionError",
    "ArtifactNotFoundError",
]
