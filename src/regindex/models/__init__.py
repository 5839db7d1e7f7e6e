from __future__ import annotations

from regindex.models.cache import IndexCacheEntry
from regindex.models.index import IndexFile, KeyContent
from regindex.models.registry import ArtifactMetadata, SearchCriteria

__all__ = [
    # registry
    "ArtifactMetadata",
    "SearchCriteria",
    # persistence
    "IndexFile",
    "KeyContent",
    # cache
    "IndexCacheEntry",
]
