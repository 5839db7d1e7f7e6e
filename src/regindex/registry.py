"""Artifact registry: index building, search, and persistence.

A registry keeps one :class:`Index` over its artifacts. The index is either
rebuilt from metadata (:meth:`ArtifactRegistry.regenerate`) or restored from a
JSON file next to the registry / the SQLite index cache.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from regindex.artifact_index import ArtifactIndex
from regindex.config import Settings
from regindex.errors import (
    ArtifactNotFoundError,
    DeserializationError,
    DuplicateIdentityError,
    ErrorCode,
    RegIndexError,
)
from regindex.indexer import Index
from regindex.models.registry import ArtifactMetadata, SearchCriteria
from regindex.versions import parse_version

if TYPE_CHECKING:
    from collections.abc import Iterable

    from regindex.cache import IndexCache

log = structlog.get_logger()


class ArtifactRegistry:
    """A searchable collection of artifact metadata rooted at ``location``."""

    def __init__(
        self, location: Path | str | None = None, settings: Settings | None = None
    ) -> None:
        self._settings = settings or Settings()
        # defaults to a registry directory under the configured data dir
        self.location = Path(location or Path(self._settings.data_dir) / "registry")
        self.index: Index[dict[str, Any], ArtifactIndex] = Index(ArtifactIndex)
        self._loaded = False

    @property
    def index_path(self) -> Path:
        return self.location / self._settings.registry.index_filename

    @property
    def count(self) -> int:
        return len(self.index)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise RegIndexError(
                ErrorCode.INDEX_NOT_LOADED,
                f"Registry {self.location} has not been loaded",
                recoverable=True,
            )

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def regenerate(self, entries: Iterable[ArtifactMetadata]) -> None:
        """Rebuild the index from scratch. The previous index survives a failure."""
        index: Index[dict[str, Any], ArtifactIndex] = Index(ArtifactIndex)
        seen: set[tuple[str, str]] = set()
        for entry in entries:
            identity = (entry.id, str(parse_version(entry.version)))
            if identity in seen:
                raise DuplicateIdentityError(f"{entry.id}@{entry.version}")
            seen.add(identity)
            index.insert(entry, entry.model_dump())
        index.done_insertion()

        self.index = index
        self._loaded = True
        log.info("registry_regenerated", location=str(self.location), count=self.count)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self, criteria: SearchCriteria | None = None
    ) -> list[tuple[str, list[ArtifactMetadata]]]:
        """Find artifacts, grouped by id and keyed by short name.

        Each group lists the matching versions highest first. Dependency-only
        artifacts are left out unless they were asked for by name.
        """
        self._require_loaded()
        criteria = criteria or SearchCriteria()

        query = self.index.where
        query.id.name_or_short_name_is(criteria.id_or_short_name)
        query.version.range_match(criteria.version)
        query.summary.contains(criteria.keyword)

        groups: dict[str, list[ArtifactMetadata]] = {}
        for item in query.items:
            metadata = ArtifactMetadata.model_validate(item)
            if metadata.dependency_only and not criteria.id_or_short_name:
                continue
            groups.setdefault(metadata.id, []).append(metadata)

        results: list[tuple[str, list[ArtifactMetadata]]] = []
        for artifact_id, artifacts in groups.items():
            artifacts.sort(key=lambda m: parse_version(m.version), reverse=True)
            results.append((query.id.get_short_name_of(artifact_id) or artifact_id, artifacts))
        return results

    def get_artifact(
        self, id_or_short_name: str, version: str | None = None
    ) -> tuple[str, ArtifactMetadata] | None:
        """Return the highest version of an artifact matching ``version`` (a range), if any."""
        results = self.search(SearchCriteria(id_or_short_name=id_or_short_name, version=version))
        if not results:
            return None
        short_name, artifacts = results[0]
        return short_name, artifacts[0]

    def require_artifact(
        self, id_or_short_name: str, version: str | None = None
    ) -> tuple[str, ArtifactMetadata]:
        found = self.get_artifact(id_or_short_name, version)
        if found is None:
            raise ArtifactNotFoundError(id_or_short_name, version)
        return found

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        self._require_loaded()
        self.index_path.parent.mkdir(parents=True, exist_ok=True)
        self.index_path.write_text(json.dumps(self.index.serialize(), indent=2), encoding="utf-8")
        log.info("registry_saved", path=str(self.index_path), count=self.count)

    def load(self, force: bool = False) -> None:
        """Load the index file. I/O errors propagate to the caller."""
        if self._loaded and not force:
            return
        text = self.index_path.read_text(encoding="utf-8")
        try:
            content = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DeserializationError("index", f"{self.index_path} is not valid JSON") from exc
        self._restore(content)
        log.info("registry_loaded", path=str(self.index_path), count=self.count)

    async def save_to_cache(self, cache: IndexCache, ttl_hours: int | None = None) -> None:
        """Store the index in ``cache``. The TTL defaults to ``settings.cache.ttl_hours``."""
        self._require_loaded()
        if ttl_hours is None:
            ttl_hours = self._settings.cache.ttl_hours
        await cache.set_index(str(self.location), self.index.serialize(), ttl_hours)

    async def load_from_cache(self, cache: IndexCache) -> bool:
        """Restore the index from the cache. Returns ``False`` on a cache miss.

        Stale entries are still loaded; callers decide whether to regenerate.
        """
        entry = await cache.get_index(str(self.location))
        if entry is None:
            return False
        self._restore(entry.payload)
        log.info(
            "registry_loaded_from_cache",
            location=str(self.location),
            count=self.count,
            stale=entry.stale,
        )
        return True

    def _restore(self, content: dict[str, Any]) -> None:
        self.index.deserialize(content)
        self._loaded = True
