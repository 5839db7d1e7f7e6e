"""Index layout for artifact registries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from regindex.indexer import IdentityKey, IndexSchema, SemverKey, StringKey

if TYPE_CHECKING:
    from regindex.indexer import Index
    from regindex.models.registry import ArtifactMetadata


def _tool_platform(metadata: ArtifactMetadata, tool: str) -> str | None:
    return metadata.tools.get(tool)


class ArtifactIndex(IndexSchema[dict[str, Any]]):
    """Searchable facets of :class:`ArtifactMetadata` records."""

    def __init__(self, index: Index[dict[str, Any], ArtifactIndex]) -> None:
        super().__init__(index)
        self.id: IdentityKey[ArtifactIndex] = IdentityKey(
            self, lambda m: m.id, "id", unique=False
        )
        self.version: SemverKey[ArtifactIndex] = SemverKey(self, lambda m: m.version, "version")
        self.summary: StringKey[ArtifactIndex] = StringKey(
            self, lambda m: m.summary, ["summary", "description-summary"]
        )
        self.tool: StringKey[ArtifactIndex] = StringKey(self, lambda m: list(m.tools), "tool")
        self.tool_platform: StringKey[ArtifactIndex] = StringKey(
            self, _tool_platform, "tool-platform", parent=self.tool
        )
