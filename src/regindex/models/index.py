from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from regindex.errors import DeserializationError


class KeyContent(BaseModel):
    """Serialized content of one key: coerced value / token -> record ids."""

    keys: dict[str, list[int]]
    words: dict[str, list[int]] | None = None  # absent for version keys


class IndexFile(BaseModel):
    """Persisted form of an index. Record ids are positions in ``items``."""

    items: list[Any]
    indexes: dict[str, KeyContent]

    @classmethod
    def parse(cls, content: Mapping[str, Any] | IndexFile) -> IndexFile:
        if isinstance(content, IndexFile):
            return content
        try:
            return cls.model_validate(content)
        except ValidationError as exc:
            raise DeserializationError(
                "index", f"malformed index content ({exc.error_count()} errors)"
            ) from exc
