from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from regindex.errors import ValueCoercionError
from regindex.versions import parse_version


class ArtifactMetadata(BaseModel):
    """Searchable description of one artifact version in a registry."""

    id: str  # slash path, e.g. "compilers/arm/gcc"
    version: str
    summary: str | None = None
    dependency_only: bool = False
    tools: dict[str, str] = Field(default_factory=dict)  # tool name -> host platform

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        v = v.strip()
        if not v or any(not segment for segment in v.split("/")):
            raise ValueError(f"Invalid artifact ID: {v!r}")
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        try:
            parse_version(v)
        except ValueCoercionError as exc:
            raise ValueError(exc.message) from exc
        return v.strip()


class SearchCriteria(BaseModel):
    id_or_short_name: str | None = None
    version: str | None = None  # range expression, e.g. ">=1.2 <2"
    keyword: str | None = None

