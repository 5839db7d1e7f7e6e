"""Error types raised by the index and registry layers.

Every error carries a machine-readable ``code`` and a ``recoverable`` flag so
that hosting layers can render a structured envelope without inspecting the
exception class.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    DESERIALIZATION_FAILED = "DESERIALIZATION_FAILED"
    DUPLICATE_IDENTITY = "DUPLICATE_IDENTITY"
    INVALID_VALUE = "INVALID_VALUE"
    ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"
    INDEX_NOT_LOADED = "INDEX_NOT_LOADED"


class RegIndexError(Exception):
    """Base error for all regindex failures."""

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }


class DeserializationError(RegIndexError):
    """A persisted index does not contain content for a declared key."""

    def __init__(self, key: str, detail: str | None = None) -> None:
        message = f"Failed to deserialize index {key}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(ErrorCode.DESERIALIZATION_FAILED, message)
        self.key = key


class DuplicateIdentityError(RegIndexError):
    """Two records share the same full identity."""

    def __init__(self, identity: str) -> None:
        super().__init__(
            ErrorCode.DUPLICATE_IDENTITY,
            f"Identity {identity!r} is already present in the index",
        )
        self.identity = identity


class ValueCoercionError(RegIndexError):
    """A raw value could not be coerced into a key's comparable type."""

    def __init__(self, value: object, reason: str) -> None:
        super().__init__(ErrorCode.INVALID_VALUE, f"Cannot coerce {value!r}: {reason}")
        self.value = value


class ArtifactNotFoundError(RegIndexError):
    def __init__(self, artifact_id: str, version: str | None = None) -> None:
        detail = f"{artifact_id}@{version}" if version else artifact_id
        super().__init__(
            ErrorCode.ARTIFACT_NOT_FOUND,
            f"Artifact {detail!r} was not found",
            recoverable=True,
        )
        self.artifact_id = artifact_id
        self.version = version
