"""Shared fixtures: sample registry entries and a regenerated registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from regindex.models.registry import ArtifactMetadata
from regindex.registry import ArtifactRegistry

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def sample_entries() -> list[ArtifactMetadata]:
    return [
        ArtifactMetadata(
            id="compilers/gnu/gcc",
            version="12.1.0",
            summary="GNU compiler collection",
            tools={"gcc": "linux", "g++": "linux"},
        ),
        ArtifactMetadata(
            id="compilers/gnu/gcc",
            version="13.2.0",
            summary="GNU compiler collection",
            tools={"gcc": "linux", "g++": "linux"},
        ),
        ArtifactMetadata(
            id="compilers/arm/gcc",
            version="10.3.0",
            summary="GNU toolchain for Arm",
            tools={"arm-none-eabi-gcc": "windows"},
        ),
        ArtifactMetadata(
            id="tools/kitware/cmake",
            version="3.27.0",
            summary="cross-platform build system generator",
            tools={"cmake": "windows"},
        ),
        ArtifactMetadata(
            id="tools/kitware/cmake",
            version="3.28.1",
            summary="cross-platform build system generator",
            tools={"cmake": "windows"},
        ),
        ArtifactMetadata(
            id="tools/ninja-build/ninja",
            version="1.11.1",
            summary="small build system",
        ),
        ArtifactMetadata(
            id="internal/helper",
            version="1.0.0",
            summary="helper for build scripts",
            dependency_only=True,
        ),
    ]


@pytest.fixture()
def registry(tmp_path: Path, sample_entries: list[ArtifactMetadata]) -> ArtifactRegistry:
    reg = ArtifactRegistry(tmp_path / "registry")
    reg.regenerate(sample_entries)
    return reg
