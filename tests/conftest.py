"""Shared test fixtures."""

from __future__ import annotations

import pytest

from distrograph.artifacts import ArtifactConfig
from distrograph.models import (
    Artifacts,
    BuildSpec,
    BuildStep,
    Dependencies,
    PackageSpec,
    Source,
    SourceGit,
    SourceHTTP,
)
from distrograph.registry import StaticImageResolver
from distrograph.systemd import SystemdConfiguration, SystemdUnitConfig


@pytest.fixture
def resolver() -> StaticImageResolver:
    """Resolve every image to a small linux config."""
    return StaticImageResolver(
        fallback={
            "architecture": "amd64",
            "os": "linux",
            "config": {
                "Env": ["PATH=/usr/bin:/bin", "LANG=C.UTF-8"],
                "Entrypoint": ["/bin/sh"],
                "Labels": {"org.opencontainers.image.vendor": "upstream"},
            },
        },
    )


@pytest.fixture
def sample_spec() -> PackageSpec:
    """A small spec with one git source, one patch file and a systemd unit."""
    return PackageSpec(
        name="hello",
        version="1.2.3",
        description="Says hello",
        license="MIT",
        args={"VERSION": "1.2.3"},
        sources={
            "src": Source(git=SourceGit(url="https://example.com/hello.git", commit="v$VERSION")),
            "fix": Source(http=SourceHTTP(url="https://example.com/fix.patch")),
        },
        build=BuildSpec(
            steps=(
                BuildStep(command="make -C src"),
                BuildStep(command="make -C src check", env={"CHECK": "1"}),
            ),
        ),
        artifacts=Artifacts(
            binaries={"src/hello": ArtifactConfig()},
            systemd=SystemdConfiguration(
                units={"src/hello.service": SystemdUnitConfig(enable=True)},
            ),
        ),
        dependencies=Dependencies(build=("make", "gcc"), runtime=("glibc",)),
    )
