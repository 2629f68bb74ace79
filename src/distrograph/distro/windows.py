"""Cross-compile worker producing Windows binaries from an Ubuntu host."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from distrograph.distro.base import DistroConfig, image_state
from distrograph.distro.deb import apt_install
from distrograph.graph import Constraints, RunDirective, State
from distrograph.imageconfig import ImageConfig, fetch_image_config
from distrograph.models import Platform
from distrograph.registry import ImageMetaResolver

WINDOWS_PLATFORM = Platform(os="windows", architecture="amd64")


@dataclass(frozen=True, slots=True)
class WindowsCrossBackend:
    config: DistroConfig

    @property
    def name(self) -> str:
        return self.config.target_key

    def base(self, resolver: ImageMetaResolver | None, constraints: Constraints) -> State:
        # The worker always runs on the build host's linux platform.
        worker_constraints = Constraints(progress_group=constraints.progress_group)
        packages = (*self.config.builder_packages, *self.config.base_packages)
        return (
            image_state(self.config.image_ref, resolver, worker_constraints)
            .run(self.install("/", packages, False), constraints=worker_constraints)
            .root_state()
        )

    def install(self, root: str, packages: Sequence[str], skip_gpg: bool) -> RunDirective:
        return self.config.install(self.config, root, packages, skip_gpg)

    def default_image_config(
        self,
        resolver: ImageMetaResolver,
        platform: Platform | None,
    ) -> ImageConfig:
        return fetch_image_config(resolver, self.config.distroless_ref, platform or WINDOWS_PLATFORM)


WINDOWSCROSS = WindowsCrossBackend(
    DistroConfig(
        target_key="windowscross",
        full_name="Windows (cross-compiled on Ubuntu 22.04)",
        image_ref="mcr.microsoft.com/mirror/docker/library/ubuntu:jammy",
        release_ver="22.04",
        builder_packages=(
            "build-essential",
            "binutils-mingw-w64",
            "g++-mingw-w64-x86-64",
            "gcc",
            "git",
            "make",
            "pkg-config",
            "quilt",
            "zip",
        ),
        base_packages=(),
        default_output_image="mcr.microsoft.com/windows/nanoserver:ltsc2022",
        distroless_ref="mcr.microsoft.com/windows/nanoserver:ltsc2022",
        cache_name="jammy-windowscross",
        install=apt_install,
    ),
)
