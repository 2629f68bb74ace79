"""RPM-family backends driven by tdnf."""

from __future__ import annotations

import posixpath
from collections.abc import Sequence
from dataclasses import dataclass

from distrograph.distro.base import DistroConfig, image_state, normalize_root, quote_packages
from distrograph.graph import Constraints, RunDirective, State, persistent_cache, sh_args, with_run_options
from distrograph.imageconfig import ImageConfig, fetch_image_config
from distrograph.models import Platform
from distrograph.registry import ImageMetaResolver

TDNF_CACHE_DIR = "/var/cache/tdnf"


def tdnf_install(config: DistroConfig, root: str, packages: Sequence[str], skip_gpg: bool) -> RunDirective:
    root = normalize_root(root)
    cache = persistent_cache(posixpath.join(root, TDNF_CACHE_DIR.lstrip("/")), config.cache_name)
    if not packages:
        return with_run_options(sh_args("set -x; true"), cache)

    argv = ["set -x;", "tdnf", "install", "-y"]
    if skip_gpg:
        argv.append("--nogpgcheck")
    argv.extend(
        [
            "--setopt=reposdir=/etc/yum.repos.d",
            f"--installroot={root}",
            f"--releasever={config.release_ver}",
            quote_packages(packages, distro=config.target_key),
        ],
    )
    return with_run_options(sh_args(" ".join(argv)), cache)


@dataclass(frozen=True, slots=True)
class TdnfBackend:
    config: DistroConfig

    @property
    def name(self) -> str:
        return self.config.target_key

    def base(self, resolver: ImageMetaResolver | None, constraints: Constraints) -> State:
        packages = (*self.config.builder_packages, *self.config.base_packages)
        return (
            image_state(self.config.image_ref, resolver, constraints)
            .run(self.install("/", packages, False), constraints=constraints)
            .root_state()
        )

    def install(self, root: str, packages: Sequence[str], skip_gpg: bool) -> RunDirective:
        return self.config.install(self.config, root, packages, skip_gpg)

    def default_image_config(
        self,
        resolver: ImageMetaResolver,
        platform: Platform | None,
    ) -> ImageConfig:
        return fetch_image_config(resolver, self.config.distroless_ref, platform)


MARINER2 = TdnfBackend(
    DistroConfig(
        target_key="mariner2",
        full_name="CBL-Mariner 2",
        image_ref="mcr.microsoft.com/cbl-mariner/base/core:2.0",
        release_ver="2.0",
        builder_packages=("rpm-build", "mariner-rpm-macros", "build-essential", "ca-certificates"),
        base_packages=(),
        default_output_image="mcr.microsoft.com/cbl-mariner/distroless/base:2.0",
        distroless_ref="mcr.microsoft.com/cbl-mariner/distroless/base:2.0",
        cache_name="mariner2-tdnf-cache",
        install=tdnf_install,
    ),
)

AZLINUX3 = TdnfBackend(
    DistroConfig(
        target_key="azlinux3",
        full_name="Azure Linux 3",
        image_ref="azurelinuxpreview.azurecr.io/public/azurelinux/base/core:3.0",
        release_ver="3.0",
        builder_packages=("rpm-build", "azurelinux-rpm-macros", "build-essential", "ca-certificates"),
        base_packages=(),
        default_output_image="azurelinuxpreview.azurecr.io/public/azurelinux/distroless/base:3.0",
        distroless_ref="azurelinuxpreview.azurecr.io/public/azurelinux/distroless/base:3.0",
        cache_name="azlinux3-tdnf-cache",
        install=tdnf_install,
    ),
)
