"""Debian-family backends driven by apt."""

from __future__ import annotations

import posixpath
from collections.abc import Sequence
from dataclasses import dataclass

from distrograph.distro.base import DistroConfig, image_state, normalize_root, quote_packages
from distrograph.graph import Constraints, RunDirective, State, persistent_cache, sh_args, with_run_options
from distrograph.imageconfig import ImageConfig, fetch_image_config
from distrograph.models import Platform
from distrograph.registry import ImageMetaResolver

# Docker's Debian images delete downloaded packages after every install,
# which defeats the persistent cache.
def keep_apt_cache(root: str) -> str:
    conf_dir = posixpath.join(root, "etc/apt/apt.conf.d")
    return (
        f"rm -f {conf_dir}/docker-clean; "
        f"mkdir -p {conf_dir}; "
        "echo 'Binary::apt::APT::Keep-Downloaded-Packages \"true\";' "
        f"> {conf_dir}/keep-cache"
    )


def apt_cache_mounts(root: str, prefix: str) -> RunDirective:
    return with_run_options(
        persistent_cache(posixpath.join(root, "var/cache/apt"), f"{prefix}-var-cache-apt"),
        persistent_cache(posixpath.join(root, "var/lib/apt"), f"{prefix}-var-lib-apt"),
    )


def apt_install(config: DistroConfig, root: str, packages: Sequence[str], skip_gpg: bool) -> RunDirective:
    root = normalize_root(root)
    caches = apt_cache_mounts(root, config.cache_name)
    if not packages:
        return with_run_options(sh_args("set -x; true"), caches)

    root_opts = [f"-o Dir={root}"] if root != "/" else []
    update = ["apt-get", "update", *root_opts]
    argv = ["apt-get", "install", "-y", "--no-install-recommends"]
    if skip_gpg:
        argv.append("--allow-unauthenticated")
    if root_opts:
        argv.extend([*root_opts, f"-o DPkg::Options::=--root={root}"])
    argv.append(quote_packages(packages, distro=config.target_key))

    command = f"set -x; {keep_apt_cache(root)}; {' '.join(update)} && {' '.join(argv)}"
    return with_run_options(
        sh_args(command),
        RunDirective(env={"DEBIAN_FRONTEND": "noninteractive"}),
        caches,
    )


@dataclass(frozen=True, slots=True)
class AptBackend:
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


JAMMY = AptBackend(
    DistroConfig(
        target_key="jammy",
        full_name="Ubuntu 22.04",
        image_ref="mcr.microsoft.com/mirror/docker/library/ubuntu:jammy",
        release_ver="22.04",
        builder_packages=("build-essential", "debhelper", "dpkg-dev", "devscripts", "ca-certificates"),
        base_packages=("quilt",),
        default_output_image="mcr.microsoft.com/mirror/docker/library/ubuntu:jammy",
        distroless_ref="mcr.microsoft.com/mirror/docker/library/ubuntu:jammy",
        cache_name="jammy",
        install=apt_install,
    ),
)
