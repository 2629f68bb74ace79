"""Protocol and shared helpers for distro backends."""

from __future__ import annotations

import re
import shlex
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from distrograph.errors import DependencyInstallError
from distrograph.graph import Constraints, RunDirective, State
from distrograph.imageconfig import ImageConfig, fetch_image_config
from distrograph.models import Platform
from distrograph.registry import ImageMetaResolver

PACKAGE_PATTERN = re.compile(r"^[A-Za-z0-9_][^\s'\"`$;&|\\]*$")


class DistroBackend(Protocol):
    name: str

    def base(self, resolver: ImageMetaResolver | None, constraints: Constraints) -> State:
        """Return the build root with the minimal build toolchain installed."""

    def install(self, root: str, packages: Sequence[str], skip_gpg: bool) -> RunDirective:
        """Return a run directive installing ``packages`` into ``root``."""

    def default_image_config(
        self,
        resolver: ImageMetaResolver,
        platform: Platform | None,
    ) -> ImageConfig:
        """Resolve and decode the distro's minimal runtime image config."""


PackageInstaller = Callable[["DistroConfig", str, Sequence[str], bool], RunDirective]


@dataclass(frozen=True, slots=True)
class DistroConfig:
    target_key: str
    full_name: str
    image_ref: str
    release_ver: str
    builder_packages: tuple[str, ...]
    base_packages: tuple[str, ...]
    default_output_image: str
    distroless_ref: str
    cache_name: str
    install: PackageInstaller


def image_state(
    ref: str,
    resolver: ImageMetaResolver | None,
    constraints: Constraints,
) -> State:
    """Image state carrying the env and working dir from its resolved config."""
    if resolver is None:
        return State.image(ref, constraints=constraints)
    platform = Platform.parse(constraints.platform) if constraints.platform else None
    config = fetch_image_config(resolver, ref, platform)
    env = config.config.env_map() or None
    return State.image(ref, constraints=constraints, env=env, workdir=config.config.working_dir)


def normalize_root(root: str) -> str:
    return root or "/"


def quote_packages(packages: Sequence[str], *, distro: str) -> str:
    """Validate package tokens and join them, preserving caller order."""
    for package in packages:
        if not PACKAGE_PATTERN.fullmatch(package):
            raise DependencyInstallError(
                "Invalid package name in install list.",
                hint="Package names must not contain whitespace or shell metacharacters.",
                context={"operation": "install", "distro": distro, "package": package},
            )
    return " ".join(shlex.quote(package) for package in packages)
