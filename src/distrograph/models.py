"""Core typed dataclasses describing a package build."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Literal

from distrograph.artifacts import ArtifactConfig
from distrograph.buildargs import expand_args, expand_mapping, resolve_build_args
from distrograph.errors import SpecValidationError
from distrograph.systemd import SystemdConfiguration

# Name under which the generated Go module cache is mounted next to the sources.
GOMODS_SOURCE_NAME = "__gomods"
RESERVED_SOURCE_NAMES = frozenset({GOMODS_SOURCE_NAME})

SOURCE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

SourceKind = Literal["git", "http", "context", "inline", "image"]


@dataclass(frozen=True, slots=True)
class Platform:
    os: str = "linux"
    architecture: str = "amd64"
    variant: str = ""

    @classmethod
    def parse(cls, value: str) -> Platform:
        parts = value.split("/")
        if len(parts) < 2 or len(parts) > 3 or not all(parts):
            raise SpecValidationError(
                "Platform must be formatted as os/arch[/variant].",
                context={"platform": value},
            )
        return cls(os=parts[0], architecture=parts[1], variant=parts[2] if len(parts) == 3 else "")

    def __str__(self) -> str:
        if self.variant:
            return f"{self.os}/{self.architecture}/{self.variant}"
        return f"{self.os}/{self.architecture}"


@dataclass(frozen=True, slots=True)
class SourceGit:
    url: str
    commit: str
    keep_git_dir: bool = False


@dataclass(frozen=True, slots=True)
class SourceHTTP:
    url: str
    digest: str = ""


@dataclass(frozen=True, slots=True)
class SourceContext:
    name: str = "context"
    path: str = "."


@dataclass(frozen=True, slots=True)
class InlineFile:
    contents: str = ""
    permissions: int = 0o644


@dataclass(frozen=True, slots=True)
class SourceInline:
    file: InlineFile | None = None
    dir: Mapping[str, InlineFile] | None = None


@dataclass(frozen=True, slots=True)
class SourceImage:
    ref: str


@dataclass(frozen=True, slots=True)
class GomodGenerator:
    # Directories, relative to the source root, holding go.mod files.
    paths: tuple[str, ...] = (".",)


@dataclass(frozen=True, slots=True)
class Source:
    git: SourceGit | None = None
    http: SourceHTTP | None = None
    context: SourceContext | None = None
    inline: SourceInline | None = None
    image: SourceImage | None = None
    # Sub-path of the fetched content to keep.
    path: str = ""
    generate: tuple[GomodGenerator, ...] = ()

    def variants(self) -> tuple[SourceKind, ...]:
        found: list[SourceKind] = []
        if self.git is not None:
            found.append("git")
        if self.http is not None:
            found.append("http")
        if self.context is not None:
            found.append("context")
        if self.inline is not None:
            found.append("inline")
        if self.image is not None:
            found.append("image")
        return tuple(found)

    @property
    def kind(self) -> SourceKind:
        variants = self.variants()
        if len(variants) != 1:
            raise SpecValidationError(
                "A source must declare exactly one source type.",
                context={"types": ",".join(variants) or "none"},
            )
        return variants[0]

    def is_dir(self) -> bool:
        """Decide mount strategy from the declaration alone."""
        kind = self.kind
        if kind == "http":
            return False
        if kind == "inline":
            return self.inline is not None and self.inline.dir is not None
        return True

    def with_build_args(self, args: Mapping[str, str], *, name: str) -> Source:
        updated = self
        if self.git is not None:
            updated = replace(
                updated,
                git=replace(
                    self.git,
                    url=expand_args(self.git.url, args, field=f"sources.{name}.git.url"),
                    commit=expand_args(self.git.commit, args, field=f"sources.{name}.git.commit"),
                ),
            )
        if self.http is not None:
            updated = replace(
                updated,
                http=replace(
                    self.http,
                    url=expand_args(self.http.url, args, field=f"sources.{name}.http.url"),
                ),
            )
        if self.context is not None:
            updated = replace(
                updated,
                context=replace(
                    self.context,
                    path=expand_args(self.context.path, args, field=f"sources.{name}.context.path"),
                ),
            )
        if self.image is not None:
            updated = replace(
                updated,
                image=replace(
                    self.image,
                    ref=expand_args(self.image.ref, args, field=f"sources.{name}.image.ref"),
                ),
            )
        if self.path:
            updated = replace(
                updated,
                path=expand_args(self.path, args, field=f"sources.{name}.path"),
            )
        return updated


@dataclass(frozen=True, slots=True)
class PatchSpec:
    # Name of the source holding the patch.
    source: str
    strip: int = 1
    # File inside a directory-like patch source.
    path: str = ""


@dataclass(frozen=True, slots=True)
class BuildStep:
    command: str
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BuildSpec:
    steps: tuple[BuildStep, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Artifacts:
    # Keyed by path relative to the build root.
    binaries: Mapping[str, ArtifactConfig] = field(default_factory=dict)
    systemd: SystemdConfiguration | None = None


@dataclass(frozen=True, slots=True)
class Dependencies:
    build: tuple[str, ...] = ()
    runtime: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ImageSpec:
    """Container image overrides; ``None`` means keep the base value."""

    base: str = ""
    entrypoint: tuple[str, ...] | None = None
    cmd: tuple[str, ...] | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    labels: Mapping[str, str] = field(default_factory=dict)
    working_dir: str | None = None
    user: str | None = None
    stop_signal: str | None = None
    volumes: tuple[str, ...] = ()
    exposed_ports: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SignerConfig:
    image: str
    cmdline: str = "/signer"
    args: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TargetConfig:
    dependencies: Dependencies | None = None
    image: ImageSpec | None = None
    signer: SignerConfig | None = None


@dataclass(frozen=True, slots=True)
class PackageSpec:
    name: str
    version: str = "0.0.0"
    revision: str = "1"
    description: str = ""
    license: str = ""
    website: str = ""
    args: Mapping[str, str] = field(default_factory=dict)
    sources: Mapping[str, Source] = field(default_factory=dict)
    patches: Mapping[str, tuple[PatchSpec, ...]] = field(default_factory=dict)
    build: BuildSpec = field(default_factory=BuildSpec)
    artifacts: Artifacts = field(default_factory=Artifacts)
    dependencies: Dependencies = field(default_factory=Dependencies)
    targets: Mapping[str, TargetConfig] = field(default_factory=dict)
    image: ImageSpec | None = None
    signer: SignerConfig | None = None

    def with_build_args(self, provided: Mapping[str, str]) -> PackageSpec:
        """Return an expanded copy; the receiver is never modified."""
        args = resolve_build_args(self.args, provided)

        sources = {
            name: source.with_build_args(args, name=name) for name, source in self.sources.items()
        }
        steps = tuple(
            replace(step, env=expand_mapping(step.env, args, field=f"build.steps[{index}].env"))
            for index, step in enumerate(self.build.steps)
        )
        build = BuildSpec(steps=steps, env=expand_mapping(self.build.env, args, field="build.env"))

        artifacts = self.artifacts
        if artifacts.systemd is not None:
            artifacts = replace(artifacts, systemd=artifacts.systemd.with_build_args(args))

        return replace(
            self,
            version=expand_args(self.version, args, field="version"),
            revision=expand_args(self.revision, args, field="revision"),
            args=args,
            sources=sources,
            build=build,
            artifacts=artifacts,
        )

    def get_build_deps(self, target_key: str) -> tuple[str, ...]:
        target = self.targets.get(target_key)
        if target is not None and target.dependencies is not None:
            return target.dependencies.build
        return self.dependencies.build

    def get_runtime_deps(self, target_key: str) -> tuple[str, ...]:
        target = self.targets.get(target_key)
        if target is not None and target.dependencies is not None:
            return target.dependencies.runtime
        return self.dependencies.runtime

    def get_image(self, target_key: str) -> ImageSpec:
        target = self.targets.get(target_key)
        if target is not None and target.image is not None:
            return target.image
        return self.image or ImageSpec()

    def get_signer(self, target_key: str) -> SignerConfig | None:
        target = self.targets.get(target_key)
        if target is not None and target.signer is not None:
            return target.signer
        return self.signer

    def has_gomods(self) -> bool:
        return any(source.generate for source in self.sources.values())

    def validate(self) -> None:
        if not self.name:
            raise SpecValidationError("Spec must declare a package name.")

        for name, source in sorted(self.sources.items()):
            if name in RESERVED_SOURCE_NAMES:
                raise SpecValidationError(
                    "Source name is reserved for generated sources.",
                    hint="Rename the source.",
                    context={"source": name},
                )
            if not SOURCE_NAME_PATTERN.fullmatch(name):
                raise SpecValidationError(
                    "Source names must be a single path component.",
                    context={"source": name},
                )
            try:
                _ = source.kind
            except SpecValidationError as exc:
                raise SpecValidationError(
                    f"Invalid declaration for source {name!r}.",
                    context={"source": name},
                ) from exc

        for source_name, patches in sorted(self.patches.items()):
            if source_name not in self.sources:
                raise SpecValidationError(
                    "Patches declared for an unknown source.",
                    context={"source": source_name},
                )
            for patch in patches:
                if patch.source not in self.sources:
                    raise SpecValidationError(
                        "Patch references an unknown patch source.",
                        context={"source": source_name, "patch": patch.source},
                    )
                if patch.strip < 0:
                    raise SpecValidationError(
                        "Patch strip level must not be negative.",
                        context={"source": source_name, "patch": patch.source},
                    )

        for index, step in enumerate(self.build.steps):
            if not step.command.strip():
                raise SpecValidationError(
                    "Build step has an empty command.",
                    context={"step": str(index)},
                )

        moved: dict[str, str] = {}
        installed: dict[str, str] = {}
        for path, artifact in sorted(self.artifacts.binaries.items()):
            # Binaries are moved into the output root by base name.
            base = posixpath.basename(path.rstrip("/"))
            if base in moved:
                raise SpecValidationError(
                    "Two binaries share the same file name.",
                    hint="Rename one of the produced files.",
                    context={"binary": path, "other": moved[base], "name": base},
                )
            moved[base] = path
            dest = artifact.install_path("/", path)
            if dest in installed:
                raise SpecValidationError(
                    "Two binaries resolve to the same install path.",
                    context={"binary": path, "other": installed[dest], "path": dest},
                )
            installed[dest] = path

        if self.artifacts.systemd is not None:
            self.artifacts.systemd.validate()
