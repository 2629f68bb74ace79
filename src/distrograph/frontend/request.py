"""Build request and result types passed through target handlers."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from distrograph.config import DEFAULT_CONFIG, CompilerConfig
from distrograph.errors import ResolutionError
from distrograph.graph import Constraints, State
from distrograph.imageconfig import ImageConfig
from distrograph.models import PackageSpec, Platform
from distrograph.observability import StructuredLogger
from distrograph.registry import ImageMetaResolver
from distrograph.signing import Signer
from distrograph.sources import SourceOptions


@dataclass(slots=True)
class BuildRequest:
    target: str
    spec: PackageSpec
    platform: Platform | None = None
    build_args: Mapping[str, str] = field(default_factory=dict)
    resolver: ImageMetaResolver | None = None
    signer: Signer | None = None
    config: CompilerConfig = DEFAULT_CONFIG
    logger: StructuredLogger | None = None

    def prepared_spec(self) -> PackageSpec:
        """Expand build args into a fresh spec copy and validate it."""
        spec = self.spec.with_build_args(self.build_args)
        spec.validate()
        return spec

    def constraints(self, group: str = "") -> Constraints:
        return Constraints(
            platform=str(self.platform) if self.platform is not None else "",
            progress_group=group,
        )

    def source_options(self, group: str = "") -> SourceOptions:
        return SourceOptions(resolver=self.resolver, constraints=self.constraints(group))

    def require_resolver(self, target_key: str) -> ImageMetaResolver:
        if self.resolver is None:
            raise ResolutionError(
                "Container targets need an image resolver.",
                context={"operation": "resolve_image_config", "target": target_key},
            )
        return self.resolver

    def log(self, *, target: str, stage: str, message: str) -> None:
        if self.logger is not None:
            self.logger.log(operation="handle", target=target, stage=stage, message=message)


@dataclass(frozen=True, slots=True)
class BuildResult:
    target: str
    state: State
    image_config: ImageConfig | None = None

    def marshal(self) -> bytes:
        return self.state.marshal()


Handler = Callable[[BuildRequest], BuildResult]
