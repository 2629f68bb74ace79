"""Public package entrypoint for compiling package specs into build graphs."""

from .compiler import AssembledBuild, assemble
from .config import DEFAULT_CONFIG, CompilerConfig
from .errors import (
    BuildStepError,
    ConfigDecodeError,
    DependencyInstallError,
    DistroGraphError,
    ErrorCode,
    ResolutionError,
    SigningError,
    SourceResolutionError,
    SpecValidationError,
    UnknownTargetError,
)
from .frontend import BuildMux, BuildRequest, BuildResult, Target, build_router, handle
from .graph import State
from .imageconfig import ImageConfig
from .models import (
    Artifacts,
    BuildSpec,
    BuildStep,
    Dependencies,
    ImageSpec,
    PackageSpec,
    PatchSpec,
    Platform,
    Source,
)
from .observability import StructuredLogger
from .registry import StaticImageResolver

__all__ = [
    "AssembledBuild",
    "Artifacts",
    "BuildMux",
    "BuildRequest",
    "BuildResult",
    "BuildSpec",
    "BuildStep",
    "BuildStepError",
    "CompilerConfig",
    "ConfigDecodeError",
    "DEFAULT_CONFIG",
    "Dependencies",
    "DependencyInstallError",
    "DistroGraphError",
    "ErrorCode",
    "ImageConfig",
    "ImageSpec",
    "PackageSpec",
    "PatchSpec",
    "Platform",
    "ResolutionError",
    "SigningError",
    "Source",
    "SourceResolutionError",
    "SpecValidationError",
    "State",
    "StaticImageResolver",
    "StructuredLogger",
    "Target",
    "UnknownTargetError",
    "assemble",
    "build_router",
    "handle",
]
