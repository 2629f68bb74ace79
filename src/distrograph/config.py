"""Compiler configuration and enforcement helpers."""

from __future__ import annotations

from dataclasses import dataclass

from distrograph.errors import SpecValidationError
from distrograph.graph import NetworkMode


@dataclass(frozen=True, slots=True)
class CompilerConfig:
    build_root: str = "/build"
    scripts_dir: str = "/tmp/scripts"
    output_dir: str = "/tmp/output"
    build_script_name: str = "_build.sh"
    # Network mode for the step that runs the build script.
    build_network: NetworkMode = "none"
    skip_gpg: bool = False


DEFAULT_CONFIG = CompilerConfig()


def ensure_hermetic_build(config: CompilerConfig) -> None:
    if config.build_network != "none":
        raise SpecValidationError(
            "Build steps must run with networking disabled.",
            hint="Fetch anything the build needs as a declared source instead.",
            context={"operation": "assemble", "network": config.build_network},
        )
    for name, path in (
        ("build_root", config.build_root),
        ("scripts_dir", config.scripts_dir),
        ("output_dir", config.output_dir),
    ):
        if not path.startswith("/"):
            raise SpecValidationError(
                "Compiler directories must be absolute paths.",
                context={"operation": "assemble", "setting": name, "path": path},
            )
    if len({config.build_root, config.scripts_dir, config.output_dir}) != 3:
        raise SpecValidationError(
            "Build root, scripts and output directories must be distinct.",
            context={"operation": "assemble"},
        )
