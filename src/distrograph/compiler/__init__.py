"""Build script synthesis and build graph assembly."""

from .assemble import AssembledBuild, assemble, install_build_deps, step_env
from .script import BuildScript, invocation_script, render_step, synthesize

__all__ = [
    "AssembledBuild",
    "BuildScript",
    "assemble",
    "install_build_deps",
    "invocation_script",
    "render_step",
    "step_env",
    "synthesize",
]
