"""Source materialization, patching and mounting."""

from .materialize import gomod_deps, materialize_sources, source_state
from .model import DeclaredSource, GeneratedSource, SourceOptions, SourceState
from .mount import MountPlan, mount_sources
from .patch import apply_patch, apply_patches

__all__ = [
    "DeclaredSource",
    "GeneratedSource",
    "MountPlan",
    "SourceOptions",
    "SourceState",
    "apply_patch",
    "apply_patches",
    "gomod_deps",
    "materialize_sources",
    "mount_sources",
    "source_state",
]
