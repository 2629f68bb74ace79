"""Overlay declared patches onto materialized sources."""

from __future__ import annotations

import posixpath
import shlex
from collections.abc import Mapping
from dataclasses import replace

from distrograph.errors import SourceResolutionError
from distrograph.graph import Constraints, State, add_mount, network, run_dir, sh_args
from distrograph.models import PackageSpec, PatchSpec
from distrograph.sources.model import DeclaredSource, SourceState

SOURCE_MOUNT = "/src"
PATCH_MOUNT = "/patch"


def patch_file_name(patch: PatchSpec, patch_source: SourceState) -> str:
    if patch_source.is_dir:
        if not patch.path:
            raise SourceResolutionError(
                "Patch source is a directory but the patch does not name a file in it.",
                hint="Set `path` on the patch to the file inside the patch source.",
                context={"operation": "apply_patches", "patch": patch.source},
            )
        return patch.path
    # File-like sources materialize as a file named after the source.
    return patch.source


def apply_patch(
    worker: State,
    target: State,
    patch: PatchSpec,
    patch_source: SourceState,
    *,
    constraints: Constraints | None = None,
) -> State:
    patch_path = posixpath.join(PATCH_MOUNT, patch_file_name(patch, patch_source))
    command = f"patch -p{patch.strip} --no-backup-if-mismatch -i {shlex.quote(patch_path)}"
    return worker.run(
        sh_args(command),
        add_mount(PATCH_MOUNT, patch_source.state, readonly=True),
        run_dir(SOURCE_MOUNT),
        network("none"),
        constraints=constraints,
    ).add_mount(SOURCE_MOUNT, target)


def apply_patches(
    worker: State,
    spec: PackageSpec,
    sources: Mapping[str, SourceState],
    *,
    constraints: Constraints | None = None,
) -> dict[str, SourceState]:
    """Return a new mapping with every source's patches applied in order."""
    patched: dict[str, SourceState] = {}
    for name in sorted(sources):
        source_state = sources[name]
        patches = spec.patches.get(name, ())
        if not patches:
            patched[name] = source_state
            continue

        if not source_state.patchable or not isinstance(source_state, DeclaredSource):
            raise SourceResolutionError(
                "Generated sources cannot be patched.",
                context={"operation": "apply_patches", "source": name},
            )
        if not source_state.is_dir:
            raise SourceResolutionError(
                "Only directory-like sources can be patched.",
                context={"operation": "apply_patches", "source": name},
            )

        state = source_state.state
        for index, patch in enumerate(patches):
            patch_source = sources.get(patch.source)
            if patch_source is None:
                raise SourceResolutionError(
                    "Patch references a source that was not materialized.",
                    context={
                        "operation": "apply_patches",
                        "source": name,
                        "patch": patch.source,
                        "index": str(index),
                    },
                )
            try:
                state = apply_patch(worker, state, patch, patch_source, constraints=constraints)
            except SourceResolutionError as exc:
                raise SourceResolutionError(
                    f"Failed to apply patch {index} to source {name!r}.",
                    context={"operation": "apply_patches", "source": name, "patch": patch.source},
                ) from exc
        patched[name] = replace(source_state, state=state)
    return patched
