"""Mount materialized sources under a single build root."""

from __future__ import annotations

import hashlib
import posixpath
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import cbor2

from distrograph.graph import Mount, RunDirective, State, merge_at_path
from distrograph.sources.model import SourceState


@dataclass(frozen=True, slots=True)
class MountPlan:
    dest: str
    # File-like sources merged into the synthetic root, in merge order.
    files: tuple[str, ...]
    # Directory-like sources, each mounted at ``dest/<name>``.
    directories: tuple[str, ...]
    directive: RunDirective

    def to_payload(self) -> dict[str, Any]:
        return {
            "dest": self.dest,
            "files": list(self.files),
            "directories": list(self.directories),
            "run": self.directive.to_payload(),
        }

    def marshal(self) -> bytes:
        return cbor2.dumps(self.to_payload(), canonical=True)

    def digest(self) -> str:
        return hashlib.sha256(self.marshal()).hexdigest()


def mount_sources(dest: str, states: Mapping[str, SourceState]) -> MountPlan:
    """Partition sources into a merged file root and per-directory mounts.

    Names are visited in sorted order so the merge layering does not depend on
    the iteration order of ``states``.
    """
    files: list[str] = []
    directories: list[str] = []
    for name in sorted(states):
        if states[name].is_dir:
            directories.append(name)
        else:
            files.append(name)

    merged = merge_at_path(State.scratch(), [states[name].state for name in files], "/")
    mounts = [Mount(dest=dest, source=merged)]
    mounts.extend(
        Mount(dest=posixpath.join(dest, name), source=states[name].state) for name in directories
    )
    return MountPlan(
        dest=dest,
        files=tuple(files),
        directories=tuple(directories),
        directive=RunDirective(mounts=tuple(mounts)),
    )
