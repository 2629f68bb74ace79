"""Installable artifact naming and placement."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ArtifactConfig:
    # Directory under the artifact kind's install root.
    subpath: str = ""
    # File name in the package; the produced file's base name when empty.
    name: str = ""

    def resolve_name(self, path: str) -> str:
        if self.name:
            return self.name
        return posixpath.basename(path.rstrip("/"))

    def install_path(self, root: str, path: str) -> str:
        """Return where the artifact produced at ``path`` lands under ``root``."""
        return posixpath.join(root, self.subpath, self.resolve_name(path))
