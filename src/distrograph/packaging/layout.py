"""Where captured artifacts are installed inside a package."""

from __future__ import annotations

import posixpath
import shlex
from collections.abc import Sequence
from dataclasses import dataclass

from distrograph.models import Artifacts, PackageSpec

BIN_DIR = "/usr/bin"
UNIT_DIR = "/usr/lib/systemd/system"
PRESET_DIR = "/usr/lib/systemd/system-preset"


@dataclass(frozen=True, slots=True)
class Placement:
    # Path relative to the captured output directory.
    source: str
    # Absolute install path inside the package.
    dest: str
    mode: int = 0o644
    config: bool = False


def artifact_placements(artifacts: Artifacts) -> tuple[Placement, ...]:
    placements: list[Placement] = []
    for path, artifact in sorted(artifacts.binaries.items()):
        placements.append(
            Placement(
                source=posixpath.basename(path.rstrip("/")),
                dest=artifact.install_path(BIN_DIR, path),
                mode=0o755,
            ),
        )

    systemd = artifacts.systemd
    if systemd is not None:
        for path, unit in sorted(systemd.units.items()):
            placements.append(
                Placement(
                    source=unit.artifact().install_path("systemd", path),
                    dest=unit.artifact().install_path(UNIT_DIR, path),
                ),
            )
        for path, dropin in sorted(systemd.dropins.items()):
            placements.append(
                Placement(
                    source=dropin.artifact().install_path("systemd", path),
                    dest=dropin.artifact().install_path(UNIT_DIR, path),
                    config=True,
                ),
            )
    return tuple(placements)


def unit_names(artifacts: Artifacts, *, enabled_only: bool = False) -> tuple[str, ...]:
    systemd = artifacts.systemd
    if systemd is None:
        return ()
    names = [
        unit.resolve_name(path)
        for path, unit in systemd.units.items()
        if unit.enable or not enabled_only
    ]
    return tuple(sorted(names))


def preset_file_name(spec: PackageSpec) -> str:
    return f"50-{spec.name}.preset"


def systemd_preset(artifacts: Artifacts) -> str:
    """Render a preset file enabling or disabling each declared unit."""
    systemd = artifacts.systemd
    if systemd is None or not systemd.units:
        return ""
    lines = []
    for path, unit in sorted(systemd.units.items()):
        verb = "enable" if unit.enable else "disable"
        lines.append(f"{verb} {unit.resolve_name(path)}")
    return "\n".join(lines) + "\n"


def stage_commands(placements: Sequence[Placement], source_dir: str, dest_root: str) -> list[str]:
    commands = []
    for placement in placements:
        src = posixpath.join(source_dir, placement.source)
        dest = dest_root.rstrip("/") + placement.dest
        commands.append(f"install -D -m {placement.mode:04o} {shlex.quote(src)} {shlex.quote(dest)}")
    return commands
