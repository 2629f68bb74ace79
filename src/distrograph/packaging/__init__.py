"""Package format layouts built on top of captured artifacts."""

from .archive import build_zip
from .deb import build_deb, build_dsc, render_control, render_postinst, render_source_control
from .layout import Placement, artifact_placements, systemd_preset, unit_names
from .rpm import build_rpm, render_rpm_spec

__all__ = [
    "Placement",
    "artifact_placements",
    "build_deb",
    "build_dsc",
    "build_rpm",
    "build_zip",
    "render_control",
    "render_postinst",
    "render_rpm_spec",
    "render_source_control",
    "systemd_preset",
    "unit_names",
]
