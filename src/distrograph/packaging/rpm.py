"""RPM spec rendering and rpmbuild invocation."""

from __future__ import annotations

import posixpath

from distrograph.config import CompilerConfig
from distrograph.graph import Constraints, Mkfile, State, add_mount, network, sh_args
from distrograph.models import PackageSpec
from distrograph.packaging.layout import (
    PRESET_DIR,
    artifact_placements,
    preset_file_name,
    stage_commands,
    systemd_preset,
    unit_names,
)

ARTIFACTS_DIR = "/tmp/artifacts"
SPECS_DIR = "/tmp/specs"
TOP_DIR = "/tmp/rpmbuild"


def render_rpm_spec(spec: PackageSpec, target_key: str) -> str:
    summary = spec.description.splitlines()[0] if spec.description else spec.name
    lines = [
        f"Name: {spec.name}",
        f"Version: {spec.version}",
        f"Release: {spec.revision}%{{?dist}}",
        f"License: {spec.license or 'Unknown'}",
        f"Summary: {summary}",
    ]
    if spec.website:
        lines.append(f"URL: {spec.website}")
    for dep in sorted(set(spec.get_runtime_deps(target_key))):
        lines.append(f"Requires: {dep}")
    units = unit_names(spec.artifacts)
    if units:
        lines.append("%{?systemd_requires}")

    lines.extend(["", "%description", spec.description or spec.name, ""])

    placements = artifact_placements(spec.artifacts)
    preset = systemd_preset(spec.artifacts)
    lines.append("%install")
    lines.extend(stage_commands(placements, ARTIFACTS_DIR, "%{buildroot}"))
    if preset:
        preset_src = posixpath.join(SPECS_DIR, preset_file_name(spec))
        preset_dest = posixpath.join(PRESET_DIR, preset_file_name(spec))
        lines.append(f"install -D -m 0644 {preset_src} %{{buildroot}}{preset_dest}")
    lines.append("")

    if units:
        joined = " ".join(units)
        lines.extend(
            [
                "%post",
                f"%systemd_post {joined}",
                "",
                "%preun",
                f"%systemd_preun {joined}",
                "",
                "%postun",
                f"%systemd_postun_with_restart {joined}",
                "",
            ],
        )

    lines.append("%files")
    for placement in placements:
        if placement.config:
            lines.append(f"%config(noreplace) {placement.dest}")
        else:
            lines.append(placement.dest)
    if preset:
        lines.append(posixpath.join(PRESET_DIR, preset_file_name(spec)))
    return "\n".join(lines) + "\n"


def spec_files_state(spec: PackageSpec, target_key: str) -> State:
    actions = [
        Mkfile(
            path=f"/{spec.name}.spec",
            mode=0o644,
            data=render_rpm_spec(spec, target_key).encode("utf-8"),
        ),
    ]
    preset = systemd_preset(spec.artifacts)
    if preset:
        actions.append(Mkfile(path=f"/{preset_file_name(spec)}", mode=0o644, data=preset.encode("utf-8")))
    return State.scratch().file(*actions)


def build_rpm(
    worker: State,
    spec: PackageSpec,
    artifacts: State,
    target_key: str,
    *,
    config: CompilerConfig,
    constraints: Constraints | None = None,
) -> State:
    command = " ".join(
        [
            "rpmbuild -bb",
            f"--define '_topdir {TOP_DIR}'",
            f"--define '_sourcedir {ARTIFACTS_DIR}'",
            f"--define '_rpmdir {config.output_dir}'",
            posixpath.join(SPECS_DIR, f"{spec.name}.spec"),
        ],
    )
    return worker.run(
        sh_args(command),
        add_mount(ARTIFACTS_DIR, artifacts, readonly=True),
        add_mount(SPECS_DIR, spec_files_state(spec, target_key), readonly=True),
        network("none"),
        constraints=constraints,
    ).add_mount(config.output_dir, State.scratch())
