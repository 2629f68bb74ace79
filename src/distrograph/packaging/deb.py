"""Debian binary and source package rendering."""

from __future__ import annotations

import posixpath
import shlex
import textwrap

from distrograph.compiler.script import BuildScript
from distrograph.config import CompilerConfig
from distrograph.graph import Constraints, Mkdir, Mkfile, State, add_mount, network, run_dir, sh_args
from distrograph.models import PackageSpec
from distrograph.packaging.layout import (
    PRESET_DIR,
    artifact_placements,
    preset_file_name,
    stage_commands,
    systemd_preset,
    unit_names,
)
from distrograph.sources import MountPlan

ARTIFACTS_DIR = "/tmp/artifacts"
DEBIAN_DIR = "/tmp/debian"
PKG_ROOT = "/tmp/pkgroot"

DEB_ARCH = {"amd64": "amd64", "arm64": "arm64", "arm": "armhf", "386": "i386"}


def deb_version(spec: PackageSpec) -> str:
    return f"{spec.version}-{spec.revision}"


def render_control(spec: PackageSpec, target_key: str, architecture: str) -> str:
    summary = spec.description.splitlines()[0] if spec.description else spec.name
    lines = [
        f"Package: {spec.name}",
        f"Version: {deb_version(spec)}",
        f"Architecture: {DEB_ARCH.get(architecture, architecture)}",
        "Maintainer: distrograph <noreply@localhost>",
    ]
    runtime = sorted(set(spec.get_runtime_deps(target_key)))
    if runtime:
        lines.append(f"Depends: {', '.join(runtime)}")
    if spec.website:
        lines.append(f"Homepage: {spec.website}")
    lines.append(f"Description: {summary}")
    return "\n".join(lines) + "\n"


def render_postinst(spec: PackageSpec) -> str:
    enabled = unit_names(spec.artifacts, enabled_only=True)
    if not enabled:
        return ""
    units = " ".join(enabled)
    return textwrap.dedent(f"""\
        #!/bin/sh
        set -e
        if [ "$1" = "configure" ] && [ -d /run/systemd/system ]; then
            systemctl daemon-reload || true
            deb-systemd-helper enable {units} || true
        fi
    """)


def debian_files_state(spec: PackageSpec, target_key: str, architecture: str) -> State:
    actions = [
        Mkfile(
            path="/control",
            mode=0o644,
            data=render_control(spec, target_key, architecture).encode("utf-8"),
        ),
    ]
    postinst = render_postinst(spec)
    if postinst:
        actions.append(Mkfile(path="/postinst", mode=0o755, data=postinst.encode("utf-8")))
    preset = systemd_preset(spec.artifacts)
    if preset:
        actions.append(Mkfile(path=f"/{preset_file_name(spec)}", mode=0o644, data=preset.encode("utf-8")))
    return State.scratch().file(*actions)


def build_deb(
    worker: State,
    spec: PackageSpec,
    artifacts: State,
    target_key: str,
    *,
    architecture: str,
    config: CompilerConfig,
    constraints: Constraints | None = None,
) -> State:
    out_name = f"{spec.name}_{deb_version(spec)}_{DEB_ARCH.get(architecture, architecture)}.deb"
    commands = ["set -ex", f"mkdir -p {PKG_ROOT}/DEBIAN"]
    commands.extend(stage_commands(artifact_placements(spec.artifacts), ARTIFACTS_DIR, PKG_ROOT))
    commands.append(f"cp {DEBIAN_DIR}/control {PKG_ROOT}/DEBIAN/control")
    if render_postinst(spec):
        commands.append(f"install -m 0755 {DEBIAN_DIR}/postinst {PKG_ROOT}/DEBIAN/postinst")
    if systemd_preset(spec.artifacts):
        preset = preset_file_name(spec)
        commands.append(
            f"install -D -m 0644 {DEBIAN_DIR}/{preset} {PKG_ROOT}{posixpath.join(PRESET_DIR, preset)}",
        )
    commands.append(
        f"dpkg-deb --root-owner-group --build {PKG_ROOT} "
        f"{shlex.quote(posixpath.join(config.output_dir, out_name))}",
    )
    return worker.run(
        sh_args("\n".join(commands)),
        add_mount(ARTIFACTS_DIR, artifacts, readonly=True),
        add_mount(DEBIAN_DIR, debian_files_state(spec, target_key, architecture), readonly=True),
        network("none"),
        constraints=constraints,
    ).add_mount(config.output_dir, State.scratch())


def render_source_control(spec: PackageSpec, target_key: str) -> str:
    build_deps = ["debhelper-compat (= 12)", *sorted(set(spec.get_build_deps(target_key)))]
    binary = render_control(spec, target_key, "any").splitlines()
    lines = [
        f"Source: {spec.name}",
        "Section: misc",
        "Priority: optional",
        "Maintainer: distrograph <noreply@localhost>",
        f"Build-Depends: {', '.join(build_deps)}",
        "",
    ]
    lines.extend(line for line in binary if not line.startswith(("Version:", "Maintainer:")))
    return "\n".join(lines) + "\n"


def render_changelog(spec: PackageSpec, distribution: str) -> str:
    return textwrap.dedent(f"""\
        {spec.name} ({deb_version(spec)}) {distribution}; urgency=medium

          * Automated build.

         -- distrograph <noreply@localhost>  Thu, 01 Jan 1970 00:00:00 +0000
    """)


def render_rules(script: BuildScript) -> str:
    return textwrap.dedent(f"""\
        #!/usr/bin/make -f
        %:
        \tdh $@

        override_dh_auto_build:
        \tsh debian/distrograph/{script.name}
    """)


def debian_source_dir(spec: PackageSpec, target_key: str, script: BuildScript, distribution: str) -> State:
    files = {
        "/debian/control": (render_source_control(spec, target_key), 0o644),
        "/debian/changelog": (render_changelog(spec, distribution), 0o644),
        "/debian/rules": (render_rules(script), 0o755),
        "/debian/source/format": ("3.0 (native)\n", 0o644),
        f"/debian/distrograph/{script.name}": (script.content, 0o755),
    }
    dirs = (Mkdir(path="/debian"), Mkdir(path="/debian/distrograph"), Mkdir(path="/debian/source"))
    return State.scratch().file(
        *dirs,
        *(
            Mkfile(path=path, mode=mode, data=content.encode("utf-8"))
            for path, (content, mode) in sorted(files.items())
        ),
    )


def build_dsc(
    worker: State,
    spec: PackageSpec,
    mounts: MountPlan,
    script: BuildScript,
    target_key: str,
    *,
    distribution: str,
    config: CompilerConfig,
    constraints: Constraints | None = None,
) -> State:
    work_dir = posixpath.join("/tmp/work", f"{spec.name}-{spec.version}")
    command = "\n".join(
        [
            "set -ex",
            f"mkdir -p {work_dir}",
            f"cp -a {config.build_root}/. {work_dir}/",
            f"cp -a /tmp/debian-src/debian {work_dir}/debian",
            f"cd {posixpath.dirname(work_dir)}",
            f"dpkg-source -b {posixpath.basename(work_dir)}",
            f"mv {spec.name}_* {config.output_dir}/",
        ],
    )
    return worker.run(
        sh_args(command),
        mounts.directive,
        add_mount("/tmp/debian-src", debian_source_dir(spec, target_key, script, distribution), readonly=True),
        run_dir("/tmp"),
        network("none"),
        constraints=constraints,
    ).add_mount(config.output_dir, State.scratch())
