"""Build script synthesis.

The build script runs every step in its own subshell, in declared order, and
chains them with ``&&`` so the first failing step stops the rest. Each step
body runs in a separate ``sh -e`` since ``-e`` has no effect on the left of
``&&``.
"""

from __future__ import annotations

import posixpath
import shlex
from collections.abc import Sequence
from dataclasses import dataclass

from distrograph.errors import BuildStepError
from distrograph.graph import Mkfile, State
from distrograph.models import GOMODS_SOURCE_NAME, Artifacts, BuildStep

SHEBANG = "#!/usr/bin/env sh"
SCRIPT_MODE = 0o770


@dataclass(frozen=True, slots=True)
class BuildScript:
    name: str
    content: str
    steps: tuple[BuildStep, ...] = ()

    def state(self) -> State:
        return State.scratch().file(
            Mkfile(path=f"/{self.name}", mode=SCRIPT_MODE, data=self.content.encode("utf-8")),
        )

    def step_failure(self, index: int, returncode: int) -> BuildStepError:
        """Build the error an execution engine reports for a failed step."""
        if index < 0 or index >= len(self.steps):
            raise IndexError(f"build script has no step {index}")
        command = self.steps[index].command
        return BuildStepError(
            f"Build step {index} exited with status {returncode}.",
            step_index=index,
            command=command,
            hint="Later steps were not run.",
            context={"script": self.name, "returncode": str(returncode)},
        )


def render_step(step: BuildStep) -> str:
    lines = ["("]
    for key, value in sorted(step.env.items()):
        lines.append(f'export {key}="{value}"')
    body = step.command.rstrip("\n")
    lines.append(f"sh -ec {shlex.quote(body)}")
    lines.append(")")
    return "\n".join(lines)


def synthesize(
    steps: Sequence[BuildStep],
    *,
    uses_gomods: bool = False,
    name: str = "_build.sh",
) -> BuildScript:
    lines = [SHEBANG, "set -ex"]
    if uses_gomods:
        lines.append(f'export GOMODCACHE="$(pwd)/{GOMODS_SOURCE_NAME}"')

    bodies = [render_step(step) for step in steps]
    if bodies:
        lines.append(" && \\\n".join(bodies))

    return BuildScript(name=name, content="\n".join(lines) + "\n", steps=tuple(steps))


def invocation_script(
    script: BuildScript,
    artifacts: Artifacts,
    *,
    scripts_dir: str,
    output_dir: str,
) -> str:
    """Run the build script, then move declared artifacts into ``output_dir``."""
    lines = [SHEBANG, "set -ex", posixpath.join(scripts_dir, script.name)]
    for path in sorted(artifacts.binaries):
        lines.append(f"mv {shlex.quote(path)} {shlex.quote(output_dir)}")

    systemd = artifacts.systemd
    if systemd is not None:
        systemd_dir = posixpath.join(output_dir, "systemd")
        for path, unit in sorted(systemd.units.items()):
            dest = unit.artifact().install_path(systemd_dir, path)
            lines.append(f"mkdir -p {shlex.quote(posixpath.dirname(dest))}")
            lines.append(f"mv {shlex.quote(path)} {shlex.quote(dest)}")
        for path, dropin in sorted(systemd.dropins.items()):
            dest = dropin.artifact().install_path(systemd_dir, path)
            lines.append(f"mkdir -p {shlex.quote(posixpath.dirname(dest))}")
            lines.append(f"mv {shlex.quote(path)} {shlex.quote(dest)}")
    return "\n".join(lines) + "\n"
