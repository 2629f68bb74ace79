"""Zip archive of cross-compiled artifacts."""

from __future__ import annotations

import posixpath
import shlex

from distrograph.config import CompilerConfig
from distrograph.graph import Constraints, State, add_mount, run_dir, sh_args

ARTIFACTS_DIR = "/tmp/artifacts"


def build_zip(
    worker: State,
    name: str,
    artifacts: State,
    *,
    config: CompilerConfig,
    constraints: Constraints | None = None,
) -> State:
    out_name = posixpath.join(config.output_dir, f"{name}.zip")
    return worker.run(
        sh_args(f"zip -r {shlex.quote(out_name)} ."),
        run_dir(ARTIFACTS_DIR),
        add_mount(ARTIFACTS_DIR, artifacts, readonly=True),
        constraints=constraints,
    ).add_mount(config.output_dir, State.scratch())
