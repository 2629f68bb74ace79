"""Compose backend, sources and build script into one build graph."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from distrograph.compiler.script import BuildScript, invocation_script, synthesize
from distrograph.config import DEFAULT_CONFIG, CompilerConfig, ensure_hermetic_build
from distrograph.distro.base import DistroBackend
from distrograph.errors import (
    DependencyInstallError,
    DistroGraphError,
    SourceResolutionError,
)
from distrograph.graph import Constraints, State, add_mount, network, run_dir, sh_args
from distrograph.models import BuildStep, PackageSpec
from distrograph.observability import StructuredLogger
from distrograph.signing import Signer, maybe_sign
from distrograph.sources import (
    MountPlan,
    SourceOptions,
    SourceState,
    apply_patches,
    materialize_sources,
    mount_sources,
)


@dataclass(frozen=True, slots=True)
class AssembledBuild:
    output: State
    worker: State
    script: BuildScript
    invocation: str
    mounts: MountPlan
    sources: dict[str, SourceState] = field(default_factory=dict)


def install_build_deps(
    backend: DistroBackend,
    worker: State,
    deps: Sequence[str],
    *,
    target_key: str,
    skip_gpg: bool = False,
    constraints: Constraints | None = None,
) -> State:
    """Install ``deps`` into the worker root; the worker is returned as-is when empty."""
    if not deps:
        return worker
    ordered = sorted(set(deps))
    try:
        directive = backend.install("/", ordered, skip_gpg)
    except DependencyInstallError as exc:
        raise DependencyInstallError(
            "Failed to plan build dependency installation.",
            context={"stage": "install_build_deps", "target": target_key, "distro": backend.name},
        ) from exc
    return worker.run(directive, constraints=constraints).root_state()


def step_env(spec: PackageSpec) -> tuple[BuildStep, ...]:
    """Return build steps with the package-wide env folded under each step's own env."""
    if not spec.build.env:
        return spec.build.steps
    steps: list[BuildStep] = []
    for step in spec.build.steps:
        env = dict(spec.build.env)
        env.update(step.env)
        steps.append(replace(step, env=env))
    return tuple(steps)


def assemble(
    backend: DistroBackend,
    spec: PackageSpec,
    target_key: str,
    *,
    options: SourceOptions | None = None,
    worker: State | None = None,
    config: CompilerConfig = DEFAULT_CONFIG,
    signer: Signer | None = None,
    sign: bool = True,
    logger: StructuredLogger | None = None,
) -> AssembledBuild:
    options = options or SourceOptions()
    constraints = options.constraints.with_group(f"Build {spec.name} for {target_key}")
    ensure_hermetic_build(config)

    if worker is None:
        worker = backend.base(options.resolver, constraints)

    deps = spec.get_build_deps(target_key)
    worker = install_build_deps(
        backend,
        worker,
        deps,
        target_key=target_key,
        skip_gpg=config.skip_gpg,
        constraints=constraints,
    )
    _log(logger, target_key, "install_build_deps", f"{len(deps)} build dependencies")

    try:
        sources = materialize_sources(spec, options, worker)
        patched = apply_patches(worker, spec, sources, constraints=constraints)
    except DistroGraphError as exc:
        raise SourceResolutionError(
            f"Failed to prepare sources for {spec.name!r}.",
            context={"stage": "sources", "target": target_key},
        ) from exc
    _log(logger, target_key, "sources", f"{len(patched)} sources mounted", extra={"names": sorted(patched)})

    script = synthesize(
        step_env(spec),
        uses_gomods=spec.has_gomods(),
        name=config.build_script_name,
    )
    invocation = invocation_script(
        script,
        spec.artifacts,
        scripts_dir=config.scripts_dir,
        output_dir=config.output_dir,
    )
    mounts = mount_sources(config.build_root, patched)
    _log(logger, target_key, "script", f"{len(script.steps)} build steps")

    built = worker.run(
        sh_args(invocation),
        run_dir(config.build_root),
        add_mount(config.scripts_dir, script.state(), readonly=True),
        mounts.directive,
        network("none"),
        constraints=constraints,
    ).add_mount(config.output_dir, State.scratch())

    output = maybe_sign(built, spec, target_key, signer) if sign else built
    _log(logger, target_key, "capture", f"output captured at {config.output_dir}")

    return AssembledBuild(
        output=output,
        worker=worker,
        script=script,
        invocation=invocation,
        mounts=mounts,
        sources=patched,
    )


def _log(
    logger: StructuredLogger | None,
    target_key: str,
    stage: str,
    message: str,
    *,
    extra: dict[str, object] | None = None,
) -> None:
    if logger is None:
        return
    logger.log(operation="assemble", target=target_key, stage=stage, message=message, extra=extra)
