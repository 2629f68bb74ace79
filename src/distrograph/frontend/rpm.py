"""Targets for tdnf based distros: rpm packages and containers built from them."""

from __future__ import annotations

from distrograph.compiler import assemble
from distrograph.distro import TdnfBackend
from distrograph.frontend.mux import BuildMux, Target
from distrograph.frontend.request import BuildRequest, BuildResult
from distrograph.graph import State, add_mount, network, sh_args
from distrograph.imageconfig import resolve_image_config
from distrograph.models import PackageSpec
from distrograph.packaging import build_rpm
from distrograph.signing import maybe_sign

ROOTFS_DIR = "/tmp/rootfs"
RPMS_DIR = "/tmp/rpms"


def build_rpm_package(backend: TdnfBackend, request: BuildRequest, spec: PackageSpec) -> State:
    key = backend.name
    constraints = request.constraints(f"Build {spec.name} rpm for {key}")
    assembled = assemble(
        backend,
        spec,
        key,
        options=request.source_options(),
        config=request.config,
        logger=request.logger,
        sign=False,
    )
    rpm = build_rpm(
        assembled.worker,
        spec,
        assembled.output,
        key,
        config=request.config,
        constraints=constraints,
    )
    return maybe_sign(rpm, spec, key, request.signer)


def _target_rootfs(backend: TdnfBackend, request: BuildRequest, spec: PackageSpec) -> tuple[State, State]:
    """Return the worker and a rootfs holding the package's runtime dependencies."""
    key = backend.name
    constraints = request.constraints(f"Install runtime dependencies for {spec.name}")
    worker = backend.base(request.resolver, constraints)
    base_ref = spec.get_image(key).base or backend.config.default_output_image
    rootfs = State.image(base_ref, constraints=request.constraints())
    deps = sorted(set(spec.get_runtime_deps(key)))
    if deps:
        rootfs = worker.run(
            backend.install(ROOTFS_DIR, deps, request.config.skip_gpg),
            constraints=constraints,
        ).add_mount(ROOTFS_DIR, rootfs)
    return worker, rootfs


def handle_rpm(backend: TdnfBackend, request: BuildRequest) -> BuildResult:
    spec = request.prepared_spec()
    request.log(target=backend.name, stage="rpm", message=f"building rpm for {spec.name}")
    return BuildResult(target=backend.name, state=build_rpm_package(backend, request, spec))


def handle_container(backend: TdnfBackend, request: BuildRequest) -> BuildResult:
    key = backend.name
    spec = request.prepared_spec()
    resolver = request.require_resolver(key)
    rpm = build_rpm_package(backend, request, spec)
    worker, rootfs = _target_rootfs(backend, request, spec)
    installed = worker.run(
        sh_args(f"rpm --root={ROOTFS_DIR} --nodeps -i {RPMS_DIR}/*/*.rpm"),
        add_mount(RPMS_DIR, rpm, readonly=True),
        network("none"),
        constraints=request.constraints(f"Install {spec.name} into container"),
    ).add_mount(ROOTFS_DIR, rootfs)
    image_config = resolve_image_config(resolver, spec, request.platform, key, backend=backend)
    request.log(target=key, stage="container", message=f"container for {spec.name}")
    return BuildResult(target=key, state=installed, image_config=image_config)


def handle_depsonly(backend: TdnfBackend, request: BuildRequest) -> BuildResult:
    key = backend.name
    spec = request.prepared_spec()
    resolver = request.require_resolver(key)
    _, rootfs = _target_rootfs(backend, request, spec)
    image_config = resolve_image_config(resolver, spec, request.platform, key, backend=backend)
    return BuildResult(target=key, state=rootfs, image_config=image_config)


def handle_worker(backend: TdnfBackend, request: BuildRequest) -> BuildResult:
    worker = backend.base(request.resolver, request.constraints(f"Prepare {backend.name} worker"))
    return BuildResult(target=backend.name, state=worker)


def rpm_mux(backend: TdnfBackend) -> BuildMux:
    mux = BuildMux()
    mux.add(
        "rpm",
        lambda request: handle_rpm(backend, request),
        Target("rpm", f"Builds an rpm for {backend.config.full_name}."),
    )
    mux.add(
        "container",
        lambda request: handle_container(backend, request),
        Target("container", f"Builds a container image for {backend.config.full_name}.", default=True),
    )
    mux.add(
        "container/depsonly",
        lambda request: handle_depsonly(backend, request),
        Target("container/depsonly", "Builds a container image with only the runtime dependencies installed."),
    )
    mux.add(
        "worker",
        lambda request: handle_worker(backend, request),
        Target("worker", f"Builds the base worker image used for {backend.config.full_name} builds."),
    )
    return mux
