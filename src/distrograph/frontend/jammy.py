"""Targets for Ubuntu 22.04: deb packages, source packages and a test container."""

from __future__ import annotations

from distrograph.compiler import assemble
from distrograph.distro import AptBackend
from distrograph.frontend.mux import BuildMux, Target
from distrograph.frontend.request import BuildRequest, BuildResult
from distrograph.graph import State, add_mount, network, sh_args
from distrograph.imageconfig import resolve_image_config
from distrograph.models import PackageSpec, Platform
from distrograph.packaging import build_deb, build_dsc
from distrograph.signing import maybe_sign

DEBS_DIR = "/tmp/debs"
DISTRIBUTION = "jammy"


def build_deb_package(backend: AptBackend, request: BuildRequest, spec: PackageSpec) -> State:
    key = backend.name
    platform = request.platform or Platform()
    assembled = assemble(
        backend,
        spec,
        key,
        options=request.source_options(),
        config=request.config,
        logger=request.logger,
        sign=False,
    )
    deb = build_deb(
        assembled.worker,
        spec,
        assembled.output,
        key,
        architecture=platform.architecture,
        config=request.config,
        constraints=request.constraints(f"Build {spec.name} deb for {key}"),
    )
    return maybe_sign(deb, spec, key, request.signer)


def handle_deb(backend: AptBackend, request: BuildRequest) -> BuildResult:
    spec = request.prepared_spec()
    request.log(target=backend.name, stage="deb", message=f"building deb for {spec.name}")
    return BuildResult(target=backend.name, state=build_deb_package(backend, request, spec))


def handle_dsc(backend: AptBackend, request: BuildRequest) -> BuildResult:
    key = backend.name
    spec = request.prepared_spec()
    assembled = assemble(
        backend,
        spec,
        key,
        options=request.source_options(),
        config=request.config,
        logger=request.logger,
        sign=False,
    )
    dsc = build_dsc(
        assembled.worker,
        spec,
        assembled.mounts,
        assembled.script,
        key,
        distribution=DISTRIBUTION,
        config=request.config,
        constraints=request.constraints(f"Build {spec.name} source package"),
    )
    return BuildResult(target=key, state=dsc)


def handle_test_container(backend: AptBackend, request: BuildRequest) -> BuildResult:
    """Install the built deb, with its runtime dependencies, into the jammy image."""
    key = backend.name
    spec = request.prepared_spec()
    resolver = request.require_resolver(key)
    deb = build_deb_package(backend, request, spec)
    constraints = request.constraints(f"Install {spec.name} into container")

    base_ref = spec.get_image(key).base or backend.config.default_output_image
    target = State.image(base_ref, constraints=request.constraints())
    deps = sorted(set(spec.get_runtime_deps(key)))
    if deps:
        target = target.run(
            backend.install("/", deps, request.config.skip_gpg),
            constraints=constraints,
        ).root_state()
    installed = target.run(
        sh_args(f"dpkg -i {DEBS_DIR}/*.deb"),
        add_mount(DEBS_DIR, deb, readonly=True),
        network("none"),
        constraints=constraints,
    ).root_state()

    image_config = resolve_image_config(resolver, spec, request.platform, key, backend=backend)
    return BuildResult(target=key, state=installed, image_config=image_config)


def jammy_mux(backend: AptBackend) -> BuildMux:
    mux = BuildMux()
    mux.add(
        "deb",
        lambda request: handle_deb(backend, request),
        Target("deb", f"Builds a deb package for {backend.config.full_name}.", default=True),
    )
    mux.add(
        "dsc",
        lambda request: handle_dsc(backend, request),
        Target("dsc", "Builds a Debian source package."),
    )
    mux.add(
        "testing/container",
        lambda request: handle_test_container(backend, request),
        Target("testing/container", "Builds a container with the deb installed, for testing."),
    )
    return mux
