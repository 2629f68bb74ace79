"""Targets producing cross-compiled Windows binaries."""

from __future__ import annotations

from distrograph.compiler import assemble
from distrograph.distro import WindowsCrossBackend
from distrograph.distro.windows import WINDOWS_PLATFORM
from distrograph.errors import SpecValidationError
from distrograph.frontend.mux import BuildMux, Target
from distrograph.frontend.request import BuildRequest, BuildResult
from distrograph.packaging import build_zip


def handle_zip(backend: WindowsCrossBackend, request: BuildRequest) -> BuildResult:
    key = backend.name
    platform = request.platform or WINDOWS_PLATFORM
    if platform.os != "windows":
        raise SpecValidationError(
            f"Target platform {platform} is not a windows platform.",
            context={"target": key, "platform": str(platform)},
        )
    spec = request.prepared_spec()
    assembled = assemble(
        backend,
        spec,
        key,
        options=request.source_options(),
        config=request.config,
        signer=request.signer,
        logger=request.logger,
    )
    archive = build_zip(
        assembled.worker,
        spec.name,
        assembled.output,
        config=request.config,
        constraints=request.constraints(f"Archive {spec.name} binaries"),
    )
    request.log(target=key, stage="zip", message=f"zip archive for {spec.name}")
    return BuildResult(target=key, state=archive)


def handle_worker(backend: WindowsCrossBackend, request: BuildRequest) -> BuildResult:
    worker = backend.base(request.resolver, request.constraints("Prepare cross-compile worker"))
    return BuildResult(target=backend.name, state=worker)


def windows_mux(backend: WindowsCrossBackend) -> BuildMux:
    mux = BuildMux()
    mux.add(
        "zip",
        lambda request: handle_zip(backend, request),
        Target("zip", "Builds binaries cross-compiled for Windows and bundles them in a zip.", default=True),
    )
    mux.add(
        "worker",
        lambda request: handle_worker(backend, request),
        Target("worker", "Builds the cross-compile worker image."),
    )
    return mux
