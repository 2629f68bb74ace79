"""Top-level router: ``<distro>/<target>`` paths."""

from __future__ import annotations

from distrograph.distro import AZLINUX3, JAMMY, MARINER2, WINDOWSCROSS
from distrograph.frontend.jammy import jammy_mux
from distrograph.frontend.mux import BuildMux, Target
from distrograph.frontend.request import BuildRequest, BuildResult
from distrograph.frontend.rpm import rpm_mux
from distrograph.frontend.windows import windows_mux


def build_router() -> BuildMux:
    router = BuildMux()
    for backend in (MARINER2, AZLINUX3):
        router.add_mux(backend.name, rpm_mux(backend), Target(backend.name, backend.config.full_name))
    router.add_mux(JAMMY.name, jammy_mux(JAMMY), Target(JAMMY.name, JAMMY.config.full_name))
    router.add_mux(
        WINDOWSCROSS.name,
        windows_mux(WINDOWSCROSS),
        Target(WINDOWSCROSS.name, WINDOWSCROSS.config.full_name),
    )
    return router


def handle(request: BuildRequest) -> BuildResult:
    return build_router().handle(request)
