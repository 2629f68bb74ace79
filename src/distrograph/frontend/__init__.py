"""Target routing and per-distro build pipelines."""

from .jammy import jammy_mux
from .mux import BuildMux, Target
from .request import BuildRequest, BuildResult, Handler
from .router import build_router, handle
from .rpm import rpm_mux
from .windows import windows_mux

__all__ = [
    "BuildMux",
    "BuildRequest",
    "BuildResult",
    "Handler",
    "Target",
    "build_router",
    "handle",
    "jammy_mux",
    "rpm_mux",
    "windows_mux",
]
