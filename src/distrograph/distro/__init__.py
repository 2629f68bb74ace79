"""Distro backend interfaces and implementations."""

from .base import DistroBackend, DistroConfig, PackageInstaller
from .deb import JAMMY, AptBackend, apt_install
from .rpm import AZLINUX3, MARINER2, TdnfBackend, tdnf_install
from .windows import WINDOWSCROSS, WindowsCrossBackend

BACKENDS: dict[str, DistroBackend] = {
    backend.name: backend for backend in (MARINER2, AZLINUX3, JAMMY, WINDOWSCROSS)
}

__all__ = [
    "AZLINUX3",
    "AptBackend",
    "BACKENDS",
    "DistroBackend",
    "DistroConfig",
    "JAMMY",
    "MARINER2",
    "PackageInstaller",
    "TdnfBackend",
    "WINDOWSCROSS",
    "WindowsCrossBackend",
    "apt_install",
    "tdnf_install",
]
