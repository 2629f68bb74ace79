"""Registry resolution boundary.

The compiler never talks to a registry itself. It asks an
:class:`ImageMetaResolver` for the raw config bytes of a reference and decodes
them in :mod:`distrograph.imageconfig`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from distrograph.errors import ResolutionError
from distrograph.models import Platform


class ImageMetaResolver(Protocol):
    def resolve_image_config(self, ref: str, platform: Platform | None) -> bytes:
        """Return the raw image config for ``ref`` scoped to ``platform``.

        Implementations raise :class:`ResolutionError`, ``OSError`` or
        ``LookupError`` when the reference cannot be resolved.
        """


@dataclass(slots=True)
class StaticImageResolver:
    """In-memory resolver for tests and offline compilation.

    Configs are looked up by ``"<ref>@<os/arch>"`` first, then by ``ref``.
    """

    configs: Mapping[str, bytes | Mapping[str, Any]] = field(default_factory=dict)
    fallback: bytes | Mapping[str, Any] | None = None
    requests: list[tuple[str, str]] = field(default_factory=list)

    def resolve_image_config(self, ref: str, platform: Platform | None) -> bytes:
        platform_key = str(platform) if platform is not None else ""
        self.requests.append((ref, platform_key))

        for key in (f"{ref}@{platform_key}", ref):
            if key in self.configs:
                return _as_bytes(self.configs[key])
        if self.fallback is not None:
            return _as_bytes(self.fallback)
        raise ResolutionError(
            "Image reference is not known to the resolver.",
            context={"operation": "resolve_image_config", "ref": ref, "platform": platform_key},
        )


def _as_bytes(value: bytes | Mapping[str, Any]) -> bytes:
    if isinstance(value, bytes):
        return value
    return json.dumps(value, sort_keys=True).encode("utf-8")
