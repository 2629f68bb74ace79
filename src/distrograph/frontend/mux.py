"""Routing from target paths to build pipelines."""

from __future__ import annotations

from dataclasses import dataclass, replace

from distrograph.errors import UnknownTargetError
from distrograph.frontend.request import BuildRequest, BuildResult, Handler


@dataclass(frozen=True, slots=True)
class Target:
    name: str
    description: str
    default: bool = False


class BuildMux:
    """Maps target paths to handlers; nested muxes own a path prefix."""

    def __init__(self) -> None:
        self._handlers: dict[str, tuple[Handler, Target]] = {}
        self._muxes: dict[str, tuple[BuildMux, Target]] = {}
        self._default: str | None = None

    def add(self, path: str, handler: Handler, target: Target) -> None:
        self._register(path, target)
        self._handlers[path] = (handler, target)

    def add_mux(self, path: str, mux: BuildMux, target: Target) -> None:
        if "/" in path:
            raise ValueError(f"nested mux prefix must be a single path component: {path!r}")
        self._register(path, target)
        self._muxes[path] = (mux, target)

    def _register(self, path: str, target: Target) -> None:
        if not path:
            raise ValueError("target path must not be empty")
        if path in self._handlers or path in self._muxes:
            raise ValueError(f"target {path!r} is already registered")
        if target.default:
            if self._default is not None:
                raise ValueError(
                    f"target {path!r} cannot be the default, {self._default!r} already is",
                )
            self._default = path

    @property
    def default(self) -> str | None:
        return self._default

    def targets(self) -> tuple[Target, ...]:
        """List every leaf target, nested ones prefixed with their mux path."""
        found: list[Target] = [target for _, target in self._handlers.values()]
        for prefix, (mux, _) in self._muxes.items():
            for target in mux.targets():
                found.append(replace(target, name=f"{prefix}/{target.name}"))
        return tuple(sorted(found, key=lambda target: target.name))

    def describe(self) -> list[dict[str, object]]:
        return [
            {"name": target.name, "description": target.description, "default": target.default}
            for target in self.targets()
        ]

    def handle(self, request: BuildRequest) -> BuildResult:
        path = request.target or self._default
        if path is None:
            raise UnknownTargetError(
                "No target requested and no default target is registered.",
                context={"operation": "handle"},
            )

        if path in self._handlers:
            handler, _ = self._handlers[path]
            return handler(request)

        prefix, _, rest = path.partition("/")
        if prefix in self._muxes:
            mux, _ = self._muxes[prefix]
            return mux.handle(replace(request, target=rest))

        raise UnknownTargetError(
            f"Unknown target {path!r}.",
            hint="Available targets: " + ", ".join(target.name for target in self.targets()),
            context={"operation": "handle", "target": path},
        )
