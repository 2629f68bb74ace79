"""Resolve declared sources into graph states."""

from __future__ import annotations

import posixpath
from collections.abc import Mapping

from distrograph.distro.base import image_state
from distrograph.errors import DistroGraphError, SourceResolutionError
from distrograph.graph import (
    Copy,
    Mkdir,
    Mkfile,
    RunDirective,
    State,
    add_mount,
    network,
    persistent_cache,
    run_dir,
    sh_args,
)
from distrograph.models import GOMODS_SOURCE_NAME, PackageSpec, Source
from distrograph.sources.model import DeclaredSource, GeneratedSource, SourceOptions, SourceState
from distrograph.sources.patch import apply_patches

GOMODCACHE_DIR = "/go/pkg/mod"
GO_BUILD_CACHE_ID = "gomod-download-cache"


def _missing_variant(name: str, kind: str) -> SourceResolutionError:
    return SourceResolutionError(
        f"Source declares kind {kind!r} without its settings.",
        context={"operation": "materialize_sources", "source": name},
    )


def source_state(name: str, source: Source, options: SourceOptions) -> State:
    """Describe how to fetch one source.

    File-like sources land as a single file named after the source so they can
    be merged into one root next to each other.
    """
    kind = source.kind
    if kind == "git":
        git = source.git
        if git is None:
            raise _missing_variant(name, kind)
        if not git.url or not git.commit:
            raise SourceResolutionError(
                "Git sources need both a url and a commit.",
                context={"operation": "materialize_sources", "source": name},
            )
        state = State.git(git.url, git.commit, keep_git_dir=git.keep_git_dir)
    elif kind == "http":
        http = source.http
        if http is None:
            raise _missing_variant(name, kind)
        if not http.url:
            raise SourceResolutionError(
                "HTTP sources need a url.",
                context={"operation": "materialize_sources", "source": name},
            )
        return State.http(http.url, filename=name, digest=http.digest)
    elif kind == "context":
        context = source.context
        if context is None:
            raise _missing_variant(name, kind)
        state = State.local(context.name)
        if context.path not in ("", "."):
            state = _subpath(state, context.path)
    elif kind == "inline":
        inline = source.inline
        if inline is None:
            raise _missing_variant(name, kind)
        if inline.file is not None:
            file = inline.file
            return State.scratch().file(
                Mkfile(path=f"/{name}", mode=file.permissions, data=file.contents.encode("utf-8")),
            )
        actions: list[Mkdir | Mkfile] = [Mkdir(path="/")]
        for file_name, file in sorted((inline.dir or {}).items()):
            if "/" in file_name:
                raise SourceResolutionError(
                    "Inline directory entries must be plain file names.",
                    context={"operation": "materialize_sources", "source": name, "file": file_name},
                )
            actions.append(
                Mkfile(
                    path=f"/{file_name}",
                    mode=file.permissions,
                    data=file.contents.encode("utf-8"),
                ),
            )
        state = State.scratch().file(*actions)
    else:
        image = source.image
        if image is None:
            raise _missing_variant(name, kind)
        state = image_state(image.ref, options.resolver, options.constraints)

    if source.path:
        state = _subpath(state, source.path)
    return state


def gomod_deps(
    spec: PackageSpec,
    worker: State,
    sources: Mapping[str, SourceState],
    options: SourceOptions,
) -> State | None:
    """Download Go modules for every source declaring a gomod generator.

    This is the only stage besides fetching that runs with network access.
    """
    if not spec.has_gomods():
        return None

    constraints = options.constraints.with_group("Fetch go module dependencies")
    cache = State.scratch()
    for name in sorted(spec.sources):
        source = spec.sources[name]
        if not source.generate:
            continue
        source_state = sources[name]
        if not source_state.is_dir:
            raise SourceResolutionError(
                "Gomod generators require a directory-like source.",
                context={"operation": "gomod_deps", "source": name},
            )
        work_dir = posixpath.join("/work", name)
        for generator in source.generate:
            for path in generator.paths:
                cache = worker.run(
                    sh_args("go mod download"),
                    RunDirective(env={"GOMODCACHE": GOMODCACHE_DIR, "GOFLAGS": "-mod=mod"}),
                    add_mount(work_dir, source_state.state, readonly=True),
                    run_dir(posixpath.normpath(posixpath.join(work_dir, path))),
                    persistent_cache("/root/.cache/go-build", GO_BUILD_CACHE_ID),
                    network("sandbox"),
                    constraints=constraints,
                ).add_mount(GOMODCACHE_DIR, cache)
    return cache


def materialize_sources(
    spec: PackageSpec,
    options: SourceOptions,
    worker: State | None = None,
) -> dict[str, SourceState]:
    states: dict[str, SourceState] = {}
    for name in sorted(spec.sources):
        source = spec.sources[name]
        try:
            state = source_state(name, source, options)
            is_dir = source.is_dir()
        except SourceResolutionError:
            raise
        except DistroGraphError as exc:
            raise SourceResolutionError(
                f"Failed to materialize source {name!r}.",
                context={"operation": "materialize_sources", "source": name},
            ) from exc
        states[name] = DeclaredSource(name=name, state=state, source=source, is_dir=is_dir)

    if spec.has_gomods():
        if worker is None:
            raise SourceResolutionError(
                "Generating go module sources requires a worker state.",
                context={"operation": "materialize_sources", "source": GOMODS_SOURCE_NAME},
            )
        patched = apply_patches(worker, spec, states, constraints=options.constraints)
        gomods = gomod_deps(spec, worker, patched, options)
        if gomods is None:
            raise SourceResolutionError(
                "No go module generator produced a cache.",
                context={"operation": "materialize_sources", "source": GOMODS_SOURCE_NAME},
            )
        states[GOMODS_SOURCE_NAME] = GeneratedSource(name=GOMODS_SOURCE_NAME, state=gomods)
    return states


def _subpath(state: State, path: str) -> State:
    return State.scratch().file(Copy(source=state, src=posixpath.join("/", path), dest="/"))
