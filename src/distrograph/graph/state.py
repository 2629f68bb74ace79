"""Immutable build-graph description handed to the execution engine.

Nothing in this module runs anything. A :class:`State` wraps one operation
and, through it, the operations it depends on; :meth:`State.marshal` encodes
the whole graph canonically so identical inputs give identical bytes.
"""

from __future__ import annotations

import hashlib
import posixpath
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Protocol

import cbor2

NetworkMode = Literal["sandbox", "host", "none"]
CacheSharing = Literal["shared", "private", "locked"]

DEFAULT_PATH_ENV = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"


class Op(Protocol):
    def to_payload(self) -> dict[str, Any]:
        """Return a canonical, CBOR-encodable description of the op."""


@dataclass(frozen=True, slots=True)
class Constraints:
    platform: str = ""
    progress_group: str = ""

    def with_group(self, name: str) -> Constraints:
        return replace(self, progress_group=name)


@dataclass(frozen=True, slots=True)
class CacheMount:
    id: str
    sharing: CacheSharing = "locked"


@dataclass(frozen=True, slots=True)
class Mount:
    dest: str
    source: State | None = None
    selector: str = ""
    readonly: bool = False
    cache: CacheMount | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "dest": self.dest,
            "readonly": self.readonly,
            "selector": self.selector,
            "source": None if self.source is None else self.source.to_payload(),
        }
        if self.cache is not None:
            payload["cache"] = {"id": self.cache.id, "sharing": self.cache.sharing}
        return payload


@dataclass(frozen=True, slots=True)
class RunDirective:
    """Partial description of a run; directives combine left to right."""

    args: tuple[str, ...] = ()
    dir: str | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    mounts: tuple[Mount, ...] = ()
    network: NetworkMode | None = None
    custom_name: str = ""

    def combine(self, other: RunDirective) -> RunDirective:
        env = dict(self.env)
        env.update(other.env)
        return RunDirective(
            args=other.args or self.args,
            dir=other.dir if other.dir is not None else self.dir,
            env=env,
            mounts=self.mounts + other.mounts,
            network=other.network if other.network is not None else self.network,
            custom_name=other.custom_name or self.custom_name,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "args": list(self.args),
            "dir": self.dir or "/",
            "env": dict(sorted(self.env.items())),
            "mounts": [mount.to_payload() for mount in self.mounts],
            "network": self.network or "sandbox",
            "name": self.custom_name,
        }


def with_run_options(*directives: RunDirective) -> RunDirective:
    combined = RunDirective()
    for directive in directives:
        combined = combined.combine(directive)
    return combined


def sh_args(command: str) -> RunDirective:
    return RunDirective(args=("/bin/sh", "-c", command))


def add_mount(
    dest: str,
    source: State | None = None,
    *,
    selector: str = "",
    readonly: bool = False,
) -> RunDirective:
    return RunDirective(mounts=(Mount(dest=dest, source=source, selector=selector, readonly=readonly),))


def persistent_cache(dest: str, cache_id: str, sharing: CacheSharing = "locked") -> RunDirective:
    return RunDirective(mounts=(Mount(dest=dest, cache=CacheMount(id=cache_id, sharing=sharing)),))


def network(mode: NetworkMode) -> RunDirective:
    return RunDirective(network=mode)


def run_dir(path: str) -> RunDirective:
    return RunDirective(dir=path)


@dataclass(frozen=True, slots=True)
class ScratchOp:
    def to_payload(self) -> dict[str, Any]:
        return {"op": "scratch"}


@dataclass(frozen=True, slots=True)
class ImageOp:
    ref: str
    platform: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {"op": "image", "ref": self.ref, "platform": self.platform}


@dataclass(frozen=True, slots=True)
class GitOp:
    url: str
    commit: str
    keep_git_dir: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "op": "git",
            "url": self.url,
            "commit": self.commit,
            "keep_git_dir": self.keep_git_dir,
        }


@dataclass(frozen=True, slots=True)
class HttpOp:
    url: str
    filename: str
    digest: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {"op": "http", "url": self.url, "filename": self.filename, "digest": self.digest}


@dataclass(frozen=True, slots=True)
class LocalOp:
    name: str
    include: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {"op": "local", "name": self.name, "include": list(self.include)}


@dataclass(frozen=True, slots=True)
class Mkfile:
    path: str
    mode: int
    data: bytes

    def to_payload(self) -> dict[str, Any]:
        return {"action": "mkfile", "path": self.path, "mode": self.mode, "data": self.data}


@dataclass(frozen=True, slots=True)
class Mkdir:
    path: str
    mode: int = 0o755

    def to_payload(self) -> dict[str, Any]:
        return {"action": "mkdir", "path": self.path, "mode": self.mode}


@dataclass(frozen=True, slots=True)
class Copy:
    source: State
    src: str
    dest: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "action": "copy",
            "source": self.source.to_payload(),
            "src": self.src,
            "dest": self.dest,
        }


FileAction = Mkfile | Mkdir | Copy


@dataclass(frozen=True, slots=True)
class FileOp:
    parent: State
    actions: tuple[FileAction, ...]

    def to_payload(self) -> dict[str, Any]:
        return {
            "op": "file",
            "parent": self.parent.to_payload(),
            "actions": [action.to_payload() for action in self.actions],
        }


@dataclass(frozen=True, slots=True)
class MergeOp:
    inputs: tuple[State, ...]

    def to_payload(self) -> dict[str, Any]:
        return {"op": "merge", "inputs": [state.to_payload() for state in self.inputs]}


@dataclass(frozen=True, slots=True)
class ExecOp:
    root: State
    run: RunDirective
    # Mount destination whose post-run content this op yields.
    output: str = "/"
    progress_group: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "op": "exec",
            "root": self.root.to_payload(),
            "run": self.run.to_payload(),
            "output": self.output,
            "progress_group": self.progress_group,
        }


StateOption = Callable[["State"], "State"]


@dataclass(frozen=True, slots=True)
class State:
    op: Op
    env: Mapping[str, str] = field(default_factory=dict)
    workdir: str = "/"

    @classmethod
    def scratch(cls) -> State:
        return cls(op=ScratchOp())

    @classmethod
    def image(
        cls,
        ref: str,
        *,
        constraints: Constraints | None = None,
        env: Mapping[str, str] | None = None,
        workdir: str = "/",
    ) -> State:
        platform = constraints.platform if constraints is not None else ""
        return cls(
            op=ImageOp(ref=ref, platform=platform),
            env=dict(env) if env is not None else {"PATH": DEFAULT_PATH_ENV},
            workdir=workdir or "/",
        )

    @classmethod
    def git(cls, url: str, commit: str, *, keep_git_dir: bool = False) -> State:
        return cls(op=GitOp(url=url, commit=commit, keep_git_dir=keep_git_dir))

    @classmethod
    def http(cls, url: str, *, filename: str, digest: str = "") -> State:
        return cls(op=HttpOp(url=url, filename=filename, digest=digest))

    @classmethod
    def local(cls, name: str, *, include: tuple[str, ...] = ()) -> State:
        return cls(op=LocalOp(name=name, include=include))

    def is_scratch(self) -> bool:
        return isinstance(self.op, ScratchOp)

    def run(self, *directives: RunDirective, constraints: Constraints | None = None) -> ExecState:
        combined = with_run_options(*directives)
        if combined.dir is None:
            combined = replace(combined, dir=self.workdir)
        env = dict(self.env)
        env.update(combined.env)
        combined = replace(combined, env=env)
        group = constraints.progress_group if constraints is not None else ""
        return ExecState(root=self, directive=combined, progress_group=group)

    def file(self, *actions: FileAction) -> State:
        return State(op=FileOp(parent=self, actions=actions), env=self.env, workdir=self.workdir)

    def with_(self, *options: StateOption) -> State:
        state = self
        for option in options:
            state = option(state)
        return state

    def to_payload(self) -> dict[str, Any]:
        return self.op.to_payload()

    def marshal(self) -> bytes:
        """Encode the graph rooted at this state as canonical CBOR."""
        return cbor2.dumps(self.to_payload(), canonical=True)

    def digest(self) -> str:
        return hashlib.sha256(self.marshal()).hexdigest()


@dataclass(frozen=True, slots=True)
class ExecState:
    root: State
    directive: RunDirective
    progress_group: str = ""

    def _output(self, directive: RunDirective, output: str) -> State:
        op = ExecOp(
            root=self.root,
            run=directive,
            output=output,
            progress_group=self.progress_group,
        )
        return State(op=op, env=self.root.env, workdir=self.root.workdir)

    def root_state(self) -> State:
        return self._output(self.directive, "/")

    def add_mount(self, dest: str, source: State | None = None) -> State:
        """Attach a writable mount and return its content after the run."""
        directive = self.directive.combine(RunDirective(mounts=(Mount(dest=dest, source=source),)))
        return self._output(directive, dest)


def merge_at_path(base: State, states: list[State] | tuple[State, ...], path: str) -> State:
    """Layer ``states`` over ``base`` with each state's root placed at ``path``."""
    if not states:
        return base
    inputs: list[State] = [base]
    for state in states:
        if path in ("", "/"):
            inputs.append(state)
            continue
        inputs.append(
            State.scratch().file(Copy(source=state, src="/", dest=posixpath.join(path, ""))),
        )
    return State(op=MergeOp(inputs=tuple(inputs)))
