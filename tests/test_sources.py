import pytest

from distrograph.errors import ErrorCode, SourceResolutionError, SpecValidationError
from distrograph.graph import Copy, ExecOp, FileOp, GitOp, HttpOp, ImageOp, LocalOp, State
from distrograph.models import (
    GomodGenerator,
    InlineFile,
    PackageSpec,
    PatchSpec,
    Source,
    SourceContext,
    SourceGit,
    SourceHTTP,
    SourceImage,
    SourceInline,
)
from distrograph.sources import (
    DeclaredSource,
    GeneratedSource,
    SourceOptions,
    apply_patches,
    materialize_sources,
    mount_sources,
    source_state,
)

WORKER = State.image("example/worker:1")


def _declared(name: str, source: Source) -> DeclaredSource:
    return DeclaredSource(
        name=name,
        state=source_state(name, source, SourceOptions()),
        source=source,
        is_dir=source.is_dir(),
    )


def test_source_kind_requires_exactly_one_variant() -> None:
    with pytest.raises(SpecValidationError):
        _ = Source().kind
    with pytest.raises(SpecValidationError):
        _ = Source(git=SourceGit(url="u", commit="c"), http=SourceHTTP(url="u")).kind


def test_directory_classification_follows_declaration() -> None:
    assert Source(git=SourceGit(url="u", commit="c")).is_dir()
    assert Source(context=SourceContext()).is_dir()
    assert Source(image=SourceImage(ref="r")).is_dir()
    assert Source(inline=SourceInline(dir={"a": InlineFile()})).is_dir()
    assert not Source(http=SourceHTTP(url="u")).is_dir()
    assert not Source(inline=SourceInline(file=InlineFile(contents="x"))).is_dir()


def test_source_states_per_kind() -> None:
    options = SourceOptions()
    assert isinstance(source_state("g", Source(git=SourceGit(url="u", commit="c")), options).op, GitOp)
    assert isinstance(source_state("c", Source(context=SourceContext()), options).op, LocalOp)
    assert isinstance(source_state("i", Source(image=SourceImage(ref="r")), options).op, ImageOp)

    http = source_state("archive", Source(http=SourceHTTP(url="https://x/y.tgz")), options)
    assert isinstance(http.op, HttpOp)
    assert http.op.filename == "archive"


def test_inline_file_is_named_after_source() -> None:
    state = source_state("config", Source(inline=SourceInline(file=InlineFile(contents="x=1"))), SourceOptions())
    assert isinstance(state.op, FileOp)
    assert state.op.actions[0].path == "/config"


def test_source_path_selects_subdirectory() -> None:
    state = source_state("g", Source(git=SourceGit(url="u", commit="c"), path="sub/dir"), SourceOptions())
    assert isinstance(state.op, FileOp)
    (action,) = state.op.actions
    assert isinstance(action, Copy)
    assert action.src == "/sub/dir"


def test_git_source_without_commit_fails() -> None:
    with pytest.raises(SourceResolutionError) as exc_info:
        source_state("g", Source(git=SourceGit(url="u", commit="")), SourceOptions())
    assert exc_info.value.code == ErrorCode.SOURCE_RESOLUTION.value
    assert exc_info.value.context["source"] == "g"


def test_mount_plan_is_independent_of_mapping_order() -> None:
    a = _declared("a", Source(http=SourceHTTP(url="https://x/a")))
    b = _declared("b", Source(http=SourceHTTP(url="https://x/b")))
    c = _declared("c", Source(git=SourceGit(url="u", commit="c")))

    forward = mount_sources("/build", {"a": a, "b": b, "c": c})
    backward = mount_sources("/build", {"c": c, "b": b, "a": a})

    assert forward.marshal() == backward.marshal()
    assert forward.files == ("a", "b")
    assert forward.directories == ("c",)
    assert [mount.dest for mount in forward.directive.mounts] == ["/build", "/build/c"]


def test_patches_are_applied_in_declared_order() -> None:
    src = _declared("src", Source(git=SourceGit(url="u", commit="c")))
    first = _declared("first", Source(http=SourceHTTP(url="https://x/1.patch")))
    second = _declared("second", Source(http=SourceHTTP(url="https://x/2.patch")))
    spec = PackageSpec(
        name="p",
        patches={"src": (PatchSpec(source="first"), PatchSpec(source="second", strip=0))},
    )

    patched = apply_patches(WORKER, spec, {"src": src, "first": first, "second": second})

    outer = patched["src"].state.op
    assert isinstance(outer, ExecOp)
    assert "-p0" in outer.run.args[2]
    assert outer.run.args[2].endswith("/patch/second")
    assert outer.run.network == "none"
    inner = outer.run.mounts[-1].source
    assert inner is not None
    assert isinstance(inner.op, ExecOp)
    assert inner.op.run.args[2].endswith("/patch/first")
    assert patched["first"] is first


def test_apply_patches_does_not_modify_input_mapping() -> None:
    src = _declared("src", Source(git=SourceGit(url="u", commit="c")))
    fix = _declared("fix", Source(http=SourceHTTP(url="https://x/fix.patch")))
    sources = {"src": src, "fix": fix}
    spec = PackageSpec(name="p", patches={"src": (PatchSpec(source="fix"),)})

    apply_patches(WORKER, spec, sources)
    assert sources["src"] is src


def test_directory_patch_source_needs_path() -> None:
    src = _declared("src", Source(git=SourceGit(url="u", commit="c")))
    patches = _declared("patches", Source(git=SourceGit(url="u2", commit="c2")))
    spec = PackageSpec(name="p", patches={"src": (PatchSpec(source="patches"),)})
    with pytest.raises(SourceResolutionError):
        apply_patches(WORKER, spec, {"src": src, "patches": patches})


def test_generated_sources_cannot_be_patched() -> None:
    fix = _declared("fix", Source(http=SourceHTTP(url="https://x/fix.patch")))
    generated = GeneratedSource(name="__gomods", state=State.scratch())
    spec = PackageSpec(name="p", patches={"__gomods": (PatchSpec(source="fix"),)})
    with pytest.raises(SourceResolutionError, match="Generated"):
        apply_patches(WORKER, spec, {"__gomods": generated, "fix": fix})


def test_gomods_source_is_generated_from_patched_sources() -> None:
    spec = PackageSpec(
        name="p",
        sources={"src": Source(git=SourceGit(url="u", commit="c"), generate=(GomodGenerator(),))},
    )
    states = materialize_sources(spec, SourceOptions(), WORKER)

    gomods = states["__gomods"]
    assert isinstance(gomods, GeneratedSource)
    assert not gomods.patchable
    assert isinstance(gomods.state.op, ExecOp)
    assert gomods.state.op.run.network == "sandbox"
    assert gomods.state.op.output == "/go/pkg/mod"


def test_gomods_without_worker_fails() -> None:
    spec = PackageSpec(
        name="p",
        sources={"src": Source(git=SourceGit(url="u", commit="c"), generate=(GomodGenerator(),))},
    )
    with pytest.raises(SourceResolutionError):
        materialize_sources(spec, SourceOptions())
