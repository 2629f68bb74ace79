from distrograph.graph import (
    Constraints,
    ExecOp,
    MergeOp,
    Mkfile,
    RunDirective,
    State,
    add_mount,
    merge_at_path,
    network,
    persistent_cache,
    run_dir,
    sh_args,
    with_run_options,
)


def test_directives_combine_left_to_right() -> None:
    combined = with_run_options(
        sh_args("true"),
        RunDirective(env={"A": "1", "B": "1"}),
        RunDirective(env={"B": "2"}),
        run_dir("/work"),
        network("host"),
        network("none"),
        persistent_cache("/cache", "c1"),
        add_mount("/src", State.scratch()),
    )
    assert combined.args == ("/bin/sh", "-c", "true")
    assert combined.env == {"A": "1", "B": "2"}
    assert combined.dir == "/work"
    assert combined.network == "none"
    assert [mount.dest for mount in combined.mounts] == ["/cache", "/src"]


def test_run_inherits_state_env_and_workdir() -> None:
    base = State.image("example/base:1", env={"PATH": "/bin"}, workdir="/app")
    state = base.run(sh_args("ls"), RunDirective(env={"X": "1"})).root_state()
    assert isinstance(state.op, ExecOp)
    assert state.op.run.dir == "/app"
    assert state.op.run.env == {"PATH": "/bin", "X": "1"}


def test_add_mount_output_selects_mount_destination() -> None:
    out = State.image("example/base:1").run(sh_args("make")).add_mount("/out", State.scratch())
    assert isinstance(out.op, ExecOp)
    assert out.op.output == "/out"
    assert out.op.run.mounts[-1].dest == "/out"


def test_progress_group_comes_from_constraints() -> None:
    state = State.scratch().run(sh_args("true"), constraints=Constraints(progress_group="Build")).root_state()
    assert isinstance(state.op, ExecOp)
    assert state.op.progress_group == "Build"


def test_marshal_is_deterministic_for_equal_graphs() -> None:
    def build() -> State:
        files = State.scratch().file(Mkfile(path="/a", mode=0o644, data=b"a"))
        return (
            State.image("example/base:1", env={"B": "2", "A": "1"})
            .run(sh_args("cat /in/a"), add_mount("/in", files, readonly=True), network("none"))
            .root_state()
        )

    assert build().marshal() == build().marshal()
    assert len(build().digest()) == 64


def test_marshal_differs_when_inputs_differ() -> None:
    a = State.image("example/base:1").run(sh_args("true")).root_state()
    b = State.image("example/base:1").run(sh_args("false")).root_state()
    assert a.digest() != b.digest()


def test_default_network_is_sandbox_in_payload() -> None:
    payload = State.scratch().run(sh_args("true")).root_state().to_payload()
    assert payload["run"]["network"] == "sandbox"


def test_image_state_gets_default_path() -> None:
    assert "PATH" in State.image("example/base:1").env


def test_merge_op_lists_inputs_in_order() -> None:
    a = State.scratch().file(Mkfile(path="/a", mode=0o644, data=b"a"))
    b = State.scratch().file(Mkfile(path="/b", mode=0o644, data=b"b"))
    merged = merge_at_path(State.scratch(), [a, b], "/")
    assert isinstance(merged.op, MergeOp)
    assert merged.op.inputs[1] == a
    assert merged.op.inputs[2] == b
