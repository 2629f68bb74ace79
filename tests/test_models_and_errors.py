import json
from pathlib import Path

import pytest

from distrograph.artifacts import ArtifactConfig
from distrograph.errors import (
    BuildStepError,
    ConfigDecodeError,
    DependencyInstallError,
    ErrorCode,
    ResolutionError,
    SigningError,
    SourceResolutionError,
    SpecValidationError,
    UnknownTargetError,
)
from distrograph.models import (
    Artifacts,
    BuildSpec,
    BuildStep,
    InlineFile,
    PackageSpec,
    PatchSpec,
    Platform,
    Source,
    SourceGit,
    SourceHTTP,
    SourceInline,
)
from distrograph.observability import StructuredLogger


def test_error_codes_are_stable_and_machine_readable() -> None:
    errors = [
        SpecValidationError("bad spec"),
        SourceResolutionError("bad source"),
        DependencyInstallError("bad deps"),
        BuildStepError("step failed", step_index=0, command="make"),
        ResolutionError("no image"),
        ConfigDecodeError("bad config"),
        SigningError("no signer"),
        UnknownTargetError("no target"),
    ]
    assert [error.code for error in errors] == [
        ErrorCode.SPEC_VALIDATION.value,
        ErrorCode.SOURCE_RESOLUTION.value,
        ErrorCode.DEPENDENCY_INSTALL.value,
        ErrorCode.BUILD_STEP.value,
        ErrorCode.RESOLUTION.value,
        ErrorCode.CONFIG_DECODE.value,
        ErrorCode.SIGNING.value,
        ErrorCode.UNKNOWN_TARGET.value,
    ]


def test_error_payload_includes_hint_context_and_causes() -> None:
    try:
        try:
            raise ResolutionError("no image", context={"ref": "example/base:1"})
        except ResolutionError as exc:
            raise SourceResolutionError("source failed", hint="check the ref") from exc
    except SourceResolutionError as error:
        payload = error.to_dict()

    assert payload["code"] == ErrorCode.SOURCE_RESOLUTION.value
    assert payload["hint"] == "check the ref"
    assert payload["causes"] == [ErrorCode.RESOLUTION.value]
    assert "Hint: check the ref" in str(payload["message"])


def test_build_step_error_context_has_step_and_command() -> None:
    error = BuildStepError("failed", step_index=3, command="make check")
    assert error.context == {"step": "3", "command": "make check"}


def test_with_build_args_returns_expanded_copy(sample_spec: PackageSpec) -> None:
    expanded = sample_spec.with_build_args({"VERSION": "2.0.0"})
    src = expanded.sources["src"].git
    assert src is not None
    assert src.commit == "v2.0.0"
    original = sample_spec.sources["src"].git
    assert original is not None
    assert original.commit == "v$VERSION"


def test_version_can_reference_build_args() -> None:
    spec = PackageSpec(name="p", version="$VERSION", args={"VERSION": "1.0"})
    assert spec.with_build_args({"VERSION": "3.1"}).version == "3.1"


def test_validate_accepts_sample_spec(sample_spec: PackageSpec) -> None:
    sample_spec.with_build_args({}).validate()


@pytest.mark.parametrize(
    "spec",
    [
        PackageSpec(name=""),
        PackageSpec(name="p", sources={"__gomods": Source(git=SourceGit(url="u", commit="c"))}),
        PackageSpec(name="p", sources={"a/b": Source(git=SourceGit(url="u", commit="c"))}),
        PackageSpec(name="p", sources={"empty": Source()}),
        PackageSpec(name="p", patches={"missing": (PatchSpec(source="x"),)}),
        PackageSpec(
            name="p",
            sources={"src": Source(git=SourceGit(url="u", commit="c"))},
            patches={"src": (PatchSpec(source="nowhere"),)},
        ),
        PackageSpec(
            name="p",
            sources={
                "src": Source(git=SourceGit(url="u", commit="c")),
                "fix": Source(http=SourceHTTP(url="https://x/fix.patch")),
            },
            patches={"src": (PatchSpec(source="fix", strip=-1),)},
        ),
        PackageSpec(name="p", build=BuildSpec(steps=(BuildStep(command="  "),))),
    ],
)
def test_validate_rejects_invalid_specs(spec: PackageSpec) -> None:
    with pytest.raises(SpecValidationError):
        spec.validate()


def test_platform_parse_and_format() -> None:
    assert Platform.parse("linux/arm64/v8") == Platform(os="linux", architecture="arm64", variant="v8")
    assert str(Platform.parse("windows/amd64")) == "windows/amd64"
    with pytest.raises(SpecValidationError):
        Platform.parse("linux")


def test_structured_logger_exports_json_lines(tmp_path: Path) -> None:
    logger = StructuredLogger()
    logger.log(operation="assemble", target="jammy", stage="sources", message="2 sources")
    logger.log(operation="assemble", target="mariner2", stage="script", message="1 step")

    assert len(logger.records_for_target("jammy")) == 1
    assert logger.records_for_stage("script")[0]["target"] == "mariner2"

    path = logger.to_json_lines(tmp_path / "logs" / "build.jsonl")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["target"] for line in lines] == ["jammy", "mariner2"]


def test_binaries_with_the_same_file_name_are_rejected() -> None:
    spec = PackageSpec(
        name="p",
        artifacts=Artifacts(binaries={"a/tool": ArtifactConfig(), "b/tool": ArtifactConfig()}),
    )
    with pytest.raises(SpecValidationError, match="same file name") as exc_info:
        spec.validate()
    assert exc_info.value.context["name"] == "tool"


def test_binaries_resolving_to_the_same_install_path_are_rejected() -> None:
    spec = PackageSpec(
        name="p",
        artifacts=Artifacts(
            binaries={"out/one": ArtifactConfig(name="tool"), "out/two": ArtifactConfig(name="tool")},
        ),
    )
    with pytest.raises(SpecValidationError, match="same install path"):
        spec.validate()


def test_inline_source_mount_kind_follows_declaration() -> None:
    assert Source(inline=SourceInline(dir={"a": InlineFile()})).is_dir()
    assert not Source(inline=SourceInline(file=InlineFile())).is_dir()
