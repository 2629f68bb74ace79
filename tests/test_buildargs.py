import warnings

import pytest

from distrograph.buildargs import (
    UndeclaredBuildArgWarning,
    expand_args,
    expand_mapping,
    resolve_build_args,
    substitute,
)
from distrograph.errors import ErrorCode, SpecValidationError


def test_substitute_expands_both_reference_forms() -> None:
    assert substitute("$NAME-${VERSION}.tar.gz", {"NAME": "app", "VERSION": "1.0"}) == "app-1.0.tar.gz"


def test_substitute_keeps_escaped_dollar() -> None:
    assert substitute(r"cost \$5", {}) == "cost $5"


def test_double_dollar_is_rejected() -> None:
    with pytest.raises(KeyError):
        substitute("$$HOME", {})


def test_unknown_argument_raises_validation_error_with_field() -> None:
    with pytest.raises(SpecValidationError) as exc_info:
        expand_args("$MISSING", {}, field="version")
    assert exc_info.value.code == ErrorCode.SPEC_VALIDATION.value
    assert exc_info.value.context["field"] == "version"
    assert exc_info.value.context["argument"] == "MISSING"
    assert exc_info.value.hint is not None


def test_malformed_reference_raises_validation_error() -> None:
    with pytest.raises(SpecValidationError, match="Malformed"):
        expand_args("${", {}, field="version")


def test_provided_values_override_declared_defaults() -> None:
    resolved = resolve_build_args({"VERSION": "1.0", "OS": "linux"}, {"VERSION": "2.0"})
    assert resolved == {"VERSION": "2.0", "OS": "linux"}


def test_undeclared_arguments_warn_and_are_ignored() -> None:
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        resolved = resolve_build_args({"VERSION": "1.0"}, {"EXTRA": "x"})
    assert resolved == {"VERSION": "1.0"}
    assert any(issubclass(w.category, UndeclaredBuildArgWarning) for w in caught)


def test_dollar_without_identifier_is_kept() -> None:
    assert substitute("$(pwd)/go:$5", {}) == "$(pwd)/go:$5"


def test_shell_text_in_env_values_survives_expansion() -> None:
    env = expand_mapping({"GOPATH": "$(pwd)/go", "V": "$VERSION"}, {"VERSION": "1.0"}, field="build.env")
    assert env == {"GOPATH": "$(pwd)/go", "V": "1.0"}


def test_malformed_reference_hint_mentions_escape() -> None:
    with pytest.raises(SpecValidationError) as exc_info:
        expand_args("${NAME", {"NAME": "x"}, field="version")
    assert exc_info.value.hint is not None
    assert "\\$" in exc_info.value.hint
