import pytest

from distrograph.errors import SpecValidationError
from distrograph.systemd import SystemdConfiguration, SystemdDropinConfig, SystemdUnitConfig


def test_split_name_separates_unit_type() -> None:
    unit = SystemdUnitConfig()
    assert unit.split_name("foo.socket") == ("foo", "socket")
    assert unit.split_name("build/out/foo.service") == ("foo", "service")


def test_split_name_uses_configured_name() -> None:
    unit = SystemdUnitConfig(name="bar.timer")
    assert unit.split_name("foo.service") == ("bar", "timer")


def test_dropin_artifact_lives_in_unit_directory() -> None:
    dropin = SystemdDropinConfig(unit="foo.service")
    artifact = dropin.artifact()
    assert artifact.subpath == "foo.service.d"
    assert artifact.install_path("/usr/lib/systemd/system", "conf/override.conf") == (
        "/usr/lib/systemd/system/foo.service.d/override.conf"
    )


def test_unit_artifact_has_no_subpath() -> None:
    assert SystemdUnitConfig(name="x.service").artifact().subpath == ""


def test_build_args_expand_keys_and_fields_without_mutating_original() -> None:
    config = SystemdConfiguration(
        units={"$NAME.service": SystemdUnitConfig(name="$NAME-main.service")},
        dropins={"$NAME.conf": SystemdDropinConfig(unit="$NAME.service")},
    )
    expanded = config.with_build_args({"NAME": "app"})

    assert list(expanded.units) == ["app.service"]
    assert expanded.units["app.service"].name == "app-main.service"
    assert expanded.dropins["app.conf"].unit == "app.service"
    assert list(config.units) == ["$NAME.service"]
    assert config.units["$NAME.service"].name == "$NAME-main.service"


def test_build_arg_failure_is_propagated() -> None:
    config = SystemdConfiguration(units={"$MISSING.service": SystemdUnitConfig()})
    with pytest.raises(SpecValidationError) as exc_info:
        config.with_build_args({})
    assert exc_info.value.context["unit"] == "$MISSING.service"
    assert isinstance(exc_info.value.__cause__, SpecValidationError)


def test_getters_return_copies() -> None:
    config = SystemdConfiguration(units={"a.service": SystemdUnitConfig()})
    units = config.get_units()
    units["b.service"] = SystemdUnitConfig()
    assert list(config.units) == ["a.service"]


def test_validate_rejects_dropin_without_unit() -> None:
    config = SystemdConfiguration(dropins={"override.conf": SystemdDropinConfig()})
    with pytest.raises(SpecValidationError, match="owning unit"):
        config.validate()


def test_validate_rejects_nested_unit_name() -> None:
    config = SystemdConfiguration(units={"a.service": SystemdUnitConfig(name="dir/a.service")})
    with pytest.raises(SpecValidationError, match="path separator"):
        config.validate()


def test_same_placeholder_in_key_and_name_expands_both() -> None:
    config = SystemdConfiguration(units={"$NAME.service": SystemdUnitConfig(name="$NAME.service")})
    expanded = config.with_build_args({"NAME": "app"})
    assert dict(expanded.units) == {"app.service": SystemdUnitConfig(name="app.service")}


def test_named_dropin_still_lives_in_unit_directory() -> None:
    dropin = SystemdDropinConfig(name="other.conf", unit="foo.service")
    assert dropin.artifact().subpath == "foo.service.d"
    assert dropin.artifact().install_path("/usr/lib/systemd/system", "conf/override.conf") == (
        "/usr/lib/systemd/system/foo.service.d/other.conf"
    )


def test_unit_keys_expanding_to_the_same_key_are_rejected() -> None:
    config = SystemdConfiguration(
        units={"$A.service": SystemdUnitConfig(), "$B.service": SystemdUnitConfig()},
    )
    with pytest.raises(SpecValidationError, match="same key"):
        config.with_build_args({"A": "app", "B": "app"})


def test_dropin_keys_expanding_to_the_same_key_are_rejected() -> None:
    config = SystemdConfiguration(
        dropins={
            "$A.conf": SystemdDropinConfig(unit="app.service"),
            "$B.conf": SystemdDropinConfig(unit="app.service"),
        },
    )
    with pytest.raises(SpecValidationError, match="same key"):
        config.with_build_args({"A": "x", "B": "x"})
