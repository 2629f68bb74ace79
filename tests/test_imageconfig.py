import json

import pytest

from distrograph.distro import MARINER2, WINDOWSCROSS
from distrograph.errors import ConfigDecodeError, ErrorCode, ResolutionError
from distrograph.imageconfig import (
    ImageConfig,
    apply_image_overrides,
    base_image_config,
    fetch_image_config,
    resolve_image_config,
)
from distrograph.models import ImageSpec, PackageSpec, Platform, TargetConfig
from distrograph.registry import StaticImageResolver

BASE = {
    "architecture": "amd64",
    "os": "linux",
    "config": {
        "Env": ["PATH=/usr/bin", "LANG=C"],
        "Entrypoint": ["/bin/sh"],
        "Cmd": ["-c", "true"],
        "Labels": {"vendor": "upstream"},
        "ExposedPorts": {"80/tcp": {}},
    },
}


def test_decodes_docker_config_fields() -> None:
    config = ImageConfig.from_json(json.dumps(BASE).encode())
    assert config.os == "linux"
    assert config.config.entrypoint == ("/bin/sh",)
    assert config.config.env_map() == {"PATH": "/usr/bin", "LANG": "C"}
    assert config.config.exposed_ports == ("80/tcp",)


def test_entrypoint_override_keeps_base_labels() -> None:
    base = ImageConfig.from_json(json.dumps(BASE).encode())
    result = apply_image_overrides(base, ImageSpec(entrypoint=("/usr/bin/app",), labels={"team": "x"}))
    assert result.config.entrypoint == ("/usr/bin/app",)
    assert result.config.cmd == ("-c", "true")
    assert result.config.labels == {"vendor": "upstream", "team": "x"}


def test_env_overrides_merge_by_key() -> None:
    base = ImageConfig.from_json(json.dumps(BASE).encode())
    result = apply_image_overrides(base, ImageSpec(env={"LANG": "C.UTF-8", "APP_MODE": "prod"}))
    assert result.config.env == ("PATH=/usr/bin", "LANG=C.UTF-8", "APP_MODE=prod")


def test_unset_overrides_keep_base_values() -> None:
    base = ImageConfig.from_json(json.dumps(BASE).encode())
    assert apply_image_overrides(base, ImageSpec()) == base


def test_volumes_and_ports_are_unioned() -> None:
    base = ImageConfig.from_json(json.dumps(BASE).encode())
    result = apply_image_overrides(base, ImageSpec(exposed_ports=("443/tcp", "80/tcp"), volumes=("/data",)))
    assert result.config.exposed_ports == ("443/tcp", "80/tcp")
    assert result.config.volumes == ("/data",)


def test_invalid_json_raises_decode_error() -> None:
    with pytest.raises(ConfigDecodeError) as exc_info:
        ImageConfig.from_json(b"{not json", ref="example/bad:1")
    assert exc_info.value.code == ErrorCode.CONFIG_DECODE.value
    assert exc_info.value.context["ref"] == "example/bad:1"


def test_wrong_field_type_raises_decode_error() -> None:
    data = json.dumps({"config": {"Entrypoint": "/bin/sh"}}).encode()
    with pytest.raises(ConfigDecodeError) as exc_info:
        ImageConfig.from_json(data)
    assert exc_info.value.context["field"] == "Entrypoint"


def test_default_config_has_path_except_on_windows() -> None:
    assert base_image_config(Platform()).config.env_map()["PATH"]
    assert base_image_config(Platform(os="windows")).config.env == ()


def test_unknown_reference_raises_resolution_error() -> None:
    with pytest.raises(ResolutionError):
        fetch_image_config(StaticImageResolver(), "example/missing:1", None)


def test_lookup_errors_from_resolver_are_wrapped() -> None:
    class BrokenResolver:
        def resolve_image_config(self, ref: str, platform: Platform | None) -> bytes:
            raise KeyError(ref)

    with pytest.raises(ResolutionError) as exc_info:
        fetch_image_config(BrokenResolver(), "example/any:1", Platform())
    assert isinstance(exc_info.value.__cause__, KeyError)


def test_resolver_prefers_platform_specific_config() -> None:
    resolver = StaticImageResolver(
        configs={
            "example/base:1": {"os": "linux", "architecture": "amd64"},
            "example/base:1@linux/arm64": {"os": "linux", "architecture": "arm64"},
        },
    )
    assert fetch_image_config(resolver, "example/base:1", Platform(architecture="arm64")).architecture == "arm64"
    assert fetch_image_config(resolver, "example/base:1", Platform()).architecture == "amd64"


def test_spec_without_base_uses_backend_runtime_image(resolver: StaticImageResolver) -> None:
    spec = PackageSpec(name="p", image=ImageSpec(entrypoint=("/usr/bin/p",)))
    config = resolve_image_config(resolver, spec, Platform(), "mariner2", backend=MARINER2)
    assert resolver.requests[-1][0] == MARINER2.config.distroless_ref
    assert config.config.entrypoint == ("/usr/bin/p",)


def test_target_image_overrides_spec_image(resolver: StaticImageResolver) -> None:
    spec = PackageSpec(
        name="p",
        image=ImageSpec(base="example/spec-base:1"),
        targets={"windowscross": TargetConfig(image=ImageSpec(base="example/target-base:1"))},
    )
    resolve_image_config(resolver, spec, None, "windowscross", backend=WINDOWSCROSS)
    assert resolver.requests[-1] == ("example/target-base:1", "")


def test_config_round_trips_through_json() -> None:
    config = ImageConfig.from_json(json.dumps(BASE).encode())
    assert ImageConfig.from_json(config.to_json()) == config
