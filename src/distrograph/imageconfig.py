"""Container image config decoding, defaults and spec overrides."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from distrograph.errors import ConfigDecodeError, DistroGraphError, ResolutionError
from distrograph.graph.state import DEFAULT_PATH_ENV
from distrograph.models import ImageSpec, PackageSpec, Platform
from distrograph.registry import ImageMetaResolver

if TYPE_CHECKING:
    from distrograph.distro.base import DistroBackend


@dataclass(frozen=True, slots=True)
class ContainerConfig:
    env: tuple[str, ...] = ()
    entrypoint: tuple[str, ...] | None = None
    cmd: tuple[str, ...] | None = None
    working_dir: str = ""
    user: str = ""
    labels: Mapping[str, str] = field(default_factory=dict)
    volumes: tuple[str, ...] = ()
    exposed_ports: tuple[str, ...] = ()
    stop_signal: str = ""

    def env_map(self) -> dict[str, str]:
        result: dict[str, str] = {}
        for entry in self.env:
            key, _, value = entry.partition("=")
            result[key] = value
        return result


@dataclass(frozen=True, slots=True)
class ImageConfig:
    architecture: str = ""
    os: str = ""
    variant: str = ""
    config: ContainerConfig = field(default_factory=ContainerConfig)

    @classmethod
    def from_json(cls, data: bytes, *, ref: str = "") -> ImageConfig:
        try:
            parsed = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigDecodeError(
                "Image config is not valid JSON.",
                context={"operation": "decode_image_config", "ref": ref},
            ) from exc
        if not isinstance(parsed, dict):
            raise ConfigDecodeError(
                "Image config has invalid structure.",
                context={"operation": "decode_image_config", "ref": ref},
            )

        raw_config = parsed.get("config") or {}
        if not isinstance(raw_config, dict):
            raise ConfigDecodeError(
                "Image config `config` section must be an object.",
                context={"operation": "decode_image_config", "ref": ref},
            )

        return cls(
            architecture=_str_field(parsed, "architecture", ref),
            os=_str_field(parsed, "os", ref),
            variant=_str_field(parsed, "variant", ref),
            config=ContainerConfig(
                env=_str_list(raw_config, "Env", ref) or (),
                entrypoint=_str_list(raw_config, "Entrypoint", ref),
                cmd=_str_list(raw_config, "Cmd", ref),
                working_dir=_str_field(raw_config, "WorkingDir", ref),
                user=_str_field(raw_config, "User", ref),
                labels=_str_map(raw_config, "Labels", ref),
                volumes=tuple(sorted(_object_keys(raw_config, "Volumes", ref))),
                exposed_ports=tuple(sorted(_object_keys(raw_config, "ExposedPorts", ref))),
                stop_signal=_str_field(raw_config, "StopSignal", ref),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        config: dict[str, Any] = {"Env": list(self.config.env)}
        if self.config.entrypoint is not None:
            config["Entrypoint"] = list(self.config.entrypoint)
        if self.config.cmd is not None:
            config["Cmd"] = list(self.config.cmd)
        if self.config.working_dir:
            config["WorkingDir"] = self.config.working_dir
        if self.config.user:
            config["User"] = self.config.user
        if self.config.labels:
            config["Labels"] = dict(sorted(self.config.labels.items()))
        if self.config.volumes:
            config["Volumes"] = {volume: {} for volume in self.config.volumes}
        if self.config.exposed_ports:
            config["ExposedPorts"] = {port: {} for port in self.config.exposed_ports}
        if self.config.stop_signal:
            config["StopSignal"] = self.config.stop_signal
        payload: dict[str, Any] = {
            "architecture": self.architecture,
            "os": self.os,
            "config": config,
        }
        if self.variant:
            payload["variant"] = self.variant
        return payload

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")


def base_image_config(platform: Platform | None) -> ImageConfig:
    """Minimal config used when nothing else names a base image."""
    platform = platform or Platform()
    env: tuple[str, ...] = ()
    if platform.os != "windows":
        env = (f"PATH={DEFAULT_PATH_ENV}",)
    return ImageConfig(
        architecture=platform.architecture,
        os=platform.os,
        variant=platform.variant,
        config=ContainerConfig(env=env),
    )


def fetch_image_config(
    resolver: ImageMetaResolver,
    ref: str,
    platform: Platform | None,
) -> ImageConfig:
    try:
        data = resolver.resolve_image_config(ref, platform)
    except DistroGraphError:
        raise
    except (OSError, LookupError) as exc:
        raise ResolutionError(
            "Failed to resolve image config.",
            context={
                "operation": "resolve_image_config",
                "ref": ref,
                "platform": str(platform) if platform is not None else "",
            },
        ) from exc
    return ImageConfig.from_json(data, ref=ref)


def apply_image_overrides(base: ImageConfig, overrides: ImageSpec) -> ImageConfig:
    """Overlay spec-declared fields onto ``base``; unset fields keep base values."""
    config = base.config

    env = config.env
    if overrides.env:
        env = _merge_env(config.env, overrides.env)

    labels: Mapping[str, str] = config.labels
    if overrides.labels:
        merged = dict(config.labels)
        merged.update(overrides.labels)
        labels = merged

    config = replace(
        config,
        env=env,
        labels=labels,
        entrypoint=overrides.entrypoint if overrides.entrypoint is not None else config.entrypoint,
        cmd=overrides.cmd if overrides.cmd is not None else config.cmd,
        working_dir=overrides.working_dir if overrides.working_dir is not None else config.working_dir,
        user=overrides.user if overrides.user is not None else config.user,
        stop_signal=overrides.stop_signal if overrides.stop_signal is not None else config.stop_signal,
        volumes=_union(config.volumes, overrides.volumes),
        exposed_ports=_union(config.exposed_ports, overrides.exposed_ports),
    )
    return replace(base, config=config)


def resolve_image_config(
    resolver: ImageMetaResolver,
    spec: PackageSpec,
    platform: Platform | None,
    target_key: str,
    *,
    backend: DistroBackend | None = None,
) -> ImageConfig:
    overrides = spec.get_image(target_key)
    if not overrides.base:
        if backend is not None:
            base = backend.default_image_config(resolver, platform)
        else:
            base = base_image_config(platform)
    else:
        base = fetch_image_config(resolver, overrides.base, platform)
    return apply_image_overrides(base, overrides)


def _merge_env(base: tuple[str, ...], overrides: Mapping[str, str]) -> tuple[str, ...]:
    merged: list[str] = []
    seen: set[str] = set()
    for entry in base:
        key = entry.partition("=")[0]
        seen.add(key)
        if key in overrides:
            merged.append(f"{key}={overrides[key]}")
        else:
            merged.append(entry)
    for key in sorted(overrides):
        if key not in seen:
            merged.append(f"{key}={overrides[key]}")
    return tuple(merged)


def _union(base: tuple[str, ...], extra: tuple[str, ...]) -> tuple[str, ...]:
    if not extra:
        return base
    return tuple(sorted(set(base) | set(extra)))


def _str_field(raw: Mapping[str, Any], key: str, ref: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigDecodeError(
            f"Image config field {key} must be a string.",
            context={"operation": "decode_image_config", "ref": ref, "field": key},
        )
    return value


def _str_list(raw: Mapping[str, Any], key: str, ref: str) -> tuple[str, ...] | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigDecodeError(
            f"Image config field {key} must be a list of strings.",
            context={"operation": "decode_image_config", "ref": ref, "field": key},
        )
    return tuple(value)


def _str_map(raw: Mapping[str, Any], key: str, ref: str) -> dict[str, str]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(isinstance(item, str) for item in value.values()):
        raise ConfigDecodeError(
            f"Image config field {key} must map strings to strings.",
            context={"operation": "decode_image_config", "ref": ref, "field": key},
        )
    return dict(value)


def _object_keys(raw: Mapping[str, Any], key: str, ref: str) -> list[str]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, dict):
        raise ConfigDecodeError(
            f"Image config field {key} must be an object.",
            context={"operation": "decode_image_config", "ref": ref, "field": key},
        )
    return list(value)
