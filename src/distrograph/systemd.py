"""Systemd unit and drop-in artifact configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from distrograph.artifacts import ArtifactConfig
from distrograph.buildargs import expand_args
from distrograph.errors import SpecValidationError


@dataclass(frozen=True, slots=True)
class SystemdUnitConfig:
    # Nested paths are not supported; the extension (.service, .timer, ...) is
    # part of the name.
    name: str = ""
    # Written to the package's systemd preset file when set.
    enable: bool = False

    def with_build_args(self, args: Mapping[str, str]) -> SystemdUnitConfig:
        if not self.name:
            return self
        return replace(self, name=expand_args(self.name, args, field="systemd unit name"))

    def artifact(self) -> ArtifactConfig:
        return ArtifactConfig(subpath="", name=self.name)

    def resolve_name(self, path: str) -> str:
        return self.artifact().resolve_name(path)

    def split_name(self, path: str) -> tuple[str, str]:
        """Resolve the unit name and split it into base name and unit type.

        ``foo.socket`` gives ``("foo", "socket")``.
        """
        name = self.resolve_name(path)
        base, _, unit_type = name.partition(".")
        return base, unit_type


@dataclass(frozen=True, slots=True)
class SystemdDropinConfig:
    # If empty the file name of the produced artifact is used.
    name: str = ""
    # The unit `foo.service` maps to the directory `foo.service.d`.
    unit: str = ""

    def with_build_args(self, args: Mapping[str, str]) -> SystemdDropinConfig:
        name = self.name
        unit = self.unit
        if name:
            name = expand_args(name, args, field="systemd dropin name")
        if unit:
            unit = expand_args(unit, args, field="systemd dropin unit")
        return replace(self, name=name, unit=unit)

    def artifact(self) -> ArtifactConfig:
        return ArtifactConfig(subpath=f"{self.unit}.d", name=self.name)

    def resolve_name(self, path: str) -> str:
        return self.artifact().resolve_name(path)


@dataclass(frozen=True, slots=True)
class SystemdConfiguration:
    units: Mapping[str, SystemdUnitConfig] = field(default_factory=dict)
    dropins: Mapping[str, SystemdDropinConfig] = field(default_factory=dict)

    def with_build_args(self, args: Mapping[str, str]) -> SystemdConfiguration:
        """Return a new configuration with keys and fields expanded."""
        expanded_units: dict[str, SystemdUnitConfig] = {}
        for key, unit in self.units.items():
            try:
                expanded_unit = unit.with_build_args(args)
                expanded_key = expand_args(key, args, field="systemd unit key")
            except SpecValidationError as exc:
                raise SpecValidationError(
                    f"Failed to process build args for systemd unit {key!r}.",
                    context={"unit": key},
                ) from exc
            if expanded_key in expanded_units:
                raise SpecValidationError(
                    "Systemd units expand to the same key.",
                    context={"unit": key, "key": expanded_key},
                )
            expanded_units[expanded_key] = expanded_unit

        expanded_dropins: dict[str, SystemdDropinConfig] = {}
        for key, dropin in self.dropins.items():
            try:
                expanded_dropin = dropin.with_build_args(args)
                expanded_key = expand_args(key, args, field="systemd dropin key")
            except SpecValidationError as exc:
                raise SpecValidationError(
                    f"Failed to process build args for systemd dropin {key!r}.",
                    context={"dropin": key},
                ) from exc
            if expanded_key in expanded_dropins:
                raise SpecValidationError(
                    "Systemd dropins expand to the same key.",
                    context={"dropin": key, "key": expanded_key},
                )
            expanded_dropins[expanded_key] = expanded_dropin

        return SystemdConfiguration(units=expanded_units, dropins=expanded_dropins)

    def get_units(self) -> dict[str, SystemdUnitConfig]:
        return dict(self.units)

    def get_dropins(self) -> dict[str, SystemdDropinConfig]:
        return dict(self.dropins)

    def validate(self) -> None:
        for key, unit in sorted(self.units.items()):
            resolved = unit.resolve_name(key)
            if not resolved:
                raise SpecValidationError(
                    "Systemd unit name resolves to an empty string.",
                    context={"unit": key},
                )
            if "/" in unit.name:
                raise SpecValidationError(
                    "Systemd unit names must not contain a path separator.",
                    hint="Units are always placed at the root of the unit directory.",
                    context={"unit": key, "name": unit.name},
                )
        for key, dropin in sorted(self.dropins.items()):
            if not dropin.unit:
                raise SpecValidationError(
                    "Systemd dropin does not name its owning unit.",
                    context={"dropin": key},
                )
            if "/" in dropin.unit or "/" in dropin.name:
                raise SpecValidationError(
                    "Systemd dropin names must not contain a path separator.",
                    context={"dropin": key, "unit": dropin.unit, "name": dropin.name},
                )
