"""Materialized source states."""

from __future__ import annotations

from dataclasses import dataclass, field

from distrograph.graph import Constraints, State
from distrograph.models import Source
from distrograph.registry import ImageMetaResolver


@dataclass(frozen=True, slots=True)
class DeclaredSource:
    name: str
    state: State
    source: Source
    is_dir: bool
    patchable: bool = True


@dataclass(frozen=True, slots=True)
class GeneratedSource:
    """A source the compiler synthesizes under a reserved name."""

    name: str
    state: State
    is_dir: bool = True
    patchable: bool = False


SourceState = DeclaredSource | GeneratedSource


@dataclass(frozen=True, slots=True)
class SourceOptions:
    resolver: ImageMetaResolver | None = None
    constraints: Constraints = field(default_factory=Constraints)
