"""Typed compiler error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across API surfaces."""

    SPEC_VALIDATION = "E_SPEC_VALIDATION"
    SOURCE_RESOLUTION = "E_SOURCE_RESOLUTION"
    DEPENDENCY_INSTALL = "E_DEPENDENCY_INSTALL"
    BUILD_STEP = "E_BUILD_STEP"
    RESOLUTION = "E_RESOLUTION"
    CONFIG_DECODE = "E_CONFIG_DECODE"
    SIGNING = "E_SIGNING"
    UNKNOWN_TARGET = "E_UNKNOWN_TARGET"


class DistroGraphError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def causes(self) -> tuple[BaseException, ...]:
        """Return the chain of underlying causes, nearest first."""
        chain: list[BaseException] = []
        current = self.__cause__
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__
        return tuple(chain)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        causes = self.causes()
        if causes:
            payload["causes"] = [
                cause.code if isinstance(cause, DistroGraphError) else type(cause).__name__
                for cause in causes
            ]
        return payload


class SpecValidationError(DistroGraphError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SPEC_VALIDATION, hint=hint, context=context)


class SourceResolutionError(DistroGraphError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SOURCE_RESOLUTION, hint=hint, context=context)


class DependencyInstallError(DistroGraphError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.DEPENDENCY_INSTALL, hint=hint, context=context)


class BuildStepError(DistroGraphError):
    """A build step exited non-zero; carries the step index and its command."""

    step_index: int
    command: str

    def __init__(
        self,
        message: str,
        *,
        step_index: int,
        command: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        merged = {"step": str(step_index), "command": command}
        merged.update(context or {})
        super().__init__(message, code=ErrorCode.BUILD_STEP, hint=hint, context=merged)
        self.step_index = step_index
        self.command = command


class ResolutionError(DistroGraphError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.RESOLUTION, hint=hint, context=context)


class ConfigDecodeError(DistroGraphError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIG_DECODE, hint=hint, context=context)


class SigningError(DistroGraphError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.SIGNING, hint=hint, context=context)


class UnknownTargetError(DistroGraphError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.UNKNOWN_TARGET, hint=hint, context=context)


__all__ = [
    "BuildStepError",
    "ConfigDecodeError",
    "DependencyInstallError",
    "DistroGraphError",
    "ErrorCode",
    "ResolutionError",
    "SigningError",
    "SourceResolutionError",
    "SpecValidationError",
    "UnknownTargetError",
]
