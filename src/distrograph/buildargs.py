"""Build-argument substitution for spec fields.

Values may reference declared arguments as ``$NAME`` or ``${NAME}``. A literal
dollar sign is written as ``\\$``; other shell text such as ``$(pwd)`` passes
through unchanged.
"""

from __future__ import annotations

import re
import warnings
from collections.abc import Mapping
from string import Template

from distrograph.errors import SpecValidationError


class UndeclaredBuildArgWarning(UserWarning):
    """Warning raised when a caller passes an argument the package does not declare."""


def substitute(value: str, args: Mapping[str, str]) -> str:
    """Expand ``value`` against ``args``; raise ``KeyError`` on unknown references.

    A ``$`` not followed by an identifier, as in ``$(pwd)`` or ``$5``, is kept
    as written. An unterminated ``${`` raises ``ValueError``.
    """
    if "$$" in value:
        # `$$` is the escape sequence of string.Template
        raise KeyError(f"$$ is not allowed (no argument can be named $): {value}")
    value = value.replace(r"\$", "$$")

    def convert(match: re.Match[str]) -> str:
        name = match.group("named") or match.group("braced")
        if name is not None:
            return args[name]
        if match.group("escaped") is not None:
            return "$"
        if value.startswith("{", match.end()):
            raise ValueError(f"Unterminated argument reference in {value!r}")
        return match.group()

    return Template.pattern.sub(convert, value)


def expand_args(value: str, args: Mapping[str, str], *, field: str) -> str:
    try:
        return substitute(value, args)
    except KeyError as exc:
        raise SpecValidationError(
            f"Unknown build argument referenced in {field}.",
            hint="Declare the argument under `args` or escape the dollar sign as `\\$`.",
            context={"field": field, "value": value, "argument": str(exc.args[0])},
        ) from exc
    except ValueError as exc:
        raise SpecValidationError(
            f"Malformed build argument reference in {field}.",
            hint="Close `${` references with `}` or escape the dollar sign as `\\$`.",
            context={"field": field, "value": value},
        ) from exc


def resolve_build_args(
    declared: Mapping[str, str],
    provided: Mapping[str, str],
) -> dict[str, str]:
    """Merge caller-provided values over declared defaults."""
    resolved = dict(declared)
    for key, value in sorted(provided.items()):
        if key not in declared:
            warnings.warn(
                f"Build argument {key!r} is not declared by the package and is ignored.",
                UndeclaredBuildArgWarning,
                stacklevel=2,
            )
            continue
        resolved[key] = value
    return resolved


def expand_mapping(
    values: Mapping[str, str],
    args: Mapping[str, str],
    *,
    field: str,
) -> dict[str, str]:
    return {key: expand_args(value, args, field=f"{field}.{key}") for key, value in values.items()}
