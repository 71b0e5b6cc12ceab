"""
Projection of options dataclasses into command-line tokens.

An options type is a plain dataclass. Its fields are described once per type
(cached) and tagged with one of four kinds:

    LIST         the type defines ``<field>_args()``; its list is appended as-is
    PASSTHROUGH  the ``additional_arguments`` field; its items are appended as-is
    FLAG         a bool field; ``-<field>`` is appended when true
    VALUED       anything else; ``-<field>`` and ``str(value)`` are appended

ClassVar fields never show up in ``dataclasses.fields()``; fields whose name
starts with an underscore are skipped as internal.
"""

from __future__ import annotations

import dataclasses
import enum
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from shellbuild.errors import ProjectionError

PASSTHROUGH_FIELD = "additional_arguments"
ACCESSOR_SUFFIX = "_args"


class OptionKind(enum.Enum):
    FLAG = "flag"
    VALUED = "valued"
    LIST = "list"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class OptionDescriptor:
    """How one options field turns into tokens."""

    name: str
    kind: OptionKind
    flag: str
    accessor: Optional[str] = None


def _is_bool_field(field: dataclasses.Field, hints: dict[str, Any]) -> bool:
    annotation = hints.get(field.name, field.type)
    if annotation is bool or annotation == "bool":
        return True
    return isinstance(field.default, bool)


@lru_cache(maxsize=None)
def describe_options(options_type: type) -> tuple[OptionDescriptor, ...]:
    """Build the option schema of a dataclass type, in declaration order."""
    if not dataclasses.is_dataclass(options_type):
        raise ProjectionError(f"{options_type.__name__} is not a dataclass")

    try:
        hints = typing.get_type_hints(options_type)
    except Exception:
        # Unresolvable forward references: fall back to raw annotations.
        hints = {}

    descriptors = []
    for field in dataclasses.fields(options_type):
        if field.name.startswith("_"):
            continue
        flag = field.metadata.get("flag", f"-{field.name}")
        accessor = f"{field.name}{ACCESSOR_SUFFIX}"
        if callable(getattr(options_type, accessor, None)):
            kind = OptionKind.LIST
        elif field.name == PASSTHROUGH_FIELD:
            kind = OptionKind.PASSTHROUGH
            accessor = None
        elif _is_bool_field(field, hints):
            kind = OptionKind.FLAG
            accessor = None
        else:
            kind = OptionKind.VALUED
            accessor = None
        descriptors.append(OptionDescriptor(field.name, kind, flag, accessor))
    return tuple(descriptors)


def project_options(options: Any) -> list[str]:
    """Turn an options dataclass instance into an ordered token list.

    Raises:
        ProjectionError: If options is not a dataclass instance or a custom
            accessor fails or returns something other than a list.
    """
    if not dataclasses.is_dataclass(options) or isinstance(options, type):
        raise ProjectionError(f"cannot reflect options of type {type(options).__name__}")

    tokens: list[str] = []
    for descriptor in describe_options(type(options)):
        value = getattr(options, descriptor.name)

        if descriptor.kind is OptionKind.LIST:
            try:
                produced = getattr(options, descriptor.accessor)()
            except Exception as exc:
                raise ProjectionError(
                    f"reflecting options failed for {type(options).__name__}.{descriptor.accessor}()"
                ) from exc
            if not isinstance(produced, (list, tuple)):
                raise ProjectionError(
                    f"{type(options).__name__}.{descriptor.accessor}() must return a list, "
                    f"got {type(produced).__name__}"
                )
            tokens.extend(str(item) for item in produced)
            continue

        if descriptor.kind is OptionKind.PASSTHROUGH and isinstance(value, (list, tuple)):
            tokens.extend(str(item) for item in value)
            continue

        if descriptor.kind is OptionKind.FLAG:
            if value:
                tokens.append(descriptor.flag)
            continue

        # Emitted even when the value is empty or a default.
        tokens.append(descriptor.flag)
        tokens.append(str(value))

    return tokens
