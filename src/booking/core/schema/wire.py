"""Wire-level schema primitives shared by every message type.

A message is a pydantic model whose fields carry a ``WireField`` marker in
their ``Annotated`` metadata. The marker holds the permanent tag number and
the wire kind; the pydantic side of the annotation drives JSON validation and
serialization, so the binary codec and the HTTP/JSON projection read the same
declaration.

Tags are never renumbered once shipped. New fields get new tags.
"""

from __future__ import annotations

import types
import typing
from dataclasses import dataclass
from enum import Enum, IntEnum
from functools import cache
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PrivateAttr, model_validator

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

MAX_TAG = 2**29 - 1

# int64 travels as a JSON string (proto3 JSON mapping); numbers are accepted on input.
Int64 = Annotated[
    int,
    Field(ge=INT64_MIN, le=INT64_MAX),
    PlainSerializer(str, return_type=str, when_used="json"),
]
Int32 = Annotated[int, Field(ge=INT32_MIN, le=INT32_MAX)]


class WireType(IntEnum):
    """The low three bits of every field key."""

    VARINT = 0
    I64 = 1
    LEN = 2
    SGROUP = 3
    EGROUP = 4
    I32 = 5


class WireKind(Enum):
    """Logical value kinds a schema field can hold."""

    INT64 = "int64"
    INT32 = "int32"
    BOOL = "bool"
    STRING = "string"
    MESSAGE = "message"

    @property
    def wire_type(self) -> WireType:
        if self in (WireKind.STRING, WireKind.MESSAGE):
            return WireType.LEN
        return WireType.VARINT

    @property
    def packable(self) -> bool:
        return self.wire_type is WireType.VARINT


@dataclass(frozen=True)
class WireField:
    """Marker placed in a field's ``Annotated`` metadata."""

    tag: int
    kind: WireKind
    repeated: bool = False


@dataclass(frozen=True)
class FieldSpec:
    """Resolved descriptor for one field of a message class."""

    name: str
    tag: int
    kind: WireKind
    repeated: bool
    message_type: type[Message] | None = None

    @property
    def wire_type(self) -> WireType:
        return self.kind.wire_type

    def zero(self) -> Any:
        if self.repeated:
            return []
        if self.kind is WireKind.MESSAGE:
            return None
        if self.kind is WireKind.STRING:
            return ""
        if self.kind is WireKind.BOOL:
            return False
        return 0


@dataclass(frozen=True)
class MessageSchema:
    fields: tuple[FieldSpec, ...]
    by_tag: dict[int, FieldSpec]


@dataclass(frozen=True)
class UnknownField:
    """A field whose tag (or wire type) this schema does not recognise.

    ``data`` is the complete encoded field, key included, so it can be
    re-emitted byte for byte.
    """

    tag: int
    wire_type: int
    data: bytes


class Message(BaseModel):
    """Base class for every request, response and entity on the wire."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    _unknown_fields: list[UnknownField] = PrivateAttr(default_factory=list)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        # Resolve eagerly so a duplicate tag fails at import time.
        schema_of(cls)

    @model_validator(mode="before")
    @classmethod
    def _null_is_zero(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @property
    def unknown_fields(self) -> list[UnknownField]:
        return self._unknown_fields

    def __eq__(self, other: Any) -> bool:
        """Compare by schema field values and preserved unknown fields."""
        if type(other) is not type(self):
            return False
        return all(
            getattr(self, spec.name) == getattr(other, spec.name)
            for spec in schema_of(type(self)).fields
        ) and self._unknown_fields == other._unknown_fields


def _message_type(annotation: Any) -> type[Message] | None:
    candidates = [annotation]
    origin = typing.get_origin(annotation)
    if origin in (typing.Union, types.UnionType, list):
        candidates = list(typing.get_args(annotation))
    for candidate in candidates:
        if isinstance(candidate, type) and issubclass(candidate, Message):
            return candidate
    return None


@cache
def schema_of(message_type: type[Message]) -> MessageSchema:
    """Build (once) the tag table for a message class."""
    specs: list[FieldSpec] = []
    by_tag: dict[int, FieldSpec] = {}
    for name, info in message_type.model_fields.items():
        marker = next((m for m in info.metadata if isinstance(m, WireField)), None)
        if marker is None:
            continue
        if not 1 <= marker.tag <= MAX_TAG:
            raise TypeError(f"{message_type.__name__}.{name}: tag {marker.tag} out of range")
        if marker.tag in by_tag:
            raise TypeError(
                f"{message_type.__name__}.{name}: tag {marker.tag} already used by "
                f"{by_tag[marker.tag].name}"
            )
        nested = None
        if marker.kind is WireKind.MESSAGE:
            nested = _message_type(info.annotation)
            if nested is None:
                raise TypeError(f"{message_type.__name__}.{name}: message field without a Message type")
        spec = FieldSpec(
            name=name,
            tag=marker.tag,
            kind=marker.kind,
            repeated=marker.repeated,
            message_type=nested,
        )
        specs.append(spec)
        by_tag[spec.tag] = spec
    specs.sort(key=lambda s: s.tag)
    return MessageSchema(fields=tuple(specs), by_tag=by_tag)
