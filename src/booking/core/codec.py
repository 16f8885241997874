"""Binary wire codec.

Every field is written as a key varint ``(tag << 3) | wire_type`` followed by
its value: a varint for integers and booleans, a length prefix plus payload
for strings and embedded messages. Scalars holding their zero value are not
written, so an unset field and an explicit zero are the same bytes.

Decoding accepts fields in any order. Repeated fields accumulate in the
order they appear, a repeated scalar field is accepted packed or unpacked,
and an embedded message seen more than once is merged. Fields with an
unknown tag, or a known tag arriving with an unexpected wire type, are kept
verbatim on the message and written back out on the next encode.
"""

from typing import Any, TypeVar

from src.booking.core.errors import MalformedMessage
from src.booking.core.schema.wire import (
    FieldSpec,
    Message,
    UnknownField,
    WireKind,
    WireType,
    schema_of,
)

M = TypeVar("M", bound=Message)

_MASK64 = (1 << 64) - 1
_MASK32 = (1 << 32) - 1
_MAX_VARINT_BYTES = 10


def encode_varint(value: int) -> bytes:
    """Encode an integer as a base-128 varint; negatives use 64-bit two's complement."""
    value &= _MASK64
    out = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            return bytes(out)


def decode_varint(data: bytes, pos: int) -> tuple[int, int]:
    """Read a varint at ``pos``; return ``(value, new_pos)``."""
    result = 0
    shift = 0
    for _ in range(_MAX_VARINT_BYTES):
        if pos >= len(data):
            raise MalformedMessage("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result & _MASK64, pos
        shift += 7
    raise MalformedMessage("varint longer than 10 bytes")


def _key(tag: int, wire_type: WireType) -> bytes:
    return encode_varint((tag << 3) | wire_type)


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _encode_scalar(kind: WireKind, value: Any) -> bytes:
    if kind is WireKind.STRING:
        try:
            raw = value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise MalformedMessage(f"string field is not valid UTF-8: {exc}") from exc
        return encode_varint(len(raw)) + raw
    if kind is WireKind.MESSAGE:
        raw = encode(value)
        return encode_varint(len(raw)) + raw
    if kind is WireKind.BOOL:
        return encode_varint(1 if value else 0)
    return encode_varint(value)


def _encode_field(spec: FieldSpec, value: Any) -> bytes:
    if spec.repeated:
        if not value:
            return b""
        if spec.kind.packable:
            payload = b"".join(_encode_scalar(spec.kind, item) for item in value)
            return _key(spec.tag, WireType.LEN) + encode_varint(len(payload)) + payload
        return b"".join(
            _key(spec.tag, spec.wire_type) + _encode_scalar(spec.kind, item) for item in value
        )
    if value is None or value == spec.zero():
        return b""
    return _key(spec.tag, spec.wire_type) + _encode_scalar(spec.kind, value)


def encode(message: Message) -> bytes:
    """Serialize ``message`` to wire bytes."""
    parts = [
        _encode_field(spec, getattr(message, spec.name))
        for spec in schema_of(type(message)).fields
    ]
    parts.extend(field.data for field in message.unknown_fields)
    return b"".join(parts)


def _skip_value(data: bytes, pos: int, wire_type: int) -> int:
    """Return the position just past a value of ``wire_type`` starting at ``pos``."""
    if wire_type == WireType.VARINT:
        return decode_varint(data, pos)[1]
    if wire_type == WireType.I64:
        end = pos + 8
    elif wire_type == WireType.I32:
        end = pos + 4
    elif wire_type == WireType.LEN:
        length, pos = decode_varint(data, pos)
        end = pos + length
    else:
        raise MalformedMessage(f"unsupported wire type {wire_type}")
    if end > len(data):
        raise MalformedMessage("truncated field value")
    return end


def _decode_scalar(kind: WireKind, raw: int | bytes) -> Any:
    if kind is WireKind.INT64:
        return _to_signed(raw, 64)
    if kind is WireKind.INT32:
        return _to_signed(raw & _MASK32, 32)
    if kind is WireKind.BOOL:
        return raw != 0
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedMessage(f"invalid UTF-8 in string field: {exc}") from exc


def _unpack_varints(payload: bytes) -> list[int]:
    values = []
    pos = 0
    while pos < len(payload):
        value, pos = decode_varint(payload, pos)
        values.append(value)
    return values


def decode(message_type: type[M], data: bytes) -> M:
    """Parse wire bytes into an instance of ``message_type``.

    Raises:
        MalformedMessage: the bytes are truncated or structurally invalid.
    """
    schema = schema_of(message_type)
    data = bytes(data)
    values: dict[str, Any] = {}
    nested_chunks: dict[FieldSpec, list[bytes]] = {}
    unknown: list[UnknownField] = []

    pos = 0
    while pos < len(data):
        start = pos
        key, pos = decode_varint(data, pos)
        tag, wire_type = key >> 3, key & 0x7
        if tag == 0:
            raise MalformedMessage("field tag 0 is invalid")

        spec = schema.by_tag.get(tag)
        packed = (
            spec is not None
            and spec.repeated
            and spec.kind.packable
            and wire_type == WireType.LEN
        )
        if spec is None or (wire_type != spec.wire_type and not packed):
            pos = _skip_value(data, pos, wire_type)
            unknown.append(UnknownField(tag=tag, wire_type=wire_type, data=data[start:pos]))
            continue

        if wire_type == WireType.LEN:
            length, pos = decode_varint(data, pos)
            if pos + length > len(data):
                raise MalformedMessage(f"truncated value for field {spec.name}")
            raw: int | bytes = data[pos : pos + length]
            pos += length
        else:
            raw, pos = decode_varint(data, pos)

        if spec.kind is WireKind.MESSAGE:
            nested_chunks.setdefault(spec, []).append(raw)
        elif packed:
            values.setdefault(spec.name, []).extend(
                _decode_scalar(spec.kind, item) for item in _unpack_varints(raw)
            )
        elif spec.repeated:
            values.setdefault(spec.name, []).append(_decode_scalar(spec.kind, raw))
        else:
            values[spec.name] = _decode_scalar(spec.kind, raw)

    for spec, chunks in nested_chunks.items():
        values[spec.name] = decode(spec.message_type, b"".join(chunks))

    message = message_type(**values)
    message._unknown_fields = unknown
    return message
