"""Binary encoding of scalar Postgres values.

Each ``*_to_sql`` function returns the encoded value as ``bytes``. Each
``*_from_sql`` function decodes a complete value buffer and raises
:class:`ValueError` when the buffer is malformed.
"""

from __future__ import annotations

import struct
import uuid as _uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .core import fit_i32

BytesLike = bytes | bytearray | memoryview

_BOOL = struct.Struct("!B")
_CHAR = struct.Struct("!b")
_INT2 = struct.Struct("!h")
_INT4 = struct.Struct("!i")
_OID = struct.Struct("!I")
_INT8 = struct.Struct("!q")
_LSN = struct.Struct("!Q")
_FLOAT4 = struct.Struct("!f")
_FLOAT8 = struct.Struct("!d")

_SIZE_MISMATCH = "invalid buffer size"


def _pack(fmt: struct.Struct, value: int | float) -> bytes:
    try:
        return fmt.pack(value)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


def _unpack_exact(
    fmt: struct.Struct, buf: BytesLike, trailing: str = _SIZE_MISMATCH
) -> int | float:
    raw = bytes(buf)
    if len(raw) < fmt.size:
        raise ValueError("unexpected end of buffer")
    if len(raw) > fmt.size:
        raise ValueError(trailing)
    return fmt.unpack(raw)[0]


class _Reader:
    """Sequential reader over a value buffer."""

    def __init__(self, buf: BytesLike) -> None:
        self._buf = bytes(buf)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def i32(self) -> int:
        if self.remaining < 4:
            raise ValueError("unexpected end of buffer")
        (value,) = _INT4.unpack_from(self._buf, self._pos)
        self._pos += 4
        return value

    def take(self, count: int, error: str) -> bytes:
        if count > self.remaining:
            raise ValueError(error)
        chunk = self._buf[self._pos : self._pos + count]
        self._pos += count
        return chunk

    def rest(self) -> bytes:
        chunk = self._buf[self._pos :]
        self._pos = len(self._buf)
        return chunk


def _utf8(raw: bytes) -> str:
    return raw.decode("utf-8")


# --- bool, bytea, text, "char" --------------------------------------------


def bool_to_sql(value: bool) -> bytes:
    """Serialize a ``BOOL`` value."""
    return _BOOL.pack(1 if value else 0)


def bool_from_sql(buf: BytesLike) -> bool:
    """Deserialize a ``BOOL`` value."""
    raw = bytes(buf)
    if len(raw) != 1:
        raise ValueError(_SIZE_MISMATCH)
    return raw[0] != 0


def bytea_to_sql(value: BytesLike) -> bytes:
    """Serialize a ``BYTEA`` value."""
    return bytes(value)


def bytea_from_sql(buf: BytesLike) -> bytes:
    """Deserialize a ``BYTEA`` value."""
    return bytes(buf)


def text_to_sql(value: str) -> bytes:
    """Serialize a ``TEXT``, ``VARCHAR``, ``CHAR(n)``, ``NAME`` or ``CITEXT`` value."""
    return value.encode("utf-8")


def text_from_sql(buf: BytesLike) -> str:
    """Deserialize a ``TEXT``, ``VARCHAR``, ``CHAR(n)``, ``NAME`` or ``CITEXT`` value."""
    return _utf8(bytes(buf))


def char_to_sql(value: int) -> bytes:
    """Serialize a ``"char"`` value (a signed byte)."""
    return _pack(_CHAR, value)


def char_from_sql(buf: BytesLike) -> int:
    """Deserialize a ``"char"`` value."""
    return int(_unpack_exact(_CHAR, buf))


# --- integers and floats ---------------------------------------------------


def int2_to_sql(value: int) -> bytes:
    """Serialize an ``INT2`` value."""
    return _pack(_INT2, value)


def int2_from_sql(buf: BytesLike) -> int:
    """Deserialize an ``INT2`` value."""
    return int(_unpack_exact(_INT2, buf))


def int4_to_sql(value: int) -> bytes:
    """Serialize an ``INT4`` value."""
    return _pack(_INT4, value)


def int4_from_sql(buf: BytesLike) -> int:
    """Deserialize an ``INT4`` value."""
    return int(_unpack_exact(_INT4, buf))


def oid_to_sql(value: int) -> bytes:
    """Serialize an ``OID`` value."""
    return _pack(_OID, value)


def oid_from_sql(buf: BytesLike) -> int:
    """Deserialize an ``OID`` value."""
    return int(_unpack_exact(_OID, buf))


def int8_to_sql(value: int) -> bytes:
    """Serialize an ``INT8`` value."""
    return _pack(_INT8, value)


def int8_from_sql(buf: BytesLike) -> int:
    """Deserialize an ``INT8`` value."""
    return int(_unpack_exact(_INT8, buf))


def lsn_to_sql(value: int) -> bytes:
    """Serialize a ``PG_LSN`` value."""
    return _pack(_LSN, value)


def lsn_from_sql(buf: BytesLike) -> int:
    """Deserialize a ``PG_LSN`` value."""
    return int(_unpack_exact(_LSN, buf))


def float4_to_sql(value: float) -> bytes:
    """Serialize a ``FLOAT4`` value."""
    return _pack(_FLOAT4, value)


def float4_from_sql(buf: BytesLike) -> float:
    """Deserialize a ``FLOAT4`` value."""
    return float(_unpack_exact(_FLOAT4, buf))


def float8_to_sql(value: float) -> bytes:
    """Serialize a ``FLOAT8`` value."""
    return _pack(_FLOAT8, value)


def float8_from_sql(buf: BytesLike) -> float:
    """Deserialize a ``FLOAT8`` value."""
    return float(_unpack_exact(_FLOAT8, buf))


# --- hstore ----------------------------------------------------------------


def _pascal_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return _INT4.pack(fit_i32(len(raw))) + raw


def hstore_to_sql(
    values: Mapping[str, str | None] | Iterable[tuple[str, str | None]],
) -> bytes:
    """Serialize an ``HSTORE`` value from a mapping or from key/value pairs.

    A value of ``None`` is encoded as ``NULL``.
    """
    pairs = values.items() if isinstance(values, Mapping) else values
    parts = []
    for key, value in pairs:
        parts.append(_pascal_string(key))
        parts.append(_INT4.pack(-1) if value is None else _pascal_string(value))
    count = fit_i32(len(parts) // 2)
    return _INT4.pack(count) + b"".join(parts)


def hstore_from_sql(buf: BytesLike) -> list[tuple[str, str | None]]:
    """Deserialize an ``HSTORE`` value into a list of key/value pairs."""
    reader = _Reader(buf)
    count = reader.i32()
    if count < 0:
        raise ValueError("invalid entry count")

    entries: list[tuple[str, str | None]] = []
    for _ in range(count):
        key_len = reader.i32()
        if key_len < 0:
            raise ValueError("invalid key length")
        key = _utf8(reader.take(key_len, _SIZE_MISMATCH))

        value_len = reader.i32()
        value = None if value_len < 0 else _utf8(reader.take(value_len, _SIZE_MISMATCH))
        entries.append((key, value))

    if reader.remaining:
        raise ValueError(_SIZE_MISMATCH)
    return entries


# --- bit strings -----------------------------------------------------------


@dataclass(frozen=True)
class Varbit:
    """A ``VARBIT`` or ``BIT`` value: a bit count and the bytes holding the bits."""

    length: int
    data: bytes

    def __len__(self) -> int:
        return self.length

    def is_empty(self) -> bool:
        """Whether the value has no bits."""
        return self.length == 0


def varbit_to_sql(length: int, data: BytesLike | Iterable[int]) -> bytes:
    """Serialize a ``VARBIT`` or ``BIT`` value of ``length`` bits."""
    return _INT4.pack(fit_i32(length)) + bytes(data)


def varbit_from_sql(buf: BytesLike) -> Varbit:
    """Deserialize a ``VARBIT`` or ``BIT`` value."""
    reader = _Reader(buf)
    length = reader.i32()
    if length < 0:
        raise ValueError("invalid varbit length: varbit < 0")
    data = reader.rest()
    if len(data) != (length + 7) // 8:
        raise ValueError("invalid message length: varbit mismatch")
    return Varbit(length, data)


# --- date and time ---------------------------------------------------------


def timestamp_to_sql(value: int) -> bytes:
    """Serialize a ``TIMESTAMP`` or ``TIMESTAMPTZ`` value.

    The value is microseconds since midnight, January 1st, 2000.
    """
    return _pack(_INT8, value)


def timestamp_from_sql(buf: BytesLike) -> int:
    """Deserialize a ``TIMESTAMP`` or ``TIMESTAMPTZ`` value."""
    return int(
        _unpack_exact(_INT8, buf, "invalid message length: timestamp not drained")
    )


def date_to_sql(value: int) -> bytes:
    """Serialize a ``DATE`` value: days since January 1st, 2000."""
    return _pack(_INT4, value)


def date_from_sql(buf: BytesLike) -> int:
    """Deserialize a ``DATE`` value."""
    return int(_unpack_exact(_INT4, buf, "invalid message length: date not drained"))


def time_to_sql(value: int) -> bytes:
    """Serialize a ``TIME`` or ``TIMETZ`` value: microseconds since midnight."""
    return _pack(_INT8, value)


def time_from_sql(buf: BytesLike) -> int:
    """Deserialize a ``TIME`` or ``TIMETZ`` value."""
    return int(_unpack_exact(_INT8, buf, "invalid message length: time not drained"))


# --- fixed-size byte values ------------------------------------------------


def macaddr_to_sql(value: BytesLike) -> bytes:
    """Serialize a ``MACADDR`` value from its six bytes."""
    raw = bytes(value)
    if len(raw) != 6:
        raise ValueError("a MAC address is exactly 6 bytes")
    return raw


def macaddr_from_sql(buf: BytesLike) -> bytes:
    """Deserialize a ``MACADDR`` value."""
    raw = bytes(buf)
    if len(raw) != 6:
        raise ValueError("invalid message length: macaddr length mismatch")
    return raw


def uuid_to_sql(value: BytesLike | _uuid.UUID) -> bytes:
    """Serialize a ``UUID`` value from its 16 bytes or a :class:`uuid.UUID`."""
    raw = value.bytes if isinstance(value, _uuid.UUID) else bytes(value)
    if len(raw) != 16:
        raise ValueError("a UUID is exactly 16 bytes")
    return raw


def uuid_from_sql(buf: BytesLike) -> bytes:
    """Deserialize a ``UUID`` value into its 16 bytes."""
    raw = bytes(buf)
    if len(raw) != 16:
        raise ValueError("invalid message length: uuid size mismatch")
    return raw