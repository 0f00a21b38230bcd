"""Binary encoding of arrays, ranges, geometric types and network addresses.

Each ``*_to_sql`` function returns the encoded value as ``bytes``. Each
``*_from_sql`` function decodes a complete value buffer and raises
:class:`ValueError` when the buffer is malformed.
"""

from __future__ import annotations

import enum
import ipaddress
import struct
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from .core import I32_MAX, IsNull, fit_i32, frame_nullable

BytesLike = bytes | bytearray | memoryview
IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_U8 = struct.Struct("!B")
_I32 = struct.Struct("!i")
_U32 = struct.Struct("!I")
_F64 = struct.Struct("!d")

RANGE_UPPER_UNBOUNDED = 0b0001_0000
RANGE_LOWER_UNBOUNDED = 0b0000_1000
RANGE_UPPER_INCLUSIVE = 0b0000_0100
RANGE_LOWER_INCLUSIVE = 0b0000_0010
RANGE_EMPTY = 0b0000_0001

PGSQL_AF_INET = 2
PGSQL_AF_INET6 = 3


class _Reader:
    """Sequential big-endian reader over a value buffer."""

    def __init__(self, buf: BytesLike) -> None:
        self._buf = bytes(buf)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def _unpack(self, fmt: struct.Struct) -> Any:
        if self.remaining < fmt.size:
            raise ValueError("unexpected end of buffer")
        (value,) = fmt.unpack_from(self._buf, self._pos)
        self._pos += fmt.size
        return value

    def u8(self) -> int:
        return self._unpack(_U8)

    def i32(self) -> int:
        return self._unpack(_I32)

    def u32(self) -> int:
        return self._unpack(_U32)

    def f64(self) -> float:
        return self._unpack(_F64)

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


def _pack(fmt: struct.Struct, *values: Any) -> bytes:
    try:
        return fmt.pack(*values)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


# --- arrays ----------------------------------------------------------------


@dataclass(frozen=True)
class ArrayDimension:
    """One dimension of an array: its length and the base index into it."""

    length: int
    lower_bound: int


@dataclass(frozen=True)
class Array:
    """A decoded Postgres array whose dimensions and values are read lazily."""

    has_nulls: bool
    element_type: int
    dimension_count: int
    element_count: int
    data: bytes

    def dimensions(self) -> Iterator[ArrayDimension]:
        """Iterate over the dimensions of the array."""
        reader = _Reader(self.data[: self.dimension_count * 8])
        while reader.remaining:
            length = reader.i32()
            lower_bound = reader.i32()
            yield ArrayDimension(length, lower_bound)

    def values(self) -> Iterator[bytes | None]:
        """Iterate over the raw element values in row-major order.

        ``None`` stands for a ``NULL`` element.
        """
        reader = _Reader(self.data[self.dimension_count * 8 :])
        for _ in range(self.element_count):
            length = reader.i32()
            if length < 0:
                yield None
            else:
                yield reader.take(length, "invalid value length")
        if reader.remaining:
            raise ValueError("invalid message length: arrayvalue not drained")


def array_to_sql(
    dimensions: Iterable[ArrayDimension],
    element_type: int,
    elements: Iterable[Any],
    serializer: Callable[[Any], BytesLike | IsNull | None],
) -> bytes:
    """Serialize an array value.

    ``serializer`` turns each element into its encoded bytes, or ``None``
    (or ``IsNull.YES``) for ``NULL``.
    """
    dims = [_pack(_I32, d.length) + _pack(_I32, d.lower_bound) for d in dimensions]
    num_dimensions = fit_i32(len(dims))

    has_nulls = False
    framed = []
    for element in elements:
        data = serializer(element)
        if data is None or data is IsNull.YES:
            has_nulls = True
        framed.append(frame_nullable(data))

    return (
        _pack(_I32, num_dimensions)
        + _pack(_I32, 1 if has_nulls else 0)
        + _pack(_U32, element_type)
        + b"".join(dims)
        + b"".join(framed)
    )


def array_from_sql(buf: BytesLike) -> Array:
    """Deserialize an array value."""
    reader = _Reader(buf)
    dimension_count = reader.i32()
    if dimension_count < 0:
        raise ValueError("invalid dimension count")
    has_nulls = reader.i32() != 0
    element_type = reader.u32()
    data = reader.rest()

    dims = _Reader(data)
    element_count = 1
    for _ in range(dimension_count):
        length = dims.i32()
        if length < 0:
            raise ValueError("invalid dimension size")
        dims.i32()
        element_count *= length
        if element_count > I32_MAX:
            raise ValueError("too many array elements")

    if dimension_count == 0:
        element_count = 0

    return Array(has_nulls, element_type, dimension_count, element_count, data)


# --- ranges ----------------------------------------------------------------


class BoundKind(enum.Enum):
    """The kind of one side of a range."""

    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"
    UNBOUNDED = "unbounded"


@dataclass(frozen=True)
class RangeBound:
    """One side of a range.

    ``value`` holds the encoded bound, or ``None`` for ``NULL``; it is
    ignored for an unbounded side.
    """

    kind: BoundKind
    value: bytes | None = None


@dataclass(frozen=True)
class Range:
    """A Postgres range. An empty range has neither bound set."""

    lower: RangeBound | None = None
    upper: RangeBound | None = None

    @property
    def empty(self) -> bool:
        """Whether this is the empty range."""
        return self.lower is None and self.upper is None


def empty_range_to_sql() -> bytes:
    """Serialize an empty range."""
    return bytes([RANGE_EMPTY])


def _write_bound(bound: RangeBound) -> bytes:
    if bound.kind is BoundKind.UNBOUNDED:
        return b""
    return frame_nullable(bound.value)


def _bound_tag(bound: RangeBound, unbounded: int, inclusive: int) -> int:
    if bound.kind is BoundKind.INCLUSIVE:
        return inclusive
    if bound.kind is BoundKind.UNBOUNDED:
        return unbounded
    return 0


def range_to_sql(lower: RangeBound, upper: RangeBound) -> bytes:
    """Serialize a nonempty range value."""
    tag = _bound_tag(lower, RANGE_LOWER_UNBOUNDED, RANGE_LOWER_INCLUSIVE)
    tag |= _bound_tag(upper, RANGE_UPPER_UNBOUNDED, RANGE_UPPER_INCLUSIVE)
    return bytes([tag]) + _write_bound(lower) + _write_bound(upper)


def _read_bound(reader: _Reader, tag: int, unbounded: int, inclusive: int) -> RangeBound:
    if tag & unbounded:
        return RangeBound(BoundKind.UNBOUNDED)
    length = reader.i32()
    value = None if length < 0 else reader.take(length, "invalid message size")
    kind = BoundKind.INCLUSIVE if tag & inclusive else BoundKind.EXCLUSIVE
    return RangeBound(kind, value)


def range_from_sql(buf: BytesLike) -> Range:
    """Deserialize a range value."""
    reader = _Reader(buf)
    tag = reader.u8()

    if tag == RANGE_EMPTY:
        if reader.remaining:
            raise ValueError("invalid message size")
        return Range()

    lower = _read_bound(reader, tag, RANGE_LOWER_UNBOUNDED, RANGE_LOWER_INCLUSIVE)
    upper = _read_bound(reader, tag, RANGE_UPPER_UNBOUNDED, RANGE_UPPER_INCLUSIVE)

    if reader.remaining:
        raise ValueError("invalid message size")
    return Range(lower, upper)


# --- geometry --------------------------------------------------------------


@dataclass(frozen=True)
class Point:
    """A Postgres point."""

    x: float
    y: float

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y


@dataclass(frozen=True)
class Box:
    """A Postgres box."""

    upper_right: Point
    lower_left: Point


@dataclass(frozen=True)
class Path:
    """A decoded Postgres path whose points are read lazily."""

    closed: bool
    point_count: int
    data: bytes

    def points(self) -> Iterator[Point]:
        """Iterate over the points of the path."""
        reader = _Reader(self.data)
        remaining = self.point_count
        while remaining != 0:
            remaining -= 1
            x = reader.f64()
            y = reader.f64()
            yield Point(x, y)
        if reader.remaining:
            raise ValueError("invalid message length: path points not drained")


def point_to_sql(x: float, y: float) -> bytes:
    """Serialize a point value."""
    return _pack(_F64, x) + _pack(_F64, y)


def point_from_sql(buf: BytesLike) -> Point:
    """Deserialize a point value."""
    reader = _Reader(buf)
    x = reader.f64()
    y = reader.f64()
    if reader.remaining:
        raise ValueError("invalid buffer size")
    return Point(x, y)


def box_to_sql(x1: float, y1: float, x2: float, y2: float) -> bytes:
    """Serialize a box value from its upper right and lower left corners."""
    return b"".join(_pack(_F64, v) for v in (x1, y1, x2, y2))


def box_from_sql(buf: BytesLike) -> Box:
    """Deserialize a box value."""
    reader = _Reader(buf)
    x1, y1, x2, y2 = (reader.f64() for _ in range(4))
    if reader.remaining:
        raise ValueError("invalid buffer size")
    return Box(Point(x1, y1), Point(x2, y2))


def path_to_sql(closed: bool, points: Iterable[tuple[float, float] | Point]) -> bytes:
    """Serialize a path value from ``(x, y)`` pairs or points."""
    encoded = [point_to_sql(x, y) for x, y in points]
    return (
        bytes([1 if closed else 0])
        + _pack(_I32, fit_i32(len(encoded)))
        + b"".join(encoded)
    )


def path_from_sql(buf: BytesLike) -> Path:
    """Deserialize a path value."""
    reader = _Reader(buf)
    closed = reader.u8() != 0
    point_count = reader.i32()
    return Path(closed, point_count, reader.rest())


# --- network addresses -----------------------------------------------------


@dataclass(frozen=True)
class Inet:
    """A Postgres network address with its netmask."""

    addr: IPAddress
    netmask: int


def inet_to_sql(addr: IPAddress | str, netmask: int) -> bytes:
    """Serialize an ``INET`` value."""
    address = ipaddress.ip_address(addr)
    family = PGSQL_AF_INET if address.version == 4 else PGSQL_AF_INET6
    packed = address.packed
    return _pack(_U8, family) + _pack(_U8, netmask) + b"\x00" + bytes([len(packed)]) + packed


def inet_from_sql(buf: BytesLike) -> Inet:
    """Deserialize an ``INET`` value."""
    reader = _Reader(buf)
    family = reader.u8()
    netmask = reader.u8()
    reader.u8()  # is_cidr
    length = reader.u8()

    address: IPAddress
    if family == PGSQL_AF_INET:
        if netmask > 32:
            raise ValueError("invalid IPv4 netmask")
        if length != 4:
            raise ValueError("invalid IPv4 address length")
        address = ipaddress.IPv4Address(reader.take(4, "unexpected end of buffer"))
    elif family == PGSQL_AF_INET6:
        if netmask > 128:
            raise ValueError("invalid IPv6 netmask")
        if length != 16:
            raise ValueError("invalid IPv6 address length")
        address = ipaddress.IPv6Address(reader.take(16, "unexpected end of buffer"))
    else:
        raise ValueError("invalid IP family")

    if reader.remaining:
        raise ValueError("invalid buffer size")
    return Inet(address, netmask)