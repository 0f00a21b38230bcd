import ipaddress
import struct

import pytest

from pgproto.composite import (
    Array,
    ArrayDimension,
    BoundKind,
    Box,
    Inet,
    Path,
    Point,
    Range,
    RangeBound,
    array_from_sql,
    array_to_sql,
    box_from_sql,
    box_to_sql,
    empty_range_to_sql,
    inet_from_sql,
    inet_to_sql,
    path_from_sql,
    path_to_sql,
    point_from_sql,
    point_to_sql,
    range_from_sql,
    range_to_sql,
)
from pgproto.core import IsNull

DIMENSIONS = [ArrayDimension(1, 10), ArrayDimension(2, 0)]


def _identity(value):
    return value


def test_array_with_nulls():
    values = [None, b"hello"]
    buf = array_to_sql(DIMENSIONS, 10, values, _identity)

    array = array_from_sql(buf)
    assert array.has_nulls is True
    assert array.element_type == 10
    assert list(array.dimensions()) == DIMENSIONS
    assert list(array.values()) == values


def test_non_null_array():
    values = [b"hola", b"hello"]
    buf = array_to_sql(DIMENSIONS, 10, values, _identity)

    array = array_from_sql(buf)
    assert array.has_nulls is False
    assert array.element_type == 10
    assert list(array.dimensions()) == DIMENSIONS
    assert list(array.values()) == values


def test_array_isnull_marker_counts_as_null():
    buf = array_to_sql([ArrayDimension(1, 1)], 23, [1], lambda _: IsNull.YES)
    array = array_from_sql(buf)
    assert array.has_nulls is True
    assert list(array.values()) == [None]


def test_array_zero_dimensions_has_no_values():
    buf = array_to_sql([], 25, [], _identity)
    array = array_from_sql(buf)
    assert array == Array(False, 25, 0, 0, b"")
    assert list(array.values()) == []
    assert list(array.dimensions()) == []


def test_array_negative_dimension_count():
    buf = struct.pack("!iiI", -1, 0, 23)
    with pytest.raises(ValueError, match="invalid dimension count"):
        array_from_sql(buf)


def test_array_negative_dimension_size():
    buf = struct.pack("!iiIii", 1, 0, 23, -2, 1)
    with pytest.raises(ValueError, match="invalid dimension size"):
        array_from_sql(buf)


def test_array_too_many_elements():
    buf = struct.pack("!iiIiiii", 2, 0, 23, 65536, 1, 65536, 1)
    with pytest.raises(ValueError, match="too many array elements"):
        array_from_sql(buf)


def test_array_truncated_header():
    with pytest.raises(ValueError, match="unexpected end of buffer"):
        array_from_sql(b"\x00\x00")


def test_array_value_longer_than_buffer():
    buf = struct.pack("!iiIiii", 1, 0, 23, 1, 1, 10) + b"abc"
    with pytest.raises(ValueError, match="invalid value length"):
        list(array_from_sql(buf).values())


def test_array_trailing_data():
    buf = array_to_sql([ArrayDimension(1, 1)], 23, [b"ab"], _identity) + b"x"
    with pytest.raises(ValueError, match="arrayvalue not drained"):
        list(array_from_sql(buf).values())


def test_array_serializer_error_propagates():
    def fail(_):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        array_to_sql([ArrayDimension(1, 1)], 23, [1], fail)


def test_empty_range_bytes():
    assert empty_range_to_sql() == b"\x01"
    assert range_from_sql(empty_range_to_sql()).empty is True


def test_fully_unbounded_range_bytes():
    unbounded = RangeBound(BoundKind.UNBOUNDED)
    buf = range_to_sql(unbounded, unbounded)
    assert buf == b"\x18"
    result = range_from_sql(buf)
    assert result == Range(unbounded, unbounded)
    assert result.empty is False


def test_range_inclusive_exclusive_bytes():
    lower = RangeBound(BoundKind.INCLUSIVE, b"\x00\x00\x00\x01")
    upper = RangeBound(BoundKind.EXCLUSIVE, b"\x00\x00\x00\x05")
    buf = range_to_sql(lower, upper)
    assert buf == (
        b"\x02"
        + b"\x00\x00\x00\x04\x00\x00\x00\x01"
        + b"\x00\x00\x00\x04\x00\x00\x00\x05"
    )
    assert range_from_sql(buf) == Range(lower, upper)


def test_range_round_trip_with_null_and_unbounded():
    lower = RangeBound(BoundKind.EXCLUSIVE, None)
    upper = RangeBound(BoundKind.UNBOUNDED)
    result = range_from_sql(range_to_sql(lower, upper))
    assert result.lower == lower
    assert result.upper == upper


def test_range_empty_with_trailing_data():
    with pytest.raises(ValueError, match="invalid message size"):
        range_from_sql(b"\x01\x00")


def test_range_bound_longer_than_buffer():
    with pytest.raises(ValueError, match="invalid message size"):
        range_from_sql(b"\x12\x00\x00\x00\x08ab")


def test_range_trailing_data():
    with pytest.raises(ValueError, match="invalid message size"):
        range_from_sql(b"\x18\x00")


def test_range_missing_tag():
    with pytest.raises(ValueError):
        range_from_sql(b"")


def test_point_round_trip():
    buf = point_to_sql(1.5, -2.25)
    assert len(buf) == 16
    assert point_from_sql(buf) == Point(1.5, -2.25)


def test_point_trailing_data():
    with pytest.raises(ValueError, match="invalid buffer size"):
        point_from_sql(point_to_sql(1.0, 2.0) + b"\x00")


def test_point_is_iterable():
    assert tuple(Point(3.0, 4.0)) == (3.0, 4.0)


def test_box_round_trip():
    buf = box_to_sql(4.0, 5.0, 1.0, 2.0)
    assert len(buf) == 32
    assert box_from_sql(buf) == Box(Point(4.0, 5.0), Point(1.0, 2.0))


def test_box_truncated():
    with pytest.raises(ValueError, match="unexpected end of buffer"):
        box_from_sql(box_to_sql(1.0, 2.0, 3.0, 4.0)[:-1])


def test_path_round_trip():
    points = [(0.0, 0.0), Point(1.0, 1.0), (2.5, -3.0)]
    buf = path_to_sql(True, points)
    assert buf[:5] == b"\x01\x00\x00\x00\x03"
    path = path_from_sql(buf)
    assert path.closed is True
    assert path.point_count == 3
    assert list(path.points()) == [Point(0.0, 0.0), Point(1.0, 1.0), Point(2.5, -3.0)]


def test_open_empty_path():
    buf = path_to_sql(False, [])
    assert buf == b"\x00\x00\x00\x00\x00"
    path = path_from_sql(buf)
    assert path == Path(False, 0, b"")
    assert list(path.points()) == []


def test_path_trailing_data():
    buf = path_to_sql(False, [(1.0, 2.0)]) + b"\x00"
    with pytest.raises(ValueError, match="path points not drained"):
        list(path_from_sql(buf).points())


def test_inet_v4_bytes():
    buf = inet_to_sql("127.0.0.1", 32)
    assert buf == b"\x02\x20\x00\x04\x7f\x00\x00\x01"
    assert inet_from_sql(buf) == Inet(ipaddress.IPv4Address("127.0.0.1"), 32)


def test_inet_v6_round_trip():
    addr = ipaddress.IPv6Address("2001:db8::1")
    buf = inet_to_sql(addr, 64)
    assert buf[:4] == b"\x03\x40\x00\x10"
    assert inet_from_sql(buf) == Inet(addr, 64)


def test_inet_invalid_v4_netmask():
    with pytest.raises(ValueError, match="invalid IPv4 netmask"):
        inet_from_sql(b"\x02\x21\x00\x04\x7f\x00\x00\x01")


def test_inet_invalid_v6_netmask():
    with pytest.raises(ValueError, match="invalid IPv6 netmask"):
        inet_from_sql(b"\x03\x81\x00\x10" + bytes(16))


def test_inet_invalid_v4_length():
    with pytest.raises(ValueError, match="invalid IPv4 address length"):
        inet_from_sql(b"\x02\x20\x00\x05\x7f\x00\x00\x01\x00")


def test_inet_invalid_v6_length():
    with pytest.raises(ValueError, match="invalid IPv6 address length"):
        inet_from_sql(b"\x03\x40\x00\x04\x00\x00\x00\x00")


def test_inet_invalid_family():
    with pytest.raises(ValueError, match="invalid IP family"):
        inet_from_sql(b"\x07\x20\x00\x04\x7f\x00\x00\x01")


def test_inet_trailing_data():
    with pytest.raises(ValueError, match="invalid buffer size"):
        inet_from_sql(inet_to_sql("10.0.0.1", 8) + b"\x00")


def test_inet_truncated_address():
    with pytest.raises(ValueError, match="unexpected end of buffer"):
        inet_from_sql(b"\x02\x20\x00\x04\x7f\x00")