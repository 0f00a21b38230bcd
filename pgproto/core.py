"""Wire-format helpers shared by the message and value codecs."""

from __future__ import annotations

import enum
import struct

I16_MAX = 2**15 - 1
I32_MAX = 2**31 - 1


class IsNull(enum.Enum):
    """Whether a serialized value is SQL ``NULL``."""

    YES = "yes"
    NO = "no"


class ConversionError(ValueError):
    """A length or count does not fit the wire field that carries it."""


def _fit(value: int, limit: int) -> int:
    if value > limit:
        raise ConversionError("value too large to transmit")
    return value


def fit_i16(value: int) -> int:
    """Return ``value`` if it fits a signed 16-bit field, else raise."""
    return _fit(value, I16_MAX)


def fit_i32(value: int) -> int:
    """Return ``value`` if it fits a signed 32-bit field, else raise."""
    return _fit(value, I32_MAX)


def frame_nullable(data: bytes | bytearray | memoryview | IsNull | None) -> bytes:
    """Prefix a value with its 32-bit length, or encode ``NULL`` as length -1.

    ``None`` and ``IsNull.YES`` both stand for ``NULL``.
    """
    if data is None or data is IsNull.YES:
        return struct.pack("!i", -1)
    raw = bytes(data)
    return struct.pack("!i", fit_i32(len(raw))) + raw