"""Serialization of frontend (client to server) protocol messages.

Every function returns the complete encoded message as ``bytes``.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .core import ConversionError, fit_i16, fit_i32, frame_nullable

_CANCEL_REQUEST_CODE = 80_877_102
_SSL_REQUEST_CODE = 80_877_103
_PROTOCOL_VERSION = 0x00_03_00_00

BytesLike = bytes | bytearray | memoryview


class BindError(Exception):
    """A ``Bind`` message could not be built.

    ``conversion`` is true when a parameter serializer failed, and false
    when the message itself could not be encoded.
    """

    def __init__(self, message: str, *, conversion: bool) -> None:
        super().__init__(message)
        self.conversion = conversion


def _raw(value: str | BytesLike) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def _cstr(value: str | BytesLike) -> bytes:
    raw = _raw(value)
    if b"\x00" in raw:
        raise ValueError("string contains embedded null")
    return raw + b"\x00"


def _byte(value: int | BytesLike) -> bytes:
    if isinstance(value, int):
        return bytes([value])
    raw = bytes(value)
    if len(raw) != 1:
        raise ValueError("expected a single byte")
    return raw


def _body(body: bytes) -> bytes:
    return struct.pack("!i", fit_i32(len(body) + 4)) + body


def _message(tag: bytes, body: bytes) -> bytes:
    return tag + _body(body)


def _counted(items: Iterable[Any], encode: Callable[[Any], bytes]) -> bytes:
    parts = [encode(item) for item in items]
    return struct.pack("!h", fit_i16(len(parts))) + b"".join(parts)


def _i16(value: int) -> bytes:
    return struct.pack("!h", value)


def bind(
    portal: str,
    statement: str,
    formats: Iterable[int],
    values: Iterable[Any],
    serializer: Callable[[Any], BytesLike | None],
    result_formats: Iterable[int],
) -> bytes:
    """Build a ``Bind`` message.

    ``serializer`` turns each value into its encoded bytes, or ``None``
    for ``NULL``.
    """

    def frame(value: Any) -> bytes:
        try:
            data = serializer(value)
        except Exception as exc:
            raise BindError(str(exc), conversion=True) from exc
        return frame_nullable(data)

    try:
        body = (
            _cstr(portal)
            + _cstr(statement)
            + _counted(formats, _i16)
            + _counted(values, frame)
            + _counted(result_formats, _i16)
        )
        return _message(b"B", body)
    except (ValueError, struct.error) as exc:
        raise BindError(str(exc), conversion=False) from exc


def cancel_request(process_id: int, secret_key: int) -> bytes:
    """Build a ``CancelRequest`` message."""
    return _body(struct.pack("!iii", _CANCEL_REQUEST_CODE, process_id, secret_key))


def close(variant: int | BytesLike, name: str) -> bytes:
    """Build a ``Close`` message for a statement (``S``) or portal (``P``)."""
    return _message(b"C", _byte(variant) + _cstr(name))


def copy_data(data: BytesLike) -> bytes:
    """Build a ``CopyData`` message."""
    raw = bytes(data)
    length = len(raw) + 4
    if length > 2**31 - 1:
        raise ConversionError("message length overflow")
    return b"d" + struct.pack("!i", length) + raw


def copy_done() -> bytes:
    """Build a ``CopyDone`` message."""
    return _message(b"c", b"")


def copy_fail(message: str) -> bytes:
    """Build a ``CopyFail`` message."""
    return _message(b"f", _cstr(message))


def describe(variant: int | BytesLike, name: str) -> bytes:
    """Build a ``Describe`` message for a statement (``S``) or portal (``P``)."""
    return _message(b"D", _byte(variant) + _cstr(name))


def execute(portal: str, max_rows: int) -> bytes:
    """Build an ``Execute`` message."""
    return _message(b"E", _cstr(portal) + struct.pack("!i", max_rows))


def parse(name: str, query: str, param_types: Iterable[int]) -> bytes:
    """Build a ``Parse`` message with the given parameter type OIDs."""
    body = (
        _cstr(name)
        + _cstr(query)
        + _counted(param_types, lambda oid: struct.pack("!I", oid))
    )
    return _message(b"P", body)


def password_message(password: str | BytesLike) -> bytes:
    """Build a ``PasswordMessage``."""
    return _message(b"p", _cstr(password))


def query(query: str) -> bytes:
    """Build a simple ``Query`` message."""
    return _message(b"Q", _cstr(query))


def sasl_initial_response(mechanism: str, data: str | BytesLike) -> bytes:
    """Build a ``SASLInitialResponse`` message."""
    raw = _raw(data)
    body = _cstr(mechanism) + struct.pack("!i", fit_i32(len(raw))) + raw
    return _message(b"p", body)


def sasl_response(data: str | BytesLike) -> bytes:
    """Build a ``SASLResponse`` message."""
    return _message(b"p", _raw(data))


def ssl_request() -> bytes:
    """Build an ``SSLRequest`` message."""
    return _body(struct.pack("!i", _SSL_REQUEST_CODE))


def startup_message(
    parameters: Mapping[str, str] | Iterable[tuple[str, str]],
) -> bytes:
    """Build a ``StartupMessage`` for protocol version 3.0."""
    pairs = parameters.items() if isinstance(parameters, Mapping) else parameters
    body = struct.pack("!i", _PROTOCOL_VERSION)
    body += b"".join(_cstr(key) + _cstr(value) for key, value in pairs)
    return _body(body + b"\x00")


def sync() -> bytes:
    """Build a ``Sync`` message."""
    return _message(b"S", b"")


def terminate() -> bytes:
    """Build a ``Terminate`` message."""
    return _message(b"X", b"")