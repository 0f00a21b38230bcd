"""Password hashing for the MD5 authentication exchange."""

from __future__ import annotations

import hashlib


def _to_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def md5_hash(username: bytes | str, password: bytes | str, salt: bytes) -> str:
    """Hash credentials as a reply to an ``AuthenticationMD5Password`` request.

    The result is sent back in a ``PasswordMessage``.
    """
    user_bytes = _to_bytes(username)
    phrase = _to_bytes(password)
    salt = bytes(salt)
    if len(salt) != 4:
        raise ValueError("salt must be exactly 4 bytes")

    inner = hashlib.md5(phrase + user_bytes).hexdigest()
    outer = hashlib.md5(inner.encode("ascii") + salt).hexdigest()
    return f"md5{outer}"