"""Client-side password hashing for ``ALTER USER ... PASSWORD`` commands.

Hashing on the client keeps the cleartext password out of server logs
and statistics views.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from .sasl import hi, normalize

SCRAM_DEFAULT_ITERATIONS = 4096
SCRAM_DEFAULT_SALT_LEN = 16


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def scram_sha_256(password: bytes | str, salt: bytes | None = None) -> str:
    """Hash a password with SCRAM-SHA-256.

    A random 16-byte salt is used unless one is given. The result holds no
    characters that need escaping in an SQL command.
    """
    if salt is None:
        salt = secrets.token_bytes(SCRAM_DEFAULT_SALT_LEN)
    salt = bytes(salt)
    if len(salt) != SCRAM_DEFAULT_SALT_LEN:
        raise ValueError(f"salt must be exactly {SCRAM_DEFAULT_SALT_LEN} bytes")

    salted_password = hi(normalize(password), salt, SCRAM_DEFAULT_ITERATIONS)

    client_key = hmac.new(salted_password, b"Client Key", hashlib.sha256).digest()
    stored_key = hashlib.sha256(client_key).digest()
    server_key = hmac.new(salted_password, b"Server Key", hashlib.sha256).digest()

    return (
        f"SCRAM-SHA-256${SCRAM_DEFAULT_ITERATIONS}:{_b64(salt)}"
        f"${_b64(stored_key)}:{_b64(server_key)}"
    )


def md5(password: bytes | str, username: str) -> str:
    """Hash a password with MD5, salted with the user name.

    Not recommended: MD5 is not considered secure.
    """
    raw = password.encode("utf-8") if isinstance(password, str) else bytes(password)
    digest = hashlib.md5(raw + username.encode("utf-8")).hexdigest()
    return f"md5{digest}"