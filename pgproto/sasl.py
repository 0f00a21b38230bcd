"""Client side of the SCRAM-SHA-256 and SCRAM-SHA-256-PLUS SASL exchange.

When the backend offers ``SCRAM-SHA-256`` in an ``AuthenticationSASL``
message, construct a :class:`ScramSha256` and send :meth:`ScramSha256.message`
in a ``SASLInitialResponse``. Pass the body of ``AuthenticationSASLContinue``
to :meth:`ScramSha256.update` and send :meth:`ScramSha256.message` again in a
``SASLResponse``. Finally pass the body of ``AuthenticationSASLFinal`` to
:meth:`ScramSha256.finish`; authentication succeeded only if it does not raise.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets
import stringprep
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass

NONCE_LENGTH = 24

SCRAM_SHA_256 = "SCRAM-SHA-256"
"""The identifier of the SCRAM-SHA-256 SASL mechanism."""

SCRAM_SHA_256_PLUS = "SCRAM-SHA-256-PLUS"
"""The identifier of the SCRAM-SHA-256-PLUS SASL mechanism."""

_U32_MAX = 2**32 - 1
_BASE64_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789/+="
)


class ScramError(Exception):
    """The SCRAM exchange failed or a server message was malformed."""


@dataclass(frozen=True)
class ChannelBinding:
    """The channel binding configuration for a SCRAM exchange."""

    gs2_header: str
    cbind_data: bytes = b""

    @classmethod
    def unrequested(cls) -> ChannelBinding:
        """The server did not request channel binding."""
        return cls("y,,")

    @classmethod
    def unsupported(cls) -> ChannelBinding:
        """The server requested channel binding but the client cannot provide it."""
        return cls("n,,")

    @classmethod
    def tls_server_end_point(cls, signature: bytes) -> ChannelBinding:
        """Bind to the TLS channel with the ``tls-server-end-point`` method."""
        return cls("p=tls-server-end-point,,", bytes(signature))


# --- SASLprep -------------------------------------------------------------

_PROHIBITED: tuple[Callable[[str], bool], ...] = (
    stringprep.in_table_c12,
    stringprep.in_table_c21,
    stringprep.in_table_c22,
    stringprep.in_table_c3,
    stringprep.in_table_c4,
    stringprep.in_table_c5,
    stringprep.in_table_c6,
    stringprep.in_table_c7,
    stringprep.in_table_c8,
    stringprep.in_table_c9,
    stringprep.in_table_a1,
)


def _saslprep(text: str) -> str:
    if all(" " <= ch <= "~" for ch in text):
        return text

    mapped = "".join(
        " " if stringprep.in_table_c12(ch) else ch
        for ch in text
        if not stringprep.in_table_b1(ch)
    )
    prepared = unicodedata.ucd_3_2_0.normalize("NFKC", mapped)

    for ch in prepared:
        if any(table(ch) for table in _PROHIBITED):
            raise ValueError(f"prohibited character {ch!r}")

    if any(stringprep.in_table_d1(ch) for ch in prepared):
        if any(stringprep.in_table_d2(ch) for ch in prepared):
            raise ValueError("mixed bidirectional text")
        if not (
            stringprep.in_table_d1(prepared[0])
            and stringprep.in_table_d1(prepared[-1])
        ):
            raise ValueError("invalid bidirectional text")

    return prepared


def normalize(password: bytes | str) -> bytes:
    """Apply SASLprep to a password where possible.

    Passwords that are not valid UTF-8 or that contain prohibited
    characters are returned unchanged.
    """
    raw = password.encode("utf-8") if isinstance(password, str) else bytes(password)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw
    try:
        return _saslprep(text).encode("utf-8")
    except ValueError:
        return raw


def hi(password: bytes, salt: bytes, iterations: int) -> bytes:
    """The SCRAM ``Hi`` function: PBKDF2 with HMAC-SHA-256 and a 32-byte output."""
    password = bytes(password)
    salt = bytes(salt)
    if iterations <= 1:
        return hmac.new(password, salt + b"\x00\x00\x00\x01", hashlib.sha256).digest()
    return hashlib.pbkdf2_hmac("sha256", password, salt, iterations)


# --- server message parsing ----------------------------------------------


@dataclass(frozen=True)
class ServerFirstMessage:
    """The parsed ``server-first-message``."""

    nonce: str
    salt: str
    iteration_count: int


@dataclass(frozen=True)
class ServerFinalMessage:
    """The parsed ``server-final-message``: either an error or a verifier."""

    error: str | None = None
    verifier: str | None = None


class _Parser:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _byte_offset(self) -> int:
        return len(self._text[: self._pos].encode("utf-8"))

    def _peek(self) -> str | None:
        return self._text[self._pos] if self._pos < len(self._text) else None

    def eat(self, target: str) -> None:
        ch = self._peek()
        if ch is None:
            raise ScramError("unexpected EOF")
        if ch != target:
            raise ScramError(
                f"unexpected character at byte {self._byte_offset()}: "
                f"expected `{target}` but got `{ch}`"
            )
        self._pos += 1

    def take_while(self, pred: Callable[[str], bool]) -> str:
        start = self._pos
        while self._pos < len(self._text) and pred(self._text[self._pos]):
            self._pos += 1
        return self._text[start : self._pos]

    def printable(self) -> str:
        return self.take_while(lambda c: "\x21" <= c <= "\x2b" or "\x2d" <= c <= "\x7e")

    def base64(self) -> str:
        return self.take_while(lambda c: c in _BASE64_CHARS)

    def attribute(self, name: str) -> None:
        self.eat(name)
        self.eat("=")

    def positive_number(self) -> int:
        digits = self.take_while(lambda c: "0" <= c <= "9")
        if not digits:
            raise ScramError("cannot parse integer from empty string")
        value = int(digits)
        if value > _U32_MAX:
            raise ScramError("number too large to fit in target type")
        return value

    def value(self) -> str:
        return self.take_while(lambda c: c not in "\0=,")

    def eof(self) -> None:
        if self._peek() is not None:
            raise ScramError(f"unexpected trailing data at byte {self._byte_offset()}")

    def server_first_message(self) -> ServerFirstMessage:
        self.attribute("r")
        nonce = self.printable()
        self.eat(",")
        self.attribute("s")
        salt = self.base64()
        self.eat(",")
        self.attribute("i")
        iteration_count = self.positive_number()
        self.eof()
        return ServerFirstMessage(nonce, salt, iteration_count)

    def server_final_message(self) -> ServerFinalMessage:
        if self._peek() == "e":
            self.attribute("e")
            result = ServerFinalMessage(error=self.value())
        else:
            self.attribute("v")
            result = ServerFinalMessage(verifier=self.base64())
        self.eof()
        return result


def parse_server_first_message(message: str) -> ServerFirstMessage:
    """Parse a ``server-first-message``."""
    return _Parser(message).server_first_message()


def parse_server_final_message(message: str) -> ServerFinalMessage:
    """Parse a ``server-final-message``."""
    return _Parser(message).server_final_message()


# --- the exchange ---------------------------------------------------------


@dataclass
class _AwaitingContinue:
    nonce: str
    password: bytes
    channel_binding: ChannelBinding


@dataclass
class _AwaitingFinal:
    salted_password: bytes
    auth_message: str


def _generate_nonce() -> str:
    chars = []
    for _ in range(NONCE_LENGTH):
        code = 0x21 + secrets.randbelow(0x7E - 0x21)
        if code == 0x2C:
            code = 0x7E
        chars.append(chr(code))
    return "".join(chars)


def _decode(message: bytes | str) -> str:
    if isinstance(message, str):
        return message
    try:
        return bytes(message).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ScramError(str(exc)) from exc


def _b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ScramError(str(exc)) from exc


def _hmac(key: bytes, data: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha256).digest()


class ScramSha256:
    """Client state machine for a SCRAM-SHA-256(-PLUS) exchange."""

    def __init__(
        self,
        password: bytes | str,
        channel_binding: ChannelBinding,
        nonce: str | None = None,
    ) -> None:
        if nonce is None:
            nonce = _generate_nonce()
        self._message = f"{channel_binding.gs2_header}n=,r={nonce}"
        self._state: _AwaitingContinue | _AwaitingFinal | None = _AwaitingContinue(
            nonce, normalize(password), channel_binding
        )

    def message(self) -> bytes:
        """The message to send to the backend next."""
        if self._state is None:
            raise ScramError("invalid SCRAM state")
        return self._message.encode("utf-8")

    def update(self, message: bytes | str) -> None:
        """Process the body of an ``AuthenticationSASLContinue`` message."""
        state, self._state = self._state, None
        if not isinstance(state, _AwaitingContinue):
            raise ScramError("invalid SCRAM state")

        text = _decode(message)
        parsed = parse_server_first_message(text)

        if not parsed.nonce.startswith(state.nonce):
            raise ScramError("invalid nonce")

        salt = _b64decode(parsed.salt)
        salted_password = hi(state.password, salt, parsed.iteration_count)

        client_key = _hmac(salted_password, b"Client Key")
        stored_key = hashlib.sha256(client_key).digest()

        binding = state.channel_binding
        cbind_input = base64.b64encode(
            binding.gs2_header.encode("ascii") + binding.cbind_data
        ).decode("ascii")

        without_proof = f"c={cbind_input},r={parsed.nonce}"
        auth_message = f"n=,r={state.nonce},{text},{without_proof}"

        client_signature = _hmac(stored_key, auth_message.encode("utf-8"))
        client_proof = bytes(k ^ s for k, s in zip(client_key, client_signature))

        self._message = (
            f"{without_proof},p={base64.b64encode(client_proof).decode('ascii')}"
        )
        self._state = _AwaitingFinal(salted_password, auth_message)

    def finish(self, message: bytes | str) -> None:
        """Process the body of an ``AuthenticationSASLFinal`` message.

        Raises :class:`ScramError` unless the server proved knowledge of
        the password.
        """
        state, self._state = self._state, None
        if not isinstance(state, _AwaitingFinal):
            raise ScramError("invalid SCRAM state")

        parsed = parse_server_final_message(_decode(message))
        if parsed.error is not None:
            raise ScramError(f"SCRAM error: {parsed.error}")

        verifier = _b64decode(parsed.verifier or "")

        server_key = _hmac(state.salted_password, b"Server Key")
        expected = _hmac(server_key, state.auth_message.encode("utf-8"))
        if not hmac.compare_digest(expected, verifier):
            raise ScramError("SCRAM verification error")