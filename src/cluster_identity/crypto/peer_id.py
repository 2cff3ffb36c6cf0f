"""
Peer identifiers derived from public keys.

A libp2p peer id is a multihash of the protobuf-encoded public key:
    1. Encode public key as protobuf (see `keys`)
    2. If encoded <= 42 bytes: PeerId = multihash(identity, encoded)
    3. If encoded > 42 bytes: PeerId = multihash(sha256, sha256(encoded))

The result is displayed Base58-encoded. Typical prefixes:

    - RSA keys: "Qm..." (SHA256 multihash)
    - Ed25519 keys: "12D3KooW..." (identity multihash)
    - secp256k1 keys: "16Uiu2..." (identity multihash)

References:
    - https://github.com/libp2p/specs/blob/master/peer-ids/peer-ids.md
    - https://github.com/multiformats/multihash
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Final

from .varint import decode_varint, encode_varint

if TYPE_CHECKING:
    from .keys import PublicKey

__all__ = [
    "Base58",
    "Multihash",
    "MultihashCode",
    "PeerId",
]


class MultihashCode(IntEnum):
    """
    Multihash function codes.

    Multihash is a self-describing hash format: [code][length][digest].
    Only the two functions libp2p uses for peer ids are recognised.
    """

    IDENTITY = 0x00
    """Identity "hash" - no hashing, just wraps the data."""

    SHA256 = 0x12
    """SHA-256 hash (32-byte output)."""


class Base58:
    """
    Base58 encoding/decoding (Bitcoin-style alphabet).

    The alphabet excludes visually ambiguous characters (0, O, I, l).
    """

    ALPHABET: Final[str] = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
    """Base58 alphabet (Bitcoin style, excludes 0, O, I, l)."""

    @classmethod
    def encode(cls, data: bytes) -> str:
        """
        Encode bytes as Base58 string.

        Leading zero bytes become leading '1' characters.
        """
        leading_zeros = len(data) - len(data.lstrip(b"\x00"))

        num = int.from_bytes(data, "big")
        result: list[str] = []
        while num > 0:
            num, remainder = divmod(num, 58)
            result.append(cls.ALPHABET[remainder])

        result.extend([cls.ALPHABET[0]] * leading_zeros)
        return "".join(reversed(result))

    @classmethod
    def decode(cls, s: str) -> bytes:
        """
        Decode Base58 string to bytes.

        Leading '1' characters become leading zero bytes.

        Raises:
            ValueError: If string contains invalid characters.
        """
        leading_ones = len(s) - len(s.lstrip("1"))

        num = 0
        for char in s:
            index = cls.ALPHABET.find(char)
            if index < 0:
                raise ValueError(f"Invalid Base58 character: {char!r}")
            num = num * 58 + index

        if num == 0:
            result = b""
        else:
            result = num.to_bytes((num.bit_length() + 7) // 8, "big")

        return b"\x00" * leading_ones + result


_IDENTITY_THRESHOLD: Final[int] = 42
"""Threshold for identity vs SHA256 hashing (from libp2p spec)."""


@dataclass(frozen=True, slots=True)
class Multihash:
    """
    A self-describing hash in multihash format.

    Format: [code (varint)][length (varint)][digest]

    Attributes:
        code: Hash function identifier.
        digest: Hash output (or raw data for identity).
    """

    code: MultihashCode
    """Hash function used."""

    digest: bytes
    """Hash output or identity data."""

    def encode(self) -> bytes:
        """Encode as multihash bytes."""
        return encode_varint(self.code) + encode_varint(len(self.digest)) + self.digest

    @classmethod
    def decode(cls, data: bytes) -> Multihash:
        """
        Parse multihash bytes.

        Raises:
            ValueError: If the code is unknown or the declared length does not
                match the digest.
        """
        code_value, consumed = decode_varint(data)
        length, length_size = decode_varint(data, consumed)
        digest = data[consumed + length_size :]

        try:
            code = MultihashCode(code_value)
        except ValueError:
            raise ValueError(f"unknown multihash code 0x{code_value:x}") from None

        if len(digest) != length:
            raise ValueError(f"multihash length mismatch: declared {length}, got {len(digest)}")
        if code == MultihashCode.SHA256 and length != 32:
            raise ValueError(f"sha2-256 digest must be 32 bytes, got {length}")

        return cls(code=code, digest=digest)

    @classmethod
    def from_data(cls, data: bytes) -> Multihash:
        """
        Create a multihash using libp2p's size-based selection.

        For data <= 42 bytes: identity hash (no hashing)
        For data > 42 bytes: SHA256 hash
        """
        if len(data) <= _IDENTITY_THRESHOLD:
            return cls(code=MultihashCode.IDENTITY, digest=data)
        return cls(code=MultihashCode.SHA256, digest=hashlib.sha256(data).digest())


@dataclass(frozen=True, slots=True)
class PeerId:
    """
    A libp2p peer identifier.

    Attributes:
        multihash: The underlying multihash bytes.
    """

    multihash: bytes
    """Raw multihash bytes (before Base58 encoding)."""

    def __str__(self) -> str:
        """Return Base58-encoded PeerId string."""
        return Base58.encode(self.multihash)

    def __repr__(self) -> str:
        return f"PeerId({self!s})"

    def __bool__(self) -> bool:
        return bool(self.multihash)

    def to_base58(self) -> str:
        """Return the Base58 string form used in identity documents."""
        return Base58.encode(self.multihash)

    def to_bytes(self) -> bytes:
        """Return the raw multihash bytes."""
        return self.multihash

    @classmethod
    def from_base58(cls, s: str) -> PeerId:
        """
        Parse a Base58-encoded PeerId.

        The decoded bytes must form a valid multihash.

        Raises:
            ValueError: If the string is empty, not Base58, or not a multihash.
        """
        if not s:
            raise ValueError("empty peer ID")
        data = Base58.decode(s)
        Multihash.decode(data)
        return cls(multihash=data)

    @classmethod
    def from_public_key(cls, public_key: PublicKey) -> PeerId:
        """
        Derive PeerId from a public key.

        This is the canonical derivation method following libp2p spec.
        """
        mh = Multihash.from_data(public_key.to_proto())
        return cls(multihash=mh.encode())

    def matches_public_key(self, public_key: PublicKey) -> bool:
        """Return True when this id was derived from the given public key."""
        return self == PeerId.from_public_key(public_key)
