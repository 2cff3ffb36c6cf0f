"""
libp2p key pairs.

Keys are wrapped so every algorithm exposes the same two operations the
identity layer needs: a canonical byte encoding for persistence and a public
half for peer id derivation.

The canonical encoding is the libp2p-crypto protobuf message::

    message PrivateKey {
        required KeyType Type = 1;  // Field 1, varint
        required bytes Data = 2;    // Field 2, length-delimited
    }

Wire format: [0x08][type_varint][0x12][length_varint][key_bytes]

Key data per algorithm:

- RSA: PKCS#1 DER (private), PKIX DER (public)
- Ed25519: 32-byte seed followed by the 32-byte public key (private),
  raw 32 bytes (public)
- secp256k1: 32-byte scalar (private), 33-byte compressed point (public)

References:
    - https://github.com/libp2p/specs/blob/master/peer-ids/peer-ids.md#keys
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Final

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from .varint import decode_varint, encode_varint

__all__ = [
    "KeyType",
    "PrivateKey",
    "PublicKey",
    "MIN_RSA_KEY_BITS",
    "generate_key_pair",
    "marshal_private_key",
    "marshal_public_key",
    "unmarshal_private_key",
]

MIN_RSA_KEY_BITS: Final = 2048
"""Smallest RSA modulus libp2p accepts."""

_RSA_PUBLIC_EXPONENT: Final = 65537

_ED25519_KEY_SIZE: Final = 32


class KeyType(IntEnum):
    """
    libp2p-crypto key type codes (from crypto.proto KeyType enum).

    These identify the cryptographic algorithm used for the key.
    """

    RSA = 0
    """RSA key."""

    ED25519 = 1
    """Ed25519 key."""

    SECP256K1 = 2
    """secp256k1 key."""

    ECDSA = 3
    """ECDSA key. Recognised on the wire, not supported here."""


class _ProtobufTag(IntEnum):
    """Field tags of the PublicKey/PrivateKey messages: (field_number << 3) | wire_type."""

    TYPE = 0x08
    DATA = 0x12


def _encode_key_proto(key_type: KeyType, key_data: bytes) -> bytes:
    type_field = bytes([_ProtobufTag.TYPE]) + encode_varint(key_type)
    data_field = bytes([_ProtobufTag.DATA]) + encode_varint(len(key_data)) + key_data
    return type_field + data_field


def _decode_key_proto(data: bytes) -> tuple[KeyType, bytes]:
    """
    Split a key protobuf message into its type and data fields.

    Both fields are required and must appear in tag order with nothing after
    them. This is stricter than general protobuf parsing, which is fine for
    the deterministic encoding every libp2p implementation emits.

    Raises:
        ValueError: If the message is malformed or names an unknown key type.
    """
    if not data or data[0] != _ProtobufTag.TYPE:
        raise ValueError("missing key type field")
    type_value, consumed = decode_varint(data, 1)
    pos = 1 + consumed

    if pos >= len(data) or data[pos] != _ProtobufTag.DATA:
        raise ValueError("missing key data field")
    length, consumed = decode_varint(data, pos + 1)
    pos += 1 + consumed

    key_data = data[pos : pos + length]
    if len(key_data) != length or pos + length != len(data):
        raise ValueError(f"key data length mismatch: declared {length} bytes")

    try:
        key_type = KeyType(type_value)
    except ValueError:
        raise ValueError(f"unknown key type {type_value}") from None

    return key_type, key_data


@dataclass(frozen=True, slots=True, eq=False)
class PublicKey:
    """
    Public half of a libp2p key pair.

    Attributes:
        key_type: Algorithm of the key.
        key: The underlying `cryptography` public key object.
    """

    key_type: KeyType
    key: rsa.RSAPublicKey | ed25519.Ed25519PublicKey | ec.EllipticCurvePublicKey

    def raw(self) -> bytes:
        """Return the algorithm-specific key data (the protobuf Data field)."""
        match self.key:
            case rsa.RSAPublicKey():
                return self.key.public_bytes(
                    encoding=serialization.Encoding.DER,
                    format=serialization.PublicFormat.SubjectPublicKeyInfo,
                )
            case ed25519.Ed25519PublicKey():
                return self.key.public_bytes_raw()
            case ec.EllipticCurvePublicKey():
                return self.key.public_bytes(
                    encoding=serialization.Encoding.X962,
                    format=serialization.PublicFormat.CompressedPoint,
                )
        raise ValueError(f"unsupported public key {type(self.key).__name__}")

    def to_proto(self) -> bytes:
        """Return the libp2p PublicKey protobuf encoding."""
        return _encode_key_proto(self.key_type, self.raw())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_proto() == other.to_proto()

    def __hash__(self) -> int:
        return hash(self.to_proto())


@dataclass(frozen=True, slots=True, eq=False)
class PrivateKey:
    """
    Private half of a libp2p key pair.

    Two keys are equal when their canonical encodings are equal.

    Attributes:
        key_type: Algorithm of the key.
        key: The underlying `cryptography` private key object.
    """

    key_type: KeyType
    key: rsa.RSAPrivateKey | ed25519.Ed25519PrivateKey | ec.EllipticCurvePrivateKey

    def public_key(self) -> PublicKey:
        """Return the matching public key."""
        return PublicKey(key_type=self.key_type, key=self.key.public_key())

    def raw(self) -> bytes:
        """Return the algorithm-specific key data (the protobuf Data field)."""
        match self.key:
            case rsa.RSAPrivateKey():
                return self.key.private_bytes(
                    encoding=serialization.Encoding.DER,
                    format=serialization.PrivateFormat.TraditionalOpenSSL,
                    encryption_algorithm=serialization.NoEncryption(),
                )
            case ed25519.Ed25519PrivateKey():
                return self.key.private_bytes_raw() + self.key.public_key().public_bytes_raw()
            case ec.EllipticCurvePrivateKey():
                return self.key.private_numbers().private_value.to_bytes(32, "big")
        raise ValueError(f"unsupported private key {type(self.key).__name__}")

    def to_bytes(self) -> bytes:
        """Return the libp2p PrivateKey protobuf encoding."""
        return _encode_key_proto(self.key_type, self.raw())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


def generate_key_pair(
    key_type: KeyType,
    bits: int = MIN_RSA_KEY_BITS,
) -> tuple[PrivateKey, PublicKey]:
    """
    Generate a fresh key pair.

    Args:
        key_type: Algorithm to use.
        bits: RSA modulus size. Ignored for other algorithms.

    Returns:
        Tuple of (private_key, public_key).

    Raises:
        ValueError: If the algorithm is unsupported or the RSA size is too small.
    """
    try:
        key_type = KeyType(key_type)
    except ValueError:
        raise ValueError(f"unsupported key type {key_type}") from None

    match key_type:
        case KeyType.RSA:
            if bits < MIN_RSA_KEY_BITS:
                raise ValueError(f"rsa keys must be >= {MIN_RSA_KEY_BITS} bits, got {bits}")
            key = rsa.generate_private_key(public_exponent=_RSA_PUBLIC_EXPONENT, key_size=bits)
        case KeyType.ED25519:
            key = ed25519.Ed25519PrivateKey.generate()
        case KeyType.SECP256K1:
            key = ec.generate_private_key(ec.SECP256K1())
        case _:
            raise ValueError(f"unsupported key type {key_type.name}")

    private_key = PrivateKey(key_type=key_type, key=key)
    return private_key, private_key.public_key()


def marshal_private_key(private_key: PrivateKey) -> bytes:
    """Encode a private key in its canonical libp2p protobuf form."""
    return private_key.to_bytes()


def marshal_public_key(public_key: PublicKey) -> bytes:
    """Encode a public key in its canonical libp2p protobuf form."""
    return public_key.to_proto()


def unmarshal_private_key(data: bytes) -> PrivateKey:
    """
    Parse a private key from its canonical libp2p protobuf form.

    Args:
        data: Output of `marshal_private_key`.

    Returns:
        The decoded private key.

    Raises:
        ValueError: If the encoding is malformed or the key data is invalid.
    """
    key_type, key_data = _decode_key_proto(data)

    match key_type:
        case KeyType.RSA:
            try:
                loaded = serialization.load_der_private_key(key_data, password=None)
            except UnsupportedAlgorithm as e:
                raise ValueError(f"unsupported RSA key data: {e}") from e
            except TypeError as e:
                # Encrypted PKCS#8 needs a password; identity files never carry one.
                raise ValueError(f"unusable RSA key data: {e}") from e
            if not isinstance(loaded, rsa.RSAPrivateKey):
                raise ValueError("key data is not an RSA private key")
            if loaded.key_size < MIN_RSA_KEY_BITS:
                raise ValueError(
                    f"rsa keys must be >= {MIN_RSA_KEY_BITS} bits, got {loaded.key_size}"
                )
            return PrivateKey(key_type=key_type, key=loaded)

        case KeyType.ED25519:
            if len(key_data) != 2 * _ED25519_KEY_SIZE:
                raise ValueError(
                    f"expected ed25519 data size to be {2 * _ED25519_KEY_SIZE}, got {len(key_data)}"
                )
            seed, public = key_data[:_ED25519_KEY_SIZE], key_data[_ED25519_KEY_SIZE:]
            ed_key = ed25519.Ed25519PrivateKey.from_private_bytes(seed)
            if ed_key.public_key().public_bytes_raw() != public:
                raise ValueError("ed25519 public key does not match private key")
            return PrivateKey(key_type=key_type, key=ed_key)

        case KeyType.SECP256K1:
            if len(key_data) != 32:
                raise ValueError(f"Expected 32 bytes, got {len(key_data)}")
            ec_key = ec.derive_private_key(int.from_bytes(key_data, "big"), ec.SECP256K1())
            return PrivateKey(key_type=key_type, key=ec_key)

        case _:
            raise ValueError(f"unsupported key type {key_type.name}")
