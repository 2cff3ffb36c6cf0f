"""
Unsigned LEB128 varints.

libp2p key encodings are protobuf messages, and protobuf prefixes field values
and lengths with varints. Each byte carries 7 data bits, low-order group
first. The high bit is set on every byte except the last::

    Value 0-127:       1 byte   [0xxxxxxx]
    Value 128-16383:   2 bytes  [1xxxxxxx] [0xxxxxxx]

Only unsigned values are supported. Decoding stops after 10 bytes, which is
enough for any 64-bit value.

References:
    https://protobuf.dev/programming-guides/encoding/#varints
"""

from __future__ import annotations


class VarintError(ValueError):
    """Raised when a varint is truncated or too long."""


def encode_varint(value: int) -> bytes:
    """
    Encode a non-negative integer as a varint.

    Args:
        value: Integer to encode.

    Returns:
        Varint bytes.

    Raises:
        ValueError: If value is negative.
    """
    if value < 0:
        raise ValueError("Varint must be non-negative")

    result = bytearray()
    while value >= 0x80:
        result.append((value & 0x7F) | 0x80)
        value >>= 7
    result.append(value)

    return bytes(result)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a varint starting at offset.

    Args:
        data: Input bytes.
        offset: Position of the first varint byte.

    Returns:
        Tuple of (decoded_value, bytes_consumed).

    Raises:
        VarintError: If input ends mid-varint or the varint exceeds 10 bytes.
    """
    result = 0
    shift = 0
    pos = offset

    while True:
        if pos >= len(data):
            raise VarintError("Truncated varint")

        byte = data[pos]
        pos += 1

        result |= (byte & 0x7F) << shift
        shift += 7

        if not (byte & 0x80):
            break

        if shift >= 70:
            raise VarintError("Varint too long")

    return result, pos - offset
