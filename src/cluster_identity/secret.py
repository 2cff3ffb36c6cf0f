"""
Cluster secret encoding.

The cluster secret is the private network key shared by every peer of a
cluster. Peers are in the same cluster if and only if they hold the same
secret. It is persisted as hex text: either empty, or exactly 64 hex
characters (32 bytes).
"""

from __future__ import annotations

import binascii
import logging

from .config import SECRET_LENGTH
from .exceptions import IdentityParseError, SecretLengthError

logger = logging.getLogger(__name__)


def decode_cluster_secret(hex_secret: str) -> bytes:
    """
    Parse a hex-encoded cluster secret.

    An empty secret is accepted and means the cluster runs without private
    network protection. A warning is logged in that case.

    Args:
        hex_secret: Hex text from an identity document.

    Returns:
        The secret bytes, or b"" for an empty secret.

    Raises:
        IdentityParseError: If the text is not valid hex.
        SecretLengthError: If the secret is neither empty nor 32 bytes.
    """
    try:
        secret = binascii.unhexlify(hex_secret)
    except ValueError as e:
        raise IdentityParseError("secret", f"invalid hex: {e}") from e

    match len(secret):
        case 0:
            logger.warning("Cluster secret is empty, cluster will start on unprotected network.")
            return b""
        case n if n == SECRET_LENGTH:
            return secret
        case n:
            raise SecretLengthError(actual=n, expected=SECRET_LENGTH)


def encode_protector_key(secret: bytes) -> str:
    """Return the lowercase hex representation of a secret. Empty stays empty."""
    return secret.hex()
