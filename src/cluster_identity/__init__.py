"""
Durable identity of a peer-to-peer cluster node.

Generates, validates and persists the peer id, private key, peername and
cluster secret of a node, with environment variable overrides.
"""

from .exceptions import (
    IdentityEncodingError,
    IdentityError,
    IdentityGenerationError,
    IdentityIOError,
    IdentityParseError,
    IdentityValidationError,
    SecretLengthError,
)
from .identity import Identity, IdentityJSON, clean
from .secret import decode_cluster_secret, encode_protector_key

__all__ = [
    "Identity",
    "IdentityJSON",
    "clean",
    "decode_cluster_secret",
    "encode_protector_key",
    "IdentityError",
    "IdentityEncodingError",
    "IdentityGenerationError",
    "IdentityIOError",
    "IdentityParseError",
    "IdentityValidationError",
    "SecretLengthError",
]
