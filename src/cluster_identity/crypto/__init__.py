"""
Cryptographic collaborators of the identity layer.

- keys: libp2p key pairs and their protobuf encodings
- peer_id: peer identifiers derived from public keys
- pnet: private network key material
"""

from .keys import (
    KeyType,
    PrivateKey,
    PublicKey,
    generate_key_pair,
    marshal_private_key,
    marshal_public_key,
    unmarshal_private_key,
)
from .peer_id import Base58, Multihash, MultihashCode, PeerId
from .pnet import generate_v1_bytes

__all__ = [
    "KeyType",
    "PrivateKey",
    "PublicKey",
    "generate_key_pair",
    "marshal_private_key",
    "marshal_public_key",
    "unmarshal_private_key",
    "Base58",
    "Multihash",
    "MultihashCode",
    "PeerId",
    "generate_v1_bytes",
]
