"""
Private network pre-shared keys.

Peers in a private network share a 32-byte key and refuse connections from
peers that do not hold it. This module only produces key material; enforcing
it belongs to the transport.
"""

import os
from typing import Final

KEY_LENGTH: Final = 32
"""Length in bytes of a v1 private network key."""


def generate_v1_bytes() -> bytes:
    """Return a fresh random 32-byte private network key."""
    return os.urandom(KEY_LENGTH)
