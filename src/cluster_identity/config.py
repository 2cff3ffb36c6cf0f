"""Identity Configuration Constants."""

from typing_extensions import Final

from .crypto.keys import KeyType
from .crypto.pnet import KEY_LENGTH

DEFAULT_KEY_TYPE: Final = KeyType.RSA
"""Algorithm used for freshly generated identities."""

DEFAULT_KEY_LENGTH: Final = 2048
"""RSA modulus size used for freshly generated identities."""

SECRET_LENGTH: Final = KEY_LENGTH
"""Required length in bytes of a non-empty cluster secret."""

DEFAULT_IDENTITY_FILE: Final = "identity.json"
"""File name of the persisted identity."""

IDENTITY_FILE_MODE: Final = 0o600
"""Permission bits of a saved identity file. It holds the private key."""

ENV_PREFIX: Final = "CLUSTER"
"""Namespace of the environment variables that override identity fields."""

ENV_VARS: Final[dict[str, str]] = {
    "id": f"{ENV_PREFIX}_ID",
    "peername": f"{ENV_PREFIX}_PEERNAME",
    "private_key": f"{ENV_PREFIX}_PRIVATEKEY",
    "secret": f"{ENV_PREFIX}_SECRET",
}
"""
Identity document field to the environment variable that overrides it.

Every persisted field is listed. Variables that are unset or empty are ignored.
"""
