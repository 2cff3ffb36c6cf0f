"""
Durable node identity.

An identity is everything a cluster peer needs to be recognised on the
network: a peer id, the private key it was derived from, a human-readable
peername and the cluster secret that decides which private network the peer
joins.

Identities are persisted as a small JSON document::

    {
        "id": "QmQHKLBXfS7hf8o2acj7FGADoJDLat3UazucbHrgxqisim",
        "peername": "node-1",
        "private_key": "CAASqAkwggSkAgEAAoIBAQ...",
        "secret": "2588b80d5cb05374fa142aed6cbb047d1f4ef8ef15e37eba68c65b9d30df67ed"
    }

Every path into an Identity (file, environment, fresh generation followed by
overrides) goes through the same decode step, so the secret length rule and the
required-field checks are enforced in one place.
"""

from __future__ import annotations

import base64
import logging
import os
import socket
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from .config import DEFAULT_KEY_LENGTH, DEFAULT_KEY_TYPE, ENV_VARS, IDENTITY_FILE_MODE
from .crypto.keys import (
    KeyType,
    PrivateKey,
    PublicKey,
    generate_key_pair,
    marshal_private_key,
    unmarshal_private_key,
)
from .crypto.peer_id import PeerId
from .crypto.pnet import generate_v1_bytes
from .exceptions import (
    IdentityEncodingError,
    IdentityGenerationError,
    IdentityIOError,
    IdentityParseError,
    IdentityValidationError,
)
from .secret import decode_cluster_secret, encode_protector_key

logger = logging.getLogger(__name__)


def _hostname() -> str:
    """Return the local hostname, or an empty string if it cannot be resolved."""
    try:
        return socket.gethostname()
    except OSError:
        return ""


class IdentityJSON(BaseModel):
    """
    An Identity as it looks when saved as JSON.

    Keys and secrets are stored as text so the file stays readable:
    the private key as base64 of its libp2p encoding, the secret as hex.
    Missing keys and JSON nulls read as empty strings.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    """Base58 peer id."""

    peername: str = ""
    """Human-readable peer name."""

    private_key: str = ""
    """Base64 of the libp2p-encoded private key."""

    secret: str = ""
    """Hex cluster secret, empty or 64 characters."""

    @field_validator("*", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        """Read JSON null as an unset field."""
        return "" if v is None else v


@dataclass(slots=True)
class Identity:
    """
    Identity of a cluster peer.

    Attributes:
        id: Peer id derived from the public half of private_key.
        private_key: Key used to authenticate the peer on the network.
        peername: Human-readable label. Defaults to the hostname.
        secret: Cluster secret, 32 bytes, or empty for an unprotected network.
    """

    id: PeerId | None = None
    private_key: PrivateKey | None = None
    peername: str = ""
    secret: bytes = b""

    @classmethod
    def generate(
        cls,
        key_type: KeyType = DEFAULT_KEY_TYPE,
        bits: int = DEFAULT_KEY_LENGTH,
    ) -> Self:
        """Return a new random identity. See `default`."""
        identity = cls()
        identity.default(key_type=key_type, bits=bits)
        return identity

    @classmethod
    def from_json(cls, raw: bytes | str) -> Self:
        """Decode a new identity from a JSON document. See `load_json`."""
        identity = cls()
        identity.load_json(raw)
        return identity

    def default(
        self,
        key_type: KeyType = DEFAULT_KEY_TYPE,
        bits: int = DEFAULT_KEY_LENGTH,
    ) -> None:
        """
        Fill this identity with freshly generated material.

        The peername becomes the hostname. A new key pair is generated, the
        peer id is derived from its public half and a random cluster secret
        is drawn. Fields are only assigned once all material exists, so a
        failure leaves the identity untouched.

        Raises:
            IdentityGenerationError: If any piece of material cannot be produced.
        """
        peername = _hostname()

        try:
            private_key, public_key = generate_key_pair(key_type, bits)
        except (ValueError, OSError) as e:
            raise IdentityGenerationError(f"error generating key pair: {e}") from e

        try:
            peer_id = PeerId.from_public_key(public_key)
        except ValueError as e:
            raise IdentityGenerationError(f"error deriving peer ID: {e}") from e

        try:
            secret = generate_v1_bytes()
        except OSError as e:
            raise IdentityGenerationError(f"error generating cluster secret: {e}") from e

        self.peername = peername
        self.private_key = private_key
        self.id = peer_id
        self.secret = secret

    def public_key(self) -> PublicKey:
        """
        Return the public half of the private key.

        Raises:
            IdentityValidationError: If no private key is set.
        """
        if self.private_key is None:
            raise IdentityValidationError("private_key", "no cluster.private_key set")
        return self.private_key.public_key()

    def validate(self) -> None:
        """
        Check that this identity has the fields a peer needs.

        Only presence is checked, in order: id, then private key.

        Raises:
            IdentityValidationError: Naming the first missing field.
        """
        if not self.id:
            raise IdentityValidationError("id", "cluster.ID not set")

        if self.private_key is None:
            raise IdentityValidationError("private_key", "no cluster.private_key set")

    def to_json(self) -> bytes:
        """
        Return the human-friendly JSON document for this identity.

        Raises:
            IdentityEncodingError: If the private key cannot be encoded.
        """
        return self._to_identity_json().model_dump_json(indent=4).encode()

    def _to_identity_json(self) -> IdentityJSON:
        if self.private_key is None:
            raise IdentityEncodingError("error encoding private key: no private key set")

        # Key serialization is delegated to the crypto backend, which may fail
        # in ways we don't control. Any such fault becomes an encoding error.
        try:
            key_bytes = marshal_private_key(self.private_key)
        except Exception as e:
            raise IdentityEncodingError(f"error encoding private key: {e}") from e

        return IdentityJSON(
            id=self.id.to_base58() if self.id else "",
            peername=self.peername,
            private_key=base64.b64encode(key_bytes).decode("ascii"),
            secret=encode_protector_key(self.secret),
        )

    def load_json(self, raw: bytes | str) -> None:
        """
        Set this identity from a JSON document as produced by `to_json`.

        The peername is reset to the hostname first and only replaced when
        the document carries a non-empty one.

        Raises:
            IdentityParseError: If the document or one of its fields is malformed.
            IdentityValidationError: If the result lacks an id or private key,
                or the secret has the wrong length.
        """
        try:
            jid = IdentityJSON.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error("Error unmarshaling identity document")
            raise IdentityParseError(None, str(e)) from e

        self.peername = _hostname()
        self._apply_identity_json(jid)

    def _apply_identity_json(self, jid: IdentityJSON) -> None:
        if jid.id:
            try:
                self.id = PeerId.from_base58(jid.id)
            except ValueError as e:
                raise IdentityParseError("id", f"error decoding cluster ID: {e}") from e
        else:
            self.id = None

        if jid.peername:
            self.peername = jid.peername

        if jid.private_key:
            try:
                key_bytes = base64.b64decode(jid.private_key, validate=True)
            except ValueError as e:
                raise IdentityParseError("private_key", f"invalid base64: {e}") from e
            try:
                self.private_key = unmarshal_private_key(key_bytes)
            except ValueError as e:
                raise IdentityParseError("private_key", f"invalid key contents: {e}") from e
        else:
            self.private_key = None

        self.secret = decode_cluster_secret(jid.secret)

        self.validate()

    def apply_env_vars(self, environ: Mapping[str, str] | None = None) -> None:
        """
        Override fields with values found in environment variables.

        The identity is re-encoded, non-empty variables from `config.ENV_VARS`
        replace the matching document fields, and the result is decoded again.
        Overrides are therefore held to exactly the same rules as file contents.

        Args:
            environ: Variables to read. Defaults to `os.environ`.

        Raises:
            IdentityEncodingError: If the current identity cannot be encoded.
            IdentityParseError: If an override is malformed.
            IdentityValidationError: If the overridden identity is invalid.
        """
        if environ is None:
            environ = os.environ

        jid = self._to_identity_json()

        overrides: dict[str, str] = {}
        for field, variable in ENV_VARS.items():
            value = environ.get(variable, "")
            if value:
                logger.debug("Overriding identity %s from %s", field, variable)
                overrides[field] = value

        if overrides:
            jid = jid.model_copy(update=overrides)

        self._apply_identity_json(jid)

    def save_json(self, path: Path | str) -> None:
        """
        Write the JSON document to path, readable and writable by the owner only.

        Raises:
            IdentityEncodingError: If the identity cannot be encoded.
            IdentityIOError: If the file cannot be written.
        """
        path = Path(path)
        logger.info("Saving identity to %s", path)

        raw = self.to_json()

        try:
            # Opening for write fails on a directory before any mode change.
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, IDENTITY_FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                os.fchmod(f.fileno(), IDENTITY_FILE_MODE)
                f.write(raw)
        except OSError as e:
            raise IdentityIOError(path, "write", str(e)) from e

    def load_json_from_file(self, path: Path | str) -> None:
        """
        Read an identity file and decode it. See `load_json`.

        Raises:
            IdentityIOError: If the file cannot be read.
        """
        path = Path(path)
        try:
            raw = path.read_bytes()
        except OSError as e:
            logger.error("Error reading the identity file: %s", e)
            raise IdentityIOError(path, "read", str(e)) from e

        self.load_json(raw)

    def load_json_file_and_env(
        self,
        path: Path | str,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Read an identity file, then apply environment overrides."""
        self.load_json_from_file(path)
        self.apply_env_vars(environ)


def clean(path: Path | str) -> None:
    """
    Remove an identity file.

    Best effort: a missing file or a failed removal is logged and ignored.
    """
    try:
        Path(path).unlink()
    except OSError as e:
        logger.debug("Could not remove identity file %s: %s", path, e)
