"""Tests for generating, encoding, decoding and validating identities."""

from __future__ import annotations

import base64
import json
import logging
import socket

import pytest
from cryptography.hazmat.primitives import serialization

from cluster_identity.crypto.keys import KeyType, marshal_private_key
from cluster_identity.crypto.peer_id import PeerId
from cluster_identity.crypto.varint import encode_varint
from cluster_identity.exceptions import (
    IdentityEncodingError,
    IdentityGenerationError,
    IdentityParseError,
    IdentityValidationError,
    SecretLengthError,
)
from cluster_identity.identity import Identity, IdentityJSON


def _document(identity: Identity, **overrides: str) -> bytes:
    """Return the identity's JSON document with some fields replaced."""
    doc = json.loads(identity.to_json())
    doc.update(overrides)
    return json.dumps(doc).encode()


def _fail_hostname() -> str:
    raise OSError("no hostname")


class TestGenerate:
    """Tests for fresh identity generation."""

    def test_default_is_valid(self, identity: Identity) -> None:
        """A generated identity passes validation with a 32-byte secret."""
        identity.validate()

        assert identity.private_key is not None
        assert identity.private_key.key_type == KeyType.RSA
        assert len(identity.secret) == 32

    def test_id_derived_from_key(self, identity: Identity) -> None:
        """The peer id belongs to the private key."""
        assert identity.id == PeerId.from_public_key(identity.public_key())

    def test_peername_is_hostname(self, identity: Identity) -> None:
        """The peername defaults to the hostname."""
        assert identity.peername == socket.gethostname()

    def test_hostname_failure_gives_empty_peername(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An unresolvable hostname leaves the peername empty."""
        monkeypatch.setattr(socket, "gethostname", _fail_hostname)

        identity = Identity.generate(KeyType.ED25519)

        assert identity.peername == ""
        identity.validate()

    def test_two_identities_differ(self) -> None:
        """Every generation draws new material."""
        first = Identity.generate(KeyType.ED25519)
        second = Identity.generate(KeyType.ED25519)

        assert first.id != second.id
        assert first.private_key != second.private_key
        assert first.secret != second.secret

    def test_key_failure(self) -> None:
        """Key pair generation errors are generation errors."""
        with pytest.raises(IdentityGenerationError, match="key pair"):
            Identity.generate(KeyType.RSA, bits=512)

    def test_unknown_key_type(self) -> None:
        """An integer that names no key type is a generation error."""
        with pytest.raises(IdentityGenerationError, match="unsupported key type 7"):
            Identity.generate(key_type=7)  # type: ignore[arg-type]

    def test_secret_failure_leaves_identity_untouched(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """No field is assigned when any piece of material fails."""

        def fail() -> bytes:
            raise OSError("no entropy")

        monkeypatch.setattr("cluster_identity.identity.generate_v1_bytes", fail)
        identity = Identity(peername="keep")

        with pytest.raises(IdentityGenerationError, match="cluster secret"):
            identity.default(key_type=KeyType.ED25519)

        assert identity == Identity(peername="keep")


class TestValidate:
    """Tests for Identity.validate."""

    def test_missing_id(self, identity: Identity) -> None:
        """An identity without id is invalid."""
        identity.id = None

        with pytest.raises(IdentityValidationError, match="cluster.ID not set") as exc_info:
            identity.validate()

        assert exc_info.value.field == "id"

    def test_empty_id(self, identity: Identity) -> None:
        """An empty id counts as missing."""
        identity.id = PeerId(multihash=b"")

        with pytest.raises(IdentityValidationError, match="cluster.ID"):
            identity.validate()

    def test_missing_key(self, identity: Identity) -> None:
        """An identity without private key is invalid."""
        identity.private_key = None

        with pytest.raises(IdentityValidationError, match="private_key") as exc_info:
            identity.validate()

        assert exc_info.value.field == "private_key"

    def test_id_checked_first(self) -> None:
        """With both missing, the id is reported."""
        with pytest.raises(IdentityValidationError) as exc_info:
            Identity().validate()

        assert exc_info.value.field == "id"

    def test_ignores_secret_and_peername(self, identity: Identity) -> None:
        """Only id and key are checked."""
        identity.secret = b"\x01"
        identity.peername = ""

        identity.validate()


class TestToJson:
    """Tests for encoding identities."""

    def test_four_fields(self, identity: Identity) -> None:
        """The document has exactly the four text fields."""
        doc = json.loads(identity.to_json())

        assert list(doc) == ["id", "peername", "private_key", "secret"]
        assert doc["id"] == str(identity.id)
        assert doc["peername"] == identity.peername
        assert doc["secret"] == identity.secret.hex()

    def test_private_key_is_base64_protobuf(self, identity: Identity) -> None:
        """The key is base64 of its libp2p encoding (RSA starts with 08 00 12)."""
        assert identity.private_key is not None
        doc = json.loads(identity.to_json())

        assert doc["private_key"].startswith("CAAS")
        assert base64.b64decode(doc["private_key"]) == marshal_private_key(identity.private_key)

    def test_deterministic(self, identity: Identity) -> None:
        """Encoding the same identity twice gives the same bytes."""
        assert identity.to_json() == identity.to_json()

    def test_indented(self, identity: Identity) -> None:
        """The document is indented for humans."""
        assert b'\n    "id": ' in identity.to_json()

    def test_empty_secret(self, identity: Identity) -> None:
        """No secret encodes as an empty string."""
        identity.secret = b""

        assert json.loads(identity.to_json())["secret"] == ""

    def test_key_fault_becomes_error(
        self, identity: Identity, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A crash inside key serialization is reported, not propagated."""

        def explode(_key: object) -> bytes:
            raise RuntimeError("backend failure")

        monkeypatch.setattr("cluster_identity.identity.marshal_private_key", explode)

        with pytest.raises(IdentityEncodingError, match="backend failure"):
            identity.to_json()

    def test_missing_key(self, identity: Identity) -> None:
        """An identity without key can't be encoded."""
        identity.private_key = None

        with pytest.raises(IdentityEncodingError):
            identity.to_json()


class TestLoadJson:
    """Tests for decoding identities."""

    def test_roundtrip(self, identity: Identity) -> None:
        """Decoding an encoded identity gives an equal identity."""
        identity.peername = "node-1"

        restored = Identity.from_json(identity.to_json())

        assert restored == identity
        assert restored.private_key is not None and identity.private_key is not None
        assert marshal_private_key(restored.private_key) == marshal_private_key(
            identity.private_key
        )

    def test_accepts_str(self, identity: Identity) -> None:
        """The document may be given as text."""
        assert Identity.from_json(identity.to_json().decode()) == identity

    def test_empty_peername_keeps_hostname(self, identity: Identity) -> None:
        """A blank peername doesn't erase the hostname default."""
        restored = Identity.from_json(_document(identity, peername=""))

        assert restored.peername == socket.gethostname()

    def test_missing_optional_fields(self, identity: Identity) -> None:
        """peername and secret may be absent."""
        doc = json.loads(identity.to_json())
        del doc["peername"], doc["secret"]

        restored = Identity.from_json(json.dumps(doc))

        assert restored.peername == socket.gethostname()
        assert restored.secret == b""

    def test_null_fields_are_empty(self, identity: Identity) -> None:
        """JSON null reads as an unset field."""
        raw = _document(identity)
        doc = json.loads(raw)
        doc["peername"] = None

        restored = Identity.from_json(json.dumps(doc))

        assert restored.peername == socket.gethostname()

    def test_unknown_keys_ignored(self, identity: Identity) -> None:
        """Extra keys don't break loading."""
        restored = Identity.from_json(_document(identity, comment="hello"))

        assert restored == Identity.from_json(identity.to_json())

    def test_empty_secret_warns(
        self, identity: Identity, caplog: pytest.LogCaptureFixture
    ) -> None:
        """An empty secret loads as no secret, with a warning."""
        with caplog.at_level(logging.WARNING):
            restored = Identity.from_json(_document(identity, secret=""))

        assert restored.secret == b""
        assert "unprotected network" in caplog.text

    def test_short_secret(self, identity: Identity) -> None:
        """A 1-byte secret fails with both lengths in the message."""
        with pytest.raises(SecretLengthError, match=r"1 bytes.*32"):
            Identity.from_json(_document(identity, secret="00"))

    def test_malformed_secret(self, identity: Identity) -> None:
        """Non-hex secrets are parse errors."""
        with pytest.raises(IdentityParseError) as exc_info:
            Identity.from_json(_document(identity, secret="xyz"))

        assert exc_info.value.field == "secret"

    def test_invalid_id_fails_first(self, identity: Identity) -> None:
        """A bad id fails before any other field is applied."""
        target = Identity()

        with pytest.raises(IdentityParseError, match="cluster ID") as exc_info:
            target.load_json(_document(identity, id="not-a-valid-id", private_key="!!"))

        assert exc_info.value.field == "id"
        assert target.id is None
        assert target.private_key is None
        assert target.secret == b""

    def test_empty_id_rejected_by_validate(self, identity: Identity) -> None:
        """A document without id parses but fails validation."""
        with pytest.raises(IdentityValidationError) as exc_info:
            Identity.from_json(_document(identity, id=""))

        assert exc_info.value.field == "id"

    def test_empty_key_rejected_by_validate(self, identity: Identity) -> None:
        """A document without private key parses but fails validation."""
        with pytest.raises(IdentityValidationError) as exc_info:
            Identity.from_json(_document(identity, private_key=""))

        assert exc_info.value.field == "private_key"

    def test_bad_base64(self, identity: Identity) -> None:
        """Key text that isn't base64 is a parse error about the encoding."""
        with pytest.raises(IdentityParseError, match="invalid base64") as exc_info:
            Identity.from_json(_document(identity, private_key="not base64!"))

        assert exc_info.value.field == "private_key"

    def test_bad_key_contents(self, identity: Identity) -> None:
        """Valid base64 that isn't a key is a parse error about the contents."""
        garbage = base64.b64encode(b"\x08\x00\x12\x03abc").decode()

        with pytest.raises(IdentityParseError, match="invalid key contents"):
            Identity.from_json(_document(identity, private_key=garbage))

    def test_encrypted_key_contents(self, identity: Identity) -> None:
        """A password-protected RSA key is a parse error naming the key field."""
        encrypted = identity.private_key.key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.BestAvailableEncryption(b"hunter2"),
        )
        proto = b"\x08\x00\x12" + encode_varint(len(encrypted)) + encrypted

        with pytest.raises(IdentityParseError, match="invalid key contents") as exc_info:
            Identity.from_json(_document(identity, private_key=base64.b64encode(proto).decode()))

        assert exc_info.value.field == "private_key"

    @pytest.mark.parametrize("raw", [b"", b"{", b"[]", b'{"id": 5}', b"\xff\xfe"])
    def test_malformed_document(self, raw: bytes) -> None:
        """Documents that aren't a JSON object of strings are parse errors."""
        with pytest.raises(IdentityParseError) as exc_info:
            Identity.from_json(raw)

        assert exc_info.value.field is None

    def test_replaces_existing_fields(self, identity: Identity, other_identity: Identity) -> None:
        """Loading into an existing identity replaces id, key and secret."""
        identity.load_json(other_identity.to_json())

        assert identity.id == other_identity.id
        assert identity.private_key == other_identity.private_key
        assert identity.secret == other_identity.secret


class TestIdentityJSON:
    """Tests for the persisted document model."""

    def test_defaults(self) -> None:
        """All fields default to empty strings."""
        jid = IdentityJSON()

        assert (jid.id, jid.peername, jid.private_key, jid.secret) == ("", "", "", "")
