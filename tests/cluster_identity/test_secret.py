"""Tests for the cluster secret hex codec."""

from __future__ import annotations

import logging

import pytest
from hypothesis import given
from hypothesis import strategies as st

from cluster_identity.exceptions import (
    IdentityParseError,
    IdentityValidationError,
    SecretLengthError,
)
from cluster_identity.secret import decode_cluster_secret, encode_protector_key


class TestDecodeClusterSecret:
    """Tests for decode_cluster_secret."""

    def test_full_length(self) -> None:
        """A 64-character hex secret decodes to 32 bytes."""
        hex_secret = "2588b80d5cb05374fa142aed6cbb047d1f4ef8ef15e37eba68c65b9d30df67ed"

        secret = decode_cluster_secret(hex_secret)

        assert len(secret) == 32
        assert secret.hex() == hex_secret

    def test_uppercase_hex(self) -> None:
        """Hex digits are case-insensitive."""
        assert decode_cluster_secret("AB" * 32) == b"\xab" * 32

    def test_empty_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """An empty secret is allowed, with a warning about the open network."""
        with caplog.at_level(logging.WARNING, logger="cluster_identity.secret"):
            assert decode_cluster_secret("") == b""

        assert "unprotected network" in caplog.text

    def test_one_byte(self) -> None:
        """A 1-byte secret reports actual and expected lengths."""
        with pytest.raises(SecretLengthError) as exc_info:
            decode_cluster_secret("00")

        assert exc_info.value.actual == 1
        assert exc_info.value.expected == 32
        assert "1 bytes" in str(exc_info.value)
        assert "32" in str(exc_info.value)

    def test_length_error_is_validation_error(self) -> None:
        """Wrong length is a validation failure on the secret field."""
        with pytest.raises(IdentityValidationError) as exc_info:
            decode_cluster_secret("00" * 33)

        assert exc_info.value.field == "secret"

    @pytest.mark.parametrize("text", ["zz", "abc", "00 11", "é0"])
    def test_malformed_hex(self, text: str) -> None:
        """Non-hex text, odd length and embedded spaces are parse errors."""
        with pytest.raises(IdentityParseError) as exc_info:
            decode_cluster_secret(text)

        assert exc_info.value.field == "secret"

    @given(st.binary(max_size=64).filter(lambda b: len(b) not in (0, 32)))
    def test_other_lengths_always_fail(self, secret: bytes) -> None:
        """Any length other than 0 or 32 is rejected."""
        with pytest.raises(SecretLengthError):
            decode_cluster_secret(encode_protector_key(secret))

    @given(st.one_of(st.just(b""), st.binary(min_size=32, max_size=32)))
    def test_valid_lengths_roundtrip(self, secret: bytes) -> None:
        """Empty and 32-byte secrets survive encode then decode."""
        assert decode_cluster_secret(encode_protector_key(secret)) == secret


class TestEncodeProtectorKey:
    """Tests for encode_protector_key."""

    def test_lowercase_hex(self) -> None:
        """Secrets encode as lowercase hex."""
        assert encode_protector_key(b"\xab\x01") == "ab01"

    def test_empty(self) -> None:
        """Empty bytes encode to an empty string."""
        assert encode_protector_key(b"") == ""
