"""
Shared fixtures for identity tests.

RSA-2048 generation is slow, so the default identity is generated once per
session and copied for each test.
"""

from __future__ import annotations

import dataclasses

import pytest

from cluster_identity.crypto.keys import KeyType
from cluster_identity.identity import Identity


@pytest.fixture(scope="session")
def _session_identity() -> Identity:
    return Identity.generate()


@pytest.fixture(scope="session")
def _other_session_identity() -> Identity:
    return Identity.generate(KeyType.ED25519)


@pytest.fixture
def identity(_session_identity: Identity) -> Identity:
    """A default (RSA) identity the test may mutate."""
    return dataclasses.replace(_session_identity)


@pytest.fixture
def other_identity(_other_session_identity: Identity) -> Identity:
    """A second, unrelated identity (Ed25519)."""
    return dataclasses.replace(_other_session_identity)
