"""
stakepool/signing.py

Ed25519 identities, signing and verification using the cryptography library.

An Identity is a 32-byte Ed25519 public key. Participants, pool owners,
custody accounts, record accounts and the program itself are all addressed
by an Identity; only keys backed by a Keypair can produce signatures.

Usage:
    from stakepool.signing import Keypair, verify_signature

    keypair = Keypair.from_seed(seed_bytes)
    signature = keypair.sign(message)

    is_valid = verify_signature(keypair.identity, message, signature)
"""

import hashlib
import os
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

IDENTITY_LEN = 32
SEED_LEN = 32


@dataclass(frozen=True)
class Identity:
    """32-byte account identity (an Ed25519 public key or a derived address)."""
    raw: bytes

    def __post_init__(self):
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError(f"Identity must be bytes, got {type(self.raw).__name__}")
        if len(self.raw) != IDENTITY_LEN:
            raise ValueError(f"Identity must be {IDENTITY_LEN} bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def zero(cls) -> "Identity":
        """The all-zero identity (unset owner / asset)."""
        return cls(bytes(IDENTITY_LEN))

    @classmethod
    def from_hex(cls, value: str) -> "Identity":
        return cls(bytes.fromhex(value))

    @classmethod
    def derive(cls, *parts: Union[str, bytes]) -> "Identity":
        """
        Derive a deterministic identity from seed parts.

        Used for accounts that never sign (record and custody accounts),
        e.g. Identity.derive(b"position", pool.raw, participant.raw).
        """
        digest = hashlib.sha256()
        for part in parts:
            digest.update(part.encode() if isinstance(part, str) else part)
        return cls(digest.digest())

    def is_zero(self) -> bool:
        return self.raw == bytes(IDENTITY_LEN)

    def hex(self) -> str:
        return self.raw.hex()

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.raw.hex()

    def __repr__(self) -> str:
        return f"Identity({self.raw.hex()[:16]}...)"


class Keypair:
    """
    Ed25519 keypair able to sign instructions.

    Use the factory methods generate() or from_seed() instead of
    constructing directly.
    """

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        public_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self._identity = Identity(public_bytes)

    @classmethod
    def generate(cls) -> "Keypair":
        """Create a keypair from fresh OS randomness."""
        return cls.from_seed(os.urandom(SEED_LEN))

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        """
        Create keypair from 32 bytes of seed material.

        Args:
            seed: 32 bytes of entropy

        Returns:
            Keypair instance
        """
        if len(seed) != SEED_LEN:
            raise ValueError(f"Seed must be exactly {SEED_LEN} bytes")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def identity(self) -> Identity:
        return self._identity

    def sign(self, message: bytes) -> bytes:
        """Sign a message, returning the 64-byte signature."""
        return self._private_key.sign(message)

    def verify(self, message: bytes, signature: bytes) -> bool:
        return verify_signature(self._identity, message, signature)

    def __repr__(self) -> str:
        return f"Keypair(identity={self._identity.hex()[:16]}...)"


def verify_signature(identity: Identity, message: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature made by the key behind an identity.

    Args:
        identity: Signer identity (raw public key)
        message: The signed message
        signature: 64-byte signature

    Returns:
        True if signature is valid
    """
    try:
        public_key = Ed25519PublicKey.from_public_bytes(identity.raw)
        public_key.verify(signature, message)
    except (InvalidSignature, ValueError):
        # ValueError: identity is not a valid curve point (derived address)
        return False
    return True
