"""
Digest interface and proof-of-work grinding.

Hashers expose hash(bytes) -> digest and compress(left, right) -> digest, both
deterministic. Leaf and node hashing are domain separated by a prefix byte.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Sequence

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"


class Hasher(ABC):
    """Fixed-size digest and two-to-one (or many-to-one) compression."""

    name: str = ""
    digest_size: int = 32

    @abstractmethod
    def _digest(self, data: bytes) -> bytes:
        ...

    def hash(self, data: bytes) -> bytes:
        """Digest of a leaf payload."""
        return self._digest(LEAF_PREFIX + data)

    def compress(self, left: bytes, right: bytes) -> bytes:
        """Two-to-one compression of child digests."""
        return self._digest(NODE_PREFIX + left + right)

    def compress_many(self, children: Sequence[bytes]) -> bytes:
        """Compression for trees with arity > 2."""
        return self._digest(NODE_PREFIX + b"".join(children))

    @property
    def zero_digest(self) -> bytes:
        """Padding digest for incomplete node groups."""
        return bytes(self.digest_size)


class Blake2bHasher(Hasher):
    name = "blake2b"

    def _digest(self, data: bytes) -> bytes:
        return hashlib.blake2b(data, digest_size=self.digest_size).digest()


class Sha256Hasher(Hasher):
    name = "sha256"

    def _digest(self, data: bytes) -> bytes:
        return hashlib.sha256(data).digest()


class Sha3Hasher(Hasher):
    name = "sha3_256"

    def _digest(self, data: bytes) -> bytes:
        return hashlib.sha3_256(data).digest()


HASHERS: Dict[str, Callable[[], Hasher]] = {
    Blake2bHasher.name: Blake2bHasher,
    Sha256Hasher.name: Sha256Hasher,
    Sha3Hasher.name: Sha3Hasher,
}


def get_hasher(name: str) -> Hasher:
    """Instantiate a registered hasher by name."""
    if name not in HASHERS:
        raise ValueError(f"unknown hash {name!r}, expected one of {sorted(HASHERS)}")
    return HASHERS[name]()


# --- Grinding ---

def _pow_digest(challenge: bytes, nonce: int, hasher: Optional[Hasher]) -> int:
    if hasher is None:
        hasher = Blake2bHasher()
    digest = hasher.hash(challenge + nonce.to_bytes(8, "little"))
    return int.from_bytes(digest[:8], "big")


def grinding(challenge: bytes, pow_bits: int, hasher: Optional[Hasher] = None) -> int:
    """
    Find a proof-of-work nonce.

    Args:
        challenge: Bytes squeezed from the transcript
        pow_bits: Number of leading zero bits required
        hasher: Digest to grind with (default BLAKE2b)

    Returns:
        Smallest nonce whose digest has pow_bits leading zero bits
    """
    if pow_bits == 0:
        return 0
    bound = 1 << (64 - pow_bits)
    nonce = 0
    while _pow_digest(challenge, nonce, hasher) >= bound:
        nonce += 1
    return nonce


def verify_grinding(challenge: bytes, nonce: int, pow_bits: int, hasher: Optional[Hasher] = None) -> bool:
    """
    Verify a proof-of-work nonce.

    Returns:
        True if the nonce is valid, False otherwise
    """
    if pow_bits == 0:
        return True
    return _pow_digest(challenge, nonce, hasher) < (1 << (64 - pow_bits))
