"""Merkle tree verification.

Recomputes the root from a leaf and its sibling path. Verification reports a
plain bool; protocol layers turn False into MerkleVerificationError.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from sumfri.primitives.field import FieldType, encode_elements
from sumfri.primitives.hashing import Blake2bHasher, Hasher

# --- Type Aliases ---
MerkleRoot = bytes
SiblingHash = bytes


# --- Configuration ---

@dataclass(frozen=True)
class MerkleConfig:
    """Merkle tree configuration for verification.

    Attributes:
        arity: Tree branching factor
        height: Number of leaves
    """

    arity: int
    height: int

    @property
    def n_siblings(self) -> int:
        """Number of sibling levels in each query proof (ceil(log_arity height))."""
        levels = 0
        span = 1
        while span < self.height:
            span *= self.arity
            levels += 1
        return levels

    @property
    def siblings_per_level(self) -> int:
        return self.arity - 1


# --- Verifier Class ---

class MerkleVerifier:
    """Verifier bound to one root and tree shape.

    Usage:
        verifier = MerkleVerifier(root, MerkleConfig(arity=2, height=n))
        for idx, proof in openings:
            if not verifier.verify_query(idx, proof.leaf, proof.path):
                raise MerkleVerificationError(...)
    """

    def __init__(self, root: MerkleRoot, config: MerkleConfig, hasher: Optional[Hasher] = None) -> None:
        self.root = root
        self.config = config
        self.hasher = hasher if hasher is not None else Blake2bHasher()

    def verify_query(self, idx: int, leaf, path: Sequence[List[SiblingHash]], field: Optional[FieldType] = None) -> bool:
        """Check that `leaf` sits at index `idx` under the root."""
        if idx < 0 or idx >= self.config.height:
            return False
        if len(path) != self.config.n_siblings:
            return False
        if field is None:
            field = type(leaf)
        node = self.hasher.hash(encode_elements(leaf, field))
        return self.verify_digest(idx, node, path)

    def verify_digest(self, idx: int, node: bytes, path: Sequence[List[SiblingHash]]) -> bool:
        """Check a leaf digest (rather than leaf values) against the root."""
        arity = self.config.arity
        pos = idx
        for siblings in path:
            if len(siblings) != self.config.siblings_per_level:
                return False
            slot = pos % arity
            children = list(siblings[:slot]) + [node] + list(siblings[slot:])
            if arity == 2:
                node = self.hasher.compress(children[0], children[1])
            else:
                node = self.hasher.compress_many(children)
            pos //= arity
        return node == self.root


def verify(
    root: MerkleRoot,
    index: int,
    leaf,
    path: Sequence[List[SiblingHash]],
    height: int,
    arity: int = 2,
    hasher: Optional[Hasher] = None,
) -> bool:
    """Verify one opening against `root` for a tree with `height` leaves."""
    verifier = MerkleVerifier(root, MerkleConfig(arity=arity, height=height), hasher)
    return verifier.verify_query(index, leaf, path)
