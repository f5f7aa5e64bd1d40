"""Merkle tree commitment over rows of field elements."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import galois

from sumfri.primitives.field import encode_elements
from sumfri.primitives.hashing import Blake2bHasher, Hasher

# --- Type Aliases ---

MerkleRoot = bytes
SiblingLevel = List[bytes]


# --- Data Classes ---

@dataclass
class MerkleProof:
    """Opening of one leaf.

    Attributes:
        leaf: Row of field elements stored at the queried index
        path: Sibling digests per level, from leaf to root; each level holds
            arity - 1 digests in child order with the opened child removed
    """
    leaf: galois.FieldArray
    path: List[SiblingLevel] = field(default_factory=list)


# --- Merkle Tree ---

class MerkleTree:
    """Variable-arity Merkle tree; incomplete groups are padded with the zero digest."""

    def __init__(self, arity: int = 2, hasher: Optional[Hasher] = None):
        if arity < 2:
            raise ValueError(f"arity must be >= 2, got {arity}")
        self.arity = arity
        self.hasher = hasher if hasher is not None else Blake2bHasher()
        self.height = 0
        self.levels: List[List[bytes]] = []
        self.rows: Optional[galois.FieldArray] = None

    # --- Core Operations ---

    def merkelize(self, rows: galois.FieldArray) -> None:
        """Build the tree from a 2-D array with one row per leaf."""
        if rows.ndim == 1:
            rows = rows.reshape(-1, 1)
        if rows.shape[0] == 0:
            raise ValueError("cannot commit to an empty vector")
        field = type(rows)
        self.rows = rows
        self.height = rows.shape[0]

        level = [self.hasher.hash(encode_elements(row, field)) for row in rows]
        self.levels = [level]
        while len(level) > 1:
            extra_zeros = (self.arity - len(level) % self.arity) % self.arity
            padded = level + [self.hasher.zero_digest] * extra_zeros
            level = [
                self._compress(padded[i:i + self.arity])
                for i in range(0, len(padded), self.arity)
            ]
            self.levels.append(level)

    def get_root(self) -> MerkleRoot:
        """Return the Merkle root commitment."""
        if not self.levels:
            raise ValueError("tree has not been built")
        return self.levels[-1][0]

    def get_query_proof(self, idx: int) -> MerkleProof:
        """Leaf values and authentication path for leaf `idx`."""
        if self.rows is None:
            raise ValueError("tree has not been built")
        if idx < 0 or idx >= self.height:
            raise ValueError(f"Query index {idx} out of range [0, {self.height})")

        path = []
        pos = idx
        for level in self.levels[:-1]:
            group = pos - pos % self.arity
            siblings = []
            for k in range(group, group + self.arity):
                if k == pos:
                    continue
                siblings.append(level[k] if k < len(level) else self.hasher.zero_digest)
            path.append(siblings)
            pos //= self.arity
        return MerkleProof(leaf=self.rows[idx].copy(), path=path)

    def get_merkle_proof_length(self) -> int:
        """Number of sibling levels in a query proof."""
        return len(self.levels) - 1

    def _compress(self, children: List[bytes]) -> bytes:
        if self.arity == 2:
            return self.hasher.compress(children[0], children[1])
        return self.hasher.compress_many(children)


def commit(
    leaves: galois.FieldArray,
    arity: int = 2,
    hasher: Optional[Hasher] = None,
) -> Tuple[MerkleRoot, MerkleTree]:
    """Commit to a vector (1-D) or a matrix of rows (2-D)."""
    tree = MerkleTree(arity, hasher)
    tree.merkelize(leaves)
    return tree.get_root(), tree
