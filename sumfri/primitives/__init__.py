"""Primitives - Fields, polynomials, hashing, Merkle trees and transcripts."""

from sumfri.primitives.field import (
    FF,
    FF3,
    GOLDILOCKS_PRIME,
    decode_elements,
    embed,
    encode_elements,
    ff3,
    ff3_coeffs,
    get_omega,
)
from sumfri.primitives.hashing import (
    Blake2bHasher,
    Hasher,
    Sha256Hasher,
    Sha3Hasher,
    get_hasher,
    grinding,
    verify_grinding,
)
from sumfri.primitives.merkle_tree import MerkleProof, MerkleRoot, MerkleTree, commit
from sumfri.primitives.merkle_verifier import MerkleConfig, MerkleVerifier, verify
from sumfri.primitives.ntt import NTT
from sumfri.primitives.polynomial import (
    MultilinearPolynomial,
    eq_eval,
    eq_evaluations,
    mobius_transform,
    reed_solomon_encode,
    univariate_point,
    zeta_transform,
)
from sumfri.primitives.transcript import Transcript, TranscriptReader, TranscriptWriter

__all__ = [
    # Field
    "FF",
    "FF3",
    "GOLDILOCKS_PRIME",
    "ff3",
    "ff3_coeffs",
    "embed",
    "encode_elements",
    "decode_elements",
    "get_omega",
    # NTT
    "NTT",
    # Polynomials
    "MultilinearPolynomial",
    "eq_eval",
    "eq_evaluations",
    "mobius_transform",
    "zeta_transform",
    "univariate_point",
    "reed_solomon_encode",
    # Hashing
    "Hasher",
    "Blake2bHasher",
    "Sha256Hasher",
    "Sha3Hasher",
    "get_hasher",
    "grinding",
    "verify_grinding",
    # Merkle Tree
    "MerkleTree",
    "MerkleRoot",
    "MerkleProof",
    "MerkleConfig",
    "MerkleVerifier",
    "commit",
    "verify",
    # Transcript
    "Transcript",
    "TranscriptWriter",
    "TranscriptReader",
]
