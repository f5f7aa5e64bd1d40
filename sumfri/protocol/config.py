"""PCS / FRI configuration and query-count policies."""

import json
import math
from dataclasses import asdict, dataclass, fields
from typing import Callable, Dict, Optional

from sumfri.primitives.hashing import HASHERS, Hasher, get_hasher

# --- Query Policies ---
# A policy maps log_blowup to the soundness bits contributed by one query.

QueryPolicy = Callable[[int], float]


def _conjectured(log_blowup: int) -> float:
    return float(log_blowup)


def _johnson(log_blowup: int) -> float:
    return log_blowup / 2


def _unique_decoding(log_blowup: int) -> float:
    rate = 2.0 ** -log_blowup
    return -math.log2((1 + rate) / 2)


QUERY_POLICIES: Dict[str, QueryPolicy] = {
    "conjectured": _conjectured,
    "johnson": _johnson,
    "unique_decoding": _unique_decoding,
}


def register_query_policy(name: str, bits_per_query: QueryPolicy) -> None:
    """Make a query policy available to PcsConfig(query_policy=name)."""
    QUERY_POLICIES[name] = bits_per_query


# camelCase keys accepted in JSON files
_JSON_ALIASES = {
    "logBlowup": "log_blowup",
    "logFinalDegree": "log_final_degree",
    "nQueries": "n_queries",
    "securityBits": "security_bits",
    "queryPolicy": "query_policy",
    "powBits": "pow_bits",
    "merkleTreeArity": "merkle_arity",
    "hashName": "hash_name",
    "transcriptLabel": "transcript_label",
}


# --- Configuration ---

@dataclass(frozen=True)
class PcsConfig:
    """
    Parameters shared by prover and verifier.

    Attributes:
        log_blowup: log2 of the inverse code rate
        log_final_degree: log2 of the coefficient count at which folding stops
        n_queries: Explicit query count; overrides the policy when set
        security_bits: Target soundness when the query count comes from the policy
        query_policy: Name of a registered query policy
        pow_bits: Proof-of-work difficulty ground before sampling queries
        merkle_arity: Branching factor of every Merkle tree
        hash_name: Registered hasher name
        transcript_label: Domain separation label for transcripts
    """
    log_blowup: int = 2
    log_final_degree: int = 0
    n_queries: Optional[int] = None
    security_bits: int = 100
    query_policy: str = "conjectured"
    pow_bits: int = 0
    merkle_arity: int = 2
    hash_name: str = "blake2b"
    transcript_label: str = "sumfri"

    def __post_init__(self):
        if self.log_blowup < 1:
            raise ValueError(f"log_blowup must be >= 1, got {self.log_blowup}")
        if self.log_final_degree < 0:
            raise ValueError(f"log_final_degree must be >= 0, got {self.log_final_degree}")
        if self.n_queries is not None and self.n_queries < 1:
            raise ValueError(f"n_queries must be >= 1, got {self.n_queries}")
        if self.security_bits < 1:
            raise ValueError(f"security_bits must be >= 1, got {self.security_bits}")
        if self.query_policy not in QUERY_POLICIES:
            raise ValueError(
                f"unknown query policy {self.query_policy!r}, expected one of {sorted(QUERY_POLICIES)}"
            )
        if not 0 <= self.pow_bits <= 32:
            raise ValueError(f"pow_bits must be in [0, 32], got {self.pow_bits}")
        if self.merkle_arity < 2:
            raise ValueError(f"merkle_arity must be >= 2, got {self.merkle_arity}")
        if self.hash_name not in HASHERS:
            raise ValueError(f"unknown hash {self.hash_name!r}, expected one of {sorted(HASHERS)}")

    @property
    def blowup(self) -> int:
        return 1 << self.log_blowup

    def num_queries(self, extra_bits: int = 0) -> int:
        """Query count for security_bits + extra_bits, net of grinding."""
        if self.n_queries is not None:
            return self.n_queries
        bits_per_query = QUERY_POLICIES[self.query_policy](self.log_blowup)
        if bits_per_query <= 0:
            raise ValueError(f"query policy {self.query_policy!r} gives no soundness per query")
        target = max(self.security_bits + extra_bits - self.pow_bits, 1)
        return max(math.ceil(target / bits_per_query), 1)

    def hasher(self) -> Hasher:
        return get_hasher(self.hash_name)

    # --- Serialization ---

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "PcsConfig":
        """Build from a dict with snake_case or camelCase keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in d.items():
            name = _JSON_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"unknown configuration key {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str) -> "PcsConfig":
        """Load configuration from a JSON file."""
        with open(path) as f:
            j = json.load(f)
        return cls.from_dict(j)
