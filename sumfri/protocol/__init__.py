"""Protocol - Sumcheck, FRI and the polynomial commitment built from them."""

from sumfri.protocol.batch import BatchOpening, EvaluationClaim, batch_open, batch_verify, check_batch
from sumfri.protocol.composition import (
    Composition,
    FunctionComposition,
    LinearComposition,
    ProductComposition,
    RandomLinearCombination,
)
from sumfri.protocol.config import PcsConfig, register_query_policy
from sumfri.protocol.fri import FriProver, FriVerifier, commit_codeword, prove_proximity, verify_proximity
from sumfri.protocol.pcs import Commitment, CommittedPolynomial, MultilinearPcs, Opening
from sumfri.protocol.sumcheck import (
    SumClaim,
    SumcheckOutput,
    SumcheckProver,
    SumcheckSubclaim,
    SumcheckVerifier,
    batch_sum_claims,
    check_final,
    prove_batched,
    verify_batched,
)

__all__ = [
    # Configuration
    "PcsConfig",
    "register_query_policy",
    # Compositions
    "Composition",
    "ProductComposition",
    "LinearComposition",
    "RandomLinearCombination",
    "FunctionComposition",
    # Sumcheck
    "SumClaim",
    "SumcheckOutput",
    "SumcheckSubclaim",
    "SumcheckProver",
    "SumcheckVerifier",
    "check_final",
    "batch_sum_claims",
    "prove_batched",
    "verify_batched",
    # FRI
    "FriProver",
    "FriVerifier",
    "commit_codeword",
    "prove_proximity",
    "verify_proximity",
    # PCS
    "MultilinearPcs",
    "Commitment",
    "CommittedPolynomial",
    "Opening",
    # Batch
    "EvaluationClaim",
    "BatchOpening",
    "batch_open",
    "batch_verify",
    "check_batch",
]
