"""
Batch opening of many evaluation claims.

N claims g_{k(i)}(r_i) = v_i over possibly different committed polynomials are
proven together: the statement is absorbed, one weight lambda_i per claim is
drawn, and sum_i lambda_i v_i is proven by a single sumcheck over
sum_i lambda_i e_{k(i)}(x) eq(r_i, x) and a single FRI run whose columns are the
distinct committed polynomials. Batching costs up to log2(N) bits of
soundness, which the query count compensates for.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from sumfri.errors import ShapeError, VerificationFailure
from sumfri.primitives.field import embed
from sumfri.primitives.transcript import TranscriptReader, TranscriptWriter
from sumfri.protocol.pcs import Commitment, CommittedPolynomial, MultilinearPcs


@dataclass
class EvaluationClaim:
    """Claim that the polynomial behind `commitment` takes `value` at `point`."""
    commitment: Commitment
    point: Sequence
    value: object


@dataclass
class BatchOpening:
    """Claimed values (in claim order) and the shared proof log."""
    values: List = field(default_factory=list)
    proof: bytes = b""


def _dedupe(commitments: Sequence[Commitment]) -> Tuple[List[int], List[int]]:
    """(position of each distinct commitment, distinct index of each entry)."""
    seen: Dict[Tuple[bytes, int], int] = {}
    distinct = []
    index = []
    for i, c in enumerate(commitments):
        key = (c.root, c.n_vars)
        if key not in seen:
            seen[key] = len(distinct)
            distinct.append(i)
        index.append(seen[key])
    return distinct, index


def batch_query_count(pcs: MultilinearPcs, n_claims: int) -> int:
    """Query count with ceil(log2 N) extra bits for N batched claims."""
    extra_bits = math.ceil(math.log2(n_claims)) if n_claims > 1 else 0
    return pcs.config.num_queries(extra_bits=extra_bits)


def batch_open(pcs: MultilinearPcs, openings: Sequence[Tuple[CommittedPolynomial, Sequence]]) -> BatchOpening:
    """
    Evaluate and prove every (state, point) pair in one proof.

    Polynomials are de-duplicated by commitment root; all must share n_vars.
    """
    if len(openings) == 0:
        raise ShapeError("nothing to open")
    distinct, index = _dedupe([state.commitment for state, _ in openings])
    states = [openings[i][0] for i in distinct]
    commitments = [s.commitment for s in states]

    claims = []
    values = []
    for k, (state, point) in zip(index, openings):
        pcs.check_point(state.commitment, point)
        value = embed(state.polynomial.evaluate(pcs.lift_point(point)), pcs.field)
        claims.append((k, point, value))
        values.append(value)
    pcs.shared_n_vars(commitments, claims)

    transcript = TranscriptWriter(pcs.config.transcript_label)
    pcs.bind_claims(commitments, claims, transcript)
    weights = transcript.sample_many(pcs.field, len(claims))
    pcs.prove_evaluations(states, claims, list(weights), transcript, batch_query_count(pcs, len(claims)))
    return BatchOpening(values=values, proof=transcript.finish())


def check_batch(pcs: MultilinearPcs, claims: Sequence[EvaluationClaim], transcript: TranscriptReader) -> None:
    """Transcript-level batch verification; raises VerificationFailure."""
    if len(claims) == 0:
        raise ShapeError("nothing to verify")
    distinct, index = _dedupe([c.commitment for c in claims])
    commitments = [claims[i].commitment for i in distinct]
    indexed = [(k, c.point, c.value) for k, c in zip(index, claims)]
    pcs.shared_n_vars(commitments, indexed)

    pcs.bind_claims(commitments, indexed, transcript)
    weights = transcript.sample_many(pcs.field, len(indexed))
    pcs.check_evaluations(commitments, indexed, list(weights), transcript, batch_query_count(pcs, len(indexed)))


def batch_verify(pcs: MultilinearPcs, claims: Sequence[EvaluationClaim], proof: bytes) -> bool:
    """
    Accept iff every claim holds; prints a diagnostic on reject.

    A malformed proof log raises TranscriptDesyncError.
    """
    transcript = TranscriptReader(proof, pcs.config.transcript_label)
    try:
        check_batch(pcs, claims, transcript)
    except VerificationFailure as e:
        print(f"ERROR: {e}")
        return False
    transcript.finish()
    return True
