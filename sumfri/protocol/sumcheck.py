"""
Multivariate sumcheck.

Reduces the claim  sum_{x in {0,1}^n} C(w_1(x), ..., w_k(x)) = S  to one
evaluation claim at a random point, one variable per round, lowest variable
first.

Round message: the d + 1 ascending coefficients of the round polynomial
h(X) = sum over the remaining half-cube of C with the bound variable set to X,
where d = C.degree(). The verifier checks h(0) + h(1) = 2 c_0 + c_1 + ... + c_d
against the running claim and replaces the claim by h(r).
"""

from dataclasses import dataclass, field as dc_field
from typing import Callable, List, Optional, Sequence, Tuple

import galois
import numpy as np

from sumfri.errors import ClaimReductionFailure, DegreeMismatch, ShapeError, SumMismatch
from sumfri.primitives.field import FF3, FieldType, embed, powers
from sumfri.primitives.polynomial import (
    MultilinearPolynomial,
    evaluate_univariate,
    fold_low,
    interpolate_coefficients,
)
from sumfri.primitives.transcript import Transcript, TranscriptReader, TranscriptWriter
from sumfri.protocol.composition import Composition, RandomLinearCombination

RoundHook = Callable[[int, object], None]


# --- Data Classes ---

@dataclass
class SumClaim:
    """Claim that the composition summed over {0,1}^n_vars equals claimed_sum."""
    n_vars: int
    composition: Composition
    claimed_sum: object


@dataclass
class SumcheckOutput:
    """Prover result: the challenge point and every witness evaluated there."""
    point: List = dc_field(default_factory=list)
    witness_evaluations: List = dc_field(default_factory=list)
    final_claim: object = None


@dataclass
class SumcheckSubclaim:
    """Verifier result: composition at `point` must equal expected_value."""
    point: List = dc_field(default_factory=list)
    expected_value: object = None


# --- Prover ---

def _witness_tables(claim: SumClaim, witnesses: Sequence, field: FieldType) -> List[galois.FieldArray]:
    """Validate witness shapes and return evaluation tables lifted into `field`."""
    if claim.n_vars < 0:
        raise ShapeError(f"n_vars must be non-negative, got {claim.n_vars}")
    if len(witnesses) != claim.composition.n_inputs:
        raise ShapeError(
            f"composition takes {claim.composition.n_inputs} witnesses, got {len(witnesses)}"
        )
    tables = []
    for i, w in enumerate(witnesses):
        evals = w.evaluations if isinstance(w, MultilinearPolynomial) else w
        if not isinstance(evals, galois.FieldArray) or evals.ndim != 1:
            raise ShapeError(f"witness {i} must be a 1-D FieldArray or MultilinearPolynomial")
        if evals.shape[0] != 1 << claim.n_vars:
            raise ShapeError(
                f"witness {i} has {evals.shape[0]} evaluations, expected {1 << claim.n_vars}"
            )
        tables.append(embed(evals, field))
    return tables


class SumcheckProver:
    """
    Prover state machine for one claim.

    Args:
        claim: Sum claim to prove
        witnesses: One multilinear witness per composition input
        field: Challenge field; witnesses are embedded into it
    """

    def __init__(self, claim: SumClaim, witnesses: Sequence, field: FieldType = FF3):
        self.tables = _witness_tables(claim, witnesses, field)
        self.claim = claim
        self.field = field
        self.degree = claim.composition.degree()
        self.round = 0
        self.point: List = []
        self.current_sum = embed(claim.claimed_sum, field)
        self._last_message: Optional[galois.FieldArray] = None

    @property
    def variables_remaining(self) -> int:
        return self.claim.n_vars - self.round

    def round_polynomial(self) -> galois.FieldArray:
        """Coefficients of the round polynomial for the lowest unbound variable."""
        if self.variables_remaining == 0:
            raise ShapeError("all variables are already bound")
        field = self.field
        lows = [t[0::2] for t in self.tables]
        diffs = [t[1::2] - lo for t, lo in zip(self.tables, lows)]

        evals = field.Zeros(self.degree + 1)
        for t in range(self.degree + 1):
            x = field(t)
            values = [lo + x * diff for lo, diff in zip(lows, diffs)]
            evals[t] = np.add.reduce(self.claim.composition.evaluate(values))
        self._last_message = interpolate_coefficients(evals)
        return self._last_message

    def bind(self, challenge) -> None:
        """Fix the lowest unbound variable to `challenge` in every witness."""
        if self._last_message is None:
            raise ShapeError("bind() called before round_polynomial()")
        challenge = embed(challenge, self.field)
        self.tables = [fold_low(t, challenge) for t in self.tables]
        self.current_sum = evaluate_univariate(self._last_message, challenge)
        self.point.append(challenge)
        self._last_message = None
        self.round += 1

    def prove_round(self, transcript: TranscriptWriter):
        """Send one round message, draw the challenge and bind it."""
        message = self.round_polynomial()
        transcript.observe(message, self.field)
        challenge = transcript.sample(self.field)
        self.bind(challenge)
        return challenge

    def prove(self, transcript: TranscriptWriter, after_round: Optional[RoundHook] = None) -> SumcheckOutput:
        """
        Run every round.

        Args:
            transcript: Proof transcript
            after_round: Called as after_round(round, challenge) once each
                challenge is bound, before the next round message

        Returns:
            SumcheckOutput with the challenge point and witness evaluations
        """
        transcript.absorb(self.current_sum, self.field)
        while self.variables_remaining > 0:
            r = self.prove_round(transcript)
            if after_round is not None:
                after_round(self.round - 1, r)
        return SumcheckOutput(
            point=list(self.point),
            witness_evaluations=[t[0] for t in self.tables],
            final_claim=self.current_sum,
        )


# --- Verifier ---

class SumcheckVerifier:
    """Verifier state machine mirroring SumcheckProver."""

    def __init__(self, claim: SumClaim, field: FieldType = FF3):
        if claim.n_vars < 0:
            raise ShapeError(f"n_vars must be non-negative, got {claim.n_vars}")
        self.claim = claim
        self.field = field
        self.degree = claim.composition.degree()
        self.round = 0
        self.point: List = []
        self.current_sum = embed(claim.claimed_sum, field)

    def verify_round(self, transcript: TranscriptReader):
        """Read one round message, check it and draw the challenge."""
        coeffs = transcript.read(self.field)
        if coeffs.shape[0] == 0 or coeffs.shape[0] > self.degree + 1:
            raise DegreeMismatch(
                f"round message has {coeffs.shape[0]} coefficients, expected at most {self.degree + 1}",
                round=self.round,
            )
        boundary_sum = coeffs[0] + np.add.reduce(coeffs)
        if boundary_sum != self.current_sum:
            raise SumMismatch("h(0) + h(1) does not match the running claim", round=self.round)
        challenge = transcript.sample(self.field)
        self.current_sum = evaluate_univariate(coeffs, challenge)
        self.point.append(challenge)
        self.round += 1
        return challenge

    def verify(self, transcript: TranscriptReader, after_round: Optional[RoundHook] = None) -> SumcheckSubclaim:
        """Replay every round; returns the reduced claim left to check."""
        transcript.absorb(self.current_sum, self.field)
        while self.round < self.claim.n_vars:
            r = self.verify_round(transcript)
            if after_round is not None:
                after_round(self.round - 1, r)
        return SumcheckSubclaim(point=list(self.point), expected_value=self.current_sum)


def check_final(subclaim: SumcheckSubclaim, composition: Composition, evaluations: Sequence, field: FieldType = FF3) -> None:
    """
    Check the reduced claim against oracle evaluations of the witnesses.

    Raises:
        ClaimReductionFailure: If C(evaluations) != subclaim.expected_value
    """
    values = [embed(v, field) for v in evaluations]
    if composition.evaluate(values) != embed(subclaim.expected_value, field):
        raise ClaimReductionFailure("composition of witness evaluations does not match the reduced claim")


# --- Batching ---

def batch_sum_claims(claims: Sequence[SumClaim], transcript: Transcript, field: FieldType = FF3) -> SumClaim:
    """
    Combine claims over the same hypercube with powers of one challenge.

    Every claimed sum is absorbed, then gamma is drawn; the combined claim is
    sum_i gamma^i S_i over a RandomLinearCombination whose part i reads the
    witnesses of claim i.
    """
    if len(claims) == 0:
        raise ShapeError("nothing to batch")
    n_vars = claims[0].n_vars
    for c in claims:
        if c.n_vars != n_vars:
            raise ShapeError(f"batched claims must share n_vars, got {c.n_vars} and {n_vars}")
    for c in claims:
        transcript.absorb(c.claimed_sum, field)
    gamma = transcript.sample(field)
    coefficients = powers(gamma, len(claims))
    combined = field(0)
    for coeff, c in zip(coefficients, claims):
        combined = combined + coeff * embed(c.claimed_sum, field)
    composition = RandomLinearCombination([c.composition for c in claims], list(coefficients))
    return SumClaim(n_vars, composition, combined)


def prove_batched(
    claims: Sequence[SumClaim],
    witnesses: Sequence[Sequence],
    transcript: TranscriptWriter,
    field: FieldType = FF3,
) -> Tuple[SumClaim, SumcheckOutput]:
    """Prove several claims with one sumcheck run; witnesses[i] belong to claims[i]."""
    if len(claims) != len(witnesses):
        raise ShapeError(f"{len(claims)} claims but {len(witnesses)} witness groups")
    for claim, group in zip(claims, witnesses):
        _witness_tables(claim, group, field)
    combined = batch_sum_claims(claims, transcript, field)
    flat = [w for group in witnesses for w in group]
    return combined, SumcheckProver(combined, flat, field).prove(transcript)


def verify_batched(
    claims: Sequence[SumClaim],
    transcript: TranscriptReader,
    field: FieldType = FF3,
) -> Tuple[SumClaim, SumcheckSubclaim]:
    """Verifier side of prove_batched; check the result with check_final."""
    combined = batch_sum_claims(claims, transcript, field)
    return combined, SumcheckVerifier(combined, field).verify(transcript)
