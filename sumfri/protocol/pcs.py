"""
Multilinear polynomial commitment from sumcheck and FRI.

A multilinear g with hypercube evaluations e is committed through its
monomial coefficients c (Mobius transform): the univariate P(Z) = sum c_i Z^i
is Reed-Solomon encoded on a coset and the codeword is committed with the
pair-leaf Merkle layout used by FRI.

An evaluation claim g(r) = v is proven by sumcheck over e(x) * eq(r, x). The
challenge alpha_j of sumcheck round j is also the fold challenge of FRI round
j, so the folded codeword encodes g(alpha_0, ..., alpha_j, X_{j+1}, ...). The
verifier evaluates the final FRI polynomial at the remaining challenges to get
g(alpha) and checks g(alpha) * eq(r, alpha) against the sumcheck subclaim.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import galois

from sumfri.errors import ShapeError, VerificationFailure
from sumfri.primitives.field import FF3, FieldType, embed
from sumfri.primitives.merkle_tree import MerkleRoot, MerkleTree
from sumfri.primitives.polynomial import (
    MultilinearPolynomial,
    eq_eval,
    eq_evaluations,
    mobius_transform,
    reed_solomon_encode,
    univariate_point,
)
from sumfri.primitives.transcript import TranscriptReader, TranscriptWriter
from sumfri.protocol.composition import ProductComposition, RandomLinearCombination
from sumfri.protocol.config import PcsConfig
from sumfri.protocol.fri import FriProver, FriVerifier, commit_codeword
from sumfri.protocol.sumcheck import (
    SumClaim,
    SumcheckProver,
    SumcheckVerifier,
    check_final,
)

# --- Data Classes ---

@dataclass(frozen=True)
class Commitment:
    """Public commitment: Merkle root of the codeword and the variable count."""
    root: MerkleRoot
    n_vars: int


@dataclass
class CommittedPolynomial:
    """Prover-only state retained after commit."""
    polynomial: MultilinearPolynomial
    codeword: galois.FieldArray
    tree: MerkleTree
    commitment: Commitment


@dataclass
class Opening:
    """Evaluation value and the proof log that binds it."""
    value: object
    proof: bytes


# (polynomial index, point, value)
Claim = Tuple[int, Sequence, object]


# --- PCS ---

class MultilinearPcs:
    """
    Commit / open / verify for multilinear (and univariate) polynomials.

    Args:
        config: Shared configuration; the same object must reach the verifier
        field: Challenge field; codewords are embedded into it
    """

    def __init__(self, config: Optional[PcsConfig] = None, field: FieldType = FF3):
        self.config = config if config is not None else PcsConfig()
        self.field = field

    # --- Commit ---

    def commit(self, polynomial) -> Tuple[Commitment, CommittedPolynomial]:
        """Commit to a MultilinearPolynomial (or its evaluation table)."""
        if not isinstance(polynomial, MultilinearPolynomial):
            polynomial = MultilinearPolynomial(polynomial)
        coefficients = mobius_transform(polynomial.evaluations)
        codeword = embed(reed_solomon_encode(coefficients, self.config.log_blowup), self.field)
        root, tree = commit_codeword(codeword, self.config)
        commitment = Commitment(root=root, n_vars=polynomial.n_vars)
        return commitment, CommittedPolynomial(polynomial, codeword, tree, commitment)

    def commit_univariate(self, coefficients: galois.FieldArray) -> Tuple[Commitment, CommittedPolynomial]:
        """Commit to P(Z) = sum c_i Z^i; the length is zero-padded to a power of two."""
        n = coefficients.shape[0]
        if n == 0:
            raise ShapeError("cannot commit to an empty polynomial")
        size = 1 << (n - 1).bit_length()
        padded = type(coefficients).Zeros(size)
        padded[:n] = coefficients
        return self.commit(MultilinearPolynomial.from_coefficients(padded))

    # --- Transcript-Level Proofs ---

    def prove_evaluation(self, state: CommittedPolynomial, point: Sequence, value, transcript: TranscriptWriter) -> None:
        """Append a proof that the committed polynomial takes `value` at `point`."""
        self.check_point(state.commitment, point)
        self.bind_claims([state.commitment], [(0, point, value)], transcript)
        self.prove_evaluations([state], [(0, point, value)], [self.field(1)], transcript, self.config.num_queries())

    def check_evaluation(self, commitment: Commitment, point: Sequence, value, transcript: TranscriptReader) -> None:
        """Verify a proof written by prove_evaluation; raises VerificationFailure."""
        self.check_point(commitment, point)
        self.bind_claims([commitment], [(0, point, value)], transcript)
        self.check_evaluations([commitment], [(0, point, value)], [self.field(1)], transcript, self.config.num_queries())

    def bind_claims(self, commitments: Sequence[Commitment], claims: Sequence[Claim], transcript) -> None:
        """Absorb the public statement: every root, then every (point, value)."""
        for c in commitments:
            transcript.absorb_digest(c.root)
        for _, point, value in claims:
            transcript.absorb(self.lift_point(point), self.field)
            transcript.absorb(value, self.field)

    def prove_evaluations(
        self,
        states: Sequence[CommittedPolynomial],
        claims: Sequence[Claim],
        weights: Sequence,
        transcript: TranscriptWriter,
        n_queries: int,
    ) -> None:
        """
        Prove sum_i weights[i] * values[i] with one sumcheck and one FRI run.

        Every state is one FRI column; claims reference states by index.
        """
        n_vars = self.shared_n_vars([s.commitment for s in states], claims)
        claim = self._combined_claim(len(states), claims, weights, n_vars)
        witnesses = [s.polynomial.evaluations for s in states]
        witnesses += [eq_evaluations(self.lift_point(point), self.field) for _, point, _ in claims]
        sumcheck = SumcheckProver(claim, witnesses, self.field)

        fri = FriProver(self.config, [s.codeword for s in states], [s.tree for s in states], n_vars, self.field)
        if fri.n_rounds == 0:
            fri.finalize(transcript)

        def fold(round_idx, challenge):
            if round_idx < fri.n_rounds:
                fri.fold_round(challenge, transcript)

        sumcheck.prove(transcript, after_round=fold)
        fri.query_phase(transcript, n_queries)

    def check_evaluations(
        self,
        commitments: Sequence[Commitment],
        claims: Sequence[Claim],
        weights: Sequence,
        transcript: TranscriptReader,
        n_queries: int,
    ) -> None:
        """Verifier side of prove_evaluations."""
        n_vars = self.shared_n_vars(commitments, claims)
        claim = self._combined_claim(len(commitments), claims, weights, n_vars)

        fri = FriVerifier(self.config, [c.root for c in commitments], n_vars, self.field)
        if fri.n_rounds == 0:
            fri.read_final(transcript)

        def fold(round_idx, challenge):
            if round_idx < fri.n_rounds:
                fri.read_round(challenge, transcript)

        subclaim = SumcheckVerifier(claim, self.field).verify(transcript, after_round=fold)

        # g_k(alpha) from the final polynomials, eq(r_i, alpha) directly
        alpha = subclaim.point
        remaining = alpha[fri.n_rounds:]
        evaluations = [self._evaluate_final(poly, remaining) for poly in fri.final_polys]
        evaluations += [eq_eval(self.lift_point(point), alpha, self.field) for _, point, _ in claims]
        check_final(subclaim, claim.composition, evaluations, self.field)

        fri.verify_queries(transcript, n_queries)

    # --- Top-Level Entry Points ---

    def open(self, state: CommittedPolynomial, point: Sequence) -> Opening:
        """Evaluate at `point` and prove it."""
        self.check_point(state.commitment, point)
        value = embed(state.polynomial.evaluate(self.lift_point(point)), self.field)
        transcript = TranscriptWriter(self.config.transcript_label)
        self.prove_evaluation(state, point, value, transcript)
        return Opening(value=value, proof=transcript.finish())

    def verify(self, commitment: Commitment, point: Sequence, claimed_eval, proof: bytes) -> bool:
        """
        Check an opening.

        Returns:
            False (with a diagnostic) on any failed check

        Raises:
            TranscriptDesyncError: If the proof is not a well-formed log, e.g.
                truncated, with trailing bytes or a non-canonical element
            ShapeError: If the point does not match the commitment
        """
        transcript = TranscriptReader(proof, self.config.transcript_label)
        try:
            self.check_evaluation(commitment, point, claimed_eval, transcript)
        except VerificationFailure as e:
            print(f"ERROR: {e}")
            return False
        transcript.finish()
        return True

    def open_univariate(self, state: CommittedPolynomial, z) -> Opening:
        """Open a univariate commitment at Z = z."""
        return self.open(state, univariate_point(embed(z, self.field), state.commitment.n_vars))

    def verify_univariate(self, commitment: Commitment, z, claimed_eval, proof: bytes) -> bool:
        return self.verify(commitment, univariate_point(embed(z, self.field), commitment.n_vars), claimed_eval, proof)

    # --- Internal ---

    def lift_point(self, point: Sequence) -> galois.FieldArray:
        if len(point) == 0:
            return self.field.Zeros(0)
        return self.field([int(embed(r, self.field)) for r in point])

    def check_point(self, commitment: Commitment, point: Sequence) -> None:
        if len(point) != commitment.n_vars:
            raise ShapeError(
                f"point has {len(point)} coordinates, commitment has {commitment.n_vars} variables"
            )

    def shared_n_vars(self, commitments: Sequence[Commitment], claims: Sequence[Claim]) -> int:
        if len(commitments) == 0 or len(claims) == 0:
            raise ShapeError("need at least one commitment and one claim")
        n_vars = commitments[0].n_vars
        for c in commitments:
            if c.n_vars != n_vars:
                raise ShapeError(f"commitments must share n_vars, got {c.n_vars} and {n_vars}")
        for k, point, _ in claims:
            if not 0 <= k < len(commitments):
                raise ShapeError(f"claim references polynomial {k} of {len(commitments)}")
            self.check_point(commitments[k], point)
        return n_vars

    def _combined_claim(self, n_polys: int, claims: Sequence[Claim], weights: Sequence, n_vars: int) -> SumClaim:
        """sum_i w_i * e_{k(i)}(x) * eq(r_i, x) summed over the hypercube."""
        if len(weights) != len(claims):
            raise ShapeError(f"{len(claims)} claims but {len(weights)} weights")
        parts = [ProductComposition(2) for _ in claims]
        input_map = [[k, n_polys + i] for i, (k, _, _) in enumerate(claims)]
        weights = [embed(w, self.field) for w in weights]
        composition = RandomLinearCombination(parts, weights, input_map)
        total = self.field(0)
        for w, (_, _, value) in zip(weights, claims):
            total = total + w * embed(value, self.field)
        return SumClaim(n_vars, composition, total)

    def _evaluate_final(self, coefficients: galois.FieldArray, point: List):
        """Evaluate a final FRI polynomial as a monomial-basis multilinear."""
        size = 1 << len(point)
        padded = self.field.Zeros(size)
        padded[: coefficients.shape[0]] = coefficients
        return MultilinearPolynomial.from_coefficients(padded).evaluate(point)
