"""
FRI Low-Degree Test Tests
=========================

What these tests cover:
    - Fold relation in evaluation form vs coefficient form
    - FriProver: final polynomial consistent with the last folded layer
    - prove_proximity / verify_proximity: honest proofs under several configs
    - Rejections: corrupted codeword, corrupted Merkle openings in any layer,
      wrong fold challenges, oversized final polynomial, bad grinding nonce
"""

import itertools

import numpy as np
import pytest

from sumfri.errors import (
    FinalDegreeBoundExceeded,
    FoldConsistencyError,
    MerkleVerificationError,
    ProofOfWorkError,
    VerificationFailure,
)
from sumfri.primitives.field import FF, FF3, coset_shift, to_int_list
from sumfri.primitives.hashing import Sha256Hasher, grinding, verify_grinding
from sumfri.primitives.ntt import log2
from sumfri.primitives.polynomial import evaluate_univariate, reed_solomon_encode
from sumfri.primitives.transcript import TranscriptReader, TranscriptWriter
from sumfri.protocol import fri as fri_module
from sumfri.protocol.config import PcsConfig
from sumfri.protocol.fri import (
    FriProver,
    commit_codeword,
    domain_inverses,
    domain_point,
    fold_codeword,
    fold_coefficients,
    prove_proximity,
    verify_proximity,
)


def codeword_for(log_degree, log_blowup, field=FF3, seed=0):
    coeffs = field.Random(1 << log_degree, seed=seed)
    return coeffs, reed_solomon_encode(coeffs, log_blowup)


def prove_with(codeword, config, field, prover_cls=FriProver, beta_offset=None, before_queries=None):
    """prove_proximity with hooks for misbehaving provers."""
    writer = TranscriptWriter()
    root, tree = commit_codeword(codeword, config)
    writer.observe_digest(root)
    log_degree = log2(codeword.shape[0]) - config.log_blowup
    prover = prover_cls(config, [codeword], [tree], log_degree, field)
    if prover.n_rounds == 0:
        prover.finalize(writer)
    while prover.round < prover.n_rounds:
        beta = writer.sample(field)
        if beta_offset is not None and prover.round == beta_offset:
            beta = beta + field(1)
        prover.fold_round(beta, writer)
    if before_queries is not None:
        before_queries(prover)
    prover.query_phase(writer, config.num_queries())
    return writer.finish()


def verify_log(proof, config, log_degree, field):
    reader = TranscriptReader(proof)
    final = verify_proximity(config, reader, log_degree, field)
    reader.finish()
    return final


class TestFolding:

    @pytest.mark.parametrize("log_blowup", [1, 2, 3])
    def test_evaluation_fold_matches_coefficient_fold(self, log_blowup: int) -> None:
        coeffs, codeword = codeword_for(4, log_blowup, seed=1)
        beta = FF3.Random(seed=2)
        log_size = 4 + log_blowup
        folded = fold_codeword(codeword, beta, domain_inverses(log_size, FF3))
        expected = reed_solomon_encode(fold_coefficients(coeffs, beta), log_blowup, coset_shift(FF3) ** 2)
        assert np.array_equal(folded, expected)

    def test_final_polynomial_matches_last_layer(self) -> None:
        config = PcsConfig(log_blowup=2, log_final_degree=2, n_queries=4)
        _, codeword = codeword_for(6, 2, seed=3)
        writer = TranscriptWriter()
        _, tree = commit_codeword(codeword, config)
        prover = FriProver(config, [codeword], [tree], 6, FF3)
        while prover.round < prover.n_rounds:
            prover.fold_round(writer.sample(FF3), writer)

        assert prover.n_rounds == 4
        final = prover.final_polys[0]
        assert final.shape == (4,)
        last = prover.layers[-1][0]
        for p in range(last.shape[0]):
            x = domain_point(prover.log_size, prover.n_rounds, p, FF3)
            assert evaluate_univariate(final, x) == last[p]

    def test_final_polynomial_is_folded_coefficients(self) -> None:
        config = PcsConfig(log_blowup=1, log_final_degree=1, n_queries=4)
        coeffs, codeword = codeword_for(4, 1, seed=4)
        writer = TranscriptWriter()
        _, tree = commit_codeword(codeword, config)
        prover = FriProver(config, [codeword], [tree], 4, FF3)
        expected = coeffs
        while prover.round < prover.n_rounds:
            beta = writer.sample(FF3)
            expected = fold_coefficients(expected, beta)
            prover.fold_round(beta, writer)
        assert np.array_equal(prover.final_polys[0], expected)


class TestHonestProofs:

    @pytest.mark.parametrize("log_degree,log_blowup,log_final", [
        (3, 1, 0),
        (5, 1, 2),
        (4, 2, 1),
        (2, 1, 4),
    ])
    def test_verifies(self, log_degree, log_blowup, log_final) -> None:
        config = PcsConfig(log_blowup=log_blowup, log_final_degree=log_final, n_queries=10)
        coeffs, codeword = codeword_for(log_degree, log_blowup, seed=log_degree)
        proof = prove_with(codeword, config, FF3)
        final = verify_log(proof, config, log_degree, FF3)
        assert final.shape == (1 << min(log_final, log_degree),)

    @pytest.mark.parametrize("config", [
        PcsConfig(log_blowup=1, log_final_degree=1, n_queries=6, merkle_arity=4),
        PcsConfig(log_blowup=1, log_final_degree=1, n_queries=6, hash_name="sha256"),
        PcsConfig(log_blowup=1, log_final_degree=1, n_queries=6, pow_bits=4),
    ])
    def test_verifies_with_options(self, config) -> None:
        _, codeword = codeword_for(4, 1, seed=5)
        reader = TranscriptReader(prove_with(codeword, config, FF3))
        verify_proximity(config, reader, 4, FF3)
        reader.finish()

    def test_prove_proximity_entry_point(self) -> None:
        config = PcsConfig(log_blowup=1, log_final_degree=1, n_queries=6)
        _, codeword = codeword_for(4, 1, seed=6)
        writer = TranscriptWriter()
        prove_proximity(codeword, config, writer)
        verify_log(writer.finish(), config, 4, FF3)


@pytest.fixture(scope="module")
def large_codeword():
    return codeword_for(14, 2, field=FF, seed=2024)[1]


class TestLargeCodeword:
    """Degree < 2^14, blowup 4, final degree bound 2^4, Q = 50."""

    CONFIG = PcsConfig(log_blowup=2, log_final_degree=4, n_queries=50)

    def test_honest_codeword_accepted(self, large_codeword) -> None:
        writer = TranscriptWriter()
        prove_proximity(large_codeword, self.CONFIG, writer, FF)
        final = verify_log(writer.finish(), self.CONFIG, 14, FF)
        assert final.shape == (16,)

    def test_corrupted_entry_rejected(self, large_codeword) -> None:
        corrupted = large_codeword.copy()
        corrupted[12345] = corrupted[12345] + FF(1)
        writer = TranscriptWriter()
        prove_proximity(corrupted, self.CONFIG, writer, FF)
        with pytest.raises(VerificationFailure):
            verify_log(writer.finish(), self.CONFIG, 14, FF)


class TestSoundness:

    CONFIG = PcsConfig(log_blowup=1, log_final_degree=1, n_queries=8)

    @pytest.fixture
    def codeword(self):
        return codeword_for(5, 1, seed=7)[1]

    @pytest.mark.parametrize("layer", [0, 1, 3])
    def test_corrupted_leaf(self, codeword, layer: int) -> None:
        def corrupt(prover):
            tree = prover.trees[layer][0]
            original = tree.get_query_proof

            def tampered(idx):
                proof = original(idx)
                proof.leaf[0] = proof.leaf[0] + FF3(1)
                return proof
            tree.get_query_proof = tampered

        proof = prove_with(codeword, self.CONFIG, FF3, before_queries=corrupt)
        with pytest.raises(MerkleVerificationError) as exc:
            verify_log(proof, self.CONFIG, 5, FF3)
        assert exc.value.round == layer

    @pytest.mark.parametrize("layer", [0, 2])
    def test_corrupted_sibling(self, codeword, layer: int) -> None:
        def corrupt(prover):
            tree = prover.trees[layer][0]
            original = tree.get_query_proof

            def tampered(idx):
                proof = original(idx)
                proof.path[0][0] = bytes([proof.path[0][0][0] ^ 1]) + proof.path[0][0][1:]
                return proof
            tree.get_query_proof = tampered

        proof = prove_with(codeword, self.CONFIG, FF3, before_queries=corrupt)
        with pytest.raises(MerkleVerificationError) as exc:
            verify_log(proof, self.CONFIG, 5, FF3)
        assert exc.value.round == layer

    @pytest.mark.parametrize("round_idx", [0, 2])
    def test_wrong_fold_challenge(self, codeword, round_idx: int) -> None:
        proof = prove_with(codeword, self.CONFIG, FF3, beta_offset=round_idx)
        with pytest.raises(FoldConsistencyError):
            verify_log(proof, self.CONFIG, 5, FF3)

    def test_codeword_far_from_low_degree(self) -> None:
        codeword = FF3.Random(64, seed=8)
        writer = TranscriptWriter()
        prove_proximity(codeword, self.CONFIG, writer)
        with pytest.raises(FoldConsistencyError):
            verify_log(writer.finish(), self.CONFIG, 5, FF3)

    def test_oversized_final_polynomial(self, codeword) -> None:
        class LongFinalProver(FriProver):
            def _final_coefficients(self, cw):
                coeffs = super()._final_coefficients(cw)
                return self.field(to_int_list(coeffs) + [0])

        proof = prove_with(codeword, self.CONFIG, FF3, prover_cls=LongFinalProver)
        with pytest.raises(FinalDegreeBoundExceeded):
            verify_log(proof, self.CONFIG, 5, FF3)

    def test_bad_grinding_nonce(self, codeword, monkeypatch) -> None:
        config = PcsConfig(log_blowup=1, log_final_degree=1, n_queries=8, pow_bits=6)

        def bad_nonce(challenge, pow_bits, hasher=None):
            return next(n for n in itertools.count() if not verify_grinding(challenge, n, pow_bits, hasher))

        monkeypatch.setattr(fri_module, "grinding", bad_nonce)
        proof = prove_with(codeword, config, FF3)
        with pytest.raises(ProofOfWorkError):
            verify_log(proof, config, 5, FF3)

    def test_grinding_uses_configured_hash(self, codeword, monkeypatch) -> None:
        config = PcsConfig(log_blowup=1, log_final_degree=1, n_queries=8, pow_bits=4, hash_name="sha256")
        used = []

        def recording_grinding(challenge, pow_bits, hasher=None):
            used.append(hasher)
            return grinding(challenge, pow_bits, hasher)

        monkeypatch.setattr(fri_module, "grinding", recording_grinding)
        proof = prove_with(codeword, config, FF3)
        verify_log(proof, config, 5, FF3)
        assert len(used) == 1
        assert isinstance(used[0], Sha256Hasher)
