"""
FRI folding protocol over a multiplicative coset.

Layer j holds codewords of length L_j = L_0 / 2^j on the domain
D_j = shift^(2^j) * <omega_0^(2^j)>, in natural order. A fold with challenge
beta maps the pair f(x), f(-x) = f[i], f[i + L_j/2] to

    f'(x^2) = (f(x) + f(-x)) / 2 + beta * (f(x) - f(-x)) / (2x)

which on coefficients is c'_i = c_{2i} + beta * c_{2i+1}. Leaf k of a layer
commitment holds (f[k], f[k + L_j/2]) for every column, so one opening
serves one fold. Several codewords (columns) may be folded with the same
challenges; layers after the first share one multi-column tree.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import galois

from sumfri.errors import (
    FinalDegreeBoundExceeded,
    FoldConsistencyError,
    MerkleVerificationError,
    ProofOfWorkError,
    ShapeError,
)
from sumfri.primitives.field import FF3, FieldType, base_field, coset_shift, embed, get_omega, powers
from sumfri.primitives.hashing import grinding, verify_grinding
from sumfri.primitives.merkle_tree import MerkleRoot, MerkleTree
from sumfri.primitives.merkle_verifier import MerkleConfig, MerkleVerifier
from sumfri.primitives.ntt import NTT, log2
from sumfri.primitives.polynomial import evaluate_univariate
from sumfri.primitives.transcript import TranscriptReader, TranscriptWriter
from sumfri.protocol.config import PcsConfig

GRINDING_CHALLENGE_BYTES = 32


# --- Folding ---

def fold_codeword(values: galois.FieldArray, beta, inv_x: galois.FieldArray) -> galois.FieldArray:
    """
    Fold a codeword to half its length.

    Args:
        values: Codeword f on a coset of size L
        beta: Folding challenge
        inv_x: 1/x for the first L/2 domain points

    Returns:
        Codeword of length L/2 on the squared domain
    """
    field = type(values)
    half = values.shape[0] // 2
    lo = values[:half]
    hi = values[half:]
    two_inv = field(2) ** -1
    return (lo + hi) * two_inv + embed(beta, field) * (lo - hi) * two_inv * embed(inv_x, field)


def fold_pair(lo, hi, beta, inv_x):
    """Scalar fold of one opened pair."""
    field = type(beta)
    two_inv = field(2) ** -1
    return (lo + hi) * two_inv + beta * (lo - hi) * two_inv * embed(inv_x, field)


def fold_coefficients(coefficients: galois.FieldArray, beta) -> galois.FieldArray:
    """Coefficient form of the fold: c'_i = c_{2i} + beta * c_{2i+1}."""
    return coefficients[0::2] + embed(beta, type(coefficients)) * coefficients[1::2]


def domain_inverses(log_size: int, field: FieldType) -> galois.FieldArray:
    """1/x for the first half of the layer-0 coset shift * <omega>."""
    fp = base_field(field)
    size = 1 << log_size
    omega_inv = get_omega(log_size, fp) ** -1
    return embed(powers(omega_inv, size // 2) * coset_shift(fp) ** -1, field)


def domain_point(log_size: int, layer: int, position: int, field: FieldType):
    """Point of D_layer at `position`, where D_0 has 2^log_size points."""
    fp = base_field(field)
    step = 1 << layer
    x = coset_shift(fp) ** step * get_omega(log_size, fp) ** (step * position)
    return embed(x, field)


# --- Commitment ---

def pair_rows(columns: Sequence[galois.FieldArray]) -> galois.FieldArray:
    """Leaf matrix whose row k is (c[k], c[k + L/2]) for every column c."""
    field = type(columns[0])
    half = columns[0].shape[0] // 2
    rows = field.Zeros((half, 2 * len(columns)))
    for i, col in enumerate(columns):
        rows[:, 2 * i] = col[:half]
        rows[:, 2 * i + 1] = col[half:]
    return rows


def commit_codeword(codeword: galois.FieldArray, config: PcsConfig) -> Tuple[MerkleRoot, MerkleTree]:
    """Commit to one codeword with the pair-leaf layout."""
    return commit_columns([codeword], config)


def commit_columns(columns: Sequence[galois.FieldArray], config: PcsConfig) -> Tuple[MerkleRoot, MerkleTree]:
    lengths = {c.shape[0] for c in columns}
    if len(lengths) != 1:
        raise ShapeError(f"columns differ in length: {sorted(lengths)}")
    length = lengths.pop()
    log2(length)
    if length < 2:
        raise ShapeError("codeword must have at least 2 entries")
    tree = MerkleTree(config.merkle_arity, config.hasher())
    tree.merkelize(pair_rows(columns))
    return tree.get_root(), tree


def _num_rounds(config: PcsConfig, log_degree: int) -> Tuple[int, int]:
    """(fold rounds, log2 of final coefficient count)."""
    log_final = min(log_degree, config.log_final_degree)
    return log_degree - log_final, log_final


# --- Prover ---

class FriProver:
    """
    Prover side of FRI for one or more codewords folded together.

    Args:
        config: Shared configuration
        codewords: Layer-0 codewords, each of length 2^(log_degree + log_blowup)
        trees: Layer-0 commitment trees, one per codeword (pair-leaf layout)
        log_degree: log2 of the coefficient count of every codeword
        field: Field the codewords and challenges live in
    """

    def __init__(
        self,
        config: PcsConfig,
        codewords: Sequence[galois.FieldArray],
        trees: Sequence[MerkleTree],
        log_degree: int,
        field: FieldType = FF3,
    ):
        if len(codewords) == 0:
            raise ShapeError("FRI needs at least one codeword")
        if len(codewords) != len(trees):
            raise ShapeError(f"{len(codewords)} codewords but {len(trees)} trees")
        self.log_size = log_degree + config.log_blowup
        for cw in codewords:
            if cw.shape[0] != 1 << self.log_size:
                raise ShapeError(
                    f"codeword has {cw.shape[0]} entries, expected {1 << self.log_size}"
                )
        self.config = config
        self.field = field
        self.log_degree = log_degree
        self.n_rounds, self.log_final = _num_rounds(config, log_degree)

        self.layers: List[List[galois.FieldArray]] = [[embed(cw, field) for cw in codewords]]
        self.trees: List[List[MerkleTree]] = [list(trees)]
        self.final_polys: Optional[List[galois.FieldArray]] = None
        self._inv_x = domain_inverses(self.log_size, field)
        self.round = 0

    def fold_round(self, beta, transcript: TranscriptWriter) -> None:
        """Fold every column; commit the new layer or, at the end, send the final polynomials."""
        if self.round >= self.n_rounds:
            raise ShapeError(f"all {self.n_rounds} fold rounds are done")
        inv_x = self._inv_x[: self.layers[-1][0].shape[0] // 2]
        folded = [fold_codeword(col, beta, inv_x) for col in self.layers[-1]]
        self.layers.append(folded)
        self._inv_x = inv_x[: inv_x.shape[0] // 2] ** 2
        self.round += 1

        if self.round < self.n_rounds:
            root, tree = commit_columns(folded, self.config)
            self.trees.append([tree])
            transcript.observe_digest(root)
        else:
            self.finalize(transcript)

    def finalize(self, transcript: TranscriptWriter) -> None:
        """Write the final polynomial of every column in coefficient form."""
        if self.round != self.n_rounds:
            raise ShapeError(f"finalize() after {self.round} of {self.n_rounds} rounds")
        self.final_polys = [self._final_coefficients(col) for col in self.layers[-1]]
        for coeffs in self.final_polys:
            transcript.observe(coeffs, self.field)

    def _final_coefficients(self, codeword: galois.FieldArray) -> galois.FieldArray:
        size = codeword.shape[0]
        shift = coset_shift(self.field) ** (1 << self.n_rounds)
        coeffs = NTT(size, self.field).coset_intt(codeword, shift)
        return coeffs[: 1 << self.log_final]

    def query_phase(self, transcript: TranscriptWriter, n_queries: int) -> List[int]:
        """Grind, sample query positions and write the de-duplicated openings."""
        if self.final_polys is None:
            raise ShapeError("query_phase() before the final polynomials were sent")
        if self.config.pow_bits > 0:
            challenge = transcript.sample_bytes(GRINDING_CHALLENGE_BYTES)
            transcript.observe_nonce(grinding(challenge, self.config.pow_bits, self.config.hasher()))
        queries = transcript.sample_indices(n_queries, self.log_size)

        for j in range(max(self.n_rounds, 1)):
            length = 1 << (self.log_size - j)
            for k in _layer_leaves(queries, length):
                for tree in self.trees[j]:
                    proof = tree.get_query_proof(k)
                    transcript.observe(proof.leaf, self.field)
                    for level in proof.path:
                        for digest in level:
                            transcript.observe_digest(digest)
        return queries


def _layer_leaves(queries: Sequence[int], length: int) -> List[int]:
    half = length // 2
    return sorted({(q % length) % half for q in queries})


# --- Verifier ---

class FriVerifier:
    """
    Verifier side of FRI, mirroring FriProver.

    Args:
        config: Shared configuration
        initial_roots: Layer-0 roots, one per column
        log_degree: log2 of the coefficient count of every codeword
        field: Field the codewords and challenges live in
    """

    def __init__(
        self,
        config: PcsConfig,
        initial_roots: Sequence[MerkleRoot],
        log_degree: int,
        field: FieldType = FF3,
    ):
        if len(initial_roots) == 0:
            raise ShapeError("FRI needs at least one codeword")
        self.config = config
        self.field = field
        self.hasher = config.hasher()
        self.log_degree = log_degree
        self.log_size = log_degree + config.log_blowup
        self.n_rounds, self.log_final = _num_rounds(config, log_degree)
        self.n_columns = len(initial_roots)
        self.roots: List[List[MerkleRoot]] = [list(initial_roots)]
        self.betas: List = []
        self.final_polys: Optional[List[galois.FieldArray]] = None

    @property
    def round(self) -> int:
        return len(self.betas)

    def read_round(self, beta, transcript: TranscriptReader) -> None:
        """Record the fold challenge and read the next root (or the final polynomials)."""
        if self.round >= self.n_rounds:
            raise ShapeError(f"all {self.n_rounds} fold rounds are done")
        self.betas.append(embed(beta, self.field))
        if self.round < self.n_rounds:
            self.roots.append([transcript.read_digest(self.hasher.digest_size)])
        else:
            self.read_final(transcript)

    def read_final(self, transcript: TranscriptReader) -> List[galois.FieldArray]:
        """Read the final polynomial of every column."""
        bound = 1 << self.log_final
        polys = []
        for c in range(self.n_columns):
            coeffs = transcript.read(self.field)
            if coeffs.shape[0] > bound:
                raise FinalDegreeBoundExceeded(
                    f"final polynomial {c} has {coeffs.shape[0]} coefficients, bound is {bound}",
                    round=self.n_rounds,
                )
            polys.append(coeffs)
        self.final_polys = polys
        return polys

    def verify_queries(self, transcript: TranscriptReader, n_queries: int) -> List[int]:
        """
        Check grinding, every Merkle opening and every fold.

        Raises:
            ProofOfWorkError: If the grinding nonce is invalid
            MerkleVerificationError: If an opening does not match its root
            FoldConsistencyError: If folded values disagree with the next layer
                or with the final polynomial
        """
        if self.final_polys is None:
            raise ShapeError("verify_queries() before the final polynomials were read")
        if self.config.pow_bits > 0:
            challenge = transcript.sample_bytes(GRINDING_CHALLENGE_BYTES)
            nonce = transcript.read_nonce()
            if not verify_grinding(challenge, nonce, self.config.pow_bits, self.hasher):
                raise ProofOfWorkError(f"nonce {nonce} does not meet {self.config.pow_bits} bits")
        queries = transcript.sample_indices(n_queries, self.log_size)

        n_open = max(self.n_rounds, 1)
        openings = [self._read_layer(transcript, j, queries) for j in range(n_open)]

        for q in queries:
            for c in range(self.n_columns):
                self._check_query(q, c, openings)
        return queries

    def _read_layer(self, transcript: TranscriptReader, j: int, queries: Sequence[int]) -> Dict[int, List[Tuple]]:
        """Read and authenticate every opened leaf of layer j; returns leaf -> [(lo, hi)] per column."""
        length = 1 << (self.log_size - j)
        merkle_config = MerkleConfig(arity=self.config.merkle_arity, height=length // 2)
        width = 2 if j == 0 else 2 * self.n_columns
        verifiers = [MerkleVerifier(root, merkle_config, self.hasher) for root in self.roots[j]]

        layer = {}
        for k in _layer_leaves(queries, length):
            pairs = []
            for t, verifier in enumerate(verifiers):
                row = transcript.read(self.field, count=width)
                path = [
                    [transcript.read_digest(self.hasher.digest_size) for _ in range(merkle_config.siblings_per_level)]
                    for _ in range(merkle_config.n_siblings)
                ]
                if not verifier.verify_query(k, row, path, self.field):
                    raise MerkleVerificationError(f"opening of leaf {k} in tree {t} is invalid", round=j)
                pairs.extend((row[2 * i], row[2 * i + 1]) for i in range(width // 2))
            layer[k] = pairs
        return layer

    def _check_query(self, q: int, c: int, openings: List[Dict[int, List[Tuple]]]) -> None:
        expected = None
        for j, layer in enumerate(openings):
            length = 1 << (self.log_size - j)
            half = length // 2
            p = q % length
            k = p % half
            lo, hi = layer[k][c]
            opened = lo if p < half else hi
            if expected is not None and opened != expected:
                raise FoldConsistencyError(f"query {q} column {c} does not match the fold", round=j - 1)
            if j < self.n_rounds:
                inv_x = domain_point(self.log_size, j, k, self.field) ** -1
                expected = fold_pair(lo, hi, self.betas[j], inv_x)
            else:
                expected = opened

        p = q % (1 << (self.log_size - self.n_rounds))
        x = domain_point(self.log_size, self.n_rounds, p, self.field)
        if evaluate_univariate(self.final_polys[c], x) != expected:
            raise FoldConsistencyError(
                f"query {q} column {c} does not match the final polynomial", round=self.n_rounds
            )


# --- Standalone Low-Degree Test ---

def prove_proximity(
    codeword: galois.FieldArray,
    config: PcsConfig,
    transcript: TranscriptWriter,
    field: Optional[FieldType] = None,
) -> MerkleRoot:
    """
    Prove that `codeword` is close to a polynomial with len / blowup coefficients.

    The root is written to the proof; each beta is drawn after the previous root.
    """
    field = field if field is not None else type(codeword)
    codeword = embed(codeword, field)
    log_degree = log2(codeword.shape[0]) - config.log_blowup
    if log_degree < 0:
        raise ShapeError(f"codeword of {codeword.shape[0]} entries is shorter than the blowup")
    root, tree = commit_codeword(codeword, config)
    transcript.observe_digest(root)

    prover = FriProver(config, [codeword], [tree], log_degree, field)
    if prover.n_rounds == 0:
        prover.finalize(transcript)
    while prover.round < prover.n_rounds:
        prover.fold_round(transcript.sample(field), transcript)
    prover.query_phase(transcript, config.num_queries())
    return root


def verify_proximity(
    config: PcsConfig,
    transcript: TranscriptReader,
    log_degree: int,
    field: FieldType = FF3,
) -> galois.FieldArray:
    """
    Verify a proof written by prove_proximity.

    Returns:
        The final polynomial in coefficient form

    Raises:
        VerificationFailure: On any failed check
    """
    root = transcript.read_digest(config.hasher().digest_size)
    verifier = FriVerifier(config, [root], log_degree, field)
    if verifier.n_rounds == 0:
        verifier.read_final(transcript)
    while verifier.round < verifier.n_rounds:
        verifier.read_round(transcript.sample(field), transcript)
    verifier.verify_queries(transcript, config.num_queries())
    return verifier.final_polys[0]
