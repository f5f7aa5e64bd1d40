"""Polynomial representations used by sumcheck, FRI and the PCS.

Hypercube indexing convention: index i = sum_j x_j * 2^j, so variable x_0 is
the lowest index bit. Binding a variable always binds the lowest remaining
one, pairing entries (2k, 2k + 1).

A multilinear polynomial has two bases:
    - evaluations e[i] = g(bits(i))              (Lagrange basis)
    - monomial coefficients c[i], g(X) = sum_i c[i] prod_{bit_j(i)=1} X_j
The Mobius transform maps e -> c and the zeta transform maps c -> e. With the
monomial basis, the univariate P(Z) = sum_i c[i] Z^i equals
g(Z, Z^2, Z^4, ..., Z^(2^(n-1))).
"""

from typing import List, Sequence

import galois

from sumfri.errors import ShapeError
from sumfri.primitives.field import FieldType, coset_shift, embed
from sumfri.primitives.ntt import NTT, log2


# --- Multilinear Polynomial ---

class MultilinearPolynomial:
    """Multilinear polynomial given by its 2^n hypercube evaluations.

    Immutable: operations return new arrays or polynomials.
    """

    def __init__(self, evaluations: galois.FieldArray):
        if not isinstance(evaluations, galois.FieldArray) or evaluations.ndim != 1:
            raise ShapeError("evaluations must be a 1-D galois FieldArray")
        self.n_vars = log2(evaluations.shape[0])
        self.field = type(evaluations)
        self._evals = evaluations.copy()

    @classmethod
    def random(cls, n_vars: int, field: FieldType, seed=None) -> "MultilinearPolynomial":
        """Uniformly random polynomial with n_vars variables."""
        return cls(field.Random(1 << n_vars, seed=seed))

    @classmethod
    def from_coefficients(cls, coefficients: galois.FieldArray) -> "MultilinearPolynomial":
        """Build from monomial coefficients (or univariate coefficients)."""
        return cls(zeta_transform(coefficients))

    @property
    def evaluations(self) -> galois.FieldArray:
        return self._evals.copy()

    def __len__(self) -> int:
        return self._evals.shape[0]

    def coefficients(self) -> galois.FieldArray:
        """Monomial-basis coefficients."""
        return mobius_transform(self._evals)

    def evaluate(self, point: Sequence):
        """Evaluate at an arbitrary point (len(point) == n_vars)."""
        if len(point) != self.n_vars:
            raise ShapeError(f"point has {len(point)} coordinates, polynomial has {self.n_vars} variables")
        field = _common_field(self.field, point)
        values = embed(self._evals, field)
        for r in point:
            values = fold_low(values, embed(r, field))
        return values[0]

    def fix_low_variable(self, r) -> "MultilinearPolynomial":
        """Bind x_0 = r, returning a polynomial in the remaining variables."""
        if self.n_vars == 0:
            raise ShapeError("no variable left to bind")
        field = _common_field(self.field, [r])
        return MultilinearPolynomial(fold_low(embed(self._evals, field), embed(r, field)))


def fold_low(values: galois.FieldArray, r) -> galois.FieldArray:
    """Bind the lowest variable of an evaluation table to r."""
    lo = values[0::2]
    hi = values[1::2]
    return lo + r * (hi - lo)


def _common_field(field: FieldType, point: Sequence) -> FieldType:
    """Widest field among `field` and the point coordinates."""
    for r in point:
        if isinstance(r, galois.FieldArray) and type(r).degree > field.degree:
            field = type(r)
    return field


# --- Equality Polynomial ---

def eq_evaluations(point: Sequence, field: FieldType) -> galois.FieldArray:
    """Table of eq(point, x) for every hypercube point x."""
    table = field.Ones(1)
    one = field(1)
    for r in point:
        r = embed(r, field)
        out = field.Zeros(2 * table.shape[0])
        out[: table.shape[0]] = table * (one - r)
        out[table.shape[0]:] = table * r
        table = out
    return table


def eq_eval(a: Sequence, b: Sequence, field: FieldType):
    """eq(a, b) = prod_j (a_j b_j + (1 - a_j)(1 - b_j))."""
    if len(a) != len(b):
        raise ShapeError(f"eq arguments differ in length: {len(a)} != {len(b)}")
    one = field(1)
    result = one
    for x, y in zip(a, b):
        x = embed(x, field)
        y = embed(y, field)
        result = result * (x * y + (one - x) * (one - y))
    return result


# --- Basis Changes ---

def mobius_transform(evaluations: galois.FieldArray) -> galois.FieldArray:
    """Hypercube evaluations -> multilinear monomial coefficients."""
    return _subset_transform(evaluations, subtract=True)


def zeta_transform(coefficients: galois.FieldArray) -> galois.FieldArray:
    """Multilinear monomial coefficients -> hypercube evaluations."""
    return _subset_transform(coefficients, subtract=False)


def _subset_transform(values: galois.FieldArray, subtract: bool) -> galois.FieldArray:
    n_vars = log2(values.shape[0])
    out = values.copy()
    for j in range(n_vars):
        blocks = out.reshape(-1, 2, 1 << j)
        if subtract:
            blocks[:, 1, :] = blocks[:, 1, :] - blocks[:, 0, :]
        else:
            blocks[:, 1, :] = blocks[:, 1, :] + blocks[:, 0, :]
        out = blocks.reshape(-1)
    return out


def univariate_point(z, n_vars: int) -> List:
    """Multilinear point (z, z^2, z^4, ...) matching P(z) = sum c_i z^i."""
    point = []
    for _ in range(n_vars):
        point.append(z)
        z = z * z
    return point


# --- Univariate Helpers ---

def interpolate_coefficients(evaluations: galois.FieldArray) -> galois.FieldArray:
    """Coefficients (ascending) of the polynomial taking evaluations[t] at X = t."""
    field = type(evaluations)
    n = evaluations.shape[0]
    xs = field(list(range(n)))
    poly = galois.lagrange_poly(xs, evaluations)
    coeffs = field.Zeros(n)
    ascending = poly.coeffs[::-1]
    coeffs[: ascending.shape[0]] = ascending
    return coeffs


def evaluate_univariate(coefficients: galois.FieldArray, x):
    """Horner evaluation of ascending coefficients at x."""
    field = type(coefficients)
    if coefficients.shape[0] == 0:
        return field(0)
    return galois.Poly(coefficients[::-1], field=field)(embed(x, field))


# --- Reed-Solomon Encoding ---

def reed_solomon_encode(
    coefficients: galois.FieldArray,
    log_blowup: int,
    shift=None,
) -> galois.FieldArray:
    """Evaluate the polynomial on the coset shift * <omega> of size blowup * len.

    Args:
        coefficients: Ascending univariate coefficients (power-of-2 length)
        log_blowup: log2 of the inverse rate
        shift: Coset shift (default: primitive element of the base field)

    Returns:
        Codeword of length len(coefficients) << log_blowup
    """
    field = type(coefficients)
    n = coefficients.shape[0]
    log2(n)
    size = n << log_blowup
    padded = field.Zeros(size)
    padded[:n] = coefficients
    if shift is None:
        shift = coset_shift(field)
    return NTT(size, field).coset_ntt(padded, shift)

