"""Number Theoretic Transform over two-adic subgroups."""

import numpy as np

from sumfri.errors import ShapeError
from sumfri.primitives.field import FF, FieldType, embed, get_omega, powers

# --- NTT Engine ---

class NTT:
    """Radix-2 NTT engine for one domain size.

    Values may live in any extension of the base field; twiddles are computed
    in the base field and embedded.
    """

    def __init__(self, domain_size: int, field: FieldType = FF) -> None:
        """Initialize NTT engine for given domain size."""
        self.n = domain_size
        self.n_bits = log2(domain_size)
        self.field = field

        # Precompute twiddle factors (first half of the roots)
        omega = embed(get_omega(self.n_bits, field), field)
        half = max(domain_size // 2, 1)
        self.roots = powers(omega, half)
        self.inv_roots = powers(omega ** -1, half)
        self.n_inv = field(domain_size) ** -1
        self._bit_rev = _bit_reverse_permutation(domain_size)

    def ntt(self, coeffs) -> np.ndarray:
        """Forward NTT: coefficients -> evaluations on <omega>."""
        return self._transform(self._check(coeffs), self.roots)

    def intt(self, evals) -> np.ndarray:
        """Inverse NTT: evaluations on <omega> -> coefficients."""
        return self._transform(self._check(evals), self.inv_roots) * self.n_inv

    def coset_ntt(self, coeffs, shift) -> np.ndarray:
        """Evaluate on the coset shift * <omega>."""
        coeffs = self._check(coeffs)
        scale = powers(embed(shift, self.field), self.n)
        return self._transform(coeffs * scale, self.roots)

    def coset_intt(self, evals, shift) -> np.ndarray:
        """Interpolate evaluations given on the coset shift * <omega>."""
        coeffs = self.intt(evals)
        scale = powers(embed(shift, self.field) ** -1, self.n)
        return coeffs * scale

    # --- Internal ---

    def _check(self, values):
        values = embed(values, self.field)
        if values.ndim != 1 or values.shape[0] != self.n:
            raise ShapeError(f"expected {self.n} values, got shape {values.shape}")
        return values

    def _transform(self, values, twiddles):
        n = self.n
        a = values[self._bit_rev]
        m = 1
        while m < n:
            w = twiddles[::n // (2 * m)]
            blocks = a.reshape(n // (2 * m), 2 * m)
            lo = blocks[:, :m]
            hi = blocks[:, m:] * w
            out = self.field.Zeros((n // (2 * m), 2 * m))
            out[:, :m] = lo + hi
            out[:, m:] = lo - hi
            a = out.reshape(n)
            m *= 2
        return a


# --- Helpers ---

def log2(size: int) -> int:
    """Compute log2 of size (must be power of 2)."""
    if size <= 0 or size & (size - 1):
        raise ShapeError(f"domain size must be a power of 2, got {size}")
    return size.bit_length() - 1


def _bit_reverse_permutation(n: int) -> np.ndarray:
    """Index permutation reversing the low log2(n) bits."""
    bits = log2(n)
    idx = np.arange(n)
    rev = np.zeros(n, dtype=np.int64)
    for b in range(bits):
        rev |= ((idx >> b) & 1) << (bits - 1 - b)
    return rev
