"""
Goldilocks field and cubic extension using galois library.

Every protocol algorithm is generic over a galois FieldArray class. FF and FF3
are the defaults: FF = GF(p) with the Goldilocks prime, FF3 = GF(p^3) with
irreducible polynomial x^3 - x - 1. A galois array is the packed form of a
field element; numpy vectorization plays the role of SIMD lanes.

Elements cross the byte boundary (hashing, transcript) as `degree` limbs, each
a little-endian base-field coefficient in ascending order.
"""

from typing import List, Sequence, Type

import galois
import numpy as np

# --- Field Construction ---

GOLDILOCKS_PRIME = 0xFFFFFFFF00000001

FF = galois.GF(GOLDILOCKS_PRIME)
"""Base field GF(p) - Goldilocks prime field."""

# In galois, polynomial coefficients are [x^3, x^2, x^1, x^0]
# x^3 - x - 1 = x^3 + 0*x^2 + (p-1)*x + (p-1)
_irr_poly = galois.Poly([1, 0, GOLDILOCKS_PRIME - 1, GOLDILOCKS_PRIME - 1], field=FF)
FF3 = galois.GF(GOLDILOCKS_PRIME**3, irreducible_poly=_irr_poly)
"""Cubic extension field GF(p^3) with irreducible polynomial x^3 - x - 1."""

FieldType = Type[galois.FieldArray]


# --- Coefficient Order Conversion ---
# Galois uses descending order [a2, a1, a0], we use ascending [a0, a1, a2].

def ff3(coeffs: List[int]) -> galois.FieldArray:
    """Construct FF3 element from ascending-order coefficients [a0, a1, a2]."""
    return FF3.Vector(coeffs[::-1])


def ff3_coeffs(elem) -> List[int]:
    """Extract ascending-order coefficients [a0, a1, a2] from FF3 element."""
    return [int(c) for c in elem.vector()[::-1]]


# --- Embedding ---

def base_field(field: FieldType) -> FieldType:
    """Prime subfield of `field` (the field itself for prime fields)."""
    if field.degree == 1:
        return field
    return field.prime_subfield


def to_int_list(values) -> List[int]:
    """Integer representations of a scalar, array or sequence of elements."""
    if isinstance(values, galois.FieldArray):
        values = values.view(np.ndarray)
    raw = np.asarray(values, dtype=object)
    return [int(v) for v in raw.ravel()]


def embed(values, field: FieldType):
    """Map elements of a subfield (or plain ints) into `field`.

    Uses the integer representation, which for a base-field element is the
    constant coefficient of the extension element.
    """
    if isinstance(values, field):
        return values
    if isinstance(values, galois.FieldArray):
        values = values.view(np.ndarray)
    raw = np.asarray(values, dtype=object)
    if raw.ndim == 0:
        return field(int(raw))
    return field(to_int_list(raw)).reshape(raw.shape)


# --- Domains ---

def get_omega(n_bits: int, field: FieldType = FF):
    """Return primitive 2^n_bits-th root of unity of the base field of `field`."""
    fp = base_field(field)
    two_adicity = _two_adicity(fp.order - 1)
    if n_bits > two_adicity:
        raise ValueError(f"n_bits must be <= {two_adicity}, got {n_bits}")
    return fp.primitive_root_of_unity(1 << n_bits)


def coset_shift(field: FieldType = FF):
    """Multiplicative coset shift used for low-degree extensions."""
    return base_field(field).primitive_element


def _two_adicity(n: int) -> int:
    bits = 0
    while n % 2 == 0:
        n //= 2
        bits += 1
    return bits


# --- Byte Encoding ---

def limb_size(field: FieldType) -> int:
    """Bytes per base-field coefficient."""
    return (field.characteristic.bit_length() + 7) // 8


def element_size(field: FieldType) -> int:
    """Bytes per encoded element of `field`."""
    return limb_size(field) * field.degree


def encode_elements(values, field: FieldType) -> bytes:
    """Serialize elements of `field` as ascending little-endian limbs."""
    p = field.characteristic
    size = limb_size(field)
    out = bytearray()
    for v in to_int_list(values):
        for _ in range(field.degree):
            out += (v % p).to_bytes(size, "little")
            v //= p
    return bytes(out)


def decode_elements(data: bytes, field: FieldType, count: int):
    """Parse `count` elements of `field` from `data`.

    Raises:
        ValueError: If the length is wrong or a limb is not canonical.
    """
    p = field.characteristic
    size = limb_size(field)
    if len(data) != count * size * field.degree:
        raise ValueError(
            f"expected {count * size * field.degree} bytes for {count} elements, got {len(data)}"
        )
    ints = []
    offset = 0
    for _ in range(count):
        value = 0
        scale = 1
        for _ in range(field.degree):
            limb = int.from_bytes(data[offset:offset + size], "little")
            if limb >= p:
                raise ValueError(f"non-canonical limb {limb} at byte offset {offset}")
            value += limb * scale
            scale *= p
            offset += size
        ints.append(value)
    return field(ints)


def powers(base, count: int) -> galois.FieldArray:
    """[1, base, base^2, ..., base^(count-1)] in the field of `base`."""
    field = type(base)
    result = field.Ones(count)
    for i in range(1, count):
        result[i] = result[i - 1] * base
    return result


def field_sum(values: Sequence):
    """Sum of a non-empty sequence of elements or equal-shape arrays."""
    total = values[0]
    for v in values[1:]:
        total = total + v
    return total
