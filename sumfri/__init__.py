"""
sumfri

Field-generic sumcheck, FRI and a multilinear polynomial commitment built from
them, driven by a Fiat-Shamir transcript over a serialized proof log.

This package provides:
- Goldilocks field and cubic extension (via galois)
- Merkle vector commitments over pluggable hashes
- Sumcheck with pluggable compositions
- FRI low-degree testing and the sumcheck-linked PCS
- Batch opening of many evaluation claims
"""

__version__ = "0.1.0"
