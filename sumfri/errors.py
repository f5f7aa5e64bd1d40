"""Error taxonomy shared by every protocol layer.

Three families:
    - ShapeError: caller misuse (variable counts, degrees, domain sizes),
      raised eagerly before anything is written to a transcript.
    - VerificationFailure and subclasses: the proof is rejected. Never retried.
    - TranscriptDesyncError: the reader and the proof log disagree on shape.
      Treated as fatal to the calling session, not as a plain reject.
"""

from typing import Optional


class SumfriError(Exception):
    """Base class for all library errors."""


class ShapeError(SumfriError, ValueError):
    """Mismatched variable counts, degree declarations or domain sizes."""


class TranscriptDesyncError(SumfriError):
    """Reader consumed more data than was written, or data of another shape."""


# --- Verification Failures ---

class VerificationFailure(SumfriError):
    """Any algebraic or commitment check failed; the proof must be rejected."""

    def __init__(self, message: str, round: Optional[int] = None):
        self.round = round
        if round is not None:
            message = f"{message} (round {round})"
        super().__init__(message)


class SumMismatch(VerificationFailure):
    """Round polynomial evaluated at 0 and 1 does not sum to the running claim."""


class DegreeMismatch(VerificationFailure):
    """Round message has more coefficients than the composition degree allows."""


class ClaimReductionFailure(VerificationFailure):
    """Final reduced claim does not match the composition of the oracle values."""


class FoldConsistencyError(VerificationFailure):
    """Opened FRI values do not satisfy the folding relation."""


class MerkleVerificationError(VerificationFailure):
    """Merkle authentication path does not lead to the committed root."""


class FinalDegreeBoundExceeded(VerificationFailure):
    """Explicit final FRI polynomial has more coefficients than allowed."""


class ProofOfWorkError(VerificationFailure):
    """Grinding nonce does not meet the configured proof-of-work difficulty."""
