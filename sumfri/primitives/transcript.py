"""
Fiat-Shamir transcript over a serialized proof log.

The prover drives a TranscriptWriter, which appends typed records to a log and
absorbs them; the verifier drives a TranscriptReader over the same log, which
parses and absorbs identical bytes. Both derive challenges from the same
chaining state, so equal challenges on both sides is the synchronization test.

Record kinds:
    b"E" | u8 degree | u32 count | count * element_size bytes    (elements)
    b"D" | u16 size | size bytes                                   (digest)
    b"N" | u64                                                     (nonce)
"""

import hashlib
from typing import List, Optional

import galois

from sumfri.errors import TranscriptDesyncError
from sumfri.primitives.field import (
    FieldType,
    decode_elements,
    element_size,
    encode_elements,
    to_int_list,
)

STATE_SIZE = 32

KIND_ELEMENTS = b"E"
KIND_DIGEST = b"D"
KIND_NONCE = b"N"

# Bytes squeezed per base-field limb; 64 bits above the modulus keep the
# reduction bias negligible.
SAMPLE_LIMB_BYTES = 16


def _blake(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=STATE_SIZE).digest()


def element_record(values, field: FieldType) -> bytes:
    """Typed record for a scalar or 1-D array of `field` elements."""
    ints = to_int_list(values)
    header = KIND_ELEMENTS + field.degree.to_bytes(1, "little") + len(ints).to_bytes(4, "little")
    return header + encode_elements(ints, field)


def digest_record(digest: bytes) -> bytes:
    return KIND_DIGEST + len(digest).to_bytes(2, "little") + bytes(digest)


def nonce_record(nonce: int) -> bytes:
    return KIND_NONCE + nonce.to_bytes(8, "little")


# --- Transcript ---

class Transcript:
    """
    Fiat-Shamir challenger.

    The state is a BLAKE2b chaining value plus a squeeze counter. Every
    absorption hashes (state, counter, record) into a new state and resets the
    counter; every squeeze block hashes (state, counter) and bumps the counter.

    Attributes:
        label: Domain separation label
        state: Current chaining value
        counter: Squeeze blocks drawn since the last absorption
    """

    def __init__(self, label: str = "sumfri"):
        self.label = label
        self.state = _blake(b"sumfri-transcript:" + label.encode())
        self.counter = 0

    # --- Absorption ---

    def _absorb_record(self, record: bytes) -> None:
        self.state = _blake(self.state + self.counter.to_bytes(8, "little") + record)
        self.counter = 0

    def absorb(self, values, field: FieldType) -> None:
        """Bind public field elements (claims, points) without logging them."""
        self._absorb_record(element_record(values, field))

    def absorb_digest(self, digest: bytes) -> None:
        """Bind a public digest (e.g. a commitment root) without logging it."""
        self._absorb_record(digest_record(digest))

    # --- Sampling ---

    def sample_bytes(self, n: int) -> bytes:
        """Squeeze n pseudorandom bytes."""
        out = bytearray()
        while len(out) < n:
            out += _blake(self.state + b"squeeze" + self.counter.to_bytes(8, "little"))
            self.counter += 1
        return bytes(out[:n])

    def sample(self, field: FieldType):
        """Draw one challenge element of `field`."""
        return self.sample_many(field, 1)[0]

    def sample_many(self, field: FieldType, n: int) -> galois.FieldArray:
        """Draw n challenge elements of `field`."""
        p = field.characteristic
        raw = self.sample_bytes(n * field.degree * SAMPLE_LIMB_BYTES)
        values = []
        offset = 0
        for _ in range(n):
            value = 0
            scale = 1
            for _ in range(field.degree):
                limb = int.from_bytes(raw[offset:offset + SAMPLE_LIMB_BYTES], "little") % p
                value += limb * scale
                scale *= p
                offset += SAMPLE_LIMB_BYTES
            values.append(value)
        return field(values)

    def sample_indices(self, count: int, n_bits: int) -> List[int]:
        """Draw `count` indices uniformly in [0, 2^n_bits)."""
        if n_bits > 64:
            raise ValueError(f"n_bits must be <= 64, got {n_bits}")
        raw = self.sample_bytes(8 * count)
        mask = (1 << n_bits) - 1
        return [int.from_bytes(raw[8 * i:8 * i + 8], "little") & mask for i in range(count)]


# --- Prover Side ---

class TranscriptWriter(Transcript):
    """Transcript that records every observed value into the proof log."""

    def __init__(self, label: str = "sumfri"):
        super().__init__(label)
        self._log = bytearray()

    def _observe_record(self, record: bytes) -> None:
        self._log += record
        self._absorb_record(record)

    def observe(self, values, field: FieldType) -> None:
        """Write field elements (scalar or 1-D array) to the proof."""
        self._observe_record(element_record(values, field))

    def observe_digest(self, digest: bytes) -> None:
        self._observe_record(digest_record(digest))

    def observe_nonce(self, nonce: int) -> None:
        self._observe_record(nonce_record(nonce))

    def finish(self) -> bytes:
        """Return the proof log."""
        return bytes(self._log)


# --- Verifier Side ---

class TranscriptReader(Transcript):
    """Transcript that replays a proof log written by TranscriptWriter."""

    def __init__(self, log: bytes, label: str = "sumfri"):
        super().__init__(label)
        self._log = bytes(log)
        self._offset = 0

    @property
    def remaining(self) -> int:
        """Unread bytes left in the log."""
        return len(self._log) - self._offset

    def _take(self, n: int) -> bytes:
        if self.remaining < n:
            raise TranscriptDesyncError(
                f"proof ended early: need {n} bytes at offset {self._offset}, {self.remaining} left"
            )
        chunk = self._log[self._offset:self._offset + n]
        self._offset += n
        return chunk

    def _expect_kind(self, kind: bytes) -> None:
        found = self._take(1)
        if found != kind:
            raise TranscriptDesyncError(
                f"expected record {kind!r} at offset {self._offset - 1}, found {found!r}"
            )

    def read(self, field: FieldType, count: Optional[int] = None) -> galois.FieldArray:
        """
        Read the next element record.

        Args:
            field: Field the elements belong to
            count: Expected element count, or None to accept any count

        Returns:
            1-D FieldArray of the elements
        """
        start = self._offset
        self._expect_kind(KIND_ELEMENTS)
        degree = int.from_bytes(self._take(1), "little")
        if degree != field.degree:
            raise TranscriptDesyncError(f"expected extension degree {field.degree}, found {degree}")
        n = int.from_bytes(self._take(4), "little")
        if count is not None and n != count:
            raise TranscriptDesyncError(f"expected {count} elements, found {n}")
        payload = self._take(n * element_size(field))
        try:
            values = decode_elements(payload, field, n)
        except ValueError as e:
            raise TranscriptDesyncError(f"malformed element record: {e}") from e
        self._absorb_record(self._log[start:self._offset])
        return values

    def read_element(self, field: FieldType):
        """Read a record holding exactly one element and return it as a scalar."""
        return self.read(field, count=1)[0]

    def read_digest(self, size: Optional[int] = None) -> bytes:
        start = self._offset
        self._expect_kind(KIND_DIGEST)
        n = int.from_bytes(self._take(2), "little")
        if size is not None and n != size:
            raise TranscriptDesyncError(f"expected {size}-byte digest, found {n} bytes")
        digest = self._take(n)
        self._absorb_record(self._log[start:self._offset])
        return digest

    def read_nonce(self) -> int:
        start = self._offset
        self._expect_kind(KIND_NONCE)
        nonce = int.from_bytes(self._take(8), "little")
        self._absorb_record(self._log[start:self._offset])
        return nonce

    def finish(self) -> None:
        """Require the whole log to have been consumed."""
        if self.remaining:
            raise TranscriptDesyncError(f"{self.remaining} unread bytes at end of proof")
