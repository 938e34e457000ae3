"""Fiat-Shamir transcript implementation using a blake2b duplex.

Everything the prover sends is absorbed with an observe_* call; every verifier
challenge is squeezed with a sample_* call. Observing after sampling
invalidates the squeeze counter, so a challenge always depends on every value
absorbed before it.
"""

from hashlib import blake2b
from typing import Iterable, List

from olastark.primitives.field import FF3, GOLDILOCKS_PRIME, ff3, ff3_coeffs

DIGEST_SIZE = 32


class Challenger:
    """Duplex sponge over blake2b producing base-field and FF3 challenges."""

    def __init__(self, domain_separator: bytes = b"olastark"):
        self.state = blake2b(domain_separator, digest_size=DIGEST_SIZE).digest()
        self.pending = bytearray()
        self.squeeze_counter = 0

    # --- Absorb ---

    def observe_element(self, value: int) -> None:
        self.pending += (int(value) % GOLDILOCKS_PRIME).to_bytes(8, "little")
        self.squeeze_counter = 0

    def observe_elements(self, values: Iterable[int]) -> None:
        for v in values:
            self.observe_element(v)

    def observe_ext(self, value: FF3) -> None:
        self.observe_elements(ff3_coeffs(value))

    def observe_digest(self, digest: bytes) -> None:
        self.pending += b"D" + digest
        self.squeeze_counter = 0

    def _update_state(self) -> None:
        if self.pending:
            self.state = blake2b(self.state + bytes(self.pending), digest_size=DIGEST_SIZE).digest()
            self.pending = bytearray()

    # --- Squeeze ---

    def _squeeze(self) -> bytes:
        self._update_state()
        out = blake2b(
            self.state + self.squeeze_counter.to_bytes(8, "little"), digest_size=DIGEST_SIZE
        ).digest()
        self.squeeze_counter += 1
        return out

    def sample(self) -> int:
        """Sample a base-field element (128 bits reduced mod p)."""
        return int.from_bytes(self._squeeze()[:16], "little") % GOLDILOCKS_PRIME

    def sample_ext(self) -> FF3:
        """Sample a cubic extension element."""
        return ff3([self.sample() for _ in range(3)])

    def sample_indices(self, count: int, size: int) -> List[int]:
        """Sample count indices in [0, size), duplicates allowed."""
        return [int.from_bytes(self._squeeze()[:8], "little") % size for _ in range(count)]

    def get_state(self) -> bytes:
        self._update_state()
        return self.state

    # --- Proof of work ---

    def grind(self, bits: int) -> int:
        """Find the smallest nonce whose digest with the current state has bits leading zeros."""
        state = self.get_state()
        nonce = 0
        while not _pow_ok(state, nonce, bits):
            nonce += 1
        self.observe_element(nonce)
        return nonce

    def check_witness(self, bits: int, nonce: int) -> bool:
        ok = _pow_ok(self.get_state(), nonce, bits)
        self.observe_element(nonce)
        return ok


def _pow_ok(state: bytes, nonce: int, bits: int) -> bool:
    if bits == 0:
        return True
    digest = blake2b(state + nonce.to_bytes(8, "little"), digest_size=DIGEST_SIZE).digest()
    return int.from_bytes(digest, "big") >> (8 * DIGEST_SIZE - bits) == 0
