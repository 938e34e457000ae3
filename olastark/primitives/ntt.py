"""Number Theoretic Transform for Goldilocks field.

Radix-2 Cooley-Tukey over galois arrays. Each butterfly stage is a single
vectorized operation over all blocks of that stage.
"""

from functools import lru_cache

import numpy as np

from olastark.primitives.field import (
    FF,
    GOLDILOCKS_PRIME,
    SHIFT,
    get_omega,
    get_omega_inv,
    inv_mod,
    log2_exact,
)

# --- NTT Engine ---


class NTT:
    """NTT engine for polynomial operations over Goldilocks field."""

    def __init__(self, domain_size: int) -> None:
        """Initialize NTT engine for given domain size."""
        self.n = domain_size
        self.n_bits = log2_exact(domain_size)

    def ntt(self, coeffs: FF) -> FF:
        """Forward NTT: coefficients -> evaluations over the subgroup."""
        return _transform(_fit(coeffs, self.n), get_omega(self.n_bits))

    def intt(self, evals: FF) -> FF:
        """Inverse NTT: evaluations -> coefficients."""
        result = _transform(_fit(evals, self.n), get_omega_inv(self.n_bits))
        return result * FF(inv_mod(self.n))

    def coset_ntt(self, coeffs: FF, shift: int = SHIFT) -> FF:
        """Evaluate coefficients on the coset shift * <omega>."""
        coeffs = _fit(coeffs, self.n)
        return self.ntt(coeffs * _powers_array(shift, self.n))

    def coset_intt(self, evals: FF, shift: int = SHIFT) -> FF:
        """Interpolate evaluations given on the coset shift * <omega>."""
        coeffs = self.intt(evals)
        return coeffs * _powers_array(inv_mod(shift), self.n)


def extend_coeffs(coeffs: FF, extended_size: int, shift: int = SHIFT) -> FF:
    """Evaluate a coefficient vector on the coset of size extended_size."""
    return NTT(extended_size).coset_ntt(coeffs, shift)


def low_degree_extend(evals: FF, blowup: int, shift: int = SHIFT) -> FF:
    """Extend subgroup evaluations to the coset of size len(evals) * blowup."""
    n = len(evals)
    coeffs = NTT(n).intt(evals)
    return extend_coeffs(coeffs, n * blowup, shift)


# --- Helpers ---


def _fit(values: FF, size: int) -> FF:
    """Zero-pad (or reject) a 1D array to exactly size entries."""
    if len(values) == size:
        return values
    if len(values) > size:
        raise ValueError(f"Input of length {len(values)} exceeds domain size {size}")
    out = FF.Zeros(size)
    out[: len(values)] = values
    return out


def _transform(values: FF, omega: int) -> FF:
    n = len(values)
    if n == 1:
        return values.copy()

    a = values[_bit_reverse_indices(n)]
    length = 2
    while length <= n:
        half = length // 2
        twiddles = FF(np.array(_powers(pow(omega, n // length, GOLDILOCKS_PRIME), half), dtype=object))
        blocks = a.reshape(n // length, length)
        even = blocks[:, :half]
        odd = blocks[:, half:] * twiddles

        out = FF.Zeros((n // length, length))
        out[:, :half] = even + odd
        out[:, half:] = even - odd
        a = out.reshape(n)
        length *= 2
    return a


@lru_cache(maxsize=None)
def _bit_reverse_indices(n: int) -> np.ndarray:
    bits = log2_exact(n)
    return np.array([int(format(i, f"0{bits}b")[::-1], 2) for i in range(n)], dtype=np.int64)


@lru_cache(maxsize=None)
def _powers(base: int, count: int) -> tuple:
    """base^0 .. base^(count-1) as plain integers."""
    out = []
    acc = 1
    for _ in range(count):
        out.append(acc)
        acc = acc * base % GOLDILOCKS_PRIME
    return tuple(out)


def _powers_array(base: int, count: int) -> FF:
    return FF(np.array(_powers(base % GOLDILOCKS_PRIME, count), dtype=object))
