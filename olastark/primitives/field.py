"""Goldilocks field GF(p) and cubic extension GF(p^3).

Uses galois library for all field arithmetic. FF and FF3 are the field types.

FF3 is constructed directly from its irreducible polynomial; galois takes a few
seconds to build the extension the first time this module is imported.
"""

from typing import List

import galois
import numpy as np

# --- Field Construction ---

GOLDILOCKS_PRIME = 0xFFFFFFFF00000001
FIELD_EXTENSION_DEGREE = 3

FF = galois.GF(GOLDILOCKS_PRIME)
"""Base field GF(p) - Goldilocks prime field."""

_IRREDUCIBLE = galois.Poly([1, 0, GOLDILOCKS_PRIME - 1, GOLDILOCKS_PRIME - 1], field=FF)

FF3 = galois.GF(GOLDILOCKS_PRIME**FIELD_EXTENSION_DEGREE, irreducible_poly=_IRREDUCIBLE)
"""Cubic extension field GF(p^3) with irreducible polynomial x^3 - x - 1."""


# --- Coefficient Order Conversion ---
# Galois uses descending order [a2, a1, a0], we use ascending [a0, a1, a2].


def ff3(coeffs: List[int]) -> FF3:
    """Construct FF3 element from ascending-order coefficients [a0, a1, a2]."""
    return FF3.Vector([c % GOLDILOCKS_PRIME for c in coeffs[::-1]])


def ff3_coeffs(elem: FF3) -> List[int]:
    """Extract ascending-order coefficients [a0, a1, a2] from FF3 element."""
    return [int(c) for c in elem.vector()[::-1]]


def ff3_array(c0, c1, c2) -> FF3:
    """Build an FF3 array from three ascending-order coefficient sequences."""
    p = GOLDILOCKS_PRIME
    ints = [int(a) + int(b) * p + int(c) * p * p for a, b, c in zip(c0, c1, c2)]
    return FF3(np.array(ints, dtype=object))


def ff3_components(arr: FF3) -> List[List[int]]:
    """Split an FF3 array into its three ascending-order coefficient lists."""
    p = GOLDILOCKS_PRIME
    c0, c1, c2 = [], [], []
    for v in arr:
        x = int(v)
        c0.append(x % p)
        c1.append((x // p) % p)
        c2.append(x // (p * p))
    return [c0, c1, c2]


def lift(values) -> FF3:
    """Embed base-field values (array or scalar) into FF3."""
    if np.ndim(values) == 0:
        return FF3(int(values))
    return FF3(np.array([int(v) for v in values], dtype=object))


def ff_array(values) -> FF:
    """Build an FF array from integers, reducing them modulo p."""
    return FF(np.array([int(v) % GOLDILOCKS_PRIME for v in values], dtype=object))


# --- Domain Support ---

# Domain shift for coset LDE
SHIFT = 7

# Precomputed roots of unity: W[n] is a primitive 2^n-th root of unity
W: List[int] = [
    1,
    18446744069414584320,
    281474976710656,
    16777216,
    4096,
    64,
    8,
    2198989700608,
    4404853092538523347,
    6434636298004421797,
    4255134452441852017,
    9113133275150391358,
    4355325209153869931,
    4308460244895131701,
    7126024226993609386,
    1873558160482552414,
    8167150655112846419,
    5718075921287398682,
    3411401055030829696,
    8982441859486529725,
    1971462654193939361,
    6553637399136210105,
    8124823329697072476,
    5936499541590631774,
    2709866199236980323,
    8877499657461974390,
    3757607247483852735,
    4969973714567017225,
    2147253751702802259,
    2530564950562219707,
    1905180297017055339,
    3524815499551269279,
    7277203076849721926,
]


def get_omega(n_bits: int) -> int:
    """Return primitive 2^n_bits-th root of unity."""
    return W[n_bits]


def get_omega_inv(n_bits: int) -> int:
    """Return inverse of primitive 2^n_bits-th root of unity."""
    return pow(W[n_bits], GOLDILOCKS_PRIME - 2, GOLDILOCKS_PRIME)


def inv_mod(x: int) -> int:
    """Modular inverse in the base field."""
    if x % GOLDILOCKS_PRIME == 0:
        raise ZeroDivisionError("0 has no inverse in GF(p)")
    return pow(x, GOLDILOCKS_PRIME - 2, GOLDILOCKS_PRIME)


def log2_exact(size: int) -> int:
    """Compute log2 of size (must be power of 2)."""
    if size <= 0 or size & (size - 1):
        raise ValueError(f"{size} is not a power of two")
    return size.bit_length() - 1
