"""Polynomial helpers shared by prover and verifier.

The protocol only needs three things from polynomials: interpolation of trace
columns, evaluation of coefficient vectors at an extension-field point, and the
standard selector polynomials of a multiplicative subgroup.
"""

from typing import List

import numpy as np

from olastark.primitives.field import (
    FF,
    FF3,
    GOLDILOCKS_PRIME,
    SHIFT,
    ff3_array,
    get_omega,
    inv_mod,
)
from olastark.primitives.batch_inverse import batch_inverse


def coset_points(size: int, shift: int = SHIFT) -> FF:
    """Points shift * omega^i of the coset of the given size."""
    omega = get_omega(size.bit_length() - 1)
    out = []
    acc = shift % GOLDILOCKS_PRIME
    for _ in range(size):
        out.append(acc)
        acc = acc * omega % GOLDILOCKS_PRIME
    return FF(np.array(out, dtype=object))


def ext_powers(point: FF3, count: int) -> List[List[int]]:
    """Coefficient-wise powers of an FF3 point: three lists of count entries."""
    comps: List[List[int]] = [[], [], []]
    acc = FF3(1)
    for _ in range(count):
        c = [int(x) for x in acc.vector()[::-1]]
        for k in range(3):
            comps[k].append(c[k])
        acc = acc * point
    return comps


def eval_coeffs_at(coeffs: List[List[int]], powers: List[List[int]]) -> List[FF3]:
    """Evaluate several base-field coefficient vectors at one FF3 point.

    powers comes from ext_powers(point, n); each evaluation reduces to three
    base-field inner products.
    """
    p = GOLDILOCKS_PRIME
    c0, c1, c2 = [], [], []
    for col in coeffs:
        c0.append(sum(a * b for a, b in zip(col, powers[0])) % p)
        c1.append(sum(a * b for a, b in zip(col, powers[1])) % p)
        c2.append(sum(a * b for a, b in zip(col, powers[2])) % p)
    return list(ff3_array(c0, c1, c2))


# --- Selectors ---


def vanishing_at(x, n: int):
    """Z_H(x) = x^n - 1 for scalars or arrays of either field."""
    return x ** n - type(x)(1)


def selectors_at(x, n: int):
    """Return (L_first, L_last, transition, Z_H) evaluated at x (FF3 scalar).

    L_j(x) = g^j / n * (x^n - 1) / (x - g^j); transition(x) = x - g^(n-1).
    """
    g_last = FF3(inv_mod(get_omega(n.bit_length() - 1)))
    zh = vanishing_at(x, n)
    n_inv = FF3(inv_mod(n))
    one = FF3(1)
    l_first = zh * n_inv / (x - one)
    l_last = zh * n_inv * g_last / (x - g_last)
    return l_first, l_last, x - g_last, zh


def selectors_on_coset(n: int, blowup: int, shift: int = SHIFT):
    """Selector arrays over the LDE coset of size n * blowup (all FF).

    Returns (L_first, L_last, transition, Z_H^-1).
    """
    size = n * blowup
    x = coset_points(size, shift)
    one = FF(1)
    g_last = FF(inv_mod(get_omega(n.bit_length() - 1)))
    n_inv = FF(inv_mod(n))

    zh = x ** n - one
    zh_inv = batch_inverse(zh)
    l_first = zh * n_inv * batch_inverse(x - one)
    l_last = zh * n_inv * g_last * batch_inverse(x - g_last)
    return l_first, l_last, x - g_last, zh_inv


def selectors_on_subgroup(n: int):
    """Selector arrays on the trace subgroup itself (for native checks)."""
    l_first = FF.Zeros(n)
    l_first[0] = 1
    l_last = FF.Zeros(n)
    l_last[n - 1] = 1
    transition = FF.Ones(n)
    transition[n - 1] = 0
    return l_first, l_last, transition

