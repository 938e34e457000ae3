"""DEEP composition: the single polynomial FRI is run on.

With f_i the columns opened at zeta and g_j the columns opened at g * zeta:

    F(x) = sum_i a^i * (f_i(x) - f_i(zeta)) / (x - zeta)
         + sum_j a^(m+j) * (g_j(x) - g_j(g * zeta)) / (x - g * zeta)

The columns are base-field polynomials and a is in FF3, so each weighted sum
splits into three base-field linear combinations (one per coordinate of a^i)
that are assembled into an FF3 value at the end.
"""

from typing import List, Sequence, Tuple

from olastark.primitives.batch_inverse import batch_inverse
from olastark.primitives.field import FF, FF3, GOLDILOCKS_PRIME, ff3, ff3_array, ff3_coeffs, lift
from olastark.primitives.polynomial import coset_points

P = GOLDILOCKS_PRIME


def deep_coefficients(alpha: FF3, count: int) -> List[FF3]:
    out = []
    acc = FF3(1)
    for _ in range(count):
        out.append(acc)
        acc = acc * alpha
    return out


def _components(coeffs: Sequence[FF3]) -> List[List[int]]:
    """Three lists: coordinate k of every coefficient."""
    comps: List[List[int]] = [[], [], []]
    for c in coeffs:
        for k, v in enumerate(ff3_coeffs(c)):
            comps[k].append(v)
    return comps


def _weighted_evals(coeffs: Sequence[FF3], evals: Sequence[FF3]) -> FF3:
    acc = FF3(0)
    for c, v in zip(coeffs, evals):
        acc = acc + c * v
    return acc


def _split(alpha: FF3, m: int, k: int) -> Tuple[List[FF3], List[FF3]]:
    coeffs = deep_coefficients(alpha, m + k)
    return coeffs[:m], coeffs[m:]


# --- Prover ---


def _combine_columns(comps: List[List[int]], columns: Sequence[FF], size: int) -> FF3:
    parts = []
    for k in range(3):
        acc = FF.Zeros(size)
        for c, col in zip(comps[k], columns):
            if c:
                acc = acc + FF(c) * col
        parts.append(acc)
    return ff3_array(*parts)


def deep_on_lde(
    zeta_columns: Sequence[FF],
    next_columns: Sequence[FF],
    zeta_evals: Sequence[FF3],
    next_evals: Sequence[FF3],
    zeta: FF3,
    zeta_next: FF3,
    alpha: FF3,
    lde_size: int,
) -> FF3:
    """F on the whole LDE coset, from the columns' LDE values."""
    c_zeta, c_next = _split(alpha, len(zeta_columns), len(next_columns))
    x = lift(coset_points(lde_size))

    num_zeta = _combine_columns(_components(c_zeta), zeta_columns, lde_size) - _weighted_evals(c_zeta, zeta_evals)
    num_next = _combine_columns(_components(c_next), next_columns, lde_size) - _weighted_evals(c_next, next_evals)
    return num_zeta * batch_inverse(x - zeta) + num_next * batch_inverse(x - zeta_next)


# --- Verifier ---


def _combine_row(comps: List[List[int]], row: Sequence[int]) -> FF3:
    parts = [sum(c * int(v) for c, v in zip(comps[k], row)) % P for k in range(3)]
    return ff3(parts)


def deep_at_point(
    zeta_row: Sequence[int],
    next_row: Sequence[int],
    zeta_evals: Sequence[FF3],
    next_evals: Sequence[FF3],
    zeta: FF3,
    zeta_next: FF3,
    alpha: FF3,
    x: int,
) -> FF3:
    """F at one LDE point x, from the opened leaf values there."""
    c_zeta, c_next = _split(alpha, len(zeta_row), len(next_row))
    xe = FF3(x % P)
    num_zeta = _combine_row(_components(c_zeta), zeta_row) - _weighted_evals(c_zeta, zeta_evals)
    num_next = _combine_row(_components(c_next), next_row) - _weighted_evals(c_next, next_evals)
    return num_zeta / (xe - zeta) + num_next / (xe - zeta_next)
