"""Montgomery batch inversion for Goldilocks field and cubic extension.

The Montgomery trick converts N field inversions into 3N-3 multiplications + 1 inversion.
"""

import numpy as np

from olastark.primitives.field import FF, GOLDILOCKS_PRIME


def batch_inverse(values):
    """Montgomery batch inversion for any galois array.

    Algorithm:
    1. Forward pass: Compute prefix products cumprods[i] = a[0] * a[1] * ... * a[i]
    2. Single inversion: inv_total = cumprods[N-1]^(-1)
    3. Backward pass: Extract individual inverses using cumprods

    Args:
        values: Galois FieldArray to invert (must all be non-zero)

    Returns:
        Galois FieldArray where result[i] = values[i]^(-1)

    Raises:
        ZeroDivisionError: If any element is zero
    """
    field_type = type(values)
    if field_type is FF:
        return FF(np.array(batch_inverse_ints([int(v) for v in values]), dtype=object))

    n = len(values)
    if n == 0:
        return values
    if n == 1:
        return values ** -1

    cumprods = field_type.Zeros(n)
    cumprods[0] = values[0]
    for i in range(1, n):
        cumprods[i] = cumprods[i - 1] * values[i]

    if cumprods[n - 1] == 0:
        raise ZeroDivisionError("batch_inverse: input contains zero")
    inv_total = cumprods[n - 1] ** -1

    results = field_type.Zeros(n)
    z = inv_total
    for i in range(n - 1, 0, -1):
        results[i] = z * cumprods[i - 1]
        z = z * values[i]
    results[0] = z
    return results


def batch_inverse_ints(values: list[int]) -> list[int]:
    """Montgomery batch inversion on plain integers modulo the Goldilocks prime."""
    p = GOLDILOCKS_PRIME
    n = len(values)
    if n == 0:
        return []

    cumprods = [0] * n
    acc = 1
    for i, v in enumerate(values):
        acc = acc * v % p
        cumprods[i] = acc
    if acc == 0:
        raise ZeroDivisionError("batch_inverse: input contains zero")

    z = pow(acc, p - 2, p)
    results = [0] * n
    for i in range(n - 1, 0, -1):
        results[i] = z * cumprods[i - 1] % p
        z = z * values[i] % p
    results[0] = z
    return results
