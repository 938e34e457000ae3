"""Tests for field helpers, NTT, batch inversion and selector polynomials."""

import numpy as np
import pytest

from olastark.primitives.batch_inverse import batch_inverse, batch_inverse_ints
from olastark.primitives.field import (
    FF,
    FF3,
    GOLDILOCKS_PRIME,
    SHIFT,
    ff3,
    ff3_array,
    ff3_coeffs,
    ff3_components,
    ff_array,
    get_omega,
    get_omega_inv,
    inv_mod,
    lift,
    log2_exact,
)
from olastark.primitives.ntt import NTT, extend_coeffs, low_degree_extend
from olastark.primitives.polynomial import (
    coset_points,
    selectors_at,
    selectors_on_coset,
    selectors_on_subgroup,
    vanishing_at,
)

P = GOLDILOCKS_PRIME


def naive_eval(coeffs, x: int) -> int:
    return sum(int(c) * pow(x, k, P) for k, c in enumerate(coeffs)) % P


class TestField:

    def test_extension_modulus(self) -> None:
        """The generator of FF3 satisfies x^3 = x + 1."""
        x = ff3([0, 1, 0])
        assert x ** 3 == x + FF3(1)

    def test_coefficient_order(self) -> None:
        """ff3 takes and ff3_coeffs returns ascending coefficients."""
        assert ff3_coeffs(ff3([1, 2, 3])) == [1, 2, 3]
        assert ff3_coeffs(FF3(5)) == [5, 0, 0]

    def test_array_components(self) -> None:
        """ff3_array and ff3_components are inverse to each other."""
        c0, c1, c2 = [1, 2, P - 1], [0, 7, 3], [4, 0, P - 2]
        arr = ff3_array(c0, c1, c2)
        assert ff3_components(arr) == [c0, c1, c2]
        assert ff3_coeffs(arr[1]) == [2, 7, 0]

    def test_lift_embeds_base_field(self) -> None:
        """Lifting commutes with multiplication."""
        a, b = FF(123456789), FF(P - 5)
        assert lift(a * b) == lift(a) * lift(b)
        lifted = lift(ff_array([1, 2, 3]))
        assert [ff3_coeffs(v) for v in lifted] == [[1, 0, 0], [2, 0, 0], [3, 0, 0]]

    def test_ff_array_reduces(self) -> None:
        """Integers are reduced modulo p."""
        assert list(ff_array([P, P + 1, -1])) == [0, 1, P - 1]

    @pytest.mark.parametrize("n_bits", [1, 2, 5, 16, 32])
    def test_roots_of_unity(self, n_bits: int) -> None:
        """W[n] has order exactly 2^n."""
        w = get_omega(n_bits)
        assert pow(w, 1 << n_bits, P) == 1
        assert pow(w, 1 << (n_bits - 1), P) != 1
        assert w * get_omega_inv(n_bits) % P == 1

    def test_inv_mod(self) -> None:
        assert 12345 * inv_mod(12345) % P == 1
        with pytest.raises(ZeroDivisionError):
            inv_mod(P)

    def test_log2_exact(self) -> None:
        assert log2_exact(1) == 0
        assert log2_exact(1024) == 10
        with pytest.raises(ValueError):
            log2_exact(6)


class TestNTT:
    """NTT against direct evaluation."""

    @pytest.mark.parametrize("n_bits", [0, 1, 3, 5])
    def test_roundtrip(self, n_bits: int) -> None:
        """intt(ntt(c)) == c."""
        n = 1 << n_bits
        ntt = NTT(n)
        coeffs = ff_array([(i * 7919 + 3) for i in range(n)])
        assert np.array_equal(ntt.intt(ntt.ntt(coeffs)), coeffs)

    def test_matches_naive_evaluation(self) -> None:
        """ntt evaluates at omega^i in natural order."""
        n = 8
        coeffs = [3, 1, 4, 1, 5, 9, 2, 6]
        evals = NTT(n).ntt(ff_array(coeffs))
        omega = get_omega(3)
        assert [int(v) for v in evals] == [naive_eval(coeffs, pow(omega, i, P)) for i in range(n)]

    def test_coset_ntt(self) -> None:
        """coset_ntt evaluates at shift * omega^i and coset_intt inverts it."""
        n = 8
        coeffs = ff_array([2, 7, 1, 8, 2, 8, 1, 8])
        ntt = NTT(n)
        evals = ntt.coset_ntt(coeffs, SHIFT)
        points = [int(x) for x in coset_points(n, SHIFT)]
        assert [int(v) for v in evals] == [naive_eval(coeffs, x) for x in points]
        assert np.array_equal(ntt.coset_intt(evals, SHIFT), coeffs)

    def test_short_input_is_zero_padded(self) -> None:
        """Fewer coefficients than the domain behave like trailing zeros."""
        ntt = NTT(8)
        assert np.array_equal(ntt.ntt(ff_array([1, 2])), ntt.ntt(ff_array([1, 2, 0, 0, 0, 0, 0, 0])))
        with pytest.raises(ValueError):
            NTT(4).ntt(ff_array(range(8)))

    def test_low_degree_extend(self) -> None:
        """The extension agrees with the interpolant on every coset point."""
        evals = ff_array([5, 0, 9, 1])
        coeffs = NTT(4).intt(evals)
        extended = low_degree_extend(evals, 4)
        assert len(extended) == 16
        points = [int(x) for x in coset_points(16, SHIFT)]
        assert [int(v) for v in extended] == [naive_eval(coeffs, x) for x in points]
        assert np.array_equal(extended, extend_coeffs(coeffs, 16, SHIFT))


class TestBatchInverse:

    def test_ints(self) -> None:
        values = [1, 2, 3, P - 1, 123456789]
        assert batch_inverse_ints(values) == [inv_mod(v) for v in values]
        assert batch_inverse_ints([]) == []

    def test_base_field_array(self) -> None:
        values = ff_array(range(1, 33))
        assert np.all(values * batch_inverse(values) == FF(1))

    def test_extension_array(self) -> None:
        values = ff3_array(range(1, 9), [2 * i + 1 for i in range(1, 9)], [5] * 8)
        inverses = batch_inverse(values)
        for v, inv in zip(values, inverses):
            assert v * inv == FF3(1)

    def test_zero_raises(self) -> None:
        with pytest.raises(ZeroDivisionError):
            batch_inverse(ff_array([1, 0, 3]))
        with pytest.raises(ZeroDivisionError):
            batch_inverse_ints([4, 0])


class TestSelectors:

    def test_on_subgroup(self) -> None:
        l_first, l_last, transition = selectors_on_subgroup(4)
        assert list(l_first) == [1, 0, 0, 0]
        assert list(l_last) == [0, 0, 0, 1]
        assert list(transition) == [1, 1, 1, 0]

    def test_coset_matches_point_evaluation(self) -> None:
        """Packed selectors on the LDE coset equal the scalar formulas."""
        n, blowup = 8, 4
        l_first, l_last, transition, zh_inv = selectors_on_coset(n, blowup)
        points = coset_points(n * blowup)
        for i in (0, 5, 17, 31):
            x = lift(points[i])
            s_first, s_last, s_transition, zh = selectors_at(x, n)
            assert s_first == lift(l_first[i])
            assert s_last == lift(l_last[i])
            assert s_transition == lift(transition[i])
            assert zh * lift(zh_inv[i]) == FF3(1)

    def test_vanishing_polynomial(self) -> None:
        """Z_H is zero on the subgroup and nonzero off it."""
        n = 4
        g = FF3(get_omega(2))
        point = ff3([3, 1, 4])
        _, _, _, zh = selectors_at(point, n)
        assert zh == vanishing_at(point, n)
        assert zh != FF3(0)
        _, _, transition, zh_sub = selectors_at(g * g, n)
        assert zh_sub == FF3(0)
        assert transition == g * g - g ** 3
