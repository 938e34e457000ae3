"""Tests for FRI folding, proving and per-query verification."""

import random
from typing import Tuple

import pytest

from olastark.config import StarkConfig
from olastark.errors import OpeningProofError
from olastark.primitives.field import FF3, GOLDILOCKS_PRIME, SHIFT, ff3_array, ff_array, get_omega
from olastark.primitives.ntt import low_degree_extend
from olastark.primitives.transcript import Challenger
from olastark.protocol.fri import FriProof, fold_layer, fold_pair, fri_challenges, prove_fri, verify_fri_query

P = GOLDILOCKS_PRIME

CONFIG = StarkConfig(rate_bits=2, num_query_rounds=6, proof_of_work_bits=4, num_challenges=1)
DEGREE_BITS = 3
LDE_SIZE = (1 << DEGREE_BITS) << CONFIG.rate_bits


def random_ext_values(rng: random.Random, size: int) -> FF3:
    return ff3_array(*[[rng.randrange(P) for _ in range(size)] for _ in range(3)])


def low_degree_values(seed: int) -> FF3:
    """An FF3 polynomial of degree < 2^DEGREE_BITS on the LDE coset."""
    rng = random.Random(seed)
    n = 1 << DEGREE_BITS
    parts = [low_degree_extend(ff_array([rng.randrange(P) for _ in range(n)]), CONFIG.blowup) for _ in range(3)]
    return ff3_array(*parts)


def prove(values: FF3) -> FriProof:
    challenger = Challenger()
    challenger.observe_element(77)
    return prove_fri(values, DEGREE_BITS, CONFIG, challenger, [])


def verify(values: FF3, proof: FriProof) -> None:
    challenger = Challenger()
    challenger.observe_element(77)
    betas, indices = fri_challenges(proof, DEGREE_BITS, LDE_SIZE, CONFIG, challenger)
    half = LDE_SIZE // 2
    for index, rnd in zip(indices, proof.query_rounds):
        pair: Tuple[FF3, FF3] = (values[index], values[index + half])
        verify_fri_query(proof, rnd, index, pair, betas, LDE_SIZE)


class TestFolding:

    def test_pair_fold_matches_layer_fold(self) -> None:
        rng = random.Random(1)
        values = random_ext_values(rng, 16)
        beta = random_ext_values(rng, 1)[0]
        folded = fold_layer(values, beta, SHIFT)
        omega = get_omega(4)
        assert len(folded) == 8
        for i in range(8):
            x = SHIFT * pow(omega, i, P) % P
            assert fold_pair(values[i], values[i + 8], beta, x) == folded[i]

    def test_fold_halves_degree(self) -> None:
        """Folding a low-degree layer log2(n) times leaves a constant."""
        values = low_degree_values(5)
        rng = random.Random(2)
        shift = SHIFT
        for _ in range(DEGREE_BITS):
            values = fold_layer(values, random_ext_values(rng, 1)[0], shift)
            shift = shift * shift % P
        assert len(values) == CONFIG.blowup
        assert all(v == values[0] for v in values)


class TestFri:

    def test_low_degree_accepted(self) -> None:
        values = low_degree_values(3)
        proof = prove(values)
        assert len(proof.commit_roots) == DEGREE_BITS - 1
        assert len(proof.final_values) == CONFIG.blowup
        assert len(proof.query_rounds) == CONFIG.num_query_rounds
        verify(values, proof)

    def test_random_values_rejected(self) -> None:
        values = random_ext_values(random.Random(4), LDE_SIZE)
        proof = prove(values)
        with pytest.raises(OpeningProofError):
            verify(values, proof)

    def test_wrong_initial_values_rejected(self) -> None:
        values = low_degree_values(6)
        proof = prove(values)
        other = low_degree_values(7)
        with pytest.raises(OpeningProofError):
            verify(other, proof)

    def test_tampered_layer_opening(self) -> None:
        values = low_degree_values(8)
        proof = prove(values)
        leaf = proof.query_rounds[0].steps[0].leaf
        leaf[0] = (leaf[0] + 1) % P
        with pytest.raises(OpeningProofError):
            verify(values, proof)

    def test_non_canonical_leaf(self) -> None:
        values = low_degree_values(9)
        proof = prove(values)
        proof.query_rounds[0].steps[1].leaf[2] += P
        with pytest.raises(OpeningProofError, match="non-canonical"):
            verify(values, proof)

    def test_shape_checks(self) -> None:
        values = low_degree_values(10)
        proof = prove(values)
        for mutate in (
            lambda p: p.commit_roots.pop(),
            lambda p: p.final_values.pop(),
            lambda p: p.query_rounds.pop(),
        ):
            broken = prove(values)
            mutate(broken)
            with pytest.raises(OpeningProofError):
                verify(values, broken)
        verify(values, proof)

    def test_bad_nonce(self) -> None:
        config = StarkConfig(rate_bits=2, num_query_rounds=2, proof_of_work_bits=12, num_challenges=1)
        values = low_degree_values(11)
        proof = prove_fri(values, DEGREE_BITS, config, Challenger(), [])
        proof.pow_nonce += 1
        with pytest.raises(OpeningProofError, match="proof-of-work"):
            fri_challenges(proof, DEGREE_BITS, LDE_SIZE, config, Challenger())
