"""Tests for the Merkle tree, the Fiat-Shamir challenger and polynomial batches."""

import numpy as np
import pytest

from olastark.primitives.field import FF3, GOLDILOCKS_PRIME, ff3_coeffs, ff_array
from olastark.primitives.merkle_tree import MerkleTree, verify_merkle_proof
from olastark.primitives.ntt import NTT
from olastark.primitives.transcript import Challenger
from olastark.protocol.pcs import PolynomialBatch

P = GOLDILOCKS_PRIME


class TestMerkleTree:

    @pytest.fixture
    def tree(self) -> MerkleTree:
        return MerkleTree([[i, i * i, 7] for i in range(8)])

    def test_every_leaf_verifies(self, tree: MerkleTree) -> None:
        for i in range(8):
            proof = tree.open(i)
            assert proof.leaf == [i, i * i, 7]
            assert len(proof.siblings) == 3
            assert verify_merkle_proof(tree.get_root(), i, proof, 3)

    def test_wrong_index_rejected(self, tree: MerkleTree) -> None:
        proof = tree.open(2)
        assert not verify_merkle_proof(tree.get_root(), 3, proof, 3)
        assert not verify_merkle_proof(tree.get_root(), 10, proof, 3)

    def test_tampered_leaf_rejected(self, tree: MerkleTree) -> None:
        proof = tree.open(5)
        proof.leaf[1] += 1
        assert not verify_merkle_proof(tree.get_root(), 5, proof, 3)

    def test_wrong_depth_rejected(self, tree: MerkleTree) -> None:
        assert not verify_merkle_proof(tree.get_root(), 1, tree.open(1), 4)

    def test_root_depends_on_every_leaf(self) -> None:
        leaves = [[i] for i in range(4)]
        root = MerkleTree(leaves).get_root()
        leaves[3] = [99]
        assert MerkleTree(leaves).get_root() != root

    def test_invalid_sizes(self, tree: MerkleTree) -> None:
        with pytest.raises(ValueError):
            MerkleTree([[1], [2], [3]])
        with pytest.raises(ValueError):
            MerkleTree([])
        with pytest.raises(IndexError):
            tree.open(8)


class TestChallenger:

    def test_same_transcript_same_challenges(self) -> None:
        a, b = Challenger(), Challenger()
        for c in (a, b):
            c.observe_elements([1, 2, 3])
            c.observe_digest(b"\x01" * 32)
        assert a.sample() == b.sample()
        assert a.sample_ext() == b.sample_ext()
        assert a.sample_indices(5, 64) == b.sample_indices(5, 64)

    def test_observation_changes_challenges(self) -> None:
        a, b = Challenger(), Challenger()
        a.observe_element(1)
        b.observe_element(2)
        assert a.sample() != b.sample()

    def test_consecutive_samples_differ(self) -> None:
        c = Challenger()
        c.observe_element(42)
        assert c.sample() != c.sample()

    def test_ranges(self) -> None:
        c = Challenger()
        assert 0 <= c.sample() < P
        assert all(0 <= v < P for v in ff3_coeffs(c.sample_ext()))
        assert all(0 <= i < 16 for i in c.sample_indices(50, 16))

    def test_observe_ext(self) -> None:
        """An FF3 value is absorbed as its three coefficients."""
        a, b = Challenger(), Challenger()
        v = FF3(5) + FF3(7) * FF3(P)
        a.observe_ext(v)
        b.observe_elements(ff3_coeffs(v))
        assert a.sample() == b.sample()

    def test_grinding(self) -> None:
        """check_witness accepts the nonce grind found and both sides stay in sync."""
        prover, verifier = Challenger(), Challenger()
        for c in (prover, verifier):
            c.observe_element(9)
        nonce = prover.grind(6)
        assert verifier.check_witness(6, nonce)
        assert prover.sample() == verifier.sample()

    def test_grind_returns_smallest_nonce(self) -> None:
        nonce = Challenger().grind(8)
        assert all(not Challenger().check_witness(8, n) for n in range(nonce))
        assert Challenger().check_witness(0, nonce + 1)


class TestPolynomialBatch:

    def test_from_values_commits_lde_rows(self) -> None:
        columns = [ff_array([1, 2, 3, 4]), ff_array([9, 9, 0, 5])]
        batch = PolynomialBatch.from_values(columns, rate_bits=2)
        assert batch.num_polys == 2
        assert batch.lde_size == 16
        proof = batch.open(6)
        assert proof.leaf == [int(batch.lde[0][6]), int(batch.lde[1][6])]
        assert verify_merkle_proof(batch.root, 6, proof, 4)

    def test_lde_extends_subgroup_values(self) -> None:
        """Committed coefficients interpolate the subgroup values."""
        values = ff_array([4, 8, 15, 16])
        batch = PolynomialBatch.from_values([values], rate_bits=1)
        assert np.array_equal(batch.coeffs[0], NTT(4).intt(values))

    def test_eval_at_matches_direct_evaluation(self) -> None:
        coeffs = [3, 0, 2, 1]
        batch = PolynomialBatch([ff_array(coeffs)], rate_bits=1)
        x = FF3(11) + FF3(P) * FF3(2)
        expected = FF3(0)
        for k, c in enumerate(coeffs):
            expected = expected + FF3(c) * x ** k
        assert batch.eval_at(x)[0] == expected

    def test_empty_batch_rejected(self) -> None:
        with pytest.raises(ValueError):
            PolynomialBatch([], rate_bits=1)
