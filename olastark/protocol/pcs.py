"""Polynomial batch commitment.

A PolynomialBatch is a set of base-field columns committed together: their
coefficients, their evaluations on the LDE coset and a Merkle tree whose leaf i
is row i of the LDE (one entry per column).
"""

from typing import List, Sequence

from olastark.primitives.field import FF, FF3, SHIFT
from olastark.primitives.merkle_tree import MerkleProof, MerkleRoot, MerkleTree
from olastark.primitives.ntt import NTT, extend_coeffs
from olastark.primitives.polynomial import eval_coeffs_at, ext_powers


class PolynomialBatch:
    """Committed columns of one table and phase."""

    def __init__(self, coeffs: Sequence[FF], rate_bits: int):
        if not coeffs:
            raise ValueError("cannot commit an empty batch")
        self.coeffs: List[FF] = list(coeffs)
        self.degree = len(self.coeffs[0])
        self.rate_bits = rate_bits
        self.lde_size = self.degree << rate_bits
        self.lde: List[FF] = [extend_coeffs(c, self.lde_size, SHIFT) for c in self.coeffs]

        columns = [[int(v) for v in col] for col in self.lde]
        self.tree = MerkleTree([list(row) for row in zip(*columns)])

    @classmethod
    def from_values(cls, columns: Sequence[FF], rate_bits: int) -> "PolynomialBatch":
        """Interpolate subgroup evaluations, then commit."""
        ntt = NTT(len(columns[0]))
        return cls([ntt.intt(col) for col in columns], rate_bits)

    @property
    def root(self) -> MerkleRoot:
        return self.tree.get_root()

    @property
    def num_polys(self) -> int:
        return len(self.coeffs)

    def open(self, index: int) -> MerkleProof:
        return self.tree.open(index)

    def eval_at(self, point: FF3) -> List[FF3]:
        """Every column polynomial evaluated at an extension-field point."""
        powers = ext_powers(point, self.degree)
        return eval_coeffs_at([[int(c) for c in col] for col in self.coeffs], powers)
