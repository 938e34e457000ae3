"""Primitives - Low-level cryptographic and mathematical building blocks."""

from olastark.primitives.batch_inverse import batch_inverse, batch_inverse_ints
from olastark.primitives.field import (
    FF,
    FF3,
    GOLDILOCKS_PRIME,
    SHIFT,
    W,
    ff3,
    ff3_array,
    ff3_coeffs,
    get_omega,
    get_omega_inv,
    lift,
)
from olastark.primitives.merkle_tree import MerkleProof, MerkleRoot, MerkleTree, verify_merkle_proof
from olastark.primitives.ntt import NTT, low_degree_extend
from olastark.primitives.transcript import Challenger

__all__ = [
    "FF",
    "FF3",
    "GOLDILOCKS_PRIME",
    "SHIFT",
    "W",
    "ff3",
    "ff3_array",
    "ff3_coeffs",
    "get_omega",
    "get_omega_inv",
    "lift",
    "batch_inverse",
    "batch_inverse_ints",
    "MerkleProof",
    "MerkleRoot",
    "MerkleTree",
    "verify_merkle_proof",
    "NTT",
    "low_degree_extend",
    "Challenger",
]
