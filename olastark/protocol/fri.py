"""FRI low-degree test with folding factor 2.

Layer 0 is the DEEP polynomial on the LDE coset shift * <w> of size N; its
values are never committed directly, the verifier recomputes them from the
table batches. Layer r+1 is the fold of layer r:

    F'(x^2) = (F(x) + F(-x)) / 2 + beta_r * (F(x) - F(-x)) / (2x)

Position i of a layer of size M pairs with position i + M/2 (its negation), so
committed layers store leaf i as the pair (F[i], F[i + M/2]). After log2(n)
folds the layer has blowup entries and must be constant; it is sent in clear.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from olastark.errors import OpeningProofError
from olastark.primitives.batch_inverse import batch_inverse
from olastark.primitives.field import (
    FF,
    FF3,
    GOLDILOCKS_PRIME,
    SHIFT,
    ff3,
    ff3_coeffs,
    get_omega,
    inv_mod,
    lift,
    log2_exact,
)
from olastark.primitives.merkle_tree import MerkleProof, MerkleRoot, MerkleTree, verify_merkle_proof
from olastark.primitives.polynomial import coset_points

P = GOLDILOCKS_PRIME
INV_TWO = inv_mod(2)

# The nonce is absorbed as a field element, so it must be canonical
MAX_POW_NONCE = P


# --- Proof Data ---


@dataclass
class FriQueryRound:
    """Openings for one query index.

    initial holds, per committed table batch, the openings at i and i + N/2;
    steps holds one opening per committed FRI layer.
    """
    initial: List[Tuple[MerkleProof, MerkleProof]] = field(default_factory=list)
    steps: List[MerkleProof] = field(default_factory=list)


@dataclass
class FriProof:
    commit_roots: List[MerkleRoot] = field(default_factory=list)
    final_values: List[FF3] = field(default_factory=list)
    pow_nonce: int = 0
    query_rounds: List[FriQueryRound] = field(default_factory=list)


# --- Folding ---


def fold_layer(values: FF3, beta: FF3, shift: int) -> FF3:
    """Fold a full layer living on shift * <w_M>."""
    half = len(values) // 2
    a, b = values[:half], values[half:]
    x_inv = lift(batch_inverse(coset_points(len(values), shift)[:half]))
    inv_two = FF3(INV_TWO)
    return (a + b) * inv_two + beta * (a - b) * inv_two * x_inv


def fold_pair(a: FF3, b: FF3, beta: FF3, x: int) -> FF3:
    """Fold one pair (F(x), F(-x)); same formula as fold_layer."""
    inv_two = FF3(INV_TWO)
    return (a + b) * inv_two + beta * (a - b) * inv_two * FF3(inv_mod(x))


def _pair_leaf(a: FF3, b: FF3) -> List[int]:
    return ff3_coeffs(a) + ff3_coeffs(b)


def _leaf_pair(leaf: Sequence[int]) -> Tuple[FF3, FF3]:
    if len(leaf) != 6:
        raise OpeningProofError(f"FRI leaf has {len(leaf)} entries, expected 6")
    if any(not 0 <= int(v) < P for v in leaf):
        raise OpeningProofError("FRI leaf holds a non-canonical field element")
    return ff3(list(leaf[:3])), ff3(list(leaf[3:]))


# --- Prover ---


def prove_fri(deep_values: FF3, degree_bits: int, config, challenger, batches) -> FriProof:
    """Commit-fold loop, final layer, grinding and query openings.

    batches are the table's committed PolynomialBatch objects in the order the
    verifier replays them.
    """
    lde_size = len(deep_values)
    proof = FriProof()
    trees: List[MerkleTree] = []

    current = deep_values
    shift = SHIFT
    for r in range(degree_bits):
        beta = challenger.sample_ext()
        current = fold_layer(current, beta, shift)
        shift = shift * shift % P
        if r < degree_bits - 1:
            half = len(current) // 2
            tree = MerkleTree([_pair_leaf(current[i], current[i + half]) for i in range(half)])
            trees.append(tree)
            proof.commit_roots.append(tree.get_root())
            challenger.observe_digest(tree.get_root())

    proof.final_values = list(current)
    for v in proof.final_values:
        challenger.observe_ext(v)

    proof.pow_nonce = challenger.grind(config.proof_of_work_bits)
    indices = challenger.sample_indices(config.num_query_rounds, lde_size // 2)

    for i in indices:
        rnd = FriQueryRound(initial=[(b.open(i), b.open(i + lde_size // 2)) for b in batches])
        pos = i
        size = lde_size // 2
        for tree in trees:
            half = size // 2
            rnd.steps.append(tree.open(pos % half))
            pos %= half
            size = half
        proof.query_rounds.append(rnd)
    return proof


# --- Verifier ---


def fri_challenges(proof: FriProof, degree_bits: int, lde_size: int, config, challenger) -> Tuple[List[FF3], List[int]]:
    """Replay the transcript of one FRI proof; return folding betas and query indices."""
    if len(proof.commit_roots) != degree_bits - 1:
        raise OpeningProofError(f"expected {degree_bits - 1} FRI layer roots, got {len(proof.commit_roots)}")
    if len(proof.final_values) != lde_size >> degree_bits:
        raise OpeningProofError("final FRI layer has the wrong size")
    if len(proof.query_rounds) != config.num_query_rounds:
        raise OpeningProofError(f"expected {config.num_query_rounds} query rounds, got {len(proof.query_rounds)}")
    if not 0 <= proof.pow_nonce < MAX_POW_NONCE:
        raise OpeningProofError(f"proof-of-work nonce {proof.pow_nonce} out of range")

    betas = []
    for r in range(degree_bits):
        betas.append(challenger.sample_ext())
        if r < degree_bits - 1:
            challenger.observe_digest(proof.commit_roots[r])
    for v in proof.final_values:
        challenger.observe_ext(v)

    if not challenger.check_witness(config.proof_of_work_bits, proof.pow_nonce):
        raise OpeningProofError("proof-of-work nonce rejected")
    indices = challenger.sample_indices(config.num_query_rounds, lde_size // 2)
    return betas, indices


def verify_fri_query(
    proof: FriProof,
    rnd: FriQueryRound,
    index: int,
    initial_pair: Tuple[FF3, FF3],
    betas: Sequence[FF3],
    lde_size: int,
) -> None:
    """Fold one query through every layer; raise OpeningProofError on any mismatch."""
    final = proof.final_values
    if any(v != final[0] for v in final):
        raise OpeningProofError("final FRI layer is not constant")
    if len(rnd.steps) != len(betas) - 1:
        raise OpeningProofError("query round has the wrong number of layer openings")

    a, b = initial_pair
    pos = index
    size = lde_size
    shift = SHIFT
    for r, beta in enumerate(betas):
        x = shift * pow(get_omega(log2_exact(size)), pos, P) % P
        value = fold_pair(a, b, beta, x)
        size //= 2
        shift = shift * shift % P
        if r == len(betas) - 1:
            if value != final[pos]:
                raise OpeningProofError(f"query {index}: fold does not reach the final layer")
            return

        half = size // 2
        leaf_index = pos % half
        opening = rnd.steps[r]
        a, b = _leaf_pair(opening.leaf)
        if not verify_merkle_proof(proof.commit_roots[r], leaf_index, opening, log2_exact(half)):
            raise OpeningProofError(f"query {index}: bad Merkle path in FRI layer {r + 1}")
        if value != (a if pos < half else b):
            raise OpeningProofError(f"query {index}: FRI layer {r + 1} inconsistent with fold")
        pos = leaf_index
