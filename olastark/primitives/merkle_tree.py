"""Binary Merkle tree commitment using blake2b."""

from dataclasses import dataclass, field
from hashlib import blake2b
from typing import List, Sequence

# --- Constants ---

DIGEST_SIZE = 32
ELEMENT_BYTES = 8

# --- Type Aliases ---

MerkleRoot = bytes
LeafData = List[int]


def hash_leaf(leaf: Sequence[int]) -> bytes:
    """Hash a row of field elements (little-endian 8-byte limbs)."""
    h = blake2b(digest_size=DIGEST_SIZE, person=b"olastark-leaf")
    for v in leaf:
        h.update(int(v).to_bytes(ELEMENT_BYTES, "little"))
    return h.digest()


def hash_node(left: bytes, right: bytes) -> bytes:
    return blake2b(left + right, digest_size=DIGEST_SIZE, person=b"olastark-node").digest()


# --- Data Classes ---


@dataclass
class MerkleProof:
    """Leaf values at the queried index plus sibling digests from leaf to root."""
    leaf: LeafData = field(default_factory=list)
    siblings: List[bytes] = field(default_factory=list)


# --- Merkle Tree ---


class MerkleTree:
    """Binary Merkle tree over a power-of-two number of leaves."""

    def __init__(self, leaves: Sequence[Sequence[int]]):
        n = len(leaves)
        if n == 0 or n & (n - 1):
            raise ValueError(f"Merkle tree needs a power-of-two number of leaves, got {n}")

        self.leaves: List[LeafData] = [[int(v) for v in leaf] for leaf in leaves]
        self.height = n
        self.depth = n.bit_length() - 1

        # nodes[1] is the root, leaves hashes live at nodes[n:2n]
        self.nodes: List[bytes] = [b""] * (2 * n)
        for i, leaf in enumerate(self.leaves):
            self.nodes[n + i] = hash_leaf(leaf)
        for i in range(n - 1, 0, -1):
            self.nodes[i] = hash_node(self.nodes[2 * i], self.nodes[2 * i + 1])

    def get_root(self) -> MerkleRoot:
        return self.nodes[1]

    def open(self, index: int) -> MerkleProof:
        """Authentication path for leaf at index."""
        if not 0 <= index < self.height:
            raise IndexError(f"Leaf index {index} out of range [0, {self.height})")
        siblings = []
        node = self.height + index
        while node > 1:
            siblings.append(self.nodes[node ^ 1])
            node >>= 1
        return MerkleProof(leaf=list(self.leaves[index]), siblings=siblings)


def verify_merkle_proof(root: MerkleRoot, index: int, proof: MerkleProof, depth: int) -> bool:
    """Check that proof.leaf sits at index under root."""
    if len(proof.siblings) != depth or not 0 <= index < (1 << depth):
        return False
    running = hash_leaf(proof.leaf)
    for sibling in proof.siblings:
        if index & 1:
            running = hash_node(sibling, running)
        else:
            running = hash_node(running, sibling)
        index >>= 1
    return running == root
