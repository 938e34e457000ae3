"""Protocol - proof generation, verification and the proof format."""

from olastark.protocol.fri import FriProof, FriQueryRound
from olastark.protocol.pcs import PolynomialBatch
from olastark.protocol.proof import AllProof, PublicValues, StarkOpeningSet, StarkProof
from olastark.protocol.prover import prove, prove_program
from olastark.protocol.verifier import verify, verify_proof

__all__ = [
    # Proof data
    "AllProof",
    "PublicValues",
    "StarkOpeningSet",
    "StarkProof",
    "FriProof",
    "FriQueryRound",
    # Commitments
    "PolynomialBatch",
    # Entry points
    "prove",
    "prove_program",
    "verify",
    "verify_proof",
]
