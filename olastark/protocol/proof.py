"""Proof data structures and JSON serialization."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from olastark.errors import MalformedProofError
from olastark.primitives.field import FF3, GOLDILOCKS_PRIME, ff3, ff3_coeffs
from olastark.primitives.merkle_tree import MerkleProof, MerkleRoot
from olastark.protocol.fri import MAX_POW_NONCE, FriProof, FriQueryRound
from olastark.tables.base import Table


# --- Public Values ---


@dataclass
class PublicValues:
    """Program listing and final register values, shared by prover and verifier."""
    program: List[Tuple[int, int]] = field(default_factory=list)
    outputs: List[int] = field(default_factory=list)

    @classmethod
    def from_execution(cls, execution) -> "PublicValues":
        return cls(program=execution.program.listing(), outputs=list(execution.outputs))

    def to_elements(self) -> List[int]:
        out = [len(self.program)]
        for word, imm in self.program:
            out += [word, imm]
        out.append(len(self.outputs))
        out += self.outputs
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {"program": [[w, i] for w, i in self.program], "outputs": list(self.outputs)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PublicValues":
        return cls(program=[(int(w), int(i)) for w, i in d["program"]], outputs=[int(v) for v in d["outputs"]])

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicValues):
            return NotImplemented
        return self.to_elements() == other.to_elements()


# --- Per-table proof ---


@dataclass
class StarkOpeningSet:
    """Evaluations at zeta and g * zeta.

    local_values / next_values cover the constant columns followed by the
    trace columns; ctl_zs / ctl_zs_next the lookup helper and running-sum
    columns; quotient_polys every quotient chunk (at zeta only).
    """
    local_values: List[FF3] = field(default_factory=list)
    next_values: List[FF3] = field(default_factory=list)
    ctl_zs: List[FF3] = field(default_factory=list)
    ctl_zs_next: List[FF3] = field(default_factory=list)
    quotient_polys: List[FF3] = field(default_factory=list)

    def zeta_values(self) -> List[FF3]:
        return self.local_values + self.ctl_zs + self.quotient_polys

    def next_point_values(self) -> List[FF3]:
        return self.next_values + self.ctl_zs_next

    def observe(self, challenger) -> None:
        for v in self.zeta_values() + self.next_point_values():
            challenger.observe_ext(v)


@dataclass
class StarkProof:
    """Commitments, lookup claims, openings and FRI proof of one table.

    The commitment to preprocessed columns is not carried: the verifier
    recomputes it from the public values.
    """
    degree_bits: int
    trace_root: MerkleRoot
    ctl_root: Optional[MerkleRoot]
    quotient_root: MerkleRoot
    ctl_claims: List[int]
    openings: StarkOpeningSet
    fri_proof: FriProof


@dataclass
class AllProof:
    public_values: PublicValues
    stark_proofs: Dict[Table, StarkProof]
    ctl_descriptors: List[dict]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "public_values": self.public_values.to_dict(),
            "ctl_descriptors": self.ctl_descriptors,
            "stark_proofs": {t.name: _stark_proof_to_dict(p) for t, p in self.stark_proofs.items()},
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AllProof":
        try:
            return cls(
                public_values=PublicValues.from_dict(d["public_values"]),
                ctl_descriptors=list(d["ctl_descriptors"]),
                stark_proofs={Table[name]: _stark_proof_from_dict(p) for name, p in d["stark_proofs"].items()},
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise MalformedProofError(f"cannot decode proof: {e!r}") from e

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "AllProof":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedProofError(f"proof is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedProofError("proof JSON must be an object")
        return cls.from_dict(data)


# --- Encoding helpers ---


def _ext_to_list(v: FF3) -> List[int]:
    return ff3_coeffs(v)


def _ext_from_list(c) -> FF3:
    if len(c) != 3:
        raise ValueError(f"extension element needs 3 coordinates, got {len(c)}")
    for x in c:
        if not 0 <= int(x) < GOLDILOCKS_PRIME:
            raise ValueError(f"coordinate {x} is not a canonical field element")
    return ff3([int(x) for x in c])


def _digest_from_hex(h: Optional[str]) -> Optional[bytes]:
    return None if h is None else bytes.fromhex(h)


def _merkle_to_dict(p: MerkleProof) -> Dict[str, Any]:
    return {"leaf": list(p.leaf), "siblings": [s.hex() for s in p.siblings]}


def _merkle_from_dict(d: Dict[str, Any]) -> MerkleProof:
    return MerkleProof(leaf=[int(v) for v in d["leaf"]], siblings=[bytes.fromhex(s) for s in d["siblings"]])


def _openings_to_dict(o: StarkOpeningSet) -> Dict[str, Any]:
    return {
        "local_values": [_ext_to_list(v) for v in o.local_values],
        "next_values": [_ext_to_list(v) for v in o.next_values],
        "ctl_zs": [_ext_to_list(v) for v in o.ctl_zs],
        "ctl_zs_next": [_ext_to_list(v) for v in o.ctl_zs_next],
        "quotient_polys": [_ext_to_list(v) for v in o.quotient_polys],
    }


def _openings_from_dict(d: Dict[str, Any]) -> StarkOpeningSet:
    return StarkOpeningSet(**{k: [_ext_from_list(v) for v in d[k]] for k in (
        "local_values", "next_values", "ctl_zs", "ctl_zs_next", "quotient_polys"
    )})


def _fri_to_dict(f: FriProof) -> Dict[str, Any]:
    return {
        "commit_roots": [r.hex() for r in f.commit_roots],
        "final_values": [_ext_to_list(v) for v in f.final_values],
        "pow_nonce": f.pow_nonce,
        "query_rounds": [
            {
                "initial": [[_merkle_to_dict(a), _merkle_to_dict(b)] for a, b in q.initial],
                "steps": [_merkle_to_dict(s) for s in q.steps],
            }
            for q in f.query_rounds
        ],
    }


def _fri_from_dict(d: Dict[str, Any]) -> FriProof:
    nonce = int(d["pow_nonce"])
    if not 0 <= nonce < MAX_POW_NONCE:
        raise ValueError(f"proof-of-work nonce {nonce} out of range")
    return FriProof(
        commit_roots=[bytes.fromhex(r) for r in d["commit_roots"]],
        final_values=[_ext_from_list(v) for v in d["final_values"]],
        pow_nonce=nonce,
        query_rounds=[
            FriQueryRound(
                initial=[(_merkle_from_dict(a), _merkle_from_dict(b)) for a, b in q["initial"]],
                steps=[_merkle_from_dict(s) for s in q["steps"]],
            )
            for q in d["query_rounds"]
        ],
    )


def _stark_proof_to_dict(p: StarkProof) -> Dict[str, Any]:
    return {
        "degree_bits": p.degree_bits,
        "trace_root": p.trace_root.hex(),
        "ctl_root": None if p.ctl_root is None else p.ctl_root.hex(),
        "quotient_root": p.quotient_root.hex(),
        "ctl_claims": list(p.ctl_claims),
        "openings": _openings_to_dict(p.openings),
        "fri_proof": _fri_to_dict(p.fri_proof),
    }


def _stark_proof_from_dict(d: Dict[str, Any]) -> StarkProof:
    return StarkProof(
        degree_bits=int(d["degree_bits"]),
        trace_root=bytes.fromhex(d["trace_root"]),
        ctl_root=_digest_from_hex(d["ctl_root"]),
        quotient_root=bytes.fromhex(d["quotient_root"]),
        ctl_claims=[int(c) for c in d["ctl_claims"]],
        openings=_openings_from_dict(d["openings"]),
        fri_proof=_fri_from_dict(d["fri_proof"]),
    )
