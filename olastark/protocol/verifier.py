"""Verification of an AllProof.

The verifier replays the prover's transcript from the received commitments
(never trusting embedded challenges), then runs its checks in a fixed order:

1. public values and lookup descriptors against what the caller expects
2. proof shape against the registry
3. lookup balance across tables
4. per-table constraint identity at zeta
5. Merkle and FRI openings

The first failing check raises its VerificationError subclass; there is no
partial acceptance.
"""

import logging
from typing import Dict, List, Optional, Tuple

from olastark.all_stark import AllStark
from olastark.config import StarkConfig
from olastark.constraints.base import EvaluationFrame, FieldConstraintConsumer
from olastark.errors import (
    ConstraintViolationError,
    DescriptorMismatchError,
    MalformedProofError,
    OpeningProofError,
    PublicValuesMismatchError,
    VerificationError,
)
from olastark.lookup import eval_ctl_constraints, num_ctl_columns, sample_ctl_challenges, verify_ctl_balance
from olastark.primitives.field import FF3, GOLDILOCKS_PRIME, SHIFT, get_omega
from olastark.primitives.merkle_tree import MerkleRoot, verify_merkle_proof
from olastark.primitives.polynomial import selectors_at
from olastark.primitives.transcript import Challenger
from olastark.protocol.fri import fri_challenges, verify_fri_query
from olastark.protocol.fri_polynomial import deep_at_point
from olastark.protocol.pcs import PolynomialBatch
from olastark.protocol.prover import observe_public_inputs, rows_to_columns
from olastark.protocol.proof import AllProof, PublicValues, StarkProof
from olastark.tables.base import MIN_ROWS, Table, TableStark

logger = logging.getLogger(__name__)

P = GOLDILOCKS_PRIME

# Largest table the verifier accepts
MAX_DEGREE_BITS = 24


# --- Main Entry Point ---


def verify_proof(
    all_stark: AllStark,
    proof: AllProof,
    config: StarkConfig,
    expected_public_values: Optional[PublicValues] = None,
) -> None:
    """Verify proof against all_stark; raise a VerificationError subclass on rejection."""
    config.validate()
    if expected_public_values is not None and proof.public_values != expected_public_values:
        raise PublicValuesMismatchError("public values in the proof differ from the expected ones")
    descriptors = all_stark.ctl_descriptors()
    if proof.ctl_descriptors != descriptors:
        raise DescriptorMismatchError("proof was built against a different set of cross-table lookups")
    if set(proof.stark_proofs) != set(all_stark.tables):
        raise MalformedProofError(
            f"proof covers tables {sorted(t.name for t in proof.stark_proofs)}, "
            f"registry has {sorted(t.name for t in all_stark.tables)}"
        )

    public_values = proof.public_values
    groups = all_stark.ctl_groups(config)
    ctl_widths = {t: num_ctl_columns(g) for t, g in groups.items()}

    # Preprocessed commitments are rebuilt, never read from the proof
    constant_roots: Dict[Table, Optional[MerkleRoot]] = {}
    for table, stark in all_stark.starks.items():
        sp = proof.stark_proofs[table]
        try:
            stark.validate_public_values(public_values)
        except ValueError as e:
            raise MalformedProofError(f"{stark.name}: {e}") from e
        _check_shape(stark, sp, config, len(groups[table]), ctl_widths[table])
        constant_roots[table] = _constants_root(stark, public_values, sp.degree_bits, config)

    # --- Transcript replay ---
    challenger = Challenger()
    observe_public_inputs(challenger, config, public_values, descriptors)
    for table in all_stark.tables:
        if constant_roots[table] is not None:
            challenger.observe_digest(constant_roots[table])
        challenger.observe_digest(proof.stark_proofs[table].trace_root)

    challenges = sample_ctl_challenges(challenger, len(all_stark.cross_table_lookups), config.num_challenges)
    for table in all_stark.tables:
        sp = proof.stark_proofs[table]
        if sp.ctl_root is not None:
            challenger.observe_digest(sp.ctl_root)
        challenger.observe_elements(sp.ctl_claims)

    alphas = [challenger.sample() for _ in range(config.num_challenges)]
    for table in all_stark.tables:
        challenger.observe_digest(proof.stark_proofs[table].quotient_root)

    zeta = challenger.sample_ext()

    # --- Lookup balance and constraint identity ---
    heights = {t: 1 << proof.stark_proofs[t].degree_bits for t in all_stark.tables}
    verify_ctl_balance(
        all_stark.cross_table_lookups,
        groups,
        {t: proof.stark_proofs[t].ctl_claims for t in all_stark.tables},
        challenges,
        heights,
    )

    for table, stark in all_stark.starks.items():
        sp = proof.stark_proofs[table]
        _check_constraints_at_zeta(stark, sp, config, groups[table], challenges, alphas, zeta, public_values)

    # --- Openings ---
    for table in all_stark.tables:
        proof.stark_proofs[table].openings.observe(challenger)

    deep_alpha = challenger.sample_ext()
    fri_replay: Dict[Table, Tuple[List[FF3], List[int]]] = {}
    for table in all_stark.tables:
        sp = proof.stark_proofs[table]
        lde_size = (1 << sp.degree_bits) << config.rate_bits
        fri_replay[table] = fri_challenges(sp.fri_proof, sp.degree_bits, lde_size, config, challenger)

    for table, stark in all_stark.starks.items():
        sp = proof.stark_proofs[table]
        betas, indices = fri_replay[table]
        _check_openings(stark, sp, config, constant_roots[table], zeta, deep_alpha, betas, indices)
        logger.debug("%s: openings verified", stark.name)

    logger.info("proof verified: %d tables, %d lookups", len(all_stark.tables), len(all_stark.cross_table_lookups))


def verify(all_stark: AllStark, proof: AllProof, config: StarkConfig,
           expected_public_values: Optional[PublicValues] = None) -> bool:
    """Boolean form of verify_proof; the reason for a rejection is logged."""
    try:
        verify_proof(all_stark, proof, config, expected_public_values)
    except VerificationError as e:
        logger.info("proof rejected: %s: %s", type(e).__name__, e)
        return False
    return True


# --- Shape and preprocessed data ---


def _check_shape(stark: TableStark, sp: StarkProof, config: StarkConfig, num_groups: int, ctl_width: int) -> None:
    name = stark.name
    if not MIN_ROWS.bit_length() - 1 <= sp.degree_bits <= MAX_DEGREE_BITS:
        raise MalformedProofError(f"{name}: degree_bits {sp.degree_bits} out of range")
    o = sp.openings
    expected = {
        "local_values": stark.width,
        "next_values": stark.width,
        "ctl_zs": ctl_width,
        "ctl_zs_next": ctl_width,
        "quotient_polys": config.num_challenges * config.quotient_chunks,
    }
    for attr, size in expected.items():
        if len(getattr(o, attr)) != size:
            raise MalformedProofError(f"{name}: {attr} has {len(getattr(o, attr))} values, expected {size}")
    if len(sp.ctl_claims) != num_groups:
        raise MalformedProofError(f"{name}: {len(sp.ctl_claims)} lookup claims, expected {num_groups}")
    if any(not 0 <= c < P for c in sp.ctl_claims):
        raise MalformedProofError(f"{name}: lookup claim is not a canonical field element")
    if (sp.ctl_root is None) != (ctl_width == 0):
        raise MalformedProofError(f"{name}: lookup commitment presence does not match the registry")


def _constants_root(stark: TableStark, public_values: PublicValues, degree_bits: int,
                    config: StarkConfig) -> Optional[MerkleRoot]:
    rows = stark.generate_constants(public_values)
    if rows is None:
        return None
    if len(rows) != 1 << degree_bits:
        raise MalformedProofError(
            f"{stark.name}: proof height {1 << degree_bits} differs from preprocessed height {len(rows)}"
        )
    return PolynomialBatch.from_values(rows_to_columns(rows), config.rate_bits).root


# --- Constraint identity ---


def _check_constraints_at_zeta(stark, sp: StarkProof, config: StarkConfig, groups, challenges, alphas,
                               zeta: FF3, public_values: PublicValues) -> None:
    n = 1 << sp.degree_bits
    o = sp.openings
    l_first, l_last, transition, zh = selectors_at(zeta, n)
    cc = FieldConstraintConsumer(FF3, alphas, l_first, l_last, transition)
    frame = EvaluationFrame(o.local_values, o.next_values)
    stark.eval_constraints(frame, cc, public_values)
    eval_ctl_constraints(frame, EvaluationFrame(o.ctl_zs, o.ctl_zs_next), cc, groups, challenges, sp.ctl_claims)

    zeta_n = zeta ** n
    chunks = config.quotient_chunks
    for a, acc in enumerate(cc.accumulators):
        quotient = FF3(0)
        power = FF3(1)
        for k in range(chunks):
            quotient = quotient + power * o.quotient_polys[a * chunks + k]
            power = power * zeta_n
        if acc != zh * quotient:
            raise ConstraintViolationError(f"{stark.name}: constraints do not vanish at zeta (challenge {a})")


# --- Openings ---


def _check_openings(stark, sp: StarkProof, config: StarkConfig, constants_root: Optional[MerkleRoot],
                    zeta: FF3, deep_alpha: FF3, betas, indices) -> None:
    n = 1 << sp.degree_bits
    lde_size = n << config.rate_bits
    depth = sp.degree_bits + config.rate_bits
    half = lde_size // 2
    omega = get_omega(depth)
    zeta_next = zeta * FF3(get_omega(sp.degree_bits))
    o = sp.openings

    # (root, width, opened at g * zeta)
    batches = []
    if constants_root is not None:
        batches.append((constants_root, stark.num_constant_columns, True))
    batches.append((sp.trace_root, stark.num_columns, True))
    if sp.ctl_root is not None:
        batches.append((sp.ctl_root, len(o.ctl_zs), True))
    batches.append((sp.quotient_root, len(o.quotient_polys), False))

    zeta_evals = o.zeta_values()
    next_evals = o.next_point_values()
    fri = sp.fri_proof
    for index, rnd in zip(indices, fri.query_rounds):
        if len(rnd.initial) != len(batches):
            raise OpeningProofError(f"{stark.name}: query opens {len(rnd.initial)} batches, expected {len(batches)}")
        pair = []
        for offset, pos in enumerate((index, index + half)):
            zeta_row, next_row = [], []
            for (root, width, at_next), openings in zip(batches, rnd.initial):
                opening = openings[offset]
                if len(opening.leaf) != width or not _canonical(opening.leaf) \
                        or not verify_merkle_proof(root, pos, opening, depth):
                    raise OpeningProofError(f"{stark.name}: bad Merkle opening at LDE index {pos}")
                zeta_row += opening.leaf
                if at_next:
                    next_row += opening.leaf
            x = SHIFT * pow(omega, pos, P) % P
            pair.append(deep_at_point(zeta_row, next_row, zeta_evals, next_evals, zeta, zeta_next, deep_alpha, x))
        verify_fri_query(fri, rnd, index, (pair[0], pair[1]), betas, lde_size)


def _canonical(values) -> bool:
    return all(0 <= int(v) < P for v in values)
