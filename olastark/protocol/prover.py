"""Top-level proof generation for all tables.

Phases, each separated from the next by transcript challenges:

1. commit preprocessed and trace columns of every table
2. lookup challenges -> helper and running-sum columns, claimed totals
3. alphas -> quotient chunks
4. zeta -> openings at zeta and g * zeta
5. DEEP challenge -> one FRI proof per table
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from olastark.all_stark import AllStark
from olastark.config import StarkConfig
from olastark.constraints.base import EvaluationFrame, FieldConstraintConsumer
from olastark.cross_table_lookup import descriptor_digest
from olastark.errors import TraceError
from olastark.lookup import CtlGroup, eval_ctl_constraints, generate_ctl_columns, sample_ctl_challenges
from olastark.primitives.field import FF, FF3, SHIFT, ff_array, get_omega, log2_exact
from olastark.primitives.ntt import NTT
from olastark.primitives.polynomial import selectors_on_coset
from olastark.primitives.transcript import Challenger
from olastark.protocol.fri import prove_fri
from olastark.protocol.fri_polynomial import deep_on_lde
from olastark.protocol.pcs import PolynomialBatch
from olastark.protocol.proof import AllProof, PublicValues, StarkOpeningSet, StarkProof
from olastark.tables.base import Row, Table, TableStark
from olastark.vm import Program, assemble, execute

logger = logging.getLogger(__name__)


# --- Shared transcript prefix ---


def observe_public_inputs(challenger: Challenger, config: StarkConfig, public_values: PublicValues,
                          ctl_descriptors: List[dict]) -> None:
    """Absorb everything fixed before the first commitment."""
    challenger.observe_elements(config.to_elements())
    challenger.observe_elements(public_values.to_elements())
    challenger.observe_digest(descriptor_digest(ctl_descriptors))


def rows_to_columns(rows: Sequence[Row]) -> List[FF]:
    """Column-major FF arrays of an integer trace."""
    width = len(rows[0])
    return [ff_array([row[j] for row in rows]) for j in range(width)]


def next_row(column: FF, step: int) -> FF:
    """Values at g * x on the LDE: rotate by the blowup."""
    n = len(column)
    return column[(np.arange(n) + step) % n]


# --- Per-table state ---


@dataclass
class _TableState:
    table: Table
    stark: TableStark
    columns: List[FF]
    degree_bits: int
    groups: List[CtlGroup]
    constants: Optional[PolynomialBatch] = None
    trace: Optional[PolynomialBatch] = None
    ctl: Optional[PolynomialBatch] = None
    ctl_claims: List[int] = field(default_factory=list)
    quotient: Optional[PolynomialBatch] = None
    openings: Optional[StarkOpeningSet] = None

    @property
    def n(self) -> int:
        return 1 << self.degree_bits

    def batches(self) -> List[PolynomialBatch]:
        return [b for b in (self.constants, self.trace, self.ctl, self.quotient) if b is not None]

    def row_batches(self) -> List[PolynomialBatch]:
        """Batches opened at both zeta and g * zeta."""
        return [b for b in (self.constants, self.trace, self.ctl) if b is not None]


# --- Quotient ---


def compute_quotient_chunks(state: _TableState, config: StarkConfig, challenges, alphas: Sequence[int],
                            public_values: PublicValues) -> List[FF]:
    """Coefficients of every quotient chunk, num_challenges * (max_degree - 1) of them."""
    n = state.n
    blowup = config.blowup
    lde_size = n * blowup

    row_lde = []
    for b in (state.constants, state.trace):
        if b is not None:
            row_lde += b.lde
    ctl_lde = state.ctl.lde if state.ctl is not None else []

    frame = EvaluationFrame(row_lde, [next_row(c, blowup) for c in row_lde])
    ctl_frame = EvaluationFrame(ctl_lde, [next_row(c, blowup) for c in ctl_lde])

    l_first, l_last, transition, zh_inv = selectors_on_coset(n, blowup, SHIFT)
    cc = FieldConstraintConsumer(FF, alphas, l_first, l_last, transition)
    state.stark.eval_constraints(frame, cc, public_values)
    eval_ctl_constraints(frame, ctl_frame, cc, state.groups, challenges, state.ctl_claims)

    ntt = NTT(lde_size)
    num_chunks = config.quotient_chunks
    chunks: List[FF] = []
    for acc in cc.accumulators:
        quotient = (acc + FF.Zeros(lde_size)) * zh_inv
        coeffs = ntt.coset_intt(quotient, SHIFT)
        if np.any(coeffs[num_chunks * n:] != 0):
            raise TraceError(
                f"{state.stark.name}: quotient exceeds degree {num_chunks * n}; "
                "the trace does not satisfy its constraints"
            )
        for k in range(num_chunks):
            chunks.append(coeffs[k * n:(k + 1) * n])
    logger.debug("%s: %d constraints, %d quotient chunks", state.stark.name, cc.count, len(chunks))
    return chunks


# --- Main Entry Point ---


def prove(
    all_stark: AllStark,
    config: StarkConfig,
    traces: Dict[Table, List[Row]],
    public_values: PublicValues,
    check: bool = True,
) -> AllProof:
    """Prove that traces satisfy every table and lookup of all_stark.

    With check=True (default) the traces are first validated natively, so an
    inconsistent trace fails with a TraceError naming the table or lookup
    instead of producing a proof that cannot verify.
    """
    config.validate()
    if check:
        all_stark.check_traces(traces, public_values)

    descriptors = all_stark.ctl_descriptors()
    challenger = Challenger()
    observe_public_inputs(challenger, config, public_values, descriptors)

    groups = all_stark.ctl_groups(config)
    states: List[_TableState] = []

    # --- Phase 1: trace commitments ---
    for table, stark in all_stark.starks.items():
        rows = traces[table]
        columns = rows_to_columns(rows)
        state = _TableState(table, stark, columns, log2_exact(len(rows)), groups[table])
        nc = stark.num_constant_columns
        if nc:
            state.constants = PolynomialBatch.from_values(columns[:nc], config.rate_bits)
            challenger.observe_digest(state.constants.root)
        state.trace = PolynomialBatch.from_values(columns[nc:], config.rate_bits)
        challenger.observe_digest(state.trace.root)
        states.append(state)
        logger.debug("%s: committed %d x %d trace", stark.name, len(rows), stark.width)

    # --- Phase 2: lookup columns ---
    challenges = sample_ctl_challenges(challenger, len(all_stark.cross_table_lookups), config.num_challenges)
    for state in states:
        if state.groups:
            ctl_columns, state.ctl_claims = generate_ctl_columns(state.groups, state.columns, challenges)
            state.ctl = PolynomialBatch.from_values(ctl_columns, config.rate_bits)
            challenger.observe_digest(state.ctl.root)
        challenger.observe_elements(state.ctl_claims)

    # --- Phase 3: quotients ---
    alphas = [challenger.sample() for _ in range(config.num_challenges)]
    for state in states:
        chunks = compute_quotient_chunks(state, config, challenges, alphas, public_values)
        state.quotient = PolynomialBatch(chunks, config.rate_bits)
        challenger.observe_digest(state.quotient.root)

    # --- Phase 4: openings ---
    zeta = challenger.sample_ext()
    for state in states:
        zeta_next = zeta * FF3(get_omega(state.degree_bits))
        local, nxt = [], []
        for b in (state.constants, state.trace):
            if b is not None:
                local += b.eval_at(zeta)
                nxt += b.eval_at(zeta_next)
        state.openings = StarkOpeningSet(
            local_values=local,
            next_values=nxt,
            ctl_zs=state.ctl.eval_at(zeta) if state.ctl is not None else [],
            ctl_zs_next=state.ctl.eval_at(zeta_next) if state.ctl is not None else [],
            quotient_polys=state.quotient.eval_at(zeta),
        )
        state.openings.observe(challenger)

    # --- Phase 5: FRI ---
    deep_alpha = challenger.sample_ext()
    stark_proofs: Dict[Table, StarkProof] = {}
    for state in states:
        lde_size = state.n << config.rate_bits
        zeta_next = zeta * FF3(get_omega(state.degree_bits))
        zeta_columns = [c for b in state.batches() for c in b.lde]
        next_columns = [c for b in state.row_batches() for c in b.lde]
        deep = deep_on_lde(
            zeta_columns, next_columns,
            state.openings.zeta_values(), state.openings.next_point_values(),
            zeta, zeta_next, deep_alpha, lde_size,
        )
        fri_proof = prove_fri(deep, state.degree_bits, config, challenger, state.batches())
        stark_proofs[state.table] = StarkProof(
            degree_bits=state.degree_bits,
            trace_root=state.trace.root,
            ctl_root=state.ctl.root if state.ctl is not None else None,
            quotient_root=state.quotient.root,
            ctl_claims=list(state.ctl_claims),
            openings=state.openings,
            fri_proof=fri_proof,
        )
        logger.debug("%s: FRI proof with %d layers", state.stark.name, len(fri_proof.commit_roots) + 1)

    logger.info("proved %d tables, %d lookups", len(states), len(all_stark.cross_table_lookups))
    return AllProof(public_values=public_values, stark_proofs=stark_proofs, ctl_descriptors=descriptors)


def prove_program(program, config: Optional[StarkConfig] = None, all_stark: Optional[AllStark] = None,
                  max_steps: Optional[int] = None) -> AllProof:
    """Execute a Program (or assembly text) and prove the run."""
    if not isinstance(program, Program):
        program = assemble(program)
    config = config or StarkConfig.standard()
    all_stark = all_stark or AllStark.default()
    execution = execute(program, max_steps)
    public_values = PublicValues.from_execution(execution)
    traces = all_stark.generate_traces(execution, public_values)
    return prove(all_stark, config, traces, public_values)
