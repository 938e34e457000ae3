"""Log-derivative argument proving the cross-table lookups.

For one lookup and one repetition with challenges (beta, gamma), every side
term contributes

    w / (gamma - (v_0 + v_1 * beta + v_2 * beta^2 + ...))

per row, with w = filter on looking sides and w = -filter * multiplicity on
the looked side. A table collects its terms for that lookup into helper
columns (batch_size terms per column) and a running sum Z. The last value of
Z is the table's claimed total; the claims of all tables must add up to zero,
or to the compensation for default rows when the lookup declares one.

Helper identity, for the terms t of one batch with denominators d_t:

    h * prod(d) - sum_t(w_t * prod_{s != t}(d_s)) = 0          on every row

Running sum:

    Z - sum(h) = 0           first row
    Z' - Z - sum(h') = 0     transition
    Z - claim = 0            last row
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Sequence, Tuple

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import CrossTableLookup, TableWithColumns
from olastark.errors import CtlVerificationError, MalformedProofError, TraceError
from olastark.primitives.batch_inverse import batch_inverse
from olastark.primitives.field import FF, GOLDILOCKS_PRIME, ff_array, inv_mod
from olastark.tables.base import Table

logger = logging.getLogger(__name__)

P = GOLDILOCKS_PRIME


# --- Challenges ---


@dataclass(frozen=True)
class LookupChallenge:
    """Base-field (beta, gamma) pair for one lookup repetition."""
    beta: int
    gamma: int

    def combine(self, values: Sequence, constant: Callable[[int], object]):
        acc = constant(0)
        power = constant(1)
        beta = constant(self.beta)
        for v in values:
            acc = acc + v * power
            power = power * beta
        return acc

    def denominator(self, values: Sequence, constant: Callable[[int], object]):
        return constant(self.gamma) - self.combine(values, constant)

    def denominator_ints(self, values: Sequence[int]) -> int:
        acc, power = 0, 1
        for v in values:
            acc = (acc + v * power) % P
            power = power * self.beta % P
        return (self.gamma - acc) % P


def sample_ctl_challenges(challenger, num_ctls: int, num_challenges: int) -> List[List[LookupChallenge]]:
    """Independent challenges indexed [lookup][repetition]."""
    out = []
    for _ in range(num_ctls):
        reps = []
        for _ in range(num_challenges):
            beta = challenger.sample()
            gamma = challenger.sample()
            reps.append(LookupChallenge(beta, gamma))
        out.append(reps)
    return out


# --- Per-table grouping ---


@dataclass(frozen=True)
class CtlGroup:
    """Terms one table contributes to one lookup repetition; owns one Z column."""
    ctl_index: int
    repetition: int
    terms: Tuple[Tuple[TableWithColumns, bool], ...]
    batch_size: int

    @property
    def num_helpers(self) -> int:
        return -(-len(self.terms) // self.batch_size)

    @property
    def width(self) -> int:
        return self.num_helpers + 1

    def batches(self) -> List[Tuple[Tuple[TableWithColumns, bool], ...]]:
        return [self.terms[i:i + self.batch_size] for i in range(0, len(self.terms), self.batch_size)]


def ctl_groups(
    cross_table_lookups: Sequence[CrossTableLookup],
    table: Table,
    num_challenges: int,
    batch_size: int,
) -> List[CtlGroup]:
    """Running-sum groups of one table, ordered by lookup then repetition."""
    groups = []
    for ci, ctl in enumerate(cross_table_lookups):
        terms = tuple((side, looked) for side, looked in ctl.sides() if side.table == table)
        if not terms:
            continue
        for r in range(num_challenges):
            groups.append(CtlGroup(ci, r, terms, batch_size))
    return groups


def num_ctl_columns(groups: Sequence[CtlGroup]) -> int:
    return sum(g.width for g in groups)


def _weight(side: TableWithColumns, looked: bool, values: Sequence, constant: Callable[[int], object]):
    f = side.filter_column.eval(values, constant) if side.filter_column is not None else constant(1)
    if not looked:
        return f
    m = side.multiplicity.eval(values, constant) if side.multiplicity is not None else constant(1)
    return constant(0) - f * m


# --- Prover: witness columns ---


def generate_ctl_columns(
    groups: Sequence[CtlGroup],
    columns: Sequence[FF],
    challenges: Sequence[Sequence[LookupChallenge]],
) -> Tuple[List[FF], List[int]]:
    """Helper and running-sum columns of one table, and its claimed totals.

    columns are the table's FF columns (constants first), one array per column.
    """
    n = len(columns[0])
    zeros = FF.Zeros(n)

    def const(c):
        return FF(c % P)

    out: List[FF] = []
    claims: List[int] = []
    for group in groups:
        challenge = challenges[group.ctl_index][group.repetition]
        row_total = FF.Zeros(n)
        for batch in group.batches():
            h = FF.Zeros(n)
            for side, looked in batch:
                values = [c.eval(columns, const) for c in side.columns]
                d = challenge.denominator(values, const) + zeros
                try:
                    d_inv = batch_inverse(d)
                except ZeroDivisionError as e:
                    raise TraceError(
                        f"lookup {group.ctl_index}: tuple collides with the challenge, resample"
                    ) from e
                h = h + _weight(side, looked, columns, const) * d_inv
            out.append(h)
            row_total = row_total + h

        running = []
        acc = 0
        for v in row_total:
            acc = (acc + int(v)) % P
            running.append(acc)
        out.append(ff_array(running))
        claims.append(acc)
    return out, claims


# --- Constraints ---


def eval_ctl_constraints(
    frame: EvaluationFrame,
    ctl_frame: EvaluationFrame,
    cc: ConstraintConsumer,
    groups: Sequence[CtlGroup],
    challenges: Sequence[Sequence[LookupChallenge]],
    claims: Sequence[int],
) -> None:
    """Emit the helper and running-sum constraints of one table.

    frame holds the table row (constants first); ctl_frame the lookup columns
    in the order generate_ctl_columns produces them.
    """
    if len(claims) != len(groups):
        raise MalformedProofError(f"expected {len(groups)} lookup claims, got {len(claims)}")
    lv = frame.local_values
    local = ctl_frame.local_values
    nxt = ctl_frame.next_values
    col = 0
    for group, claim in zip(groups, claims):
        challenge = challenges[group.ctl_index][group.repetition]
        h_local, h_next = [], []
        for batch in group.batches():
            h = local[col]
            dens = [challenge.denominator([c.eval(lv, cc.constant) for c in side.columns], cc.constant)
                    for side, _ in batch]
            weights = [_weight(side, looked, lv, cc.constant) for side, looked in batch]

            product = cc.one
            for d in dens:
                product = product * d
            rhs = cc.zero
            for t, w in enumerate(weights):
                term = w
                for s, d in enumerate(dens):
                    if s != t:
                        term = term * d
                rhs = rhs + term
            cc.constraint(h * product - rhs)

            h_local.append(h)
            h_next.append(nxt[col])
            col += 1

        z, z_next = local[col], nxt[col]
        col += 1
        cc.constraint_first_row(z - _total(cc, h_local))
        cc.constraint_transition(z_next - z - _total(cc, h_next))
        cc.constraint_last_row(z - cc.constant(claim))


def _total(cc: ConstraintConsumer, values):
    acc = cc.zero
    for v in values:
        acc = acc + v
    return acc


# --- Verifier: global balance ---


def expected_total(ctl: CrossTableLookup, challenge: LookupChallenge, heights: Mapping[Table, int]) -> int:
    """Sum of all claims of one lookup repetition when the multisets agree."""
    excess = ctl.default_excess(heights)
    if excess == 0:
        return 0
    d = challenge.denominator_ints(ctl.default)
    return excess % P * inv_mod(d) % P


def verify_ctl_balance(
    cross_table_lookups: Sequence[CrossTableLookup],
    groups_by_table: Mapping[Table, Sequence[CtlGroup]],
    claims_by_table: Mapping[Table, Sequence[int]],
    challenges: Sequence[Sequence[LookupChallenge]],
    heights: Mapping[Table, int],
) -> None:
    """Raise CtlVerificationError unless every lookup's claims balance."""
    totals: Dict[Tuple[int, int], int] = {}
    for table, groups in groups_by_table.items():
        claims = claims_by_table[table]
        if len(claims) != len(groups):
            raise MalformedProofError(f"{table.name}: expected {len(groups)} lookup claims, got {len(claims)}")
        for group, claim in zip(groups, claims):
            key = (group.ctl_index, group.repetition)
            totals[key] = (totals.get(key, 0) + int(claim)) % P

    for ci, ctl in enumerate(cross_table_lookups):
        for r, challenge in enumerate(challenges[ci]):
            expected = expected_total(ctl, challenge, heights)
            if totals.get((ci, r), 0) != expected:
                raise CtlVerificationError(f"lookup '{ctl.name}' (repetition {r}) does not balance")
        logger.debug("lookup %s balances", ctl.name)
