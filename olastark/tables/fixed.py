"""Preprocessed lookup tables.

Their constant columns do not depend on the execution; only the
multiplicity column (how often each row is looked up) is witness data.
"""

from collections import Counter
from typing import List

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import Column
from olastark.tables import bitwise, rangecheck
from olastark.tables.base import Row, TableStark, padded_height
from olastark.vm.isa import BITWISE_TAG, Opcode

_OPS = {
    BITWISE_TAG[Opcode.AND]: lambda a, b: a & b,
    BITWISE_TAG[Opcode.OR]: lambda a, b: a | b,
    BITWISE_TAG[Opcode.XOR]: lambda a, b: a ^ b,
}


# --- BitwiseFixed ---

BF_COL_TAG = 0
BF_COL_A = 1
BF_COL_B = 2
BF_COL_RES = 3
BF_COL_IS_REAL = 4
BF_COL_MULT = 5


def bitwise_fixed_rows() -> List[Row]:
    """(tag, a, b, op(a, b), 1) for every tag and limb pair, zero rows to pad."""
    rows = []
    for tag, op in sorted(_OPS.items()):
        for a in range(1 << bitwise.LIMB_BITS):
            for b in range(1 << bitwise.LIMB_BITS):
                rows.append([tag, a, b, op(a, b), 1])
    height = padded_height(len(rows))
    return rows + [[0] * 5 for _ in range(height - len(rows))]


def ctl_data_bitwise_fixed() -> List[Column]:
    return Column.singles(BF_COL_TAG, BF_COL_A, BF_COL_B, BF_COL_RES)


def ctl_multiplicity_bitwise_fixed() -> Column:
    return Column.single(BF_COL_MULT)


class BitwiseFixedStark(TableStark):
    name = "bitwise_fixed"
    num_constant_columns = 5
    num_columns = 1

    def generate_constants(self, public_values) -> List[Row]:
        return bitwise_fixed_rows()

    def generate_trace(self, execution, public_values) -> List[Row]:
        counts: Counter = Counter()
        for tag, a, b, res in execution.bitwise:
            for limb in zip(bitwise.limbs(a), bitwise.limbs(b), bitwise.limbs(res)):
                counts[(tag,) + limb] += 1
        return [[counts[tuple(row[:4])] if row[BF_COL_IS_REAL] else 0] for row in bitwise_fixed_rows()]

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        cc.constraint(lv[BF_COL_MULT] * (cc.one - lv[BF_COL_IS_REAL]))


# --- RangecheckFixed ---

RF_COL_VALUE = 0
RF_COL_MULT = 1

RANGE_CHECK_FIXED_ROWS = 256


def ctl_data_rangecheck_fixed() -> List[Column]:
    return [Column.single(RF_COL_VALUE)]


def ctl_multiplicity_rangecheck_fixed() -> Column:
    return Column.single(RF_COL_MULT)


class RangecheckFixedStark(TableStark):
    """Every byte value once."""

    name = "rangecheck_fixed"
    num_constant_columns = 1
    num_columns = 1

    def generate_constants(self, public_values) -> List[Row]:
        return [[v] for v in range(RANGE_CHECK_FIXED_ROWS)]

    def generate_trace(self, execution, public_values) -> List[Row]:
        counts: Counter = Counter()
        for value in execution.range_check_values():
            for i in range(rangecheck.NUM_LIMBS):
                counts[(value >> (8 * i)) & 0xFF] += 1
        return [[counts[v]] for v in range(RANGE_CHECK_FIXED_ROWS)]

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        nv = frame.next_values
        cc.constraint_first_row(lv[RF_COL_VALUE])
        cc.constraint_transition(nv[RF_COL_VALUE] - lv[RF_COL_VALUE] - cc.one)
