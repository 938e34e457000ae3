"""Bitwise table: u32 AND / OR / XOR split into 2-bit limbs.

Each limb triple (tag, a, b, res) is looked up in the preprocessed
BitwiseFixed table, so this table only has to prove the decompositions.
"""

from typing import List

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import Column
from olastark.tables.base import Row, TableStark, pad_rows

LIMB_BITS = 2
NUM_LIMBS = 32 // LIMB_BITS
LIMB_MASK = (1 << LIMB_BITS) - 1

# --- Column layout ---

COL_TAG = 0
COL_OP0 = 1
COL_OP1 = 2
COL_RES = 3
COL_IS_REAL = 4
COL_OP0_LIMBS = list(range(5, 5 + NUM_LIMBS))
COL_OP1_LIMBS = list(range(COL_OP0_LIMBS[-1] + 1, COL_OP0_LIMBS[-1] + 1 + NUM_LIMBS))
COL_RES_LIMBS = list(range(COL_OP1_LIMBS[-1] + 1, COL_OP1_LIMBS[-1] + 1 + NUM_LIMBS))

NUM_BITWISE_COLUMNS = COL_RES_LIMBS[-1] + 1


def limbs(value: int) -> List[int]:
    return [(value >> (LIMB_BITS * i)) & LIMB_MASK for i in range(NUM_LIMBS)]


# --- Cross-table lookup data ---


def ctl_data() -> List[Column]:
    return Column.singles(COL_TAG, COL_OP0, COL_OP1, COL_RES)


def ctl_filter() -> Column:
    return Column.single(COL_IS_REAL)


def ctl_data_limb(i: int) -> List[Column]:
    """(tag, op0 limb i, op1 limb i, res limb i) for the fixed-table lookup."""
    return Column.singles(COL_TAG, COL_OP0_LIMBS[i], COL_OP1_LIMBS[i], COL_RES_LIMBS[i])


# --- Table ---


class BitwiseStark(TableStark):
    name = "bitwise"
    num_columns = NUM_BITWISE_COLUMNS

    def generate_trace(self, execution, public_values) -> List[Row]:
        rows = []
        for tag, a, b, res in execution.bitwise:
            row = [tag, a, b, res, 1]
            row += limbs(a) + limbs(b) + limbs(res)
            rows.append(row)
        return pad_rows(rows, [0] * NUM_BITWISE_COLUMNS)

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        cc.constraint(lv[COL_IS_REAL] * (lv[COL_IS_REAL] - cc.one))
        for whole, limb_cols in ((COL_OP0, COL_OP0_LIMBS), (COL_OP1, COL_OP1_LIMBS), (COL_RES, COL_RES_LIMBS)):
            acc = cc.zero
            for i, col in enumerate(limb_cols):
                acc = acc + lv[col] * cc.constant(1 << (LIMB_BITS * i))
            cc.constraint(lv[whole] - acc)
