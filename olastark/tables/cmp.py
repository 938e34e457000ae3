"""Comparison table: u32 greater-or-equal.

gte = 1 requires op0 - op1 to be a u32, gte = 0 requires op1 - op0 - 1 to be
one. Both operands and the difference go to the RangeCheck table.
"""

from typing import List

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import Column
from olastark.tables.base import Row, TableStark, pad_rows

COL_OP0 = 0
COL_OP1 = 1
COL_GTE = 2
COL_DIFF = 3
COL_IS_REAL = 4

NUM_CMP_COLUMNS = 5

# Sent to the RangeCheck table, one lookup side each
RANGE_CHECKED_COLUMNS = (COL_OP0, COL_OP1, COL_DIFF)


def ctl_data() -> List[Column]:
    return Column.singles(COL_OP0, COL_OP1, COL_GTE)


def ctl_filter() -> Column:
    return Column.single(COL_IS_REAL)


def ctl_data_with_rangecheck(col: int) -> List[Column]:
    return [Column.single(col)]


def ctl_filter_with_rangecheck() -> Column:
    return Column.single(COL_IS_REAL)


class CmpStark(TableStark):
    name = "cmp"
    num_columns = NUM_CMP_COLUMNS

    def generate_trace(self, execution, public_values) -> List[Row]:
        rows = [[a, b, gte, diff, 1] for a, b, gte, diff in execution.cmp]
        # 0 >= 0 with difference 0
        return pad_rows(rows, [0, 0, 1, 0, 0])

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        one = cc.one
        gte = lv[COL_GTE]
        cc.constraint(gte * (gte - one))
        cc.constraint(lv[COL_IS_REAL] * (lv[COL_IS_REAL] - one))
        a, b, diff = lv[COL_OP0], lv[COL_OP1], lv[COL_DIFF]
        cc.constraint(gte * (a - b - diff) + (one - gte) * (b - a - one - diff))
