"""u32 range checks by byte decomposition.

Each byte limb is looked up in the RangecheckFixed table.
"""

from typing import List

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import Column
from olastark.tables.base import Row, TableStark, pad_rows

NUM_LIMBS = 4

COL_VAL = 0
COL_LIMBS = list(range(1, 1 + NUM_LIMBS))
COL_IS_REAL = COL_LIMBS[-1] + 1

NUM_RANGE_CHECK_COLUMNS = COL_IS_REAL + 1


def ctl_data() -> List[Column]:
    return [Column.single(COL_VAL)]


def ctl_filter() -> Column:
    return Column.single(COL_IS_REAL)


def ctl_data_limb(i: int) -> List[Column]:
    return [Column.single(COL_LIMBS[i])]


class RangeCheckStark(TableStark):
    name = "range_check"
    num_columns = NUM_RANGE_CHECK_COLUMNS

    def generate_trace(self, execution, public_values) -> List[Row]:
        rows = []
        for value in execution.range_check_values():
            rows.append([value] + [(value >> (8 * i)) & 0xFF for i in range(NUM_LIMBS)] + [1])
        return pad_rows(rows, [0] * NUM_RANGE_CHECK_COLUMNS)

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        cc.constraint(lv[COL_IS_REAL] * (lv[COL_IS_REAL] - cc.one))
        acc = cc.zero
        for i, col in enumerate(COL_LIMBS):
            acc = acc + lv[col] * cc.constant(1 << (8 * i))
        cc.constraint(lv[COL_VAL] - acc)
