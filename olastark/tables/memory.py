"""Memory table: every load and store, sorted by address then clock.

Sorting turns read consistency into a local check between neighbouring rows.
The gap to the next row (address step across an address change, clock step
within one address) is range checked, which forces the sort order.
"""

from typing import List

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import Column
from olastark.tables.base import Row, TableStark, padded_height

# --- Column layout ---

COL_ADDR = 0
COL_CLK = 1
COL_IS_WRITE = 2
COL_VALUE = 3
COL_IS_REAL = 4
COL_ADDR_CHANGED = 5
COL_RC_VALUE = 6

NUM_MEMORY_COLUMNS = 7


# --- Cross-table lookup data ---


def ctl_data() -> List[Column]:
    """Key tuple shared with the CPU: (clk, addr, value, is_write)."""
    return Column.singles(COL_CLK, COL_ADDR, COL_VALUE, COL_IS_WRITE)


def ctl_filter() -> Column:
    return Column.single(COL_IS_REAL)


def ctl_data_with_rangecheck() -> List[Column]:
    return [Column.single(COL_RC_VALUE)]


def ctl_filter_with_rangecheck() -> Column:
    return Column.single(COL_IS_REAL)


# --- Table ---


class MemoryStark(TableStark):
    name = "memory"
    num_columns = NUM_MEMORY_COLUMNS

    def generate_trace(self, execution, public_values) -> List[Row]:
        rows = []
        for sorted_op in execution.sorted_memory():
            op = sorted_op.op
            row = [0] * NUM_MEMORY_COLUMNS
            row[COL_ADDR] = op.addr
            row[COL_CLK] = op.clk
            row[COL_IS_WRITE] = int(op.is_write)
            row[COL_VALUE] = op.value
            row[COL_IS_REAL] = 1
            row[COL_ADDR_CHANGED] = int(sorted_op.addr_changed)
            row[COL_RC_VALUE] = sorted_op.rc_value
            rows.append(row)

        height = padded_height(len(rows))
        if not rows:
            # No memory traffic: keep the clock stepping so the gap constraint holds
            return [[0, i, 0, 0, 0, 0, 0] for i in range(height)]

        # Padding repeats the last access as a read one cycle later
        last = rows[-1]
        while len(rows) < height:
            pad = [0] * NUM_MEMORY_COLUMNS
            pad[COL_ADDR] = last[COL_ADDR]
            pad[COL_CLK] = rows[-1][COL_CLK] + 1
            pad[COL_VALUE] = last[COL_VALUE]
            rows.append(pad)
        return rows

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        nv = frame.next_values
        one = cc.one

        for col in (COL_IS_WRITE, COL_IS_REAL, COL_ADDR_CHANGED):
            cc.constraint(lv[col] * (lv[col] - one))

        # Real rows form a prefix
        cc.constraint_transition((one - lv[COL_IS_REAL]) * nv[COL_IS_REAL])

        addr_step = nv[COL_ADDR] - lv[COL_ADDR]
        clk_step = nv[COL_CLK] - lv[COL_CLK]
        changed = lv[COL_ADDR_CHANGED]
        same = one - changed
        cc.constraint_transition(same * addr_step)
        cc.constraint_transition(
            lv[COL_RC_VALUE] - changed * (addr_step - one) - same * (clk_step - one)
        )

        # A read returns the value of the previous access to the same address
        next_is_read = one - nv[COL_IS_WRITE]
        cc.constraint_transition(same * next_is_read * (nv[COL_VALUE] - lv[COL_VALUE]))

        # The first access to any address is a write
        cc.constraint_transition(changed * next_is_read * nv[COL_IS_REAL])
        cc.constraint_first_row(lv[COL_IS_REAL] * (one - lv[COL_IS_WRITE]))
