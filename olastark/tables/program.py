"""Program table: the authoritative listing, one row per pc.

The listing is preprocessed from the public values, so the verifier rebuilds
its commitment itself. The witness column counts how many CPU rows fetched
each pc; CPU padding rows fetch nothing.
"""

from typing import List

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import Column
from olastark.tables.base import Row, TableStark, padded_height

COL_PC = 0
COL_INST = 1
COL_IMM = 2
COL_IS_REAL = 3
COL_MULT = 4


def ctl_data() -> List[Column]:
    return Column.singles(COL_PC, COL_INST, COL_IMM)


def ctl_filter() -> Column:
    return Column.single(COL_IS_REAL)


def ctl_multiplicity() -> Column:
    return Column.single(COL_MULT)


class ProgramStark(TableStark):
    name = "program"
    num_constant_columns = 4
    num_columns = 1

    def generate_constants(self, public_values) -> List[Row]:
        listing = public_values.program
        rows = [[pc, word, imm, 1] for pc, (word, imm) in enumerate(listing)]
        return rows + [[0, 0, 0, 0] for _ in range(padded_height(len(rows)) - len(rows))]

    def generate_trace(self, execution, public_values) -> List[Row]:
        counts = execution.fetch_counts()
        height = padded_height(len(public_values.program))
        return [[counts.get(pc, 0)] for pc in range(height)]

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        cc.constraint(lv[COL_MULT] * (cc.one - lv[COL_IS_REAL]))
