"""CPU table: one row per executed instruction.

Rows past the final `end` repeat it with the clock still advancing and
is_real cleared, so the transition constraints hold up to the last row
without special casing while padding stays out of every lookup.
"""

from typing import List

from olastark.constraints.base import ConstraintConsumer, EvaluationFrame
from olastark.cross_table_lookup import Column
from olastark.tables.base import Row, TableStark, padded_height
from olastark.vm.isa import (
    BITWISE_TAG,
    DST_SHIFT,
    IMM_FLAG_SHIFT,
    NUM_REGISTERS,
    OP0_SHIFT,
    OP1_SHIFT,
    Opcode,
)

# --- Column layout ---

COL_CLK = 0
COL_PC = 1
COL_INST = 2
COL_IMM = 3
COL_OP1_IMM = 4
COL_OP0 = 5
COL_OP1 = 6
COL_DST = 7
COL_AUX0 = 8
COL_AUX1 = 9
COL_REGS = list(range(10, 10 + NUM_REGISTERS))
COL_S_DST = list(range(COL_REGS[-1] + 1, COL_REGS[-1] + 1 + NUM_REGISTERS))
COL_S_OP0 = list(range(COL_S_DST[-1] + 1, COL_S_DST[-1] + 1 + NUM_REGISTERS))
COL_S_OP1 = list(range(COL_S_OP0[-1] + 1, COL_S_OP0[-1] + 1 + NUM_REGISTERS))

_FIRST_OPCODE_COL = COL_S_OP1[-1] + 1
COL_S_OPCODE = {op: _FIRST_OPCODE_COL + i for i, op in enumerate(Opcode)}

COL_S_MOV = COL_S_OPCODE[Opcode.MOV]
COL_S_ADD = COL_S_OPCODE[Opcode.ADD]
COL_S_MUL = COL_S_OPCODE[Opcode.MUL]
COL_S_EQ = COL_S_OPCODE[Opcode.EQ]
COL_S_NEQ = COL_S_OPCODE[Opcode.NEQ]
COL_S_ASSERT = COL_S_OPCODE[Opcode.ASSERT]
COL_S_JMP = COL_S_OPCODE[Opcode.JMP]
COL_S_CJMP = COL_S_OPCODE[Opcode.CJMP]
COL_S_CALL = COL_S_OPCODE[Opcode.CALL]
COL_S_RET = COL_S_OPCODE[Opcode.RET]
COL_S_MLOAD = COL_S_OPCODE[Opcode.MLOAD]
COL_S_MSTORE = COL_S_OPCODE[Opcode.MSTORE]
COL_S_END = COL_S_OPCODE[Opcode.END]
COL_S_RC = COL_S_OPCODE[Opcode.RANGE_CHECK]
COL_S_AND = COL_S_OPCODE[Opcode.AND]
COL_S_OR = COL_S_OPCODE[Opcode.OR]
COL_S_XOR = COL_S_OPCODE[Opcode.XOR]
COL_S_GTE = COL_S_OPCODE[Opcode.GTE]

# 1 on executed rows, 0 on padding
COL_IS_REAL = _FIRST_OPCODE_COL + len(Opcode)

NUM_CPU_COLUMNS = COL_IS_REAL + 1

COL_FP = COL_REGS[-1]

# Opcodes that set the next pc themselves
_BRANCHING = (COL_S_JMP, COL_S_CJMP, COL_S_CALL, COL_S_RET, COL_S_END)


# --- Cross-table lookup data ---


def ctl_data_cpu_mem_store() -> List[Column]:
    return [Column.single(COL_CLK), Column.single(COL_OP1), Column.single(COL_OP0), Column.one()]


def ctl_data_cpu_mem_load() -> List[Column]:
    return [Column.single(COL_CLK), Column.single(COL_OP1), Column.single(COL_DST), Column.zero()]


def ctl_data_cpu_mem_call_ret_pc() -> List[Column]:
    """call writes the return pc at fp - 1, ret reads it back."""
    return [
        Column.single(COL_CLK),
        Column.linear_combination([(COL_FP, 1)], -1),
        Column.single(COL_AUX0),
        Column.single(COL_S_CALL),
    ]


def ctl_data_cpu_mem_call_ret_fp() -> List[Column]:
    """Both call and ret read the saved frame pointer at fp - 2."""
    return [
        Column.single(COL_CLK),
        Column.linear_combination([(COL_FP, 1)], -2),
        Column.single(COL_AUX1),
        Column.zero(),
    ]


def ctl_filter_cpu_mem_store() -> Column:
    return Column.single(COL_S_MSTORE)


def ctl_filter_cpu_mem_load() -> Column:
    return Column.single(COL_S_MLOAD)


def ctl_filter_cpu_mem_call_ret() -> Column:
    return Column.sum([COL_S_CALL, COL_S_RET])


def ctl_data_with_bitwise() -> List[Column]:
    tag = Column.linear_combination([(COL_S_OPCODE[op], t) for op, t in BITWISE_TAG.items()])
    return [tag, Column.single(COL_OP0), Column.single(COL_OP1), Column.single(COL_DST)]


def ctl_filter_with_bitwise() -> Column:
    return Column.sum([COL_S_AND, COL_S_OR, COL_S_XOR])


def ctl_data_with_cmp() -> List[Column]:
    return Column.singles(COL_OP0, COL_OP1, COL_DST)


def ctl_filter_with_cmp() -> Column:
    return Column.single(COL_S_GTE)


def ctl_data_with_rangecheck() -> List[Column]:
    return [Column.single(COL_OP0)]


def ctl_filter_with_rangecheck() -> Column:
    return Column.single(COL_S_RC)


def ctl_data_with_program() -> List[Column]:
    return Column.singles(COL_PC, COL_INST, COL_IMM)


def ctl_filter_with_program() -> Column:
    return Column.single(COL_IS_REAL)


# --- Table ---


class CpuStark(TableStark):
    name = "cpu"
    num_columns = NUM_CPU_COLUMNS

    def validate_public_values(self, public_values) -> None:
        if len(public_values.outputs) != NUM_REGISTERS:
            raise ValueError(f"expected {NUM_REGISTERS} outputs, got {len(public_values.outputs)}")

    def generate_trace(self, execution, public_values) -> List[Row]:
        rows = [self._step_row(step) for step in execution.cpu]
        height = padded_height(len(rows))
        while len(rows) < height:
            pad = list(rows[-1])
            pad[COL_CLK] += 1
            pad[COL_IS_REAL] = 0
            rows.append(pad)
        return rows

    @staticmethod
    def _step_row(step) -> Row:
        row = [0] * NUM_CPU_COLUMNS
        ins = step.instruction
        row[COL_CLK] = step.clk
        row[COL_PC] = step.pc
        row[COL_INST] = step.word
        row[COL_IMM] = step.imm
        row[COL_OP1_IMM] = int(ins.imm is not None)
        row[COL_OP0] = step.op0
        row[COL_OP1] = step.op1
        row[COL_DST] = step.dst
        row[COL_AUX0] = step.aux0
        row[COL_AUX1] = step.aux1
        for i, v in enumerate(step.regs):
            row[COL_REGS[i]] = v
        if ins.dst is not None:
            row[COL_S_DST[ins.dst]] = 1
        if ins.op0 is not None:
            row[COL_S_OP0[ins.op0]] = 1
        if ins.op1_reg is not None:
            row[COL_S_OP1[ins.op1_reg]] = 1
        row[COL_S_OPCODE[ins.opcode]] = 1
        row[COL_IS_REAL] = 1
        return row

    def eval_constraints(self, frame: EvaluationFrame, cc: ConstraintConsumer, public_values) -> None:
        lv = frame.local_values
        nv = frame.next_values
        one = cc.one

        # Selector booleanity and one-hot sums
        selectors = COL_S_DST + COL_S_OP0 + COL_S_OP1 + list(COL_S_OPCODE.values()) + [COL_OP1_IMM, COL_IS_REAL]
        for col in selectors:
            cc.constraint(lv[col] * (lv[col] - one))

        opcode_sum = _sum(cc, lv, COL_S_OPCODE.values())
        cc.constraint(opcode_sum - one)
        for group in (COL_S_DST, COL_S_OP0):
            s = _sum(cc, lv, group)
            cc.constraint(s * (s - one))
        op1_src = _sum(cc, lv, COL_S_OP1) + lv[COL_OP1_IMM]
        cc.constraint(op1_src * (op1_src - one))
        cc.constraint((one - lv[COL_OP1_IMM]) * lv[COL_IMM])

        # Instruction word decodes into the selectors
        decoded = cc.zero
        for op, col in COL_S_OPCODE.items():
            decoded = decoded + lv[col] * cc.constant(int(op))
        for shift, group in ((DST_SHIFT, COL_S_DST), (OP0_SHIFT, COL_S_OP0), (OP1_SHIFT, COL_S_OP1)):
            for i, col in enumerate(group):
                decoded = decoded + lv[col] * cc.constant((i + 1) << shift)
        decoded = decoded + lv[COL_OP1_IMM] * cc.constant(1 << IMM_FLAG_SHIFT)
        cc.constraint(lv[COL_INST] - decoded)

        # Operand values come from the selected registers
        op0 = cc.zero
        op1 = lv[COL_OP1_IMM] * lv[COL_IMM]
        for i, reg in enumerate(COL_REGS):
            op0 = op0 + lv[COL_S_OP0[i]] * lv[reg]
            op1 = op1 + lv[COL_S_OP1[i]] * lv[reg]
        cc.constraint(lv[COL_OP0] - op0)
        cc.constraint(lv[COL_OP1] - op1)

        # Register file update
        for i, reg in enumerate(COL_REGS):
            cc.constraint_transition(nv[reg] - lv[reg] - lv[COL_S_DST[i]] * (lv[COL_DST] - lv[reg]))

        # Arithmetic
        diff = lv[COL_OP0] - lv[COL_OP1]
        cc.constraint(lv[COL_S_MOV] * (lv[COL_DST] - lv[COL_OP1]))
        cc.constraint(lv[COL_S_ADD] * (lv[COL_DST] - lv[COL_OP0] - lv[COL_OP1]))
        cc.constraint(lv[COL_S_MUL] * (lv[COL_DST] - lv[COL_OP0] * lv[COL_OP1]))
        cc.constraint(lv[COL_S_EQ] * (diff * lv[COL_AUX0] - one + lv[COL_DST]))
        cc.constraint(lv[COL_S_EQ] * diff * lv[COL_DST])
        cc.constraint(lv[COL_S_NEQ] * (diff * lv[COL_AUX0] - lv[COL_DST]))
        cc.constraint(lv[COL_S_NEQ] * diff * (one - lv[COL_DST]))
        cc.constraint(lv[COL_S_ASSERT] * diff)

        # Control flow
        pc, next_pc = lv[COL_PC], nv[COL_PC]
        sequential = one - _sum(cc, lv, _BRANCHING)
        cc.constraint_transition(sequential * (next_pc - pc - one))
        cc.constraint_transition(lv[COL_S_JMP] * (next_pc - lv[COL_OP1]))
        cond = lv[COL_OP0]
        cc.constraint(lv[COL_S_CJMP] * cond * (one - cond))
        cc.constraint_transition(
            lv[COL_S_CJMP] * (next_pc - cond * lv[COL_OP1] - (one - cond) * (pc + one))
        )
        cc.constraint(lv[COL_S_CALL] * (lv[COL_AUX0] - pc - one))
        cc.constraint_transition(lv[COL_S_CALL] * (next_pc - lv[COL_OP1]))
        cc.constraint_transition(lv[COL_S_RET] * (next_pc - lv[COL_AUX0]))
        cc.constraint(lv[COL_S_RET] * (lv[COL_DST] - lv[COL_AUX1]))
        cc.constraint_transition(lv[COL_S_END] * (next_pc - pc))
        cc.constraint_transition(lv[COL_S_END] * (one - nv[COL_S_END]))

        # Execution is a prefix: is_real only drops, and only after `end`
        is_real, next_real = lv[COL_IS_REAL], nv[COL_IS_REAL]
        cc.constraint_transition(next_real * (one - is_real))
        cc.constraint_transition((is_real - next_real) * (one - lv[COL_S_END]))

        # Clock
        cc.constraint_transition(nv[COL_CLK] - lv[COL_CLK] - one)

        # Boundaries: start at pc 0 with zeroed registers, finish on `end`
        cc.constraint_first_row(lv[COL_CLK])
        cc.constraint_first_row(lv[COL_PC])
        cc.constraint_first_row(lv[COL_IS_REAL] - one)
        for reg in COL_REGS:
            cc.constraint_first_row(lv[reg])
        cc.constraint_last_row(lv[COL_S_END] - one)
        for reg, value in zip(COL_REGS, public_values.outputs):
            cc.constraint_last_row(lv[reg] - cc.constant(value))


def _sum(cc: ConstraintConsumer, lv, cols):
    acc = cc.zero
    for col in cols:
        acc = acc + lv[col]
    return acc

