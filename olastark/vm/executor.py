"""Reference executor: runs a Program and records everything the tables need."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from olastark.errors import ExecutionError
from olastark.primitives.field import GOLDILOCKS_PRIME, inv_mod
from olastark.vm.isa import BITWISE_TAG, FP_REGISTER, NUM_REGISTERS, U32_MAX, Instruction, Opcode, Program

logger = logging.getLogger(__name__)

P = GOLDILOCKS_PRIME
DEFAULT_MAX_STEPS = 1 << 16


# --- Records ---


@dataclass
class CpuStep:
    """One executed instruction; regs are the register values before it ran."""
    clk: int
    pc: int
    instruction: Instruction
    word: int
    imm: int
    op0: int
    op1: int
    dst: int
    aux0: int
    aux1: int
    regs: List[int]


@dataclass(frozen=True)
class MemoryOp:
    clk: int
    addr: int
    value: int
    is_write: bool


@dataclass(frozen=True)
class SortedMemoryOp:
    """Memory op in (addr, clk) order with its gap to the following op."""
    op: MemoryOp
    addr_changed: bool
    rc_value: int


@dataclass
class ExecutionTrace:
    program: Program
    cpu: List[CpuStep] = field(default_factory=list)
    memory: List[MemoryOp] = field(default_factory=list)
    bitwise: List[Tuple[int, int, int, int]] = field(default_factory=list)  # (tag, op0, op1, res)
    cmp: List[Tuple[int, int, int, int]] = field(default_factory=list)  # (op0, op1, gte, diff)
    range_check_operands: List[int] = field(default_factory=list)
    outputs: List[int] = field(default_factory=list)

    def sorted_memory(self) -> List[SortedMemoryOp]:
        """Memory ops ordered by address then clock.

        rc_value is the gap to the next op: next.addr - addr - 1 across an
        address change, next.clk - clk - 1 within one address, 0 for the last op.
        """
        ops = sorted(self.memory, key=lambda m: (m.addr, m.clk))
        out = []
        for i, op in enumerate(ops):
            if i + 1 < len(ops):
                nxt = ops[i + 1]
                changed = nxt.addr != op.addr
                gap = nxt.addr - op.addr - 1 if changed else nxt.clk - op.clk - 1
            else:
                changed, gap = False, 0
            out.append(SortedMemoryOp(op=op, addr_changed=changed, rc_value=gap))
        return out

    def range_check_values(self) -> List[int]:
        """Every value the RangeCheck table must hold: CPU, Cmp and Memory lookups."""
        values = list(self.range_check_operands)
        values += [v for a, b, _, diff in self.cmp for v in (a, b, diff)]
        values += [m.rc_value for m in self.sorted_memory()]
        return values

    def fetch_counts(self) -> Counter:
        return Counter(step.pc for step in self.cpu)


# --- Executor ---


def _u32(value: int, what: str) -> int:
    if not 0 <= value <= U32_MAX:
        raise ExecutionError(f"{what} {value:#x} is not a u32")
    return value


class Executor:
    """Interpreter over field registers and a word-addressed memory."""

    def __init__(self, program: Program, max_steps: int = DEFAULT_MAX_STEPS):
        if not program.instructions:
            raise ExecutionError("empty program")
        self.program = program
        self.max_steps = max_steps
        self.regs = [0] * NUM_REGISTERS
        self.mem: dict = {}
        self.trace = ExecutionTrace(program=program)

    def _read(self, clk: int, addr: int) -> int:
        addr = _u32(addr, "address")
        if addr not in self.mem:
            raise ExecutionError(f"read of unwritten address {addr:#x} at clk {clk}")
        value = self.mem[addr]
        self.trace.memory.append(MemoryOp(clk, addr, value, False))
        return value

    def _write(self, clk: int, addr: int, value: int) -> None:
        addr = _u32(addr, "address")
        self.mem[addr] = value
        self.trace.memory.append(MemoryOp(clk, addr, value, True))

    def run(self) -> ExecutionTrace:
        pc = 0
        for clk in range(self.max_steps):
            if not 0 <= pc < len(self.program):
                raise ExecutionError(f"pc {pc} outside program of length {len(self.program)}")
            ins = self.program.instructions[pc]
            word, imm = ins.encode()
            regs_before = list(self.regs)

            op0 = self.regs[ins.op0] if ins.op0 is not None else 0
            if ins.op1_reg is not None:
                op1 = self.regs[ins.op1_reg]
            elif ins.imm is not None:
                op1 = imm
            else:
                op1 = 0

            dst, aux0, aux1 = 0, 0, 0
            next_pc = pc + 1
            op = ins.opcode

            if op == Opcode.MOV:
                dst = op1
            elif op == Opcode.ADD:
                dst = (op0 + op1) % P
            elif op == Opcode.MUL:
                dst = op0 * op1 % P
            elif op in (Opcode.EQ, Opcode.NEQ):
                diff = (op0 - op1) % P
                aux0 = inv_mod(diff) if diff else 0
                equal = int(diff == 0)
                dst = equal if op == Opcode.EQ else 1 - equal
            elif op == Opcode.ASSERT:
                if op0 != op1:
                    raise ExecutionError(f"assert failed at pc {pc}: {op0} != {op1}")
            elif op == Opcode.JMP:
                next_pc = op1
            elif op == Opcode.CJMP:
                if op0 not in (0, 1):
                    raise ExecutionError(f"cjmp condition must be 0 or 1, got {op0} at pc {pc}")
                next_pc = op1 if op0 == 1 else pc + 1
            elif op == Opcode.CALL:
                fp = self.regs[FP_REGISTER]
                aux0 = pc + 1
                self._write(clk, fp - 1, aux0)
                aux1 = self._read(clk, fp - 2)
                next_pc = op1
            elif op == Opcode.RET:
                fp = self.regs[FP_REGISTER]
                aux0 = self._read(clk, fp - 1)
                aux1 = self._read(clk, fp - 2)
                dst = aux1
                next_pc = aux0
            elif op == Opcode.MLOAD:
                dst = self._read(clk, op1)
            elif op == Opcode.MSTORE:
                self._write(clk, op1, op0)
            elif op == Opcode.RANGE_CHECK:
                self.trace.range_check_operands.append(_u32(op0, "range_check operand"))
            elif op in BITWISE_TAG:
                a, b = _u32(op0, "bitwise operand"), _u32(op1, "bitwise operand")
                dst = {Opcode.AND: a & b, Opcode.OR: a | b, Opcode.XOR: a ^ b}[op]
                self.trace.bitwise.append((BITWISE_TAG[op], a, b, dst))
            elif op == Opcode.GTE:
                a, b = _u32(op0, "gte operand"), _u32(op1, "gte operand")
                dst = int(a >= b)
                diff = a - b if dst else b - a - 1
                self.trace.cmp.append((a, b, dst, diff))
            elif op == Opcode.END:
                next_pc = pc

            if ins.dst is not None:
                self.regs[ins.dst] = dst

            self.trace.cpu.append(
                CpuStep(
                    clk=clk, pc=pc, instruction=ins, word=word, imm=imm,
                    op0=op0, op1=op1, dst=dst, aux0=aux0, aux1=aux1, regs=regs_before,
                )
            )
            if op == Opcode.END:
                self.trace.outputs = list(self.regs)
                logger.debug("program ended after %d steps", clk + 1)
                return self.trace
            pc = next_pc

        raise ExecutionError(f"program did not reach end within {self.max_steps} steps")


def execute(program: Program, max_steps: Optional[int] = None) -> ExecutionTrace:
    return Executor(program, max_steps or DEFAULT_MAX_STEPS).run()
