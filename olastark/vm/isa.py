"""Instruction set, encoding and assembler.

Every instruction occupies one program-listing entry (word, immediate). The
word packs the opcode and the register fields:

    word = opcode | dst << 8 | op0 << 12 | op1 << 16 | imm_flag << 20

A register field holds index + 1, 0 meaning "slot unused". The immediate is
0 unless imm_flag is set, in which case it is the value of operand op1.
"""

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, NamedTuple, Optional, Tuple

from olastark.errors import ExecutionError
from olastark.primitives.field import GOLDILOCKS_PRIME

NUM_REGISTERS = 9
FP_REGISTER = 8

DST_SHIFT = 8
OP0_SHIFT = 12
OP1_SHIFT = 16
IMM_FLAG_SHIFT = 20

U32_MAX = (1 << 32) - 1


class Opcode(IntEnum):
    MOV = 1
    ADD = 2
    MUL = 3
    EQ = 4
    NEQ = 5
    ASSERT = 6
    JMP = 7
    CJMP = 8
    CALL = 9
    RET = 10
    MLOAD = 11
    MSTORE = 12
    END = 13
    RANGE_CHECK = 14
    AND = 15
    OR = 16
    XOR = 17
    GTE = 18


class OperandShape(NamedTuple):
    """Which slots an instruction's assembly operands fill, in source order."""
    slots: Tuple[str, ...]


# Instruction-set description shared by the assembler and the program builder.
# Slot "op1" accepts a register or an immediate; "dst" and "op0" take registers.
INSTRUCTION_SET: Dict[Opcode, OperandShape] = {
    Opcode.MOV: OperandShape(("dst", "op1")),
    Opcode.ADD: OperandShape(("dst", "op0", "op1")),
    Opcode.MUL: OperandShape(("dst", "op0", "op1")),
    Opcode.EQ: OperandShape(("dst", "op0", "op1")),
    Opcode.NEQ: OperandShape(("dst", "op0", "op1")),
    Opcode.ASSERT: OperandShape(("op0", "op1")),
    Opcode.JMP: OperandShape(("op1",)),
    Opcode.CJMP: OperandShape(("op0", "op1")),
    Opcode.CALL: OperandShape(("op1",)),
    Opcode.RET: OperandShape(()),
    Opcode.MLOAD: OperandShape(("dst", "op1")),
    Opcode.MSTORE: OperandShape(("op1", "op0")),
    Opcode.END: OperandShape(()),
    Opcode.RANGE_CHECK: OperandShape(("op0",)),
    Opcode.AND: OperandShape(("dst", "op0", "op1")),
    Opcode.OR: OperandShape(("dst", "op0", "op1")),
    Opcode.XOR: OperandShape(("dst", "op0", "op1")),
    Opcode.GTE: OperandShape(("dst", "op0", "op1")),
}

BITWISE_OPCODES = (Opcode.AND, Opcode.OR, Opcode.XOR)

# Tag carried into the bitwise tables
BITWISE_TAG = {Opcode.AND: 1, Opcode.OR: 2, Opcode.XOR: 3}


@dataclass(frozen=True)
class Instruction:
    opcode: Opcode
    dst: Optional[int] = None
    op0: Optional[int] = None
    op1_reg: Optional[int] = None
    imm: Optional[int] = None

    def __post_init__(self):
        if self.opcode == Opcode.RET and self.dst is None:
            # ret restores the frame pointer
            object.__setattr__(self, "dst", FP_REGISTER)
        for reg in (self.dst, self.op0, self.op1_reg):
            if reg is not None and not 0 <= reg < NUM_REGISTERS:
                raise ExecutionError(f"register r{reg} out of range")
        if self.op1_reg is not None and self.imm is not None:
            raise ExecutionError("op1 is either a register or an immediate")

    def encode(self) -> Tuple[int, int]:
        """(word, immediate) listing entry."""
        word = int(self.opcode)
        if self.dst is not None:
            word |= (self.dst + 1) << DST_SHIFT
        if self.op0 is not None:
            word |= (self.op0 + 1) << OP0_SHIFT
        if self.op1_reg is not None:
            word |= (self.op1_reg + 1) << OP1_SHIFT
        imm = 0
        if self.imm is not None:
            word |= 1 << IMM_FLAG_SHIFT
            imm = self.imm % GOLDILOCKS_PRIME
        return word, imm

    def __str__(self) -> str:
        parts = []
        for slot in INSTRUCTION_SET[self.opcode].slots:
            if slot == "op1":
                parts.append(f"r{self.op1_reg}" if self.op1_reg is not None else hex(self.imm))
            else:
                parts.append(f"r{getattr(self, slot)}")
        name = self.opcode.name.lower()
        return f"{name} {','.join(parts)}" if parts else name


def decode(word: int, imm: int) -> Instruction:
    """Inverse of Instruction.encode."""
    try:
        opcode = Opcode(word & 0xFF)
    except ValueError as e:
        raise ExecutionError(f"unknown opcode in word {word:#x}") from e

    def field(shift):
        v = (word >> shift) & 0xF
        return None if v == 0 else v - 1

    has_imm = (word >> IMM_FLAG_SHIFT) & 1
    return Instruction(
        opcode=opcode,
        dst=field(DST_SHIFT),
        op0=field(OP0_SHIFT),
        op1_reg=field(OP1_SHIFT),
        imm=imm if has_imm else None,
    )


@dataclass
class Program:
    instructions: List[Instruction]

    def listing(self) -> List[Tuple[int, int]]:
        return [ins.encode() for ins in self.instructions]

    def __len__(self) -> int:
        return len(self.instructions)

    def __str__(self) -> str:
        return "\n".join(str(i) for i in self.instructions)


# --- Assembler ---

_REG = re.compile(r"^r(\d+)$")


def _parse_int(token: str) -> int:
    try:
        return int(token, 0)
    except ValueError as e:
        raise ExecutionError(f"bad immediate {token!r}") from e


def assemble(source: str) -> Program:
    """Assemble text such as "mov r0,8; mstore 0x100,r0; end".

    Instructions are separated by newlines or ';'. Labels ("loop:") may be
    used as jump and call targets. '#' starts a comment.
    """
    lines = []
    for raw in source.replace(";", "\n").splitlines():
        line = raw.split("#", 1)[0].strip()
        if line:
            lines.append(line)

    labels: Dict[str, int] = {}
    statements = []
    for line in lines:
        while ":" in line:
            label, line = line.split(":", 1)
            labels[label.strip()] = len(statements)
            line = line.strip()
        if line:
            statements.append(line)

    instructions = []
    for pc, stmt in enumerate(statements):
        mnemonic, _, rest = stmt.partition(" ")
        try:
            opcode = Opcode[mnemonic.strip().upper()]
        except KeyError as e:
            raise ExecutionError(f"line {pc}: unknown mnemonic {mnemonic!r}") from e
        operands = [t.strip() for t in rest.split(",") if t.strip()]
        slots = INSTRUCTION_SET[opcode].slots
        if len(operands) != len(slots):
            raise ExecutionError(f"line {pc}: {mnemonic} takes {len(slots)} operands, got {len(operands)}")

        fields = {}
        for slot, token in zip(slots, operands):
            m = _REG.match(token)
            if slot == "op1":
                if m:
                    fields["op1_reg"] = int(m.group(1))
                elif token in labels:
                    fields["imm"] = labels[token]
                else:
                    fields["imm"] = _parse_int(token)
            else:
                if not m:
                    raise ExecutionError(f"line {pc}: {slot} of {mnemonic} must be a register, got {token!r}")
                fields[slot] = int(m.group(1))
        instructions.append(Instruction(opcode=opcode, **fields))
    return Program(instructions)
