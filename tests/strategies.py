"""
Hypothesis strategies for generated VM programs.

Programs are built from the instruction-set description in olastark.vm.isa:
each instruction's operand slots decide what gets drawn, and a few per-opcode
preconditions keep every generated program executable (u32 operands for the
builtins, loads only from written addresses, asserts that hold). Programs are
straight-line and always end with `end`.
"""

from typing import Dict, List, Sequence

from hypothesis import strategies as st
from hypothesis.strategies import composite

from olastark.primitives.field import GOLDILOCKS_PRIME
from olastark.vm.isa import FP_REGISTER, INSTRUCTION_SET, U32_MAX, Instruction, Opcode, Program

REGISTERS = st.integers(min_value=0, max_value=FP_REGISTER - 1)
FIELD_VALUES = st.one_of(
    st.integers(min_value=0, max_value=255),
    st.integers(min_value=0, max_value=GOLDILOCKS_PRIME - 1),
)
U32_VALUES = st.one_of(st.integers(min_value=0, max_value=255), st.integers(min_value=0, max_value=U32_MAX))
ADDRESSES = st.sampled_from([0x10, 0x11, 0x100, 0x1000, 0xFFFF0000])

# Builtins whose operands must be u32
U32_OPCODES = (Opcode.AND, Opcode.OR, Opcode.XOR, Opcode.GTE, Opcode.RANGE_CHECK)

# Opcodes usable without control flow
STRAIGHT_LINE = tuple(
    op for op in INSTRUCTION_SET if op not in (Opcode.JMP, Opcode.CJMP, Opcode.CALL, Opcode.RET, Opcode.END)
)


@composite
def operands(draw, opcode: Opcode) -> Dict[str, int]:
    """Fill the operand slots INSTRUCTION_SET declares for opcode."""
    fields: Dict[str, int] = {}
    for slot in INSTRUCTION_SET[opcode].slots:
        if slot == "op1":
            if draw(st.booleans()):
                fields["imm"] = draw(FIELD_VALUES)
            else:
                fields["op1_reg"] = draw(REGISTERS)
        else:
            fields[slot] = draw(REGISTERS)
    return fields


@composite
def programs(draw, max_instructions: int = 8, opcodes: Sequence[Opcode] = STRAIGHT_LINE) -> Program:
    instructions: List[Instruction] = []
    written: List[int] = []

    for _ in range(draw(st.integers(min_value=0, max_value=max_instructions))):
        opcode = draw(st.sampled_from(list(opcodes)))
        fields = draw(operands(opcode))

        if opcode in U32_OPCODES:
            for key in ("op0", "op1_reg"):
                if key in fields:
                    instructions.append(Instruction(Opcode.MOV, dst=fields[key], imm=draw(U32_VALUES)))
            if "imm" in fields:
                fields["imm"] = draw(U32_VALUES)
        elif opcode in (Opcode.MSTORE, Opcode.MLOAD):
            fields.pop("op1_reg", None)
            if opcode == Opcode.MSTORE:
                fields["imm"] = draw(ADDRESSES)
                written.append(fields["imm"])
            else:
                if not written:
                    addr = draw(ADDRESSES)
                    instructions.append(Instruction(Opcode.MSTORE, op0=draw(REGISTERS), imm=addr))
                    written.append(addr)
                fields["imm"] = draw(st.sampled_from(written))
        elif opcode == Opcode.ASSERT:
            fields.pop("imm", None)
            fields["op1_reg"] = fields["op0"]

        instructions.append(Instruction(opcode, **fields))

    instructions.append(Instruction(Opcode.END))
    return Program(instructions)
