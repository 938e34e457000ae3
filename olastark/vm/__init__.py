"""Register VM: instruction set, assembler and reference executor."""

from olastark.vm.executor import CpuStep, ExecutionTrace, Executor, MemoryOp, execute
from olastark.vm.isa import INSTRUCTION_SET, NUM_REGISTERS, Instruction, Opcode, Program, assemble, decode

__all__ = [
    "CpuStep",
    "ExecutionTrace",
    "Executor",
    "MemoryOp",
    "execute",
    "INSTRUCTION_SET",
    "NUM_REGISTERS",
    "Instruction",
    "Opcode",
    "Program",
    "assemble",
    "decode",
]
