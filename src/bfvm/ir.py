from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union


class Opcode(Enum):
    LOAD = "ld"
    STORE = "st"
    INC = "inc"
    DEC = "dec"
    ADD = "add"
    SUB = "sub"
    JUMP = "jmp"
    JZ = "jz"
    OUTPUT = "out"
    LABEL = "label"
    NOP = "nop"


class Register(Enum):
    A = "a"  # accumulator
    P = "p"  # pointer


@dataclass(frozen=True)
class Label:
    loop_id: int
    kind: str  # 'begin' or 'end'

    def __str__(self) -> str:
        return f"L{self.loop_id}.{self.kind}"


Operand = Union[Register, Label, int, None]


@dataclass(frozen=True)
class Instruction:
    op: Opcode
    arg: Operand = None
    count: int = 0  # only used by ADD/SUB

    def __str__(self) -> str:
        if self.op in (Opcode.ADD, Opcode.SUB):
            return f"{self.op.value} {self.arg.value}, {self.count}"
        if isinstance(self.arg, Register):
            return f"{self.op.value} {self.arg.value}"
        if self.arg is None:
            return self.op.value
        return f"{self.op.value} {self.arg}"


JUMPS = (Opcode.JUMP, Opcode.JZ)

# Unit steps and the counted form they coalesce into.
STEP_TO_COUNTED = {Opcode.INC: Opcode.ADD, Opcode.DEC: Opcode.SUB}
COUNTED_TO_STEP = {v: k for k, v in STEP_TO_COUNTED.items()}


def reads_accumulator(inst: Instruction) -> bool:
    """True when the instruction observes the accumulator's current value."""
    if inst.op in (Opcode.STORE, Opcode.JZ):
        return True
    if inst.op in (Opcode.INC, Opcode.DEC, Opcode.ADD, Opcode.SUB, Opcode.OUTPUT):
        return inst.arg is Register.A
    return False


def step_of(inst: Instruction) -> Optional[Opcode]:
    """INC/DEC for a unit or counted step, None for everything else."""
    if inst.op in STEP_TO_COUNTED:
        return inst.op
    return COUNTED_TO_STEP.get(inst.op)


def step_count(inst: Instruction) -> int:
    return inst.count if inst.op in COUNTED_TO_STEP else 1


def dump_program(program: Iterable[Instruction]) -> str:
    """Address-annotated listing, one instruction per line."""
    lines: List[str] = []
    for addr, inst in enumerate(program):
        lines.append(f"{addr:04d}: {inst}")
    return "\n".join(lines)
