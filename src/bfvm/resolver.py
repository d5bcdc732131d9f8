from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import make_unresolved_error
from .ir import JUMPS, Instruction, Label, Opcode
from .source import SourcePos

logger = logging.getLogger(__name__)


def _unresolved(message: str, label: Label, symbols: Optional[Mapping[Label, SourcePos]],
                lines: Optional[List[str]]):
    pos = symbols.get(label) if symbols else None
    if pos is None:
        return make_unresolved_error(message=message, label=label)
    return make_unresolved_error(message=message, label=label, lines=lines, line=pos.line, column=pos.column)


def resolve(insts: Sequence[Instruction],
            symbols: Optional[Mapping[Label, SourcePos]] = None,
            *,
            lines: Optional[List[str]] = None) -> List[Instruction]:
    """
    Strip label markers and rewrite jump operands to absolute addresses.

    A label resolves to the address of the first instruction after it, which
    may be one past the end of the program.

    Args:
        insts: optimized instruction sequence with symbolic jump targets
        symbols: optional label -> source position map, for error context
        lines: optional source lines, for error context

    Returns:
        flat program with integer jump targets and no Label/Nop entries
    """
    table: Dict[Label, int] = {}
    body: List[Instruction] = []
    for inst in insts:
        if inst.op is Opcode.LABEL:
            if inst.arg in table:
                raise _unresolved(f"duplicate definition of label {inst.arg}", inst.arg, symbols, lines)
            table[inst.arg] = len(body)
        elif inst.op is not Opcode.NOP:
            body.append(inst)

    program: List[Instruction] = []
    for inst in body:
        if inst.op in JUMPS:
            target = table.get(inst.arg)
            if target is None:
                raise _unresolved(f"jump target {inst.arg} is never defined", inst.arg, symbols, lines)
            inst = Instruction(inst.op, target)
        program.append(inst)

    logger.debug("resolved %d label(s), program is %d instructions", len(table), len(program))
    return program


def loop_pairs(program: Sequence[Instruction]) -> List[Tuple[int, int]]:
    """
    Re-derive loop structure from a resolved program.

    Every JumpIfZero exits to the instruction after its loop's back-jump, so
    the back-jump sits at target - 1. Returns (loop head, back-jump) address
    pairs, where the loop head is the back-jump's own target.
    """
    pairs: List[Tuple[int, int]] = []
    for addr, inst in enumerate(program):
        if inst.op is not Opcode.JZ:
            continue
        back = inst.arg - 1
        if back <= addr or program[back].op is not Opcode.JUMP:
            raise ValueError(f"jz at {addr} does not exit past a back-jump")
        pairs.append((program[back].arg, back))
    return pairs
