from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .ir import Instruction, Label
from .source import SourcePos


@dataclass
class TranslatorState:
    instructions: List[Instruction] = field(default_factory=list)
    symbols: Dict[Label, SourcePos] = field(default_factory=dict)
    loop_stack: List[int] = field(default_factory=list)  # ids of still-open loops
    next_loop_id: int = 0

    def reset(self) -> None:
        self.instructions.clear()
        self.symbols.clear()
        self.loop_stack.clear()
        self.next_loop_id = 0

    def new_loop_id(self) -> int:
        loop_id = self.next_loop_id
        self.next_loop_id += 1
        return loop_id


@dataclass
class MachineState:
    pc: int = 0
    a: int = 0
    p: int = 0
    halted: bool = False
    steps: int = 0
