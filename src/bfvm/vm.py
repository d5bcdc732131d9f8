from __future__ import annotations

import logging
import sys
from typing import BinaryIO, Dict, List, Optional, Sequence

import numpy as np
from numba import njit

from .errors import BFVMError, InvalidInstruction, StepLimitExceeded, make_out_of_range_error
from .ir import Instruction, Opcode, Register
from .state import MachineState

logger = logging.getLogger(__name__)

MEMORY_SIZE = 30000


class Memory:
    """Bounds-checked sparse tape. Cells spring into existence as zero on first read."""

    def __init__(self, size: int = MEMORY_SIZE):
        self.size = size
        self.cells: Dict[int, int] = {}

    def _check(self, addr: int, pc: int) -> None:
        if addr < 0 or addr >= self.size:
            raise make_out_of_range_error(address=addr, pc=pc, size=self.size)

    def get(self, addr: int, pc: int = -1) -> int:
        self._check(addr, pc)
        if addr not in self.cells:
            self.cells[addr] = 0
        return self.cells[addr]

    def set(self, addr: int, value: int, pc: int = -1) -> None:
        self._check(addr, pc)
        self.cells[addr] = value

    def snapshot(self, count: int = 16) -> List[int]:
        return [self.cells.get(i, 0) for i in range(min(count, self.size))]

    def as_array(self) -> np.ndarray:
        arr = np.zeros(self.size, dtype=np.int64)
        for addr, value in self.cells.items():
            arr[addr] = value
        return arr

    def update_from(self, arr: np.ndarray) -> None:
        self.cells = {int(addr): int(arr[addr]) for addr in np.flatnonzero(arr)}


def _wrap(value: int, cell_size: Optional[int]) -> int:
    return value % cell_size if cell_size else value


class VirtualMachine:
    """
    Fetch/decode/execute loop over a resolved program.

    The machine state (pc and the two registers) lives in a MachineState
    value that step() takes and returns; the VM object itself only owns the
    program, the tape and the output stream.
    """

    def __init__(self, program: Sequence[Instruction], *, out: Optional[BinaryIO] = None,
                 cell_size: Optional[int] = 256, memory_size: int = MEMORY_SIZE,
                 max_steps: Optional[int] = None):
        self.program = tuple(program)
        self.out = out if out is not None else sys.stdout.buffer
        self.cell_size = cell_size
        self.memory = Memory(memory_size)
        self.max_steps = max_steps

    def emit(self, value: int) -> None:
        self.out.write(bytes((value % 256,)))
        self.out.flush()

    def step(self, state: MachineState) -> MachineState:
        if state.pc >= len(self.program):
            state.halted = True
            return state

        inst = self.program[state.pc]
        op = inst.op

        if op is Opcode.LOAD:
            state.a = self.memory.get(state.p, state.pc)
        elif op is Opcode.STORE:
            self.memory.set(state.p, state.a, state.pc)
        elif op in (Opcode.INC, Opcode.DEC, Opcode.ADD, Opcode.SUB):
            delta = 1 if op in (Opcode.INC, Opcode.DEC) else inst.count
            if op in (Opcode.DEC, Opcode.SUB):
                delta = -delta
            if inst.arg is Register.A:
                state.a = _wrap(state.a + delta, self.cell_size)
            else:
                state.p += delta
        elif op is Opcode.JUMP:
            state.pc = inst.arg - 1
        elif op is Opcode.JZ:
            if state.a == 0:
                state.pc = inst.arg - 1
        elif op is Opcode.OUTPUT:
            self.emit(state.a if inst.arg is Register.A else state.p)
        else:
            raise InvalidInstruction(
                message=f"InvalidInstruction: {op.value} at pc={state.pc} in a resolved program",
                pc=state.pc,
                op=op,
            )

        state.pc += 1
        state.steps += 1
        if state.pc >= len(self.program):
            state.halted = True
        return state

    def run(self, state: Optional[MachineState] = None) -> MachineState:
        state = state if state is not None else MachineState()
        while not state.halted:
            if self.max_steps is not None and state.steps >= self.max_steps:
                raise StepLimitExceeded(message=f"StepLimitExceeded: more than {self.max_steps} steps",
                                        steps=state.steps)
            state = self.step(state)
        logger.debug("halted after %d steps", state.steps)
        return state

    # ===== JIT engine =====

    def run_jit(self, state: Optional[MachineState] = None) -> MachineState:
        """
        Same semantics as run(), executed by a numba-compiled loop.

        The compiled loop returns to Python for every Output so each byte is
        written and flushed before the next instruction executes.
        """
        if not self.cell_size:
            raise BFVMError("the jit engine needs a fixed cell size")
        state = state if state is not None else MachineState()
        ops, args, counts = encode_program(self.program)
        memory = self.memory.as_array()
        budget = -1 if self.max_steps is None else self.max_steps

        try:
            while True:
                remaining = -1 if budget < 0 else max(budget - state.steps, 0)
                pc, a, p, steps, stop = jit_loop(ops, args, counts, memory,
                                                 state.pc, state.a, state.p,
                                                 self.cell_size, remaining)
                state.pc, state.a, state.p = int(pc), int(a), int(p)
                state.steps += int(steps)

                if stop == STOP_OUTPUT:
                    self.emit(state.a if args[state.pc] == 0 else state.p)
                    state.pc += 1
                    state.steps += 1
                elif stop == STOP_RANGE:
                    raise make_out_of_range_error(address=state.p, pc=state.pc, size=self.memory.size)
                elif stop == STOP_LIMIT:
                    raise StepLimitExceeded(message=f"StepLimitExceeded: more than {self.max_steps} steps",
                                            steps=state.steps)
                else:
                    break
        finally:
            self.memory.update_from(memory)

        state.halted = True
        logger.debug("jit halted after %d steps", state.steps)
        return state


# ---------------- numba loop ----------------
JIT_OPCODES = {
    Opcode.LOAD: 0,
    Opcode.STORE: 1,
    Opcode.INC: 2,
    Opcode.DEC: 3,
    Opcode.ADD: 4,
    Opcode.SUB: 5,
    Opcode.JUMP: 6,
    Opcode.JZ: 7,
    Opcode.OUTPUT: 8,
}

STOP_END = 0
STOP_OUTPUT = 1
STOP_RANGE = 2
STOP_LIMIT = 3


def encode_program(program: Sequence[Instruction]):
    n = len(program)
    ops = np.zeros(n, dtype=np.int64)
    args = np.zeros(n, dtype=np.int64)
    counts = np.zeros(n, dtype=np.int64)
    for i, inst in enumerate(program):
        ops[i] = JIT_OPCODES[inst.op]
        if isinstance(inst.arg, Register):
            args[i] = 0 if inst.arg is Register.A else 1
        elif isinstance(inst.arg, int):
            args[i] = inst.arg
        counts[i] = inst.count
    return ops, args, counts


@njit(cache=True)
def jit_loop(ops, args, counts, memory, pc, a, p, cell_size, max_steps):
    n = len(ops)
    size = len(memory)
    steps = 0
    stop = STOP_END

    while pc < n:
        if max_steps >= 0 and steps >= max_steps:
            stop = STOP_LIMIT
            break
        op = ops[pc]

        if op == 0:  # ld
            if p < 0 or p >= size:
                stop = STOP_RANGE
                break
            a = memory[p]
        elif op == 1:  # st
            if p < 0 or p >= size:
                stop = STOP_RANGE
                break
            memory[p] = a
        elif op <= 5:  # inc/dec/add/sub
            delta = 1 if op <= 3 else counts[pc]
            if op == 3 or op == 5:
                delta = -delta
            if args[pc] == 0:
                a = (a + delta) % cell_size
            else:
                p += delta
        elif op == 6:  # jmp
            pc = args[pc] - 1
        elif op == 7:  # jz
            if a == 0:
                pc = args[pc] - 1
        else:  # out
            stop = STOP_OUTPUT
            break

        pc += 1
        steps += 1

    return pc, a, p, steps, stop
