#!/usr/bin/env python3
"""
Tests for the virtual machine: memory, dispatch, registers and output.
"""

import io
import os
import sys
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest

from bfvm.errors import BFVMError, InvalidInstruction, OutOfRange, StepLimitExceeded
from bfvm.ir import Instruction, Opcode, Register
from bfvm.state import MachineState
from bfvm.vm import MEMORY_SIZE, Memory, VirtualMachine

A, P = Register.A, Register.P


class RecordingSink:
    def __init__(self):
        self.writes = []
        self.flushes = 0

    def write(self, data):
        self.writes.append(bytes(data))

    def flush(self):
        self.flushes += 1


def run(program, **kw):
    out = io.BytesIO()
    vm = VirtualMachine(program, out=out, **kw)
    state = vm.run()
    return out.getvalue(), state, vm


def test_memory_is_lazy_and_bounded():
    mem = Memory()
    assert mem.size == MEMORY_SIZE == 30000
    assert mem.cells == {}
    assert mem.get(5) == 0
    assert 5 in mem.cells
    mem.set(29999, 7)
    assert mem.get(29999) == 7
    for addr in (-1, 30000):
        with pytest.raises(OutOfRange) as exc:
            mem.get(addr)
        assert exc.value.address == addr
        with pytest.raises(OutOfRange):
            mem.set(addr, 1)


def test_memory_array_round_trip():
    mem = Memory(8)
    mem.set(3, 9)
    arr = mem.as_array()
    arr[3] = 0
    arr[6] = 4
    mem.update_from(arr)
    assert mem.snapshot(8) == [0, 0, 0, 0, 0, 0, 4, 0]


def test_step_threads_state():
    vm = VirtualMachine([Instruction(Opcode.INC, A), Instruction(Opcode.INC, P)], out=io.BytesIO())
    state = MachineState()
    state = vm.step(state)
    assert (state.pc, state.a, state.p, state.halted) == (1, 1, 0, False)
    state = vm.step(state)
    assert (state.pc, state.a, state.p, state.halted) == (2, 1, 1, True)


def test_empty_program_halts_immediately():
    out, state, _ = run([])
    assert out == b""
    assert state.halted and state.steps == 0


def test_jump_lands_on_target():
    out, _, _ = run([
        Instruction(Opcode.JUMP, 2),
        Instruction(Opcode.INC, A),
        Instruction(Opcode.OUTPUT, A),
    ])
    assert out == b"\x00"


def test_jz_branches_only_on_zero():
    program = [
        Instruction(Opcode.JZ, 2),
        Instruction(Opcode.OUTPUT, A),
        Instruction(Opcode.INC, A),
        Instruction(Opcode.JZ, 5),
        Instruction(Opcode.OUTPUT, A),
    ]
    out, _, _ = run(program)
    assert out == b"\x01"


def test_jump_to_one_past_end_halts():
    out, state, _ = run([Instruction(Opcode.JUMP, 2), Instruction(Opcode.OUTPUT, A)])
    assert out == b""
    assert state.halted and state.pc == 2


def test_output_pointer_register():
    out, _, _ = run([Instruction(Opcode.ADD, P, 2), Instruction(Opcode.OUTPUT, P)])
    assert out == b"\x02"


def test_load_and_store_use_pointer_cell():
    program = [
        Instruction(Opcode.ADD, A, 9),
        Instruction(Opcode.STORE),
        Instruction(Opcode.INC, P),
        Instruction(Opcode.LOAD),
        Instruction(Opcode.DEC, P),
        Instruction(Opcode.LOAD),
        Instruction(Opcode.OUTPUT, A),
    ]
    out, state, vm = run(program)
    assert out == b"\x09"
    assert vm.memory.snapshot(2) == [9, 0]


def test_accumulator_wraps_by_default():
    out, state, _ = run([Instruction(Opcode.DEC, A), Instruction(Opcode.OUTPUT, A)])
    assert out == b"\xff"
    assert state.a == 255
    _, state, _ = run([Instruction(Opcode.ADD, A, 300)])
    assert state.a == 44


def test_unbounded_accumulator():
    out, state, _ = run([Instruction(Opcode.SUB, A, 3), Instruction(Opcode.OUTPUT, A)], cell_size=None)
    assert state.a == -3
    assert out == b"\xfd"
    _, state, _ = run([Instruction(Opcode.ADD, A, 1000)], cell_size=None)
    assert state.a == 1000


def test_pointer_never_wraps():
    program = [Instruction(Opcode.DEC, P), Instruction(Opcode.LOAD)]
    with pytest.raises(OutOfRange) as exc:
        run(program)
    assert exc.value.address == -1
    assert exc.value.pc == 1


def test_each_output_is_flushed():
    sink = RecordingSink()
    program = [Instruction(Opcode.INC, A), Instruction(Opcode.OUTPUT, A), Instruction(Opcode.OUTPUT, A)]
    VirtualMachine(program, out=sink).run()
    assert sink.writes == [b"\x01", b"\x01"]
    assert sink.flushes == 2


def test_step_limit():
    program = [Instruction(Opcode.INC, A), Instruction(Opcode.JUMP, 0)]
    with pytest.raises(StepLimitExceeded) as exc:
        run(program, max_steps=100)
    assert exc.value.steps == 100


def test_smaller_memory():
    program = [Instruction(Opcode.ADD, P, 4), Instruction(Opcode.LOAD)]
    with pytest.raises(OutOfRange):
        run(program, memory_size=4)


def test_pseudo_ops_are_rejected():
    program = [Instruction(Opcode.INC, A), Instruction(Opcode.NOP)]
    with pytest.raises(InvalidInstruction) as exc:
        run(program)
    assert isinstance(exc.value, BFVMError)
    assert exc.value.pc == 1
    assert exc.value.op is Opcode.NOP
    assert "InvalidInstruction: nop at pc=1" in str(exc.value)
