from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from .ir import Instruction
from .optimizer import DEFAULT_PASSES, optimize
from .resolver import resolve
from .source import CommandSource
from .state import MachineState
from .translator import Translator
from .vm import MEMORY_SIZE, VirtualMachine

ENGINES = ("interp", "jit")


@dataclass(frozen=True)
class CompileOptions:
    optimize: bool = True
    passes: int = DEFAULT_PASSES


@dataclass(frozen=True)
class RunOptions:
    cell_size: Optional[int] = 256
    memory_size: int = MEMORY_SIZE
    engine: str = "interp"
    max_steps: Optional[int] = None


@dataclass(frozen=True)
class CompileResult:
    program: List[Instruction]
    raw_count: int
    optimized_count: int


def compile_source(source: CommandSource, *, options: Optional[CompileOptions] = None) -> CompileResult:
    opts = options if options is not None else CompileOptions()
    insts, symbols = Translator(naive=not opts.optimize).translate(source)
    raw_count = len(insts)
    if opts.optimize:
        insts = optimize(insts, passes=opts.passes)
    optimized_count = len(insts)
    program = resolve(insts, symbols, lines=source.lines)
    return CompileResult(program=program, raw_count=raw_count, optimized_count=optimized_count)


def compile_string(source: str, *, options: Optional[CompileOptions] = None) -> CompileResult:
    return compile_source(CommandSource.from_string(source), options=options)


def compile_file(path: str | Path, *, options: Optional[CompileOptions] = None, encoding: str = "utf-8") -> CompileResult:
    return compile_source(CommandSource.from_file(path, encoding=encoding), options=options)


def make_vm(program: Sequence[Instruction], *, out: Optional[BinaryIO] = None,
            options: Optional[RunOptions] = None) -> VirtualMachine:
    opts = options if options is not None else RunOptions()
    if opts.engine not in ENGINES:
        raise ValueError(f"Unknown engine: {opts.engine}")
    return VirtualMachine(program, out=out, cell_size=opts.cell_size,
                          memory_size=opts.memory_size, max_steps=opts.max_steps)


def run_program(program: Sequence[Instruction], *, out: Optional[BinaryIO] = None,
                options: Optional[RunOptions] = None) -> MachineState:
    opts = options if options is not None else RunOptions()
    vm = make_vm(program, out=out, options=opts)
    if opts.engine == "jit":
        return vm.run_jit()
    return vm.run()


def run_string(source: str, *, out: Optional[BinaryIO] = None,
               compile_options: Optional[CompileOptions] = None,
               run_options: Optional[RunOptions] = None) -> MachineState:
    result = compile_string(source, options=compile_options)
    return run_program(result.program, out=out, options=run_options)
