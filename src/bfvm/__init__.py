from .api import CompileOptions, CompileResult, RunOptions, compile_file, compile_string, run_program, run_string
from .errors import (
    BFVMError,
    InvalidInstruction,
    OutOfRange,
    StepLimitExceeded,
    UnresolvedLabel,
    UnsupportedOperation,
)
from .ir import Instruction, Label, Opcode, Register, dump_program
from .optimizer import optimize
from .resolver import loop_pairs, resolve
from .source import CommandSource
from .translator import Translator, translate
from .vm import Memory, VirtualMachine

__all__ = [
    'CompileOptions',
    'CompileResult',
    'RunOptions',
    'compile_string',
    'compile_file',
    'run_program',
    'run_string',
    'BFVMError',
    'InvalidInstruction',
    'OutOfRange',
    'StepLimitExceeded',
    'UnresolvedLabel',
    'UnsupportedOperation',
    'Instruction',
    'Label',
    'Opcode',
    'Register',
    'dump_program',
    'optimize',
    'loop_pairs',
    'resolve',
    'CommandSource',
    'Translator',
    'translate',
    'Memory',
    'VirtualMachine',
]
