from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


def _build_context(lines: List[str], line_no_1: int, column: Optional[int] = None, *, context: int = 2) -> str:
    if not lines:
        return ""
    idx = min(max(1, line_no_1), len(lines))
    start = max(1, idx - context)
    end = min(len(lines), idx + context)

    out: List[str] = []
    for i in range(start, end + 1):
        prefix = '>' if i == idx else ' '
        out.append(f"{prefix} {i:4d} | {lines[i - 1].rstrip()}")
        if i == idx and column is not None:
            out.append(f"       | {' ' * (column - 1)}^")
    return "\n".join(out)


def _hint_for(message: str, *, kind: str) -> Optional[str]:
    msg = message.lower()
    if kind == 'translate':
        if 'input' in msg:
            return 'Reading input is not supported. Remove the "," command or replace it with a constant.'
        return None
    if kind == 'resolve':
        if 'duplicate' in msg:
            return 'Labels must be defined exactly once.'
        if '.begin' in msg:
            return 'Check for a "]" without a matching "[".'
        if '.end' in msg:
            return 'Check for a "[" that is never closed by "]".'
        return None
    return None


@dataclass
class BFVMError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class UnsupportedOperation(BFVMError):
    line: int
    column: int
    context: str


@dataclass
class UnresolvedLabel(BFVMError):
    label: object
    context: str


@dataclass
class OutOfRange(BFVMError):
    address: int
    pc: int


@dataclass
class StepLimitExceeded(BFVMError):
    steps: int


@dataclass
class InvalidInstruction(BFVMError):
    pc: int
    op: object


def make_unsupported_error(*, message: str, lines: List[str], line: int, column: int) -> UnsupportedOperation:
    ctx = _build_context(lines, line, column)
    hint = _hint_for(message, kind='translate')
    hint_block = f"\nHint: {hint}" if hint else ""
    return UnsupportedOperation(
        message=f"UnsupportedOperation: {message} (line {line}, column {column})\n{ctx}{hint_block}",
        line=line,
        column=column,
        context=ctx,
    )


def make_unresolved_error(*, message: str, label: object, lines: Optional[List[str]] = None,
                          line: Optional[int] = None, column: Optional[int] = None) -> UnresolvedLabel:
    ctx = _build_context(lines, line, column) if lines and line is not None else ""
    hint = _hint_for(message, kind='resolve')
    where = f" (line {line}, column {column})" if line is not None else ""
    ctx_block = f"\n{ctx}" if ctx else ""
    hint_block = f"\nHint: {hint}" if hint else ""
    return UnresolvedLabel(
        message=f"UnresolvedLabel: {message}{where}{ctx_block}{hint_block}",
        label=label,
        context=ctx,
    )


def make_out_of_range_error(*, address: int, pc: int, size: int) -> OutOfRange:
    return OutOfRange(
        message=f"OutOfRange: memory address {address} outside [0, {size}) at pc={pc}",
        address=address,
        pc=pc,
    )
