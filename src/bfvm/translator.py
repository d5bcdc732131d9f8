from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple, Union

from .errors import make_unsupported_error
from .ir import Instruction, Label, Opcode, Register
from .source import CommandSource, SourcePos
from .state import TranslatorState

logger = logging.getLogger(__name__)

BF_COMMANDS = {
    '>': 'incp',
    '<': 'decp',
    '+': 'plus',
    '-': 'minus',
    '.': 'output',
    ',': 'input',
    '[': 'loop_begin',
    ']': 'loop_end',
}

SourceLike = Union[CommandSource, str, Iterable[str]]


def is_code_char(ch: str) -> bool:
    return ch in BF_COMMANDS


def _as_source(source: SourceLike) -> CommandSource:
    if isinstance(source, CommandSource):
        return source
    if isinstance(source, str):
        return CommandSource.from_string(source)
    return CommandSource(source)


class Translator:
    """
    Tape program -> straight-line instructions with symbolic loop labels.

    Two expansions are available:

    - optimized (default): the accumulator caches the current cell. Pointer
      moves are bracketed by Store/Load so the cache stays valid, and
      +, -, . and loop tests only touch the accumulator. The peephole
      optimizer relies on this shape.
    - naive: memory is the only truth. Every cell update is
      Load/op/Store, the pointer moves alone.

    Loop labels are paired with a stack: '[' opens a fresh loop id and ']'
    closes the innermost open one.
    """

    def __init__(self, naive: bool = False):
        self.naive = naive
        self.state = TranslatorState()

    def translate(self, source: SourceLike) -> Tuple[List[Instruction], Dict[Label, SourcePos]]:
        """
        Translate every recognized command of the source.

        Args:
            source: CommandSource, program text or an iterable of lines

        Returns:
            (instructions, symbols) where symbols maps each minted label to the
            position of the bracket that introduced it
        """
        self.state.reset()
        src = _as_source(source)

        for cmd, pos in src:
            if is_code_char(cmd):
                self._translate_cmd(BF_COMMANDS[cmd], pos, src.lines)

        if self.state.loop_stack:
            logger.debug("%d loop(s) left open at end of input", len(self.state.loop_stack))
        logger.debug("translated %d instruction(s), %d label(s)",
                     len(self.state.instructions), len(self.state.symbols))
        return list(self.state.instructions), dict(self.state.symbols)

    def _emit(self, op: Opcode, arg=None) -> None:
        self.state.instructions.append(Instruction(op, arg))

    def _translate_cmd(self, code: str, pos: SourcePos, lines: List[str]) -> None:
        if code == 'input':
            raise make_unsupported_error(
                message="input command ',' is not supported",
                lines=lines,
                line=pos.line,
                column=pos.column,
            )
        if code == 'loop_begin':
            self._loop_begin(pos)
        elif code == 'loop_end':
            self._loop_end(pos)
        elif self.naive:
            self._naive_cmd(code)
        else:
            self._cached_cmd(code)

    # ===== Expansions =====

    def _cached_cmd(self, code: str) -> None:
        if code == 'incp':
            self._emit(Opcode.STORE)
            self._emit(Opcode.INC, Register.P)
            self._emit(Opcode.LOAD)
        elif code == 'decp':
            self._emit(Opcode.STORE)
            self._emit(Opcode.DEC, Register.P)
            self._emit(Opcode.LOAD)
        elif code == 'plus':
            self._emit(Opcode.INC, Register.A)
        elif code == 'minus':
            self._emit(Opcode.DEC, Register.A)
        elif code == 'output':
            self._emit(Opcode.OUTPUT, Register.A)

    def _naive_cmd(self, code: str) -> None:
        if code == 'incp':
            self._emit(Opcode.INC, Register.P)
        elif code == 'decp':
            self._emit(Opcode.DEC, Register.P)
        elif code == 'plus':
            self._emit(Opcode.LOAD)
            self._emit(Opcode.INC, Register.A)
            self._emit(Opcode.STORE)
        elif code == 'minus':
            self._emit(Opcode.LOAD)
            self._emit(Opcode.DEC, Register.A)
            self._emit(Opcode.STORE)
        elif code == 'output':
            self._emit(Opcode.LOAD)
            self._emit(Opcode.OUTPUT, Register.A)

    # ===== Loops =====

    def _loop_begin(self, pos: SourcePos) -> None:
        loop_id = self.state.new_loop_id()
        self.state.loop_stack.append(loop_id)
        begin, end = Label(loop_id, 'begin'), Label(loop_id, 'end')
        self.state.symbols[begin] = pos
        self.state.symbols[end] = pos

        self._emit(Opcode.LABEL, begin)
        if self.naive:
            self._emit(Opcode.LOAD)
        self._emit(Opcode.JZ, end)

    def _loop_end(self, pos: SourcePos) -> None:
        if self.state.loop_stack:
            loop_id = self.state.loop_stack.pop()
        else:
            # Unmatched ']': its begin label is never defined, so resolution fails.
            loop_id = self.state.new_loop_id()
            self.state.symbols[Label(loop_id, 'begin')] = pos
        end = Label(loop_id, 'end')
        self.state.symbols[end] = pos

        self._emit(Opcode.JUMP, Label(loop_id, 'begin'))
        self._emit(Opcode.LABEL, end)


def translate(source: SourceLike, *, naive: bool = False) -> Tuple[List[Instruction], Dict[Label, SourcePos]]:
    return Translator(naive=naive).translate(source)
