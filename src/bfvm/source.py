from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class SourcePos:
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class CommandSource:
    """
    Lazy character stream over lines of program text.

    Lines are pulled from the underlying iterable only when the buffered
    characters of the previous line run out. Once the input is exhausted
    next_command() keeps returning None.
    """

    def __init__(self, lines: Iterable[str]):
        self._lines = iter(lines)
        self._buffer: deque = deque()
        self._column = 0
        self._exhausted = False
        self.lines: List[str] = []  # every line consumed so far, for error context
        self.pos: Optional[SourcePos] = None  # position of the last returned char

    @classmethod
    def from_string(cls, text: str) -> "CommandSource":
        return cls(text.splitlines(keepends=True))

    @classmethod
    def from_file(cls, path: str | Path, *, encoding: str = "utf-8") -> "CommandSource":
        return cls.from_string(Path(path).read_text(encoding=encoding))

    def next_command(self) -> Optional[str]:
        while not self._buffer:
            if self._exhausted:
                return None
            line = next(self._lines, None)
            if line is None:
                self._exhausted = True
                self.pos = None
                return None
            self.lines.append(line.rstrip('\r\n'))
            self._buffer = deque(line)
            self._column = 0

        self._column += 1
        self.pos = SourcePos(len(self.lines), self._column)
        return self._buffer.popleft()

    def __iter__(self) -> Iterator[Tuple[str, SourcePos]]:
        while True:
            ch = self.next_command()
            if ch is None:
                return
            yield ch, self.pos
