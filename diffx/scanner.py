"""
DiffX Scanner - Byte-level scanning primitives.

Semantics:
  - A primitive either succeeds and advances, or fails without moving
  - Failures raised here are uncommitted (nothing consumed)
  - Composite parsers wrap their body in ``committing()`` so a failure that
    happens after they consumed input is promoted to committed
  - Backtracking is explicit: remember ``pos`` and ``reset()`` to it
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from diffx.errors import DiffXParseError, ErrorKind


class Scanner:
    """Cursor over an immutable byte buffer."""

    def __init__(self, data: bytes | bytearray | memoryview, pos: int = 0) -> None:
        self.data = bytes(data)
        self.pos = pos

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    @property
    def remaining(self) -> int:
        return len(self.data) - self.pos

    def rest(self) -> bytes:
        """Unconsumed bytes."""
        return self.data[self.pos:]

    def peek(self) -> int | None:
        if self.pos < len(self.data):
            return self.data[self.pos]
        return None

    def reset(self, pos: int) -> None:
        self.pos = pos

    def take_while(self, accepted: frozenset[int]) -> bytes:
        """Consume the longest (possibly empty) run of accepted bytes."""
        start = self.pos
        end = start
        data = self.data
        while end < len(data) and data[end] in accepted:
            end += 1
        self.pos = end
        return data[start:end]

    def take_while1(self, accepted: frozenset[int], what: str = "token") -> bytes:
        """Like take_while, but at least one byte must match."""
        run = self.take_while(accepted)
        if not run:
            raise DiffXParseError(
                ErrorKind.EMPTY_TOKEN, self.pos, f"expected {what}", committed=False
            )
        return run

    def count(self, byte: int) -> int:
        """Consume and count consecutive occurrences of one byte."""
        return len(self.take_while(frozenset((byte,))))

    def expect(self, byte: int) -> None:
        """Consume exactly one literal byte."""
        if self.peek() != byte:
            raise DiffXParseError(
                ErrorKind.MISSING_SEPARATOR,
                self.pos,
                f"expected {chr(byte)!r}, found {self._describe_next()}",
                committed=False,
            )
        self.pos += 1

    def take(self, length: int) -> bytes:
        """Consume exactly ``length`` bytes in one step."""
        if length > self.remaining:
            raise DiffXParseError(
                ErrorKind.TRUNCATED_CONTENT,
                self.pos,
                f"expected {length} bytes, only {self.remaining} remain",
                committed=False,
            )
        chunk = self.data[self.pos:self.pos + length]
        self.pos += length
        return chunk

    @contextmanager
    def committing(self) -> Iterator[int]:
        """Promote failures to committed once input has been consumed.

        Yields the start position of the guarded region.
        """
        start = self.pos
        try:
            yield start
        except DiffXParseError as e:
            if not e.committed and self.pos > start:
                e.committed = True
            raise

    def _describe_next(self) -> str:
        nxt = self.peek()
        if nxt is None:
            return "end of input"
        return repr(bytes((nxt,)))[1:]
