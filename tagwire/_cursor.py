"""Byte cursor — a bounds-checked, forward-only view over the input buffer."""

from __future__ import annotations

from typing import Union

from ._errors import ERR_UNEXPECTED_END, DecodeError

Buffer = Union[bytes, bytearray, memoryview]


class ByteCursor:
    """Shrinking view over an immutable buffer.

    The buffer is never copied or mutated; the cursor only moves its start
    forward.  Every read that could run past the end raises
    ``ERR_UNEXPECTED_END`` before touching the data.
    """

    __slots__ = ("_buf", "_pos")

    def __init__(self, data: Buffer) -> None:
        self._buf = memoryview(data).cast("B")
        self._pos = 0

    @property
    def offset(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._buf)

    def error(self, code: str, msg: str = "") -> DecodeError:
        return DecodeError(code, msg, offset=self._pos)

    def require(self, n: int) -> None:
        if len(self._buf) - self._pos < n:
            raise self.error(
                ERR_UNEXPECTED_END,
                "need {} bytes, {} remain".format(n, len(self._buf) - self._pos),
            )

    def peek(self) -> int:
        if self._pos >= len(self._buf):
            raise self.error(ERR_UNEXPECTED_END, "unexpected end of input")
        return self._buf[self._pos]

    def advance(self, n: int = 1) -> None:
        # Callers have already called require()/peek().
        self._pos += n

    def next_byte(self) -> int:
        b = self.peek()
        self._pos += 1
        return b

    def take(self, n: int) -> memoryview:
        """Return the next ``n`` bytes as a view into the input and skip them."""
        self.require(n)
        start = self._pos
        self._pos += n
        return self._buf[start:self._pos]

    # ── big-endian unsigned reads ─────────────────────────────

    def read_u8(self) -> int:
        return self.next_byte()

    def read_u16(self) -> int:
        return int.from_bytes(self.take(2), "big")

    def read_u32(self) -> int:
        return int.from_bytes(self.take(4), "big")

    def read_u64(self) -> int:
        return int.from_bytes(self.take(8), "big")
