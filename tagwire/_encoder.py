"""tagwire encoder — writes the byte grammar the decoder reads.

``Encoder`` exposes one write method per wire shape so callers (and tests)
can pick exact integer widths and string length classes.  ``to_bytes``
covers plain Python values with fixed defaults: ints as i64 (u64 above the
i64 range), floats as f64, the smallest string class, lists and tuples as
sequences, dicts as maps, ``Variant`` as an externally tagged enum.
"""

from __future__ import annotations

import struct
from typing import Any, List, Optional

from ._constants import (
    INLINE_STR_MAX,
    INT_RANGES,
    SCALAR_FORMATS,
    STR_INLINE_BITS,
    TAG_CLOSE,
    TAG_F32,
    TAG_F64,
    TAG_FALSE,
    TAG_I8,
    TAG_I16,
    TAG_I32,
    TAG_I64,
    TAG_MAP,
    TAG_NONE,
    TAG_SEQ,
    TAG_STR8,
    TAG_STR16,
    TAG_STR32,
    TAG_STR64,
    TAG_TRUE,
    TAG_U8,
    TAG_U16,
    TAG_U32,
    TAG_U64,
)
from ._errors import ERR_ENCODE, DecodeError
from ._floats import pack_f32
from ._shapes import UNIT, Variant

# length class -> (tag, length-field format, largest length)
_STR_CLASSES = {
    "u8": (TAG_STR8, ">B", 2**8 - 1),
    "u16": (TAG_STR16, ">H", 2**16 - 1),
    "u32": (TAG_STR32, ">I", 2**32 - 1),
    "u64": (TAG_STR64, ">Q", 2**64 - 1),
}


class Encoder:
    def __init__(self) -> None:
        self._buf = bytearray()
        self._open: List[int] = []

    def getvalue(self) -> bytes:
        if self._open:
            raise DecodeError(ERR_ENCODE, "{} containers left open".format(len(self._open)))
        return bytes(self._buf)

    # ── scalars ───────────────────────────────────────────────

    def write_none(self) -> None:
        self._buf.append(TAG_NONE)

    write_unit = write_none

    def write_bool(self, v: bool) -> None:
        self._buf.append(TAG_TRUE if v else TAG_FALSE)

    def _write_scalar(self, tag: int, v: Any) -> None:
        fmt, _width, kind = SCALAR_FORMATS[tag]
        if kind in INT_RANGES:
            lo, hi = INT_RANGES[kind]
            if isinstance(v, bool) or not isinstance(v, int) or not lo <= v <= hi:
                raise DecodeError(ERR_ENCODE, "{!r} does not fit {}".format(v, kind))
        try:
            packed = pack_f32(v) if tag == TAG_F32 else struct.pack(fmt, v)
        except (struct.error, OverflowError) as e:
            raise DecodeError(ERR_ENCODE, "{!r} does not fit {}: {}".format(v, kind, e)) from e
        self._buf.append(tag)
        self._buf += packed

    def write_u8(self, v: int) -> None:
        self._write_scalar(TAG_U8, v)

    def write_u16(self, v: int) -> None:
        self._write_scalar(TAG_U16, v)

    def write_u32(self, v: int) -> None:
        self._write_scalar(TAG_U32, v)

    def write_u64(self, v: int) -> None:
        self._write_scalar(TAG_U64, v)

    def write_i8(self, v: int) -> None:
        self._write_scalar(TAG_I8, v)

    def write_i16(self, v: int) -> None:
        self._write_scalar(TAG_I16, v)

    def write_i32(self, v: int) -> None:
        self._write_scalar(TAG_I32, v)

    def write_i64(self, v: int) -> None:
        self._write_scalar(TAG_I64, v)

    def write_f32(self, v: float) -> None:
        self._write_scalar(TAG_F32, v)

    def write_f64(self, v: float) -> None:
        self._write_scalar(TAG_F64, v)

    def write_str(self, s: str, length_class: Optional[str] = None) -> None:
        """Write a string.

        ``length_class`` is one of "inline", "u8", "u16", "u32", "u64"; by
        default the smallest class that fits is used.
        """
        raw = s.encode("utf-8")
        n = len(raw)
        if length_class is None:
            if n <= INLINE_STR_MAX:
                length_class = "inline"
            else:
                length_class = next(c for c, (_t, _f, top) in _STR_CLASSES.items() if n <= top)

        if length_class == "inline":
            if n > INLINE_STR_MAX:
                raise DecodeError(ERR_ENCODE, "{} bytes do not fit an inline string".format(n))
            self._buf.append(STR_INLINE_BITS | n)
        elif length_class in _STR_CLASSES:
            tag, fmt, top = _STR_CLASSES[length_class]
            if n > top:
                raise DecodeError(ERR_ENCODE, "{} bytes do not fit a {} length".format(n, length_class))
            self._buf.append(tag)
            self._buf += struct.pack(fmt, n)
        else:
            raise DecodeError(ERR_ENCODE, "unknown string length class {!r}".format(length_class))
        self._buf += raw

    # ── containers ────────────────────────────────────────────

    def begin_seq(self) -> None:
        self._buf.append(TAG_SEQ)
        self._open.append(TAG_SEQ)

    def begin_map(self) -> None:
        self._buf.append(TAG_MAP)
        self._open.append(TAG_MAP)

    def end(self) -> None:
        if not self._open:
            raise DecodeError(ERR_ENCODE, "end() without an open container")
        self._open.pop()
        self._buf.append(TAG_CLOSE)

    # ── enums ─────────────────────────────────────────────────

    def write_unit_variant(self, name: str) -> None:
        self.write_str(name)

    def begin_variant(self, name: str) -> None:
        """Open ``{name: payload}``; write the payload, then call ``end()``."""
        self.begin_map()
        self.write_str(name)

    # ── plain Python values ───────────────────────────────────

    def encode(self, value: Any) -> None:
        # bool before int: bool is an int subclass.
        if value is None:
            self.write_none()
        elif isinstance(value, bool):
            self.write_bool(value)
        elif isinstance(value, int):
            lo, hi = INT_RANGES["i64"]
            if lo <= value <= hi:
                self.write_i64(value)
            else:
                self.write_u64(value)
        elif isinstance(value, float):
            self.write_f64(value)
        elif isinstance(value, str):
            self.write_str(value)
        elif isinstance(value, Variant):
            if value.value is UNIT:
                self.write_unit_variant(value.name)
            else:
                self.begin_variant(value.name)
                self.encode(value.value)
                self.end()
        elif isinstance(value, (list, tuple)):
            self.begin_seq()
            for item in value:
                self.encode(item)
            self.end()
        elif isinstance(value, dict):
            self.begin_map()
            for k, v in value.items():
                self.encode(k)
                self.encode(v)
            self.end()
        else:
            raise DecodeError(ERR_ENCODE, "unsupported type: {}".format(type(value).__name__))


def to_bytes(value: Any) -> bytes:
    """Encode a plain Python value."""
    enc = Encoder()
    enc.encode(value)
    return enc.getvalue()
