"""tagwire constants — the tag table, integer ranges and decoder limits.

This is the single authoritative mapping between tag bytes and value
shapes.  Both the encoder and the decoder import from here; nothing else
in the package spells a tag byte as a literal.
"""

from __future__ import annotations

import struct
import sys
from typing import Dict, Tuple

__format_version__ = "1"

# ── Option / unit ────────────────────────────────────────────
TAG_NONE: int = 0x00

# ── Fixed-width scalars (0x04–0x0d, contiguous) ──────────────
TAG_U8: int = 0x04
TAG_U16: int = 0x05
TAG_U32: int = 0x06
TAG_U64: int = 0x07
TAG_I8: int = 0x08
TAG_I16: int = 0x09
TAG_I32: int = 0x0A
TAG_I64: int = 0x0B
TAG_F32: int = 0x0C
TAG_F64: int = 0x0D

# ── Booleans ─────────────────────────────────────────────────
TAG_FALSE: int = 0x10
TAG_TRUE: int = 0x11

# ── Containers ───────────────────────────────────────────────
# Sequences and maps share one close tag.  The close tag must never start
# a value, otherwise the lookahead framing becomes ambiguous.
TAG_SEQ: int = 0x15
TAG_MAP: int = 0x16
TAG_CLOSE: int = 0x17

# ── Strings ──────────────────────────────────────────────────
# 0b10xxxxxx carries the length in the low six bits.
STR_INLINE_MASK: int = 0xC0
STR_INLINE_BITS: int = 0x80
STR_INLINE_LEN_MASK: int = 0x3F
INLINE_STR_MAX: int = 0x3F

TAG_STR8: int = 0xC4
TAG_STR16: int = 0xC5
TAG_STR32: int = 0xC6
TAG_STR64: int = 0xC7

# tag -> (struct format, payload width, kind name)
SCALAR_FORMATS: Dict[int, Tuple[str, int, str]] = {
    TAG_U8: (">B", 1, "u8"),
    TAG_U16: (">H", 2, "u16"),
    TAG_U32: (">I", 4, "u32"),
    TAG_U64: (">Q", 8, "u64"),
    TAG_I8: (">b", 1, "i8"),
    TAG_I16: (">h", 2, "i16"),
    TAG_I32: (">i", 4, "i32"),
    TAG_I64: (">q", 8, "i64"),
    TAG_F32: (">f", 4, "f32"),
    TAG_F64: (">d", 8, "f64"),
}

FLOAT_TAGS = frozenset((TAG_F32, TAG_F64))

# string tag -> width of the explicit length field
STR_LENGTH_WIDTHS: Dict[int, int] = {
    TAG_STR8: 1,
    TAG_STR16: 2,
    TAG_STR32: 4,
    TAG_STR64: 8,
}

# ── Integer ranges ───────────────────────────────────────────
# Python ints are arbitrary-precision, so every width is range-checked
# explicitly on both sides of the wire.
INT_RANGES: Dict[str, Tuple[int, int]] = {
    "u8": (0, 2**8 - 1),
    "u16": (0, 2**16 - 1),
    "u32": (0, 2**32 - 1),
    "u64": (0, 2**64 - 1),
    "i8": (-(2**7), 2**7 - 1),
    "i16": (-(2**15), 2**15 - 1),
    "i32": (-(2**31), 2**31 - 1),
    "i64": (-(2**63), 2**63 - 1),
}

# ── Limits ───────────────────────────────────────────────────
# Nesting depth of sequences, maps and enum payload maps.  Each level costs
# a handful of Python frames, so this stays well under the interpreter's
# recursion limit.
MAX_DEPTH: int = 64

# Largest length a 64-bit string header may declare on this platform.
MAX_LENGTH: int = sys.maxsize


def is_string_tag(tag: int) -> bool:
    return (tag & STR_INLINE_MASK) == STR_INLINE_BITS or tag in STR_LENGTH_WIDTHS


def _check_disjoint() -> None:
    groups = {
        "none": {TAG_NONE},
        "scalar": set(SCALAR_FORMATS),
        "bool": {TAG_FALSE, TAG_TRUE},
        "seq": {TAG_SEQ},
        "map": {TAG_MAP},
        "close": {TAG_CLOSE},
        "str": set(range(0x80, 0xC0)) | set(STR_LENGTH_WIDTHS),
    }
    seen: Dict[int, str] = {}
    for name, tags in groups.items():
        for t in tags:
            assert t not in seen, "tag 0x{:02x} claimed by {} and {}".format(t, seen[t], name)
            seen[t] = name
    for fmt, width, _kind in SCALAR_FORMATS.values():
        assert struct.calcsize(fmt) == width


_check_disjoint()
