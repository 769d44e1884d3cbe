"""tagwire core — the tag interpreter that drives visitors over a byte cursor.

Grammar (one value):

    0x00                        absent option / unit
    0x04..0x0d  <payload>       u8 u16 u32 u64 i8 i16 i32 i64 f32 f64, big-endian
    0x10 / 0x11                 false / true
    0x80..0xbf  <n bytes>       string, n = low six bits of the tag
    0xc4..0xc7  <len> <bytes>   string, len is u8 / u16 / u32 / u64
    0x15 <value>* 0x17          sequence
    0x16 (<key> <value>)* 0x17  map, struct, or enum payload wrapper

There is no element count and no separator.  A container ends where the
next byte is the close tag, so the decoder peeks for 0x17 before every
element or key and only consumes it once the visitor is done.

Enums are externally tagged: a bare string is a unit variant; otherwise a
single-entry map ``{name: payload}``.
"""

from __future__ import annotations

import logging
import struct
from contextlib import contextmanager
from typing import Any, Iterator, Sequence, Tuple

from ._constants import (
    FLOAT_TAGS,
    MAX_DEPTH,
    MAX_LENGTH,
    SCALAR_FORMATS,
    STR_INLINE_BITS,
    STR_INLINE_LEN_MASK,
    STR_INLINE_MASK,
    STR_LENGTH_WIDTHS,
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
    TAG_TRUE,
    TAG_U8,
    TAG_U16,
    TAG_U32,
    TAG_U64,
    is_string_tag,
)
from ._cursor import Buffer, ByteCursor
from ._floats import unpack_f32
from ._errors import (
    ERR_DEPTH_LIMIT,
    ERR_EXPECTED_ARRAY,
    ERR_EXPECTED_BOOLEAN,
    ERR_EXPECTED_ENUM,
    ERR_EXPECTED_FLOAT,
    ERR_EXPECTED_INTEGER,
    ERR_EXPECTED_MAP,
    ERR_EXPECTED_NULL,
    ERR_EXPECTED_SEQUENCE_END,
    ERR_EXPECTED_STRING,
    ERR_SYNTAX,
    ERR_TOO_LARGE,
    ERR_TRAILING_CHARACTERS,
    DecodeError,
    invalid_type,
)
from ._shapes import IgnoredAny

logger = logging.getLogger(__name__)

_VISIT_SCALAR = {tag: "visit_" + kind for tag, (_fmt, _w, kind) in SCALAR_FORMATS.items()}


class Decoder:
    """Recursive-descent decoder over one input buffer.

    ``deserialize_*`` methods say what the caller expects at the current
    position; each one checks the tag, consumes the value and hands it to
    the visitor.  A decoder is single-use and must not be shared between
    threads.
    """

    def __init__(self, data: Buffer, max_depth: int = MAX_DEPTH) -> None:
        self.cursor = ByteCursor(data)
        self.max_depth = max_depth
        self._depth = 0

    # ── entry points ──────────────────────────────────────────

    def decode(self, seed: Any) -> Any:
        """Decode one value with ``seed`` (anything with ``deserialize(decoder)``)."""
        try:
            return seed.deserialize(self)
        except DecodeError as e:
            # Visitor-side errors carry no position; pin them to where we stopped.
            if e.offset is None:
                e.offset = self.cursor.offset
            raise

    def end(self) -> None:
        """Fail unless the whole buffer has been consumed."""
        if not self.cursor.at_end():
            logger.debug("%d trailing bytes after root value at offset %d",
                         self.cursor.remaining, self.cursor.offset)
            raise self.cursor.error(
                ERR_TRAILING_CHARACTERS,
                "{} trailing bytes".format(self.cursor.remaining),
            )

    # ── parsing helpers ───────────────────────────────────────

    @contextmanager
    def _nested(self) -> Iterator[None]:
        if self._depth >= self.max_depth:
            logger.debug("nesting limit %d reached at offset %d",
                         self.max_depth, self.cursor.offset)
            raise self.cursor.error(
                ERR_DEPTH_LIMIT, "nesting exceeds {}".format(self.max_depth))
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _parse_bool(self) -> bool:
        tag = self.cursor.peek()
        if tag == TAG_TRUE:
            self.cursor.advance()
            return True
        if tag == TAG_FALSE:
            self.cursor.advance()
            return False
        raise self.cursor.error(ERR_EXPECTED_BOOLEAN, "expected boolean, found tag 0x{:02x}".format(tag))

    def _parse_scalar(self, expected: int) -> Any:
        cur = self.cursor
        tag = cur.peek()
        fmt, width, kind = SCALAR_FORMATS[expected]
        if tag != expected:
            code = ERR_EXPECTED_FLOAT if expected in FLOAT_TAGS else ERR_EXPECTED_INTEGER
            raise cur.error(code, "expected {}, found tag 0x{:02x}".format(kind, tag))
        cur.require(1 + width)
        cur.advance()
        if expected == TAG_F32:
            return unpack_f32(cur.take(width))
        # f64 maps onto a Python float bit for bit, NaN payloads included.
        return struct.unpack(fmt, cur.take(width))[0]

    def _read_length(self, width: int) -> int:
        cur = self.cursor
        if width == 1:
            return cur.read_u8()
        if width == 2:
            return cur.read_u16()
        if width == 4:
            return cur.read_u32()
        n = cur.read_u64()
        if n > MAX_LENGTH:
            raise cur.error(ERR_TOO_LARGE, "string length {} exceeds platform limit".format(n))
        return n

    def _parse_str(self) -> str:
        cur = self.cursor
        tag = cur.peek()
        if tag & STR_INLINE_MASK == STR_INLINE_BITS:
            cur.advance()
            length = tag & STR_INLINE_LEN_MASK
        elif tag in STR_LENGTH_WIDTHS:
            cur.advance()
            length = self._read_length(STR_LENGTH_WIDTHS[tag])
        else:
            raise cur.error(ERR_EXPECTED_STRING, "expected string, found tag 0x{:02x}".format(tag))

        start = cur.offset
        raw = cur.take(length)
        try:
            return str(raw, "utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(ERR_SYNTAX, "invalid utf-8 in string", offset=start + e.start) from None

    def _expect_close(self) -> None:
        cur = self.cursor
        tag = cur.peek()
        if tag != TAG_CLOSE:
            raise cur.error(ERR_EXPECTED_SEQUENCE_END,
                            "expected container close, found tag 0x{:02x}".format(tag))
        cur.advance()

    # ── self-describing ───────────────────────────────────────

    def deserialize_any(self, visitor: Any) -> Any:
        cur = self.cursor
        tag = cur.peek()
        if tag == TAG_NONE:
            cur.advance()
            return visitor.visit_unit()
        if tag == TAG_TRUE or tag == TAG_FALSE:
            return self.deserialize_bool(visitor)
        if tag in SCALAR_FORMATS:
            value = self._parse_scalar(tag)
            return getattr(visitor, _VISIT_SCALAR[tag])(value)
        if is_string_tag(tag):
            return self.deserialize_str(visitor)
        if tag == TAG_SEQ:
            return self.deserialize_seq(visitor)
        if tag == TAG_MAP:
            return self.deserialize_map(visitor)
        raise cur.error(ERR_SYNTAX, "no value starts with tag 0x{:02x}".format(tag))

    def deserialize_ignored_any(self, visitor: Any) -> Any:
        return self.deserialize_any(visitor)

    # ── scalars ───────────────────────────────────────────────

    def deserialize_bool(self, visitor: Any) -> Any:
        return visitor.visit_bool(self._parse_bool())

    def deserialize_u8(self, visitor: Any) -> Any:
        return visitor.visit_u8(self._parse_scalar(TAG_U8))

    def deserialize_u16(self, visitor: Any) -> Any:
        return visitor.visit_u16(self._parse_scalar(TAG_U16))

    def deserialize_u32(self, visitor: Any) -> Any:
        return visitor.visit_u32(self._parse_scalar(TAG_U32))

    def deserialize_u64(self, visitor: Any) -> Any:
        return visitor.visit_u64(self._parse_scalar(TAG_U64))

    def deserialize_i8(self, visitor: Any) -> Any:
        return visitor.visit_i8(self._parse_scalar(TAG_I8))

    def deserialize_i16(self, visitor: Any) -> Any:
        return visitor.visit_i16(self._parse_scalar(TAG_I16))

    def deserialize_i32(self, visitor: Any) -> Any:
        return visitor.visit_i32(self._parse_scalar(TAG_I32))

    def deserialize_i64(self, visitor: Any) -> Any:
        return visitor.visit_i64(self._parse_scalar(TAG_I64))

    def deserialize_f32(self, visitor: Any) -> Any:
        return visitor.visit_f32(self._parse_scalar(TAG_F32))

    def deserialize_f64(self, visitor: Any) -> Any:
        return visitor.visit_f64(self._parse_scalar(TAG_F64))

    # ── strings ───────────────────────────────────────────────
    # Python strings cannot borrow from the input: the payload is sliced
    # as a memoryview and decoded once, which is the only copy made.

    def deserialize_str(self, visitor: Any) -> Any:
        return visitor.visit_borrowed_str(self._parse_str())

    def deserialize_string(self, visitor: Any) -> Any:
        return self.deserialize_str(visitor)

    def deserialize_char(self, visitor: Any) -> Any:
        return self.deserialize_str(visitor)

    def deserialize_identifier(self, visitor: Any) -> Any:
        return self.deserialize_str(visitor)

    # ── option / unit / newtype ───────────────────────────────

    def deserialize_option(self, visitor: Any) -> Any:
        # The marker is consumed only when absent; a present value starts
        # with its own tag.
        if self.cursor.peek() == TAG_NONE:
            self.cursor.advance()
            return visitor.visit_none()
        return visitor.visit_some(self)

    def deserialize_unit(self, visitor: Any) -> Any:
        tag = self.cursor.peek()
        if tag != TAG_NONE:
            raise self.cursor.error(ERR_EXPECTED_NULL, "expected unit, found tag 0x{:02x}".format(tag))
        self.cursor.advance()
        return visitor.visit_unit()

    def deserialize_unit_struct(self, name: str, visitor: Any) -> Any:
        return self.deserialize_unit(visitor)

    def deserialize_newtype_struct(self, name: str, visitor: Any) -> Any:
        return visitor.visit_newtype_struct(self)

    # ── containers ────────────────────────────────────────────

    def deserialize_seq(self, visitor: Any) -> Any:
        cur = self.cursor
        tag = cur.peek()
        if tag != TAG_SEQ:
            raise cur.error(ERR_EXPECTED_ARRAY, "expected sequence, found tag 0x{:02x}".format(tag))
        cur.advance()
        with self._nested():
            value = visitor.visit_seq(ContainerAccess(self))
        self._expect_close()
        return value

    def deserialize_tuple(self, length: int, visitor: Any) -> Any:
        return self.deserialize_seq(visitor)

    def deserialize_tuple_struct(self, name: str, length: int, visitor: Any) -> Any:
        return self.deserialize_seq(visitor)

    def deserialize_map(self, visitor: Any) -> Any:
        cur = self.cursor
        tag = cur.peek()
        if tag != TAG_MAP:
            raise cur.error(ERR_EXPECTED_MAP, "expected map, found tag 0x{:02x}".format(tag))
        cur.advance()
        with self._nested():
            value = visitor.visit_map(ContainerAccess(self))
        self._expect_close()
        return value

    def deserialize_struct(self, name: str, fields: Sequence[str], visitor: Any) -> Any:
        return self.deserialize_map(visitor)

    # ── enums ─────────────────────────────────────────────────

    def deserialize_enum(self, name: str, variants: Sequence[str], visitor: Any) -> Any:
        cur = self.cursor
        tag = cur.peek()
        if is_string_tag(tag):
            return visitor.visit_enum(UnitVariantAccess(self._parse_str()))
        if tag != TAG_MAP:
            raise cur.error(ERR_EXPECTED_ENUM, "expected enum, found tag 0x{:02x}".format(tag))
        cur.advance()
        with self._nested():
            value = visitor.visit_enum(EnumAccess(self))
        self._expect_close()
        return value


# ── access objects handed to visitors ─────────────────────────

class ContainerAccess:
    """Pull-based access to the elements of a sequence or the entries of a map.

    ``has_next()`` peeks for the close tag without consuming it; the decoder
    consumes the close tag after the visitor returns.
    """

    def __init__(self, decoder: Decoder) -> None:
        self.decoder = decoder

    def has_next(self) -> bool:
        return self.decoder.cursor.peek() != TAG_CLOSE

    # sequences

    def next_element(self, seed: Any) -> Any:
        return seed.deserialize(self.decoder)

    def elements(self, seed: Any) -> Iterator[Any]:
        while self.has_next():
            yield self.next_element(seed)

    # maps

    def next_key(self, seed: Any) -> Any:
        return seed.deserialize(self.decoder)

    def next_value(self, seed: Any) -> Any:
        return seed.deserialize(self.decoder)

    def entries(self, key_seed: Any, value_seed: Any) -> Iterator[Tuple[Any, Any]]:
        while self.has_next():
            key = self.next_key(key_seed)
            yield key, self.next_value(value_seed)


class EnumAccess:
    """Access for the map-framed form: ``0x16 <name> <payload> 0x17``."""

    def __init__(self, decoder: Decoder) -> None:
        self.decoder = decoder

    def variant(self) -> Tuple[str, "VariantAccess"]:
        return self.decoder._parse_str(), VariantAccess(self.decoder)


class VariantAccess:
    def __init__(self, decoder: Decoder) -> None:
        self.decoder = decoder

    def unit_variant(self) -> None:
        # Unit variants are written as bare strings, never inside a map.
        raise self.decoder.cursor.error(
            ERR_EXPECTED_STRING, "unit variant must be encoded as a bare string")

    def newtype_variant(self, seed: Any) -> Any:
        return seed.deserialize(self.decoder)

    def tuple_variant(self, length: int, visitor: Any) -> Any:
        return self.decoder.deserialize_seq(visitor)

    def struct_variant(self, fields: Sequence[str], visitor: Any) -> Any:
        return self.decoder.deserialize_map(visitor)


class UnitVariantAccess:
    """Access for the bare-string form, which can only be a unit variant."""

    def __init__(self, name: str) -> None:
        self.name = name

    def variant(self) -> Tuple[str, "UnitVariantAccess"]:
        return self.name, self

    def unit_variant(self) -> None:
        return None

    def newtype_variant(self, seed: Any) -> Any:
        raise invalid_type("unit variant", "newtype variant")

    def tuple_variant(self, length: int, visitor: Any) -> Any:
        raise invalid_type("unit variant", "tuple variant")

    def struct_variant(self, fields: Sequence[str], visitor: Any) -> Any:
        raise invalid_type("unit variant", "struct variant")


# ── public helpers ────────────────────────────────────────────

def decode(data: Buffer, shape: Any, *, max_depth: int = MAX_DEPTH) -> Tuple[Any, int]:
    """Decode one value from the front of ``data``.

    Returns ``(value, consumed)``; bytes after the value are left alone.
    """
    de = Decoder(data, max_depth=max_depth)
    value = de.decode(shape)
    logger.debug("decoded %d of %d bytes as %r",
                 de.cursor.offset, de.cursor.offset + de.cursor.remaining, shape)
    return value, de.cursor.offset


def from_bytes(data: Buffer, shape: Any, *, max_depth: int = MAX_DEPTH) -> Any:
    """Decode exactly one value that spans the whole of ``data``."""
    de = Decoder(data, max_depth=max_depth)
    value = de.decode(shape)
    de.end()
    logger.debug("decoded %d bytes as %r", de.cursor.offset, shape)
    return value


def validate(data: Buffer, *, max_depth: int = MAX_DEPTH) -> None:
    """Check that ``data`` is exactly one well-formed value, building nothing."""
    from_bytes(data, IgnoredAny(), max_depth=max_depth)
