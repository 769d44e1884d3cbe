"""Unit tests for the tagwire public API.

Organized by feature area.  Conformance testing against fixed vectors is in
test_conformance.py; these tests exercise the API contracts and properties
that single vectors don't cover.
"""

from __future__ import annotations

import math
import os
import struct
import sys
import unittest
from dataclasses import dataclass

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tagwire import (
    ERR_DEPTH_LIMIT,
    ERR_ENCODE,
    ERR_EXPECTED_BOOLEAN,
    ERR_EXPECTED_FLOAT,
    ERR_EXPECTED_SEQUENCE_END,
    ERR_EXPECTED_STRING,
    ERR_INVALID_TYPE,
    ERR_INVALID_VALUE,
    ERR_SYNTAX,
    ERR_TRAILING_CHARACTERS,
    ERR_UNEXPECTED_END,
    F32,
    F64,
    I8,
    I64,
    MAX_DEPTH,
    U8,
    U32,
    UNIT,
    AnyValue,
    Bool,
    DecodeError,
    Decoder,
    Encoder,
    Enum,
    Map,
    Newtype,
    Option,
    Seq,
    Str,
    Struct,
    Tuple,
    Unit,
    Variant,
    Visitor,
    decode,
    from_bytes,
    to_bytes,
    validate,
)

ENUM = Enum("E", {
    "Unit": None,
    "Newtype": U32(),
    "Tuple": Tuple(U32(), U32()),
    "Struct": Struct("S", {"a": U32()}),
})


def _enc(build) -> bytes:
    enc = Encoder()
    build(enc)
    return enc.getvalue()


# ── Scenarios from the format description ─────────────────────

class TestScenarios(unittest.TestCase):
    def test_booleans(self):
        self.assertIs(from_bytes(b"\x11", Bool()), True)
        self.assertIs(from_bytes(b"\x10", Bool()), False)
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(b"\x12", Bool())
        self.assertEqual(ctx.exception.code, ERR_EXPECTED_BOOLEAN)

    def test_inline_string_leaves_rest(self):
        value, consumed = decode(b"\x81hi", Str())
        self.assertEqual(value, "h")
        self.assertEqual(consumed, 2)

    def test_sequence(self):
        self.assertEqual(from_bytes(b"\x15\x11\x10\x17", Seq(Bool())), [True, False])

    def test_map(self):
        self.assertEqual(from_bytes(b"\x16\x82ok\x11\x17", Map(Str(), Bool())), {"ok": True})

    def test_option(self):
        self.assertIsNone(from_bytes(b"\x00", Option(Bool())))
        self.assertIs(from_bytes(b"\x11", Option(Bool())), True)

    def test_truncated_string(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(b"\x85He", Str())
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_END)


# ── Floats ────────────────────────────────────────────────────

class TestFloats(unittest.TestCase):
    def test_nan_payload_preserved(self):
        bits = bytes.fromhex("7ff8000000000123")
        value = from_bytes(b"\x0d" + bits, F64())
        self.assertTrue(math.isnan(value))
        self.assertEqual(struct.pack(">d", value), bits)

    def test_negative_nan_preserved(self):
        bits = bytes.fromhex("fff8000000000000")
        value = from_bytes(b"\x0d" + bits, F64())
        self.assertEqual(struct.pack(">d", value), bits)

    def test_infinities(self):
        self.assertEqual(from_bytes(b"\x0d" + bytes.fromhex("7ff0000000000000"), F64()), math.inf)
        self.assertEqual(from_bytes(b"\x0c" + bytes.fromhex("ff800000"), F32()), -math.inf)

    def test_f32_nan(self):
        self.assertTrue(math.isnan(from_bytes(b"\x0c" + bytes.fromhex("7fc00000"), F32())))

    def test_f32_signalling_nan_kept(self):
        raw = b"\x0c" + bytes.fromhex("7f800001")
        value = from_bytes(raw, F32())
        self.assertTrue(math.isnan(value))
        self.assertEqual(struct.pack(">d", value), bytes.fromhex("7ff0000020000000"))
        self.assertEqual(_enc(lambda e: e.write_f32(value)), raw)

    def test_f32_nan_payloads_round_trip(self):
        for hexbits in ["7f800001", "ffa00000", "7fc00001", "ff8abcde"]:
            with self.subTest(bits=hexbits):
                raw = b"\x0c" + bytes.fromhex(hexbits)
                value = from_bytes(raw, F32())
                self.assertEqual(_enc(lambda e: e.write_f32(value)), raw)

    def test_f32_from_f64_nan_stays_nan(self):
        # Payload bits below the f32 mantissa cannot survive narrowing.
        value = struct.unpack(">d", bytes.fromhex("7ff0000000000001"))[0]
        raw = _enc(lambda e: e.write_f32(value))
        self.assertEqual(raw, b"\x0c" + bytes.fromhex("7f800001"))

    def test_f64_rejects_integer_tag(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(to_bytes(1), F64())
        self.assertEqual(ctx.exception.code, ERR_EXPECTED_FLOAT)

    def test_negative_zero(self):
        value = from_bytes(b"\x0d" + bytes.fromhex("8000000000000000"), F64())
        self.assertEqual(math.copysign(1.0, value), -1.0)


# ── String length classes ─────────────────────────────────────

class TestStringClasses(unittest.TestCase):
    def test_classes_are_interchangeable(self):
        for text in ["", "hi", "héllo wörld", "€" * 10]:
            for cls in ["inline", "u8", "u16", "u32", "u64"]:
                with self.subTest(text=text, cls=cls):
                    raw = _enc(lambda e: e.write_str(text, cls))
                    self.assertEqual(from_bytes(raw, Str()), text)

    def test_long_string_default_class(self):
        text = "x" * 300
        raw = to_bytes(text)
        self.assertEqual(raw[0], 0xC5)
        self.assertEqual(from_bytes(raw, Str()), text)

    def test_sixty_three_bytes_inline(self):
        raw = to_bytes("a" * 63)
        self.assertEqual(raw[0], 0xBF)

    def test_invalid_utf8_offset(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(b"\x83ab\xff", Str())
        self.assertEqual(ctx.exception.code, ERR_SYNTAX)
        self.assertEqual(ctx.exception.offset, 3)

    def test_encoded_surrogate_rejected(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(b"\x83\xed\xa0\x80", Str())
        self.assertEqual(ctx.exception.code, ERR_SYNTAX)


# ── Truncation / tail / balance properties ───────────────────

_SAMPLES = [
    (to_bytes({"name": "hi", "tags": ["a", "b"], "n": 5, "f": 1.5, "none": None, "flag": True}),
     AnyValue()),
    (to_bytes(Variant("Unit")), ENUM),
    (_enc(lambda e: (e.begin_variant("Newtype"), e.write_u32(9), e.end())), ENUM),
    (_enc(lambda e: (e.begin_variant("Tuple"), e.begin_seq(), e.write_u32(1),
                     e.write_u32(2), e.end(), e.end())), ENUM),
    (_enc(lambda e: (e.begin_variant("Struct"), e.begin_map(), e.write_str("a"),
                     e.write_u32(3), e.end(), e.end())), ENUM),
    (_enc(lambda e: e.write_str("hello", "u64")), Str()),
    (_enc(lambda e: e.write_i64(-5)), I64()),
]


class TestProperties(unittest.TestCase):
    def test_every_strict_prefix_is_unexpected_end(self):
        for raw, shape in _SAMPLES:
            for cut in range(len(raw)):
                with self.subTest(raw=raw.hex(), cut=cut):
                    with self.assertRaises(DecodeError) as ctx:
                        from_bytes(raw[:cut], shape)
                    self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_END)

    def test_tail_left_intact(self):
        tail = b"\x17\xff\x00tail"
        for raw, shape in _SAMPLES:
            with self.subTest(raw=raw.hex()):
                alone = from_bytes(raw, shape)
                value, consumed = decode(raw + tail, shape)
                self.assertEqual(consumed, len(raw))
                self.assertEqual((raw + tail)[consumed:], tail)
                if isinstance(alone, float) and math.isnan(alone):
                    continue
                self.assertEqual(value, alone)

    def test_duplicated_close_is_trailing(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(b"\x15\x11\x17\x17", Seq(Bool()))
        self.assertEqual(ctx.exception.code, ERR_TRAILING_CHARACTERS)

    def test_removed_close_is_unexpected_end(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(b"\x15\x15\x11\x17", Seq(Seq(Bool())))
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_END)

    def test_extra_tuple_element_is_sequence_end(self):
        raw = to_bytes([1, 2, 3])
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(raw, Tuple(I64(), I64()))
        self.assertEqual(ctx.exception.code, ERR_EXPECTED_SEQUENCE_END)

    def test_any_round_trip(self):
        values = [
            None, True, False, 0, -1, 2**63 - 1, -(2**63), 2**64 - 1, 0.25,
            "", "text", [], [1, [2, [3]]], {}, {"k": {"nested": [None, "x"]}},
            {1: "int key", "s": 2.5},
        ]
        for v in values:
            with self.subTest(v=v):
                self.assertEqual(from_bytes(to_bytes(v), AnyValue()), v)


# ── Shapes ────────────────────────────────────────────────────

@dataclass
class Point:
    x: int
    y: int
    label: object = None


class TestShapes(unittest.TestCase):
    def test_struct_factory(self):
        shape = Struct("Point", {"x": I64(), "y": I64(), "label": Option(Str())}, factory=Point)
        raw = to_bytes({"y": 2, "x": 1})
        self.assertEqual(from_bytes(raw, shape), Point(1, 2, None))

    def test_struct_optional_present(self):
        shape = Struct("Point", {"x": I64(), "y": I64(), "label": Option(Str())})
        raw = to_bytes({"x": 1, "y": 2, "label": "p"})
        self.assertEqual(from_bytes(raw, shape), {"x": 1, "y": 2, "label": "p"})

    def test_struct_rejects_sequence(self):
        with self.assertRaises(DecodeError):
            from_bytes(to_bytes([1, 2]), Struct("Point", {"x": I64(), "y": I64()}))

    def test_struct_non_string_key(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(to_bytes({1: 2}), Struct("P", {"x": I64()}))
        self.assertEqual(ctx.exception.code, ERR_EXPECTED_STRING)

    def test_newtype_transparent(self):
        shape = Newtype("Meters", F64(), factory=lambda v: ("m", v))
        self.assertEqual(from_bytes(to_bytes(2.0), shape), ("m", 2.0))

    def test_unit_struct(self):
        self.assertIsNone(from_bytes(b"\x00", Unit("Marker")))

    def test_tuple_struct(self):
        shape = Tuple(U8(), Bool(), name="Pair")
        raw = _enc(lambda e: (e.begin_seq(), e.write_u8(4), e.write_bool(True), e.end()))
        self.assertEqual(from_bytes(raw, shape), (4, True))

    def test_enum_variants(self):
        self.assertEqual(from_bytes(to_bytes(Variant("Unit")), ENUM), Variant("Unit"))
        raw = _enc(lambda e: (e.begin_variant("Newtype"), e.write_u32(7), e.end()))
        self.assertEqual(from_bytes(raw, ENUM), Variant("Newtype", 7))

    def test_enum_in_sequence(self):
        raw = _enc(lambda e: (
            e.begin_seq(),
            e.write_unit_variant("Unit"),
            e.begin_variant("Newtype"), e.write_u32(1), e.end(),
            e.end(),
        ))
        self.assertEqual(from_bytes(raw, Seq(ENUM)), [Variant("Unit"), Variant("Newtype", 1)])

    def test_unit_variant_with_payload_request(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(to_bytes(Variant("Newtype")), ENUM)
        self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)
        self.assertEqual(ctx.exception.offset, 8)

    def test_integer_range_checked(self):
        # A self-describing walk can hand an integer shape a wider value.
        raw = _enc(lambda e: e.write_u8(200))
        with self.assertRaises(DecodeError) as ctx:
            Decoder(raw).deserialize_any(I8())
        self.assertEqual(ctx.exception.code, ERR_INVALID_VALUE)
        self.assertEqual(Decoder(raw).deserialize_any(U32()), 200)

    def test_variant_null_payload_is_not_unit(self):
        shape = Enum("E", {"N": Option(I64()), "U": None})
        raw = b"\x16\x81N\x00\x17"
        self.assertEqual(to_bytes(Variant("N", None)), raw)
        decoded = from_bytes(raw, shape)
        self.assertEqual(decoded, Variant("N", None))
        self.assertIsNot(decoded.value, UNIT)
        for v in [Variant("N", None), Variant("N", 5), Variant("U")]:
            with self.subTest(v=v):
                self.assertEqual(from_bytes(to_bytes(v), shape), v)

    def test_unit_variant_marker(self):
        self.assertIs(Variant("U").value, UNIT)
        self.assertIs(from_bytes(b"\x84Unit", ENUM).value, UNIT)
        self.assertEqual(repr(UNIT), "UNIT")

    def test_map_unhashable_key(self):
        for raw in [b"\x16\x15\x17\x11\x17", b"\x16\x16\x17\x11\x17"]:
            with self.subTest(raw=raw.hex()):
                with self.assertRaises(DecodeError) as ctx:
                    from_bytes(raw, Map(AnyValue(), Bool()))
                self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)
                self.assertEqual(ctx.exception.offset, 3)

    def test_map_any_key(self):
        raw = to_bytes({1: True, "a": False, None: True})
        self.assertEqual(from_bytes(raw, Map(AnyValue(), Bool())),
                         {1: True, "a": False, None: True})

    def test_map_of_sequences(self):
        raw = to_bytes({"a": [1, 2], "b": []})
        self.assertEqual(from_bytes(raw, Map(Str(), Seq(I64()))), {"a": [1, 2], "b": []})


# ── Custom visitors ───────────────────────────────────────────

class _Summer(Visitor):
    """Adds up every integer in a nested sequence without building lists."""

    expecting = "integers"

    def deserialize(self, de):
        return de.deserialize_any(self)

    def visit_u64(self, v):
        return v

    def visit_i64(self, v):
        return v

    def visit_seq(self, seq):
        return sum(seq.elements(self))


class TestCustomVisitor(unittest.TestCase):
    def test_sum(self):
        raw = to_bytes([1, [2, 3], [], [[4]]])
        self.assertEqual(from_bytes(raw, _Summer()), 10)

    def test_unaccepted_kind(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(to_bytes(["x"]), _Summer())
        self.assertEqual(ctx.exception.code, ERR_INVALID_TYPE)
        self.assertIn("integers", str(ctx.exception))

    def test_decoder_end(self):
        de = Decoder(b"\x11\x10")
        self.assertIs(de.decode(Bool()), True)
        with self.assertRaises(DecodeError) as ctx:
            de.end()
        self.assertEqual(ctx.exception.code, ERR_TRAILING_CHARACTERS)
        self.assertEqual(ctx.exception.offset, 1)


# ── Depth limits ──────────────────────────────────────────────

class TestDepthLimits(unittest.TestCase):
    def test_default_limit_ok(self):
        raw = b"\x15" * MAX_DEPTH + b"\x17" * MAX_DEPTH
        validate(raw)

    def test_default_limit_exceeded(self):
        raw = b"\x15" * (MAX_DEPTH + 1) + b"\x17" * (MAX_DEPTH + 1)
        with self.assertRaises(DecodeError) as ctx:
            validate(raw)
        self.assertEqual(ctx.exception.code, ERR_DEPTH_LIMIT)

    def test_adversarial_depth(self):
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(b"\x16\x81a" * 10000, AnyValue())
        self.assertEqual(ctx.exception.code, ERR_DEPTH_LIMIT)

    def test_enum_payload_depth(self):
        nest = Enum("Nest", {"Leaf": None})
        nest.variants["Wrap"] = nest
        deep = b"\x16\x84Wrap" * (MAX_DEPTH + 1) + b"\x84Leaf" + b"\x17" * (MAX_DEPTH + 1)
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(deep, nest)
        self.assertEqual(ctx.exception.code, ERR_DEPTH_LIMIT)

        shallow = b"\x16\x84Wrap" * 3 + b"\x84Leaf" + b"\x17" * 3
        expected = Variant("Wrap", Variant("Wrap", Variant("Wrap", Variant("Leaf"))))
        self.assertEqual(from_bytes(shallow, nest, max_depth=3), expected)
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(shallow, nest, max_depth=2)
        self.assertEqual(ctx.exception.code, ERR_DEPTH_LIMIT)

    def test_custom_limit(self):
        raw = b"\x15\x15\x15\x17\x17\x17"
        self.assertEqual(from_bytes(raw, AnyValue(), max_depth=3), [[[]]])
        with self.assertRaises(DecodeError) as ctx:
            from_bytes(raw, AnyValue(), max_depth=2)
        self.assertEqual(ctx.exception.code, ERR_DEPTH_LIMIT)


# ── validate() ────────────────────────────────────────────────

class TestValidate(unittest.TestCase):
    def test_valid(self):
        validate(to_bytes({"a": [1, 2.5, "x", None, True]}))

    def test_trailing(self):
        with self.assertRaises(DecodeError) as ctx:
            validate(b"\x11\x11")
        self.assertEqual(ctx.exception.code, ERR_TRAILING_CHARACTERS)

    def test_logs_trailing(self):
        with self.assertLogs("tagwire._core", level="DEBUG") as logs:
            with self.assertRaises(DecodeError):
                validate(b"\x00\x00")
        self.assertTrue(any("trailing" in line for line in logs.output))

    def test_decode_logs_consumed(self):
        with self.assertLogs("tagwire._core", level="DEBUG") as logs:
            decode(b"\x11\x00", Bool())
        self.assertTrue(any("decoded 1 of 2 bytes" in line for line in logs.output))


# ── Encoder ───────────────────────────────────────────────────

class TestEncoder(unittest.TestCase):
    def test_scenario_bytes(self):
        self.assertEqual(to_bytes([True, False]), b"\x15\x11\x10\x17")
        self.assertEqual(to_bytes({"ok": True}), b"\x16\x82ok\x11\x17")
        self.assertEqual(to_bytes(None), b"\x00")

    def test_int_defaults(self):
        self.assertEqual(to_bytes(-1), b"\x0b" + b"\xff" * 8)
        self.assertEqual(to_bytes(2**64 - 1), b"\x07" + b"\xff" * 8)
        with self.assertRaises(DecodeError) as ctx:
            to_bytes(2**64)
        self.assertEqual(ctx.exception.code, ERR_ENCODE)

    def test_width_checked(self):
        with self.assertRaises(DecodeError) as ctx:
            Encoder().write_u8(256)
        self.assertEqual(ctx.exception.code, ERR_ENCODE)
        with self.assertRaises(DecodeError):
            Encoder().write_i8(True)

    def test_f32_overflow(self):
        with self.assertRaises(DecodeError) as ctx:
            Encoder().write_f32(1e300)
        self.assertEqual(ctx.exception.code, ERR_ENCODE)

    def test_inline_too_long(self):
        with self.assertRaises(DecodeError) as ctx:
            Encoder().write_str("x" * 64, "inline")
        self.assertEqual(ctx.exception.code, ERR_ENCODE)

    def test_unbalanced(self):
        enc = Encoder()
        enc.begin_seq()
        with self.assertRaises(DecodeError):
            enc.getvalue()
        with self.assertRaises(DecodeError):
            Encoder().end()

    def test_variant_forms(self):
        self.assertEqual(to_bytes(Variant("Unit")), b"\x84Unit")
        self.assertEqual(to_bytes(Variant("N", 1)),
                         b"\x16\x81N\x0b" + (1).to_bytes(8, "big") + b"\x17")

    def test_unsupported(self):
        with self.assertRaises(DecodeError) as ctx:
            to_bytes(b"raw bytes")
        self.assertEqual(ctx.exception.code, ERR_ENCODE)


if __name__ == "__main__":
    unittest.main()
