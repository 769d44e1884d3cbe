"""Target shapes — ready-made seeds that build plain Python values.

A shape says what the caller expects at a position (``deserialize``) and
how to turn what the decoder reports into a Python value (the inherited
``visit_*`` methods).  Shapes compose:

    >>> point = Struct("Point", {"x": I32(), "y": I32()})
    >>> from_bytes(data, Seq(point))

Python values produced:

    Bool -> bool          U8..I64 -> int         F32, F64 -> float
    Str, Char -> str      Unit -> None           Option -> None or inner
    Seq -> list           Tuple -> tuple         Map, Struct -> dict
    Enum -> Variant(name, value)   AnyValue -> any of the above
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional

from ._constants import INT_RANGES
from ._errors import invalid_type, invalid_value
from ._visitor import Visitor


class _UnitType:
    """Payload marker for unit variants, distinct from a ``None`` payload."""

    _instance = None

    def __new__(cls) -> "_UnitType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNIT"

    def __reduce__(self) -> str:
        return "UNIT"


UNIT = _UnitType()


class Variant(NamedTuple):
    """A decoded enum value.

    ``value`` is ``UNIT`` for unit variants.  A newtype variant whose
    payload decoded to None keeps ``value=None``, so the two encode
    differently.
    """

    name: str
    value: Any = UNIT


class Shape(Visitor):
    """Base shape: a visitor that also knows how to ask for its value."""

    def deserialize(self, de: Any) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return "{}()".format(type(self).__name__)


# ── scalars ───────────────────────────────────────────────────

class Bool(Shape):
    expecting = "a boolean"

    def deserialize(self, de):
        return de.deserialize_bool(self)

    def visit_bool(self, v):
        return v


class _Int(Shape):
    kind = ""

    @property
    def expecting(self) -> str:
        return "integer of type {}".format(self.kind)

    def deserialize(self, de):
        return getattr(de, "deserialize_" + self.kind)(self)

    def _check(self, v: int) -> int:
        lo, hi = INT_RANGES[self.kind]
        if not lo <= v <= hi:
            raise invalid_value("integer {} out of range for {}".format(v, self.kind))
        return v

    def visit_u64(self, v):
        return self._check(v)

    def visit_i64(self, v):
        return self._check(v)


class U8(_Int):
    kind = "u8"


class U16(_Int):
    kind = "u16"


class U32(_Int):
    kind = "u32"


class U64(_Int):
    kind = "u64"


class I8(_Int):
    kind = "i8"


class I16(_Int):
    kind = "i16"


class I32(_Int):
    kind = "i32"


class I64(_Int):
    kind = "i64"


class F32(Shape):
    expecting = "a 32-bit float"

    def deserialize(self, de):
        return de.deserialize_f32(self)

    def visit_f64(self, v):
        return v


class F64(F32):
    expecting = "a 64-bit float"

    def deserialize(self, de):
        return de.deserialize_f64(self)


class Str(Shape):
    expecting = "a string"

    def deserialize(self, de):
        return de.deserialize_str(self)

    def visit_str(self, v):
        return v


class Char(Str):
    expecting = "a character"

    def deserialize(self, de):
        return de.deserialize_char(self)

    def visit_str(self, v):
        if len(v) != 1:
            raise invalid_value("expected a single character, got {!r}".format(v))
        return v


# ── option / unit / newtype ───────────────────────────────────

class Unit(Shape):
    expecting = "unit"

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name

    def deserialize(self, de):
        if self.name is not None:
            return de.deserialize_unit_struct(self.name, self)
        return de.deserialize_unit(self)

    def visit_unit(self):
        return None


class Option(Shape):
    """Optional value.  ``None`` when absent, the inner shape's value otherwise.

    Like every format with a single null marker, ``Option(Option(x))``
    cannot tell the outer None from the inner one.
    """

    expecting = "option"

    def __init__(self, inner: Shape) -> None:
        self.inner = inner

    def __repr__(self) -> str:
        return "Option({!r})".format(self.inner)

    def deserialize(self, de):
        return de.deserialize_option(self)

    def visit_none(self):
        return None

    def visit_unit(self):
        return None

    def visit_some(self, decoder):
        return self.inner.deserialize(decoder)


class Newtype(Shape):
    """A named wrapper that is transparent on the wire."""

    def __init__(self, name: str, inner: Shape, factory: Optional[Callable[[Any], Any]] = None) -> None:
        self.name = name
        self.inner = inner
        self.factory = factory

    @property
    def expecting(self) -> str:
        return "newtype struct {}".format(self.name)

    def __repr__(self) -> str:
        return "Newtype({!r}, {!r})".format(self.name, self.inner)

    def deserialize(self, de):
        return de.deserialize_newtype_struct(self.name, self)

    def visit_newtype_struct(self, decoder):
        value = self.inner.deserialize(decoder)
        return self.factory(value) if self.factory is not None else value


# ── containers ────────────────────────────────────────────────

class Seq(Shape):
    expecting = "a sequence"

    def __init__(self, element: Shape) -> None:
        self.element = element

    def __repr__(self) -> str:
        return "Seq({!r})".format(self.element)

    def deserialize(self, de):
        return de.deserialize_seq(self)

    def visit_seq(self, seq):
        return list(seq.elements(self.element))


class Tuple(Shape):
    """Fixed-length heterogeneous sequence.

    Reads exactly ``len(elements)`` values; anything left before the close
    tag is reported by the decoder as ERR_EXPECTED_SEQUENCE_END.
    """

    def __init__(self, *elements: Shape, name: Optional[str] = None) -> None:
        self.elements = elements
        self.name = name

    @property
    def expecting(self) -> str:
        return "a tuple of size {}".format(len(self.elements))

    def __repr__(self) -> str:
        return "Tuple({})".format(", ".join(repr(e) for e in self.elements))

    def deserialize(self, de):
        if self.name is not None:
            return de.deserialize_tuple_struct(self.name, len(self.elements), self)
        return de.deserialize_tuple(len(self.elements), self)

    def visit_seq(self, seq):
        out: List[Any] = []
        for i, element in enumerate(self.elements):
            if not seq.has_next():
                raise invalid_value("invalid length {}, expected {}".format(i, self.expecting))
            out.append(seq.next_element(element))
        return tuple(out)


class Map(Shape):
    """Homogeneous map.  Key values must be hashable; a repeated key keeps the last value."""

    expecting = "a map"

    def __init__(self, key: Shape, value: Shape) -> None:
        self.key = key
        self.value = value

    def __repr__(self) -> str:
        return "Map({!r}, {!r})".format(self.key, self.value)

    def deserialize(self, de):
        return de.deserialize_map(self)

    def visit_map(self, entries):
        return _build_dict(entries, self.key, self.value)


class Struct(Shape):
    """Named record encoded as a map keyed by field name.

    Unknown fields are skipped.  Missing ``Option`` fields default to None;
    any other missing field is an error, as is a field given twice.  When
    ``factory`` is set it is called with the fields as keyword arguments
    (a dataclass or NamedTuple works), otherwise a dict is returned.
    """

    def __init__(self, name: str, fields: Mapping[str, Shape],
                 factory: Optional[Callable[..., Any]] = None) -> None:
        self.name = name
        self.fields = dict(fields)
        self.factory = factory

    @property
    def expecting(self) -> str:
        return "struct {}".format(self.name)

    def __repr__(self) -> str:
        return "Struct({!r})".format(self.name)

    def deserialize(self, de):
        return de.deserialize_struct(self.name, tuple(self.fields), self)

    def visit_map(self, entries):
        values: Dict[str, Any] = {}
        while entries.has_next():
            key = entries.next_key(_FIELD_NAME)
            shape = self.fields.get(key)
            if shape is None:
                entries.next_value(_IGNORED)
                continue
            if key in values:
                raise invalid_value("duplicate field `{}`".format(key))
            values[key] = entries.next_value(shape)

        for name, shape in self.fields.items():
            if name in values:
                continue
            if isinstance(shape, Option):
                values[name] = None
            else:
                raise invalid_value("missing field `{}`".format(name))

        if self.factory is not None:
            return self.factory(**values)
        return values


class Enum(Shape):
    """Externally tagged union.

    ``variants`` maps each variant name to its payload shape: None for a
    unit variant, a ``Tuple`` for a tuple variant, a ``Struct`` for a struct
    variant, and any other shape for a newtype variant.
    """

    def __init__(self, name: str, variants: Mapping[str, Optional[Shape]]) -> None:
        self.name = name
        self.variants = dict(variants)

    @property
    def expecting(self) -> str:
        return "enum {}".format(self.name)

    def __repr__(self) -> str:
        return "Enum({!r})".format(self.name)

    def deserialize(self, de):
        return de.deserialize_enum(self.name, tuple(self.variants), self)

    def visit_enum(self, data):
        name, variant = data.variant()
        if name not in self.variants:
            raise invalid_value("unknown variant `{}`, expected one of {}".format(
                name, ", ".join("`{}`".format(v) for v in self.variants)))
        payload = self.variants[name]

        if payload is None:
            variant.unit_variant()
            return Variant(name)
        if isinstance(payload, Tuple):
            return Variant(name, variant.tuple_variant(len(payload.elements), payload))
        if isinstance(payload, Struct):
            return Variant(name, variant.struct_variant(tuple(payload.fields), payload))
        return Variant(name, variant.newtype_variant(payload))


# ── self-describing ───────────────────────────────────────────

class AnyValue(Shape):
    """Whatever the bytes say: None, bool, int, float, str, list or dict."""

    expecting = "any value"

    def __repr__(self) -> str:
        return "AnyValue()"

    def deserialize(self, de):
        return de.deserialize_any(self)

    def visit_bool(self, v):
        return v

    def visit_u64(self, v):
        return v

    def visit_i64(self, v):
        return v

    def visit_f64(self, v):
        return v

    def visit_str(self, v):
        return v

    def visit_unit(self):
        return None

    def visit_none(self):
        return None

    def visit_some(self, decoder):
        return self.deserialize(decoder)

    def visit_seq(self, seq):
        return list(seq.elements(self))

    def visit_map(self, entries):
        return _build_dict(entries, self, self)


class IgnoredAny(AnyValue):
    """Consumes one value of any shape and returns None."""

    expecting = "anything"

    def __repr__(self) -> str:
        return "IgnoredAny()"

    def deserialize(self, de):
        return de.deserialize_ignored_any(self)

    def visit_bool(self, v):
        return None

    def visit_u64(self, v):
        return None

    def visit_i64(self, v):
        return None

    def visit_f64(self, v):
        return None

    def visit_str(self, v):
        return None

    def visit_seq(self, seq):
        for _ in seq.elements(self):
            pass
        return None

    def visit_map(self, entries):
        for _ in entries.entries(self, self):
            pass
        return None


def _build_dict(entries: Any, key_seed: Shape, value_seed: Shape) -> Dict[Any, Any]:
    # A sequence or map can sit in key position on the wire; Python
    # cannot use it as a dict key.
    out: Dict[Any, Any] = {}
    while entries.has_next():
        key = entries.next_key(key_seed)
        try:
            hash(key)
        except TypeError:
            raise invalid_type("unhashable map key {!r}".format(key),
                               "a scalar or string key") from None
        out[key] = entries.next_value(value_seed)
    return out


_FIELD_NAME = Str()
_IGNORED = IgnoredAny()
