"""tagwire — a self-describing, tag-prefixed binary format and its decoder.

Decode bytes straight into the shape you ask for, with no intermediate tree:

    >>> from tagwire import from_bytes, Seq, Bool
    >>> from_bytes(b"\\x15\\x11\\x10\\x17", Seq(Bool()))
    [True, False]

Records and tagged unions:

    >>> from tagwire import Struct, Enum, Str, U32, Tuple, Variant
    >>> shape = Enum("E", {"Unit": None, "Newtype": U32(),
    ...                    "Tuple": Tuple(U32(), U32()),
    ...                    "Struct": Struct("S", {"a": U32()})})
    >>> from_bytes(b"\\x84Unit", shape)
    Variant(name='Unit', value=UNIT)

``decode`` returns ``(value, consumed)`` and leaves trailing bytes alone;
``from_bytes`` insists the value spans the whole buffer.  Every failure is a
``DecodeError`` whose ``.code`` is one of the ERR_* constants below.
"""

from __future__ import annotations

from ._constants import MAX_DEPTH
from ._core import (
    ContainerAccess,
    Decoder,
    EnumAccess,
    UnitVariantAccess,
    VariantAccess,
    decode,
    from_bytes,
    validate,
)
from ._cursor import ByteCursor
from ._encoder import Encoder, to_bytes
from ._errors import (
    ERR_DEPTH_LIMIT,
    ERR_ENCODE,
    ERR_EXPECTED_ARRAY,
    ERR_EXPECTED_BOOLEAN,
    ERR_EXPECTED_ENUM,
    ERR_EXPECTED_FLOAT,
    ERR_EXPECTED_INTEGER,
    ERR_EXPECTED_MAP,
    ERR_EXPECTED_NULL,
    ERR_EXPECTED_SEQUENCE_END,
    ERR_EXPECTED_STRING,
    ERR_INVALID_TYPE,
    ERR_INVALID_VALUE,
    ERR_SYNTAX,
    ERR_TOO_LARGE,
    ERR_TRAILING_CHARACTERS,
    ERR_UNEXPECTED_END,
    DecodeError,
)
from ._shapes import (
    F32,
    F64,
    I8,
    I16,
    I32,
    I64,
    U8,
    U16,
    U32,
    U64,
    AnyValue,
    Bool,
    Char,
    Enum,
    IgnoredAny,
    Map,
    Newtype,
    Option,
    Seq,
    Shape,
    Str,
    Struct,
    Tuple,
    UNIT,
    Unit,
    Variant,
)
from ._visitor import Visitor

__version__ = "0.1.0"

__all__ = [
    # Decoding
    "decode",
    "from_bytes",
    "validate",
    "Decoder",
    "ByteCursor",
    "MAX_DEPTH",
    # Visitor protocol
    "Visitor",
    "ContainerAccess",
    "EnumAccess",
    "VariantAccess",
    "UnitVariantAccess",
    # Shapes
    "Shape",
    "Bool",
    "U8", "U16", "U32", "U64",
    "I8", "I16", "I32", "I64",
    "F32", "F64",
    "Char",
    "Str",
    "Unit",
    "Option",
    "Newtype",
    "Seq",
    "Tuple",
    "Map",
    "Struct",
    "Enum",
    "Variant",
    "UNIT",
    "AnyValue",
    "IgnoredAny",
    # Encoding
    "Encoder",
    "to_bytes",
    # Exception
    "DecodeError",
    # Error codes
    "ERR_UNEXPECTED_END",
    "ERR_SYNTAX",
    "ERR_TOO_LARGE",
    "ERR_TRAILING_CHARACTERS",
    "ERR_DEPTH_LIMIT",
    "ERR_EXPECTED_BOOLEAN",
    "ERR_EXPECTED_INTEGER",
    "ERR_EXPECTED_FLOAT",
    "ERR_EXPECTED_STRING",
    "ERR_EXPECTED_ARRAY",
    "ERR_EXPECTED_MAP",
    "ERR_EXPECTED_ENUM",
    "ERR_EXPECTED_NULL",
    "ERR_EXPECTED_SEQUENCE_END",
    "ERR_INVALID_TYPE",
    "ERR_INVALID_VALUE",
    "ERR_ENCODE",
]
