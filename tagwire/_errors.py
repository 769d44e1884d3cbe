"""tagwire error codes and the exception class.

Every failure is fatal to the decode call that raised it: no partial value
is returned and nothing is retried.  Callers switch on ``.code``.
"""

from __future__ import annotations

from typing import Optional

# ── Grammar / buffer errors ──────────────────────────────────
ERR_UNEXPECTED_END: str = "ERR_UNEXPECTED_END"            # buffer exhausted
ERR_SYNTAX: str = "ERR_SYNTAX"                            # bad tag, invalid UTF-8
ERR_TOO_LARGE: str = "ERR_TOO_LARGE"                      # length beyond sys.maxsize
ERR_TRAILING_CHARACTERS: str = "ERR_TRAILING_CHARACTERS"  # bytes left after the root
ERR_DEPTH_LIMIT: str = "ERR_DEPTH_LIMIT"                  # nesting too deep

# ── Shape mismatches (tag vs. requested shape) ───────────────
ERR_EXPECTED_BOOLEAN: str = "ERR_EXPECTED_BOOLEAN"
ERR_EXPECTED_INTEGER: str = "ERR_EXPECTED_INTEGER"
ERR_EXPECTED_FLOAT: str = "ERR_EXPECTED_FLOAT"
ERR_EXPECTED_STRING: str = "ERR_EXPECTED_STRING"
ERR_EXPECTED_ARRAY: str = "ERR_EXPECTED_ARRAY"
ERR_EXPECTED_MAP: str = "ERR_EXPECTED_MAP"
ERR_EXPECTED_ENUM: str = "ERR_EXPECTED_ENUM"
ERR_EXPECTED_NULL: str = "ERR_EXPECTED_NULL"
ERR_EXPECTED_SEQUENCE_END: str = "ERR_EXPECTED_SEQUENCE_END"

# ── Visitor-side errors ──────────────────────────────────────
ERR_INVALID_TYPE: str = "ERR_INVALID_TYPE"    # visitor does not accept this kind
ERR_INVALID_VALUE: str = "ERR_INVALID_VALUE"  # right kind, unacceptable value

# ── Encoder ──────────────────────────────────────────────────
ERR_ENCODE: str = "ERR_ENCODE"


class DecodeError(Exception):
    """Exception for tagwire decode (and encode) failures.

    ``.code`` is one of the ERR_* strings above.  ``.offset`` is the
    cursor position when the error was raised, or None when no cursor was
    involved (encoder errors, visitor errors raised outside a decoder).
    """

    def __init__(self, code: str, msg: str = "", offset: Optional[int] = None) -> None:
        super().__init__(msg or code)
        self.code = code
        self.offset = offset

    def __str__(self) -> str:
        base = super().__str__()
        if self.offset is None:
            return base
        return "{} at offset {}".format(base, self.offset)


def invalid_type(unexpected: str, expecting: str) -> DecodeError:
    return DecodeError(ERR_INVALID_TYPE,
                       "invalid type: {}, expected {}".format(unexpected, expecting))


def invalid_value(msg: str) -> DecodeError:
    return DecodeError(ERR_INVALID_VALUE, msg)
