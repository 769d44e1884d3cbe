"""f32 <-> Python float conversion that keeps NaN payloads bit-exact.

Python floats are doubles.  ``struct`` converts f32 through a C cast, which
sets the quiet bit of a signalling NaN.  NaNs are therefore widened and
narrowed on the integer bit pattern instead; every other f32 value converts
exactly through ``struct``.
"""

from __future__ import annotations

import struct

_F32_EXP = 0x7F800000
_F32_MANT = 0x007FFFFF
_F64_EXP = 0x7FF0000000000000
_F64_MANT = 0x000FFFFFFFFFFFFF
_MANT_SHIFT = 52 - 23


def unpack_f32(raw: bytes) -> float:
    bits = int.from_bytes(raw, "big")
    if bits & _F32_EXP == _F32_EXP and bits & _F32_MANT:
        wide = ((bits >> 31) << 63) | _F64_EXP | ((bits & _F32_MANT) << _MANT_SHIFT)
        return struct.unpack(">d", wide.to_bytes(8, "big"))[0]
    return struct.unpack(">f", raw)[0]


def pack_f32(v: float) -> bytes:
    """Narrow ``v`` to f32.  Raises OverflowError for finite values out of range."""
    wide = int.from_bytes(struct.pack(">d", v), "big")
    if wide & _F64_EXP == _F64_EXP and wide & _F64_MANT:
        # Payload bits below the f32 mantissa are dropped; keep it a NaN.
        mant = (wide & _F64_MANT) >> _MANT_SHIFT or 1
        bits = ((wide >> 63) << 31) | _F32_EXP | mant
        return bits.to_bytes(4, "big")
    return struct.pack(">f", v)
