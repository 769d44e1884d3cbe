"""Visitor protocol — the capability interface the decoder drives.

The decoder knows nothing about the values being built.  For every value it
recognizes it calls exactly one ``visit_*`` method on the visitor it was
handed; containers and enums are exposed through pull-based access objects
(see ``_core``) that the visitor drives itself.

A visitor overrides only what it accepts.  Narrow integer and float visits
forward to their 64-bit counterparts, ``visit_borrowed_str`` forwards to
``visit_str``, and everything else raises ``ERR_INVALID_TYPE``.
"""

from __future__ import annotations

from typing import Any

from ._errors import invalid_type


class Visitor:
    """Base visitor.  Subclasses set ``expecting`` for error messages."""

    expecting = "a value"

    # ── booleans ──────────────────────────────────────────────

    def visit_bool(self, v: bool) -> Any:
        raise invalid_type("boolean `{}`".format(str(v).lower()), self.expecting)

    # ── integers ──────────────────────────────────────────────

    def visit_u8(self, v: int) -> Any:
        return self.visit_u64(v)

    def visit_u16(self, v: int) -> Any:
        return self.visit_u64(v)

    def visit_u32(self, v: int) -> Any:
        return self.visit_u64(v)

    def visit_u64(self, v: int) -> Any:
        raise invalid_type("integer `{}`".format(v), self.expecting)

    def visit_i8(self, v: int) -> Any:
        return self.visit_i64(v)

    def visit_i16(self, v: int) -> Any:
        return self.visit_i64(v)

    def visit_i32(self, v: int) -> Any:
        return self.visit_i64(v)

    def visit_i64(self, v: int) -> Any:
        raise invalid_type("integer `{}`".format(v), self.expecting)

    # ── floats ────────────────────────────────────────────────

    def visit_f32(self, v: float) -> Any:
        return self.visit_f64(v)

    def visit_f64(self, v: float) -> Any:
        raise invalid_type("floating point `{!r}`".format(v), self.expecting)

    # ── strings ───────────────────────────────────────────────

    def visit_borrowed_str(self, v: str) -> Any:
        return self.visit_str(v)

    def visit_str(self, v: str) -> Any:
        raise invalid_type("string {!r}".format(v), self.expecting)

    # ── option / unit / newtype ───────────────────────────────

    def visit_none(self) -> Any:
        raise invalid_type("Option value", self.expecting)

    def visit_some(self, decoder: Any) -> Any:
        raise invalid_type("Option value", self.expecting)

    def visit_unit(self) -> Any:
        raise invalid_type("unit value", self.expecting)

    def visit_newtype_struct(self, decoder: Any) -> Any:
        raise invalid_type("newtype struct", self.expecting)

    # ── containers / enums ────────────────────────────────────

    def visit_seq(self, seq: Any) -> Any:
        raise invalid_type("sequence", self.expecting)

    def visit_map(self, entries: Any) -> Any:
        raise invalid_type("map", self.expecting)

    def visit_enum(self, data: Any) -> Any:
        raise invalid_type("enum", self.expecting)
