#!/usr/bin/env python3
# tools/invariants_runner.py
#
# Decoder invariants over random values (property tests).
#
# For every generated value this runner checks:
#   (1) round trip: from_bytes(to_bytes(v), AnyValue()) == v
#   (2) truncation: every strict prefix fails with ERR_UNEXPECTED_END
#   (3) tail: decode(E + tail) consumes exactly len(E) and returns the same value
#   (4) string classes: each string re-encoded in every length class decodes the same
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import math, os, random, sys
from typing import Any, Dict, List

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from tagwire import (
    AnyValue,
    DecodeError,
    Encoder,
    ERR_UNEXPECTED_END,
    Str,
    decode,
    from_bytes,
    to_bytes,
)

SEED = int(os.environ.get("TAGWIRE_SEED", "1337"))
TRIALS = int(os.environ.get("TAGWIRE_TRIALS", "500"))
MAX_GEN_DEPTH = int(os.environ.get("TAGWIRE_GEN_MAX_DEPTH", "5"))
MAX_KEYS = int(os.environ.get("TAGWIRE_GEN_MAX_KEYS", "5"))
MAX_LIST = int(os.environ.get("TAGWIRE_GEN_MAX_LIST", "5"))
MAX_STR = int(os.environ.get("TAGWIRE_GEN_MAX_STR", "80"))
MAX_CUTS = int(os.environ.get("TAGWIRE_MAX_CUTS", "256"))

STR_CLASSES = ["inline", "u8", "u16", "u32", "u64"]
TAIL = b"\x17\x00\xfftail"

def rand_utf8_string(rng: random.Random) -> str:
    # Scalars only, no surrogates; lengths straddle the inline limit.
    out = []
    for _ in range(rng.randint(0, MAX_STR)):
        r = rng.random()
        if r < 0.70:
            out.append(chr(rng.randint(0x20, 0x7E)))
        elif r < 0.85:
            out.append(chr(rng.randint(0xA0, 0xFF)))
        elif r < 0.95:
            out.append(chr(rng.randint(0x0100, 0xD7FF)))
        else:
            out.append(chr(rng.randint(0x10000, 0x10FFFF)))
    return "".join(out)

def rand_scalar(rng: random.Random) -> Any:
    r = rng.random()
    if r < 0.10:
        return None
    if r < 0.25:
        return rng.random() < 0.5
    if r < 0.45:
        return rng.randint(-(2**63), 2**64 - 1)
    if r < 0.60:
        return rng.choice([0.0, -0.0, 1.5, -2.25, 1e300, float("inf"), rng.uniform(-1e6, 1e6)])
    return rand_utf8_string(rng)

def gen_value(rng: random.Random, depth: int) -> Any:
    if depth >= MAX_GEN_DEPTH:
        return rand_scalar(rng)
    r = rng.random()
    if r < 0.30:
        d: Dict[str, Any] = {}
        for _ in range(rng.randint(0, MAX_KEYS)):
            d[rand_utf8_string(rng)] = gen_value(rng, depth + 1)
        return d
    if r < 0.55:
        return [gen_value(rng, depth + 1) for _ in range(rng.randint(0, MAX_LIST))]
    return rand_scalar(rng)

def strings_in(v: Any) -> List[str]:
    if isinstance(v, str):
        return [v]
    if isinstance(v, list):
        return [s for item in v for s in strings_in(item)]
    if isinstance(v, dict):
        return [s for k, item in v.items() for s in strings_in(k) + strings_in(item)]
    return []

def same(a: Any, b: Any) -> bool:
    if isinstance(a, float) and isinstance(b, float):
        return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)
    return a == b

def fail(label: str, ctx: Any) -> int:
    print("INVARIANT FAIL:", label)
    print("CTX:", repr(ctx)[:2000])
    return 1

def run(trials: int = TRIALS, seed: int = SEED) -> int:
    rng = random.Random(seed)
    for t in range(trials):
        v = gen_value(rng, 0)
        raw = to_bytes(v)

        # (1) round trip
        if not same(from_bytes(raw, AnyValue()), v):
            return fail("round trip", {"trial": t, "value": v})

        # (2) truncation safety
        cuts = range(len(raw))
        if len(raw) > MAX_CUTS:
            cuts = sorted(rng.sample(cuts, MAX_CUTS))
        for cut in cuts:
            try:
                from_bytes(raw[:cut], AnyValue())
            except DecodeError as e:
                if e.code != ERR_UNEXPECTED_END:
                    return fail("truncation code", {"trial": t, "cut": cut, "code": e.code})
            else:
                return fail("truncated input decoded", {"trial": t, "cut": cut})

        # (3) tail untouched
        got, consumed = decode(raw + TAIL, AnyValue())
        if consumed != len(raw) or not same(got, v):
            return fail("tail", {"trial": t, "consumed": consumed, "len": len(raw)})

        # (4) string length classes
        for s in strings_in(v)[:4]:
            n = len(s.encode("utf-8"))
            for cls in STR_CLASSES:
                if (cls == "inline" and n > 63) or (cls == "u8" and n > 0xFF):
                    continue
                enc = Encoder()
                enc.write_str(s, cls)
                if from_bytes(enc.getvalue(), Str()) != s:
                    return fail("string class", {"trial": t, "class": cls, "s": s})

    print(f"OK: invariants passed for TRIALS={trials} seed={seed}")
    return 0

def main() -> int:
    return run()

if __name__ == "__main__":
    raise SystemExit(main())
