#!/usr/bin/env python3
# tools/fuzz_runner.py
#
# Decoder robustness fuzzing.
#
# Generates three fuzz categories:
#   A) valid encodings with random byte mutations (flip, insert, delete)
#   B) random byte strings biased towards the tag alphabet
#   C) valid encodings decoded against unrelated target shapes
#
# The decoder must either return a value or raise DecodeError. Any other
# exception, or disagreement between validate() and from_bytes(AnyValue()),
# prints a minimal repro payload and exits non-zero.

import os, sys, random, traceback
from typing import Any, Dict

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from tagwire import (
    ERR_INVALID_TYPE, AnyValue, Bool, Char, DecodeError, Enum, F64, I32, Map, Option, Seq, Str,
    Struct, Tuple, U8, U64, from_bytes, to_bytes, validate,
)

SEED = int(os.environ.get("TAGWIRE_SEED", "4242"))
ROUNDS = int(os.environ.get("TAGWIRE_ROUNDS", "5000"))

random.seed(SEED)

TAG_ALPHABET = [0x00, 0x04, 0x05, 0x06, 0x07, 0x08, 0x09, 0x0A, 0x0B, 0x0C, 0x0D,
                0x10, 0x11, 0x15, 0x16, 0x17, 0x80, 0x83, 0xBF, 0xC4, 0xC5, 0xC6, 0xC7]

SHAPES = [
    Bool(), U8(), U64(), I32(), F64(), Str(), Char(),
    Option(Str()), Seq(AnyValue()), Map(Str(), AnyValue()), Map(AnyValue(), Bool()),
    Tuple(U8(), Str()),
    Struct("P", {"x": I32(), "y": Option(I32())}),
    Enum("E", {"A": None, "B": U64(), "C": Tuple(Bool(), Bool())}),
]

def crash(label: str, raw: bytes, ctx: Dict[str, Any]) -> None:
    print("CRASH:", label)
    print("INPUT:", raw.hex())
    print("CTX:", repr(ctx)[:4000])
    traceback.print_exc()
    raise SystemExit(1)

# --- generators ---

def rand_ascii(nmax: int) -> str:
    n = random.randint(0, nmax)
    return "".join(chr(random.randint(0x20, 0x7E)) for _ in range(n))

def rand_value(depth: int = 0) -> Any:
    r = random.random()
    if depth > 4 or r < 0.45:
        return random.choice([
            None, True, False,
            random.randint(-(2**63), 2**64 - 1),
            random.uniform(-1e9, 1e9),
            rand_ascii(70),
        ])
    if r < 0.75:
        return [rand_value(depth + 1) for _ in range(random.randint(0, 4))]
    return {rand_ascii(8): rand_value(depth + 1) for _ in range(random.randint(0, 4))}

def mutate(raw: bytes) -> bytes:
    b = bytearray(raw)
    for _ in range(random.randint(1, 3)):
        op = random.random()
        if op < 0.4 and b:
            b[random.randrange(len(b))] = random.getrandbits(8)
        elif op < 0.7:
            b.insert(random.randint(0, len(b)), random.choice(TAG_ALPHABET))
        elif b:
            del b[random.randrange(len(b))]
    return bytes(b)

def rand_bytes() -> bytes:
    n = random.randint(0, 40)
    return bytes(random.choice(TAG_ALPHABET) if random.random() < 0.6 else random.getrandbits(8)
                 for _ in range(n))

# --- oracle ---

def check(label: str, raw: bytes, shape: Any, i: int) -> None:
    try:
        from_bytes(raw, shape)
    except DecodeError:
        pass
    except Exception:
        crash(label, raw, {"round": i, "shape": type(shape).__name__})

def check_validate(label: str, raw: bytes, i: int) -> None:
    try:
        validate(raw)
        ok_validate = True
    except DecodeError:
        ok_validate = False
    except Exception:
        crash(label + " validate", raw, {"round": i})
    try:
        from_bytes(raw, AnyValue())
        ok_any = True
    except DecodeError as e:
        # AnyValue can refuse a structurally valid map whose key is unhashable.
        ok_any = e.code == ERR_INVALID_TYPE and ok_validate
    except Exception:
        crash(label + " any", raw, {"round": i})
    if ok_validate != ok_any:
        print("MISMATCH:", label, "validate =", ok_validate, "any =", ok_any)
        print("INPUT:", raw.hex())
        raise SystemExit(1)

def main() -> int:
    for i in range(ROUNDS):
        r = random.random()

        # A) mutated valid encodings
        if r < 0.45:
            raw = mutate(to_bytes(rand_value()))
            check_validate("A mutated", raw, i)
            check("A mutated", raw, random.choice(SHAPES), i)
            continue

        # B) random bytes
        if r < 0.75:
            raw = rand_bytes()
            check_validate("B random", raw, i)
            check("B random", raw, random.choice(SHAPES), i)
            continue

        # C) valid encodings against unrelated shapes
        raw = to_bytes(rand_value())
        check("C shape", raw, random.choice(SHAPES), i)

    print(f"OK: fuzz rounds={ROUNDS} seed={SEED} (no crashes)")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
