from __future__ import annotations

"""Randomness helpers: string-seeded PRNG, shuffling and practice seeds.

The weekly challenge depends on every client producing the same order from
the same seed string, so the hash and the generator are fixed bit-for-bit:

- hash: 32-bit FNV-1a over UTF-16 code units.
- prng: LCG with multiplier 1664525, increment 1013904223, modulo 2**32.
"""

import os
import random
from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")

_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619
_LCG_A = 1664525
_LCG_C = 1013904223
_MASK32 = 0xFFFFFFFF
_TWO_32 = float(0x100000000)


def _utf16_units(text: str) -> List[int]:
    raw = text.encode("utf-16-le")
    return [raw[i] | (raw[i + 1] << 8) for i in range(0, len(raw), 2)]


def hash_seed(seed: str) -> int:
    """Fold a seed string into an unsigned 32-bit integer."""
    h = _FNV_OFFSET
    for unit in _utf16_units(seed):
        h ^= unit
        h = (h * _FNV_PRIME) & _MASK32
    return h


def prng(seed: int) -> Callable[[], float]:
    """Return a generator of floats in [0, 1) seeded with a uint32."""
    state = int(seed) & _MASK32

    def rnd() -> float:
        nonlocal state
        state = (state * _LCG_A + _LCG_C) & _MASK32
        return state / _TWO_32

    return rnd


def seeded_shuffle(items: Sequence[T], seed: str) -> List[T]:
    """Fisher-Yates shuffle driven by `seed`; returns a new list."""
    rnd = prng(hash_seed(seed))
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = int(rnd() * (i + 1))
        out[i], out[j] = out[j], out[i]
    return out


def make_practice_seed() -> str:
    """Fresh, non-reproducible seed for a practice round."""
    return f"NORMAL-{random.getrandbits(32)}"


def seed_if_needed() -> None:
    """Seed the global RNG if SEED env var is set."""
    seed = os.environ.get("SEED")
    if seed is not None:
        try:
            s = int(seed)
        except ValueError:
            return
        random.seed(s)
