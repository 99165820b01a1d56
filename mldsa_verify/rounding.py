#!/usr/bin/env python3
"""
rounding.py - Decompose / HighBits / UseHint (FIPS 204 Algorithms 36-40)

Scalar versions mirror the standard line by line; the *_poly versions are
numpy-vectorized over 256 coefficients and must agree with them exactly.
"""
from typing import Tuple

import numpy as np

from .params import DILITHIUM_D, DILITHIUM_Q

Q = DILITHIUM_Q


def power2round(r: int, d: int = DILITHIUM_D) -> Tuple[int, int]:
    """r = r1*2^d + r0 with r0 in (-2^(d-1), 2^(d-1)]"""
    r = r % Q
    r0 = r % (1 << d)
    if r0 > 1 << (d - 1):
        r0 -= 1 << d
    return (r - r0) >> d, r0


def decompose(r: int, gamma2: int) -> Tuple[int, int]:
    """
    High/low decomposition r = r1*(2*gamma2) + r0, |r0| <= gamma2.

    When r - r0 == q - 1 the high part wraps to 0 and r0 is decremented.
    """
    r = r % Q
    alpha = 2 * gamma2
    r0 = r % alpha
    if r0 > gamma2:
        r0 -= alpha
    if r - r0 == Q - 1:
        return 0, r0 - 1
    return (r - r0) // alpha, r0


def high_bits(r: int, gamma2: int) -> int:
    return decompose(r, gamma2)[0]


def low_bits(r: int, gamma2: int) -> int:
    return decompose(r, gamma2)[1]


def make_hint(z: int, r: int, gamma2: int) -> int:
    return int(high_bits(r, gamma2) != high_bits(r + z, gamma2))


def use_hint(h: int, r: int, gamma2: int) -> int:
    m = (Q - 1) // (2 * gamma2)
    r1, r0 = decompose(r, gamma2)
    if h == 1 and r0 > 0:
        return (r1 + 1) % m
    if h == 1 and r0 <= 0:
        return (r1 - 1) % m
    return r1


# =============================
# VECTORIZED
# =============================
def decompose_poly(r: np.ndarray, gamma2: int) -> Tuple[np.ndarray, np.ndarray]:
    r = np.asarray(r, dtype=np.int64) % Q
    alpha = 2 * gamma2
    r0 = r % alpha
    r0 = np.where(r0 > gamma2, r0 - alpha, r0)
    wrap = (r - r0) == Q - 1
    r1 = np.where(wrap, 0, (r - r0) // alpha)
    r0 = np.where(wrap, r0 - 1, r0)
    return r1, r0


def use_hint_poly(h: np.ndarray, r: np.ndarray, gamma2: int) -> np.ndarray:
    """Apply one row of hint bits to the coefficients of w'."""
    m = (Q - 1) // (2 * gamma2)
    r1, r0 = decompose_poly(r, gamma2)
    adjusted = np.where(r0 > 0, (r1 + 1) % m, (r1 - 1) % m)
    return np.where(np.asarray(h) == 1, adjusted, r1)
