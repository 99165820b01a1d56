#!/usr/bin/env python3
"""
challenge.py - SampleInBall (FIPS 204 Algorithm 29)

Expands the commitment seed c~ into a challenge polynomial with exactly
tau coefficients equal to +-1 (stored as 1 or q-1) and all others zero.
"""
import hashlib

import numpy as np

from .params import DILITHIUM_N, DILITHIUM_Q
from .ring import Poly

SIGN_BYTES = 8


class XofStream:
    """
    Squeeze a SHAKE sponge on demand.

    hashlib only exposes one-shot digest(n); since SHAKE output for n bytes
    is a prefix of the output for any m > n, the buffer is regrown by
    doubling and the read position is kept.
    """

    def __init__(self, xof, initial: int = 136):
        self._xof = xof
        self._buf = xof.digest(initial)
        self._pos = 0

    def read(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._buf):
            self._buf = self._xof.digest(max(2 * len(self._buf), end))
        out = self._buf[self._pos:end]
        self._pos = end
        return out

    def read_byte(self) -> int:
        return self.read(1)[0]


def sample_in_ball(seed: bytes, tau: int) -> Poly:
    """
    Sample challenge c from seed (the full c~ of the signature).

    Args:
        seed: commitment seed c~
        tau: number of non-zero coefficients

    Returns:
        Poly in the standard domain
    """
    if not 0 < tau <= SIGN_BYTES * 8:
        raise ValueError(f"tau must be in [1, {SIGN_BYTES * 8}], got {tau}")
    stream = XofStream(hashlib.shake_256(seed))
    signs = int.from_bytes(stream.read(SIGN_BYTES), "little")

    c = np.zeros(DILITHIUM_N, dtype=np.int64)
    for i in range(DILITHIUM_N - tau, DILITHIUM_N):
        j = stream.read_byte()
        while j > i:
            j = stream.read_byte()
        c[i] = c[j]
        c[j] = DILITHIUM_Q - 1 if signs & 1 else 1
        signs >>= 1
    return Poly(c, in_ntt=False)
