#!/usr/bin/env python3
"""
matrix.py - Providers for the public matrix A (k x l, NTT domain)

The verifier only consumes A; how it is obtained is injected:
- ShakeExpander: ExpandA(rho) per FIPS 204 Algorithm 32
- PrecomputedMatrix: a matrix expanded once and stored with the key
"""
import hashlib
from typing import List, Sequence

import numpy as np

from .params import DILITHIUM_N, DILITHIUM_Q, SEED_BYTES, ParameterSet
from .ring import Poly

Matrix = List[List[Poly]]


class MatrixExpander:
    """Interface: expand(rho, params) -> k x l matrix of NTT-domain polynomials."""

    def expand(self, rho: bytes, params: ParameterSet) -> Matrix:
        raise NotImplementedError


def rej_ntt_poly(seed34: bytes) -> Poly:
    """
    Uniform polynomial of T_q by rejection (FIPS 204 Algorithm 30).

    Each 3-byte group yields a 23-bit candidate (top bit of the third byte
    cleared); candidates >= q are rejected. The result is already in the
    NTT domain.
    """
    xof = hashlib.shake_128(seed34)
    need = 3 * DILITHIUM_N + 3 * 64
    buf = xof.digest(need)
    coeffs = np.zeros(DILITHIUM_N, dtype=np.int64)
    count = 0
    pos = 0
    while count < DILITHIUM_N:
        if pos + 3 > len(buf):
            need *= 2
            buf = xof.digest(need)
        t = buf[pos] | (buf[pos + 1] << 8) | ((buf[pos + 2] & 0x7F) << 16)
        pos += 3
        if t < DILITHIUM_Q:
            coeffs[count] = t
            count += 1
    return Poly(coeffs, in_ntt=True)


class ShakeExpander(MatrixExpander):
    """ExpandA: A[r][s] = RejNTTPoly(rho || s || r)."""

    def expand(self, rho: bytes, params: ParameterSet) -> Matrix:
        if len(rho) != SEED_BYTES:
            raise ValueError("rho must be 32 bytes")
        return [
            [rej_ntt_poly(rho + bytes([s, r])) for s in range(params.l)]
            for r in range(params.k)
        ]


class PrecomputedMatrix(MatrixExpander):
    """Returns a stored matrix; rho is ignored."""

    def __init__(self, matrix: Sequence[Sequence[Poly]]):
        for row in matrix:
            for p in row:
                if not p.in_ntt:
                    raise ValueError("precomputed matrix entries must be NTT-domain polynomials")
        self.matrix = [list(row) for row in matrix]

    def expand(self, rho: bytes, params: ParameterSet) -> Matrix:
        if len(self.matrix) != params.k or any(len(row) != params.l for row in self.matrix):
            raise ValueError(f"precomputed matrix is not {params.k}x{params.l}")
        return self.matrix
