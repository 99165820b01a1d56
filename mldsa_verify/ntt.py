#!/usr/bin/env python3
"""
ntt.py - Negacyclic NTT kernels for R_q = Z_q[X]/(X^256+1)

Compiled with numba; every kernel takes and returns int64 numpy arrays of
length 256 holding canonical residues in [0, q).

The transform follows FIPS 204 Algorithms 41/42: Cooley-Tukey forward
butterflies with bit-reversed powers of the 512th root of unity, and
Gentleman-Sande inverse butterflies finished by a scaling with 256^-1.
"""
import numpy as np
from numba import jit

from .params import DILITHIUM_Q, DILITHIUM_N

# =============================
# NTT CONSTANTS
# =============================
NTT_ROOT = 1753  # primitive 512th root of unity mod q: 1753^256 == -1
N_INV = pow(DILITHIUM_N, -1, DILITHIUM_Q)

Q = DILITHIUM_Q
N = DILITHIUM_N


def _bitrev8(n: int) -> int:
    r = 0
    for _ in range(8):
        r = (r << 1) | (n & 1)
        n >>= 1
    return r


# zetas[i] = root^bitrev8(i); index 0 is never read by the butterflies
ZETAS = np.array([pow(NTT_ROOT, _bitrev8(i), Q) for i in range(N)], dtype=np.int64)


# =============================
# KERNELS
# =============================
@jit(nopython=True, cache=True)
def ntt_forward(a: np.ndarray) -> np.ndarray:
    """Standard domain -> NTT domain, O(N log N)."""
    w = a.copy()
    m = 0
    length = 128
    while length >= 1:
        start = 0
        while start < N:
            m += 1
            z = ZETAS[m]
            for j in range(start, start + length):
                t = (z * w[j + length]) % Q
                w[j + length] = (w[j] - t + Q) % Q
                w[j] = (w[j] + t) % Q
            start += 2 * length
        length //= 2
    return w


@jit(nopython=True, cache=True)
def ntt_inverse(a: np.ndarray) -> np.ndarray:
    """NTT domain -> standard domain, O(N log N)."""
    w = a.copy()
    m = N
    length = 1
    while length < N:
        start = 0
        while start < N:
            m -= 1
            z = Q - ZETAS[m]
            for j in range(start, start + length):
                t = w[j]
                w[j] = (t + w[j + length]) % Q
                w[j + length] = (z * ((t - w[j + length] + Q) % Q)) % Q
            start += 2 * length
        length *= 2
    for j in range(N):
        w[j] = (w[j] * N_INV) % Q
    return w


@jit(nopython=True, cache=True)
def pointwise_mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    result = np.zeros(N, dtype=np.int64)
    for i in range(N):
        result[i] = (a[i] * b[i]) % Q
    return result


@jit(nopython=True, cache=True)
def pointwise_add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    result = np.zeros(N, dtype=np.int64)
    for i in range(N):
        result[i] = (a[i] + b[i]) % Q
    return result


@jit(nopython=True, cache=True)
def pointwise_sub(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    result = np.zeros(N, dtype=np.int64)
    for i in range(N):
        result[i] = (a[i] - b[i] + Q) % Q
    return result


def negacyclic_mul_naive(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Schoolbook product in Z_q[X]/(X^N+1), O(N^2). Reference for tests."""
    result = [0] * N
    for i in range(N):
        ai = int(a[i])
        if ai == 0:
            continue
        for j in range(N):
            k = i + j
            if k < N:
                result[k] += ai * int(b[j])
            else:
                result[k - N] -= ai * int(b[j])
    return np.array([c % Q for c in result], dtype=np.int64)
