#!/usr/bin/env python3
"""
packing.py - Bit-packed encodings used by ML-DSA verification

- BitReader / BitWriter: little-endian, LSB-first bitstreams with an
  integer bit cursor
- unpack_hint: sparse hint decoding with strict structural validation
- unpack_response: masked response vector z, with the norm bound check
  fused into the decoding pass
- unpack_t1 / pack_w1: public key high bits and commitment high bits
"""
import logging
from typing import List, Tuple

import numpy as np

from .params import DILITHIUM_N, DILITHIUM_Q, T1_BITS, ParameterSet, coeff_bits_for_gamma1

logger = logging.getLogger(__name__)


# =============================
# BITSTREAMS
# =============================
class BitReader:
    """Read fixed-width unsigned fields from a byte string, lowest bit first."""

    def __init__(self, data: bytes):
        self._value = int.from_bytes(data, "little")
        self._size = 8 * len(data)
        self.offset = 0

    def read(self, bits: int) -> int:
        if self.offset + bits > self._size:
            raise ValueError(f"read of {bits} bits at offset {self.offset} overruns {self._size}-bit stream")
        v = (self._value >> self.offset) & ((1 << bits) - 1)
        self.offset += bits
        return v

    def remaining(self) -> int:
        return self._size - self.offset


class BitWriter:
    """Append fixed-width unsigned fields, lowest bit first."""

    def __init__(self):
        self._value = 0
        self.offset = 0

    def write(self, value: int, bits: int) -> None:
        if value < 0 or value >> bits:
            raise ValueError(f"value {value} does not fit in {bits} bits")
        self._value |= value << self.offset
        self.offset += bits

    def getvalue(self) -> bytes:
        return self._value.to_bytes((self.offset + 7) // 8, "little")


def bit_pack(coeffs, bits: int) -> bytes:
    w = BitWriter()
    for c in coeffs:
        w.write(int(c), bits)
    return w.getvalue()


def bit_unpack(data: bytes, count: int, bits: int) -> List[int]:
    r = BitReader(data)
    return [r.read(bits) for _ in range(count)]


# =============================
# HINT
# =============================
def unpack_hint(data: bytes, params: ParameterSet) -> Tuple[bool, np.ndarray, int]:
    """
    Decode the sparse hint encoding (omega index slots + k row boundaries).

    Returns (ok, hint, popcount). hint is a k x 256 uint8 matrix. A
    structural violation returns ok=False; it never raises, since a
    garbled hint only means the signature is invalid.
    """
    k, omega = params.k, params.omega
    hint = np.zeros((k, DILITHIUM_N), dtype=np.uint8)
    if len(data) != omega + k:
        logger.debug("hint: length %d != %d", len(data), omega + k)
        return False, hint, 0

    cursor = 0
    for i in range(k):
        boundary = data[omega + i]
        if boundary < cursor or boundary > omega:
            logger.debug("hint: row %d boundary %d out of order (cursor %d)", i, boundary, cursor)
            return False, hint, 0
        for j in range(cursor, boundary):
            index = data[j]
            if j > cursor and index <= data[j - 1]:
                logger.debug("hint: row %d indices not strictly increasing at slot %d", i, j)
                return False, hint, 0
            if index >= DILITHIUM_N:
                logger.debug("hint: row %d index %d out of range", i, index)
                return False, hint, 0
            hint[i, index] = 1
        cursor = boundary

    for j in range(cursor, omega):
        if data[j] != 0:
            logger.debug("hint: non-zero trailing slot %d", j)
            return False, hint, 0

    return True, hint, int(hint.sum())


def pack_hint(hint: np.ndarray, params: ParameterSet) -> bytes:
    """Inverse of unpack_hint. Raises ValueError if more than omega bits are set."""
    k, omega = params.k, params.omega
    out = bytearray(omega + k)
    idx = 0
    for i in range(k):
        for j in np.flatnonzero(hint[i]):
            if idx >= omega:
                raise ValueError(f"hint has more than omega={omega} set bits")
            out[idx] = int(j)
            idx += 1
        out[omega + i] = idx
    return bytes(out)


# =============================
# RESPONSE VECTOR z
# =============================
def unpack_response(data: bytes, params: ParameterSet) -> Tuple[np.ndarray, bool]:
    """
    Decode l polynomials of z and check the infinity-norm bound in one pass.

    Each packed field holds gamma1 - z_i. Returns (z, valid) where z is an
    l x 256 int64 array of canonical residues. valid is False as soon as a
    coefficient's centered magnitude exceeds gamma1 - beta; decoding stops
    there.

    Raises:
        ConfigurationError: gamma1 is neither 2^17 nor 2^19
    """
    gamma1 = params.gamma1
    bits = coeff_bits_for_gamma1(gamma1)
    bound = gamma1 - params.beta
    q = DILITHIUM_Q
    z = np.zeros((params.l, DILITHIUM_N), dtype=np.int64)
    if len(data) != params.l * DILITHIUM_N * bits // 8:
        logger.debug("response: length %d does not match l=%d", len(data), params.l)
        return z, False

    reader = BitReader(data)
    for i in range(params.l):
        row = z[i]
        for j in range(DILITHIUM_N):
            altered = reader.read(bits)
            if altered <= gamma1:
                coeff = gamma1 - altered
                magnitude = coeff
            else:
                coeff = q + gamma1 - altered
                magnitude = altered - gamma1
            if magnitude > bound:
                logger.debug("response: |z[%d][%d]| = %d exceeds %d", i, j, magnitude, bound)
                return z, False
            row[j] = coeff
    return z, True


def pack_response(z: np.ndarray, params: ParameterSet) -> bytes:
    """Inverse of unpack_response for coefficients within (-gamma1, gamma1]."""
    bits = coeff_bits_for_gamma1(params.gamma1)
    w = BitWriter()
    for row in z:
        for c in row:
            w.write((params.gamma1 - int(c)) % DILITHIUM_Q, bits)
    return w.getvalue()


# =============================
# t1 / w1
# =============================
def unpack_t1(data: bytes, k: int) -> np.ndarray:
    """k polynomials of 10-bit t1 coefficients (SimpleBitUnpack)."""
    if len(data) != k * DILITHIUM_N * T1_BITS // 8:
        raise ValueError("t1 encoding has the wrong length")
    return np.array(bit_unpack(data, k * DILITHIUM_N, T1_BITS), dtype=np.int64).reshape(k, DILITHIUM_N)


def pack_t1(t1: np.ndarray) -> bytes:
    return bit_pack(np.asarray(t1).ravel(), T1_BITS)


def pack_w1(w1: np.ndarray, params: ParameterSet) -> bytes:
    """Pack the k reconstructed high-bit polynomials (6 or 4 bits each)."""
    return bit_pack(np.asarray(w1).ravel(), params.w1_bits)
