#!/usr/bin/env python3
"""
test_packing.py - Signature decoder: hint and response unpacking
"""
from dataclasses import replace

import numpy as np
import pytest

from mldsa_verify.errors import ConfigurationError
from mldsa_verify.packing import (
    BitReader, BitWriter, bit_pack, bit_unpack,
    pack_hint, pack_response, pack_w1, unpack_hint, unpack_response, unpack_t1, pack_t1,
)
from mldsa_verify.params import DILITHIUM_N, DILITHIUM_Q, ML_DSA_44, ML_DSA_65

P = ML_DSA_44  # k=4, omega=80


def _hint_bytes(rows, params=P):
    """rows: list of k index lists"""
    out = [0] * (params.omega + params.k)
    idx = 0
    for i, indices in enumerate(rows):
        for j in indices:
            out[idx] = j
            idx += 1
        out[params.omega + i] = idx
    return out


# =============================
# BITSTREAMS
# =============================
def test_bitstream_lsb_first():
    w = BitWriter()
    w.write(0b101, 3)
    w.write(0x1F, 5)
    w.write(0x3FF, 10)
    data = w.getvalue()
    assert data[0] == 0b11111101
    r = BitReader(data)
    assert (r.read(3), r.read(5), r.read(10)) == (0b101, 0x1F, 0x3FF)
    assert r.offset == 18
    with pytest.raises(ValueError):
        r.read(7)


def test_bit_writer_rejects_wide_values():
    with pytest.raises(ValueError):
        BitWriter().write(1 << 6, 6)
    with pytest.raises(ValueError):
        BitWriter().write(-1, 6)


def test_bit_pack_unpack_widths():
    for bits in (4, 6, 10, 18, 20):
        values = [(i * 2654435761) % (1 << bits) for i in range(DILITHIUM_N)]
        packed = bit_pack(values, bits)
        assert len(packed) == DILITHIUM_N * bits // 8
        assert bit_unpack(packed, DILITHIUM_N, bits) == values


def test_t1_round_trip():
    t1 = np.arange(P.k * DILITHIUM_N, dtype=np.int64).reshape(P.k, DILITHIUM_N) % 1024
    data = pack_t1(t1)
    assert len(data) == P.public_key_bytes - 32
    assert np.array_equal(unpack_t1(data, P.k), t1)


def test_pack_w1_widths():
    w1 = np.full((ML_DSA_44.k, DILITHIUM_N), 43, dtype=np.int64)
    assert len(pack_w1(w1, ML_DSA_44)) == ML_DSA_44.k * DILITHIUM_N * 6 // 8
    w1 = np.full((ML_DSA_65.k, DILITHIUM_N), 15, dtype=np.int64)
    assert len(pack_w1(w1, ML_DSA_65)) == ML_DSA_65.k * DILITHIUM_N * 4 // 8


# =============================
# HINT
# =============================
def test_unpack_hint_valid():
    data = bytes(_hint_bytes([[0, 5, 255], [], [7], [1, 2]]))
    ok, hint, popcount = unpack_hint(data, P)
    assert ok
    assert popcount == 6
    assert hint[0].nonzero()[0].tolist() == [0, 5, 255]
    assert not hint[1].any()
    assert hint[2].nonzero()[0].tolist() == [7]
    assert hint[3].nonzero()[0].tolist() == [1, 2]


def test_unpack_hint_all_zero():
    ok, hint, popcount = unpack_hint(bytes(P.omega + P.k), P)
    assert ok and popcount == 0 and not hint.any()


def test_pack_hint_round_trip():
    data = bytes(_hint_bytes([[3, 9], [0], [], [200, 201, 202]]))
    ok, hint, _ = unpack_hint(data, P)
    assert ok
    assert pack_hint(hint, P) == data


def test_hint_rejects_equal_adjacent_indices():
    data = bytes(_hint_bytes([[4, 4], [], [], []]))
    ok, _, _ = unpack_hint(data, P)
    assert not ok


def test_hint_rejects_decreasing_indices():
    data = bytes(_hint_bytes([[9, 4], [], [], []]))
    assert not unpack_hint(data, P)[0]


def test_hint_increase_restarts_each_row():
    """A smaller index at the start of a new row is fine"""
    data = bytes(_hint_bytes([[200], [3], [], []]))
    assert unpack_hint(data, P)[0]


def test_hint_rejects_index_out_of_range():
    data = _hint_bytes([[1, 256], [], [], []])
    ok, _, _ = unpack_hint(data, P)
    assert not ok


def test_hint_rejects_popcount_over_omega():
    data = [0] * (P.omega + P.k)
    data[: P.omega] = range(P.omega)
    data[P.omega:] = [P.omega, P.omega, P.omega, P.omega + 1]
    ok, _, _ = unpack_hint(bytes(data), P)
    assert not ok


def test_hint_rejects_decreasing_boundaries():
    data = _hint_bytes([[1, 2], [3], [], []])
    data[P.omega + 1] = 1  # row 1 ends before row 0
    assert not unpack_hint(bytes(data), P)[0]


def test_hint_rejects_nonzero_trailing_slot():
    data = _hint_bytes([[1], [], [], []])
    data[P.omega - 1] = 9
    assert not unpack_hint(bytes(data), P)[0]


def test_hint_rejects_wrong_length():
    assert not unpack_hint(bytes(P.omega + P.k - 1), P)[0]


def test_pack_hint_over_budget():
    hint = np.zeros((P.k, DILITHIUM_N), dtype=np.uint8)
    hint[0, : P.omega + 1] = 1
    with pytest.raises(ValueError):
        pack_hint(hint, P)


# =============================
# RESPONSE
# =============================
def _z_with(value, params=P, pos=(0, 0)):
    z = np.zeros((params.l, DILITHIUM_N), dtype=np.int64)
    z[pos] = value
    return z


def test_response_round_trip_canonical():
    z = np.zeros((P.l, DILITHIUM_N), dtype=np.int64)
    z[0, :4] = [1, -1, 1000, -1000]
    decoded, valid = unpack_response(pack_response(z, P), P)
    assert valid
    assert decoded[0, :4].tolist() == [1, DILITHIUM_Q - 1, 1000, DILITHIUM_Q - 1000]
    assert not decoded[1:].any()


def test_response_bound_is_inclusive():
    for params in (ML_DSA_44, ML_DSA_65):
        bound = params.gamma1 - params.beta
        for value in (bound, -bound):
            _, valid = unpack_response(pack_response(_z_with(value, params), params), params)
            assert valid, (params.name, value)
        for value in (bound + 1, -(bound + 1)):
            _, valid = unpack_response(pack_response(_z_with(value, params, (params.l - 1, 255)), params), params)
            assert not valid, (params.name, value)


def test_response_extreme_encodings():
    """altered = 0 is +gamma1, altered = 2^bits - 1 is far below -gamma1; both fail"""
    bits = P.z_bits
    data = bytearray(P.l * DILITHIUM_N * bits // 8)
    assert unpack_response(bytes(data), P)[1] is False
    data = bytearray(b"\xff" * len(data))
    assert unpack_response(bytes(data), P)[1] is False


def test_response_wrong_length():
    assert unpack_response(bytes(10), P)[1] is False


def test_response_unsupported_gamma1():
    bad = replace(P, gamma1=1 << 18)
    with pytest.raises(ConfigurationError):
        unpack_response(bytes(P.l * P.z_poly_bytes), bad)
