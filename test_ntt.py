#!/usr/bin/env python3
"""
Test NTT implementation correctness
"""
import numpy as np

from mldsa_verify.ntt import negacyclic_mul_naive, ntt_forward, ntt_inverse, ZETAS, N_INV
from mldsa_verify.params import DILITHIUM_N, DILITHIUM_Q
from mldsa_verify.ring import Poly, RingEngine


def _random_coeffs(rng, count=DILITHIUM_N):
    return rng.integers(0, DILITHIUM_Q, size=count, dtype=np.int64)


def test_constants():
    """1753 is a primitive 512th root of unity and N_INV inverts 256"""
    assert pow(1753, 256, DILITHIUM_Q) == DILITHIUM_Q - 1
    assert (DILITHIUM_N * N_INV) % DILITHIUM_Q == 1
    assert ZETAS[1] == 4808194  # first zeta of the FIPS 204 table


def test_ntt_round_trip_random():
    """inverse(forward(p)) == p for 1,000 random polynomials"""
    rng = np.random.default_rng(2024)
    for _ in range(1000):
        a = _random_coeffs(rng)
        assert np.array_equal(ntt_inverse(ntt_forward(a)), a)


def test_ntt_round_trip_extremes():
    for value in (0, 1, DILITHIUM_Q - 1):
        a = np.full(DILITHIUM_N, value, dtype=np.int64)
        assert np.array_equal(ntt_inverse(ntt_forward(a)), a)


def test_ntt_does_not_mutate_input():
    a = np.arange(DILITHIUM_N, dtype=np.int64)
    before = a.copy()
    ntt_forward(a)
    ntt_inverse(a)
    assert np.array_equal(a, before)


def test_ntt_multiplication():
    """NTT multiplication matches the schoolbook negacyclic product"""
    engine = RingEngine()
    a = Poly([1, 2, 3] + [0] * (DILITHIUM_N - 3))
    b = Poly([4, 5] + [0] * (DILITHIUM_N - 2))

    prod = engine.inverse_ntt(engine.pointwise_mul(engine.forward_ntt(a), engine.forward_ntt(b)))

    assert prod.coeffs[:4].tolist() == [4, 13, 22, 15]
    assert np.array_equal(prod.coeffs, negacyclic_mul_naive(a.coeffs, b.coeffs))


def test_ntt_multiplication_wraps_negacyclic():
    """X^255 * X = X^256 = -1 in R_q"""
    engine = RingEngine()
    x255 = Poly([0] * 255 + [1])
    x = Poly([0, 1] + [0] * 254)
    prod = engine.inverse_ntt(engine.pointwise_mul(engine.forward_ntt(x255), engine.forward_ntt(x)))
    assert prod.coeffs[0] == DILITHIUM_Q - 1
    assert not prod.coeffs[1:].any()


def test_ntt_multiplication_random():
    rng = np.random.default_rng(7)
    engine = RingEngine()
    for _ in range(5):
        a = Poly(_random_coeffs(rng))
        b = Poly(_random_coeffs(rng))
        prod = engine.inverse_ntt(engine.pointwise_mul(engine.forward_ntt(a), engine.forward_ntt(b)))
        assert np.array_equal(prod.coeffs, negacyclic_mul_naive(a.coeffs, b.coeffs))


def test_domain_tracking():
    """Domain is carried by the value, not inferred"""
    engine = RingEngine()
    p = Poly([1, 2, 3] + [0] * (DILITHIUM_N - 3))
    assert not p.in_ntt

    p_ntt = engine.forward_ntt(p)
    assert p_ntt.in_ntt

    p_back = engine.inverse_ntt(p_ntt)
    assert not p_back.in_ntt
    assert p_back == p
