#!/usr/bin/env python3
"""
test_ring.py - Ring Engine algebra, domain checks and boundary validation
"""
import numpy as np
import pytest

from mldsa_verify.errors import RingEngineError
from mldsa_verify.params import DILITHIUM_N, DILITHIUM_Q
from mldsa_verify.ring import Poly, RingEngine, SoftwareBackend


def _random_poly(rng, in_ntt=True):
    return Poly(rng.integers(0, DILITHIUM_Q, size=DILITHIUM_N, dtype=np.int64), in_ntt=in_ntt)


def test_pointwise_commutative():
    rng = np.random.default_rng(1)
    engine = RingEngine()
    for _ in range(50):
        a, b = _random_poly(rng), _random_poly(rng)
        assert engine.pointwise_mul(a, b) == engine.pointwise_mul(b, a)
        assert engine.pointwise_add(a, b) == engine.pointwise_add(b, a)


def test_pointwise_mul_distributes_over_add():
    rng = np.random.default_rng(2)
    engine = RingEngine()
    for _ in range(50):
        a, b, c = _random_poly(rng), _random_poly(rng), _random_poly(rng)
        left = engine.pointwise_mul(a, engine.pointwise_add(b, c))
        right = engine.pointwise_add(engine.pointwise_mul(a, b), engine.pointwise_mul(a, c))
        assert left == right


def test_sub_inverts_add():
    rng = np.random.default_rng(3)
    engine = RingEngine()
    a, b = _random_poly(rng, in_ntt=False), _random_poly(rng, in_ntt=False)
    assert engine.pointwise_sub(engine.pointwise_add(a, b), b) == a


def test_ntt_is_linear():
    rng = np.random.default_rng(4)
    engine = RingEngine()
    a, b = _random_poly(rng, in_ntt=False), _random_poly(rng, in_ntt=False)
    lhs = engine.forward_ntt(engine.pointwise_add(a, b))
    rhs = engine.pointwise_add(engine.forward_ntt(a), engine.forward_ntt(b))
    assert lhs == rhs


def test_outputs_are_canonical():
    engine = RingEngine()
    top = Poly(np.full(DILITHIUM_N, DILITHIUM_Q - 1, dtype=np.int64))
    one = Poly(np.ones(DILITHIUM_N, dtype=np.int64))
    assert not engine.pointwise_add(top, one).coeffs.any()
    assert (engine.pointwise_sub(Poly.zeros(), one).coeffs == DILITHIUM_Q - 1).all()
    assert (engine.pointwise_mul(top, top).coeffs == 1).all()


def test_domain_mismatch_rejected():
    engine = RingEngine()
    with pytest.raises(ValueError):
        engine.pointwise_add(Poly.zeros(in_ntt=True), Poly.zeros(in_ntt=False))
    with pytest.raises(ValueError):
        engine.forward_ntt(Poly.zeros(in_ntt=True))
    with pytest.raises(ValueError):
        engine.inverse_ntt(Poly.zeros(in_ntt=False))


def test_poly_reduces_and_validates_length():
    p = Poly([-1, DILITHIUM_Q, DILITHIUM_Q + 5] + [0] * (DILITHIUM_N - 3))
    assert p.coeffs[:3].tolist() == [DILITHIUM_Q - 1, 0, 5]
    assert p.get_centered_coeffs()[0] == -1
    assert p.infinity_norm() == 5
    with pytest.raises(ValueError):
        Poly([0] * 10)


class _ShortBackend(SoftwareBackend):
    name = "short"

    def ntt(self, a):
        return super().ntt(a)[:-1]


class _OutOfRangeBackend(SoftwareBackend):
    name = "out-of-range"

    def vec_mul(self, a, b):
        out = super().vec_mul(a, b)
        out[0] = DILITHIUM_Q
        return out


def test_malformed_backend_output_is_fatal():
    with pytest.raises(RingEngineError):
        RingEngine(_ShortBackend()).forward_ntt(Poly.zeros())
    with pytest.raises(RingEngineError):
        RingEngine(_OutOfRangeBackend()).pointwise_mul(Poly.zeros(True), Poly.zeros(True))


def test_matvec_mul():
    rng = np.random.default_rng(5)
    engine = RingEngine()
    A = [[_random_poly(rng) for _ in range(3)] for _ in range(2)]
    v = [_random_poly(rng) for _ in range(3)]
    out = engine.matvec_mul(A, v)
    assert len(out) == 2
    for row, result in zip(A, out):
        expected = np.zeros(DILITHIUM_N, dtype=np.int64)
        for a, b in zip(row, v):
            expected = (expected + a.coeffs * b.coeffs) % DILITHIUM_Q
        assert np.array_equal(result.coeffs, expected)
        assert result.in_ntt
    with pytest.raises(ValueError):
        engine.matvec_mul(A, v[:2])
