#!/usr/bin/env python3
"""
reference_signer.py - Deterministic FIPS 204 key generation and signing

Test-only helper: produces (public key, signature) vectors for the
verification tests without depending on liboqs. Not constant time and
not part of the installed package.
"""
import hashlib
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from mldsa_verify.challenge import sample_in_ball
from mldsa_verify.keys import PublicKey
from mldsa_verify.matrix import ShakeExpander
from mldsa_verify.packing import BitReader, pack_hint, pack_response, pack_t1, pack_w1
from mldsa_verify.params import DILITHIUM_N, DILITHIUM_Q, ParameterSet
from mldsa_verify.ring import Poly, RingEngine
from mldsa_verify.rounding import decompose_poly, power2round
from mldsa_verify.verify import format_message, format_prehashed_message

Q = DILITHIUM_Q
N = DILITHIUM_N


def _h(data: bytes, n: int) -> bytes:
    return hashlib.shake_256(data).digest(n)


def _rej_bounded_poly(seed: bytes, eta: int) -> Poly:
    """RejBoundedPoly (FIPS 204 Algorithm 31)."""
    buf = hashlib.shake_256(seed).digest(1024)
    coeffs = []
    pos = 0
    while len(coeffs) < N:
        b = buf[pos]
        pos += 1
        for z in (b & 0x0F, b >> 4):
            if len(coeffs) == N:
                break
            if eta == 2 and z < 15:
                coeffs.append(2 - (z % 5))
            elif eta == 4 and z < 9:
                coeffs.append(4 - z)
    return Poly(coeffs)


def _expand_mask(rho2: bytes, kappa: int, params: ParameterSet) -> List[Poly]:
    """ExpandMask (FIPS 204 Algorithm 34)."""
    bits = params.z_bits
    y = []
    for r in range(params.l):
        v = _h(rho2 + (kappa + r).to_bytes(2, "little"), 32 * bits)
        reader = BitReader(v)
        y.append(Poly([params.gamma1 - reader.read(bits) for _ in range(N)]))
    return y


def _centered(p: Poly) -> np.ndarray:
    c = p.coeffs
    return np.where(c > (Q - 1) // 2, c - Q, c)


def _inf_norm(v: List[Poly]) -> int:
    return max(p.infinity_norm() for p in v)


@dataclass
class SecretKey:
    params: ParameterSet
    rho: bytes
    key: bytes
    tr: bytes
    s1: List[Poly]
    s2: List[Poly]
    t0: List[Poly]


def keygen(xi: bytes, params: ParameterSet, engine: RingEngine = None) -> Tuple[bytes, SecretKey]:
    """ML-DSA.KeyGen_internal (FIPS 204 Algorithm 6)."""
    engine = engine or RingEngine()
    seed = _h(xi + bytes([params.k, params.l]), 128)
    rho, rho1, key = seed[:32], seed[32:96], seed[96:]
    A = ShakeExpander().expand(rho, params)
    s1 = [_rej_bounded_poly(rho1 + r.to_bytes(2, "little"), params.eta) for r in range(params.l)]
    s2 = [_rej_bounded_poly(rho1 + (params.l + r).to_bytes(2, "little"), params.eta) for r in range(params.k)]

    As1 = engine.matvec_mul(A, engine.vec_forward_ntt(s1))
    t = [engine.pointwise_add(engine.inverse_ntt(a), e) for a, e in zip(As1, s2)]

    t1_rows, t0 = [], []
    for p in t:
        pairs = [power2round(int(c), params.d) for c in p.coeffs]
        t1_rows.append([r1 for r1, _ in pairs])
        t0.append(Poly([r0 for _, r0 in pairs]))
    pk = rho + pack_t1(np.array(t1_rows, dtype=np.int64))
    tr = _h(pk, 64)
    return pk, SecretKey(params, rho, key, tr, s1, s2, t0)


def sign_internal(sk: SecretKey, m_prime: bytes, rnd: bytes = bytes(32),
                  engine: RingEngine = None) -> bytes:
    """ML-DSA.Sign_internal (FIPS 204 Algorithm 7), deterministic when rnd is zero."""
    engine = engine or RingEngine()
    params = sk.params
    gamma2 = params.gamma2
    A = ShakeExpander().expand(sk.rho, params)
    s1_hat = engine.vec_forward_ntt(sk.s1)
    s2_hat = engine.vec_forward_ntt(sk.s2)
    t0_hat = engine.vec_forward_ntt(sk.t0)
    mu = _h(sk.tr + m_prime, 64)
    rho2 = _h(sk.key + rnd + mu, 64)

    kappa = 0
    while True:
        y = _expand_mask(rho2, kappa, params)
        kappa += params.l
        w = engine.vec_inverse_ntt(engine.matvec_mul(A, engine.vec_forward_ntt(y)))
        w1 = np.array([decompose_poly(p.coeffs, gamma2)[0] for p in w])
        c_tilde = _h(mu + pack_w1(w1, params), params.c_tilde_bytes)
        c_hat = engine.forward_ntt(sample_in_ball(c_tilde, params.tau))

        cs1 = [engine.inverse_ntt(engine.pointwise_mul(c_hat, s)) for s in s1_hat]
        cs2 = [engine.inverse_ntt(engine.pointwise_mul(c_hat, s)) for s in s2_hat]
        z = [engine.pointwise_add(a, b) for a, b in zip(y, cs1)]
        w_minus = [engine.pointwise_sub(a, b) for a, b in zip(w, cs2)]
        r0 = [decompose_poly(p.coeffs, gamma2)[1] for p in w_minus]
        if _inf_norm(z) >= params.gamma1 - params.beta:
            continue
        if max(int(np.max(np.abs(r))) for r in r0) >= gamma2 - params.beta:
            continue

        ct0 = [engine.inverse_ntt(engine.pointwise_mul(c_hat, t)) for t in t0_hat]
        if _inf_norm(ct0) >= gamma2:
            continue
        # h = MakeHint(-ct0, w - cs2 + ct0)
        hint = np.zeros((params.k, N), dtype=np.uint8)
        for i in range(params.k):
            r = w_minus[i].coeffs
            v = (r + ct0[i].coeffs) % Q
            before = decompose_poly(v, gamma2)[0]
            after = decompose_poly(r, gamma2)[0]
            hint[i] = before != after
        if int(hint.sum()) > params.omega:
            continue

        z_centered = np.array([_centered(p) for p in z])
        return c_tilde + pack_response(z_centered, params) + pack_hint(hint, params)


def sign(sk: SecretKey, message: bytes, context: bytes = b"") -> bytes:
    return sign_internal(sk, format_message(message, context))


def sign_prehash(sk: SecretKey, message: bytes, context: bytes, hash_name: str) -> bytes:
    return sign_internal(sk, format_prehashed_message(message, context, hash_name))


def load_public_key(pk: bytes, params: ParameterSet) -> PublicKey:
    return PublicKey.from_bytes(pk, params)
