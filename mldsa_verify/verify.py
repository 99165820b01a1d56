#!/usr/bin/env python3
"""
verify.py - ML-DSA verification orchestrator (FIPS 204 Algorithms 3, 5, 8)

Two stages, each a pure function of its inputs:

Stage 1 (decode & bound-check):
    unpack the hint and the response vector z; any structural failure or
    ||z||inf > gamma1 - beta rejects the signature.
Stage 2 (recompute & compare):
    c = SampleInBall(c~)
    w' = NTT^-1(A * NTT(z) - NTT(c) * NTT(t1 * 2^d))
    w1 = UseHint(h, w')
    c~' = H(H(tr || M', 64) || w1Encode(w1), |c~|), accept iff c~' == c~

Rejections are ordinary False results. Oversized context, bad public key
length and ring engine failures raise (see errors.py).
"""
import hashlib
import hmac
import logging
from typing import Callable, Dict, Optional, Tuple, Union

import numpy as np

from .challenge import sample_in_ball
from .errors import ConfigurationError, MalformedInputError
from .keys import DecodedSignature, PublicKey, Signature
from .matrix import MatrixExpander, ShakeExpander
from .packing import pack_w1, unpack_hint, unpack_response
from .params import ML_DSA_44, TR_BYTES, ParameterSet
from .ring import Poly, RingEngine
from .rounding import use_hint_poly

logger = logging.getLogger(__name__)

MAX_CONTEXT_BYTES = 255

# DER-encoded OIDs and digest functions for HashML-DSA
PREHASH_FUNCTIONS: Dict[str, Tuple[bytes, Callable[[bytes], bytes]]] = {
    "SHA-256": (bytes.fromhex("0609608648016503040201"), lambda m: hashlib.sha256(m).digest()),
    "SHA-384": (bytes.fromhex("0609608648016503040202"), lambda m: hashlib.sha384(m).digest()),
    "SHA-512": (bytes.fromhex("0609608648016503040203"), lambda m: hashlib.sha512(m).digest()),
    "SHA3-256": (bytes.fromhex("0609608648016503040208"), lambda m: hashlib.sha3_256(m).digest()),
    "SHA3-512": (bytes.fromhex("060960864801650304020A"), lambda m: hashlib.sha3_512(m).digest()),
    "SHAKE128": (bytes.fromhex("060960864801650304020B"), lambda m: hashlib.shake_128(m).digest(32)),
    "SHAKE256": (bytes.fromhex("060960864801650304020C"), lambda m: hashlib.shake_256(m).digest(64)),
}


def _check_context(context: bytes) -> None:
    if len(context) > MAX_CONTEXT_BYTES:
        raise MalformedInputError(f"context must be at most {MAX_CONTEXT_BYTES} bytes, got {len(context)}")


def format_message(message: bytes, context: bytes = b"") -> bytes:
    """M' = 0x00 || len(ctx) || ctx || M"""
    _check_context(context)
    return bytes([0, len(context)]) + context + message


def format_prehashed_message(message: bytes, context: bytes, hash_name: str) -> bytes:
    """M' = 0x01 || len(ctx) || ctx || OID || PH(M)"""
    _check_context(context)
    if not isinstance(hash_name, str):
        raise ConfigurationError(f"Pre-hash function name must be a string, got {hash_name!r}")
    try:
        oid, digest = PREHASH_FUNCTIONS[hash_name.upper()]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported pre-hash function: {hash_name} (choose from {', '.join(PREHASH_FUNCTIONS)})"
        ) from None
    return bytes([1, len(context)]) + context + oid + digest(message)


class Verifier:
    """
    ML-DSA verifier for one parameter set.

    Holds no per-call state: one instance may serve concurrent calls.

    Args:
        params: parameter set (default ML-DSA-44)
        engine: ring engine; defaults to the software backend
        expander: matrix provider used when the public key carries no matrix
    """

    def __init__(self, params: ParameterSet = ML_DSA_44,
                 engine: Optional[RingEngine] = None,
                 expander: Optional[MatrixExpander] = None):
        self.params = params
        self.engine = engine or RingEngine()
        self.expander = expander or ShakeExpander()

    # -------- public API --------
    def load_public_key(self, public_key: Union[bytes, PublicKey]) -> PublicKey:
        if isinstance(public_key, PublicKey):
            if public_key.params != self.params:
                raise MalformedInputError(
                    f"public key is for {public_key.params.name}, verifier is {self.params.name}"
                )
            return public_key
        return PublicKey.from_bytes(public_key, self.params, self.engine)

    def verify(self, public_key: Union[bytes, PublicKey], message: bytes,
               signature: bytes, context: bytes = b"") -> bool:
        """ML-DSA.Verify: True iff signature is valid for message under context."""
        m_prime = format_message(message, context)
        return self.verify_internal(public_key, m_prime, signature)

    def verify_prehash(self, public_key: Union[bytes, PublicKey], message: bytes,
                       signature: bytes, context: bytes = b"",
                       hash_name: str = "SHA-512") -> bool:
        """HashML-DSA.Verify over PH(message)."""
        m_prime = format_prehashed_message(message, context, hash_name)
        return self.verify_internal(public_key, m_prime, signature)

    def verify_internal(self, public_key: Union[bytes, PublicKey], m_prime: bytes,
                        signature: bytes) -> bool:
        pk = self.load_public_key(public_key)
        try:
            sig = Signature.from_bytes(signature, self.params)
        except ValueError as e:
            logger.debug("rejecting signature: %s", e)
            return False

        decoded = self.decode_signature(sig)
        if decoded is None:
            return False
        return self.recompute_and_compare(pk, m_prime, decoded)

    # -------- stage 1 --------
    def decode_signature(self, sig: Signature) -> Optional[DecodedSignature]:
        """Decode & bound-check. None means the signature is invalid."""
        ok, hint, popcount = unpack_hint(sig.h, self.params)
        if not ok:
            logger.debug("rejecting signature: malformed hint")
            return None
        if popcount > self.params.omega:
            logger.debug("rejecting signature: hint popcount %d > omega", popcount)
            return None
        z, valid = unpack_response(sig.z, self.params)
        if not valid:
            logger.debug("rejecting signature: response exceeds gamma1 - beta")
            return None
        return DecodedSignature(
            c_tilde=sig.c_tilde,
            z=[Poly(row, in_ntt=False) for row in z],
            hint=hint,
        )

    # -------- stage 2 --------
    def commitment_high_bits(self, pk: PublicKey, decoded: DecodedSignature) -> np.ndarray:
        """w1 = UseHint(h, NTT^-1(A*NTT(z) - NTT(c)*t1)), a k x 256 array."""
        engine = self.engine
        c_hat = engine.forward_ntt(sample_in_ball(decoded.c_tilde, self.params.tau))
        z_hat = engine.vec_forward_ntt(decoded.z)
        A = pk.matrix if pk.matrix is not None else self.expander.expand(pk.rho, self.params)
        az = engine.matvec_mul(A, z_hat)

        w1 = np.zeros((self.params.k, len(c_hat.coeffs)), dtype=np.int64)
        for row in range(self.params.k):
            ct1 = engine.pointwise_mul(c_hat, pk.t1[row])
            w_approx = engine.inverse_ntt(engine.pointwise_sub(az[row], ct1))
            w1[row] = use_hint_poly(decoded.hint[row], w_approx.coeffs, self.params.gamma2)
        return w1

    def recompute_and_compare(self, pk: PublicKey, m_prime: bytes,
                              decoded: DecodedSignature) -> bool:
        w1 = self.commitment_high_bits(pk, decoded)
        mu = hashlib.shake_256(pk.tr + m_prime).digest(TR_BYTES)
        c_tilde = hashlib.shake_256(mu + pack_w1(w1, self.params)).digest(len(decoded.c_tilde))
        if not hmac.compare_digest(c_tilde, decoded.c_tilde):
            logger.debug("rejecting signature: commitment hash mismatch")
            return False
        return True


def verify(public_key: Union[bytes, PublicKey], message: bytes, signature: bytes,
           context: bytes = b"", params: ParameterSet = ML_DSA_44,
           engine: Optional[RingEngine] = None) -> bool:
    """Convenience wrapper: Verifier(params, engine).verify(...)."""
    if isinstance(public_key, PublicKey):
        params = public_key.params
    return Verifier(params, engine).verify(public_key, message, signature, context)
