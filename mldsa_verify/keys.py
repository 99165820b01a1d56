#!/usr/bin/env python3
"""
keys.py - Public key and signature containers

PublicKey holds t1 already scaled by 2^d and transformed to the NTT
domain, so verification multiplies it against c directly.
"""
import hashlib
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import numpy as np

from .errors import MalformedInputError
from .matrix import MatrixExpander, Matrix, ShakeExpander
from .packing import unpack_t1
from .params import SEED_BYTES, TR_BYTES, ParameterSet
from .ring import Poly, RingEngine


@dataclass(frozen=True)
class PublicKey:
    params: ParameterSet
    rho: bytes
    t1: Tuple[Poly, ...]        # NTT(t1 * 2^d)
    tr: bytes                   # H(pk, 64)
    matrix: Optional[Matrix] = None

    @classmethod
    def from_bytes(cls, data: bytes, params: ParameterSet,
                   engine: Optional[RingEngine] = None) -> "PublicKey":
        """
        Decode rho || SimpleBitPack(t1, 10) (FIPS 204 Algorithm 23).

        Raises:
            MalformedInputError: data is not params.public_key_bytes long
        """
        if len(data) != params.public_key_bytes:
            raise MalformedInputError(
                f"{params.name} public key must be {params.public_key_bytes} bytes, got {len(data)}"
            )
        engine = engine or RingEngine()
        data = bytes(data)
        rho = data[:SEED_BYTES]
        t1_raw = unpack_t1(data[SEED_BYTES:], params.k)
        t1 = tuple(engine.forward_ntt(Poly(row << params.d)) for row in t1_raw)
        tr = hashlib.shake_256(data).digest(TR_BYTES)
        return cls(params=params, rho=rho, t1=t1, tr=tr)

    def with_matrix(self, expander: Optional[MatrixExpander] = None) -> "PublicKey":
        """Copy of this key carrying its expanded matrix A."""
        expander = expander or ShakeExpander()
        return replace(self, matrix=expander.expand(self.rho, self.params))


@dataclass(frozen=True)
class Signature:
    c_tilde: bytes
    z: bytes
    h: bytes

    @classmethod
    def from_bytes(cls, data: bytes, params: ParameterSet) -> "Signature":
        """Split c~ || z || h. Raises ValueError if the length is wrong."""
        if len(data) != params.signature_bytes:
            raise ValueError(
                f"{params.name} signature must be {params.signature_bytes} bytes, got {len(data)}"
            )
        data = bytes(data)
        c_end = params.c_tilde_bytes
        z_end = c_end + params.l * params.z_poly_bytes
        return cls(c_tilde=data[:c_end], z=data[c_end:z_end], h=data[z_end:])

    def to_bytes(self) -> bytes:
        return self.c_tilde + self.z + self.h


@dataclass(frozen=True)
class DecodedSignature:
    """Output of stage 1: hint matrix and response vector (standard domain)."""
    c_tilde: bytes
    z: List[Poly]
    hint: np.ndarray
