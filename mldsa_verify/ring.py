#!/usr/bin/env python3
"""
ring.py - Polynomial ring R_q = Z_q[X]/(X^N+1) and the Ring Engine

Layout:
1) Poly: 256 canonical coefficients plus an explicit domain flag.
2) RingBackend / SoftwareBackend: raw array arithmetic (domain agnostic).
3) RingEngine: polynomial-level operations over an injectable backend,
   with domain tracking and boundary validation of backend output.

The precompile-backed backend lives in precompile.py and plugs into the
same RingEngine; callers never branch on which backend is active.
"""
import logging
from typing import Any, List, Optional, Sequence

import numpy as np

from . import ntt
from .errors import RingEngineError
from .params import DILITHIUM_Q, DILITHIUM_N

logger = logging.getLogger(__name__)


# =============================
# POLYNOMIAL CLASS
# =============================
class Poly:
    """
    Polynomial in R_q = Z_q[X]/(X^N+1)

    `in_ntt` records whether the coefficients are NTT-domain values; it is
    part of the value and never inferred from the data.
    """

    __slots__ = ("coeffs", "in_ntt")

    def __init__(self, coeffs: Any, in_ntt: bool = False):
        if isinstance(coeffs, np.ndarray):
            arr = coeffs.astype(np.int64)
        else:
            arr = np.array([int(c) for c in coeffs], dtype=np.int64)
        if arr.shape != (DILITHIUM_N,):
            raise ValueError(f"Polynomial length {arr.shape} != N={DILITHIUM_N}")
        self.coeffs = arr % DILITHIUM_Q
        self.in_ntt = in_ntt

    @classmethod
    def zeros(cls, in_ntt: bool = False) -> "Poly":
        """Zero polynomial"""
        return cls(np.zeros(DILITHIUM_N, dtype=np.int64), in_ntt=in_ntt)

    def get_centered_coeffs(self) -> List[int]:
        """Coefficients in centered representation [-(q-1)/2, (q-1)/2]"""
        half = (DILITHIUM_Q - 1) // 2
        return [int(c) - DILITHIUM_Q if c > half else int(c) for c in self.coeffs]

    def infinity_norm(self) -> int:
        c = self.coeffs
        return int(np.max(np.minimum(c, DILITHIUM_Q - c)))

    def check_norm(self, bound: int) -> bool:
        """True if every coefficient has centered magnitude <= bound"""
        return self.infinity_norm() <= bound

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Poly):
            return NotImplemented
        return self.in_ntt == other.in_ntt and np.array_equal(self.coeffs, other.coeffs)

    def __repr__(self) -> str:
        domain = "ntt" if self.in_ntt else "std"
        head = ", ".join(str(int(c)) for c in self.coeffs[:4])
        return f"Poly<{domain}>([{head}, ...])"


# =============================
# BACKENDS
# =============================
class RingBackend:
    """Raw arithmetic on length-256 int64 arrays. Implementations must not mutate inputs."""

    name = "abstract"

    def ntt(self, a: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def inv_ntt(self, a: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def vec_mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def vec_add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def vec_sub(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class SoftwareBackend(RingBackend):
    """In-process numba kernels."""

    name = "software"

    def ntt(self, a: np.ndarray) -> np.ndarray:
        return ntt.ntt_forward(a)

    def inv_ntt(self, a: np.ndarray) -> np.ndarray:
        return ntt.ntt_inverse(a)

    def vec_mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return ntt.pointwise_mul(a, b)

    def vec_add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return ntt.pointwise_add(a, b)

    def vec_sub(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return ntt.pointwise_sub(a, b)


# =============================
# RING ENGINE
# =============================
class RingEngine:
    """
    The four ring primitives (plus subtraction) over a pluggable backend.

    Every backend result is checked at the boundary: wrong length or a
    value outside [0, q) raises RingEngineError, which callers must treat
    as fatal rather than as a rejected signature.
    """

    def __init__(self, backend: Optional[RingBackend] = None):
        self.backend = backend or SoftwareBackend()
        logger.debug("Ring engine using %s backend", self.backend.name)

    def forward_ntt(self, p: Poly) -> Poly:
        if p.in_ntt:
            raise ValueError("forward_ntt expects a standard-domain polynomial")
        return Poly(self._checked(self.backend.ntt(p.coeffs), "ntt"), in_ntt=True)

    def inverse_ntt(self, p: Poly) -> Poly:
        if not p.in_ntt:
            raise ValueError("inverse_ntt expects an NTT-domain polynomial")
        return Poly(self._checked(self.backend.inv_ntt(p.coeffs), "inv_ntt"), in_ntt=False)

    def pointwise_mul(self, a: Poly, b: Poly) -> Poly:
        self._check_same_domain(a, b)
        return Poly(self._checked(self.backend.vec_mul(a.coeffs, b.coeffs), "vec_mul"), a.in_ntt)

    def pointwise_add(self, a: Poly, b: Poly) -> Poly:
        self._check_same_domain(a, b)
        return Poly(self._checked(self.backend.vec_add(a.coeffs, b.coeffs), "vec_add"), a.in_ntt)

    def pointwise_sub(self, a: Poly, b: Poly) -> Poly:
        self._check_same_domain(a, b)
        return Poly(self._checked(self.backend.vec_sub(a.coeffs, b.coeffs), "vec_sub"), a.in_ntt)

    # -------- vector helpers --------
    def vec_forward_ntt(self, v: Sequence[Poly]) -> List[Poly]:
        return [self.forward_ntt(p) for p in v]

    def vec_inverse_ntt(self, v: Sequence[Poly]) -> List[Poly]:
        return [self.inverse_ntt(p) for p in v]

    def matvec_mul(self, A: Sequence[Sequence[Poly]], vec: Sequence[Poly]) -> List[Poly]:
        """
        Matrix-vector product in the NTT domain.

        Input: A (K x L, NTT domain), vec (L, NTT domain)
        Output: K polynomials, NTT domain
        """
        out = []
        for row in A:
            if len(row) != len(vec):
                raise ValueError("Dimension mismatch for matvec_mul")
            acc = self.pointwise_mul(row[0], vec[0])
            for a_ij, v_j in zip(row[1:], vec[1:]):
                acc = self.pointwise_add(acc, self.pointwise_mul(a_ij, v_j))
            out.append(acc)
        return out

    @staticmethod
    def _check_same_domain(a: Poly, b: Poly) -> None:
        if a.in_ntt != b.in_ntt:
            raise ValueError("Operands are in different domains")

    @staticmethod
    def _checked(result: Any, op: str) -> np.ndarray:
        try:
            arr = np.asarray(result, dtype=np.int64)
        except (TypeError, ValueError) as e:
            raise RingEngineError(f"{op}: backend returned non-integer data") from e
        if arr.shape != (DILITHIUM_N,):
            raise RingEngineError(f"{op}: backend returned shape {arr.shape}, expected ({DILITHIUM_N},)")
        if arr.min() < 0 or arr.max() >= DILITHIUM_Q:
            raise RingEngineError(f"{op}: backend returned non-canonical coefficients")
        return arr
