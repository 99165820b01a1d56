#!/usr/bin/env python3
"""
precompile.py - EIP-7885 NTT precompile wire format and accelerator backend

Request:  ring degree (u32 BE) || modulus (u64 BE) || int32 BE coefficients
          (one polynomial for NTT_FW / NTT_INV, two for VECMULMOD / VECADDMOD)
Response: 256 int32 BE coefficients; negative values are canonicalized by
          adding the modulus once.

Transports:
- LocalPrecompile: in-process emulation of the precompile (also served by
  the HTTP API at /api/precompile/<address>).
- RpcTransport: JSON-RPC eth_call against a node exposing the precompiles.
"""
import logging
import itertools
import struct
import threading
from typing import Callable, Dict, Optional

import numpy as np
import requests

from . import ntt
from .errors import RingEngineError
from .params import DILITHIUM_Q, DILITHIUM_N
from .ring import RingBackend

logger = logging.getLogger(__name__)

# =============================
# PRECOMPILE ADDRESSES
# =============================
NTT_FW = 0x12
NTT_INV = 0x13
VECMULMOD = 0x14
VECADDMOD = 0x15

HEADER_BYTES = 12
POLY_BYTES = 4 * DILITHIUM_N
_HEADER = struct.pack(">IQ", DILITHIUM_N, DILITHIUM_Q)

Transport = Callable[[int, bytes], bytes]


class PrecompileError(Exception):
    """Raised by the emulated precompile for a malformed request (a reverted call)."""


# =============================
# WIRE CODEC
# =============================
def encode_request(*polys: np.ndarray) -> bytes:
    """Header followed by each polynomial as 256 big-endian int32 values."""
    body = b"".join(np.asarray(p, dtype=">i4").tobytes() for p in polys)
    return _HEADER + body


def decode_request(data: bytes, n_polys: int) -> list:
    """Parse a request, validating header and length. Returns int64 arrays."""
    if len(data) != HEADER_BYTES + n_polys * POLY_BYTES:
        raise PrecompileError(
            f"bad input length {len(data)}, expected {HEADER_BYTES + n_polys * POLY_BYTES}"
        )
    degree, modulus = struct.unpack(">IQ", data[:HEADER_BYTES])
    if degree != DILITHIUM_N or modulus != DILITHIUM_Q:
        raise PrecompileError(f"unsupported ring: degree={degree} modulus={modulus}")
    polys = []
    for i in range(n_polys):
        start = HEADER_BYTES + i * POLY_BYTES
        raw = np.frombuffer(data[start:start + POLY_BYTES], dtype=">i4").astype(np.int64)
        polys.append(raw % DILITHIUM_Q)
    return polys


def encode_response(coeffs: np.ndarray) -> bytes:
    return np.asarray(coeffs, dtype=">i4").tobytes()


def decode_response(data: bytes) -> np.ndarray:
    """
    Reinterpret 1,024 bytes as signed int32 and canonicalize.

    A single +q correction is applied to negative values; anything still
    outside [0, q) afterwards is a malformed response.
    """
    if len(data) != POLY_BYTES:
        raise RingEngineError(f"precompile returned {len(data)} bytes, expected {POLY_BYTES}")
    coeffs = np.frombuffer(data, dtype=">i4").astype(np.int64)
    coeffs = np.where(coeffs < 0, coeffs + DILITHIUM_Q, coeffs)
    if coeffs.min() < 0 or coeffs.max() >= DILITHIUM_Q:
        raise RingEngineError("precompile returned coefficients outside (-q, q)")
    return coeffs


# =============================
# TRANSPORTS
# =============================
class LocalPrecompile:
    """In-process emulation of the four NTT precompiles."""

    _ARITY = {NTT_FW: 1, NTT_INV: 1, VECMULMOD: 2, VECADDMOD: 2}

    def __init__(self):
        self._ops: Dict[int, Callable[..., np.ndarray]] = {
            NTT_FW: ntt.ntt_forward,
            NTT_INV: ntt.ntt_inverse,
            VECMULMOD: ntt.pointwise_mul,
            VECADDMOD: ntt.pointwise_add,
        }

    def __call__(self, address: int, data: bytes) -> bytes:
        if address not in self._ops:
            raise PrecompileError(f"no precompile at address {address:#x}")
        polys = decode_request(data, self._ARITY[address])
        return encode_response(self._ops[address](*polys))


class RpcTransport:
    """
    eth_call against an RPC node that has the EIP-7885 precompiles enabled.

    Safe to share between threads: without an injected session each thread
    gets its own requests.Session, and request ids come from a locked counter.
    """

    def __init__(self, rpc_url: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._session = session
        self._local = threading.local()
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _request_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def __call__(self, address: int, data: bytes) -> bytes:
        payload = {
            "jsonrpc": "2.0",
            "method": "eth_call",
            "params": [{"to": f"0x{address:040x}", "data": "0x" + data.hex()}, "latest"],
            "id": self._request_id(),
        }
        try:
            resp = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise RingEngineError(f"RPC call to {self.rpc_url} failed: {e}") from e
        if "error" in body:
            raise RingEngineError(f"precompile {address:#x} reverted: {body['error']}")
        result = body.get("result")
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RingEngineError(f"malformed eth_call result: {result!r}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError as e:
            raise RingEngineError("eth_call result is not valid hex") from e


# =============================
# BACKEND
# =============================
class PrecompileBackend(RingBackend):
    """
    Ring backend that ships every operation through the precompile wire format.

    There is no subtraction precompile: a - b is sent as VECADDMOD(a, q - b).
    """

    name = "precompile"

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport or LocalPrecompile()

    def _call(self, address: int, *polys: np.ndarray) -> np.ndarray:
        try:
            raw = self.transport(address, encode_request(*polys))
        except PrecompileError as e:
            raise RingEngineError(f"precompile {address:#x} rejected the request: {e}") from e
        return decode_response(raw)

    def ntt(self, a: np.ndarray) -> np.ndarray:
        return self._call(NTT_FW, a)

    def inv_ntt(self, a: np.ndarray) -> np.ndarray:
        return self._call(NTT_INV, a)

    def vec_mul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return self._call(VECMULMOD, a, b)

    def vec_add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return self._call(VECADDMOD, a, b)

    def vec_sub(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        neg_b = (DILITHIUM_Q - np.asarray(b, dtype=np.int64)) % DILITHIUM_Q
        return self._call(VECADDMOD, a, neg_b)
