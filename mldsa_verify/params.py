#!/usr/bin/env python3
"""
params.py - ML-DSA parameter sets (FIPS 204 Table 1)

Each security level is an immutable ParameterSet value, so several levels
can be used side by side in one process.
"""
from dataclasses import dataclass
from typing import Dict

from .errors import ConfigurationError

# =============================
# RING CONSTANTS
# =============================
DILITHIUM_Q = 8380417   # 2^23 - 2^13 + 1
DILITHIUM_N = 256
DILITHIUM_D = 13        # bits dropped from t

SEED_BYTES = 32
TR_BYTES = 64
T1_BITS = 10


def coeff_bits_for_gamma1(gamma1: int) -> int:
    """Bit width of one packed response coefficient."""
    if gamma1 == 1 << 17:
        return 18
    if gamma1 == 1 << 19:
        return 20
    raise ConfigurationError(f"Unsupported gamma1: {gamma1}")


@dataclass(frozen=True)
class ParameterSet:
    name: str
    k: int
    l: int
    eta: int
    tau: int
    beta: int
    gamma1: int
    gamma2: int
    omega: int
    lambda_bits: int
    q: int = DILITHIUM_Q
    n: int = DILITHIUM_N
    d: int = DILITHIUM_D

    @property
    def c_tilde_bytes(self) -> int:
        return self.lambda_bits // 4

    @property
    def z_bits(self) -> int:
        return coeff_bits_for_gamma1(self.gamma1)

    @property
    def w1_bits(self) -> int:
        """Width of one high-bits coefficient: w1 lies in [0, (q-1)/(2*gamma2))."""
        m = (self.q - 1) // (2 * self.gamma2)
        return (m - 1).bit_length()

    @property
    def hint_bytes(self) -> int:
        return self.omega + self.k

    @property
    def z_poly_bytes(self) -> int:
        return self.n * self.z_bits // 8

    @property
    def public_key_bytes(self) -> int:
        return SEED_BYTES + self.k * self.n * T1_BITS // 8

    @property
    def signature_bytes(self) -> int:
        return self.c_tilde_bytes + self.l * self.z_poly_bytes + self.hint_bytes


ML_DSA_44 = ParameterSet(
    name="ML-DSA-44", k=4, l=4, eta=2, tau=39, beta=78,
    gamma1=1 << 17, gamma2=(DILITHIUM_Q - 1) // 88, omega=80, lambda_bits=128,
)

ML_DSA_65 = ParameterSet(
    name="ML-DSA-65", k=6, l=5, eta=4, tau=49, beta=196,
    gamma1=1 << 19, gamma2=(DILITHIUM_Q - 1) // 32, omega=55, lambda_bits=192,
)

ML_DSA_87 = ParameterSet(
    name="ML-DSA-87", k=8, l=7, eta=2, tau=60, beta=120,
    gamma1=1 << 19, gamma2=(DILITHIUM_Q - 1) // 32, omega=75, lambda_bits=256,
)

PARAMETER_SETS: Dict[str, ParameterSet] = {
    p.name: p for p in (ML_DSA_44, ML_DSA_65, ML_DSA_87)
}


def get_parameter_set(name: str) -> ParameterSet:
    """Look up a parameter set by name ("ML-DSA-44", "ml-dsa-65", "Dilithium2"...)."""
    aliases = {"DILITHIUM2": "ML-DSA-44", "DILITHIUM3": "ML-DSA-65", "DILITHIUM5": "ML-DSA-87"}
    if not isinstance(name, str):
        raise ConfigurationError(f"Parameter set name must be a string, got {name!r}")
    key = name.strip().upper()
    key = aliases.get(key, key)
    if key not in PARAMETER_SETS:
        raise ConfigurationError(
            f"Unknown parameter set: {name} (choose from {', '.join(PARAMETER_SETS)})"
        )
    return PARAMETER_SETS[key]
