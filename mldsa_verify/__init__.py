"""
ML-DSA (FIPS 204) signature verification

This package contains:
- params: ML-DSA-44/65/87 parameter sets
- ntt, ring: NTT kernels, Poly and the Ring Engine with pluggable backends
- precompile: EIP-7885 NTT precompile wire format and backend
- packing, challenge, rounding, matrix: decoding, SampleInBall, UseHint, ExpandA
- verify: the verification orchestrator
"""

__version__ = "1.0.0"

from .errors import ConfigurationError, MalformedInputError, RingEngineError, VerificationError
from .keys import PublicKey, Signature
from .params import ML_DSA_44, ML_DSA_65, ML_DSA_87, ParameterSet, get_parameter_set
from .ring import Poly, RingEngine, SoftwareBackend
from .precompile import LocalPrecompile, PrecompileBackend, RpcTransport
from .verify import Verifier, verify
