"""
errors.py - Fatal error types for ML-DSA verification

A rejected signature is NOT an error: verify() returns False for it.
The exceptions below signal caller or environment defects instead.
"""


class VerificationError(Exception):
    """Base class for fatal verification errors."""


class ConfigurationError(VerificationError, ValueError):
    """Unsupported parameter set, gamma1, backend or pre-hash function."""


class MalformedInputError(VerificationError, ValueError):
    """Caller supplied input that can never be verified (e.g. context > 255 bytes)."""


class RingEngineError(VerificationError, RuntimeError):
    """Ring arithmetic backend failed or returned a malformed response."""
