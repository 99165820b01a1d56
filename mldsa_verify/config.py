#!/usr/bin/env python3
"""
config.py - Verifier configuration

VerifierConfig can be built from keyword arguments, a dict, or a JSON file
such as:

    {
        "parameter_set": "ML-DSA-65",
        "backend": "precompile",
        "transport": "rpc",
        "rpc_url": "http://localhost:8545",
        "rpc_timeout": 5.0
    }
"""
import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError
from .params import ParameterSet, get_parameter_set
from .precompile import LocalPrecompile, PrecompileBackend, RpcTransport
from .ring import RingEngine, SoftwareBackend
from .verify import Verifier

BACKENDS = ("software", "precompile")
TRANSPORTS = ("local", "rpc")


@dataclass(frozen=True)
class VerifierConfig:
    parameter_set: str = "ML-DSA-44"
    backend: str = "software"
    transport: str = "local"
    rpc_url: Optional[str] = None
    rpc_timeout: float = 10.0

    def __post_init__(self):
        for name in ("parameter_set", "backend", "transport"):
            if not isinstance(getattr(self, name), str):
                raise ConfigurationError(f"{name} must be a string, got {getattr(self, name)!r}")
        if self.rpc_url is not None and not isinstance(self.rpc_url, str):
            raise ConfigurationError(f"rpc_url must be a string, got {self.rpc_url!r}")
        if isinstance(self.rpc_timeout, bool) or not isinstance(self.rpc_timeout, (int, float)):
            raise ConfigurationError(f"rpc_timeout must be a number, got {self.rpc_timeout!r}")
        get_parameter_set(self.parameter_set)
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"Unknown backend: {self.backend} (choose from {', '.join(BACKENDS)})")
        if self.transport not in TRANSPORTS:
            raise ConfigurationError(f"Unknown transport: {self.transport} (choose from {', '.join(TRANSPORTS)})")
        if self.backend == "precompile" and self.transport == "rpc" and not self.rpc_url:
            raise ConfigurationError("rpc transport requires rpc_url")
        if self.backend == "software" and self.transport == "rpc":
            raise ConfigurationError("rpc transport requires the precompile backend")
        if self.rpc_timeout <= 0:
            raise ConfigurationError("rpc_timeout must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerifierConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    @classmethod
    def from_json_file(cls, path: str) -> "VerifierConfig":
        try:
            with open(Path(path), "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration {path} must be a JSON object")
        return cls.from_dict(data)

    def override(self, **changes: Any) -> "VerifierConfig":
        """Copy with the non-None entries of changes applied (CLI flags)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def params(self) -> ParameterSet:
        return get_parameter_set(self.parameter_set)

    def build_engine(self) -> RingEngine:
        if self.backend == "software":
            return RingEngine(SoftwareBackend())
        if self.transport == "rpc":
            return RingEngine(PrecompileBackend(RpcTransport(self.rpc_url, self.rpc_timeout)))
        return RingEngine(PrecompileBackend(LocalPrecompile()))

    def build_verifier(self, params: Optional[ParameterSet] = None) -> Verifier:
        return Verifier(params or self.params, self.build_engine())


def config_from_args(args) -> VerifierConfig:
    """
    Build the configuration for the CLI and the API server.

    --config is loaded first, then --params / --backend / --rpc-url override
    it. --rpc-url selects the precompile backend over RPC unless --backend
    says otherwise.
    """
    config = VerifierConfig.from_json_file(args.config) if args.config else VerifierConfig()
    backend = args.backend
    if args.rpc_url and backend is None:
        backend = "precompile"
    return config.override(
        parameter_set=args.parameter_set,
        backend=backend,
        rpc_url=args.rpc_url,
        transport="rpc" if args.rpc_url else None,
    )
