#!/usr/bin/env python3
"""
cli.py - Verify an ML-DSA signature from files

Exit status: 0 valid, 1 invalid, 2 fatal error (bad input or configuration,
ring engine failure).

Example:
    mldsa-verify --params ML-DSA-44 --public-key pk.bin \\
        --signature sig.bin --message msg.txt --context 6170702d7631
"""
import argparse
import logging
import sys
from pathlib import Path

from .config import config_from_args
from .errors import VerificationError

logger = logging.getLogger(__name__)

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify an ML-DSA (FIPS 204) signature")
    parser.add_argument("--public-key", required=True, help="encoded public key file")
    parser.add_argument("--signature", required=True, help="signature file")
    parser.add_argument("--message", required=True, help="message file")
    parser.add_argument("--context", default="", help="context string as hex (max 255 bytes)")
    parser.add_argument("--prehash", help="verify HashML-DSA with this hash (e.g. SHA-512)")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--params", dest="parameter_set", help="parameter set (default ML-DSA-44)")
    parser.add_argument("--backend", choices=["software", "precompile"])
    parser.add_argument("--rpc-url", help="RPC node exposing the NTT precompiles")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = config_from_args(args)
        context = bytes.fromhex(args.context)
        public_key = Path(args.public_key).read_bytes()
        signature = Path(args.signature).read_bytes()
        message = Path(args.message).read_bytes()

        verifier = config.build_verifier()
        if args.prehash:
            valid = verifier.verify_prehash(public_key, message, signature, context, args.prehash)
        else:
            valid = verifier.verify(public_key, message, signature, context)
    except (VerificationError, OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print("valid" if valid else "invalid")
    return EXIT_VALID if valid else EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
