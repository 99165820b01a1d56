#!/usr/bin/env python3
"""
api_server.py

REST API for ML-DSA signature verification.
Default port 9080.

Endpoints:
- GET  /api/health                  - Health check
- POST /api/verify                  - Verify a signature (base64 fields)
- POST /api/precompile/<address>    - Emulated EIP-7885 NTT precompile
                                      (raw wire-format body and response)
"""
import argparse
import base64
import binascii
import logging
import traceback
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from . import __version__
from .config import VerifierConfig, config_from_args
from .errors import ConfigurationError, RingEngineError, VerificationError
from .params import get_parameter_set
from .precompile import LocalPrecompile, PrecompileError

logger = logging.getLogger(__name__)


def _b64_field(data: Dict[str, Any], name: str, required: bool = True) -> bytes:
    if name not in data:
        if required:
            raise KeyError(name)
        return b""
    try:
        return base64.b64decode(data[name], validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"Field {name} is not valid base64") from e


def _str_field(data: Dict[str, Any], name: str) -> Optional[str]:
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"Field {name} must be a string")
    return value


def create_app(config: Optional[VerifierConfig] = None) -> Flask:
    """Build the Flask app around one verifier configuration."""
    config = config or VerifierConfig()
    app = Flask(__name__)
    CORS(app)
    verifiers = {config.parameter_set: config.build_verifier()}
    precompile = LocalPrecompile()

    def verifier_for(name: Optional[str]):
        params = get_parameter_set(name or config.parameter_set)
        if params.name not in verifiers:
            verifiers[params.name] = config.build_verifier(params)
        return verifiers[params.name]

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "ML-DSA Verify API",
            "version": __version__,
            "parameter_set": config.parameter_set,
            "backend": config.backend,
        })

    @app.route('/api/verify', methods=['POST'])
    def verify():
        """
        Request Body:
        {
            "public_key": str (base64),
            "signature": str (base64),
            "message": str (base64),
            "context": str (base64, optional),
            "parameter_set": str (optional),
            "prehash": str (optional, e.g. "SHA-512")
        }

        Response:
        {
            "success": bool,
            "valid": bool,
            "parameter_set": str
        }
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
        try:
            public_key = _b64_field(data, 'public_key')
            signature = _b64_field(data, 'signature')
            message = _b64_field(data, 'message')
            context = _b64_field(data, 'context', required=False)
            prehash = _str_field(data, 'prehash')
            verifier = verifier_for(_str_field(data, 'parameter_set'))
            if prehash:
                valid = verifier.verify_prehash(public_key, message, signature, context, prehash)
            else:
                valid = verifier.verify(public_key, message, signature, context)
        except KeyError as e:
            return jsonify({"success": False, "error": f"Missing required field: {e.args[0]}"}), 400
        except RingEngineError as e:
            logger.error("ring engine failure: %s", e)
            return jsonify({"success": False, "error": f"Ring engine failure: {e}"}), 502
        except (VerificationError, ValueError) as e:
            return jsonify({"success": False, "error": str(e)}), 400
        except Exception as e:
            traceback.print_exc()
            return jsonify({"success": False, "error": f"Internal error: {str(e)}"}), 500

        return jsonify({
            "success": True,
            "valid": valid,
            "parameter_set": verifier.params.name,
        })

    @app.route('/api/precompile/<address>', methods=['POST'])
    def precompile_call(address: str):
        """Raw EIP-7885 call; address as hex ("0x12") or decimal."""
        try:
            addr = int(address, 0)
        except ValueError:
            return jsonify({"success": False, "error": f"Bad precompile address: {address}"}), 400
        try:
            out = precompile(addr, request.get_data())
        except PrecompileError as e:
            return jsonify({"success": False, "error": str(e)}), 400
        return Response(out, mimetype="application/octet-stream")

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"success": False, "error": "Endpoint not found"}), 404

    return app


def main(argv=None):
    """Run the Flask server."""
    parser = argparse.ArgumentParser(description="ML-DSA verification API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=9080)
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--params", dest="parameter_set", help="parameter set, e.g. ML-DSA-65")
    parser.add_argument("--backend", choices=["software", "precompile"])
    parser.add_argument("--rpc-url", help="RPC node for the precompile backend")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        parser.error(str(e))

    app = create_app(config)

    print("\n" + "=" * 80)
    print("ML-DSA VERIFY API SERVER")
    print("=" * 80)
    print(f"\nServer starting on: http://{args.host}:{args.port}")
    print(f"Parameter set: {config.parameter_set}   Backend: {config.backend}")
    print("\nAvailable endpoints:")
    print("  GET    /api/health                - Health check")
    print("  POST   /api/verify                - Verify signature")
    print("  POST   /api/precompile/<address>  - NTT precompile emulation")
    print(f"\n{'=' * 80}\n")
    logger.info("serving %s with %s backend", config.parameter_set, config.backend)

    app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == '__main__':
    main()
