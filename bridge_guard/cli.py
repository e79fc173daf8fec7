#!/usr/bin/env python3
"""
bridge-guard - Command Line Interface

Usage:
    bridge-guard token                     Show the bearer token and its file
    bridge-guard check-prompt <text>       Run the prompt policy; print the wrapped prompt
    bridge-guard sanitize                  Redact stdin and write the result to stdout
    bridge-guard encrypt <text>            Encrypt text with the token-derived key (JSON envelope)
    bridge-guard decrypt <envelope.json>   Decrypt a JSON envelope file ("-" for stdin)
    bridge-guard config                    Show the effective configuration
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .auth import TokenAuthority
from .config import BridgeConfig
from .errors import BridgeError
from .prompt_guard import PromptGuard
from .response_guard import ResponseGuard

logger = logging.getLogger("bridge_guard")


def setup_logging(verbose: bool = False):
    """Configure logging for CLI usage."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S"
    )
    logger.setLevel(level)


def _authority(args, config: BridgeConfig) -> TokenAuthority:
    return TokenAuthority(args.token_dir or config.token_dir)


def cmd_token(args, config: BridgeConfig) -> int:
    auth = _authority(args, config)
    print(f"Token: {auth.token}")
    print(f"Token file: {auth.token_file}")
    return 0


def cmd_check_prompt(args, config: BridgeConfig) -> int:
    guard = PromptGuard(max_length=config.max_prompt_length)
    try:
        print(guard.wrap(args.prompt))
    except BridgeError as e:
        print(f"BLOCKED: {e.message}", file=sys.stderr)
        return 1
    return 0


def cmd_sanitize(args, config: BridgeConfig) -> int:
    guard = ResponseGuard(max_size=config.max_response_size)
    sys.stdout.write(guard.sanitize(sys.stdin.read()) or "")
    return 0


def cmd_encrypt(args, config: BridgeConfig) -> int:
    envelope = _authority(args, config).cipher().encrypt_to_dict(args.text)
    print(json.dumps(envelope))
    return 0


def cmd_decrypt(args, config: BridgeConfig) -> int:
    try:
        if args.envelope_file == "-":
            data = json.load(sys.stdin)
        else:
            with open(args.envelope_file, encoding="utf-8") as f:
                data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"ERROR: Failed to read envelope: {type(e).__name__}: {e}", file=sys.stderr)
        return 2

    try:
        print(_authority(args, config).cipher().decrypt(data))
    except BridgeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_config(args, config: BridgeConfig) -> int:
    print(json.dumps(config.as_dict(), indent=2, sort_keys=True))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="bridge-guard",
        description="bridge-guard CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--token-dir", help="Directory holding bridge.token (overrides BRIDGE_TOKEN_DIR)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    token_parser = subparsers.add_parser("token", help="Show the bearer token")
    token_parser.set_defaults(func=cmd_token)

    check_parser = subparsers.add_parser("check-prompt", help="Validate and wrap a prompt")
    check_parser.add_argument("prompt", help="Prompt text")
    check_parser.set_defaults(func=cmd_check_prompt)

    sanitize_parser = subparsers.add_parser("sanitize", help="Redact secrets from stdin")
    sanitize_parser.set_defaults(func=cmd_sanitize)

    encrypt_parser = subparsers.add_parser("encrypt", help="Encrypt text into a JSON envelope")
    encrypt_parser.add_argument("text", help="Plaintext")
    encrypt_parser.set_defaults(func=cmd_encrypt)

    decrypt_parser = subparsers.add_parser("decrypt", help="Decrypt a JSON envelope")
    decrypt_parser.add_argument("envelope_file", help="Path to envelope JSON, or - for stdin")
    decrypt_parser.set_defaults(func=cmd_decrypt)

    config_parser = subparsers.add_parser("config", help="Show configuration")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    return args.func(args, BridgeConfig.from_env())


if __name__ == "__main__":
    sys.exit(main())
