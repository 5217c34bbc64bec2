from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from jwt import exceptions as jwt_exceptions

from .algorithms import supported_algorithms
from .codec import TokenCodec, split_token
from .jwks import KeySet, jwk_from_pem, jwks_from_pem
from .samples import SUPPORTED_SAMPLE_KINDS, generate_sample
from .version import __version__


def _ensure_dict(obj: Any, context: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ValueError(f"{context} must be a JSON object")
    return obj


def _load_json_object(text: str | None, path: str | None, label: str) -> dict[str, Any] | None:
    if text and path:
        raise ValueError(f"use only one of --{label} or --{label}-file")
    if path:
        return _ensure_dict(json.loads(Path(path).read_text(encoding="utf-8")), label)
    if text:
        return _ensure_dict(json.loads(text), label)
    return None


def _print_json(obj: object) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _load_token(token_arg: str) -> str:
    if token_arg != "-":
        return token_arg
    token = sys.stdin.read().strip()
    if not token:
        raise ValueError("stdin is empty; expected JWT")
    return token


def _load_key(args: argparse.Namespace) -> str | None:
    if args.key and args.key_text is not None:
        raise ValueError("use only one of --key or --key-text")
    if args.key:
        return Path(args.key).read_text(encoding="utf-8").strip()
    if args.key_text == "-":
        text = sys.stdin.read()
        if not text.strip():
            raise ValueError("stdin is empty; expected key material")
        return text
    return args.key_text


def _cmd_encode(args: argparse.Namespace) -> int:
    claims = _load_json_object(args.claims, args.claims_file, "claims")
    if claims is None:
        raise ValueError("missing claims: use --claims or --claims-file")
    header = _load_json_object(args.header, args.header_file, "header") or {}
    if args.kid:
        header["kid"] = args.kid

    key = _load_key(args)
    if args.alg == "none" and key is not None:
        raise ValueError("alg=none does not accept key material")

    codec = TokenCodec(
        algorithm=args.alg,
        secret=key,
        claims=claims,
        header=header,
        expires=args.expires,
        not_before=args.not_before,
        set_iat=args.iat,
    )
    print(codec.encode())
    return 0


def _cmd_decode(args: argparse.Namespace) -> int:
    if args.token == "-" and args.key_text == "-":
        raise ValueError("cannot read both token and key from stdin; provide one normally")
    if args.at is not None and int(args.at) < 0:
        raise ValueError("--at must be a non-negative integer")

    key = _load_key(args)
    token = _load_token(args.token)
    # The header decides which field is consulted; HMAC reads secret, RSA/ECDSA read public.
    codec = TokenCodec(secret=key, public=key, allow_none=args.allow_none)
    if args.at is not None:
        at = int(args.at)
        codec.clock = lambda: at
    for path in args.jwks or []:
        codec.add_jwks(KeySet.from_path(path))

    claims = codec.decode(token)
    output: dict[str, Any] = {
        "valid": True,
        "algorithm": codec.algorithm,
        "header": codec.header,
        "claims": claims,
    }
    _print_json(output)
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    header, claims, signature = split_token(_load_token(args.token))
    _print_json({"header": header, "claims": claims, "signature_bytes": len(signature)})
    return 0


def _cmd_jwk(args: argparse.Namespace) -> int:
    _print_json(jwk_from_pem(Path(args.pem).read_text(encoding="utf-8"), kid=args.kid))
    return 0


def _cmd_jwks(args: argparse.Namespace) -> int:
    _print_json(jwks_from_pem(Path(args.pem).read_text(encoding="utf-8"), kid=args.kid))
    return 0


def _cmd_sample(args: argparse.Namespace) -> int:
    _print_json(generate_sample(str(args.kind), exp_seconds=int(args.exp_seconds)))
    return 0


def _add_key_args(parser: argparse.ArgumentParser, key_help: str) -> None:
    parser.add_argument("--key", help=f"Path to {key_help}")
    parser.add_argument(
        "--key-text",
        help=f"Raw {key_help} text (use '-' to read from stdin)",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="jwt-codec")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log key resolution and verification details"
    )

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_encode = sub.add_parser("encode", help="Sign claims into a JWT")
    p_encode.add_argument("--claims", help="JSON claims object")
    p_encode.add_argument("--claims-file", help="Path to JSON claims file")
    p_encode.add_argument("--header", help="JSON object of extra header fields (optional)")
    p_encode.add_argument("--header-file", help="Path to JSON header file (optional)")
    p_encode.add_argument(
        "--alg",
        default="HS256",
        choices=supported_algorithms(),
        help="Algorithm (default: HS256)",
    )
    _add_key_args(p_encode, "HMAC secret or PEM private key (not used for alg=none)")
    p_encode.add_argument("--kid", help="Optional key id header")
    p_encode.add_argument("--expires", type=int, help="exp claim as unix seconds")
    p_encode.add_argument("--not-before", type=int, help="nbf claim as unix seconds")
    p_encode.add_argument("--iat", action="store_true", help="Set iat to the current time")
    p_encode.set_defaults(func=_cmd_encode)

    p_decode = sub.add_parser("decode", help="Verify a JWT and print its claims")
    p_decode.add_argument("--token", required=True, help="JWT string (use '-' to read from stdin)")
    _add_key_args(p_decode, "HMAC secret or PEM public key")
    p_decode.add_argument(
        "--jwks",
        action="append",
        help="Path to a JWKS/JWK file; keys are matched on the token's kid (repeatable)",
    )
    p_decode.add_argument(
        "--allow-none", action="store_true", help="Accept unsigned tokens (alg=none)"
    )
    p_decode.add_argument(
        "--at",
        type=int,
        help="Override current time as unix seconds for exp/nbf checks (debugging)",
    )
    p_decode.set_defaults(func=_cmd_decode)

    p_inspect = sub.add_parser("inspect", help="Show header and claims without verifying")
    p_inspect.add_argument("--token", required=True, help="JWT string (use '-' to read from stdin)")
    p_inspect.set_defaults(func=_cmd_inspect)

    p_jwk = sub.add_parser("jwk", help="Convert PEM to JWK")
    p_jwk.add_argument("--pem", required=True, help="Path to PEM key")
    p_jwk.add_argument("--kid", help="Optional key id")
    p_jwk.set_defaults(func=_cmd_jwk)

    p_jwks = sub.add_parser("jwks", help="Convert PEM to JWKS")
    p_jwks.add_argument("--pem", required=True, help="Path to PEM key")
    p_jwks.add_argument("--kid", help="Optional key id")
    p_jwks.set_defaults(func=_cmd_jwks)

    p_sample = sub.add_parser("sample", help="Generate offline demo tokens/keys")
    p_sample.add_argument(
        "--kind",
        choices=sorted(SUPPORTED_SAMPLE_KINDS),
        default="hs256",
        help="Sample kind (default: hs256)",
    )
    p_sample.add_argument(
        "--exp-seconds",
        type=int,
        default=3600,
        help="Expiration seconds from now (default: 3600)",
    )
    p_sample.set_defaults(func=_cmd_sample)

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )
    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        return 130
    except (OSError, ValueError, jwt_exceptions.PyJWTError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
