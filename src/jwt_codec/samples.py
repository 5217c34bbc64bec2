from __future__ import annotations

import json
import time
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from .codec import TokenCodec, split_token
from .jwks import jwk_from_pem

SUPPORTED_SAMPLE_KINDS = frozenset(
    {"hs256", "hs384", "hs512", "rs256-pem", "rs256-jwks", "es256-pem", "none"}
)
_DEMO_SECRET = "demo-secret-please-change"


def _pem_pair(private_key: Any) -> tuple[str, str]:
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )
    return private_pem, public_pem


def _rsa_keypair() -> tuple[str, str]:
    return _pem_pair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


def _ec_p256_keypair() -> tuple[str, str]:
    return _pem_pair(ec.generate_private_key(ec.SECP256R1()))


def _sample_claims() -> dict[str, Any]:
    return {"sub": "demo-user", "iss": "demo-iss", "aud": "demo-aud"}


def generate_sample(kind: str, exp_seconds: int = 3600) -> dict[str, Any]:
    if kind not in SUPPORTED_SAMPLE_KINDS:
        raise ValueError("unknown sample kind")

    now = int(time.time())
    codec = TokenCodec(
        claims=_sample_claims(),
        expires=now + int(exp_seconds),
        set_iat=True,
        clock=lambda: now,
    )
    sample: dict[str, Any] = {"kind": kind}

    if kind == "none":
        codec.algorithm = "none"
        sample.update(key_type="none", key_text="")
    elif kind.startswith("hs"):
        codec.algorithm = kind.upper()
        codec.secret = _DEMO_SECRET
        sample.update(key_type="secret", key_text=_DEMO_SECRET)
    elif kind == "es256-pem":
        private_pem, public_pem = _ec_p256_keypair()
        codec.algorithm = "ES256"
        codec.secret = private_pem
        codec.header = {"kid": "demo-k1"}
        sample.update(key_type="pem", key_text=public_pem, sign_key=private_pem)
    else:
        private_pem, public_pem = _rsa_keypair()
        codec.algorithm = "RS256"
        codec.secret = private_pem
        codec.header = {"kid": "demo-k1"}
        sample.update(key_type="pem", key_text=public_pem, sign_key=private_pem)
        if kind == "rs256-jwks":
            _, other_public_pem = _rsa_keypair()
            jwks = {
                "keys": [
                    jwk_from_pem(other_public_pem, kid="demo-k2"),
                    jwk_from_pem(public_pem, kid="demo-k1"),
                ]
            }
            sample.update(
                key_type="jwks", key_text=json.dumps(jwks, indent=2, sort_keys=True), jwks=jwks
            )

    token = codec.encode()
    header, claims, _ = split_token(token)
    sample.update(alg=codec.algorithm, token=token, header=header, claims=claims)
    return sample
