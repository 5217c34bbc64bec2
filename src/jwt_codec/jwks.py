from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any, cast

from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import (
    load_pem_private_key,
    load_pem_public_key,
)
from jwt import algorithms
from jwt.utils import base64url_encode


class KeySet:
    """Ordered, append-only collection of JWKs.

    Lookups are first-match-wins on ``kid``; duplicate ids are allowed and the
    earliest registered entry shadows later ones.
    """

    def __init__(self, keys: Iterable[Mapping[str, Any]] | Mapping[str, Any] | None = None) -> None:
        self._keys: list[dict[str, Any]] = []
        if keys is not None:
            self.extend(keys)

    def append(self, jwk: Mapping[str, Any]) -> None:
        if not isinstance(jwk, Mapping):
            raise ValueError("JWK must be an object")
        self._keys.append(dict(jwk))

    def extend(self, source: KeySet | Iterable[Mapping[str, Any]] | Mapping[str, Any]) -> None:
        if isinstance(source, Mapping):
            if "keys" not in source:
                # A lone JWK.
                self.append(source)
                return
            keys = source["keys"]
            if not isinstance(keys, list):
                raise ValueError("JWKS keys must be a list")
            source = cast(list[Mapping[str, Any]], keys)
        for jwk in source:
            self.append(jwk)

    def find(self, kid: Any) -> dict[str, Any] | None:
        for jwk in self._keys:
            if jwk.get("kid") == kid:
                return jwk
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"keys": [dict(jwk) for jwk in self._keys]}

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        kids = [jwk.get("kid") for jwk in self._keys]
        return f"KeySet(kids={kids!r})"

    @classmethod
    def from_json(cls, text: str) -> KeySet:
        try:
            obj = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid JWKS JSON: {exc}") from exc
        if not isinstance(obj, dict):
            raise ValueError("JWKS must be an object")
        return cls(cast(dict[str, Any], obj))

    @classmethod
    def from_path(cls, path: str | Path) -> KeySet:
        return cls.from_json(Path(path).read_text(encoding="utf-8"))


def _public_key_from_pem_text(pem_text: str) -> Any:
    data = pem_text.encode("utf-8")
    try:
        key_any: Any = load_pem_public_key(data)
    except ValueError:
        key_any = load_pem_private_key(data, password=None)
    return key_any.public_key() if hasattr(key_any, "public_key") else key_any


def jwk_from_pem(pem_text: str, kid: str | None = None) -> dict[str, Any]:
    key = _public_key_from_pem_text(pem_text)

    if isinstance(key, rsa.RSAPublicKey):
        jwk_any = json.loads(algorithms.RSAAlgorithm.to_jwk(key))
    elif isinstance(key, ec.EllipticCurvePublicKey):
        jwk_any = json.loads(algorithms.ECAlgorithm.to_jwk(key))
    else:
        raise ValueError("unsupported key type for JWK conversion")

    jwk = cast(dict[str, Any], jwk_any)
    if kid:
        jwk["kid"] = kid
    return jwk


def jwks_from_pem(pem_text: str, kid: str | None = None) -> dict[str, Any]:
    return {"keys": [jwk_from_pem(pem_text, kid=kid)]}


def jwk_from_secret(secret: str | bytes, kid: str | None = None) -> dict[str, Any]:
    raw = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
    if not raw:
        raise ValueError("secret must not be empty")
    jwk: dict[str, Any] = {"kty": "oct", "k": base64url_encode(raw).decode("ascii")}
    if kid:
        jwk["kid"] = kid
    return jwk
