from __future__ import annotations

import enum
import functools
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from cryptography.exceptions import UnsupportedAlgorithm as CryptoUnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt.algorithms import ECAlgorithm, HMACAlgorithm, RSAAlgorithm
from jwt.exceptions import InvalidKeyError

from .errors import (
    HmacVerificationFailed,
    InvalidKeyMaterial,
    MissingKey,
    MissingSecret,
    SignatureVerificationFailed,
    UnsupportedAlgorithm,
)
from .keys import KeyHandle, KeyMaterial, key_input, key_material

_ALG_RE = re.compile(r"^(HS|RS|ES)([1-9][0-9]*)$")
_DIGEST_NAMES = {256: "SHA256", 384: "SHA384", 512: "SHA512"}
_KEY_ERRORS = (InvalidKeyError, ValueError, TypeError, CryptoUnsupportedAlgorithm)


class Family(str, enum.Enum):
    NONE = "none"
    HMAC = "HS"
    RSA = "RS"
    ECDSA = "ES"

    @property
    def label(self) -> str:
        return _FAMILY_LABELS[self]


_FAMILY_LABELS = {
    Family.NONE: "none",
    Family.HMAC: "HMAC",
    Family.RSA: "RSA",
    Family.ECDSA: "ECDSA",
}


@dataclass(frozen=True)
class Algorithm:
    family: Family
    size: int | None = None

    @classmethod
    def parse(cls, name: Any) -> Algorithm:
        if not isinstance(name, str) or not name:
            raise UnsupportedAlgorithm("algorithm not specified")
        if name == Family.NONE.value:
            return cls(Family.NONE)
        match = _ALG_RE.match(name)
        if match is None:
            raise UnsupportedAlgorithm(f"unknown algorithm: {name}")
        return cls(Family(match.group(1)), int(match.group(2)))

    @property
    def name(self) -> str:
        if self.family is Family.NONE:
            return Family.NONE.value
        return f"{self.family.value}{self.size}"

    def digest_name(self) -> str:
        # Sizes are rejected here, before any primitive is touched.
        try:
            return _DIGEST_NAMES[self.size]  # type: ignore[index]
        except KeyError:
            raise UnsupportedAlgorithm(
                f"unsupported {self.family.label} digest size: {self.size}"
            ) from None


class SignatureStrategy(Protocol):
    algorithm: Algorithm
    # Codec attribute holding the key for each direction (None: no key used).
    signing_key_field: str | None
    verification_key_field: str | None

    def sign(self, message: bytes, key: KeyMaterial | None) -> bytes: ...

    def verify(self, message: bytes, signature: bytes, key: KeyMaterial | None) -> None: ...

    def key_from_jwk(self, jwk: Mapping[str, Any]) -> KeyMaterial | None: ...


class NoneStrategy:
    signing_key_field = None
    verification_key_field = None

    def __init__(self, algorithm: Algorithm) -> None:
        self.algorithm = algorithm

    def sign(self, message: bytes, key: KeyMaterial | None) -> bytes:
        return b""

    def verify(self, message: bytes, signature: bytes, key: KeyMaterial | None) -> None:
        # Reaching this point means the caller already opted in to unsigned tokens.
        return None

    def key_from_jwk(self, jwk: Mapping[str, Any]) -> KeyMaterial | None:
        return None


class HmacStrategy:
    signing_key_field = "secret"
    verification_key_field = "secret"

    def __init__(self, algorithm: Algorithm) -> None:
        self.algorithm = algorithm
        self._impl = HMACAlgorithm(getattr(HMACAlgorithm, algorithm.digest_name()))

    def _prepare(self, key: KeyMaterial | None) -> bytes:
        if key is None:
            raise MissingSecret("HMAC secret not specified")
        try:
            return self._impl.prepare_key(key_input(key))
        except _KEY_ERRORS as exc:
            raise InvalidKeyMaterial(f"unusable HMAC secret: {exc}") from exc

    def sign(self, message: bytes, key: KeyMaterial | None) -> bytes:
        return self._impl.sign(message, self._prepare(key))

    def verify(self, message: bytes, signature: bytes, key: KeyMaterial | None) -> None:
        if not self._impl.verify(message, self._prepare(key), signature):
            raise HmacVerificationFailed(f"{self.algorithm.name} signature verification failed")

    def key_from_jwk(self, jwk: Mapping[str, Any]) -> KeyMaterial | None:
        try:
            secret = HMACAlgorithm.from_jwk({"kty": "oct", **jwk})
        except (InvalidKeyError, KeyError, ValueError, TypeError) as exc:
            raise InvalidKeyMaterial(f"cannot build HMAC secret from JWK: {exc}") from exc
        return key_material(secret)


class AsymmetricStrategy:
    """RSA and ECDSA share one shape: sign with ``secret``, verify with ``public``.

    The family specifics (PyJWT algorithm class, accepted key types, JWK ``kty``)
    are injected by the dispatch table.
    """

    signing_key_field = "secret"
    verification_key_field = "public"

    def __init__(
        self,
        algorithm: Algorithm,
        *,
        impl: Any,
        private_type: type,
        public_type: type,
        kty: str,
    ) -> None:
        self.algorithm = algorithm
        self._impl = impl(getattr(impl, algorithm.digest_name()))
        self._private_type = private_type
        self._public_type = public_type
        self._kty = kty
        self._label = algorithm.family.label

    def _prepare(self, key: KeyMaterial | None, *, side: str) -> Any:
        if key is None:
            if side == "secret":
                raise MissingKey("private key (secret) not specified", side=side)
            raise MissingKey("public key not specified", side=side)
        try:
            return self._impl.prepare_key(key_input(key))
        except _KEY_ERRORS as exc:
            raise InvalidKeyMaterial(f"unusable {self._label} key: {exc}") from exc

    def sign(self, message: bytes, key: KeyMaterial | None) -> bytes:
        prepared = self._prepare(key, side="secret")
        if not isinstance(prepared, self._private_type):
            raise InvalidKeyMaterial(f"{self._label} signing requires a private key")
        return self._impl.sign(message, prepared)

    def verify(self, message: bytes, signature: bytes, key: KeyMaterial | None) -> None:
        prepared = self._prepare(key, side="public")
        if isinstance(prepared, self._private_type):
            prepared = prepared.public_key()
        if not isinstance(prepared, self._public_type):
            raise InvalidKeyMaterial(f"{self._label} verification requires a public key")
        if not self._impl.verify(message, prepared, signature):
            raise SignatureVerificationFailed(
                f"{self.algorithm.name} signature verification failed"
            )

    def key_from_jwk(self, jwk: Mapping[str, Any]) -> KeyMaterial | None:
        try:
            key = self._impl.from_jwk({"kty": self._kty, **jwk})
        except (InvalidKeyError, KeyError, ValueError, TypeError) as exc:
            raise InvalidKeyMaterial(f"cannot build {self._label} key from JWK: {exc}") from exc
        return KeyHandle(key)


_STRATEGIES: dict[Family, Callable[[Algorithm], SignatureStrategy]] = {
    Family.NONE: NoneStrategy,
    Family.HMAC: HmacStrategy,
    Family.RSA: functools.partial(
        AsymmetricStrategy,
        impl=RSAAlgorithm,
        private_type=rsa.RSAPrivateKey,
        public_type=rsa.RSAPublicKey,
        kty="RSA",
    ),
    Family.ECDSA: functools.partial(
        AsymmetricStrategy,
        impl=ECAlgorithm,
        private_type=ec.EllipticCurvePrivateKey,
        public_type=ec.EllipticCurvePublicKey,
        kty="EC",
    ),
}


def strategy_for(name: Any) -> SignatureStrategy:
    algorithm = Algorithm.parse(name)
    return _STRATEGIES[algorithm.family](algorithm)


def lookup_strategy(name: Any) -> SignatureStrategy | None:
    """Like :func:`strategy_for`, but ``None`` for unknown or unsupported algorithms."""
    try:
        return strategy_for(name)
    except UnsupportedAlgorithm:
        return None


def supported_algorithms() -> list[str]:
    names = [Family.NONE.value]
    for family in (Family.HMAC, Family.RSA, Family.ECDSA):
        names.extend(f"{family.value}{size}" for size in sorted(_DIGEST_NAMES))
    return names
