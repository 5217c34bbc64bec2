from __future__ import annotations

import copy
import json
import logging
import math
import time
from collections.abc import Iterable, Mapping
from typing import Any, Callable, NamedTuple

from jwt.utils import base64url_decode, base64url_encode

from .algorithms import Family, SignatureStrategy, lookup_strategy, strategy_for
from .errors import (
    InvalidClaimsShape,
    JWTCodecError,
    MalformedToken,
    MissingAlgorithm,
    NoneAlgorithmProhibited,
    TokenExpired,
    TokenNotYetValid,
)
from .jwks import KeySet
from .keys import KeyMaterial, key_material

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Peek = Callable[["TokenCodec", dict[str, Any]], object]

_CONFIG_FIELDS = (
    "algorithm",
    "secret",
    "public",
    "claims",
    "header",
    "expires",
    "not_before",
    "set_iat",
    "allow_none",
    "jwks",
    "clock",
)


def _b64_json(obj: Mapping[str, Any]) -> bytes:
    return base64url_encode(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def _decode_segment(segment: str, label: str) -> Any:
    try:
        return json.loads(base64url_decode(segment))
    except ValueError as exc:
        raise MalformedToken(f"invalid {label} segment: {exc}") from exc


class _ParsedToken(NamedTuple):
    header: dict[str, Any]
    claims: dict[str, Any]
    signature: bytes
    signing_input: bytes


def _as_text(token: Any) -> str:
    if isinstance(token, bytes):
        try:
            return token.decode("ascii")
        except UnicodeDecodeError as exc:
            raise MalformedToken("token is not ASCII") from exc
    if not isinstance(token, str):
        raise MalformedToken("token must be a string")
    if not token.isascii():
        raise MalformedToken("token is not ASCII")
    return token


def _parse(token: str) -> _ParsedToken:
    segments = token.strip().split(".")
    if len(segments) != 3:
        raise MalformedToken(f"expected 3 dot-separated segments, got {len(segments)}")
    hstring, cstring, sstring = segments

    header = _decode_segment(hstring, "header")
    if not isinstance(header, dict):
        raise MalformedToken("header must be a JSON object")
    claims = _decode_segment(cstring, "claims")
    if not isinstance(claims, dict):
        raise InvalidClaimsShape("claims must be a JSON object")
    try:
        signature = base64url_decode(sstring)
    except ValueError as exc:
        raise MalformedToken(f"invalid signature segment: {exc}") from exc
    return _ParsedToken(header, claims, signature, f"{hstring}.{cstring}".encode("ascii"))


def split_token(token: str | bytes) -> tuple[dict[str, Any], dict[str, Any], bytes]:
    """Parse a compact JWT into ``(header, claims, signature)`` without verifying it."""
    parsed = _parse(_as_text(token))
    return parsed.header, parsed.claims, parsed.signature


def _numeric_claim(claims: Mapping[str, Any], name: str) -> float | None:
    value = claims.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedToken(f"{name} claim must be a number")
    if not math.isfinite(value):
        raise MalformedToken(f"{name} claim must be a finite number")
    return value


class TokenCodec:
    """Encodes and decodes signed JWTs.

    Configuration and results live on the instance: ``decode`` repopulates
    ``algorithm``, ``header``, ``claims``, ``expires`` and ``not_before`` from
    the token it parsed, so one instance should not be shared across threads.
    Use :meth:`with_options` (or the module-level :func:`encode` /
    :func:`decode`) for a fresh codec per call.
    """

    def __init__(
        self,
        *,
        algorithm: str | None = "HS256",
        secret: Any = None,
        public: Any = None,
        claims: Mapping[str, Any] | None = None,
        header: Mapping[str, Any] | None = None,
        expires: float | None = None,
        not_before: float | None = None,
        set_iat: bool = False,
        allow_none: bool = False,
        jwks: KeySet | Iterable[Mapping[str, Any]] | Mapping[str, Any] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.algorithm = algorithm
        self.secret = secret
        self.public = public
        self.claims: Any = claims if claims is not None else {}
        self.header: dict[str, Any] = dict(header) if header is not None else {}
        self.expires = expires
        self.not_before = not_before
        self.set_iat = set_iat
        self.allow_none = allow_none
        self.jwks: KeySet | None = None
        if jwks is not None:
            self.add_jwks(jwks)
        self.clock: Clock = clock or time.time
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    def add_jwks(
        self, *sources: KeySet | Iterable[Mapping[str, Any]] | Mapping[str, Any]
    ) -> KeySet:
        if self.jwks is None:
            self.jwks = KeySet()
        for source in sources:
            self.jwks.extend(source)
        return self.jwks

    def with_options(self, **changes: Any) -> TokenCodec:
        unknown = set(changes) - set(_CONFIG_FIELDS)
        if unknown:
            raise TypeError(f"unknown codec option(s): {', '.join(sorted(unknown))}")
        options: dict[str, Any] = {name: getattr(self, name) for name in _CONFIG_FIELDS}
        options["claims"] = copy.copy(options["claims"])
        if options["jwks"] is not None:
            options["jwks"] = KeySet(options["jwks"])
        options.update(changes)
        return TokenCodec(**options)

    def now(self) -> int:
        return int(self.clock())

    def _key(self, field: str | None) -> KeyMaterial | None:
        if field is None:
            return None
        return key_material(getattr(self, field))

    def _effective_claims(self) -> dict[str, Any]:
        if not isinstance(self.claims, Mapping):
            raise InvalidClaimsShape("claims must be a mapping")
        claims = dict(self.claims)
        if self.set_iat:
            claims["iat"] = self.now()
        if self.expires is not None:
            claims["exp"] = self.expires
        if self.not_before is not None:
            claims["nbf"] = self.not_before
        return claims

    def encode(self) -> str:
        self._token = None

        strategy = strategy_for(self.algorithm)
        claims = self._effective_claims()
        header = dict(self.header)
        header["typ"] = "JWT"
        header["alg"] = strategy.algorithm.name

        try:
            signing_input = _b64_json(header) + b"." + _b64_json(claims)
        except (TypeError, ValueError) as exc:
            raise InvalidClaimsShape(f"header/claims are not JSON serializable: {exc}") from exc
        signature = strategy.sign(signing_input, self._key(strategy.signing_key_field))

        self._token = (signing_input + b"." + base64url_encode(signature)).decode("ascii")
        return self._token

    def _resolve_key(self, strategy: SignatureStrategy, kid: Any) -> KeyMaterial | None:
        # The resolved key is scoped to one decode; configured secret/public stay as set.
        field = strategy.verification_key_field
        if self.jwks is None or field is None:
            return None
        jwk = self.jwks.find(kid)
        if jwk is None:
            logger.debug("no key set entry matches kid %r", kid)
            return None
        key = strategy.key_from_jwk(jwk)
        logger.debug("resolved kid %r from key set as the %s key", kid, field)
        return key

    def decode(self, token: str | bytes, peek: Peek | None = None) -> dict[str, Any]:
        self.algorithm = None
        self.claims = {}
        self.header = {}
        self.expires = None
        self.not_before = None
        self._token = None

        text = _as_text(token).strip()
        self._token = text
        header, claims, signature, signing_input = _parse(text)

        header.pop("typ", None)
        algorithm = header.pop("alg", None)
        if not algorithm:
            raise MissingAlgorithm('required header field "alg" not specified')
        self.header = header
        self.algorithm = algorithm

        strategy = lookup_strategy(algorithm)
        resolved: KeyMaterial | None = None
        if strategy is not None and self.jwks and "kid" in header:
            resolved = self._resolve_key(strategy, header["kid"])

        allow_none = self.allow_none
        if peek is not None:
            peek(self, copy.deepcopy(claims))

        if strategy is None:
            # Raises the precise UnsupportedAlgorithm error.
            strategy = strategy_for(algorithm)
        if strategy.algorithm.family is Family.NONE and not allow_none:
            raise NoneAlgorithmProhibited('algorithm "none" is prohibited')
        key = resolved or self._key(strategy.verification_key_field)
        try:
            strategy.verify(signing_input, signature, key)
        except JWTCodecError as exc:
            logger.debug("%s verification failed: %s", algorithm, exc)
            raise

        now = self.now()
        exp = _numeric_claim(claims, "exp")
        if exp is not None and now > exp:
            raise TokenExpired("JWT has expired")
        nbf = _numeric_claim(claims, "nbf")
        if nbf is not None and now < nbf:
            raise TokenNotYetValid("JWT is not yet valid")
        self.expires = exp
        self.not_before = nbf

        self.claims = claims
        return claims


def encode(claims: Mapping[str, Any], **options: Any) -> str:
    return TokenCodec(claims=claims, **options).encode()


def decode(token: str | bytes, peek: Peek | None = None, **options: Any) -> dict[str, Any]:
    return TokenCodec(**options).decode(token, peek=peek)
