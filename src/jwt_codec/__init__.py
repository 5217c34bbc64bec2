from .algorithms import Algorithm, Family, strategy_for, supported_algorithms
from .codec import TokenCodec, decode, encode, split_token
from .errors import (
    HmacVerificationFailed,
    InvalidClaimsShape,
    InvalidKeyMaterial,
    JWTCodecError,
    MalformedToken,
    MissingAlgorithm,
    MissingKey,
    MissingSecret,
    NoneAlgorithmProhibited,
    SignatureVerificationFailed,
    TokenExpired,
    TokenNotYetValid,
    UnsupportedAlgorithm,
)
from .jwks import KeySet, jwk_from_pem, jwk_from_secret, jwks_from_pem
from .keys import KeyHandle, PemKey, RawKey
from .version import __version__

__all__ = [
    "Algorithm",
    "Family",
    "HmacVerificationFailed",
    "InvalidClaimsShape",
    "InvalidKeyMaterial",
    "JWTCodecError",
    "KeyHandle",
    "KeySet",
    "MalformedToken",
    "MissingAlgorithm",
    "MissingKey",
    "MissingSecret",
    "NoneAlgorithmProhibited",
    "PemKey",
    "RawKey",
    "SignatureVerificationFailed",
    "TokenCodec",
    "TokenExpired",
    "TokenNotYetValid",
    "UnsupportedAlgorithm",
    "__version__",
    "decode",
    "encode",
    "jwk_from_pem",
    "jwk_from_secret",
    "jwks_from_pem",
    "split_token",
    "strategy_for",
    "supported_algorithms",
]
