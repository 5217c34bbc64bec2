from __future__ import annotations

from jwt import exceptions as jwt_exceptions


class JWTCodecError(jwt_exceptions.PyJWTError):
    pass


class MalformedToken(JWTCodecError, jwt_exceptions.DecodeError):
    pass


class InvalidClaimsShape(MalformedToken):
    pass


class MissingAlgorithm(JWTCodecError, jwt_exceptions.DecodeError):
    pass


class UnsupportedAlgorithm(JWTCodecError, jwt_exceptions.InvalidAlgorithmError):
    pass


class NoneAlgorithmProhibited(JWTCodecError, jwt_exceptions.InvalidAlgorithmError):
    pass


class MissingKey(JWTCodecError, jwt_exceptions.InvalidKeyError):
    def __init__(self, message: str, *, side: str) -> None:
        super().__init__(message)
        self.side = side


class MissingSecret(MissingKey):
    def __init__(self, message: str = "secret not specified") -> None:
        super().__init__(message, side="secret")


class InvalidKeyMaterial(JWTCodecError, jwt_exceptions.InvalidKeyError):
    pass


class SignatureVerificationFailed(JWTCodecError, jwt_exceptions.InvalidSignatureError):
    pass


class HmacVerificationFailed(SignatureVerificationFailed):
    pass


class TokenExpired(JWTCodecError, jwt_exceptions.ExpiredSignatureError):
    pass


class TokenNotYetValid(JWTCodecError, jwt_exceptions.ImmatureSignatureError):
    pass
