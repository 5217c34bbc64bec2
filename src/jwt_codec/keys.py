from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class RawKey:
    value: bytes


@dataclass(frozen=True)
class PemKey:
    text: str


@dataclass(frozen=True)
class KeyHandle:
    key: Any


KeyMaterial = Union[RawKey, PemKey, KeyHandle]


def _looks_like_pem(text: str) -> bool:
    return "-----BEGIN" in text and "KEY" in text


def key_material(value: Any) -> KeyMaterial | None:
    """Coerce whatever a caller assigned to ``secret``/``public`` into a tagged key.

    Empty strings, empty bytes and ``None`` all mean "not specified".
    """
    if value is None:
        return None
    if isinstance(value, (RawKey, PemKey, KeyHandle)):
        return value
    if isinstance(value, str):
        if not value:
            return None
        if _looks_like_pem(value):
            return PemKey(value)
        return RawKey(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray)):
        if not value:
            return None
        return RawKey(bytes(value))
    return KeyHandle(value)


def key_input(material: KeyMaterial) -> Any:
    # What the PyJWT algorithm objects accept in prepare_key().
    if isinstance(material, RawKey):
        return material.value
    if isinstance(material, PemKey):
        return material.text
    return material.key
