from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class AppInfo:
    """Identity of the calling program.

    It's recommended to create a single module-level constant for your program:

        APP_INFO = AppInfo(name="Awesome App", author="Dedicated Dev")
    """

    name: str
    author: str


class AppDataType(str, Enum):
    USER_CONFIG = "user_config"
    USER_DATA = "user_data"
    USER_CACHE = "user_cache"
    SHARED_DATA = "shared_data"
    SHARED_CONFIG = "shared_config"

    @property
    def is_shared(self) -> bool:
        return self in (AppDataType.SHARED_DATA, AppDataType.SHARED_CONFIG)


class Cipher(str, Enum):
    """AEAD ciphers available for encrypted preferences."""

    CHACHA20_POLY1305 = "chacha20-poly1305"
    AES256_GCM = "aes256-gcm"

    @property
    def wire_id(self) -> int:
        return _CIPHER_IDS[self]

    @classmethod
    def from_wire_id(cls, value: int) -> Cipher:
        for cipher, wire_id in _CIPHER_IDS.items():
            if wire_id == value:
                return cipher
        raise ValueError(f"unknown cipher id: {value}")


_CIPHER_IDS = {
    Cipher.CHACHA20_POLY1305: 1,
    Cipher.AES256_GCM: 2,
}
