"""Encrypted preferences.

Same storage layout as plain preferences, but every file is an authenticated,
password-encrypted container:

    manager = SecurityManager("My most secure password")

    faves = {"color": "blue"}
    save(faves, APP_INFO, manager, "tests/docs/basic-example")
    assert load(dict[str, str], APP_INFO, manager, "tests/docs/basic-example") == faves

Container layout (all integers big-endian):

    magic "UPRF" | version u8 | cipher id u8 | salt[16] | nonce[12] | length u64 | ciphertext + tag[16]

The key is derived from the password with PBKDF2-HMAC-SHA256 and a fresh
random salt per container. The header is authenticated as associated data.
"""

from __future__ import annotations

import base64
import binascii
import os
import struct
from pathlib import Path
from typing import IO, Any, TypeVar

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .codec import decode, encode
from .config.model import Settings
from .errors import PreferencesIOError, SecurityError
from .observability.logging import get_logger
from .storage import compute_file_path, read_file, write_file
from .types import AppInfo, Cipher

__all__ = [
    "Cipher",
    "SecurePreferences",
    "SecurityManager",
    "load",
    "load_from",
    "save",
    "save_to",
]

T = TypeVar("T")
P = TypeVar("P", bound="SecurePreferences")

MAGIC = b"UPRF"
VERSION = 1
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32
KDF_ITERATIONS = 100_000

_HEADER = struct.Struct(f">4sBB{SALT_SIZE}s{NONCE_SIZE}sQ")

log = get_logger(__name__)


class SecurityManager:
    """Encrypts and decrypts data with a password.

    - password: the secret that allows encrypting and decrypting the information.
    - cipher: the AEAD cipher used for new containers (ChaCha20-Poly1305 by default).
      Decryption always uses the cipher recorded in the container.
    """

    def __init__(self, password: str | bytes, cipher: Cipher | None = None) -> None:
        if isinstance(password, str):
            password = password.encode("utf-8")
        self._password = bytes(password)
        self._cipher = cipher or Cipher.CHACHA20_POLY1305

    def __repr__(self) -> str:
        return f"SecurityManager(cipher={self._cipher.value!r})"

    @property
    def cipher(self) -> Cipher:
        return self._cipher

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=salt,
            iterations=KDF_ITERATIONS,
        )
        return kdf.derive(self._password)

    @staticmethod
    def _aead(cipher: Cipher, key: bytes) -> AESGCM | ChaCha20Poly1305:
        if cipher is Cipher.AES256_GCM:
            return AESGCM(key)
        return ChaCha20Poly1305(key)

    def encrypt(self, data: bytes) -> bytes:
        """Wrap `data` in an encrypted container."""

        salt = os.urandom(SALT_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        header = _HEADER.pack(MAGIC, VERSION, self._cipher.wire_id, salt, nonce, len(data))
        aead = self._aead(self._cipher, self._derive_key(salt))
        return header + aead.encrypt(nonce, bytes(data), header)

    def decrypt(self, data: bytes) -> bytes:
        """Unwrap a container produced by `encrypt`.

        Raises:
            SecurityError: On a malformed container, wrong password or tampered data.
        """

        if len(data) < _HEADER.size + TAG_SIZE:
            raise SecurityError("encrypted data is truncated")

        header = bytes(data[: _HEADER.size])
        magic, version, cipher_id, salt, nonce, length = _HEADER.unpack(header)
        if magic != MAGIC:
            raise SecurityError("not an encrypted preferences container")
        if version != VERSION:
            raise SecurityError(f"unsupported container version: {version}")
        try:
            cipher = Cipher.from_wire_id(cipher_id)
        except ValueError as e:
            raise SecurityError(str(e)) from e

        body = bytes(data[_HEADER.size :])
        if len(body) != length + TAG_SIZE:
            raise SecurityError("encrypted data length does not match its header")

        aead = self._aead(cipher, self._derive_key(salt))
        try:
            return aead.decrypt(nonce, body, header)
        except InvalidTag as e:
            raise SecurityError("decryption failed: wrong password or corrupted data") from e

    def encrypt_str(self, value: str) -> str:
        """Encrypt `value` and return the container as URL-safe base64 text."""
        return base64.urlsafe_b64encode(self.encrypt(value.encode("utf-8"))).decode("ascii")

    def decrypt_str(self, value: str) -> str:
        """Decrypt text produced by `encrypt_str`."""

        try:
            container = base64.urlsafe_b64decode(value.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError) as e:
            raise SecurityError(f"invalid encrypted text: {e}") from e
        try:
            return self.decrypt(container).decode("utf-8")
        except UnicodeDecodeError as e:
            raise SecurityError("decrypted data is not valid UTF-8") from e

    def dump(self, data: bytes, writer: IO[bytes]) -> None:
        try:
            writer.write(self.encrypt(data))
        except OSError as e:
            raise PreferencesIOError(f"cannot write encrypted preferences: {e}") from e

    def parse(self, reader: IO[bytes]) -> bytes:
        try:
            raw = reader.read()
        except OSError as e:
            raise PreferencesIOError(f"cannot read encrypted preferences: {e}") from e
        return self.decrypt(raw)


def save_to(value: Any, manager: SecurityManager, writer: IO[bytes]) -> None:
    """Same as `save`, but writes the encrypted preferences to a binary writer."""
    manager.dump(encode(value), writer)


def load_from(tp: type[T] | Any, manager: SecurityManager, reader: IO[bytes]) -> T:
    """Same as `load`, but reads the encrypted preferences from a binary reader."""
    return decode(tp, manager.parse(reader))


def save(
    value: Any,
    app: AppInfo,
    manager: SecurityManager,
    key: str,
    *,
    settings: Settings | None = None,
) -> Path:
    """Encrypt and save `value` under `key`. Returns the file written."""

    path = compute_file_path(app, key, settings=settings)
    write_file(path, manager.encrypt(encode(value)))
    log.debug("prefs_encrypted_saved", app=app.name, key=key, path=str(path), cipher=manager.cipher.value)
    return path


def load(
    tp: type[T] | Any,
    app: AppInfo,
    manager: SecurityManager,
    key: str,
    *,
    settings: Settings | None = None,
) -> T:
    """Load and decrypt the value saved under `key` as type `tp`."""

    path = compute_file_path(app, key, settings=settings)
    value = decode(tp, manager.decrypt(read_file(path)))
    log.debug("prefs_encrypted_loaded", app=app.name, key=key, path=str(path))
    return value


class SecurePreferences:
    """Mixin for types that can be saved and loaded encrypted as user data.

    The encrypted counterpart of `Preferences`; every method takes the
    `SecurityManager` holding the password.
    """

    def save(
        self,
        app: AppInfo,
        manager: SecurityManager,
        key: str,
        *,
        settings: Settings | None = None,
    ) -> Path:
        return save(self, app, manager, key, settings=settings)

    @classmethod
    def load(
        cls: type[P],
        app: AppInfo,
        manager: SecurityManager,
        key: str,
        *,
        settings: Settings | None = None,
    ) -> P:
        return load(cls, app, manager, key, settings=settings)

    def save_to(self, manager: SecurityManager, writer: IO[bytes]) -> None:
        save_to(self, manager, writer)

    @classmethod
    def load_from(cls: type[P], manager: SecurityManager, reader: IO[bytes]) -> P:
        return load_from(cls, manager, reader)
