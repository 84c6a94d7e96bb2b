from __future__ import annotations

import io
from dataclasses import dataclass

import pytest

from user_preferences import AppInfo, Cipher, PreferencesMap, SecurityError, Settings, compute_file_path
from user_preferences import security
from user_preferences.security import MAGIC, SecurePreferences, SecurityManager


@dataclass
class PlayerData(SecurePreferences):
    level: int
    health: float


@pytest.mark.parametrize("cipher", list(Cipher))
def test_encrypt_decrypt_roundtrip(cipher: Cipher) -> None:
    manager = SecurityManager("My most secure password", cipher)
    container = manager.encrypt(b"hello world")

    assert container.startswith(MAGIC)
    assert b"hello world" not in container
    assert manager.decrypt(container) == b"hello world"


def test_each_encryption_is_salted() -> None:
    manager = SecurityManager("pw")
    assert manager.encrypt(b"same") != manager.encrypt(b"same")


def test_decrypt_uses_cipher_from_container() -> None:
    writer = SecurityManager("pw", Cipher.AES256_GCM)
    reader = SecurityManager("pw")
    assert reader.decrypt(writer.encrypt(b"data")) == b"data"


def test_wrong_password_is_rejected() -> None:
    container = SecurityManager("right").encrypt(b"secret")
    with pytest.raises(SecurityError):
        SecurityManager("wrong").decrypt(container)


def test_tampered_container_is_rejected() -> None:
    manager = SecurityManager("pw")
    container = bytearray(manager.encrypt(b"secret"))
    container[-1] ^= 0x01
    with pytest.raises(SecurityError):
        manager.decrypt(bytes(container))


def test_tampered_header_is_rejected() -> None:
    manager = SecurityManager("pw")
    container = bytearray(manager.encrypt(b"secret"))
    container[5] = Cipher.AES256_GCM.wire_id
    with pytest.raises(SecurityError):
        manager.decrypt(bytes(container))


def _with_header_byte(index: int, value: int) -> bytes:
    container = bytearray(SecurityManager("pw").encrypt(b"secret"))
    container[index] = value
    return bytes(container)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"UPRF",
        b"NOPE" + bytes(64),
        _with_header_byte(4, 2),  # version
        _with_header_byte(5, 99),  # cipher id
    ],
)
def test_malformed_container_is_rejected(data: bytes) -> None:
    with pytest.raises(SecurityError):
        SecurityManager("pw").decrypt(data)


def test_header_is_checked_before_decrypting() -> None:
    with pytest.raises(SecurityError, match="version: 2"):
        SecurityManager("pw").decrypt(_with_header_byte(4, 2))
    with pytest.raises(SecurityError, match="99"):
        SecurityManager("pw").decrypt(_with_header_byte(5, 99))


def test_encrypt_str_roundtrip() -> None:
    manager = SecurityManager("pw")
    token = manager.encrypt_str("Python ✓")
    assert token.isascii()
    assert manager.decrypt_str(token) == "Python ✓"


def test_decrypt_str_rejects_garbage() -> None:
    with pytest.raises(SecurityError):
        SecurityManager("pw").decrypt_str("not base64!")


def test_manager_repr_hides_password() -> None:
    assert "hunter2" not in repr(SecurityManager("hunter2"))


def test_secure_save_and_load(app: AppInfo, settings: Settings) -> None:
    manager = SecurityManager("My most secure password")
    faves = PreferencesMap(color="blue")

    path = security.save(faves, app, manager, "tests/docs/basic-example", settings=settings)
    assert path == compute_file_path(app, "tests/docs/basic-example", settings=settings)
    assert b"blue" not in path.read_bytes()

    loaded = security.load(PreferencesMap, app, manager, "tests/docs/basic-example", settings=settings)
    assert isinstance(loaded, PreferencesMap)
    assert loaded == faves


def test_secure_preferences_mixin(app: AppInfo, settings: Settings) -> None:
    manager = SecurityManager("My most secure password", Cipher.AES256_GCM)
    player = PlayerData(level=2, health=0.75)

    player.save(app, manager, "tests/docs/custom-types", settings=settings)
    assert PlayerData.load(app, manager, "tests/docs/custom-types", settings=settings) == player

    with pytest.raises(SecurityError):
        PlayerData.load(app, SecurityManager("guess"), "tests/docs/custom-types", settings=settings)


def test_secure_stream_roundtrip() -> None:
    manager = SecurityManager("pw")
    buf = io.BytesIO()
    PlayerData(level=1, health=1.0).save_to(manager, buf)

    buf.seek(0)
    assert PlayerData.load_from(manager, buf) == PlayerData(level=1, health=1.0)
