"""Tests for statementbot.crypto."""

import base64
import json

import pytest

from statementbot.crypto import Crypter, derive_key, generate_iv, generate_salt
from statementbot.errors import DecryptionError


@pytest.fixture(scope="module")
def crypter():
    return Crypter.from_password_and_salt("correcthorsebatterystaple", b"\x01" * 32)


def _flip_byte(envelope: str, field: str) -> str:
    blob = json.loads(base64.b64decode(envelope))
    raw = bytearray(base64.b64decode(blob[field]))
    raw[0] ^= 0x01
    blob[field] = base64.b64encode(bytes(raw)).decode()
    return base64.b64encode(json.dumps(blob).encode()).decode()


def test_generate_salt_returns_32_bytes():
    assert len(generate_salt()) == 32


def test_generate_salt_is_random():
    salts = {generate_salt() for _ in range(20)}
    assert len(salts) == 20, "Salts should be unique"


def test_generate_iv_returns_12_bytes():
    assert len(generate_iv()) == 12


def test_derive_key_is_deterministic():
    salt = generate_salt()
    assert derive_key("password", salt) == derive_key("password", salt)


def test_derive_key_is_32_bytes():
    assert len(derive_key("password", generate_salt())) == 32


def test_derive_key_differs_with_different_salt():
    assert derive_key("password", generate_salt()) != derive_key("password", generate_salt())


def test_derive_key_differs_with_different_password():
    salt = generate_salt()
    assert derive_key("pw1", salt) != derive_key("pw2", salt)


def test_from_password_returns_salt_that_reproduces_key():
    crypter, salt = Crypter.from_password("pw")
    assert len(salt) == 32
    envelope = crypter.encrypt("hello")
    assert Crypter.from_password_and_salt("pw", salt).decrypt(envelope) == "hello"


@pytest.mark.parametrize(
    "value",
    [
        "",
        "abc123",
        "√©🙋“😼”",
        42,
        12.345,
        True,
        False,
        None,
        [42, "heyo", True, False, [99], {"a": "b"}],
        {"a": 42, "b": "heyo", "c": True, "d": False, "e": [99], "f": {"yyy": "rfd"}},
    ],
)
def test_encrypt_decrypt_roundtrip(crypter, value):
    assert crypter.decrypt(crypter.encrypt(value)) == value


def test_encrypt_produces_different_envelope_each_call(crypter):
    e1 = crypter.encrypt("same data")
    e2 = crypter.encrypt("same data")
    assert e1 != e2
    assert crypter.decrypt(e1) == crypter.decrypt(e2) == "same data"


def test_envelope_format(crypter):
    blob = json.loads(base64.b64decode(crypter.encrypt({"user": "alice"})))
    assert set(blob) == {"cipherTextBase64", "authTagBase64", "initializationVectorBase64"}
    assert len(base64.b64decode(blob["authTagBase64"])) == 16
    assert len(base64.b64decode(blob["initializationVectorBase64"])) == 12


def test_ciphertext_is_not_plaintext(crypter):
    envelope = crypter.encrypt("secret-value")
    assert "secret-value" not in base64.b64decode(envelope).decode()


def test_decrypt_wrong_key_raises(crypter):
    envelope = crypter.encrypt("data")
    other = Crypter.from_password_and_salt("wrong", b"\x01" * 32)
    with pytest.raises(DecryptionError, match="Decryption failed"):
        other.decrypt(envelope)


@pytest.mark.parametrize("field", ["cipherTextBase64", "authTagBase64"])
def test_decrypt_tampered_envelope_raises(crypter, field):
    envelope = _flip_byte(crypter.encrypt("data"), field)
    with pytest.raises(DecryptionError):
        crypter.decrypt(envelope)


@pytest.mark.parametrize(
    "envelope",
    [
        "not base64!",
        base64.b64encode(b"not json").decode(),
        base64.b64encode(b'{"cipherTextBase64": "AAAA"}').decode(),
    ],
)
def test_decrypt_malformed_envelope_raises(crypter, envelope):
    with pytest.raises(DecryptionError, match="malformed"):
        crypter.decrypt(envelope)


def test_decryption_error_is_valueerror(crypter):
    with pytest.raises(ValueError):
        crypter.decrypt("garbage")


def test_crypter_rejects_short_key():
    with pytest.raises(ValueError, match="32 bytes"):
        Crypter(b"short")
