"""
Unit tests for confcrypt.cipher.
"""

import string

import pytest
from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes

from confcrypt import cipher as cipher_mod
from confcrypt.cipher import (
    DerivedKeys,
    HKDFKeyDerivation,
    KeyDerivation,
    SymmetricCipher,
    new_cipher,
    pkcs7_pad,
    pkcs7_unpad,
    sign,
    verify,
)
from confcrypt.exceptions import ConfigError, DecryptionError


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def cipher():
    return SymmetricCipher(b"testing")


# ==============================================================================
# Tests: Padding
# ==============================================================================

def test_padding_matches_pkcs7():
    """Three bytes in a 16-byte block get thirteen 0x0d pad bytes."""
    padded = pkcs7_pad(bytes([1, 1, 1]), 16)
    assert padded.hex() == "010101" + "0d" * 13
    assert pkcs7_unpad(padded, 16) == bytes([1, 1, 1])


@pytest.mark.parametrize("length", list(range(0, 49)))
def test_padding_length_and_restore(length):
    data = bytes(range(length))
    padded = pkcs7_pad(data)
    pad_len = len(padded) - length

    assert 1 <= pad_len <= 16
    assert pad_len == 16 - (length % 16)
    assert padded[-pad_len:] == bytes([pad_len]) * pad_len
    assert pkcs7_unpad(padded) == data


def test_unpad_rejects_inconsistent_padding():
    block = b"A" * 13 + b"\x01\x02\x03"
    with pytest.raises(DecryptionError, match="decryption failed"):
        pkcs7_unpad(block)


def test_unpad_rejects_zero_padding():
    with pytest.raises(DecryptionError):
        pkcs7_unpad(b"A" * 15 + b"\x00")


# ==============================================================================
# Tests: Signing
# ==============================================================================

def test_sign_verify():
    signature = sign(b"testkey", b"some data")
    assert verify(b"testkey", b"some data", signature)
    assert not verify(b"badkey", b"some data", signature)
    assert not verify(b"testkey", b"bad data", signature)


def test_verify_rejects_truncated_signature():
    signature = sign(b"testkey", b"some data")
    assert not verify(b"testkey", b"some data", signature[:-1])


# ==============================================================================
# Tests: Key derivation
# ==============================================================================

def test_hkdf_derivation_is_deterministic():
    a = HKDFKeyDerivation().derive(b"testing")
    b = HKDFKeyDerivation().derive(b"testing")
    assert a == b


def test_hkdf_derivation_produces_two_distinct_keys():
    keys = HKDFKeyDerivation().derive(b"testing")
    assert len(keys.encryption_key) == 32
    assert len(keys.signing_key) == 32
    assert keys.encryption_key != keys.signing_key


def test_hkdf_derivation_depends_on_passphrase():
    a = HKDFKeyDerivation().derive(b"testing")
    b = HKDFKeyDerivation().derive(b"testing2")
    assert a.encryption_key != b.encryption_key
    assert a.signing_key != b.signing_key


def test_derived_keys_are_not_in_repr():
    keys = HKDFKeyDerivation().derive(b"testing")
    assert keys.encryption_key.hex() not in repr(keys)


def test_custom_derivation_is_used():
    class FixedDerivation(KeyDerivation):
        def derive(self, passphrase):
            return DerivedKeys(b"\x01" * 32, b"\x02" * 32)

    a = SymmetricCipher(b"one", derivation=FixedDerivation())
    b = SymmetricCipher(b"two", derivation=FixedDerivation())
    assert b.decrypt(a.encrypt("shared")) == "shared"


def test_derivation_reusing_one_key_is_rejected():
    class SameKey(KeyDerivation):
        def derive(self, passphrase):
            return DerivedKeys(b"\x01" * 32, b"\x01" * 32)

    with pytest.raises(ConfigError, match="distinct"):
        SymmetricCipher(b"pass", derivation=SameKey())


def test_derivation_with_wrong_key_size_is_rejected():
    class Short(KeyDerivation):
        def derive(self, passphrase):
            return DerivedKeys(b"\x01" * 16, b"\x02" * 32)

    with pytest.raises(ConfigError, match="wrong size"):
        SymmetricCipher(b"pass", derivation=Short())


# ==============================================================================
# Tests: Symmetric encryption
# ==============================================================================

@pytest.mark.parametrize(
    "plaintext",
    [
        "foobar - some hello world text blah blah",
        "",
        "s3cr3t",
        "x" * 16,
        "multi\nline\nvalue",
        "ünïcødé 🔒",
    ],
)
def test_encrypt_decrypt_roundtrip(cipher, plaintext):
    envelope = cipher.encrypt(plaintext)
    assert envelope != plaintext.encode("utf-8").hex()
    assert cipher.decrypt(envelope) == plaintext


def test_envelope_is_lowercase_hex(cipher):
    envelope = cipher.encrypt("s3cr3t")
    assert set(envelope) <= set(string.hexdigits.lower())
    # IV + one block + HMAC
    assert len(bytes.fromhex(envelope)) == 16 + 16 + 32


def test_fresh_iv_per_encryption(cipher):
    a = cipher.encrypt("same value")
    b = cipher.encrypt("same value")
    assert a != b
    assert a[:32] != b[:32]


def test_str_and_bytes_passphrase_are_equivalent():
    envelope = SymmetricCipher("testing").encrypt("value")
    assert SymmetricCipher(b"testing").decrypt(envelope) == "value"


def test_bad_passphrase_fails():
    envelope = SymmetricCipher(b"testing").encrypt("some test text")
    with pytest.raises(DecryptionError, match="decryption failed"):
        SymmetricCipher(b"bad pass").decrypt(envelope)


def test_empty_passphrase_is_rejected():
    with pytest.raises(ConfigError):
        SymmetricCipher(b"")


def test_tampering_any_bit_fails(cipher):
    """Flipping a bit anywhere in the envelope must be caught."""
    raw = bytearray(bytes.fromhex(cipher.encrypt("tamper me please")))
    for i in range(len(raw)):
        tampered = bytearray(raw)
        tampered[i] ^= 0x01
        with pytest.raises(DecryptionError):
            cipher.decrypt(bytes(tampered).hex())


def test_signature_checked_before_unpadding(cipher, monkeypatch):
    """A bad signature must be rejected without ever unpadding."""
    calls = []

    def spy(data, block_size=16):
        calls.append(data)
        return data

    monkeypatch.setattr(cipher_mod, "pkcs7_unpad", spy)

    raw = bytearray(bytes.fromhex(cipher.encrypt("oracle")))
    raw[20] ^= 0xFF
    with pytest.raises(DecryptionError):
        cipher.decrypt(bytes(raw).hex())
    assert calls == []


def test_bad_padding_with_valid_signature_fails(cipher):
    """Correctly signed but badly padded ciphertext is still a decryption failure."""
    keys = cipher._keys
    iv = get_random_bytes(16)
    bad_block = b"A" * 15 + b"\x07"
    ct = AES.new(keys.encryption_key, AES.MODE_CBC, iv=iv).encrypt(bad_block)
    blob = iv + ct + sign(keys.signing_key, iv + ct)

    with pytest.raises(DecryptionError, match="^decryption failed$"):
        cipher.decrypt(blob.hex())


@pytest.mark.parametrize(
    "envelope",
    [
        "",
        "not hex at all",
        "abc",
        "00" * 16,
        "00" * (16 + 16 + 32 + 1),
        "00" * (16 + 8 + 32),
    ],
)
def test_malformed_envelopes_fail(cipher, envelope):
    with pytest.raises(DecryptionError, match="^decryption failed$"):
        cipher.decrypt(envelope)


def test_encrypt_decrypt_bytes_roundtrip(cipher):
    data = get_random_bytes(1000)
    blob = cipher.encrypt_bytes(data)
    assert cipher.decrypt_bytes(blob) == data


# ==============================================================================
# Tests: Strategy selection
# ==============================================================================

def test_new_cipher_symmetric():
    c = new_cipher("symmetric", b"testing")
    assert isinstance(c, SymmetricCipher)
    assert c.decrypt(c.encrypt("v")) == "v"


@pytest.mark.parametrize("strategy", ["asymmetric", "keyring", "rot13", ""])
def test_new_cipher_unsupported(strategy):
    with pytest.raises(ConfigError, match="Unsupported strategy"):
        new_cipher(strategy, b"testing")
