"""
Value encryption: passphrase-derived AES-256-CBC with HMAC-SHA256.

A single value is turned into an envelope::

    hex( IV (16) || AES-CBC(PKCS#7(plaintext)) || HMAC-SHA256(IV || ciphertext) )

The signature is always checked before the ciphertext is decrypted or
unpadded, and every failure mode on the way back is reported as the same
DecryptionError so that a caller cannot learn which check rejected the input.

This module knows nothing about documents, paths or files.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Union

from Crypto.Cipher import AES
from Crypto.Hash import HMAC, SHA256
from Crypto.Protocol.KDF import HKDF
from Crypto.Random import get_random_bytes
from Crypto.Util.Padding import pad, unpad

from .config import (
    AES_BLOCK_SIZE,
    AES_IV_SIZE,
    AES_KEY_SIZE,
    HMAC_KEY_SIZE,
    HMAC_SIZE,
    KDF_CONTEXT,
    KDF_SALT,
    KNOWN_STRATEGIES,
    SUPPORTED_STRATEGIES,
)
from .exceptions import ConfigError, DecryptionError

logger = logging.getLogger(__name__)

DECRYPTION_FAILED = "decryption failed"

Passphrase = Union[str, bytes]


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class SimpleCipher(ABC):
    """Encrypts and decrypts single string values."""

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """Return a printable envelope for ``plaintext``."""

    @abstractmethod
    def decrypt(self, envelope: str) -> str:
        """
        Return the plaintext sealed in ``envelope``.

        Raises:
            DecryptionError: for any envelope that does not decrypt
        """


@dataclass(frozen=True)
class DerivedKeys:
    encryption_key: bytes = field(repr=False)
    signing_key: bytes = field(repr=False)


class KeyDerivation(ABC):
    """Turns passphrase bytes into an (encryption key, signing key) pair."""

    @abstractmethod
    def derive(self, passphrase: bytes) -> DerivedKeys:
        ...


class HKDFKeyDerivation(KeyDerivation):
    """
    HKDF-SHA256 expansion of the passphrase into two independent keys.

    The salt and context are fixed so the same passphrase always yields the
    same keys; envelopes carry no salt.
    """

    def __init__(self, salt: bytes = KDF_SALT, context: bytes = KDF_CONTEXT):
        self.salt = salt
        self.context = context

    def derive(self, passphrase: bytes) -> DerivedKeys:
        enc_key, mac_key = HKDF(
            passphrase,
            AES_KEY_SIZE,
            self.salt,
            SHA256,
            num_keys=2,
            context=self.context,
        )
        return DerivedKeys(encryption_key=enc_key, signing_key=mac_key)


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def pkcs7_pad(data: bytes, block_size: int = AES_BLOCK_SIZE) -> bytes:
    """Pad ``data`` to a multiple of ``block_size`` (always 1..block_size bytes)."""
    return pad(data, block_size, style="pkcs7")


def pkcs7_unpad(data: bytes, block_size: int = AES_BLOCK_SIZE) -> bytes:
    """
    Strip PKCS#7 padding.

    Raises:
        DecryptionError: if the trailing bytes are not valid padding
    """
    try:
        return unpad(data, block_size, style="pkcs7")
    except ValueError:
        raise DecryptionError(DECRYPTION_FAILED) from None


def sign(key: bytes, data: bytes) -> bytes:
    """HMAC-SHA256 of ``data`` under ``key``."""
    return HMAC.new(key, msg=data, digestmod=SHA256).digest()


def verify(key: bytes, data: bytes, signature: bytes) -> bool:
    """Check ``signature`` against ``data`` without early exit on mismatch."""
    try:
        HMAC.new(key, msg=data, digestmod=SHA256).verify(signature)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Symmetric strategy
# ---------------------------------------------------------------------------


class SymmetricCipher(SimpleCipher):
    """
    Passphrase based cipher.

    Keys are derived once in the constructor and live only as long as this
    object does.
    """

    def __init__(
        self,
        passphrase: Passphrase,
        derivation: Optional[KeyDerivation] = None,
    ):
        if isinstance(passphrase, str):
            passphrase = passphrase.encode("utf-8")
        if not passphrase:
            raise ConfigError("Passphrase must not be empty")

        keys = (derivation or HKDFKeyDerivation()).derive(bytes(passphrase))
        if len(keys.encryption_key) != AES_KEY_SIZE or len(keys.signing_key) != HMAC_KEY_SIZE:
            raise ConfigError("Key derivation produced keys of the wrong size")
        if keys.encryption_key == keys.signing_key:
            raise ConfigError("Key derivation must produce distinct keys")

        self._keys = keys

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: str) -> str:
        return self.encrypt_bytes(plaintext.encode("utf-8")).hex()

    def decrypt(self, envelope: str) -> str:
        try:
            raw = bytes.fromhex(envelope.strip())
        except (ValueError, AttributeError):
            raise DecryptionError(DECRYPTION_FAILED) from None

        plaintext = self.decrypt_bytes(raw)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError(DECRYPTION_FAILED) from None

    def encrypt_bytes(self, data: bytes) -> bytes:
        """Seal raw bytes; returns IV || ciphertext || signature."""
        iv = get_random_bytes(AES_IV_SIZE)
        cipher = AES.new(self._keys.encryption_key, AES.MODE_CBC, iv=iv)
        ciphertext = cipher.encrypt(pkcs7_pad(data))
        signed = iv + ciphertext
        return signed + sign(self._keys.signing_key, signed)

    def decrypt_bytes(self, blob: bytes) -> bytes:
        """Open a blob produced by :meth:`encrypt_bytes`."""
        body_len = len(blob) - AES_IV_SIZE - HMAC_SIZE
        if body_len < AES_BLOCK_SIZE or body_len % AES_BLOCK_SIZE:
            raise DecryptionError(DECRYPTION_FAILED)

        signed, signature = blob[:-HMAC_SIZE], blob[-HMAC_SIZE:]

        # Authenticate before touching the ciphertext
        if not verify(self._keys.signing_key, signed, signature):
            logger.debug("Envelope signature mismatch")
            raise DecryptionError(DECRYPTION_FAILED)

        iv, ciphertext = signed[:AES_IV_SIZE], signed[AES_IV_SIZE:]
        cipher = AES.new(self._keys.encryption_key, AES.MODE_CBC, iv=iv)
        return pkcs7_unpad(cipher.decrypt(ciphertext))


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------


def normalize_strategy(strategy: Optional[str]) -> str:
    """
    Raises:
        ConfigError: for strategies that are unknown or not implemented
    """

    name = (strategy or "").strip().lower()
    if name not in SUPPORTED_STRATEGIES:
        if name in KNOWN_STRATEGIES:
            logger.debug("Strategy %s is recognized but not implemented", name)
        raise ConfigError(f"Unsupported strategy: {strategy}")
    return name


def new_cipher(strategy: str, passphrase: Passphrase) -> SimpleCipher:
    """Build the cipher for ``strategy``."""

    name = normalize_strategy(strategy)
    logger.debug("Using %s cipher", name)
    return SymmetricCipher(passphrase)
