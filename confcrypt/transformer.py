"""
Document transformation: encrypt or decrypt the values at secure paths.

This module ties the pieces together: parse once, resolve the secure
paths, run each located value through the cipher and render the result.
It is intentionally dumb about where paths and passphrases come from.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, BinaryIO, Callable, List, Optional, Sequence

from .cipher import SimpleCipher, SymmetricCipher
from .exceptions import ConfigError, DecryptionError
from .formats import format_from_path, normalize_format, parse, scalar_text, serialize
from .paths import parse_path, resolve
from .utils import WriteMode, write_output

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tree transforms
# ---------------------------------------------------------------------------


def _transform(tree: Any, paths: Sequence[str], convert: Callable[[str, Any], str]) -> Any:
    result = copy.deepcopy(tree)
    seen = set()

    for resolved in resolve(result, paths):
        identity = resolved.locator.identity
        if identity in seen:
            logger.debug("Skipping repeated secure path %s", resolved.path)
            continue
        seen.add(identity)
        resolved.locator.set(convert(resolved.path, resolved.value))

    logger.debug("Transformed %d value(s)", len(seen))
    return result


def encrypt_tree(tree: Any, paths: Sequence[str], cipher: SimpleCipher) -> Any:
    """Return a copy of ``tree`` with every secure path encrypted."""

    def convert(path: str, value: Any) -> str:
        return cipher.encrypt(scalar_text(value))

    return _transform(tree, paths, convert)


def decrypt_tree(tree: Any, paths: Sequence[str], cipher: SimpleCipher) -> Any:
    """
    Return a copy of ``tree`` with every secure path decrypted.

    Raises:
        DecryptionError: naming the first path whose value does not decrypt
    """

    def convert(path: str, value: Any) -> str:
        if not isinstance(value, str):
            raise DecryptionError(f"decryption failed for secure path `{path}`")
        try:
            return cipher.decrypt(value)
        except DecryptionError:
            raise DecryptionError(f"decryption failed for secure path `{path}`") from None

    return _transform(tree, paths, convert)


# ---------------------------------------------------------------------------
# EnvFile
# ---------------------------------------------------------------------------


class EnvFile:
    """
    One parsed config file plus everything needed to transform it.

    An EnvFile belongs to a single command invocation.
    """

    def __init__(
        self,
        fmt: str,
        cipher: SimpleCipher,
        secure_paths: Sequence[str],
        data: Optional[bytes | str] = None,
        reader: Optional[BinaryIO] = None,
    ):
        if (data is None) == (reader is None):
            raise ConfigError("EnvFile needs exactly one of data or reader")
        if not secure_paths:
            raise ConfigError("No secure paths given")

        self.format = normalize_format(fmt)
        self.cipher = cipher
        self.secure_paths: List[str] = list(secure_paths)

        # Reject malformed paths before doing any work
        for path in self.secure_paths:
            parse_path(path)

        raw = data if data is not None else reader.read()
        self.tree = parse(self.format, raw)

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        cipher: SimpleCipher,
        secure_paths: Sequence[str],
        fmt: Optional[str] = None,
    ) -> "EnvFile":
        """Read and parse ``path``; the format is inferred if not given."""

        fmt = fmt or format_from_path(path)
        with Path(path).open("rb") as fh:
            return cls(fmt, cipher, secure_paths, reader=fh)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self) -> Any:
        return encrypt_tree(self.tree, self.secure_paths, self.cipher)

    def decrypt(self) -> Any:
        return decrypt_tree(self.tree, self.secure_paths, self.cipher)

    def export(self, fmt: Optional[str] = None, decrypt: bool = False) -> bytes:
        """
        Transform and render the document.

        Args:
            fmt: output format, defaults to the source format
            decrypt: decrypt instead of encrypt
        """

        tree = self.decrypt() if decrypt else self.encrypt()
        return serialize(fmt or self.format, tree)

    def export_file(
        self,
        path: str | Path,
        fmt: Optional[str] = None,
        mode: WriteMode = WriteMode.EXCLUSIVE,
        decrypt: bool = False,
    ) -> None:
        """
        Transform, render and write the document.

        Nothing is opened until the buffer is fully rendered, so a failed
        transform never leaves a partial output file behind.
        """

        buff = self.export(fmt, decrypt=decrypt)
        write_output(path, buff, mode)


# ---------------------------------------------------------------------------
# Whole-file helpers
# ---------------------------------------------------------------------------


def encrypt_file(
    cipher: SymmetricCipher,
    in_path: str | Path,
    out_path: str | Path,
    mode: WriteMode = WriteMode.EXCLUSIVE,
) -> None:
    """Seal an entire file into a single hex envelope."""
    data = Path(in_path).read_bytes()
    envelope = cipher.encrypt_bytes(data).hex() + "\n"
    write_output(out_path, envelope.encode("ascii"), mode)


def decrypt_file(
    cipher: SymmetricCipher,
    in_path: str | Path,
    out_path: str | Path,
    mode: WriteMode = WriteMode.EXCLUSIVE,
) -> None:
    """
    Reverse :func:`encrypt_file`.

    Raises:
        DecryptionError: if the file is not a valid envelope for this cipher
    """

    text = Path(in_path).read_text(encoding="ascii", errors="replace")
    try:
        blob = bytes.fromhex(text.strip())
    except ValueError:
        raise DecryptionError("decryption failed") from None
    write_output(out_path, cipher.decrypt_bytes(blob), mode)
