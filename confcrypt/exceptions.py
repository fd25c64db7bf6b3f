"""
Exceptions for confcrypt.

Everything the library raises on purpose derives from ConfcryptError so
callers can catch one type. File I/O failures are left as the built-in
OSError subclasses.
"""

from __future__ import annotations

from typing import Iterable, List


class ConfcryptError(Exception):
    # general container for errors
    pass


class ConfigError(ConfcryptError):
    # missing or contradictory options, unsupported format or strategy,
    # malformed secure path
    pass


class PathResolutionError(ConfigError):
    """One or more secure paths could not be located in the document."""

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("\n".join(self.errors))


class ParseError(ConfcryptError):
    # raised when input bytes are not valid for the declared format
    pass


class SerializeError(ConfcryptError):
    # raised when a tree cannot be written in the requested format
    pass


class DecryptionError(ConfcryptError):
    # raised for any envelope that fails to decrypt; deliberately vague
    pass
