"""
confcrypt

Encrypts selected values inside JSON, YAML and dotenv config files so that
the files can be committed to version control while the rest of their
content stays readable.
"""

__version__ = "0.1.0"

from .cipher import SimpleCipher, SymmetricCipher, new_cipher
from .exceptions import (
    ConfcryptError,
    ConfigError,
    DecryptionError,
    ParseError,
    PathResolutionError,
    SerializeError,
)
from .formats import format_from_path, parse, serialize
from .paths import resolve
from .transformer import EnvFile, decrypt_tree, encrypt_tree
from .utils import WriteMode

__all__ = [
    "SimpleCipher",
    "SymmetricCipher",
    "new_cipher",
    "ConfcryptError",
    "ConfigError",
    "DecryptionError",
    "ParseError",
    "PathResolutionError",
    "SerializeError",
    "format_from_path",
    "parse",
    "serialize",
    "resolve",
    "EnvFile",
    "encrypt_tree",
    "decrypt_tree",
    "WriteMode",
]
