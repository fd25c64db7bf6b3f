"""
Global configuration and environment handling.

This module is responsible for:
- Loading the passphrase from the environment
- Defining global constants and defaults
- Mapping user-facing log level names to logging levels

Nothing in this file should depend on:
- the filesystem
- the document formats
- secure path resolution
- CLI arguments

If something here changes, the *entire tool* behavior changes.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Final, Optional, Tuple

from .exceptions import ConfigError

# ---------------------------------------------------------------------------
# Tool versioning
# ---------------------------------------------------------------------------

TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Cipher defaults
# ---------------------------------------------------------------------------

DEFAULT_STRATEGY: Final[str] = "symmetric"
SUPPORTED_STRATEGIES: Final[Tuple[str, ...]] = ("symmetric",)
KNOWN_STRATEGIES: Final[Tuple[str, ...]] = ("symmetric", "asymmetric", "keyring")

# AES-256-CBC + HMAC-SHA256
AES_BLOCK_SIZE: Final[int] = 16
AES_IV_SIZE: Final[int] = 16
AES_KEY_SIZE: Final[int] = 32
HMAC_KEY_SIZE: Final[int] = 32
HMAC_SIZE: Final[int] = 32

# HKDF inputs; changing either invalidates every envelope ever written
KDF_SALT: Final[bytes] = b"confcrypt-symmetric-v1"
KDF_CONTEXT: Final[bytes] = b"confcrypt enc+mac keys"

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_PASSPHRASE: Final[str] = "PASSPHRASE"
ENV_EDITOR: Final[str] = "EDITOR"
ENV_VISUAL: Final[str] = "VISUAL"

DEFAULT_EDITOR: Final[str] = "vi"

# ---------------------------------------------------------------------------
# Output pseudo-paths
# ---------------------------------------------------------------------------

STDOUT_PATHS: Final[Tuple[str, ...]] = ("/dev/stdout", "-")
STDERR_PATHS: Final[Tuple[str, ...]] = ("/dev/stderr",)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

DEFAULT_LOG_LEVEL: Final[str] = "none"

LOG_LEVELS: Final[Dict[str, int]] = {
    "": logging.WARNING,
    "none": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_passphrase() -> Optional[bytes]:
    """
    Load the passphrase from the environment.

    Unlike the other sources the CLI consults, this never prompts.

    Returns:
        bytes: the raw passphrase, or None if the variable is unset or empty
    """

    raw = os.getenv(ENV_PASSPHRASE)
    if not raw:
        return None
    return raw.encode("utf-8")


def parse_log_level(name: Optional[str]) -> int:
    """
    Translate a ``--log-level`` value into a :mod:`logging` level.

    Raises:
        ConfigError: if the name is not one of none, info, debug
    """

    key = (name or "").strip().lower()
    try:
        return LOG_LEVELS[key]
    except KeyError:
        raise ConfigError(f"Unrecognized log level: {name}")


def get_editor() -> str:
    """Return the editor command line used by ``confcrypt edit``."""
    return os.getenv(ENV_VISUAL) or os.getenv(ENV_EDITOR) or DEFAULT_EDITOR
