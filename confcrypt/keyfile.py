"""
Secure path list loading.

This module answers one question:
    "Which values does the user want protected?"

A key file lists one secure path per line. Surrounding whitespace is
ignored, as are blank lines and lines starting with ``#``.

This module does NOT:
- Validate path syntax (see confcrypt.paths)
- Look at the document being transformed
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


def parse_key_lines(lines: Iterable[str]) -> List[str]:
    """Return the secure paths found in ``lines``, in order."""
    keys: List[str] = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        logger.debug("Read key from file: %s", line)
        keys.append(line)
    return keys


def load_key_file(path: str | Path) -> List[str]:
    """
    Load secure paths from a newline-delimited file.

    Raises:
        OSError: if the file cannot be read
    """

    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        return parse_key_lines(fh)


def get_secure_paths(
    keys: Optional[Sequence[str]] = None,
    key_file: Optional[str | Path] = None,
) -> List[str]:
    """
    Pick the secure paths from either literal keys or a key file.

    Raises:
        ConfigError: if neither or both sources are given, or the result
            is empty
    """

    if keys and key_file:
        raise ConfigError("Use either --key or --key-file, not both")
    if not keys and not key_file:
        raise ConfigError("You must specify either --key or --key-file")

    paths = list(keys) if keys else load_key_file(key_file)
    if not paths:
        raise ConfigError(f"No secure paths found in {key_file}")

    logger.debug("Loaded keys: %s", paths)
    return paths
