"""
Shared filesystem helpers.

This module contains small, reusable helpers that do not belong
to formats, path resolution, or encryption.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from .config import STDERR_PATHS, STDOUT_PATHS

logger = logging.getLogger(__name__)


class WriteMode(enum.Enum):
    # refuse to touch an existing file
    EXCLUSIVE = "exclusive"
    # replace the file, used when input and output are the same path
    TRUNCATE = "truncate"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def same_file(a: str | Path, b: str | Path) -> bool:
    """True if both paths name the same file (existing or not)."""
    a, b = Path(a), Path(b)
    try:
        return a.samefile(b)
    except OSError:
        return a.resolve() == b.resolve()


def write_mode_for(in_path: str | Path, out_path: str | Path) -> WriteMode:
    """In-place edits overwrite; anything else must be a new file."""
    if same_file(in_path, out_path):
        return WriteMode.TRUNCATE
    return WriteMode.EXCLUSIVE


def standard_stream(path: str | Path) -> Optional[BinaryIO]:
    """Return the binary stream a pseudo-path stands for, if any."""
    name = str(path)
    if name in STDOUT_PATHS:
        return sys.stdout.buffer
    if name in STDERR_PATHS:
        return sys.stderr.buffer
    return None


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory of a file exists."""
    path.parent.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def write_exclusive(path: Path, data: bytes) -> None:
    """
    Create ``path`` and write ``data`` to it.

    Raises:
        FileExistsError: if the path already exists
    """

    ensure_parent_dir(path)
    with path.open("xb") as fh:
        fh.write(data)


def write_atomic(path: Path, data: bytes) -> None:
    """
    Replace ``path`` with ``data`` via a temp file in the same directory.

    Readers see either the old content or the new one, never a mix. The
    mode bits of an existing file are kept.
    """

    ensure_parent_dir(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        if path.exists():
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def write_output(path: str | Path, data: bytes, mode: WriteMode = WriteMode.EXCLUSIVE) -> None:
    """
    Write a fully rendered buffer to ``path``.

    ``/dev/stdout``, ``-`` and ``/dev/stderr`` print instead of opening a file.
    """

    stream = standard_stream(path)
    if stream is not None:
        stream.write(data)
        stream.flush()
        return

    path = Path(path)
    if mode is WriteMode.TRUNCATE:
        write_atomic(path, data)
    else:
        write_exclusive(path, data)
    logger.info("Wrote %d bytes to %s", len(data), path)
