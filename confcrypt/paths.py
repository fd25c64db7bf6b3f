"""
Secure path parsing and resolution.

Given a document tree and a list of secure paths, this module finds the
scalar leaf each path points at and hands back a locator for it.

Paths DO NOT change the tree. They only return locators.

Syntax: ``db.password``, ``items[2].token``, ``[0].name``, ``grid[1][0]``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Hashable, List, Sequence, Tuple, Union

from .exceptions import ConfigError, PathResolutionError
from .formats import scalar_text

logger = logging.getLogger(__name__)

Segment = Union[str, int]

_SEGMENT = re.compile(r"^(?P<key>[^\[\]]*)(?P<indices>(?:\[\d+\])*)$")
_INDEX = re.compile(r"\[(\d+)\]")


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Locator:
    """A replaceable slot in the tree: ``parent[key]``."""

    parent: Any
    key: Hashable

    def get(self) -> Any:
        return self.parent[self.key]

    def set(self, value: Any) -> None:
        self.parent[self.key] = value

    @property
    def identity(self) -> Tuple[int, Hashable]:
        """Two locators with the same identity address the same leaf."""
        return id(self.parent), self.key


@dataclass(frozen=True)
class ResolvedPath:
    path: str
    locator: Locator
    value: Any


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_path(path: str) -> List[Segment]:
    """
    Split a secure path into mapping keys (str) and sequence indices (int).

    Raises:
        ConfigError: if the path is empty or malformed
    """

    if not path or not path.strip():
        raise ConfigError("Secure path must not be empty")

    segments: List[Segment] = []
    for part in path.split("."):
        match = _SEGMENT.match(part)
        if not match:
            raise ConfigError(f"Invalid secure path `{path}`")

        key, indices = match.group("key"), match.group("indices")
        if not key and not indices:
            raise ConfigError(f"Invalid secure path `{path}` (empty segment)")

        if key:
            segments.append(key)
        segments.extend(int(idx) for idx in _INDEX.findall(indices))

    return segments


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _describe(segments: Sequence[Segment]) -> str:
    out = ""
    for seg in segments:
        if isinstance(seg, int):
            out += f"[{seg}]"
        else:
            out += f".{seg}" if out else seg
    return out or "<root>"


def _mapping_key(node: dict, seg: str) -> Hashable:
    """
    Find the key ``seg`` names in ``node``.

    YAML keys such as ``1:`` or ``true:`` load as int or bool; they match
    the segment written the way they print (``1``, ``true``).
    """
    if seg in node:
        return seg
    for key in node:
        if not isinstance(key, str) and scalar_text(key) == seg:
            return key
    raise LookupError(f"missing key `{seg}`")


def _locate(tree: Any, segments: Sequence[Segment]) -> Locator:
    """Walk ``segments``; raises LookupError with a short reason on failure."""
    node = tree
    locator = None

    for depth, seg in enumerate(segments):
        here = _describe(segments[:depth]) if depth else "<root>"
        if isinstance(seg, int):
            if not isinstance(node, list):
                raise LookupError(f"`{here}` is not a sequence")
            if seg >= len(node):
                raise LookupError(f"index {seg} out of range at `{here}`")
        else:
            if not isinstance(node, dict):
                raise LookupError(f"`{here}` is not a mapping")
            seg = _mapping_key(node, seg)

        locator = Locator(node, seg)
        node = node[seg]

    if isinstance(node, (dict, list)):
        raise LookupError("path points at a container, not a value")
    return locator


def resolve(tree: Any, paths: Sequence[str]) -> List[ResolvedPath]:
    """
    Resolve every path in declaration order.

    All paths are attempted before failing so that the user sees every
    missing path at once.

    Raises:
        ConfigError: if a path is syntactically invalid
        PathResolutionError: if any path cannot be located
    """

    parsed = [(path, parse_path(path)) for path in paths]

    resolved: List[ResolvedPath] = []
    errors: List[str] = []

    for path, segments in parsed:
        try:
            locator = _locate(tree, segments)
        except LookupError as exc:
            message = f"unable to locate secure path `{path}`: {exc.args[0]}"
            if message not in errors:
                errors.append(message)
            continue

        logger.debug("Resolved secure path %s", path)
        resolved.append(ResolvedPath(path=path, locator=locator, value=locator.get()))

    if errors:
        raise PathResolutionError(errors)

    return resolved
