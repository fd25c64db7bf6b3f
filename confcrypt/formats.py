"""
Format adapters: bytes <-> document tree.

A document tree is plain Python data: dicts (insertion ordered), lists and
scalars. JSON and YAML map onto it directly. Dotenv files become a flat
DotenvMapping which also remembers the source lines, so that a file whose
values were only partly replaced is written back with its comments, blank
lines and untouched assignments exactly as they were.

This module does NOT:
- locate secure paths
- encrypt or decrypt values
- open files
"""

from __future__ import annotations

import io
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Final, List, Optional, Tuple

import yaml
from dotenv.parser import Binding, parse_stream

from .exceptions import ConfigError, ParseError, SerializeError

logger = logging.getLogger(__name__)

JSON: Final[str] = "json"
YAML: Final[str] = "yaml"
DOTENV: Final[str] = "dotenv"

FORMAT_ALIASES: Final[Dict[str, str]] = {
    "json": JSON,
    "yaml": YAML,
    "yml": YAML,
    "dotenv": DOTENV,
    "env": DOTENV,
}

# Dotenv values matching this are written without quotes
_BARE_VALUE = re.compile(r"[^\s'\"\\#]*")
_LEADING_SPACE = re.compile(r"^\s*")
_EXPORT_PREFIX = re.compile(r"^export[ \t]+")
_LINE_ENDING = re.compile(r"(\r\n|\n|\r)\Z")

_DOTENV_ESCAPES: Final[Dict[str, str]] = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


# ---------------------------------------------------------------------------
# Format names
# ---------------------------------------------------------------------------


def normalize_format(name: Optional[str]) -> str:
    """
    Return the canonical name for a format or alias.

    Raises:
        ConfigError: if the format is not supported
    """

    key = (name or "").strip().lower()
    try:
        return FORMAT_ALIASES[key]
    except KeyError:
        raise ConfigError(f"Unsupported format: {name or '(none)'}")


def format_from_path(path: str | Path) -> str:
    """
    Infer the format from a file name.

    ``.env``-style names (leading dot) and names without an extension are
    dotenv; ``.yml`` and ``.yaml`` are YAML; anything else is looked up by
    its extension.
    """

    name = Path(path).name
    if not name or name.startswith(".") or "." not in name:
        fmt = DOTENV
    else:
        fmt = normalize_format(name.rsplit(".", 1)[1])

    logger.info("Using format: %s", fmt)
    return fmt


# ---------------------------------------------------------------------------
# Dotenv
# ---------------------------------------------------------------------------


class DotenvMapping(dict):
    """
    Flat ``KEY -> value`` mapping parsed from a dotenv file.

    ``bindings`` holds every parsed chunk of the source (assignments,
    comments, blank runs) in order; it is only read when serializing.
    """

    def __init__(self, *args: Any, bindings: Optional[List[Binding]] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.bindings: List[Binding] = list(bindings or [])


def _parse_dotenv(text: str) -> DotenvMapping:
    """Raises ParseError on invalid syntax or a key assigned twice."""
    bindings = list(parse_stream(io.StringIO(text)))
    values: Dict[str, Optional[str]] = {}

    for binding in bindings:
        if binding.error:
            raise ParseError(
                f"Invalid dotenv syntax on line {binding.original.line}: "
                f"{binding.original.string.strip()!r}"
            )
        if binding.key is None:
            continue
        # One line per key, so every copy of a secret gets encrypted
        if binding.key in values:
            raise ParseError(
                f"Duplicate dotenv key {binding.key!r} on line {binding.original.line}"
            )
        values[binding.key] = binding.value

    return DotenvMapping(values, bindings=bindings)


def quote_dotenv_value(value: Any) -> Optional[str]:
    """Render a value for the right-hand side of ``KEY=``."""
    if value is None:
        return None
    text = value if isinstance(value, str) else scalar_text(value)
    if _BARE_VALUE.fullmatch(text):
        return text
    escaped = "".join(_DOTENV_ESCAPES.get(ch, ch) for ch in text)
    return f'"{escaped}"'


def _dotenv_line(key: str, value: Any) -> str:
    rendered = quote_dotenv_value(value)
    if rendered is None:
        return key
    return f"{key}={rendered}"


def _split_original(original: str) -> Tuple[str, str, str]:
    """Return (leading whitespace, export prefix, line ending) of a binding."""
    leading = _LEADING_SPACE.match(original).group()
    export = _EXPORT_PREFIX.match(original[len(leading):])
    ending = _LINE_ENDING.search(original)
    return leading, export.group() if export else "", ending.group() if ending else ""


def _serialize_dotenv(tree: Dict[str, Any]) -> str:
    if not isinstance(tree, dict):
        raise SerializeError("A dotenv document must be a flat mapping")
    for key, value in tree.items():
        if isinstance(value, (dict, list)):
            raise SerializeError(f"Cannot write nested value for {key!r} as dotenv")

    bindings = tree.bindings if isinstance(tree, DotenvMapping) else []
    out: List[str] = []
    written = set()

    for binding in bindings:
        original = binding.original.string
        if binding.key is None:
            out.append(original)
            continue
        if binding.key not in tree:
            # Dropped key: keep the blank lines that preceded it
            leading, _, _ = _split_original(original)
            out.append(leading[: leading.rfind("\n") + 1])
            continue

        written.add(binding.key)
        if tree[binding.key] == binding.value:
            out.append(original)
            continue

        leading, export, ending = _split_original(original)
        out.append(f"{leading}{export}{_dotenv_line(binding.key, tree[binding.key])}{ending}")

    added = [key for key in tree if key not in written]
    if added and out and not out[-1].endswith(("\n", "\r")):
        out.append("\n")

    for key in added:
        out.append(_dotenv_line(key, tree[key]) + "\n")

    return "".join(out)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def scalar_text(value: Any) -> str:
    """Text form of a scalar: JSON-style booleans, empty string for null."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _plain(tree: Any) -> Any:
    """Strip DotenvMapping so YAML's safe dumper accepts the tree."""
    if isinstance(tree, DotenvMapping):
        return dict(tree)
    return tree


def _decode(data: bytes | str, fmt: str) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Input is not valid UTF-8 {fmt}: {exc}") from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse(fmt: str, data: bytes | str) -> Any:
    """
    Parse a buffer into a document tree.

    Raises:
        ConfigError: if the format is not supported
        ParseError: if the buffer is not valid for the format
    """

    fmt = normalize_format(fmt)
    text = _decode(data, fmt)

    if fmt == JSON:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid JSON: {exc}") from exc

    if fmt == YAML:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ParseError(f"Invalid YAML: {exc}") from exc

    return _parse_dotenv(text)


def serialize(fmt: str, tree: Any) -> bytes:
    """
    Render a document tree in the given format.

    Raises:
        ConfigError: if the format is not supported
        SerializeError: if the tree cannot be represented in the format
    """

    fmt = normalize_format(fmt)

    if fmt == JSON:
        try:
            text = json.dumps(tree, indent=2, ensure_ascii=False) + "\n"
        except (TypeError, ValueError) as exc:
            raise SerializeError(f"Cannot write document as JSON: {exc}") from exc

    elif fmt == YAML:
        try:
            text = yaml.safe_dump(
                _plain(tree),
                sort_keys=False,
                allow_unicode=True,
                default_flow_style=False,
            )
        except yaml.YAMLError as exc:
            raise SerializeError(f"Cannot write document as YAML: {exc}") from exc

    else:
        text = _serialize_dotenv(tree)

    return text.encode("utf-8")
