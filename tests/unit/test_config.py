"""Unit tests for configuration helpers."""

import logging

import pytest

from confcrypt.config import (
    KNOWN_STRATEGIES,
    STDERR_PATHS,
    STDOUT_PATHS,
    SUPPORTED_STRATEGIES,
    get_editor,
    load_passphrase,
    parse_log_level,
)
from confcrypt.exceptions import ConfigError


@pytest.mark.parametrize(
    "name, level",
    [
        (None, logging.WARNING),
        ("", logging.WARNING),
        ("none", logging.WARNING),
        ("info", logging.INFO),
        ("DEBUG", logging.DEBUG),
    ],
)
def test_parse_log_level(name, level):
    assert parse_log_level(name) == level


def test_parse_log_level_unknown():
    with pytest.raises(ConfigError, match="Unrecognized log level: loud"):
        parse_log_level("loud")


def test_load_passphrase_from_env(monkeypatch):
    monkeypatch.setenv("PASSPHRASE", "testing")
    assert load_passphrase() == b"testing"


def test_load_passphrase_unset(monkeypatch):
    monkeypatch.delenv("PASSPHRASE", raising=False)
    assert load_passphrase() is None


def test_get_editor_prefers_visual(monkeypatch):
    monkeypatch.setenv("VISUAL", "code --wait")
    monkeypatch.setenv("EDITOR", "nano")
    assert get_editor() == "code --wait"


def test_get_editor_default(monkeypatch):
    monkeypatch.delenv("VISUAL", raising=False)
    monkeypatch.delenv("EDITOR", raising=False)
    assert get_editor() == "vi"


@pytest.mark.parametrize(
    "names",
    [SUPPORTED_STRATEGIES, KNOWN_STRATEGIES, STDOUT_PATHS, STDERR_PATHS],
)
def test_name_tuples_hold_strings(names):
    assert isinstance(names, tuple)
    assert names and all(isinstance(name, str) for name in names)


def test_supported_strategies_are_known():
    assert set(SUPPORTED_STRATEGIES) <= set(KNOWN_STRATEGIES)
