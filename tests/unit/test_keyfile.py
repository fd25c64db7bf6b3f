"""Unit tests for secure path list loading."""

import pytest

from confcrypt.exceptions import ConfigError
from confcrypt.keyfile import get_secure_paths, load_key_file, parse_key_lines


def test_parse_key_lines_skips_comments_and_blanks():
    lines = ["# secrets\n", "db.password\n", "\n", "   \n", "  items[0].token  \n", "#api.key\n"]
    assert parse_key_lines(lines) == ["db.password", "items[0].token"]


def test_load_key_file(tmp_path):
    key_file = tmp_path / "keys.txt"
    key_file.write_text("# header\nAPI_KEY\n\nDB_PASSWORD")
    assert load_key_file(key_file) == ["API_KEY", "DB_PASSWORD"]


def test_load_key_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_key_file(tmp_path / "missing.txt")


def test_get_secure_paths_literal_keys():
    assert get_secure_paths(keys=["a", "b.c"]) == ["a", "b.c"]


def test_get_secure_paths_from_file(tmp_path):
    key_file = tmp_path / "keys.txt"
    key_file.write_text("a\nb\n")
    assert get_secure_paths(key_file=key_file) == ["a", "b"]


def test_get_secure_paths_requires_a_source():
    with pytest.raises(ConfigError, match="either --key or --key-file"):
        get_secure_paths()


def test_get_secure_paths_rejects_both(tmp_path):
    key_file = tmp_path / "keys.txt"
    key_file.write_text("a\n")
    with pytest.raises(ConfigError, match="not both"):
        get_secure_paths(keys=["a"], key_file=key_file)


def test_get_secure_paths_empty_file(tmp_path):
    key_file = tmp_path / "keys.txt"
    key_file.write_text("# nothing here\n\n")
    with pytest.raises(ConfigError, match="No secure paths"):
        get_secure_paths(key_file=key_file)
