"""
Tests for configuration loading and validation.
"""
import pytest
from pathlib import Path

from raidctl import config as config_mod
from raidctl.config import find_config, load_config
from raidctl.types import Config


def test_load_config_basic(temp_config_file):
    """Test basic configuration loading."""
    config = load_config(temp_config_file)

    assert config.lock_path == Path("/tmp/raidctl-test/.lock")
    assert config.lock_blocking is False
    assert config.log_level == "INFO"
    assert config.separator == ";"
    assert config.partchar == "p"
    assert config.dump_dir == Path("/tmp/raidctl-dump")


def test_config_defaults(tmp_path):
    """Test that configuration uses proper defaults."""
    p = tmp_path / "raidctl.toml"
    p.write_text("[logging]\nlevel = \"debug\"\n")

    config = load_config(p)

    assert config.lock_path == Path("/var/lock/raidctl/.lock")
    assert config.lock_blocking is True
    assert config.log_level == "DEBUG"
    assert config.separator == ","
    assert config.partchar is None


def test_no_config_file_means_defaults():
    assert load_config(None) == Config()


def test_separator_must_be_single_character(tmp_path):
    p = tmp_path / "raidctl.toml"
    p.write_text("[display]\nseparator = \"::\"\n")
    with pytest.raises(ValueError, match="single character"):
        load_config(p)


def test_invalid_toml_raises(tmp_path):
    p = tmp_path / "raidctl.toml"
    p.write_text("[display\n")
    with pytest.raises(ValueError):
        load_config(p)


def test_env_config_must_exist(monkeypatch, tmp_path):
    monkeypatch.setenv("RAIDCTL_CONFIG", str(tmp_path / "missing.toml"))
    with pytest.raises(FileNotFoundError):
        find_config()


def test_env_config_is_used(monkeypatch, temp_config_file):
    monkeypatch.setenv("RAIDCTL_CONFIG", str(temp_config_file))
    assert find_config() == temp_config_file


def test_search_falls_back_to_none(monkeypatch, tmp_path):
    monkeypatch.delenv("RAIDCTL_CONFIG", raising=False)
    monkeypatch.setattr(config_mod, "DEFAULT_CONFIG_PATH", str(tmp_path / "raidctl.toml"))
    monkeypatch.setattr(config_mod, "SYSTEM_CONFIG_PATH", str(tmp_path / "etc.toml"))
    assert find_config() is None
    (tmp_path / "etc.toml").write_text("")
    assert find_config() == tmp_path / "etc.toml"
