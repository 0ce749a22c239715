"""
config.py
Load configuration from TOML (Python 3.11+ tomllib).
Search order:
  1) $RAIDCTL_CONFIG (must exist)
  2) raidctl.toml next to the raidctl package
  3) /etc/raidctl.toml
A missing file means built-in defaults.
"""

from __future__ import annotations
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional
from .types import Config

ENV_VAR = "RAIDCTL_CONFIG"
SYSTEM_CONFIG_PATH = "/etc/raidctl.toml"
# raidctl.toml beside the package directory
DEFAULT_CONFIG_PATH = str(Path(__file__).resolve().parent.parent / "raidctl.toml")


def _gv(d: Dict[str, Any], path: list[str], default=None):
    cur = d
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def _load_toml(path: Path) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def find_config(path_arg: str | None = None) -> Optional[Path]:
    """Pick the config path from an explicit path, the environment, or defaults."""
    path_arg = path_arg or os.environ.get(ENV_VAR)
    if path_arg:
        p = Path(path_arg)
        if not p.exists():
            raise FileNotFoundError(f"Specified config file does not exist: {path_arg}")
        return p

    for candidate in (DEFAULT_CONFIG_PATH, SYSTEM_CONFIG_PATH):
        p = Path(candidate)
        if p.exists():
            return p
    return None


def load_config(path: Optional[Path]) -> Config:
    if path is None:
        return Config()
    cfg = _load_toml(path)
    d = Config()

    def gv(keys, default=None):
        return _gv(cfg, keys, default)

    separator = str(gv(["display", "separator"], d.separator))
    if len(separator) != 1:
        raise ValueError(f"display.separator must be a single character, got {separator!r}")

    return Config(
        lock_path=Path(gv(["locking", "path"], d.lock_path)),
        lock_blocking=bool(gv(["locking", "blocking"], d.lock_blocking)),
        log_level=str(gv(["logging", "level"], d.log_level)).upper(),
        separator=separator,
        partchar=gv(["display", "partchar"], d.partchar),
        dump_dir=Path(gv(["metadata", "dump_dir"], d.dump_dir)),
    )
