"""
bundle.py
Finds the system tools the system metadata layer runs.

A raidctl tree may carry its own lsblk, blkid and dmsetup in a bin/
directory beside the package. Those copies win over the ones on PATH.
"""
from __future__ import annotations
import os, shutil
from pathlib import Path
from typing import List, Optional

HELPERS = ("lsblk", "blkid", "dmsetup")
BIN_DIR: Path = Path(__file__).resolve().parent.parent / "bin"


def helper_path(name: str, bin_dir: Path = BIN_DIR) -> Optional[str]:
    """Path of a helper tool: the bundled copy if executable, else PATH lookup."""
    local = bin_dir / name
    if local.is_file() and os.access(local, os.X_OK):
        return str(local)
    return shutil.which(name)


def missing_helpers(bin_dir: Path = BIN_DIR) -> List[str]:
    return [name for name in HELPERS if helper_path(name, bin_dir) is None]


def prepend_bin_to_path(bin_dir: Path = BIN_DIR) -> bool:
    """Put bin_dir first on PATH once. Returns True if PATH changed."""
    if not bin_dir.is_dir():
        return False
    parts = [p for p in os.environ.get("PATH", "").split(os.pathsep) if p]
    if str(bin_dir) in parts:
        return False
    os.environ["PATH"] = os.pathsep.join([str(bin_dir)] + parts)
    return True
