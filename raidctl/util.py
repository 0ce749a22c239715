"""
util.py
Cross-cutting utilities:
- Process execution (list-of-args) with dry-run support
- Option-string helpers: whitespace removal, delimiter collapsing, list splitting
- JSON writing
"""

from __future__ import annotations
import json, re, shlex, subprocess
from pathlib import Path
from typing import List


def run(cmd, capture=False, env=None, dry=False):
    """
    Execute a command given as a list of args.
    Returns (rc, output_str). A missing executable is reported as rc 127.
    """
    if dry:
        print("[dry-run]", " ".join(shlex.quote(c) for c in cmd))
        return 0, ""
    try:
        if capture:
            out = subprocess.check_output(cmd, stderr=subprocess.STDOUT, env=env)
            return 0, out.decode("utf-8", "replace")
        rc = subprocess.call(cmd, env=env)
        return rc, ""
    except subprocess.CalledProcessError as e:
        return e.returncode, e.output.decode("utf-8", "replace") if e.output else ""
    except FileNotFoundError:
        return 127, ""


def remove_white_space(s: str) -> str:
    return re.sub(r"\s+", "", s)


def collapse_delimiter(s: str, delim: str) -> str:
    """Squeeze runs of the delimiter and drop leading/trailing ones."""
    s = re.sub(re.escape(delim) + "{2,}", delim, s)
    return s.strip(delim)


def split_list(s: str, delim: str) -> List[str]:
    return [x for x in s.split(delim) if x]


def ensure_dir(p: Path):
    """Create directory with better error reporting."""
    try:
        p.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        raise PermissionError(f"Cannot create directory {p} - insufficient permissions")
    except OSError as e:
        raise OSError(f"Cannot create directory {p}: {e}")


def write_json(path: Path, obj):
    ensure_dir(path.parent)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(obj, indent=2, sort_keys=True))
    tmp.replace(path)
