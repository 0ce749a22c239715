"""
locking.py
Process-wide advisory lock guarding metadata access against parallel tool
runs. The whole metadata universe is locked for the duration of one command.
"""

from __future__ import annotations
import errno, fcntl, logging, os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from .errors import LockError
from .util import ensure_dir

log = logging.getLogger(__name__)


@contextmanager
def advisory_lock(path: Path, blocking: bool = True) -> Iterator[None]:
    """Hold an exclusive flock on path; released on every exit path."""
    try:
        ensure_dir(path.parent)
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o600)
    except OSError as e:
        raise LockError(f"cannot open lock file {path}: {e}") from e

    try:
        flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
        try:
            fcntl.flock(fd, flags)
        except OSError as e:
            if e.errno in (errno.EAGAIN, errno.EACCES):
                raise LockError(f"lock {path} is held by another process") from e
            raise LockError(f"lock failure on {path}: {e}") from e
        log.debug("lock %s acquired", path)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            log.debug("lock %s released", path)
    finally:
        os.close(fd)
