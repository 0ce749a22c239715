"""
handlers.py
Handler functions the dispatch table routes to. Each takes the Session and
the resolved argument and returns success.

Handlers only adapt parsed options to metadata-layer calls. With -t/--test,
every handler that would change on-disk metadata or device-mapper state
reports what it would do and returns success without calling the layer.
"""

from __future__ import annotations
import logging
from typing import Optional
from . import __version__
from .types import Action, DisplayKind, Session

log = logging.getLogger(__name__)


def _report(session: Session, what: str) -> bool:
    print(f"[test] {session.ctx.cmd}: would {what}")
    return True


def display_sets_arg(action: Action, arg: Optional[DisplayKind]) -> DisplayKind:
    """Pre step for set display: which activation state to show."""
    if action & Action.ACTIVE:
        return DisplayKind.ACTIVE
    if action & Action.INACTIVE:
        return DisplayKind.INACTIVE
    return DisplayKind.ALL


def activate_or_deactivate_sets(session: Session, arg) -> bool:
    ctx, backend = session.ctx, session.backend
    activate = ctx.has(Action.ACTIVATE)
    if ctx.test:
        verb = "activate" if activate else "deactivate"
        for rs in backend.sets:
            _report(session, f'{verb} RAID set "{rs.name}"')
        return True
    return backend.activate_sets(
        backend.sets,
        activate,
        partchar=ctx.partchar,
        partitions=not ctx.has(Action.NOPARTITIONS),
        rm_partitions=ctx.has(Action.RMPARTITIONS),
    )


def display_devices(session: Session, kind: DisplayKind) -> bool:
    ctx, backend = session.ctx, session.backend
    ok = backend.display_devices(kind, ctx.columns, ctx.separator)
    if ok and kind is DisplayKind.RAID and ctx.has(Action.DUMP):
        ok = backend.dump_metadata(session.config.dump_dir)
    return ok


def display_sets(session: Session, kind: DisplayKind) -> bool:
    ctx = session.ctx
    return session.backend.display_sets(kind, ctx.columns, ctx.separator, group=ctx.has(Action.GROUP))


def erase(session: Session, arg) -> bool:
    backend = session.backend
    dump_dir = session.config.dump_dir
    if session.ctx.test:
        _report(session, f"dump metadata to {dump_dir}")
        for rd in backend.raid_devices:
            _report(session, f"erase {rd.format} metadata on {rd.path}")
        return True
    # The metadata is dumped before it is erased.
    if not backend.dump_metadata(dump_dir):
        return False
    return backend.erase_metadata(backend.raid_devices)


def delete_sets(session: Session, arg) -> bool:
    backend = session.backend
    if session.ctx.test:
        for rs in backend.sets:
            _report(session, f'remove RAID set "{rs.name}"')
        return True
    return backend.delete_sets(backend.sets)


def create_sets(session: Session, arg) -> bool:
    ctx = session.ctx
    if ctx.test:
        return _report(session, f"create RAID set from: {' '.join(ctx.trailing)}")
    return session.backend.create_set(ctx.trailing, ctx.formats)


def hot_spare_add(session: Session, arg) -> bool:
    ctx, backend = session.ctx, session.backend
    media = ctx.rebuild_disk
    targets = backend.sets or [None]
    ok = True
    for rs in targets:
        name = rs.name if rs else (ctx.spare_set or "new spare set")
        if ctx.test:
            _report(session, f'add {media} as hot spare to "{name}"')
            continue
        log.info("adding %s as hot spare to %s", media, name)
        ok = backend.hot_spare_add(rs, media) and ok
    return ok


def rebuild(session: Session, arg) -> bool:
    ctx = session.ctx
    if ctx.test:
        target = f" onto {ctx.rebuild_disk}" if ctx.rebuild_disk else ""
        return _report(session, f'rebuild RAID set "{ctx.rebuild_set}"{target}')
    return session.backend.rebuild_set(ctx.rebuild_set, ctx.rebuild_disk)


def list_formats(session: Session, arg) -> bool:
    print("List of registered metadata format handlers:")
    for name, desc in session.backend.list_formats().items():
        print(f"{name:<8}: {desc}")
    return True


def version(session: Session, arg) -> bool:
    cmd = session.ctx.cmd
    v = session.backend.version()
    library = f"{v.get('library', '')} {v.get('date', '')}".strip()
    print(f"{cmd} version:\t\t{__version__}")
    print(f"{cmd} library version:\t{library}")
    print(f"device-mapper version:\t{v.get('device_mapper', 'unknown')}")
    return True
