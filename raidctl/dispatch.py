"""
dispatch.py
The dispatch registry and the generic perform() protocol.

Family lists the action families in priority order; the first whose trigger
intersects the resolved ActionSet handles the invocation. perform() then:
  - checks privilege (before any resource is touched)
  - takes the advisory lock (unless not required or --ignorelocking)
  - builds the requested metadata domains through the metadata layer
  - resolves the handler argument (pre step or static value)
  - invokes the handler and returns its result
The lock is released on every exit path.
"""

from __future__ import annotations
import logging, os
from contextlib import nullcontext
from enum import Enum
from typing import Optional, Sequence
from . import handlers as h
from .errors import DispatchError, MetadataError, PrivilegeError
from .locking import advisory_lock
from .types import (
    Action as A,
    DispatchRule,
    DisplayKind,
    Locking,
    Metadata as M,
    Privilege,
    Session,
)

log = logging.getLogger(__name__)

ROOT, ANY = Privilege.ROOT, Privilege.ANY
LOCK, NO_LOCK = Locking.LOCK, Locking.NO_LOCK
ALL_METADATA = M.DEVICE | M.RAID | M.SET


class Family(Enum):
    ACTIVATION = DispatchRule(A.ACTIVATE | A.DEACTIVATE, ALL_METADATA, ROOT, LOCK, None, None, h.activate_or_deactivate_sets)
    BLOCK_DEVICES = DispatchRule(A.BLOCK_DEVICES, M.DEVICE, ROOT, NO_LOCK, None, DisplayKind.DEVICE, h.display_devices)
    ERASE = DispatchRule(A.ERASE, M.DEVICE | M.RAID, ROOT, LOCK, None, None, h.erase)
    LIST_FORMATS = DispatchRule(A.LIST_FORMATS, M.NONE, ANY, NO_LOCK, None, None, h.list_formats)
    RAID_DEVICES = DispatchRule(A.RAID_DEVICES, M.DEVICE | M.RAID, ROOT, LOCK, None, DisplayKind.RAID, h.display_devices)
    DELETE = DispatchRule(A.DELETE, ALL_METADATA, ROOT, LOCK, None, None, h.delete_sets)
    RAID_SETS = DispatchRule(A.RAID_SETS, ALL_METADATA, ROOT, LOCK, h.display_sets_arg, None, h.display_sets)
    VERSION = DispatchRule(A.VERSION, M.NONE, ANY, NO_LOCK, None, None, h.version)
    CREATE = DispatchRule(A.CREATE, ALL_METADATA, ROOT, LOCK, None, None, h.create_sets)
    SPARE = DispatchRule(A.SPARE, ALL_METADATA, ROOT, LOCK, None, None, h.hot_spare_add)
    REBUILD = DispatchRule(A.REBUILD, ALL_METADATA, ROOT, LOCK, None, None, h.rebuild)


def select_family(action: A) -> Family:
    for family in Family:
        if family.value.trigger & action:
            return family
    raise DispatchError(f"internal error: no handler for action set {action!r}")


def _device_args(session: Session) -> Optional[Sequence[str]]:
    ctx = session.ctx
    if ctx.has(A.BLOCK_DEVICES | A.RAID_DEVICES | A.ERASE | A.DUMP) and ctx.arguments:
        return ctx.arguments
    return None


def _set_args(session: Session) -> Optional[Sequence[str]]:
    ctx = session.ctx
    if ctx.has(A.ACTIVATE | A.DEACTIVATE | A.RAID_SETS | A.DELETE) and ctx.arguments:
        return ctx.arguments
    if ctx.has(A.REBUILD) and ctx.rebuild_set:
        return [ctx.rebuild_set]
    if ctx.has(A.SPARE) and ctx.spare_set:
        return [ctx.spare_set]
    return None


def build_metadata(session: Session, rule: DispatchRule) -> None:
    """Discover every metadata domain the rule needs, in dependency order."""
    ctx, backend = session.ctx, session.backend
    if rule.metadata & M.DEVICE:
        if not backend.discover_devices(_device_args(session)):
            raise MetadataError("no block devices found")
    if rule.metadata & M.RAID:
        found = backend.discover_raid_devices(ctx.formats, _device_args(session))
        if not found and not ctx.has(A.SPARE | A.CREATE):
            fmt = f' with format: "{",".join(ctx.formats)}"' if ctx.formats else ""
            raise MetadataError(f"no raid disks{fmt}")
    if rule.metadata & M.SET:
        names = _set_args(session)
        found = backend.group_sets(names)
        if not found and names and not ctx.has(A.SPARE):
            raise MetadataError(f"no raid sets matching: {', '.join(names)}")


def perform(session: Session) -> bool:
    ctx, cfg = session.ctx, session.config
    # Help can be asked for at any time and was already displayed.
    if ctx.has(A.HELP):
        return True

    family = select_family(ctx.action)
    rule = family.value
    log.debug("dispatching %s for %r", family.name, ctx.action)

    if rule.privilege is ROOT and os.geteuid() != 0:
        raise PrivilegeError(f"you must be root to run {ctx.cmd} with these options")

    if rule.locking is LOCK and not ctx.has(A.IGNORELOCKING):
        scope = advisory_lock(cfg.lock_path, cfg.lock_blocking)
    else:
        scope = nullcontext()

    with scope:
        build_metadata(session, rule)
        arg = rule.pre(ctx.action, rule.arg) if rule.pre else rule.arg
        return bool(rule.handler(session, arg))
