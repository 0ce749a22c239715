"""
backend.py
The metadata layer the dispatcher hands control to.

MetadataLayer is the interface: discovery (devices, RAID devices, sets) used
while the dispatcher builds metadata, and the operations handlers invoke.
SystemBackend discovers with lsblk/blkid and implements the read-only
operations. Operations that change on-disk metadata or device-mapper tables
belong to an external mapping layer and are reported as unsupported here.
"""

from __future__ import annotations
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from . import __version__
from .bundle import BIN_DIR, helper_path, missing_helpers, prepend_bin_to_path
from .discover import blkid_export, collect_block_devices, group_sets, lsblk_json, raid_device_of
from .errors import BackendError
from .formats import FORMATS
from .types import BlockDevice, DisplayKind, RaidDevice, RaidSet
from .util import run, write_json

log = logging.getLogger(__name__)

DEVICE_COLUMNS = ("path", "size", "serial")
RAID_COLUMNS = ("path", "format", "name", "status", "size")
SET_COLUMNS = ("name", "format", "size", "devs", "status")


class MetadataLayer:
    """Discovery results are kept on the instance for the handler that follows."""

    def __init__(self):
        self.devices: List[BlockDevice] = []
        self.raid_devices: List[RaidDevice] = []
        self.sets: List[RaidSet] = []

    # discovery
    def discover_devices(self, paths: Optional[Sequence[str]] = None) -> int:
        raise BackendError("device discovery is not supported")

    def discover_raid_devices(self, formats: Sequence[str] = (), paths: Optional[Sequence[str]] = None) -> int:
        raise BackendError("RAID device discovery is not supported")

    def group_sets(self, names: Optional[Sequence[str]] = None) -> int:
        raise BackendError("RAID set grouping is not supported")

    # read-only operations
    def display_devices(self, kind: DisplayKind, columns: Sequence[str] = (), separator: str = ",") -> bool:
        raise BackendError("device display is not supported")

    def display_sets(self, kind: DisplayKind, columns: Sequence[str] = (), separator: str = ",", group: bool = False) -> bool:
        raise BackendError("RAID set display is not supported")

    def dump_metadata(self, dest: Path) -> bool:
        raise BackendError("metadata dump is not supported")

    def list_formats(self) -> Dict[str, str]:
        return dict(FORMATS)

    def version(self) -> Dict[str, str]:
        return {"library": __version__, "date": "", "device_mapper": "unknown"}

    # state-changing operations
    def activate_sets(self, sets: Sequence[RaidSet], activate: bool, partchar: Optional[str] = None,
                      partitions: bool = True, rm_partitions: bool = False) -> bool:
        raise BackendError(f"{'activation' if activate else 'deactivation'} is not supported by this metadata layer")

    def erase_metadata(self, devices: Sequence[RaidDevice]) -> bool:
        raise BackendError("metadata erase is not supported by this metadata layer")

    def delete_sets(self, sets: Sequence[RaidSet]) -> bool:
        raise BackendError("RAID set removal is not supported by this metadata layer")

    def create_set(self, request: Sequence[str], formats: Sequence[str] = ()) -> bool:
        raise BackendError("RAID set creation is not supported by this metadata layer")

    def hot_spare_add(self, rs: Optional[RaidSet], media: str) -> bool:
        raise BackendError("hot spare attachment is not supported by this metadata layer")

    def rebuild_set(self, name: str, disk: Optional[str] = None) -> bool:
        raise BackendError("rebuild is not supported by this metadata layer")


def _row(obj, columns: Sequence[str]) -> Dict[str, str]:
    vals = {
        "path": getattr(obj, "path", ""),
        "devpath": getattr(obj, "path", ""),
        "name": getattr(obj, "name", ""),
        "format": getattr(obj, "format", ""),
        "type": getattr(obj, "type", ""),
        "size": str(getattr(obj, "size_bytes", 0)),
        "sectors": str(getattr(obj, "size_bytes", 0) // 512),
        "serial": getattr(obj, "serial", None) or "",
        "status": "",
        "devs": str(len(getattr(obj, "devices", []) or [])),
    }
    if isinstance(obj, RaidSet):
        vals["status"] = "active" if obj.active else "inactive"
    elif isinstance(obj, RaidDevice):
        vals["status"] = obj.status
    return {c: vals.get(c, "") for c in columns}


class SystemBackend(MetadataLayer):
    def __init__(self):
        super().__init__()
        if prepend_bin_to_path():
            log.debug("%s prepended to PATH", BIN_DIR)
        missing = missing_helpers()
        if missing:
            log.info("helper tool(s) not found: %s", ", ".join(missing))

    def discover_devices(self, paths=None) -> int:
        self.devices = collect_block_devices(lsblk_json(), paths)
        log.info("%d block device(s) found", len(self.devices))
        return len(self.devices)

    def discover_raid_devices(self, formats=(), paths=None) -> int:
        wanted = {f.lower() for f in formats}
        found = []
        for dev in self.devices:
            if paths and dev.path not in paths:
                continue
            rd = raid_device_of(dev, blkid_export(dev.path))
            if rd is None or (wanted and rd.format not in wanted):
                continue
            log.debug("%s: %s metadata", rd.path, rd.format)
            found.append(rd)
        self.raid_devices = found
        return len(found)

    def group_sets(self, names=None) -> int:
        self.sets = group_sets(self.raid_devices, names)
        return len(self.sets)

    def _print(self, rows: List[Dict[str, str]], columns: Sequence[str], separator: str, explicit: bool) -> None:
        if explicit:
            for r in rows:
                print(separator.join(r[c] for c in columns))
            return
        print(" ".join(f"{c.upper():<20}" for c in columns).rstrip())
        for r in rows:
            print(" ".join(f"{r[c] or '-':<20}" for c in columns).rstrip())

    def display_devices(self, kind, columns=(), separator=",") -> bool:
        if kind is DisplayKind.DEVICE:
            objs, default = self.devices, DEVICE_COLUMNS
        else:
            objs, default = self.raid_devices, RAID_COLUMNS
        cols = list(columns) or list(default)
        rows = []
        for o in objs:
            r = _row(o, cols)
            if "name" in cols and isinstance(o, RaidDevice):
                r["name"] = next((s.name for s in group_sets([o])), "")
            rows.append(r)
        self._print(rows, cols, separator, bool(columns))
        return True

    def display_sets(self, kind, columns=(), separator=",", group=False) -> bool:
        cols = list(columns) or list(SET_COLUMNS)
        shown = [
            s for s in self.sets
            if kind is DisplayKind.ALL
            or (kind is DisplayKind.ACTIVE and s.active)
            or (kind is DisplayKind.INACTIVE and not s.active)
        ]
        if not shown:
            log.warning("no %sraid sets", "" if kind is DisplayKind.ALL else f"{kind.value} ")
        self._print([_row(s, cols) for s in shown], cols, separator, bool(columns))
        if group:
            for s in shown:
                print(f"{s.name}:")
                for d in s.devices:
                    print(f"  {d.path}")
        return True

    def dump_metadata(self, dest: Path) -> bool:
        stamp = datetime.now(timezone.utc).isoformat()
        for rd in self.raid_devices:
            path = dest / f"raidctl.{rd.format}" / f"{Path(rd.path).name}.json"
            write_json(path, {"dumped_utc": stamp, **rd.__dict__, "blkid": blkid_export(rd.path)})
            log.info("metadata of %s dumped to %s", rd.path, path)
        return True

    def version(self) -> Dict[str, str]:
        info = super().version()
        dmsetup = helper_path("dmsetup")
        if dmsetup is None:
            log.debug("dmsetup not found; device-mapper version unknown")
            return info
        rc, out = run([dmsetup, "version"], capture=True)
        if rc == 0:
            for line in out.splitlines():
                if line.lower().startswith("driver version:"):
                    info["device_mapper"] = line.split(":", 1)[1].strip()
        return info
