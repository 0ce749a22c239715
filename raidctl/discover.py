"""
discover.py
Device discovery for the system metadata layer:
- Enumerate block devices with lsblk (JSON)
- Identify RAID member devices with blkid (TYPE=*_raid_member)
- Group member devices into RAID sets by format and label/UUID
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from .errors import MetadataError
from .formats import format_of_blkid_type
from .types import BlockDevice, RaidDevice, RaidSet
from .util import run

MAPPER_DIR = Path("/dev/mapper")


def lsblk_json() -> Dict[str, Any]:
    rc, out = run(
        ["lsblk", "-b", "-J", "-o", "NAME,KNAME,PATH,TYPE,SIZE,MODEL,SERIAL"],
        capture=True,
    )
    if rc != 0:
        raise MetadataError(f"lsblk command failed (rc={rc}). This usually requires root access or proper block device permissions.")
    try:
        return json.loads(out)
    except json.JSONDecodeError as e:
        raise MetadataError(f"lsblk output is not valid JSON: {e}")


def blkid_export(dev: str) -> Dict[str, str]:
    rc, out = run(["blkid", "-p", "-o", "export", dev], capture=True)
    if rc != 0:
        return {}
    ans = {}
    for line in out.splitlines():
        if "=" in line:
            k, v = line.split("=", 1)
            ans[k.strip()] = v.strip()
    return ans


def collect_block_devices(data: Dict[str, Any], only: Optional[Iterable[str]] = None) -> List[BlockDevice]:
    """Whole disks from lsblk output, optionally restricted to the given paths."""
    wanted = set(only) if only else None
    devs: List[BlockDevice] = []
    for node in data.get("blockdevices", []):
        if node.get("type") != "disk":
            continue
        path = node.get("path") or f"/dev/{node.get('name')}"
        if wanted is not None and path not in wanted:
            continue
        devs.append(
            BlockDevice(
                path=path,
                kname=node.get("kname") or node.get("name"),
                size_bytes=int(node.get("size") or 0),
                type="disk",
                model=(node.get("model") or "").strip() or None,
                serial=(node.get("serial") or "").strip() or None,
            )
        )
    return sorted(devs, key=lambda d: d.path)


def raid_device_of(dev: BlockDevice, info: Dict[str, str]) -> Optional[RaidDevice]:
    fmt = format_of_blkid_type(info.get("TYPE", ""))
    if fmt is None:
        return None
    return RaidDevice(
        path=dev.path,
        format=fmt,
        size_bytes=dev.size_bytes,
        uuid=info.get("UUID") or None,
        label=info.get("LABEL") or None,
    )


def set_name_of(rd: RaidDevice) -> str:
    if rd.label:
        return f"{rd.format}_{rd.label}"
    if rd.uuid:
        return f"{rd.format}_{rd.uuid.replace('-', '')[:10]}"
    return f"{rd.format}_{Path(rd.path).name}"


def group_sets(rds: Iterable[RaidDevice], names: Optional[Iterable[str]] = None) -> List[RaidSet]:
    """Group member devices into sets; restrict to names when given."""
    sets: Dict[str, RaidSet] = {}
    for rd in rds:
        name = set_name_of(rd)
        rs = sets.setdefault(name, RaidSet(name=name, format=rd.format))
        rs.devices.append(rd)
    wanted = set(names) if names else None
    out = []
    for name in sorted(sets):
        if wanted is not None and name not in wanted:
            continue
        rs = sets[name]
        rs.active = (MAPPER_DIR / name).exists()
        out.append(rs)
    return out
