"""
formats.py
Known metadata format handlers and the blkid TYPE values that identify them.
"""
from __future__ import annotations
from typing import Dict, Iterable, List

# name -> description, in the order `-l` lists them
FORMATS: Dict[str, str] = {
    "asr": "Adaptec HostRAID ASR",
    "ddf1": "SNIA DDF1",
    "hpt37x": "Highpoint HPT37X",
    "hpt45x": "Highpoint HPT45X",
    "isw": "Intel Software RAID",
    "jmicron": "JMicron ATARAID",
    "lsi": "LSI Logic MegaRAID",
    "nvidia": "NVidia RAID",
    "pdc": "Promise FastTrack",
    "sil": "Silicon Image(tm) Medley(tm)",
    "via": "VIA Software RAID",
    "dos": "DOS partitions on SW RAIDs",
}

BLKID_TYPES: Dict[str, str] = {
    "adaptec_raid_member": "asr",
    "ddf_raid_member": "ddf1",
    "hpt37x_raid_member": "hpt37x",
    "hpt45x_raid_member": "hpt45x",
    "isw_raid_member": "isw",
    "jmicron_raid_member": "jmicron",
    "lsi_mega_raid_member": "lsi",
    "nvidia_raid_member": "nvidia",
    "promise_fasttrack_raid_member": "pdc",
    "silicon_medley_raid_member": "sil",
    "via_raid_member": "via",
}


def invalid_formats(names: Iterable[str]) -> List[str]:
    return [n for n in names if n.lower() not in FORMATS]


def format_of_blkid_type(t: str) -> str | None:
    return BLKID_TYPES.get((t or "").lower())
